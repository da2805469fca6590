"""Service that validates parameters and deploys the log forwarder"""

import logging
import tempfile
from pathlib import Path
from typing import Dict, List, Optional

from forwarder_deploy.application.naming import (
    ResourceNames,
    environment_id,
    event_hub_from_connection_string,
    registry_host,
)
from forwarder_deploy.constants import (
    ACTIVE_GATE_IMAGE_PATH,
    ACTIVE_GATE_PORT,
    EVENT_HUBS_DATA_RECEIVER_ID,
    MONITORING_METRICS_PUBLISHER_ID,
)
from forwarder_deploy.domain.config.app import AppConfig
from forwarder_deploy.domain.models.outputs import DeploymentOutputs
from forwarder_deploy.domain.models.probe_result import ProbeResult
from forwarder_deploy.domain.validators.argument_validator import validate_config
from forwarder_deploy.errors import ConfigurationError, ConnectivityError, FatalError
from forwarder_deploy.infrastructure.azure.actions import FUNCTION_PACKAGE_URL, PackageDownload, ZipDeployment
from forwarder_deploy.infrastructure.azure.az_cmd import AzCmd, AzureCli
from forwarder_deploy.infrastructure.azure.resources import AzureResourceProvisioner
from forwarder_deploy.infrastructure.log_format import log_header
from forwarder_deploy.infrastructure.prober import ConnectivityProber
from forwarder_deploy.infrastructure.retry import RetryExecutor

logger = logging.getLogger(__name__)

PACKAGE_FILE_NAME = "dynatrace-azure-log-forwarder.zip"


class DeploymentOrchestrator:
    """Runs the deployment steps strictly in order

    1. validate parameters
    2. probe the Dynatrace target (unless skipped)
    3. managed identity and its role bindings
    4. network, storage and the Function App
    5. ActiveGate container (when a new one is requested)
    6. download and deploy the forwarder code, with retries
    7. post-deployment role bindings

    The first failing step stops the run. Nothing is rolled back.
    """

    def __init__(
        self,
        config: AppConfig,
        cli: Optional[AzureCli] = None,
        provisioner: Optional[AzureResourceProvisioner] = None,
        prober: Optional[ConnectivityProber] = None,
        retry_executor: Optional[RetryExecutor] = None,
        package_url: str = FUNCTION_PACKAGE_URL,
        work_dir: Optional[Path] = None,
    ):
        """Initialize orchestrator

        Args:
            config: Application configuration
            cli: Azure CLI runner (created from config if None)
            provisioner: Resource provisioner (created from cli if None)
            prober: Connectivity prober (created from config if None)
            retry_executor: Executor for download and deployment
            package_url: Location of the forwarder code package
            work_dir: Directory for the downloaded package (temporary if None)
        """
        self.config = config
        self.params = config.deployment
        self.cli = cli or AzureCli(
            timeout=config.command_timeout_seconds,
            secrets=[
                self.params.api_token_value,
                self.params.paas_token_value,
                self.params.event_hub_connection_string_value,
            ],
        )
        self._provisioner = provisioner
        self._prober = prober
        self.retry_executor = retry_executor or RetryExecutor()
        self.package_url = package_url
        self.work_dir = work_dir

    @property
    def provisioner(self) -> AzureResourceProvisioner:
        if self._provisioner is None:
            self._provisioner = AzureResourceProvisioner(
                self.cli, self.params.resource_group, self.params.location, self.params.tags
            )
        return self._provisioner

    @property
    def prober(self) -> ConnectivityProber:
        if self._prober is None:
            self._prober = ConnectivityProber(
                self.params.target_url,
                self.params.api_token_value,
                verify_certificate=self.params.require_valid_certificate,
                config=self.config.probe,
            )
        return self._prober

    # Validation

    def check_arguments(self) -> None:
        """Validate deployment parameters

        Raises:
            ConfigurationError: Listing every invalid parameter
        """
        result = validate_config(self.params)
        if not result.passed:
            for failure in result.failures:
                logger.error(f"Invalid parameter {failure}")
            raise ConfigurationError(
                "Parameter validation failed:\n" + result.summary(), result=result
            )
        logger.info("Parameter validation completed")

    def check_connectivity(self) -> List[ProbeResult]:
        """Probe the Dynatrace target

        The ActiveGate health check only warns, since the ActiveGate may not
        accept traffic from the public network. Token and ingest checks abort.

        Raises:
            ConnectivityError: If the token lookup or test ingest fails
        """
        results = []
        if self.params.use_existing_active_gate:
            health = self.prober.check_health()
            results.append(health)
            if health.ok:
                logger.info("ActiveGate is running")
            else:
                logger.warning(f"ActiveGate health check did not pass: {health.detail}")
                logger.warning("Continuing, the ActiveGate may deny public access")

        for check in (self.prober.check_token_permissions, self.prober.send_test_log):
            result = check()
            results.append(result)
            if not result.ok:
                logger.error(f"Connectivity check '{result.check}' failed: {result.detail}")
                if result.body:
                    logger.error(f"Response: {result.body}")
                raise ConnectivityError(f"Connectivity check '{result.check}' failed: {result.detail}")
            logger.info(f"Connectivity check '{result.check}' passed")
        return results

    def validate(self) -> List[ProbeResult]:
        """Run parameter validation and, unless skipped, connectivity checks"""
        log_header(logger, "STEP 1: Validating parameters...")
        self.check_arguments()

        if self.params.skip_connectivity_check:
            logger.warning("Skipping connectivity check")
            return []

        log_header(logger, "STEP 2: Checking connectivity with Dynatrace...")
        return self.check_connectivity()

    # Deployment

    def deploy(self) -> DeploymentOutputs:
        """Validate, provision and deploy; returns the collected outputs"""
        self.validate()

        names = ResourceNames.for_deployment(self.params)
        logger.info(f"Deployment ID: {names.deployment_id}")
        outputs = DeploymentOutputs(
            deployment_name=self.params.deployment_name,
            resource_group=self.params.resource_group,
            dynatrace_url=self._dynatrace_url(),
            target_url=self.params.target_url,
        )
        if self.params.enable_user_assigned_managed_identity:
            log_header(logger, "STEP 3: Setting up managed identity...")
            self.setup_identity(outputs)
        else:
            outputs.event_hub = event_hub_from_connection_string(
                self.params.event_hub_connection_string_value
            )

        log_header(logger, "STEP 4: Creating Function App infrastructure...")
        self.provision_core(names, outputs)

        if self.params.deploy_active_gate:
            log_header(logger, "STEP 5: Deploying ActiveGate...")
            self.provision_active_gate(names, outputs)

        log_header(logger, "STEP 6: Deploying forwarder code...")
        self.configure_function_app(names, outputs)
        self.deploy_code(names)

        if self.params.self_monitoring_enabled:
            log_header(logger, "STEP 7: Assigning post-deployment permissions...")
            self.assign_post_deployment_roles(outputs)

        log_header(logger, "Success! Dynatrace Azure Log Forwarder deployment completed!")
        return outputs

    def _dynatrace_url(self) -> str:
        if self.params.use_existing_active_gate:
            return f"https://{environment_id(self.params.target_url)}.live.dynatrace.com"
        return self.params.target_url.rstrip("/")

    def setup_identity(self, outputs: DeploymentOutputs) -> None:
        name = self.params.managed_identity_resource_name
        identity = self.provisioner.ensure_identity(name)
        if not identity or not identity.get("id") or not identity.get("principalId"):
            raise FatalError(f"Managed identity {name} could not be read or created")
        outputs.identity_id = identity["id"]
        outputs.identity_principal_id = identity["principalId"]

        # the forwarder authenticates as the identity the roles are bound to
        client_id = identity.get("clientId") or self.params.managed_identity_client_id
        if client_id != self.params.managed_identity_client_id:
            logger.warning(
                f"Managed identity {name} has client ID {client_id}, "
                f"not the configured {self.params.managed_identity_client_id}; using {client_id}"
            )
        outputs.identity_client_id = client_id

        namespace_id = self.provisioner.resolve_event_hub_namespace_id(
            self.params.event_hub_fully_qualified_namespace
        )
        outputs.role_assignments.append(
            self.provisioner.assign_role(outputs.identity_principal_id, EVENT_HUBS_DATA_RECEIVER_ID, namespace_id)
        )
        outputs.event_hub = f"{self.params.event_hub_fully_qualified_namespace}/{self.params.event_hub_name}"
        logger.info("Managed identity configured")

    def provision_core(self, names: ResourceNames, outputs: DeploymentOutputs) -> None:
        if self.params.subnet_id:
            logger.info(f"Using existing subnet {self.params.subnet_id}")
            outputs.subnet_id = self.params.subnet_id
        else:
            outputs.subnet_id = self.provisioner.create_network(names.virtual_network, names.subnet)

        self.provisioner.create_storage_account(names.storage_account)
        outputs.storage_account_name = names.storage_account

        self.provisioner.create_app_service_plan(names.app_service_plan)
        function_app = self.provisioner.create_function_app(
            names.function_app, names.app_service_plan, names.storage_account, outputs.identity_id
        )
        outputs.function_app_name = names.function_app
        host = function_app.get("defaultHostName") or f"{names.function_app}.azurewebsites.net"
        outputs.function_app_url = f"https://{host}"
        outputs.function_app_id = function_app.get("id")

        self.provisioner.integrate_subnet(names.function_app, outputs.subnet_id)
        logger.info("Function App infrastructure created")

    def provision_active_gate(self, names: ResourceNames, outputs: DeploymentOutputs) -> None:
        target_url = self.params.target_url
        env_id = environment_id(target_url)
        registry = registry_host(target_url)
        container = self.provisioner.create_active_gate(
            names.active_gate,
            image=f"{registry}/{ACTIVE_GATE_IMAGE_PATH}",
            registry_server=registry,
            registry_username=env_id,
            registry_password=self.params.paas_token_value,
            environment={
                "DT_CAPABILITIES": "log_analytics_collector",
                "DT_ID_SEED_NAMESPACE": self.params.deployment_name,
                "DT_ID_SKIP_HOSTNAME": "true",
            },
            secure_environment={"DT_PAAS_TOKEN": self.params.paas_token_value},
        )
        ip_address = container.get("ipAddress") or {}
        host = ip_address.get("fqdn") or ip_address.get("ip")
        if not host:
            logger.warning("ActiveGate container reported no address, using its DNS label")
            host = f"{names.active_gate}.{self.params.location}.azurecontainer.io"
        outputs.active_gate_url = f"https://{host}:{ACTIVE_GATE_PORT}/e/{env_id}"
        outputs.target_url = outputs.active_gate_url
        logger.info(f"ActiveGate deployed at {outputs.active_gate_url}")

    def app_settings(self, outputs: DeploymentOutputs) -> Dict[str, str]:
        """Settings the forwarder reads at runtime"""
        params = self.params
        # a freshly deployed ActiveGate serves a self-signed certificate
        require_valid_certificate = params.require_valid_certificate and not params.deploy_active_gate
        settings = {
            "DEPLOYMENT_NAME": params.deployment_name,
            "DYNATRACE_URL": outputs.target_url,
            "DYNATRACE_ACCESS_KEY": params.api_token_value,
            "REQUIRE_VALID_CERTIFICATE": str(require_valid_certificate).lower(),
            "SELF_MONITORING_ENABLED": str(params.self_monitoring_enabled).lower(),
            "FILTER_CONFIG": params.filter_config,
            "REGION": params.location,
        }
        if params.enable_user_assigned_managed_identity:
            settings.update(
                {
                    "EVENTHUB_NAME": params.event_hub_name,
                    "EVENTHUB_CONNECTION_STRING__fullyQualifiedNamespace": params.event_hub_fully_qualified_namespace,
                    "EVENTHUB_CONNECTION_STRING__clientId": outputs.identity_client_id
                    or params.managed_identity_client_id,
                    "EVENTHUB_CONNECTION_STRING__credential": "managedidentity",
                }
            )
        else:
            settings["EVENTHUB_CONNECTION_STRING"] = params.event_hub_connection_string_value
        return settings

    def configure_function_app(self, names: ResourceNames, outputs: DeploymentOutputs) -> None:
        self.provisioner.set_app_settings(names.function_app, self.app_settings(outputs))

    def deploy_code(self, names: ResourceNames) -> None:
        """Download the code package and deploy it, both under retry policies"""
        if self.work_dir is not None:
            self._download_and_deploy(names, Path(self.work_dir))
            return
        with tempfile.TemporaryDirectory(prefix="dt-forwarder-") as tmp:
            self._download_and_deploy(names, Path(tmp))

    def _download_and_deploy(self, names: ResourceNames, work_dir: Path) -> None:
        package = work_dir / PACKAGE_FILE_NAME
        self.retry_executor.run(
            "Code package download",
            PackageDownload(self.package_url, package),
            self.config.download_retry,
        )
        self.retry_executor.run(
            "Function App deployment",
            ZipDeployment(
                self.cli,
                names.function_app,
                self.params.resource_group,
                package,
                self.config.deploy_retry.transient_signature,
            ),
            self.config.deploy_retry,
            warm_up_seconds=self.config.deploy_warm_up_seconds,
        )
        logger.info("Forwarder code deployed")

    def assign_post_deployment_roles(self, outputs: DeploymentOutputs) -> None:
        """Let the forwarder publish self-monitoring metrics on its Function App"""
        if outputs.identity_principal_id:
            principal_id = outputs.identity_principal_id
        else:
            principal_id = self.provisioner.assign_system_identity(outputs.function_app_name)
        scope = outputs.function_app_id or (
            f"/subscriptions/{self._subscription_id()}/resourceGroups/{self.params.resource_group}"
            f"/providers/Microsoft.Web/sites/{outputs.function_app_name}"
        )
        outputs.role_assignments.append(
            self.provisioner.assign_role(principal_id, MONITORING_METRICS_PUBLISHER_ID, scope)
        )
        logger.info("Post-deployment permissions assigned")

    def _subscription_id(self) -> str:
        return self.cli.execute_tsv(AzCmd("account", "show").param("--query", "id"))
