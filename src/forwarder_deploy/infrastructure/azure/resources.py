"""Azure resource provisioning through the Azure CLI"""

import logging
from typing import Dict, Optional

from forwarder_deploy.application.naming import role_assignment_name
from forwarder_deploy.constants import (
    ACTIVE_GATE_CPU,
    ACTIVE_GATE_MEMORY_GB,
    ACTIVE_GATE_PORT,
    APP_SERVICE_PLAN_SKU,
    FUNCTION_RUNTIME,
    FUNCTION_RUNTIME_VERSION,
    FUNCTIONS_SUBNET_DELEGATION,
    FUNCTIONS_SUBNET_PREFIX,
    FUNCTIONS_VERSION,
    STORAGE_ACCOUNT_SKU,
    VNET_ADDRESS_PREFIX,
)
from forwarder_deploy.errors import FatalError
from forwarder_deploy.infrastructure.azure.az_cmd import AzCmd, AzureCli, settings_tokens

logger = logging.getLogger(__name__)


def vnet_id_from_subnet_id(subnet_id: str) -> str:
    return subnet_id.split("/subnets/")[0]


class AzureResourceProvisioner:
    """Creates the resources of one deployment

    Every create method is safe to call again: existing resources are
    updated in place or reused.
    """

    def __init__(self, cli: AzureCli, resource_group: str, location: str, tags: Optional[Dict[str, str]] = None):
        self.cli = cli
        self.resource_group = resource_group
        self.location = location
        self.tags = tags or {}

    def _with_tags(self, cmd: AzCmd) -> AzCmd:
        if self.tags:
            cmd.param_list("--tags", settings_tokens(self.tags))
        return cmd

    # Identity and role bindings

    def ensure_identity(self, name: str) -> dict:
        """Return the user-assigned identity, creating it if missing"""
        identity = self.cli.execute_json(
            AzCmd("identity", "show").param("--name", name).param("--resource-group", self.resource_group),
            can_fail=True,
        )
        if identity:
            logger.info(f"Using existing managed identity {name}")
            return identity

        logger.info(f"Creating managed identity {name}...")
        return self.cli.execute_json(
            self._with_tags(
                AzCmd("identity", "create")
                .param("--name", name)
                .param("--resource-group", self.resource_group)
                .param("--location", self.location)
            )
        )

    def assign_role(self, principal_id: str, role_id: str, scope: str) -> str:
        """Bind a role to a principal at a scope, once

        Returns:
            Name (GUID) of the role assignment
        """
        assignment_name = role_assignment_name(scope, role_id, principal_id)
        existing = self.cli.execute_json(
            AzCmd("role", "assignment list")
            .param("--assignee", principal_id)
            .param("--role", role_id)
            .param("--scope", scope),
            can_fail=True,
        )
        if existing:
            logger.info(f"Role {role_id} already assigned to {principal_id} on {scope}")
            return existing[0].get("name", assignment_name)

        logger.info(f"Assigning role {role_id} to {principal_id} on {scope}...")
        self.cli.execute(
            AzCmd("role", "assignment create")
            .param("--name", assignment_name)
            .param("--assignee-object-id", principal_id)
            .param("--assignee-principal-type", "ServicePrincipal")
            .param("--role", role_id)
            .param("--scope", scope)
        )
        return assignment_name

    def resolve_event_hub_namespace_id(self, fully_qualified_namespace: str) -> str:
        """Find the resource ID of an Event Hub namespace by its host name"""
        endpoint = f"https://{fully_qualified_namespace}:443/"
        namespace_id = self.cli.execute_tsv(
            AzCmd("eventhubs", "namespace list").param(
                "--query", f"[?serviceBusEndpoint=='{endpoint}'].id | [0]"
            )
        )
        if not namespace_id:
            raise FatalError(f"Event Hub namespace {fully_qualified_namespace} not found in the current subscription")
        return namespace_id

    # Core resources

    def create_network(self, vnet_name: str, subnet_name: str) -> str:
        """Create a virtual network with a subnet delegated to App Service

        Returns:
            Subnet resource ID
        """
        logger.info(f"Creating virtual network {vnet_name}...")
        self.cli.execute(
            self._with_tags(
                AzCmd("network", "vnet create")
                .param("--name", vnet_name)
                .param("--resource-group", self.resource_group)
                .param("--location", self.location)
                .param("--address-prefixes", VNET_ADDRESS_PREFIX)
                .param("--subnet-name", subnet_name)
                .param("--subnet-prefixes", FUNCTIONS_SUBNET_PREFIX)
            )
        )
        subnet = self.cli.execute_json(
            AzCmd("network", "vnet subnet update")
            .param("--name", subnet_name)
            .param("--vnet-name", vnet_name)
            .param("--resource-group", self.resource_group)
            .param("--delegations", FUNCTIONS_SUBNET_DELEGATION)
        )
        return subnet["id"]

    def create_storage_account(self, name: str) -> None:
        logger.info(f"Creating storage account {name}...")
        self.cli.execute(
            self._with_tags(
                AzCmd("storage", "account create")
                .param("--name", name)
                .param("--resource-group", self.resource_group)
                .param("--location", self.location)
                .param("--sku", STORAGE_ACCOUNT_SKU)
                .param("--kind", "StorageV2")
                .param("--min-tls-version", "TLS1_2")
                .param("--allow-blob-public-access", "false")
            )
        )

    def create_app_service_plan(self, name: str) -> None:
        logger.info(f"Creating App Service plan {name}...")
        self.cli.execute(
            self._with_tags(
                AzCmd("appservice", "plan create")
                .param("--name", name)
                .param("--resource-group", self.resource_group)
                .param("--location", self.location)
                .param("--sku", APP_SERVICE_PLAN_SKU)
                .flag("--is-linux")
            )
        )

    def create_function_app(
        self, name: str, plan: str, storage_account: str, identity_id: Optional[str] = None
    ) -> dict:
        """Create the Function App that runs the forwarder

        Returns:
            Function App properties as reported by the CLI
        """
        logger.info(f"Creating Function App {name}...")
        cmd = (
            AzCmd("functionapp", "create")
            .param("--name", name)
            .param("--resource-group", self.resource_group)
            .param("--plan", plan)
            .param("--storage-account", storage_account)
            .param("--runtime", FUNCTION_RUNTIME)
            .param("--runtime-version", FUNCTION_RUNTIME_VERSION)
            .param("--functions-version", FUNCTIONS_VERSION)
            .param("--os-type", "Linux")
        )
        if identity_id:
            cmd.param("--assign-identity", identity_id)
        return self.cli.execute_json(self._with_tags(cmd)) or {}

    def integrate_subnet(self, function_app: str, subnet_id: str) -> None:
        logger.info(f"Connecting {function_app} to subnet {subnet_id}...")
        self.cli.execute(
            AzCmd("functionapp", "vnet-integration add")
            .param("--name", function_app)
            .param("--resource-group", self.resource_group)
            .param("--vnet", vnet_id_from_subnet_id(subnet_id))
            .param("--subnet", subnet_id)
        )

    def set_app_settings(self, function_app: str, settings: Dict[str, str]) -> None:
        logger.info(f"Configuring app settings of {function_app}...")
        self.cli.execute(
            AzCmd("functionapp", "config appsettings set")
            .param("--name", function_app)
            .param("--resource-group", self.resource_group)
            .param_list("--settings", settings_tokens(settings))
        )

    def assign_system_identity(self, function_app: str) -> str:
        """Enable the Function App's system-assigned identity

        Returns:
            Principal ID of the identity
        """
        identity = self.cli.execute_json(
            AzCmd("functionapp", "identity assign")
            .param("--name", function_app)
            .param("--resource-group", self.resource_group)
        )
        return identity["principalId"]

    # ActiveGate

    def create_active_gate(
        self,
        name: str,
        image: str,
        registry_server: str,
        registry_username: str,
        registry_password: str,
        environment: Dict[str, str],
        secure_environment: Dict[str, str],
    ) -> dict:
        """Run an ActiveGate in a container instance

        Returns:
            Container group properties as reported by the CLI
        """
        logger.info(f"Creating ActiveGate container {name}...")
        cmd = (
            AzCmd("container", "create")
            .param("--name", name)
            .param("--resource-group", self.resource_group)
            .param("--location", self.location)
            .param("--image", image)
            .param("--registry-login-server", registry_server)
            .param("--registry-username", registry_username)
            .param("--registry-password", registry_password)
            .param("--os-type", "Linux")
            .param("--cpu", str(ACTIVE_GATE_CPU))
            .param("--memory", str(ACTIVE_GATE_MEMORY_GB))
            .param("--ports", str(ACTIVE_GATE_PORT))
            .param("--ip-address", "Public")
            .param("--dns-name-label", name)
            .param_list("--environment-variables", settings_tokens(environment))
            .param_list("--secure-environment-variables", settings_tokens(secure_environment))
        )
        return self.cli.execute_json(self._with_tags(cmd)) or {}
