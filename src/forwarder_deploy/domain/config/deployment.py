"""Deployment parameters model."""

from typing import Dict, Optional

from pydantic import BaseModel, ConfigDict, SecretStr


def _secret_value(secret: Optional[SecretStr]) -> Optional[str]:
    return secret.get_secret_value() if secret is not None else None


class DeploymentConfig(BaseModel):
    """User-supplied deployment parameters.

    Field shapes (URL formats, name lengths and so on) are checked by the
    argument validator, not here, so that every violation can be reported in
    one pass. This model only guarantees types.

    Attributes:
        deployment_name: Prefix for every created resource
        resource_group: Target Azure resource group
        location: Azure region
        target_url: Dynatrace environment or existing ActiveGate URL
        api_token: Dynatrace API token with logs.ingest scope
        paas_token: Dynatrace PaaS token (needed to deploy a new ActiveGate)
        event_hub_connection_string: Connection string of the source Event Hub
        event_hub_name: Event Hub name (managed identity mode)
        event_hub_fully_qualified_namespace: e.g. ns.servicebus.windows.net (managed identity mode)
        managed_identity_client_id: Client ID of the user-assigned identity
        managed_identity_resource_name: Resource name of the user-assigned identity
        enable_user_assigned_managed_identity: Authenticate to the Event Hub with a managed identity
        use_existing_active_gate: Send logs to an existing ActiveGate instead of deploying one
        require_valid_certificate: Verify TLS certificates of the target
        self_monitoring_enabled: Enable forwarder self-monitoring metrics
        filter_config: key=value filter pairs separated by ';'
        subnet_id: Bring-your-own subnet resource ID (skips network creation)
        skip_connectivity_check: Skip probing the target before deployment
        tags: Tags applied to created resources
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    deployment_name: Optional[str] = None
    resource_group: Optional[str] = None
    location: Optional[str] = None
    target_url: Optional[str] = None
    api_token: Optional[SecretStr] = None
    paas_token: Optional[SecretStr] = None

    event_hub_connection_string: Optional[SecretStr] = None
    event_hub_name: Optional[str] = None
    event_hub_fully_qualified_namespace: Optional[str] = None
    managed_identity_client_id: Optional[str] = None
    managed_identity_resource_name: Optional[str] = None
    enable_user_assigned_managed_identity: bool = False

    use_existing_active_gate: bool = True
    require_valid_certificate: bool = True
    self_monitoring_enabled: bool = False
    filter_config: Optional[str] = None
    subnet_id: Optional[str] = None
    skip_connectivity_check: bool = False
    tags: Dict[str, str] = {}

    @property
    def deploy_active_gate(self) -> bool:
        """Whether a new ActiveGate container has to be provisioned"""
        return not self.use_existing_active_gate

    @property
    def api_token_value(self) -> Optional[str]:
        return _secret_value(self.api_token)

    @property
    def paas_token_value(self) -> Optional[str]:
        return _secret_value(self.paas_token)

    @property
    def event_hub_connection_string_value(self) -> Optional[str]:
        return _secret_value(self.event_hub_connection_string)

    def to_arguments(self) -> Dict[str, Optional[str]]:
        """Flatten string parameters into the mapping checked by the argument validator"""
        return {
            "deployment_name": self.deployment_name,
            "resource_group": self.resource_group,
            "location": self.location,
            "target_url": self.target_url,
            "api_token": self.api_token_value,
            "paas_token": self.paas_token_value,
            "event_hub_connection_string": self.event_hub_connection_string_value,
            "event_hub_name": self.event_hub_name,
            "event_hub_fully_qualified_namespace": self.event_hub_fully_qualified_namespace,
            "managed_identity_client_id": self.managed_identity_client_id,
            "managed_identity_resource_name": self.managed_identity_resource_name,
            "filter_config": self.filter_config,
        }
