"""Main application configuration model."""

from pydantic import BaseModel, ConfigDict, Field

from forwarder_deploy.domain.config.deployment import DeploymentConfig
from forwarder_deploy.domain.config.probe import ProbeConfig
from forwarder_deploy.domain.config.retry import RetryPolicy


class AppConfig(BaseModel):
    """Main application configuration.

    Built once at process start and passed to every component. Validation of
    types happens at load time; parameter shapes are checked by the argument
    validator.

    Attributes:
        deployment: Deployment parameters
        probe: Connectivity check settings
        download_retry: Retry policy for the code package download
        deploy_retry: Retry policy for the zip deployment
        deploy_warm_up_seconds: One-time wait before the first deployment attempt
        command_timeout_seconds: Timeout for a single Azure CLI command
    """

    deployment: DeploymentConfig = Field(default_factory=DeploymentConfig)
    probe: ProbeConfig = Field(default_factory=ProbeConfig)
    download_retry: RetryPolicy = Field(default_factory=lambda: RetryPolicy(timeout_seconds=600))
    deploy_retry: RetryPolicy = Field(default_factory=lambda: RetryPolicy(timeout_seconds=1800))
    deploy_warm_up_seconds: float = Field(180.0, ge=0.0)
    command_timeout_seconds: float = Field(1800.0, gt=0.0)

    model_config = ConfigDict(
        frozen=True,
        extra="forbid",
        json_schema_extra={
            "example": {
                "deployment": {
                    "deployment_name": "dtlogs01",
                    "resource_group": "dynatrace-logs",
                    "location": "westeurope",
                    "target_url": "https://abc12345.live.dynatrace.com",
                    "use_existing_active_gate": False,
                    "event_hub_connection_string": "Endpoint=sb://ns.servicebus.windows.net/;EntityPath=logs",
                },
                "download_retry": {"max_attempts": 3, "delay_seconds": 10},
                "deploy_retry": {"max_attempts": 3, "delay_seconds": 10},
            }
        },
    )
