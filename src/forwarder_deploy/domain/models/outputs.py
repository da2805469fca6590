"""DeploymentOutputs model - identifiers produced by a deployment"""

from dataclasses import dataclass, field
from typing import List, Optional
from urllib.parse import quote

DOCUMENTATION_URL = "https://www.dynatrace.com/support/help/shortlink/azure-log-fwd"
TROUBLESHOOTING_URL = "https://www.dynatrace.com/support/help/shortlink/azure-log-fwd#troubleshooting"
LOG_VIEWER_QUERY = 'cloud.provider="azure"'


@dataclass
class DeploymentOutputs:
    """Resource identifiers collected while the deployment runs"""

    deployment_name: str
    resource_group: str
    dynatrace_url: str  # Environment URL used for the log viewer link
    target_url: Optional[str] = None  # URL the forwarder sends logs to
    identity_id: Optional[str] = None
    identity_principal_id: Optional[str] = None
    identity_client_id: Optional[str] = None  # Client ID the forwarder authenticates with
    subnet_id: Optional[str] = None
    storage_account_name: Optional[str] = None
    function_app_id: Optional[str] = None
    function_app_name: Optional[str] = None
    function_app_url: Optional[str] = None
    event_hub: Optional[str] = None
    active_gate_url: Optional[str] = None
    role_assignments: List[str] = field(default_factory=list)

    @property
    def log_viewer_url(self) -> str:
        base = self.dynatrace_url.rstrip("/")
        return f"{base}/ui/log-monitoring?query={quote(LOG_VIEWER_QUERY)}"

    def next_steps(self) -> str:
        """Human readable summary shown after a successful deployment"""
        lines = [
            f"Dynatrace Azure Log Forwarder '{self.deployment_name}' deployed to resource group '{self.resource_group}'.",
            f"Function App: {self.function_app_name} ({self.function_app_url})",
        ]
        if self.active_gate_url:
            lines.append(f"ActiveGate: {self.active_gate_url}")
        if self.event_hub:
            lines.append(f"Source Event Hub: {self.event_hub}")
        lines.extend(
            [
                "",
                "Next steps:",
                "  1. Configure diagnostic settings of your Azure resources to stream logs to the Event Hub.",
                f"  2. Check incoming logs in Dynatrace: {self.log_viewer_url}",
                f"  3. Documentation: {DOCUMENTATION_URL}",
                f"  4. Troubleshooting: {TROUBLESHOOTING_URL}",
            ]
        )
        return "\n".join(lines)
