"""Azure CLI access, resource provisioning and retryable actions"""

from forwarder_deploy.infrastructure.azure.actions import PackageDownload, ZipDeployment
from forwarder_deploy.infrastructure.azure.az_cmd import AzCmd, AzureCli, CommandResult
from forwarder_deploy.infrastructure.azure.resources import AzureResourceProvisioner

__all__ = [
    "AzCmd",
    "AzureCli",
    "AzureResourceProvisioner",
    "CommandResult",
    "PackageDownload",
    "ZipDeployment",
]
