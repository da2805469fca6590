"""Retryable actions: code package download and zip deployment"""

import logging
import re
from pathlib import Path

import requests

from forwarder_deploy.domain.models.attempt import ActionResult
from forwarder_deploy.errors import CommandTimeoutError
from forwarder_deploy.infrastructure.azure.az_cmd import AzCmd, AzureCli
from forwarder_deploy.infrastructure.http_client import Timeouts, download_to_file

logger = logging.getLogger(__name__)

FUNCTION_PACKAGE_URL = (
    "https://github.com/dynatrace-oss/dynatrace-azure-log-forwarder/releases/latest/download/"
    "dynatrace-azure-log-forwarder.zip"
)
DOWNLOAD_TIMEOUTS = Timeouts(connect=20.0, read=120.0)


class PackageDownload:
    """Downloads the forwarder code package"""

    def __init__(self, url: str, destination: Path, timeouts: Timeouts = DOWNLOAD_TIMEOUTS):
        self.url = url
        self.destination = Path(destination)
        self.timeouts = timeouts

    def __call__(self) -> ActionResult:
        try:
            size = download_to_file(self.url, self.destination, timeouts=self.timeouts)
        except requests.exceptions.RequestException as e:
            logger.warning(f"Failed to download {self.url}: {e}")
            return ActionResult.transient(f"Download of {self.url} failed: {e}")
        except OSError as e:
            return ActionResult.terminal(f"Cannot write {self.destination}: {e}")

        if size == 0:
            return ActionResult.transient(f"Downloaded package {self.url} is empty")
        logger.info(f"Downloaded {self.url} ({size} bytes)")
        return ActionResult.success(str(self.destination))


class ZipDeployment:
    """Deploys a zip package to a Function App

    A non-zero exit is retried. A zero exit whose log still reports an HTTP
    5xx status (the deployment endpoint timing out behind the CLI) is
    retried as well.
    """

    def __init__(
        self,
        cli: AzureCli,
        function_app_name: str,
        resource_group: str,
        package: Path,
        transient_signature: str,
    ):
        self.cli = cli
        self.function_app_name = function_app_name
        self.resource_group = resource_group
        self.package = Path(package)
        self.transient_signature = re.compile(transient_signature)

    def command(self) -> AzCmd:
        return (
            AzCmd("functionapp", "deployment source config-zip")
            .param("--name", self.function_app_name)
            .param("--resource-group", self.resource_group)
            .param("--src", str(self.package))
        )

    def classify(self, returncode: int, output: str) -> ActionResult:
        """Classify a finished deployment command by exit code and log content"""
        if returncode != 0:
            return ActionResult.transient(output)
        if self.transient_signature.search(output):
            logger.warning("Deployment log reports a server-side timeout")
            return ActionResult.transient(output)
        return ActionResult.success(output)

    def __call__(self) -> ActionResult:
        if not self.package.is_file():
            return ActionResult.terminal(f"Code package not found: {self.package}")
        try:
            result = self.cli.run(self.command())
        except CommandTimeoutError as e:
            return ActionResult.transient(str(e))
        return self.classify(result.returncode, result.output)
