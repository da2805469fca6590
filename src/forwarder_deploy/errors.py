"""Errors raised while validating and deploying the log forwarder"""

from typing import TYPE_CHECKING, List

if TYPE_CHECKING:
    from forwarder_deploy.domain.models.attempt import Attempt
    from forwarder_deploy.domain.models.validation import ValidationResult


class DeploymentError(Exception):
    """Base class for every error that stops a deployment."""


# Errors users can resolve by fixing their input
class ConfigurationError(DeploymentError):
    """Missing or malformed deployment parameters."""

    def __init__(self, message: str, result: "ValidationResult" = None):
        super().__init__(message)
        self.result = result


class ConnectivityError(DeploymentError):
    """The Dynatrace target rejected the token or the test log."""


# Errors that prevent the deployment from completing
class FatalError(DeploymentError):
    """An error that prevents the deployment from completing successfully."""


class AzureCliError(FatalError):
    """An Azure CLI command exited with a non-zero status."""

    def __init__(self, command: str, returncode: int, stdout: str = "", stderr: str = ""):
        super().__init__(
            f"Command failed with exit code {returncode}: {command}\nstdout: {stdout}\nstderr: {stderr}"
        )
        self.command = command
        self.returncode = returncode
        self.stdout = stdout
        self.stderr = stderr


class RetryExhaustedError(FatalError):
    """A retried action did not succeed within its policy."""

    def __init__(self, action_name: str, attempts: List["Attempt"]):
        self.action_name = action_name
        self.attempts = list(attempts)
        self.last_output = attempts[-1].output if attempts else ""
        super().__init__(f"{action_name} failed after {len(self.attempts)} attempt(s)")


class CommandTimeoutError(FatalError):
    """An Azure CLI command did not finish within its timeout."""
