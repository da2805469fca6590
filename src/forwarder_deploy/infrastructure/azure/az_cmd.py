"""Azure CLI command builder and runner"""

import json
import logging
import subprocess
from dataclasses import dataclass
from functools import reduce
from typing import Any, Iterable, List, Optional

from forwarder_deploy.errors import AzureCliError, CommandTimeoutError, FatalError

logger = logging.getLogger(__name__)

DEFAULT_COMMAND_TIMEOUT = 1800  # seconds


class AzCmd(list):
    """Builder for Azure CLI commands.

    Tokens are passed to subprocess as an argument list, so values are never
    shell-quoted.
    """

    def __init__(self, service: str, action: str):
        """Initialize with service and action (e.g., 'functionapp', 'create')"""
        super().__init__(["az", service] + action.split())

    def append(self, token: str) -> "AzCmd":
        """Adds a token to the command"""
        super().append(token)
        return self

    def flag(self, key: str) -> "AzCmd":
        """Adds a flag to the command"""
        return self.append(key)

    def param(self, key: str, value: str) -> "AzCmd":
        """Adds a key-value pair parameter"""
        return self.flag(key).append(str(value))

    def param_list(self, key: str, values: Iterable[str]) -> "AzCmd":
        """Adds a list of values after a single key"""
        return reduce(lambda cmd, value: cmd.append(str(value)), values, self.flag(key))

    def redacted(self, secrets: Iterable[str] = ()) -> str:
        """Printable form of the command with secret values masked"""
        hidden = {s for s in secrets if s}
        return " ".join("***" if token in hidden or _is_secret_setting(token, hidden) else token for token in self)

    def __str__(self) -> str:
        return " ".join(self)


def _is_secret_setting(token: str, secrets: set) -> bool:
    # app settings are passed as NAME=value tokens
    name, sep, value = token.partition("=")
    return bool(sep) and value in secrets


@dataclass(frozen=True)
class CommandResult:
    """Captured output of a finished command"""

    returncode: int
    stdout: str
    stderr: str

    @property
    def succeeded(self) -> bool:
        return self.returncode == 0

    @property
    def output(self) -> str:
        """stdout and stderr combined, the way a deployment log would read"""
        return "\n".join(part for part in (self.stdout, self.stderr) if part)


class AzureCli:
    """Runs Azure CLI commands"""

    def __init__(self, timeout: float = DEFAULT_COMMAND_TIMEOUT, secrets: Iterable[str] = ()):
        """Initialize runner

        Args:
            timeout: Seconds allowed for a single command
            secrets: Values masked whenever a command is logged
        """
        self.timeout = timeout
        self.secrets = [s for s in secrets if s]

    def run(self, cmd: AzCmd) -> CommandResult:
        """Run a command and capture its output without raising on failure

        Raises:
            FatalError: If the az executable is missing or the command times out
        """
        printable = cmd.redacted(self.secrets)
        logger.debug(f"Running: {printable}")
        try:
            completed = subprocess.run(
                list(cmd), capture_output=True, text=True, timeout=self.timeout, check=False
            )
        except FileNotFoundError as e:
            raise FatalError("Azure CLI ('az') is not installed or not on PATH") from e
        except subprocess.TimeoutExpired as e:
            raise CommandTimeoutError(f"Command timed out after {self.timeout}s: {printable}") from e
        return CommandResult(completed.returncode, completed.stdout or "", completed.stderr or "")

    def execute(self, cmd: AzCmd, can_fail: bool = False) -> str:
        """Run a command and return its stdout

        Args:
            cmd: Command to run
            can_fail: Return an empty string instead of raising on non-zero exit

        Raises:
            AzureCliError: If the command fails and can_fail is False
        """
        result = self.run(cmd)
        if result.succeeded:
            return result.stdout
        if can_fail:
            logger.debug(f"Command failed (ignored): {cmd.redacted(self.secrets)}")
            return ""
        printable = cmd.redacted(self.secrets)
        logger.error(f"Command failed: {printable}")
        logger.error(result.stderr)
        raise AzureCliError(printable, result.returncode, result.stdout, result.stderr)

    def execute_json(self, cmd: AzCmd, can_fail: bool = False) -> Optional[Any]:
        """Run a command with JSON output and parse it

        Raises:
            AzureCliError: If the command fails
            FatalError: If the output is not valid JSON
        """
        output = self.execute(cmd.param("--output", "json"), can_fail=can_fail)
        if not output.strip():
            return None
        try:
            return json.loads(output)
        except json.JSONDecodeError as e:
            raise FatalError(f"Failed to parse output of '{cmd.redacted(self.secrets)}': {e}") from e

    def execute_tsv(self, cmd: AzCmd, can_fail: bool = False) -> str:
        """Run a command with tsv output and return the stripped value"""
        return self.execute(cmd.param("--output", "tsv"), can_fail=can_fail).strip()


def settings_tokens(settings: dict) -> List[str]:
    """Format a mapping as NAME=value tokens, skipping empty values"""
    return [f"{name}={value}" for name, value in settings.items() if value is not None and value != ""]
