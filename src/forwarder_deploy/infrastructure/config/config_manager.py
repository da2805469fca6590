"""Configuration manager for loading and validating .dt-forwarder.yml"""

import copy
import logging
import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from pydantic import ValidationError

from forwarder_deploy.domain.config import AppConfig, DeploymentConfig, ProbeConfig, RetryPolicy
from forwarder_deploy.errors import ConfigurationError

logger = logging.getLogger(__name__)

CONFIG_FILE_NAME = ".dt-forwarder.yml"

# Environment variable -> deployment parameter
ENV_OVERRIDES = {
    "DEPLOYMENT_NAME": "deployment_name",
    "RESOURCE_GROUP": "resource_group",
    "LOCATION": "location",
    "TARGET_URL": "target_url",
    "TARGET_API_TOKEN": "api_token",
    "TARGET_PAAS_TOKEN": "paas_token",
    "EVENT_HUB_CONNECTION_STRING": "event_hub_connection_string",
    "EVENTHUB_NAME": "event_hub_name",
    "EVENTHUB_CONNECTION_FULLY_QUALIFIED_NAMESPACE": "event_hub_fully_qualified_namespace",
    "MANAGED_IDENTITY_CLIENT_ID": "managed_identity_client_id",
    "MANAGED_IDENTITY_RESOURCE_NAME": "managed_identity_resource_name",
    "ENABLE_USER_ASSIGNED_MANAGED_IDENTITY": "enable_user_assigned_managed_identity",
    "USE_EXISTING_ACTIVE_GATE": "use_existing_active_gate",
    "REQUIRE_VALID_CERTIFICATE": "require_valid_certificate",
    "SFM_ENABLED": "self_monitoring_enabled",
    "FILTER_CONFIG": "filter_config",
    "SUBNET_ID": "subnet_id",
    "SKIP_CONNECTIVITY_CHECK": "skip_connectivity_check",
}


class ConfigManager:
    """Manages configuration from .dt-forwarder.yml and environment variables

    Loads configuration with validation using Pydantic models. Configuration priority:
    1. Default values (defined in Pydantic models)
    2. .dt-forwarder.yml file (searched from current directory)
    3. Environment variables (the deployment script's names, e.g. TARGET_URL)
    4. CLI arguments (passed in as overrides)
    """

    DEFAULT_CONFIG = {
        "deployment": {},
        "probe": {
            "connect_timeout": 20,
            "read_timeout": 30,
        },
        "download_retry": {
            "max_attempts": 3,
            "delay_seconds": 10,
            "timeout_seconds": 600,
        },
        "deploy_retry": {
            "max_attempts": 3,
            "delay_seconds": 10,
            "timeout_seconds": 1800,
        },
        "deploy_warm_up_seconds": 180,
    }

    def __init__(
        self,
        config_path: Optional[Path] = None,
        overrides: Optional[Dict[str, Any]] = None,
    ):
        """Initialize config manager

        Args:
            config_path: Path to .dt-forwarder.yml (searches from current dir if None)
            overrides: Deployment parameters given on the command line (None values are ignored)

        Raises:
            ConfigurationError: If configuration validation fails
        """
        if isinstance(config_path, str):
            config_path = Path(config_path)
        self.config_path = config_path or self._find_config_file()
        self.overrides = {k: v for k, v in (overrides or {}).items() if v is not None}
        try:
            self.config: AppConfig = self._load_config()
        except ValidationError as e:
            errors = []
            for error in e.errors():
                field = ".".join(str(x) for x in error["loc"])
                errors.append(f"  - {field}: {error['msg']}")
            raise ConfigurationError("Configuration validation failed:\n" + "\n".join(errors)) from e

    def _find_config_file(self) -> Optional[Path]:
        """Find .dt-forwarder.yml starting from current directory"""
        current = Path.cwd()
        for parent in [current] + list(current.parents):
            config_file = parent / CONFIG_FILE_NAME
            if config_file.exists():
                logger.info(f"Found config file: {config_file}")
                return config_file
        logger.debug(f"No {CONFIG_FILE_NAME} found, using defaults")
        return None

    def _load_config(self) -> AppConfig:
        config_dict = copy.deepcopy(self.DEFAULT_CONFIG)

        if self.config_path:
            if not self.config_path.exists():
                raise ConfigurationError(f"Config file not found: {self.config_path}")
            try:
                with open(self.config_path, "r", encoding="utf-8") as f:
                    file_config = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Failed to parse {self.config_path}: {e}") from e
            if not isinstance(file_config, dict):
                raise ConfigurationError(f"{self.config_path} must contain a mapping")
            config_dict = self._merge_config(config_dict, file_config)
            logger.info(f"Loaded configuration from {self.config_path}")

        config_dict = self._apply_env_overrides(config_dict)
        config_dict["deployment"].update(self.overrides)

        return AppConfig(**config_dict)

    def _merge_config(self, base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
        """Recursively merge configuration dictionaries"""
        result = base.copy()
        for key, value in override.items():
            if key in result and isinstance(result[key], dict) and isinstance(value, dict):
                result[key] = self._merge_config(result[key], value)
            else:
                result[key] = value
        return result

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides; empty variables count as unset"""
        if config.get("deployment") is None:
            config["deployment"] = {}
        for env_var, field in ENV_OVERRIDES.items():
            value = os.getenv(env_var)
            if value:
                config["deployment"][field] = value
        return config

    def get_deployment_config(self) -> DeploymentConfig:
        return self.config.deployment

    def get_probe_config(self) -> ProbeConfig:
        return self.config.probe

    def get_download_retry_policy(self) -> RetryPolicy:
        return self.config.download_retry

    def get_deploy_retry_policy(self) -> RetryPolicy:
        return self.config.deploy_retry
