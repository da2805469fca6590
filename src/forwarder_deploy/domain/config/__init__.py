"""Configuration models with Pydantic validation."""

from forwarder_deploy.domain.config.app import AppConfig
from forwarder_deploy.domain.config.deployment import DeploymentConfig
from forwarder_deploy.domain.config.probe import ProbeConfig
from forwarder_deploy.domain.config.retry import RetryPolicy

__all__ = [
    "AppConfig",
    "DeploymentConfig",
    "ProbeConfig",
    "RetryPolicy",
]
