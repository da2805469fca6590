"""Deterministic resource naming"""

import uuid
from dataclasses import dataclass
from urllib.parse import urlparse

from forwarder_deploy.constants import NIL_UUID
from forwarder_deploy.domain.config.deployment import DeploymentConfig

STORAGE_ACCOUNT_NAME_MAX_LENGTH = 24


def generate_deployment_id(resource_group: str, location: str, deployment_name: str) -> str:
    """Returns a 12-character ID derived from where and under which name we deploy.

    The same inputs always give the same ID, so re-running a deployment
    reuses the resources it created before.
    """
    combined = f"{resource_group}{location}{deployment_name}".lower()
    guid = str(uuid.uuid5(uuid.UUID(NIL_UUID), combined)).lower()
    return guid[:8] + guid[9:13]


def role_assignment_name(scope: str, role_id: str, principal_id: str) -> str:
    """GUID identifying one role binding; stable across re-runs"""
    return str(uuid.uuid5(uuid.UUID(NIL_UUID), f"{scope.lower()}|{role_id}|{principal_id}"))


def environment_id(target_url: str) -> str:
    """Extract the Dynatrace environment ID from an environment or ActiveGate URL"""
    parsed = urlparse(target_url)
    parts = [p for p in parsed.path.split("/") if p]
    if len(parts) >= 2 and parts[0] == "e":
        return parts[1]
    return (parsed.hostname or "").split(".")[0]


def registry_host(target_url: str) -> str:
    """Host of the Dynatrace environment; doubles as its container registry"""
    return urlparse(target_url).netloc


@dataclass(frozen=True)
class ResourceNames:
    """Names of every resource a deployment creates"""

    deployment_id: str
    function_app: str
    app_service_plan: str
    storage_account: str
    virtual_network: str
    subnet: str
    active_gate: str

    @classmethod
    def for_deployment(cls, config: DeploymentConfig) -> "ResourceNames":
        name = config.deployment_name
        deployment_id = generate_deployment_id(config.resource_group, config.location, name)
        return cls(
            deployment_id=deployment_id,
            function_app=f"{name}-function-{deployment_id}",
            app_service_plan=f"{name}-plan",
            storage_account=f"{name}{deployment_id}"[:STORAGE_ACCOUNT_NAME_MAX_LENGTH],
            virtual_network=f"{name}-vnet",
            subnet="functions",
            active_gate=f"{name}-activegate",
        )


def event_hub_from_connection_string(connection_string: str) -> str:
    """Return '<namespace host>/<event hub>' without any key material"""
    parts = dict(
        part.split("=", 1) for part in connection_string.strip().split(";") if "=" in part
    )
    host = urlparse(parts.get("Endpoint", "")).netloc
    return f"{host}/{parts.get('EntityPath', '')}"
