"""Tests for resource naming, deployment outputs and status markers"""

from pathlib import Path

from forwarder_deploy.application.naming import (
    ResourceNames,
    environment_id,
    event_hub_from_connection_string,
    generate_deployment_id,
    registry_host,
    role_assignment_name,
)
from forwarder_deploy.constants import STATUS_OUTPUT_ENV_VAR, VALIDATION_STATUS_MARKER
from forwarder_deploy.domain.config import DeploymentConfig
from forwarder_deploy.domain.models.outputs import DeploymentOutputs
from forwarder_deploy.infrastructure.status_file import write_status_marker


class TestDeploymentId:
    def test_deterministic(self):
        first = generate_deployment_id("rg", "westeurope", "dtlogs")
        assert first == generate_deployment_id("rg", "westeurope", "dtlogs")
        assert len(first) == 12
        assert first.isalnum()

    def test_case_insensitive(self):
        assert generate_deployment_id("RG", "WestEurope", "dtlogs") == generate_deployment_id(
            "rg", "westeurope", "dtlogs"
        )

    def test_differs_per_resource_group(self):
        assert generate_deployment_id("rg1", "westeurope", "dtlogs") != generate_deployment_id(
            "rg2", "westeurope", "dtlogs"
        )

    def test_role_assignment_name_is_stable(self):
        assert role_assignment_name("/Scope", "role", "p") == role_assignment_name("/scope", "role", "p")
        assert role_assignment_name("/scope", "role", "p") != role_assignment_name("/scope", "role", "q")


class TestResourceNames:
    def test_names_follow_deployment_name(self):
        config = DeploymentConfig(deployment_name="dtlogs", resource_group="rg", location="westeurope")

        names = ResourceNames.for_deployment(config)

        assert names.function_app == f"dtlogs-function-{names.deployment_id}"
        assert names.app_service_plan == "dtlogs-plan"
        assert names.virtual_network == "dtlogs-vnet"
        assert names.active_gate == "dtlogs-activegate"
        assert names.storage_account.startswith("dtlogs")

    def test_storage_account_name_is_capped(self):
        config = DeploymentConfig(deployment_name="a" * 20, resource_group="rg", location="westeurope")

        assert len(ResourceNames.for_deployment(config).storage_account) == 24


class TestUrlHelpers:
    def test_environment_id_from_active_gate_url(self):
        assert environment_id("https://ag.example.com:9999/e/abc12345") == "abc12345"

    def test_environment_id_from_saas_url(self):
        assert environment_id("https://abc12345.live.dynatrace.com/") == "abc12345"

    def test_registry_host(self):
        assert registry_host("https://abc12345.live.dynatrace.com") == "abc12345.live.dynatrace.com"

    def test_event_hub_from_connection_string(self):
        cs = (
            "Endpoint=sb://ns.servicebus.windows.net/;SharedAccessKeyName=listen;"
            "SharedAccessKey=secret=;EntityPath=logs"
        )

        assert event_hub_from_connection_string(cs) == "ns.servicebus.windows.net/logs"


class TestDeploymentOutputs:
    def test_next_steps_mentions_resources(self):
        outputs = DeploymentOutputs(
            deployment_name="dtlogs",
            resource_group="rg",
            dynatrace_url="https://abc12345.live.dynatrace.com/",
            function_app_name="dtlogs-function-1",
            function_app_url="https://dtlogs-function-1.azurewebsites.net",
            event_hub="ns.servicebus.windows.net/logs",
        )

        text = outputs.next_steps()

        assert "dtlogs-function-1" in text
        assert "ns.servicebus.windows.net/logs" in text
        assert "https://abc12345.live.dynatrace.com/ui/log-monitoring?query=" in text
        assert "ActiveGate" not in text

    def test_log_viewer_url_is_encoded(self):
        outputs = DeploymentOutputs("dtlogs", "rg", "https://abc12345.live.dynatrace.com")

        assert outputs.log_viewer_url.endswith("cloud.provider%3D%22azure%22")


class TestStatusMarker:
    def test_appends_marker(self, tmp_path):
        path = tmp_path / "out" / "status.txt"

        assert write_status_marker(VALIDATION_STATUS_MARKER, path) == path
        write_status_marker("DEPLOYMENT_STATUS=SUCCESS", path)

        assert path.read_text(encoding="utf-8").splitlines() == [
            VALIDATION_STATUS_MARKER,
            "DEPLOYMENT_STATUS=SUCCESS",
        ]

    def test_uses_environment_path(self, monkeypatch, tmp_path):
        path = tmp_path / "env-status.txt"
        monkeypatch.setenv(STATUS_OUTPUT_ENV_VAR, str(path))

        assert write_status_marker(VALIDATION_STATUS_MARKER) == Path(path)
        assert path.read_text(encoding="utf-8") == VALIDATION_STATUS_MARKER + "\n"

    def test_no_location_configured(self, monkeypatch):
        monkeypatch.delenv(STATUS_OUTPUT_ENV_VAR, raising=False)

        assert write_status_marker(VALIDATION_STATUS_MARKER) is None
