"""Tests for Azure resource provisioning"""

from unittest.mock import Mock

import pytest

from forwarder_deploy.application.naming import role_assignment_name
from forwarder_deploy.constants import EVENT_HUBS_DATA_RECEIVER_ID
from forwarder_deploy.errors import FatalError
from forwarder_deploy.infrastructure.azure.resources import AzureResourceProvisioner, vnet_id_from_subnet_id

SUBNET_ID = (
    "/subscriptions/sub/resourceGroups/rg/providers/Microsoft.Network/virtualNetworks/vnet/subnets/functions"
)


@pytest.fixture
def cli():
    return Mock()


@pytest.fixture
def provisioner(cli):
    return AzureResourceProvisioner(cli, "rg", "westeurope", tags={"owner": "team"})


def _commands(mock_method):
    return [c.args[0] for c in mock_method.call_args_list]


def test_vnet_id_from_subnet_id():
    assert vnet_id_from_subnet_id(SUBNET_ID) == (
        "/subscriptions/sub/resourceGroups/rg/providers/Microsoft.Network/virtualNetworks/vnet"
    )


class TestIdentity:
    """Tests for managed identity handling"""

    def test_existing_identity_is_reused(self, cli, provisioner):
        cli.execute_json.return_value = {"id": "/id", "principalId": "p"}

        identity = provisioner.ensure_identity("dt-identity")

        assert identity["principalId"] == "p"
        assert cli.execute_json.call_count == 1
        assert cli.execute_json.call_args.kwargs["can_fail"] is True

    def test_missing_identity_is_created(self, cli, provisioner):
        cli.execute_json.side_effect = [None, {"id": "/id", "principalId": "p"}]

        identity = provisioner.ensure_identity("dt-identity")

        assert identity["id"] == "/id"
        create = _commands(cli.execute_json)[1]
        assert create[:3] == ["az", "identity", "create"]
        assert "--tags" in create and "owner=team" in create


class TestRoleAssignment:
    """Tests for role bindings"""

    def test_existing_assignment_is_not_duplicated(self, cli, provisioner):
        cli.execute_json.return_value = [{"name": "existing-guid"}]

        name = provisioner.assign_role("principal", EVENT_HUBS_DATA_RECEIVER_ID, "/scope")

        assert name == "existing-guid"
        cli.execute.assert_not_called()

    def test_new_assignment_uses_deterministic_name(self, cli, provisioner):
        cli.execute_json.return_value = []

        name = provisioner.assign_role("principal", EVENT_HUBS_DATA_RECEIVER_ID, "/scope")

        assert name == role_assignment_name("/scope", EVENT_HUBS_DATA_RECEIVER_ID, "principal")
        create = _commands(cli.execute)[0]
        assert create[:4] == ["az", "role", "assignment", "create"]
        assert create[create.index("--name") + 1] == name
        assert create[create.index("--assignee-object-id") + 1] == "principal"


class TestEventHubNamespace:
    def test_resolves_namespace_id(self, cli, provisioner):
        cli.execute_tsv.return_value = "/subscriptions/sub/namespaces/ns"

        assert provisioner.resolve_event_hub_namespace_id("ns.servicebus.windows.net") == (
            "/subscriptions/sub/namespaces/ns"
        )
        query = _commands(cli.execute_tsv)[0]
        assert "https://ns.servicebus.windows.net:443/" in query[query.index("--query") + 1]

    def test_unknown_namespace(self, cli, provisioner):
        cli.execute_tsv.return_value = ""

        with pytest.raises(FatalError, match="not found"):
            provisioner.resolve_event_hub_namespace_id("ns.servicebus.windows.net")


class TestCoreResources:
    """Tests for network, storage and Function App creation"""

    def test_create_network_returns_subnet_id(self, cli, provisioner):
        cli.execute_json.return_value = {"id": SUBNET_ID}

        assert provisioner.create_network("dt-vnet", "functions") == SUBNET_ID
        vnet = _commands(cli.execute)[0]
        assert vnet[:4] == ["az", "network", "vnet", "create"]
        subnet = _commands(cli.execute_json)[0]
        assert subnet[subnet.index("--delegations") + 1] == "Microsoft.Web/serverFarms"

    def test_create_function_app_with_identity(self, cli, provisioner):
        cli.execute_json.return_value = {"id": "/sites/app", "defaultHostName": "app.azurewebsites.net"}

        app = provisioner.create_function_app("app", "plan", "storage", identity_id="/id")

        assert app["defaultHostName"] == "app.azurewebsites.net"
        cmd = _commands(cli.execute_json)[0]
        assert cmd[cmd.index("--assign-identity") + 1] == "/id"
        assert cmd[cmd.index("--runtime") + 1] == "python"

    def test_create_function_app_without_identity(self, cli, provisioner):
        cli.execute_json.return_value = None

        assert provisioner.create_function_app("app", "plan", "storage") == {}
        assert "--assign-identity" not in _commands(cli.execute_json)[0]

    def test_integrate_subnet(self, cli, provisioner):
        provisioner.integrate_subnet("app", SUBNET_ID)

        cmd = _commands(cli.execute)[0]
        assert cmd[cmd.index("--subnet") + 1] == SUBNET_ID
        assert cmd[cmd.index("--vnet") + 1] == vnet_id_from_subnet_id(SUBNET_ID)

    def test_set_app_settings_skips_empty(self, cli, provisioner):
        provisioner.set_app_settings("app", {"A": "1", "FILTER_CONFIG": None})

        cmd = _commands(cli.execute)[0]
        assert "A=1" in cmd
        assert not any(token.startswith("FILTER_CONFIG") for token in cmd)

    def test_create_active_gate(self, cli, provisioner):
        cli.execute_json.return_value = {"ipAddress": {"fqdn": "ag.westeurope.azurecontainer.io"}}

        provisioner.create_active_gate(
            "dt-activegate",
            image="abc.live.dynatrace.com/linux/activegate:latest",
            registry_server="abc.live.dynatrace.com",
            registry_username="abc",
            registry_password="paas",
            environment={"DT_CAPABILITIES": "log_analytics_collector"},
            secure_environment={"DT_PAAS_TOKEN": "paas"},
        )

        cmd = _commands(cli.execute_json)[0]
        assert cmd[:3] == ["az", "container", "create"]
        assert cmd[cmd.index("--ports") + 1] == "9999"
        assert "DT_PAAS_TOKEN=paas" in cmd
