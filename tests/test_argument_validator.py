"""Tests for deployment argument validation"""

import pytest

from forwarder_deploy.domain.config import DeploymentConfig
from forwarder_deploy.domain.models.validation import ValidationRule
from forwarder_deploy.domain.validators.argument_validator import (
    ACTIVE_GATE_TARGET_URL_PATTERN,
    DEPLOYMENT_NAME_PATTERN,
    DYNATRACE_TARGET_URL_PATTERN,
    EVENT_HUB_CONNECTION_STRING_PATTERN,
    FILTER_CONFIG_PATTERN,
    MANAGED_IDENTITY_FIELDS,
    build_rules,
    validate_arguments,
    validate_config,
)

CONNECTION_STRING = (
    "Endpoint=sb://ns.servicebus.windows.net/;SharedAccessKeyName=listen;"
    "SharedAccessKey=abc=;EntityPath=dynatrace"
)


def _valid_config(**overrides) -> DeploymentConfig:
    params = {
        "deployment_name": "dtlogs01",
        "resource_group": "dynatrace-logs",
        "location": "westeurope",
        "target_url": "https://ag.example.com:9999/e/abc12345",
        "api_token": "dt0c01.token",
        "event_hub_connection_string": CONNECTION_STRING,
        "use_existing_active_gate": True,
    }
    params.update(overrides)
    return DeploymentConfig(**params)


class TestValidateArguments:
    """Tests for the generic rule evaluation"""

    def test_required_field_missing(self):
        """Test that a missing required argument fails and names the field"""
        result = validate_arguments({}, [ValidationRule("deployment_name", required=True)])

        assert not result.passed
        assert result.failed_fields == ["deployment_name"]
        assert "required" in result.failures[0].message

    @pytest.mark.parametrize("value", ["", "   ", None])
    def test_required_field_empty(self, value):
        """Test that empty and whitespace-only values count as missing"""
        result = validate_arguments({"api_token": value}, [ValidationRule("api_token", required=True)])

        assert result.failed_fields == ["api_token"]

    def test_optional_field_absent_passes(self):
        """Test that an absent optional argument is not checked against its pattern"""
        result = validate_arguments({}, [ValidationRule("filter_config", pattern=FILTER_CONFIG_PATTERN)])

        assert result.passed

    def test_pattern_is_anchored(self):
        """Test that a substring match is not enough"""
        rule = ValidationRule("deployment_name", pattern=DEPLOYMENT_NAME_PATTERN, message="bad name")

        assert validate_arguments({"deployment_name": "abc123"}, [rule]).passed
        assert not validate_arguments({"deployment_name": "abc123!"}, [rule]).passed
        assert not validate_arguments({"deployment_name": "!abc123"}, [rule]).passed

    def test_all_failures_collected(self):
        """Test that validation does not stop at the first failure"""
        rules = [
            ValidationRule("deployment_name", required=True, pattern=DEPLOYMENT_NAME_PATTERN),
            ValidationRule("target_url", required=True),
            ValidationRule("api_token", required=True),
        ]
        result = validate_arguments({"deployment_name": "AB"}, rules)

        assert result.failed_fields == ["deployment_name", "target_url", "api_token"]

    def test_failure_message_mentions_pattern(self):
        """Test that a pattern failure reports the pattern"""
        rule = ValidationRule("deployment_name", pattern=DEPLOYMENT_NAME_PATTERN, message="bad name")
        result = validate_arguments({"deployment_name": "AB"}, [rule])

        assert "bad name" in result.failures[0].message
        assert DEPLOYMENT_NAME_PATTERN in result.failures[0].message
        assert "deployment_name" in result.summary()


class TestPatterns:
    """Tests for the named pattern constants"""

    def _matches(self, pattern, value) -> bool:
        rule = ValidationRule("value", pattern=pattern)
        return validate_arguments({"value": value}, [rule]).passed

    @pytest.mark.parametrize("name", ["abc123", "abc", "a" * 20])
    def test_deployment_name_valid(self, name):
        assert self._matches(DEPLOYMENT_NAME_PATTERN, name)

    @pytest.mark.parametrize("name", ["AB", "ab", "waytoolongname1234567890", "with-dash", "Upper1"])
    def test_deployment_name_invalid(self, name):
        assert not self._matches(DEPLOYMENT_NAME_PATTERN, name)

    def test_event_hub_connection_string(self):
        """Test Event Hub connection string shape"""
        assert self._matches(
            EVENT_HUB_CONNECTION_STRING_PATTERN,
            "Endpoint=sb://ns.servicebus.windows.net/;EntityPath=dynatrace",
        )
        assert self._matches(EVENT_HUB_CONNECTION_STRING_PATTERN, CONNECTION_STRING)
        assert not self._matches(EVENT_HUB_CONNECTION_STRING_PATTERN, "sb://ns/")
        assert not self._matches(
            EVENT_HUB_CONNECTION_STRING_PATTERN,
            "Endpoint=sb://ns.servicebus.windows.net/;EntityPath=",
        )
        assert not self._matches(
            EVENT_HUB_CONNECTION_STRING_PATTERN,
            "Endpoint=sb://ns.servicebus.windows.net/;EntityPath=has space",
        )

    @pytest.mark.parametrize(
        "url",
        [
            "https://abc12345.live.dynatrace.com",
            "https://abc12345.live.dynatrace.com/",
            "http://managed.example.com/e/0123456789abcdef0123456789abcdef0123",
        ],
    )
    def test_dynatrace_target_url_valid(self, url):
        assert self._matches(DYNATRACE_TARGET_URL_PATTERN, url)

    @pytest.mark.parametrize("url", ["abc12345.live.dynatrace.com", "https://host/e/short", "ftp://host"])
    def test_dynatrace_target_url_invalid(self, url):
        assert not self._matches(DYNATRACE_TARGET_URL_PATTERN, url)

    @pytest.mark.parametrize(
        "url", ["https://ag.example.com:9999/e/abc12345", "https://10.0.0.4:9999/e/abc12345/"]
    )
    def test_active_gate_url_valid(self, url):
        assert self._matches(ACTIVE_GATE_TARGET_URL_PATTERN, url)

    @pytest.mark.parametrize(
        "url",
        [
            "http://ag.example.com:9999/e/abc12345",
            "https://abc12345.live.dynatrace.com",
            "https://ag.example.com:9999/e/",
        ],
    )
    def test_active_gate_url_invalid(self, url):
        assert not self._matches(ACTIVE_GATE_TARGET_URL_PATTERN, url)

    @pytest.mark.parametrize(
        "value",
        [
            "FILTER.GLOBAL.MIN_LOG_LEVEL=Warning",
            "FILTER.GLOBAL.MIN_LOG_LEVEL=Warning;FILTER.RESOURCE_TYPE.MIN_LOG_LEVEL.MICROSOFT.WEB/SITES=Error",
            "FILTER.GLOBAL.CONTAINS_PATTERN=*error*;",
        ],
    )
    def test_filter_config_valid(self, value):
        assert self._matches(FILTER_CONFIG_PATTERN, value)

    @pytest.mark.parametrize("value", ["no-equals-sign", "=value", "a=b;;c=d", ";a=b"])
    def test_filter_config_invalid(self, value):
        assert not self._matches(FILTER_CONFIG_PATTERN, value)


class TestBuildRules:
    """Tests for rule set selection"""

    def test_existing_active_gate_uses_active_gate_url(self):
        rules = {rule.field: rule for rule in build_rules(use_existing_active_gate=True)}

        assert rules["target_url"].pattern == ACTIVE_GATE_TARGET_URL_PATTERN
        assert "paas_token" not in rules

    def test_new_active_gate_requires_paas_token(self):
        rules = {rule.field: rule for rule in build_rules(use_existing_active_gate=False)}

        assert rules["target_url"].pattern == DYNATRACE_TARGET_URL_PATTERN
        assert rules["paas_token"].required

    def test_connection_string_required_without_managed_identity(self):
        rules = {rule.field: rule for rule in build_rules(managed_identity_enabled=False)}

        assert rules["event_hub_connection_string"].required
        for field in MANAGED_IDENTITY_FIELDS:
            assert field not in rules

    def test_managed_identity_group_required(self):
        rules = {rule.field: rule for rule in build_rules(managed_identity_enabled=True)}

        assert "event_hub_connection_string" not in rules
        for field in MANAGED_IDENTITY_FIELDS:
            assert rules[field].required


class TestValidateConfig:
    """Tests for validating a full deployment configuration"""

    def test_valid_config_passes(self):
        assert validate_config(_valid_config()).passed

    def test_new_active_gate_without_paas_token(self):
        config = _valid_config(
            use_existing_active_gate=False, target_url="https://abc12345.live.dynatrace.com"
        )

        assert validate_config(config).failed_fields == ["paas_token"]

    def test_managed_identity_missing_fields(self):
        """Test that enabling managed identity reports all four missing fields"""
        config = _valid_config(event_hub_connection_string=None, enable_user_assigned_managed_identity=True)

        result = validate_config(config)

        assert sorted(result.failed_fields) == sorted(MANAGED_IDENTITY_FIELDS)

    def test_managed_identity_complete(self):
        config = _valid_config(
            event_hub_connection_string=None,
            enable_user_assigned_managed_identity=True,
            event_hub_name="logs",
            event_hub_fully_qualified_namespace="ns.servicebus.windows.net",
            managed_identity_client_id="11111111-2222-3333-4444-555555555555",
            managed_identity_resource_name="dt-forwarder-identity",
        )

        assert validate_config(config).passed

    def test_every_violation_reported(self):
        config = DeploymentConfig(deployment_name="AB", filter_config="broken")

        result = validate_config(config)

        assert set(result.failed_fields) == {
            "deployment_name",
            "resource_group",
            "location",
            "target_url",
            "api_token",
            "event_hub_connection_string",
            "filter_config",
        }
