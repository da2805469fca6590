"""Argument validator for deployment parameters"""

import logging
import re
from typing import Iterable, List, Mapping, Optional

from forwarder_deploy.domain.config.deployment import DeploymentConfig
from forwarder_deploy.domain.models.validation import ValidationResult, ValidationRule

logger = logging.getLogger(__name__)

DEPLOYMENT_NAME_PATTERN = r"[a-z0-9]{3,20}"
DYNATRACE_TARGET_URL_PATTERN = r"(https?://[-a-zA-Z0-9@:%._+~=]{1,255}/?)(/e/[a-z0-9-]{36}/?)?"
ACTIVE_GATE_TARGET_URL_PATTERN = r"https://[-a-zA-Z0-9@:%._+~=]{1,255}/e/[-a-z0-9]{1,36}/?"
EVENT_HUB_CONNECTION_STRING_PATTERN = r"Endpoint=sb://.*EntityPath=\S+"
FILTER_CONFIG_PATTERN = r"[^;\s=][^;=]*=[^;]*(?:;[^;\s=][^;=]*=[^;]*)*;?"

MANAGED_IDENTITY_FIELDS = (
    "event_hub_name",
    "managed_identity_client_id",
    "managed_identity_resource_name",
    "event_hub_fully_qualified_namespace",
)

DEPLOYMENT_NAME_RULE = ValidationRule(
    "deployment_name",
    required=True,
    pattern=DEPLOYMENT_NAME_PATTERN,
    message="must be 3-20 lowercase letters or digits",
)
DYNATRACE_TARGET_URL_RULE = ValidationRule(
    "target_url",
    required=True,
    pattern=DYNATRACE_TARGET_URL_PATTERN,
    message="must be a Dynatrace environment URL, e.g. https://<environment-id>.live.dynatrace.com",
)
ACTIVE_GATE_TARGET_URL_RULE = ValidationRule(
    "target_url",
    required=True,
    pattern=ACTIVE_GATE_TARGET_URL_PATTERN,
    message="must be an ActiveGate URL, e.g. https://<activegate-host>:9999/e/<environment-id>",
)
EVENT_HUB_CONNECTION_STRING_RULE = ValidationRule(
    "event_hub_connection_string",
    required=True,
    pattern=EVENT_HUB_CONNECTION_STRING_PATTERN,
    message="must look like Endpoint=sb://<namespace>/;...;EntityPath=<event hub>",
)
FILTER_CONFIG_RULE = ValidationRule(
    "filter_config",
    pattern=FILTER_CONFIG_PATTERN,
    message="must be key=value pairs separated by ';'",
)


def is_empty_or_whitespace(value: Optional[str]) -> bool:
    """Check if a value is missing, empty or contains only whitespace."""

    return not value or value.isspace()


def build_rules(
    use_existing_active_gate: bool = True,
    managed_identity_enabled: bool = False,
) -> List[ValidationRule]:
    """Build the rule set for a deployment

    Args:
        use_existing_active_gate: Logs go to an existing ActiveGate (or directly to the environment)
        managed_identity_enabled: The forwarder reads the Event Hub through a managed identity

    Returns:
        Rules to evaluate, in reporting order
    """
    rules = [
        DEPLOYMENT_NAME_RULE,
        ValidationRule("resource_group", required=True),
        ValidationRule("location", required=True),
        ACTIVE_GATE_TARGET_URL_RULE if use_existing_active_gate else DYNATRACE_TARGET_URL_RULE,
        ValidationRule("api_token", required=True),
    ]
    if not use_existing_active_gate:
        rules.append(ValidationRule("paas_token", required=True))

    if managed_identity_enabled:
        rules.extend(ValidationRule(name, required=True) for name in MANAGED_IDENTITY_FIELDS)
    else:
        rules.append(EVENT_HUB_CONNECTION_STRING_RULE)

    rules.append(FILTER_CONFIG_RULE)
    return rules


def check_rule(rule: ValidationRule, value: Optional[str]) -> Optional[str]:
    """Check a single value against a rule

    Returns:
        Failure message, or None if the value satisfies the rule
    """
    if is_empty_or_whitespace(value):
        return "is required" if rule.required else None

    if rule.pattern and not re.fullmatch(rule.pattern, value):
        return f"{rule.message} (pattern: {rule.pattern})" if rule.message else f"does not match pattern: {rule.pattern}"

    return None


def validate_arguments(
    arguments: Mapping[str, Optional[str]], rules: Iterable[ValidationRule]
) -> ValidationResult:
    """Check named arguments against rules

    Every rule is evaluated; failures are collected rather than raised so
    that all of them can be reported at once.

    Args:
        arguments: Argument name to value (missing keys count as absent)
        rules: Rules to evaluate

    Returns:
        ValidationResult with every failure
    """
    result = ValidationResult()
    for rule in rules:
        message = check_rule(rule, arguments.get(rule.field))
        if message:
            logger.debug(f"Argument {rule.field} failed validation: {message}")
            result.add_failure(rule.field, message)
    return result


def validate_config(config: DeploymentConfig) -> ValidationResult:
    """Validate deployment parameters with the rule set matching its modes"""
    rules = build_rules(
        use_existing_active_gate=config.use_existing_active_gate,
        managed_identity_enabled=config.enable_user_assigned_managed_identity,
    )
    return validate_arguments(config.to_arguments(), rules)
