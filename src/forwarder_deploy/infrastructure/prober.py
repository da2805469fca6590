"""Connectivity prober for the Dynatrace target"""

import logging
from datetime import datetime, timezone
from typing import Optional

import requests

from forwarder_deploy.domain.config.probe import ProbeConfig
from forwarder_deploy.domain.models.probe_result import ProbeResult, ProbeStatus
from forwarder_deploy.infrastructure.http_client import (
    JSON_HEADERS,
    Timeouts,
    api_token_headers,
    join_url,
    send_request,
)

logger = logging.getLogger(__name__)

HEALTH_PATH = "rest/health"
TOKEN_LOOKUP_PATH = "api/v2/apiTokens/lookup"
LOG_INGEST_PATH = "api/v2/logs/ingest"
HEALTHY_STATES = ("RUNNING", '"RUNNING"')
TEST_LOG_CONTENT = "Connectivity check from Dynatrace Azure Log Forwarder deployment"


class ConnectivityProber:
    """One-shot checks against a Dynatrace environment or ActiveGate

    Each check returns a ProbeResult; none of them raise on network errors.
    Whether a non-OK result aborts the deployment is up to the caller.
    """

    def __init__(
        self,
        target_url: str,
        api_token: Optional[str],
        verify_certificate: bool = True,
        config: Optional[ProbeConfig] = None,
    ):
        """Initialize prober

        Args:
            target_url: Dynatrace environment or ActiveGate URL
            api_token: API token used for lookup and ingest
            verify_certificate: Verify TLS certificates of the target
            config: Timeouts and required token permission
        """
        self.target_url = target_url.rstrip("/")
        self.api_token = api_token or ""
        self.verify_certificate = verify_certificate
        self.config = config or ProbeConfig()
        self.timeouts = Timeouts(self.config.connect_timeout, self.config.read_timeout)

    def _send(self, check: str, method: str, path: str, headers: dict, payload=None):
        url = join_url(self.target_url, path)
        try:
            return send_request(
                method,
                url,
                timeouts=self.timeouts,
                verify=self.verify_certificate,
                headers=headers,
                payload=payload,
            ), None
        except requests.exceptions.RequestException as e:
            return None, ProbeResult(check, ProbeStatus.UNREACHABLE, detail=f"Cannot reach {url}: {e}")

    def check_health(self) -> ProbeResult:
        """Check that the ActiveGate reports RUNNING"""
        resp, failure = self._send("health", "GET", HEALTH_PATH, JSON_HEADERS)
        if failure:
            return failure

        body = resp.text.strip()
        if body in HEALTHY_STATES:
            return ProbeResult("health", ProbeStatus.OK, resp.status_code, body)
        return ProbeResult(
            "health",
            ProbeStatus.UNEXPECTED_RESPONSE,
            resp.status_code,
            body,
            detail=f"ActiveGate health is '{body}', expected RUNNING",
        )

    def check_token_permissions(self) -> ProbeResult:
        """Check that the API token is valid and carries the ingest permission"""
        resp, failure = self._send(
            "token",
            "POST",
            TOKEN_LOOKUP_PATH,
            api_token_headers(self.api_token),
            payload={"token": self.api_token},
        )
        if failure:
            return failure

        if resp.status_code >= 300:
            return ProbeResult(
                "token",
                ProbeStatus.UNEXPECTED_RESPONSE,
                resp.status_code,
                resp.text,
                detail=f"API token lookup failed with HTTP {resp.status_code}",
            )
        if self.config.required_permission not in resp.text:
            return ProbeResult(
                "token",
                ProbeStatus.UNEXPECTED_RESPONSE,
                resp.status_code,
                resp.text,
                detail=f"API token is missing the '{self.config.required_permission}' permission",
            )
        return ProbeResult("token", ProbeStatus.OK, resp.status_code, resp.text)

    def send_test_log(self) -> ProbeResult:
        """Ingest a single synthetic log record"""
        record = {
            "timestamp": datetime.now(timezone.utc).isoformat(timespec="milliseconds"),
            "cloud.provider": "azure",
            "content": TEST_LOG_CONTENT,
            "severity": "INFO",
        }
        resp, failure = self._send(
            "ingest", "POST", LOG_INGEST_PATH, api_token_headers(self.api_token), payload=[record]
        )
        if failure:
            return failure

        if resp.status_code >= 300:
            return ProbeResult(
                "ingest",
                ProbeStatus.UNEXPECTED_RESPONSE,
                resp.status_code,
                resp.text,
                detail=f"Test log ingest failed with HTTP {resp.status_code}",
            )
        return ProbeResult("ingest", ProbeStatus.OK, resp.status_code, resp.text)
