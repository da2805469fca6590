"""Shared HTTP client utilities (requests).

We keep HTTP logic centralized so probes and downloads use the same
timeouts and TLS settings.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional

import requests

logger = logging.getLogger(__name__)

JSON_HEADERS = {
    "Accept": "application/json; charset=utf-8",
    "Content-Type": "application/json; charset=utf-8",
}
DOWNLOAD_CHUNK_SIZE = 64 * 1024


@dataclass(frozen=True)
class Timeouts:
    connect: float = 20.0
    read: float = 30.0

    def as_tuple(self) -> tuple[float, float]:
        return (self.connect, self.read)


def api_token_headers(api_token: str) -> Dict[str, str]:
    """JSON headers authenticated with a Dynatrace API token"""
    return {**JSON_HEADERS, "Authorization": f"Api-Token {api_token}"}


def join_url(base: str, path: str) -> str:
    return f"{base.rstrip('/')}/{path.lstrip('/')}"


def send_request(
    method: str,
    url: str,
    *,
    timeouts: Timeouts,
    verify: bool = True,
    headers: Optional[Dict[str, str]] = None,
    payload: Any = None,
) -> requests.Response:
    """Send a single request without retries or raise_for_status

    Raises:
        requests.exceptions.RequestException: On connection errors and timeouts
    """
    logger.debug(f"HTTP {method} {url}")
    return requests.request(
        method,
        url,
        json=payload,
        headers=headers,
        timeout=timeouts.as_tuple(),
        verify=verify,
    )


def download_to_file(url: str, destination: Path, *, timeouts: Timeouts) -> int:
    """Stream a URL into a file

    Returns:
        Number of bytes written

    Raises:
        requests.exceptions.RequestException: On network or HTTP errors
    """
    logger.debug(f"HTTP GET {url} -> {destination}")
    written = 0
    with requests.get(url, stream=True, timeout=timeouts.as_tuple(), allow_redirects=True) as resp:
        resp.raise_for_status()
        destination.parent.mkdir(parents=True, exist_ok=True)
        with open(destination, "wb") as f:
            for chunk in resp.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
                    written += len(chunk)
    return written
