"""Status marker output for deployment script hooks"""

import logging
import os
from pathlib import Path
from typing import Optional

from forwarder_deploy.constants import STATUS_OUTPUT_ENV_VAR

logger = logging.getLogger(__name__)


def default_status_path() -> Optional[Path]:
    """Output location provided by the deployment script host, if any"""
    value = os.getenv(STATUS_OUTPUT_ENV_VAR)
    return Path(value) if value else None


def write_status_marker(marker: str, path: Optional[Path] = None) -> Optional[Path]:
    """Append a status marker line to the output location

    Args:
        marker: e.g. VALIDATION_STATUS=SUCCESS
        path: Output file (defaults to the deployment script output path)

    Returns:
        Path written to, or None if no output location is configured
    """
    path = path or default_status_path()
    if path is None:
        logger.debug(f"No status output location configured, skipping {marker}")
        return None

    path = Path(path)
    path.parent.mkdir(parents=True, exist_ok=True)
    with open(path, "a", encoding="utf-8") as f:
        f.write(marker + "\n")
    logger.info(f"Wrote {marker} to {path}")
    return path
