"""Log formatting helpers"""

import logging

HEADER_SEPARATOR = "=" * 70


def log_header(logger: logging.Logger, message: str) -> None:
    """Log a formatted header message."""
    logger.info("\n".join(["", HEADER_SEPARATOR, message, HEADER_SEPARATOR]))
