"""Retry policy configuration model."""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

# Matches an HTTP 5xx status reported in an Azure CLI deployment log.
DEFAULT_TRANSIENT_SIGNATURE = r"(?i)\b(?:status(?:\s*code)?|http)[:\s=]*5\d\d\b|gateway\s*time-?out"


class RetryPolicy(BaseModel):
    """Configuration for a bounded retry loop.

    Attributes:
        max_attempts: Maximum number of attempts (including the first one)
        delay_seconds: Fixed delay between attempts
        timeout_seconds: Optional wall-clock cap for the whole loop
        transient_signature: Regex that marks a successful command's output as transient failure
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    max_attempts: int = Field(3, ge=1, le=20)
    delay_seconds: float = Field(10.0, ge=0.0)
    timeout_seconds: Optional[float] = Field(None, gt=0.0)
    transient_signature: str = DEFAULT_TRANSIENT_SIGNATURE
