"""Connectivity probe configuration model."""

from pydantic import BaseModel, ConfigDict, Field


class ProbeConfig(BaseModel):
    """Configuration for one-shot connectivity checks.

    Attributes:
        connect_timeout: Seconds allowed to establish a connection
        read_timeout: Seconds allowed to wait for the response
        required_permission: Token scope the lookup response must contain
    """

    model_config = ConfigDict(frozen=True, extra="forbid")

    connect_timeout: float = Field(20.0, gt=0.0)
    read_timeout: float = Field(30.0, gt=0.0)
    required_permission: str = "logs.ingest"
