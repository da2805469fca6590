"""ProbeResult model - result of a connectivity check"""

from dataclasses import dataclass
from enum import Enum
from typing import Optional


class ProbeStatus(str, Enum):
    """Classification of a connectivity check"""

    OK = "ok"
    UNEXPECTED_RESPONSE = "unexpected-response"
    UNREACHABLE = "unreachable"


@dataclass(frozen=True)
class ProbeResult:
    """Result of one connectivity check"""

    check: str  # Check name, e.g. "health"
    status: ProbeStatus
    http_status: Optional[int] = None
    body: str = ""
    detail: str = ""  # Human readable explanation

    @property
    def ok(self) -> bool:
        return self.status is ProbeStatus.OK
