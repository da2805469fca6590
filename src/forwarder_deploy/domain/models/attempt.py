"""Attempt models - outcomes of retried actions"""

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class AttemptOutcome(str, Enum):
    """Classification of a single action run"""

    SUCCESS = "success"
    TRANSIENT_FAILURE = "transient-failure"  # Worth another attempt
    TERMINAL_FAILURE = "terminal-failure"  # Retrying cannot help


@dataclass(frozen=True)
class ActionResult:
    """What an action reports back to the retry executor"""

    outcome: AttemptOutcome
    output: str = ""  # Captured log / response body

    @classmethod
    def success(cls, output: str = "") -> "ActionResult":
        return cls(AttemptOutcome.SUCCESS, output)

    @classmethod
    def transient(cls, output: str = "") -> "ActionResult":
        return cls(AttemptOutcome.TRANSIENT_FAILURE, output)

    @classmethod
    def terminal(cls, output: str = "") -> "ActionResult":
        return cls(AttemptOutcome.TERMINAL_FAILURE, output)

    @property
    def succeeded(self) -> bool:
        return self.outcome is AttemptOutcome.SUCCESS


@dataclass(frozen=True)
class Attempt:
    """One recorded run of an action"""

    number: int  # 1-based sequence number
    outcome: AttemptOutcome
    output: str = ""


@dataclass
class RetryReport:
    """Ordered attempts of one retried action"""

    action_name: str
    attempts: List[Attempt] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return bool(self.attempts) and self.attempts[-1].outcome is AttemptOutcome.SUCCESS

    @property
    def last_attempt(self) -> Optional[Attempt]:
        return self.attempts[-1] if self.attempts else None

    @property
    def last_output(self) -> str:
        return self.last_attempt.output if self.last_attempt else ""
