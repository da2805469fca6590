"""Validation models - rules and the result of checking arguments against them"""

from dataclasses import dataclass, field
from typing import List, Optional


@dataclass(frozen=True)
class ValidationRule:
    """A static check for a single named argument"""

    field: str  # Argument name
    required: bool = False  # Absent or empty value fails
    pattern: Optional[str] = None  # Regex the whole value must match
    message: str = ""  # Shown when the pattern does not match


@dataclass(frozen=True)
class ValidationFailure:
    """A single rule violation"""

    field: str
    message: str

    def __str__(self) -> str:
        return f"{self.field}: {self.message}"


@dataclass
class ValidationResult:
    """Outcome of one validation run"""

    failures: List[ValidationFailure] = field(default_factory=list)

    @property
    def passed(self) -> bool:
        """Check if every rule passed"""
        return not self.failures

    @property
    def failed_fields(self) -> List[str]:
        return [failure.field for failure in self.failures]

    def add_failure(self, field_name: str, message: str) -> None:
        self.failures.append(ValidationFailure(field_name, message))

    def summary(self) -> str:
        """Format all failures, one per line"""
        return "\n".join(f"  - {failure}" for failure in self.failures)
