"""
errors.py — Error taxonomy and non-fatal diagnostics for the conversion engine.

- ValidationError: malformed input records (unknown grade symbol, bad weight)
- IncompleteDataError: a weighted period has no eligible records
- ConfigurationError: unknown institution / cohort / scale / table
- Diagnostic: advisory findings attached to a successful result
"""

from dataclasses import dataclass, field
from typing import Any, Dict, Optional, Sequence


class ConversionError(Exception):
    """Base class for engine errors."""

    kind = "error"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind, "message": self.message, "details": self.details}


class ValidationError(ConversionError):
    """Raised when one or more input records are malformed."""

    kind = "validation"

    def __init__(self, problems: Sequence[Dict[str, Any]]):
        self.problems = list(problems)
        first = self.problems[0] if self.problems else {}
        if len(self.problems) == 1:
            message = first.get("message", "Invalid record.")
        else:
            message = f"{len(self.problems)} records are invalid; first: {first.get('message', '')}"
        super().__init__(message, {"problems": self.problems})

    @property
    def record(self) -> Optional[int]:
        """Index of the first offending record."""
        if not self.problems:
            return None
        return self.problems[0].get("record")


class IncompleteDataError(ConversionError):
    """Raised when a structurally required period has no eligible records."""

    kind = "incomplete"

    def __init__(self, message: str, missing_periods: Sequence[Any] = ()):
        self.missing_periods = list(missing_periods)
        super().__init__(message, {"missing_periods": self.missing_periods})


class ConfigurationError(ConversionError):
    """Raised for unknown or mis-registered configuration entries."""

    kind = "configuration"


@dataclass(frozen=True)
class Diagnostic:
    type: str
    message: str
    severity: str = "warning"
    period: Any = None
    record: Optional[int] = None
    amount: Optional[float] = None
    extra: Dict[str, Any] = field(default_factory=dict, compare=False)

    def to_dict(self) -> Dict[str, Any]:
        out: Dict[str, Any] = {
            "type": self.type,
            "severity": self.severity,
            "message": self.message,
        }
        if self.period is not None:
            out["period"] = self.period
        if self.record is not None:
            out["record"] = self.record
        if self.amount is not None:
            out["amount"] = self.amount
        out.update(self.extra)
        return out
