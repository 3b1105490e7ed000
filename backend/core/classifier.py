"""
classifier.py — Degree classification / honours labels.

Maps a score onto a discrete label through a descending threshold table,
after an optional borderline adjustment. Every score maps to exactly one
label: below the lowest threshold the lowest-defined label applies.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Tuple

from core.scales import floor_lookup


@dataclass(frozen=True)
class BorderlineAdjustment:
    """Nudge applied to the overall score before classification only."""

    mode: str
    amount: float

    def __post_init__(self):
        if self.mode not in ("add", "multiply"):
            raise ValueError(f"Unknown adjustment mode: {self.mode!r}")

    def apply(self, score: float) -> float:
        if self.mode == "add":
            return score + self.amount
        return score * self.amount

    def describe(self) -> str:
        if self.mode == "add":
            return f"{self.amount:+g} points"
        return f"×{self.amount:g}"

    def to_dict(self) -> Dict[str, Any]:
        return {"mode": self.mode, "amount": self.amount}


@dataclass(frozen=True)
class ClassificationTable:
    id: str
    entries: Tuple[Tuple[float, str], ...]
    name: str = ""

    @property
    def lowest_label(self) -> str:
        return self.entries[-1][1]


@dataclass(frozen=True)
class Classification:
    label: str
    score: float
    adjusted_score: Optional[float] = None

    @property
    def lookup_score(self) -> float:
        return self.score if self.adjusted_score is None else self.adjusted_score


def lookup_label(score: float, table: ClassificationTable) -> str:
    return str(floor_lookup(float(score), table.entries))


def classify(
    score: float,
    table: ClassificationTable,
    adjustment: Optional[BorderlineAdjustment] = None,
) -> Classification:
    """Classify a score, reporting the raw and (if any) adjusted score."""
    adjusted = adjustment.apply(score) if adjustment is not None else None
    label = lookup_label(score if adjusted is None else adjusted, table)
    return Classification(label=label, score=score, adjusted_score=adjusted)


def near_boundary(score: float, table: ClassificationTable, margin: float) -> Optional[Dict[str, Any]]:
    """
    Return the next band up when `score` falls short of its boundary by at
    most `margin`, otherwise None.
    """
    if margin is None or margin <= 0:
        return None
    for threshold, label in reversed(table.entries):
        if score < threshold:
            gap = threshold - score
            if gap <= margin:
                return {"boundary": threshold, "label": label, "gap": gap}
            return None
    return None
