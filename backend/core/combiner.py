"""
combiner.py — Year-weighted overall score.

overall = Σ weight[p] × average[p] over periods with a positive weight.
A weighted period without an average makes the result incomplete; it is
never treated as 0. Weights are used as configured (no renormalisation).
"""

from dataclasses import dataclass
from typing import List, Mapping, Optional, Tuple

from core.errors import IncompleteDataError
from core.records import PeriodId


@dataclass(frozen=True)
class Contribution:
    period: PeriodId
    weight: float
    average: float
    contribution: float


@dataclass(frozen=True)
class CombinedScore:
    overall: float
    contributions: Tuple[Contribution, ...]

    @property
    def weight_total(self) -> float:
        return sum(c.weight for c in self.contributions)


def combine(
    period_averages: Mapping[PeriodId, Optional[float]],
    period_weights: Mapping[PeriodId, float],
) -> CombinedScore:
    """Apply period weights to period averages."""
    contributions: List[Contribution] = []
    missing: List[PeriodId] = []

    for period, weight in period_weights.items():
        if weight <= 0:
            continue
        average = period_averages.get(period)
        if average is None:
            missing.append(period)
            continue
        contributions.append(Contribution(period, weight, average, weight * average))

    if missing:
        listed = ", ".join(str(p) for p in missing)
        raise IncompleteDataError(
            f"No eligible records for weighted period(s): {listed}.",
            missing_periods=missing,
        )
    if not contributions:
        raise IncompleteDataError("No weighted period has eligible records.")

    overall = 0.0
    for c in contributions:
        overall += c.contribution
    return CombinedScore(overall=overall, contributions=tuple(contributions))
