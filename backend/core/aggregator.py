"""
aggregator.py — Credit-weighted period averages.

Folds validated records into one average per period (year / term):
- Excluded, unmarked and non-positive-weight records never enter the fold
- A period with no eligible records has no average (None), never 0
- Credit totals are checked against the scheme's target, advisory only
- Category (e.g. major) and honours-weighted averages over the same
  eligible records
"""

from dataclasses import dataclass
from typing import Dict, Iterable, List, Mapping, Optional, Sequence

import pandas as pd

from core.errors import Diagnostic
from core.records import PeriodId, Record


@dataclass(frozen=True)
class PeriodSummary:
    period: PeriodId
    average: Optional[float]
    credits: float
    workload_credits: float
    record_count: int
    eligible_count: int
    credit_mismatch: Optional[float] = None

    @property
    def has_data(self) -> bool:
        return self.average is not None


def _records_frame(records: Sequence[Record]) -> pd.DataFrame:
    rows = [
        {
            "period": r.period,
            "weight": float(r.weight),
            "mark": r.mark,
            "eligible": r.is_eligible,
            "workload": float(r.weight) if r.weight > 0 else 0.0,
        }
        for r in records
    ]
    return pd.DataFrame(rows, columns=["period", "weight", "mark", "eligible", "workload"])


def _ordered_periods(records: Sequence[Record], periods: Optional[Iterable[PeriodId]]) -> List[PeriodId]:
    ordered: List[PeriodId] = list(dict.fromkeys(periods or []))
    for r in records:
        if r.period not in ordered:
            ordered.append(r.period)
    return ordered


def aggregate(
    records: Sequence[Record],
    periods: Optional[Iterable[PeriodId]] = None,
    credit_target: Optional[float] = None,
) -> Dict[PeriodId, PeriodSummary]:
    """
    Compute the credit-weighted average of every period.

    `periods` lists periods that must appear in the output even with no
    records (scheme periods); periods only seen in the records follow in
    first-seen order. When `credit_target` is given, each period with
    eligible records carries its credit_mismatch (credits - target).
    """
    df = _records_frame(records)
    ordered = _ordered_periods(records, periods)
    summaries: Dict[PeriodId, PeriodSummary] = {}

    if df.empty:
        for period in ordered:
            summaries[period] = PeriodSummary(period, None, 0.0, 0.0, 0, 0)
        return summaries

    df["weighted"] = 0.0
    eligible = df["eligible"]
    df.loc[eligible, "weighted"] = df.loc[eligible, "mark"].astype(float) * df.loc[eligible, "weight"]

    grouped = df.groupby("period", sort=False)
    counts = grouped.size()
    workload = grouped["workload"].sum()
    eligible_df = df[eligible]
    eligible_groups = eligible_df.groupby("period", sort=False)
    credit_sums = eligible_groups["weight"].sum()
    weighted_sums = eligible_groups["weighted"].sum()
    eligible_counts = eligible_groups.size()

    for period in ordered:
        if period in credit_sums.index:
            credits = float(credit_sums[period])
            average: Optional[float] = float(weighted_sums[period]) / credits
            n_eligible = int(eligible_counts[period])
        else:
            credits = 0.0
            average = None
            n_eligible = 0

        mismatch = None
        if credit_target is not None and average is not None and credits != float(credit_target):
            mismatch = credits - float(credit_target)

        summaries[period] = PeriodSummary(
            period=period,
            average=average,
            credits=credits,
            workload_credits=float(workload[period]) if period in workload.index else 0.0,
            record_count=int(counts[period]) if period in counts.index else 0,
            eligible_count=n_eligible,
            credit_mismatch=mismatch,
        )

    return summaries


def period_averages(summaries: Mapping[PeriodId, PeriodSummary]) -> Dict[PeriodId, Optional[float]]:
    return {period: s.average for period, s in summaries.items()}


def credit_diagnostics(
    summaries: Mapping[PeriodId, PeriodSummary],
    credit_target: Optional[float],
    periods: Optional[Iterable[PeriodId]] = None,
) -> List[Diagnostic]:
    """Advisory credit-mismatch findings for the given (or all) periods."""
    if credit_target is None:
        return []
    wanted = set(periods) if periods is not None else None
    diagnostics: List[Diagnostic] = []
    for period, summary in summaries.items():
        if wanted is not None and period not in wanted:
            continue
        if summary.credit_mismatch is None:
            continue
        amount = summary.credit_mismatch
        direction = "over" if amount > 0 else "under"
        diagnostics.append(Diagnostic(
            type="credit_mismatch",
            message=(
                f"Period {period} has {summary.credits:g} eligible credits, "
                f"{abs(amount):g} {direction} the expected {float(credit_target):g}."
            ),
            period=period,
            amount=amount,
            extra={"expected": float(credit_target), "actual": summary.credits},
        ))
    return diagnostics


# ── Subset averages ─────────────────────────────────────────────────

def category_averages(records: Sequence[Record]) -> Dict[str, float]:
    """Credit-weighted average of eligible records per category, first-seen order."""
    rows = [
        {"category": r.category, "weight": float(r.weight), "mark": float(r.mark)}
        for r in records
        if r.is_eligible and r.category
    ]
    if not rows:
        return {}
    df = pd.DataFrame(rows)
    df["weighted"] = df["mark"] * df["weight"]
    grouped = df.groupby("category", sort=False)[["weighted", "weight"]].sum()
    return {str(cat): float(row["weighted"] / row["weight"]) for cat, row in grouped.iterrows()}


def honors_weighted_average(records: Sequence[Record]) -> Optional[float]:
    """Credit-weighted average using each record's honours mark; None with no data."""
    eligible = [r for r in records if r.is_eligible]
    if not eligible:
        return None
    df = pd.DataFrame({
        "weight": [float(r.weight) for r in eligible],
        "mark": [float(r.honors_mark if r.honors_mark is not None else r.mark) for r in eligible],
    })
    return float((df["mark"] * df["weight"]).sum() / df["weight"].sum())
