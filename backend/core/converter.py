"""
converter.py — Conversion facade.

Orchestrates one conversion:
  resolve scheme → validate records → period averages → credit checks
  → weighted overall score → GPA (raw score) → classification (adjusted score)
  → category (major) and honours-weighted GPAs, extra standing tables

Returns a ConversionResult, or a ConversionFailure for validation,
incomplete-data and configuration errors. Never a partial result.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from functools import lru_cache
from typing import Any, ClassVar, Dict, List, Mapping, Optional, Sequence, Tuple, Union

from core.aggregator import (
    PeriodSummary,
    aggregate,
    category_averages,
    credit_diagnostics,
    honors_weighted_average,
    period_averages,
)
from core.classifier import BorderlineAdjustment, classify, lookup_label, near_boundary
from core.combiner import combine
from core.errors import ConversionError, Diagnostic, IncompleteDataError, ConfigurationError
from core.records import DEFAULT_MAX_WEIGHT, WEIGHT_POLICIES, PeriodId, Record, build_records
from core.scales import ScaleTable, to_scale
from core.schemes import GradingScheme, ResolvedScheme, SchemeRegistry, default_registry, load_registry_file

logger = logging.getLogger(__name__)


# ── Result types ────────────────────────────────────────────────────

@dataclass(frozen=True)
class PeriodResult:
    period: PeriodId
    average: Optional[float]
    credits: float
    workload_credits: float
    record_count: int
    eligible_count: int
    weight: float
    contribution: Optional[float]
    gpa: Optional[float]

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period": self.period,
            "average": self.average,
            "credits": self.credits,
            "workload_credits": self.workload_credits,
            "record_count": self.record_count,
            "eligible_count": self.eligible_count,
            "weight": self.weight,
            "contribution": self.contribution,
            "gpa": self.gpa,
        }


@dataclass(frozen=True)
class ConversionResult:
    institution: str
    institution_name: str
    cohort: Optional[str]
    scale: str
    periods: Tuple[PeriodResult, ...]
    overall_score: float
    adjusted_score: Optional[float]
    gpa: float
    classification: str
    total_credits: float
    workload_credits: float
    native_scale: bool = False
    borderline_adjustment: Optional[BorderlineAdjustment] = None
    subset_averages: Dict[str, float] = field(default_factory=dict)
    major_gpa: Optional[float] = None
    weighted_gpa: Optional[float] = None
    standings: Dict[str, str] = field(default_factory=dict)
    diagnostics: Tuple[Diagnostic, ...] = field(default_factory=tuple)

    ok: ClassVar[bool] = True

    def period(self, period: PeriodId) -> PeriodResult:
        for p in self.periods:
            if p.period == period:
                return p
        raise KeyError(period)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "ok": True,
            "institution": self.institution,
            "institution_name": self.institution_name,
            "cohort": self.cohort,
            "scale": self.scale,
            "periods": [p.to_dict() for p in self.periods],
            "overall_score": self.overall_score,
            "adjusted_score": self.adjusted_score,
            "borderline_adjustment": (
                self.borderline_adjustment.to_dict() if self.borderline_adjustment else None
            ),
            "gpa": self.gpa,
            "classification": self.classification,
            "total_credits": self.total_credits,
            "workload_credits": self.workload_credits,
            "native_scale": self.native_scale,
            "subset_averages": dict(self.subset_averages),
            "major_gpa": self.major_gpa,
            "weighted_gpa": self.weighted_gpa,
            "standings": dict(self.standings),
            "diagnostics": [d.to_dict() for d in self.diagnostics],
        }


@dataclass(frozen=True)
class ConversionFailure:
    kind: str
    message: str
    details: Mapping[str, Any] = field(default_factory=dict)

    ok: ClassVar[bool] = False

    @classmethod
    def from_error(cls, exc: ConversionError) -> "ConversionFailure":
        return cls(kind=exc.kind, message=exc.message, details=dict(exc.details))

    def to_dict(self) -> Dict[str, Any]:
        return {"ok": False, "kind": self.kind, "message": self.message, "details": dict(self.details)}


Outcome = Union[ConversionResult, ConversionFailure]


# ── Engine ──────────────────────────────────────────────────────────

class ConversionEngine:
    """Stateless converter bound to one immutable scheme registry."""

    def __init__(
        self,
        registry: SchemeRegistry,
        weight_policy: str = "reject",
        max_weight: float = DEFAULT_MAX_WEIGHT,
    ):
        if weight_policy not in WEIGHT_POLICIES:
            raise ValueError(f"weight_policy must be one of {WEIGHT_POLICIES}, got {weight_policy!r}")
        self.registry = registry
        self.weight_policy = weight_policy
        self.max_weight = float(max_weight)

    def convert(
        self,
        records: Sequence[Mapping[str, Any]],
        institution: str,
        cohort: Optional[str] = None,
        scale: Optional[str] = None,
    ) -> Outcome:
        """Convert raw records for an institution. Never raises engine errors."""
        try:
            return self._convert(records, institution, cohort, scale)
        except ConversionError as exc:
            logger.info("Conversion failed for %s (%s): %s", institution, exc.kind, exc.message)
            return ConversionFailure.from_error(exc)

    # ── Steps ───────────────────────────────────────────────────────

    def _select_scale(self, scheme: GradingScheme, scale: Optional[str]) -> ScaleTable:
        if scale is None:
            return self.registry.scale(scheme.scales[0])
        if scale not in scheme.scales:
            raise ConfigurationError(
                f"Scale {scale!r} is not offered for {scheme.id}",
                {"institution": scheme.id, "scale": scale, "known": list(scheme.scales)},
            )
        return self.registry.scale(scale)

    def _summaries(
        self,
        records: List[Record],
        resolved: ResolvedScheme,
    ) -> Dict[PeriodId, PeriodSummary]:
        if not resolved.scheme.pool_periods:
            return aggregate(records, resolved.periods, resolved.credit_target)

        # Pooled schemes average every record together; per-term
        # averages are kept alongside for display.
        pool_key = resolved.periods[0]
        pooled = aggregate(
            [replace(r, period=pool_key) for r in records], [pool_key], resolved.credit_target
        )
        for period, summary in aggregate(records).items():
            if period != pool_key:
                pooled[period] = summary
        return pooled

    def _convert(
        self,
        raws: Sequence[Mapping[str, Any]],
        institution: str,
        cohort: Optional[str],
        scale: Optional[str],
    ) -> ConversionResult:
        resolved = self.registry.resolve_scheme(institution, cohort)
        scheme = resolved.scheme
        scale_table = self._select_scale(scheme, scale)
        class_table = self.registry.classification(scheme.classification)
        grade_values = self.registry.grade_value_table(scheme.grade_values)
        honors_values = self.registry.grade_value_table(scheme.honors_grade_values)

        records, diagnostics = build_records(
            raws,
            grade_values=grade_values,
            mark_range=scheme.mark_range,
            max_weight=scheme.max_weight if scheme.max_weight is not None else self.max_weight,
            weight_policy=self.weight_policy,
            default_period=resolved.periods[0] if scheme.pool_periods else None,
            honors_grade_values=honors_values,
        )
        if not any(r.is_eligible for r in records):
            raise IncompleteDataError("No eligible records: add at least one marked, credit-bearing record.")

        summaries = self._summaries(records, resolved)
        diagnostics.extend(credit_diagnostics(summaries, resolved.credit_target, resolved.weighted_periods))

        combined = combine(period_averages(summaries), resolved.period_weights)
        contributions = {c.period: c.contribution for c in combined.contributions}
        overall = combined.overall

        def gpa_of(score: Optional[float]) -> Optional[float]:
            if score is None:
                return None
            return score if scheme.native_scale else to_scale(score, scale_table)

        classification = classify(overall, class_table, resolved.borderline_adjustment)
        boundary = near_boundary(classification.lookup_score, class_table, scheme.borderline_margin)
        if boundary is not None:
            diagnostics.append(Diagnostic(
                type="near_boundary",
                severity="info",
                message=(
                    f"Score is {boundary['gap']:.2f} below the {boundary['label']} "
                    f"boundary of {boundary['boundary']:g}; the examination board may use discretion."
                ),
                amount=boundary["gap"],
                extra={"boundary": boundary["boundary"], "next_label": boundary["label"]},
            ))

        # pooled schemes only
        subset_averages = category_averages(records) if scheme.pool_periods else {}
        weighted_gpa = None
        if honors_values is not None and any(r.honors and r.is_eligible for r in records):
            weighted_gpa = gpa_of(honors_weighted_average(records))
        standings = {
            table_id: lookup_label(classification.lookup_score, self.registry.classification(table_id))
            for table_id in scheme.extra_classifications
        }

        pool_key = resolved.periods[0] if scheme.pool_periods else None
        periods: List[PeriodResult] = []
        for period, summary in summaries.items():
            weight = float(resolved.period_weights.get(period, 0.0))
            if summary.has_data and weight <= 0 and pool_key is None:
                diagnostics.append(Diagnostic(
                    type="unweighted_period",
                    severity="info",
                    message=f"Period {period} does not count towards the overall score for this scheme.",
                    period=period,
                ))
            periods.append(PeriodResult(
                period=period,
                average=summary.average,
                credits=summary.credits,
                workload_credits=summary.workload_credits,
                record_count=summary.record_count,
                eligible_count=summary.eligible_count,
                weight=weight,
                contribution=contributions.get(period),
                gpa=gpa_of(summary.average),
            ))

        result = ConversionResult(
            institution=scheme.id,
            institution_name=scheme.name,
            cohort=resolved.cohort,
            scale=scale_table.id,
            periods=tuple(periods),
            overall_score=overall,
            adjusted_score=classification.adjusted_score,
            gpa=gpa_of(overall),
            classification=classification.label,
            total_credits=sum(r.weight for r in records if r.is_eligible),
            workload_credits=sum(r.weight for r in records if r.weight > 0),
            native_scale=scheme.native_scale,
            borderline_adjustment=resolved.borderline_adjustment,
            subset_averages=subset_averages,
            major_gpa=gpa_of(subset_averages.get("major")),
            weighted_gpa=weighted_gpa,
            standings=standings,
            diagnostics=tuple(diagnostics),
        )
        logger.debug(
            "Converted %d records for %s: overall=%.4f gpa=%.2f class=%s",
            len(records), scheme.id, overall, result.gpa, result.classification,
        )
        return result


# ── Default engine ──────────────────────────────────────────────────

@lru_cache(maxsize=1)
def default_engine() -> ConversionEngine:
    """Engine configured from the environment, built once per process."""
    scheme_file = os.getenv("SCHEME_FILE", "").strip()
    registry = load_registry_file(scheme_file) if scheme_file else default_registry()
    return ConversionEngine(
        registry,
        weight_policy=os.getenv("WEIGHT_POLICY", "reject").strip().lower(),
        max_weight=float(os.getenv("MAX_WEIGHT", str(DEFAULT_MAX_WEIGHT))),
    )


def convert(
    records: Sequence[Mapping[str, Any]],
    institution: str,
    cohort: Optional[str] = None,
    scale: Optional[str] = None,
) -> Outcome:
    return default_engine().convert(records, institution, cohort=cohort, scale=scale)
