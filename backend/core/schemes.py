"""
schemes.py — Grading scheme registry.

Builds an immutable registry from plain declarative data:
- institutions: year weights, credit target, mark type, cohort variants,
  borderline adjustment, GPA scales and classification table references
- scales: (threshold, gpa) tables
- classifications: (threshold, label) tables
- grade_values: letter grade → numeric value tables (plus an optional
  honours-weighted table per institution)

The registry is built once and shared; nothing in it changes afterwards.
"""

import json
import logging
import math
from dataclasses import dataclass, field
from functools import lru_cache
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, List, Mapping, Optional, Tuple

from core.classifier import BorderlineAdjustment, ClassificationTable
from core.errors import ConfigurationError
from core.records import GradeValueTable, PeriodId, normalize_period
from core.scales import ScaleTable, scale_bands, sort_entries

logger = logging.getLogger(__name__)

MARK_TYPES = {
    "percentage": (0.0, 100.0),
    "letter": (0.0, 100.0),
    "points": (0.0, 4.0),
}


@dataclass(frozen=True)
class CohortVariant:
    id: str
    period_weights: Optional[Mapping[PeriodId, float]] = None
    borderline_adjustment: Optional[BorderlineAdjustment] = None
    credit_target: Optional[float] = None
    description: str = ""


@dataclass(frozen=True)
class GradingScheme:
    id: str
    name: str
    period_weights: Mapping[PeriodId, float]
    scales: Tuple[str, ...]
    classification: str
    mark_type: str = "percentage"
    mark_range: Tuple[float, float] = (0.0, 100.0)
    credit_target: Optional[float] = None
    grade_values: Optional[str] = None
    honors_grade_values: Optional[str] = None
    extra_classifications: Tuple[str, ...] = ()
    borderline_adjustment: Optional[BorderlineAdjustment] = None
    borderline_margin: float = 0.0
    max_weight: Optional[float] = None
    native_scale: bool = False
    pool_periods: bool = False
    cohort_variants: Mapping[str, CohortVariant] = field(default_factory=lambda: MappingProxyType({}))


@dataclass(frozen=True)
class ResolvedScheme:
    """A scheme with its cohort variant applied."""

    institution: str
    name: str
    cohort: Optional[str]
    period_weights: Mapping[PeriodId, float]
    credit_target: Optional[float]
    borderline_adjustment: Optional[BorderlineAdjustment]
    scheme: GradingScheme

    @property
    def periods(self) -> List[PeriodId]:
        return list(self.period_weights.keys())

    @property
    def weighted_periods(self) -> List[PeriodId]:
        return [p for p, w in self.period_weights.items() if w > 0]


class SchemeRegistry:
    """Read-only lookup of schemes and the tables they reference."""

    def __init__(
        self,
        schemes: Mapping[str, GradingScheme],
        scales: Mapping[str, ScaleTable],
        classifications: Mapping[str, ClassificationTable],
        grade_values: Mapping[str, GradeValueTable],
    ):
        self._schemes = MappingProxyType(dict(schemes))
        self._scales = MappingProxyType(dict(scales))
        self._classifications = MappingProxyType(dict(classifications))
        self._grade_values = MappingProxyType(dict(grade_values))
        self._check_references()

    # ── Lookups ─────────────────────────────────────────────────────

    def institutions(self) -> List[str]:
        return list(self._schemes.keys())

    def scheme(self, institution_id: str) -> GradingScheme:
        key = _key(institution_id)
        if key not in self._schemes:
            raise ConfigurationError(
                f"Unknown institution: {institution_id!r}",
                {"institution": institution_id, "known": self.institutions()},
            )
        return self._schemes[key]

    def scale(self, scale_id: str) -> ScaleTable:
        if scale_id not in self._scales:
            raise ConfigurationError(f"Unknown scale table: {scale_id!r}", {"scale": scale_id})
        return self._scales[scale_id]

    def classification(self, table_id: str) -> ClassificationTable:
        if table_id not in self._classifications:
            raise ConfigurationError(
                f"Unknown classification table: {table_id!r}", {"classification": table_id}
            )
        return self._classifications[table_id]

    def grade_value_table(self, table_id: Optional[str]) -> Optional[GradeValueTable]:
        if table_id is None:
            return None
        if table_id not in self._grade_values:
            raise ConfigurationError(
                f"Unknown grade value table: {table_id!r}", {"grade_values": table_id}
            )
        return self._grade_values[table_id]

    def resolve_scheme(self, institution_id: str, cohort: Optional[str] = None) -> ResolvedScheme:
        """Return the scheme for an institution with its cohort variant applied."""
        scheme = self.scheme(institution_id)
        if cohort is None or (isinstance(cohort, str) and not cohort.strip()):
            return ResolvedScheme(
                institution=scheme.id,
                name=scheme.name,
                cohort=None,
                period_weights=scheme.period_weights,
                credit_target=scheme.credit_target,
                borderline_adjustment=scheme.borderline_adjustment,
                scheme=scheme,
            )

        selector = str(cohort).strip()
        if selector not in scheme.cohort_variants:
            raise ConfigurationError(
                f"Unknown cohort {selector!r} for {scheme.id}",
                {
                    "institution": scheme.id,
                    "cohort": selector,
                    "known": list(scheme.cohort_variants.keys()),
                },
            )
        variant = scheme.cohort_variants[selector]
        return ResolvedScheme(
            institution=scheme.id,
            name=scheme.name,
            cohort=variant.id,
            period_weights=variant.period_weights if variant.period_weights is not None else scheme.period_weights,
            credit_target=variant.credit_target if variant.credit_target is not None else scheme.credit_target,
            borderline_adjustment=(
                variant.borderline_adjustment
                if variant.borderline_adjustment is not None
                else scheme.borderline_adjustment
            ),
            scheme=scheme,
        )

    def describe(self, institution_id: str) -> Dict[str, Any]:
        """JSON-safe description of one institution's scheme and tables."""
        scheme = self.scheme(institution_id)
        classification = self.classification(scheme.classification)
        grade_values = self.grade_value_table(scheme.grade_values)
        honors_values = self.grade_value_table(scheme.honors_grade_values)
        return {
            "id": scheme.id,
            "name": scheme.name,
            "mark_type": scheme.mark_type,
            "mark_range": list(scheme.mark_range),
            "period_weights": _weights_list(scheme.period_weights),
            "credit_target": scheme.credit_target,
            "borderline_adjustment": (
                scheme.borderline_adjustment.to_dict() if scheme.borderline_adjustment else None
            ),
            "borderline_margin": scheme.borderline_margin,
            "native_scale": scheme.native_scale,
            "pool_periods": scheme.pool_periods,
            "cohorts": [
                {
                    "id": v.id,
                    "description": v.description,
                    "period_weights": _weights_list(v.period_weights) if v.period_weights is not None else None,
                    "credit_target": v.credit_target,
                    "borderline_adjustment": (
                        v.borderline_adjustment.to_dict() if v.borderline_adjustment else None
                    ),
                }
                for v in scheme.cohort_variants.values()
            ],
            "scales": [
                {"id": sid, "name": self.scale(sid).name, "bands": scale_bands(self.scale(sid))}
                for sid in scheme.scales
            ],
            "classification": {
                "id": classification.id,
                "name": classification.name,
                "bands": [{"min": t, "label": label} for t, label in classification.entries],
            },
            "grade_values": (
                {
                    "id": grade_values.id,
                    "values": dict(grade_values.values),
                    "excluded": sorted(grade_values.excluded),
                }
                if grade_values
                else None
            ),
            "honors_grade_values": (
                {"id": honors_values.id, "values": dict(honors_values.values)}
                if honors_values
                else None
            ),
            "extra_classifications": [
                {
                    "id": table_id,
                    "name": self.classification(table_id).name,
                    "bands": [
                        {"min": t, "label": label}
                        for t, label in self.classification(table_id).entries
                    ],
                }
                for table_id in scheme.extra_classifications
            ],
        }

    # ── Integrity ───────────────────────────────────────────────────

    def _check_references(self):
        for scheme in self._schemes.values():
            if not scheme.scales:
                raise ConfigurationError(f"Scheme {scheme.id} lists no scale table.")
            for scale_id in scheme.scales:
                self.scale(scale_id)
            self.classification(scheme.classification)
            self.grade_value_table(scheme.grade_values)
            self.grade_value_table(scheme.honors_grade_values)
            for table_id in scheme.extra_classifications:
                self.classification(table_id)


# ── Loading ─────────────────────────────────────────────────────────

def _key(value: Any) -> str:
    return str(value).strip().lower()


def _weights_list(weights: Mapping[PeriodId, float]) -> List[Dict[str, Any]]:
    return [{"period": p, "weight": w} for p, w in weights.items()]


def _number(value: Any, what: str) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{what} must be a number, got {value!r}.")
    if not math.isfinite(number):
        raise ConfigurationError(f"{what} must be finite, got {value!r}.")
    return number


def _parse_weights(data: Any, where: str) -> Mapping[PeriodId, float]:
    if not isinstance(data, Mapping) or not data:
        raise ConfigurationError(f"{where}: period_weights must be a non-empty mapping.")
    weights: Dict[PeriodId, float] = {}
    for raw_period, raw_weight in data.items():
        try:
            period = normalize_period(raw_period)
        except ValueError as exc:
            raise ConfigurationError(f"{where}: {exc}")
        weight = _number(raw_weight, f"{where}: weight of period {period}")
        if weight < 0:
            raise ConfigurationError(f"{where}: weight of period {period} is negative.")
        weights[period] = weight
    return MappingProxyType(weights)


def _parse_adjustment(data: Any, where: str) -> Optional[BorderlineAdjustment]:
    if data is None:
        return None
    if isinstance(data, (int, float)):
        return BorderlineAdjustment("add", _number(data, f"{where}: borderline_adjustment"))
    if not isinstance(data, Mapping):
        raise ConfigurationError(f"{where}: borderline_adjustment must be a number or mapping.")
    try:
        return BorderlineAdjustment(
            str(data.get("mode", "add")),
            _number(data.get("amount"), f"{where}: borderline_adjustment amount"),
        )
    except ValueError as exc:
        raise ConfigurationError(f"{where}: {exc}")


def _parse_table(table_id: str, data: Any, kind: str) -> Tuple[str, Tuple[Tuple[float, Any], ...]]:
    if isinstance(data, Mapping):
        name = str(data.get("name", table_id))
        entries = data.get("entries")
    else:
        name, entries = table_id, data
    try:
        return name, sort_entries(entries or [])
    except (TypeError, ValueError) as exc:
        raise ConfigurationError(f"{kind} table {table_id!r}: {exc}")


def _parse_scheme(scheme_id: str, data: Mapping[str, Any]) -> GradingScheme:
    where = f"institution {scheme_id!r}"
    mark_type = str(data.get("mark_type", "percentage"))
    if mark_type not in MARK_TYPES:
        raise ConfigurationError(f"{where}: unknown mark_type {mark_type!r}.")

    if "mark_range" in data:
        low, high = data["mark_range"]
        mark_range = (_number(low, f"{where}: mark_range"), _number(high, f"{where}: mark_range"))
    else:
        mark_range = MARK_TYPES[mark_type]

    scales = data.get("scales") or ([data["scale"]] if data.get("scale") else [])
    if "classification" not in data:
        raise ConfigurationError(f"{where}: no classification table.")

    variants: Dict[str, CohortVariant] = {}
    for cohort_id, cohort in (data.get("cohorts") or {}).items():
        cohort = cohort or {}
        cwhere = f"{where} cohort {cohort_id!r}"
        variants[str(cohort_id)] = CohortVariant(
            id=str(cohort_id),
            period_weights=(
                _parse_weights(cohort["period_weights"], cwhere) if "period_weights" in cohort else None
            ),
            borderline_adjustment=_parse_adjustment(cohort.get("borderline_adjustment"), cwhere),
            credit_target=(
                _number(cohort["credit_target"], f"{cwhere}: credit_target")
                if cohort.get("credit_target") is not None
                else None
            ),
            description=str(cohort.get("description", "")),
        )

    if data.get("pool_periods") and len(data.get("period_weights") or {}) != 1:
        raise ConfigurationError(f"{where}: pool_periods needs exactly one weighted period.")

    return GradingScheme(
        id=scheme_id,
        name=str(data.get("name", scheme_id)),
        period_weights=_parse_weights(data.get("period_weights"), where),
        scales=tuple(str(s) for s in scales),
        classification=str(data["classification"]),
        mark_type=mark_type,
        mark_range=mark_range,
        credit_target=(
            _number(data["credit_target"], f"{where}: credit_target")
            if data.get("credit_target") is not None
            else None
        ),
        grade_values=data.get("grade_values"),
        honors_grade_values=data.get("honors_grade_values"),
        extra_classifications=tuple(str(t) for t in data.get("extra_classifications") or ()),
        borderline_adjustment=_parse_adjustment(data.get("borderline_adjustment"), where),
        borderline_margin=_number(data.get("borderline_margin", 0.0), f"{where}: borderline_margin"),
        max_weight=(
            _number(data["max_weight"], f"{where}: max_weight")
            if data.get("max_weight") is not None
            else None
        ),
        native_scale=bool(data.get("native_scale", False)),
        pool_periods=bool(data.get("pool_periods", False)),
        cohort_variants=MappingProxyType(variants),
    )


def load_registry(data: Mapping[str, Any]) -> SchemeRegistry:
    """Build a registry from declarative data. Raises ConfigurationError."""
    if not isinstance(data, Mapping):
        raise ConfigurationError("Registry data must be a mapping.")

    scales: Dict[str, ScaleTable] = {}
    for scale_id, table in (data.get("scales") or {}).items():
        name, entries = _parse_table(scale_id, table, "Scale")
        try:
            entries = tuple((t, float(v)) for t, v in entries)
        except (TypeError, ValueError):
            raise ConfigurationError(f"Scale table {scale_id!r}: values must be numbers.")
        scales[scale_id] = ScaleTable(id=scale_id, entries=entries, name=name)

    classifications: Dict[str, ClassificationTable] = {}
    for table_id, table in (data.get("classifications") or {}).items():
        name, entries = _parse_table(table_id, table, "Classification")
        entries = tuple((t, str(label)) for t, label in entries)
        classifications[table_id] = ClassificationTable(id=table_id, entries=entries, name=name)

    grade_values: Dict[str, GradeValueTable] = {}
    for table_id, table in (data.get("grade_values") or {}).items():
        values = table.get("values") if isinstance(table, Mapping) and "values" in table else table
        excluded = table.get("excluded", []) if isinstance(table, Mapping) and "values" in table else []
        if not isinstance(values, Mapping) or not values:
            raise ConfigurationError(f"Grade value table {table_id!r} is empty.")
        grade_values[table_id] = GradeValueTable(
            id=table_id,
            values=MappingProxyType({
                str(symbol).strip().upper(): _number(v, f"Grade {symbol!r} in {table_id!r}")
                for symbol, v in values.items()
            }),
            excluded=frozenset(str(s).strip().upper() for s in excluded),
        )

    schemes: Dict[str, GradingScheme] = {}
    for scheme_id, scheme_data in (data.get("institutions") or {}).items():
        key = _key(scheme_id)
        if key in schemes:
            raise ConfigurationError(f"Institution {scheme_id!r} is registered twice.")
        schemes[key] = _parse_scheme(key, scheme_data or {})

    if not schemes:
        raise ConfigurationError("Registry defines no institutions.")

    registry = SchemeRegistry(schemes, scales, classifications, grade_values)
    logger.debug(
        "Loaded grading registry: %d institutions, %d scales, %d classification tables",
        len(schemes), len(scales), len(classifications),
    )
    return registry


def load_registry_file(path: str) -> SchemeRegistry:
    """Load a registry from a JSON file with the same shape as the built-in data."""
    file_path = Path(path)
    try:
        data = json.loads(file_path.read_text(encoding="utf-8"))
    except FileNotFoundError:
        raise ConfigurationError(f"Scheme file not found: {file_path}")
    except json.JSONDecodeError as exc:
        raise ConfigurationError(f"Scheme file {file_path} is not valid JSON: {exc}")
    logger.info("Loading grading schemes from %s", file_path)
    return load_registry(data)


@lru_cache(maxsize=1)
def default_registry() -> SchemeRegistry:
    """The built-in institutions, built once per process."""
    from core.institutions import REGISTRY_DATA

    return load_registry(REGISTRY_DATA)
