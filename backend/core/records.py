"""
records.py — Record model and input validation.

Turns raw, user-entered rows (label, weight, mark, period) into validated
Record values:
- Label sanitization (display only)
- Period normalization (1, "1" and " 1 " are the same period)
- Mark resolution: percentages / grade points pass through, letter grades
  resolve against a grade value table, pass/no-credit symbols are excluded
- Weight bounds with an explicit reject-or-clamp policy
"""

import html
from dataclasses import dataclass
from typing import Any, Dict, FrozenSet, List, Mapping, Optional, Sequence, Tuple, Union

import numpy as np

from core.errors import Diagnostic, ValidationError

PeriodId = Union[int, str]

WEIGHT_POLICIES = ("reject", "clamp")
DEFAULT_MAX_WEIGHT = 60.0
LABEL_MAX_LENGTH = 100

# Accepted field names for each record attribute, first match wins.
FIELD_ALIASES = {
    "label": ["label", "name", "module", "course"],
    "weight": ["weight", "credits", "credit", "units"],
    "mark": ["mark", "percentage", "score", "grade"],
    "period": ["period", "year", "term"],
    "exclude_from_average": ["exclude_from_average", "pass_fail", "is_pnp", "excluded"],
    "category": ["category", "major"],
    "honors": ["honors", "is_honors", "honours"],
}

TRUE_STRINGS = {"1", "true", "yes", "y", "on"}
FALSE_STRINGS = {"0", "false", "no", "n", "off"}


@dataclass(frozen=True)
class GradeValueTable:
    """Letter-grade symbol → numeric value in a scheme's native unit."""

    id: str
    values: Mapping[str, float]
    excluded: FrozenSet[str] = frozenset()

    def lookup(self, symbol: str) -> Tuple[Optional[float], bool]:
        """Return (value, excluded); value is None for excluded symbols.

        Raises KeyError for symbols the table does not know.
        """
        key = symbol.strip().upper()
        if key in self.excluded:
            return None, True
        for name, value in self.values.items():
            if name.upper() == key:
                return float(value), False
        raise KeyError(symbol)

    def symbols(self) -> List[str]:
        return list(self.values.keys()) + sorted(self.excluded)


@dataclass(frozen=True)
class Record:
    label: str
    weight: float
    mark: Optional[float]
    period: PeriodId
    exclude_from_average: bool = False
    symbol: Optional[str] = None
    index: int = 0
    category: Optional[str] = None
    honors: bool = False
    honors_mark: Optional[float] = None

    @property
    def is_eligible(self) -> bool:
        """True when the record may contribute to a period average."""
        return (
            not self.exclude_from_average
            and self.mark is not None
            and self.weight > 0
        )


# ── Field helpers ───────────────────────────────────────────────────

def sanitize_label(value: Any, max_length: int = LABEL_MAX_LENGTH) -> str:
    """Strip, HTML-escape and length-cap a free-text label."""
    if value is None:
        return ""
    text = " ".join(str(value).split())[:max_length]
    return html.escape(text, quote=True)


def normalize_period(value: Any) -> PeriodId:
    """Integers and digit strings become ints; other labels are stripped strings."""
    if isinstance(value, bool):
        raise ValueError("Period must be a year number or a term name.")
    if isinstance(value, (int, np.integer)):
        return int(value)
    if isinstance(value, (float, np.floating)):
        if np.isnan(value):
            raise ValueError("Period is required.")
        if np.isfinite(value) and float(value).is_integer():
            return int(value)
        raise ValueError(f"Period {value!r} is not a whole year number.")
    if value is None:
        raise ValueError("Period is required.")
    text = str(value).strip()
    if not text:
        raise ValueError("Period is required.")
    if text.isdigit():
        return int(text)
    return text


def _pick(raw: Mapping[str, Any], field: str) -> Any:
    for alias in FIELD_ALIASES[field]:
        if alias in raw:
            return raw[alias]
    return None


def _is_blank(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and np.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def _as_bool(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_STRINGS
    if _is_blank(value):
        return False
    return bool(value)


def _category(value: Any) -> Optional[str]:
    """Course category; a bare true flag (e.g. `major: true`) means "major"."""
    if isinstance(value, (bool, np.bool_)):
        return "major" if value else None
    if _is_blank(value):
        return None
    text = str(value).strip().lower()
    if text in TRUE_STRINGS:
        return "major"
    if text in FALSE_STRINGS:
        return None
    return text


def _as_number(value: Any) -> Optional[float]:
    """Parse a number; None when the value is not numeric at all."""
    if isinstance(value, bool):
        return None
    try:
        if isinstance(value, (int, float, np.integer, np.floating)):
            return float(value)
        return float(str(value).strip())
    except OverflowError:
        # integers beyond the double range
        return float("inf")
    except (TypeError, ValueError):
        return None


def _shown(value: Any, limit: int = 40) -> str:
    """Short repr of a raw value for error messages."""
    try:
        text = repr(value)
    except ValueError:
        return "<number too large>"
    return text if len(text) <= limit else text[: limit - 3] + "..."


def resolve_mark(
    raw: Any,
    grade_values: Optional[GradeValueTable],
    mark_range: Tuple[float, float],
) -> Tuple[Optional[float], Optional[str], bool]:
    """
    Resolve a raw mark into (mark, symbol, excluded).

    Blank marks resolve to (None, None, False): the record simply has no
    data. Unknown letter symbols raise KeyError, non-finite numbers raise
    ValueError. Range checks are left to the caller's weight policy.
    """
    if _is_blank(raw):
        return None, None, False

    number = _as_number(raw)
    if number is not None:
        if not np.isfinite(number):
            raise ValueError(f"Mark {_shown(raw)} is not a finite number.")
        return number, None, False

    symbol = str(raw).strip()
    if grade_values is None:
        raise KeyError(symbol)
    value, excluded = grade_values.lookup(symbol)
    return value, symbol.upper(), excluded


# ── Record construction ─────────────────────────────────────────────

def build_record(
    raw: Mapping[str, Any],
    index: int = 0,
    *,
    grade_values: Optional[GradeValueTable] = None,
    mark_range: Tuple[float, float] = (0.0, 100.0),
    max_weight: float = DEFAULT_MAX_WEIGHT,
    weight_policy: str = "reject",
    default_period: Optional[PeriodId] = None,
    honors_grade_values: Optional[GradeValueTable] = None,
) -> Tuple[Record, List[Diagnostic]]:
    """
    Validate one raw record.

    Returns (record, diagnostics). Raises ValidationError naming the record
    when it cannot be used. A blank period falls back to `default_period`
    when one is given.

    Letter marks on honours records also resolve against
    `honors_grade_values`; the result is kept as `honors_mark`.
    """
    if weight_policy not in WEIGHT_POLICIES:
        raise ValueError(f"Unknown weight policy: {weight_policy!r}")
    if not isinstance(raw, Mapping):
        raise ValidationError([_problem(index, "", "record", "Record must be an object.")])

    label = sanitize_label(_pick(raw, "label"))
    problems: List[Dict[str, Any]] = []
    diagnostics: List[Diagnostic] = []

    # Period
    period: PeriodId = ""
    raw_period = _pick(raw, "period")
    if _is_blank(raw_period) and default_period is not None:
        raw_period = default_period
    try:
        period = normalize_period(raw_period)
    except ValueError as exc:
        problems.append(_problem(index, label, "period", str(exc)))

    # Weight
    weight = 0.0
    raw_weight = _pick(raw, "weight")
    if not _is_blank(raw_weight):
        number = _as_number(raw_weight)
        if number is None or not np.isfinite(number):
            problems.append(_problem(index, label, "weight", f"Weight {_shown(raw_weight)} is not a finite number."))
        elif number < 0 or number > max_weight:
            if weight_policy == "reject":
                problems.append(_problem(
                    index, label, "weight",
                    f"Weight {number:g} is outside the allowed range 0–{max_weight:g}.",
                ))
            else:
                weight = min(max(number, 0.0), max_weight)
                diagnostics.append(Diagnostic(
                    type="weight_clamped",
                    message=f"Weight {number:g} clamped to {weight:g}.",
                    period=period or None,
                    record=index,
                    amount=weight - number,
                ))
        else:
            weight = number

    # Mark
    mark: Optional[float] = None
    symbol: Optional[str] = None
    excluded = _as_bool(_pick(raw, "exclude_from_average"))
    try:
        mark, symbol, symbol_excluded = resolve_mark(_pick(raw, "mark"), grade_values, mark_range)
        excluded = excluded or symbol_excluded
    except KeyError as exc:
        known = ", ".join(grade_values.symbols()) if grade_values else "none (numeric marks only)"
        problems.append(_problem(
            index, label, "mark",
            f"Grade {exc.args[0]!r} is not recognised. Known grades: {known}.",
        ))
    except ValueError as exc:
        problems.append(_problem(index, label, "mark", str(exc)))

    if mark is not None:
        low, high = mark_range
        if mark < low or mark > high:
            if weight_policy == "reject":
                problems.append(_problem(
                    index, label, "mark",
                    f"Mark {mark:g} is outside the allowed range {low:g}–{high:g}.",
                ))
            else:
                clamped = min(max(mark, low), high)
                diagnostics.append(Diagnostic(
                    type="mark_clamped",
                    message=f"Mark {mark:g} clamped to {clamped:g}.",
                    period=period or None,
                    record=index,
                    amount=clamped - mark,
                ))
                mark = clamped

    # Category and honours flag
    category = _category(_pick(raw, "category"))
    honors = _as_bool(_pick(raw, "honors"))
    honors_mark = mark
    if honors and symbol is not None and honors_grade_values is not None and mark is not None:
        try:
            honors_mark, _ = honors_grade_values.lookup(symbol)
        except KeyError:
            honors_mark = mark

    if problems:
        raise ValidationError(problems)

    if mark is None and weight > 0 and not excluded:
        diagnostics.append(Diagnostic(
            type="unmarked_record",
            severity="info",
            message=f"Record {_name(index, label)}: no mark entered; its {weight:g} credits are ignored.",
            period=period or None,
            record=index,
            amount=weight,
        ))

    record = Record(
        label=label,
        weight=weight,
        mark=mark,
        period=period,
        exclude_from_average=excluded,
        symbol=symbol,
        index=index,
        category=category,
        honors=honors,
        honors_mark=honors_mark,
    )
    return record, diagnostics


def build_records(
    raws: Sequence[Mapping[str, Any]],
    **options: Any,
) -> Tuple[List[Record], List[Diagnostic]]:
    """Validate every record; raise one ValidationError listing all problems."""
    records: List[Record] = []
    diagnostics: List[Diagnostic] = []
    problems: List[Dict[str, Any]] = []

    for index, raw in enumerate(raws or []):
        try:
            record, found = build_record(raw, index, **options)
        except ValidationError as exc:
            problems.extend(exc.problems)
            continue
        records.append(record)
        diagnostics.extend(found)

    if problems:
        raise ValidationError(problems)
    return records, diagnostics


def _name(index: int, label: str) -> str:
    return f"'{label}'" if label else f"#{index + 1}"


def _problem(index: int, label: str, field: str, message: str) -> Dict[str, Any]:
    return {
        "record": index,
        "label": label,
        "field": field,
        "message": f"Record {_name(index, label)}: {message}",
    }
