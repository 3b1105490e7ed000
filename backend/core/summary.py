"""
summary.py — Plain-text conversion summaries.

The downloadable / printable text version of a conversion:
- Institution, cohort and scale
- Per-period averages, weights and contributions
- Overall score, adjusted score, GPA and classification
- Major and honours-weighted GPAs and extra standings, when present
- Diagnostics

Rounding to display precision happens here and nowhere else.
"""

from typing import List

from core.converter import ConversionFailure, ConversionResult


def _fmt(value, places: int = 2, suffix: str = "") -> str:
    if value is None:
        return "n/a"
    return f"{value:.{places}f}{suffix}"


def _period_name(period) -> str:
    return f"Year {period}" if isinstance(period, int) else str(period).title()


def format_result_text(result: ConversionResult) -> str:
    """Generate a human-readable conversion summary."""
    unit = "" if result.native_scale else "%"
    lines = [
        "═══ Grade Conversion Summary ═══",
        f"Institution: {result.institution_name}",
    ]
    if result.cohort:
        lines.append(f"Cohort:      {result.cohort}")
    lines.append(f"Scale:       {result.scale}")
    lines.append("")
    lines.append("Periods:")

    for p in result.periods:
        line = f"  {_period_name(p.period)}: {_fmt(p.average, suffix=unit)}"
        line += f" ({p.credits:g} credits"
        if p.weight > 0:
            line += f", weight {p.weight * 100:g}%, contributes {_fmt(p.contribution)}"
        else:
            line += ", not weighted"
        line += ")"
        lines.append(line)

    lines.append("")
    lines.append(f"Overall score:  {_fmt(result.overall_score, suffix=unit)}")
    if result.adjusted_score is not None:
        adjustment = result.borderline_adjustment.describe() if result.borderline_adjustment else ""
        lines.append(f"Adjusted score: {_fmt(result.adjusted_score, suffix=unit)} ({adjustment}, classification only)")
    lines.append(f"GPA:            {_fmt(result.gpa)}")
    if result.major_gpa is not None:
        lines.append(f"Major GPA:      {_fmt(result.major_gpa, places=3)}")
    if result.weighted_gpa is not None:
        lines.append(f"Weighted GPA:   {_fmt(result.weighted_gpa)} (honours courses)")
    lines.append(f"Classification: {result.classification}")
    for label in result.standings.values():
        lines.append(f"Standing:       {label}")
    lines.append(f"Total credits:  {result.total_credits:g}")

    if result.diagnostics:
        lines.append("")
        lines.append("⚠ Notes:")
        for d in result.diagnostics:
            lines.append(f"  • {d.message}")

    return "\n".join(lines)


def format_failure_text(failure: ConversionFailure) -> str:
    lines: List[str] = [
        "═══ Grade Conversion Failed ═══",
        f"Reason: {failure.message}",
    ]
    problems = failure.details.get("problems") or []
    if len(problems) > 1:
        lines.append("")
        lines.append("Problems:")
        for problem in problems:
            lines.append(f"  • {problem['message']}")
    missing = failure.details.get("missing_periods") or []
    if missing:
        lines.append("")
        lines.append("Missing periods: " + ", ".join(_period_name(p) for p in missing))
    return "\n".join(lines)
