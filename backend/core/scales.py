"""
scales.py — Step-function conversion of a score onto a target scale.

A scale table is an ordered list of (threshold, value) pairs, highest
threshold first. The first threshold the score meets or exceeds wins;
scores below every threshold map to the lowest configured value. There is
no interpolation between breakpoints.
"""

import math
from dataclasses import dataclass
from typing import Any, Dict, List, Sequence, Tuple


@dataclass(frozen=True)
class ScaleTable:
    id: str
    entries: Tuple[Tuple[float, float], ...]
    name: str = ""


def sort_entries(pairs: Sequence[Sequence[Any]]) -> Tuple[Tuple[float, Any], ...]:
    """Return (threshold, value) pairs sorted highest threshold first.

    Raises ValueError on empty tables, non-finite or duplicate thresholds.
    """
    if not pairs:
        raise ValueError("A lookup table needs at least one entry.")
    entries = []
    for pair in pairs:
        if len(pair) != 2:
            raise ValueError(f"Table entry {pair!r} must be a (threshold, value) pair.")
        threshold = float(pair[0])
        if not math.isfinite(threshold):
            raise ValueError(f"Threshold {pair[0]!r} is not finite.")
        entries.append((threshold, pair[1]))
    entries.sort(key=lambda e: e[0], reverse=True)
    thresholds = [t for t, _ in entries]
    if len(set(thresholds)) != len(thresholds):
        raise ValueError("Table thresholds must be unique.")
    return tuple(entries)


def floor_lookup(score: float, entries: Sequence[Tuple[float, Any]]) -> Any:
    """Value of the highest threshold not exceeding `score` (lowest value if none)."""
    if not math.isfinite(score):
        raise ValueError(f"Score {score!r} is not a finite number.")
    for threshold, value in entries:
        if score >= threshold:
            return value
    return entries[-1][1]


def to_scale(score: float, table: ScaleTable) -> float:
    """Convert a score through a scale table (e.g. UK percentage → US 4.0 GPA)."""
    return float(floor_lookup(float(score), table.entries))


def scale_bands(table: ScaleTable, top: float = 100.0) -> List[Dict[str, Any]]:
    """Return the full scale as legend rows {min, max, value}, highest first."""
    bands = []
    for idx, (threshold, value) in enumerate(table.entries):
        upper = max(top, threshold) if idx == 0 else table.entries[idx - 1][0]
        bands.append({
            "min": threshold,
            "max": upper,
            "value": value,
        })
    return bands
