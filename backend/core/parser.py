"""
parser.py — Transcript ingestion from CSV and Excel.

Supports:
- CSV files
- Excel (.xlsx) — single and multi-sheet
- Fuzzy column name mapping onto record fields
- Conversion of rows into raw records for the conversion engine
"""

from pathlib import Path
from typing import Any, Dict, List, Optional

import pandas as pd

SAMPLE_DATA_DIR = Path(__file__).parent.parent / "sample_data"

# Common column name variations for auto-mapping
COLUMN_ALIASES = {
    "label": [
        "label", "module", "module_name", "module name", "course",
        "course_name", "course name", "subject", "unit", "name", "title",
    ],
    "weight": [
        "weight", "credits", "credit", "units", "credit_hours",
        "credit hours", "cats", "ects",
    ],
    "mark": [
        "mark", "marks", "percentage", "percent", "score", "grade",
        "letter", "letter_grade", "letter grade", "result",
    ],
    "period": [
        "period", "year", "level", "stage", "term", "semester",
        "year_of_study", "year of study",
    ],
    "exclude_from_average": [
        "exclude_from_average", "excluded", "pass_fail", "pass/fail",
        "p/np", "is_pnp", "pnp",
    ],
    "category": ["category", "major", "course_type", "course type"],
    "honors": ["honors", "honours", "is_honors", "honors/ap"],
}

REQUIRED_FIELDS = ["weight", "mark"]


def parse_upload(file_path: str) -> Dict[str, pd.DataFrame]:
    """
    Parse an uploaded transcript and return a dict of {sheet_name: DataFrame}.
    For CSV files, returns {"Sheet1": df}.
    """
    path = Path(file_path)
    ext = path.suffix.lower()

    if ext == ".csv":
        df = pd.read_csv(file_path, dtype=str)
        return {"Sheet1": df}

    elif ext == ".xlsx":
        xls = pd.ExcelFile(file_path, engine="openpyxl")
        sheets = {}
        for sheet_name in xls.sheet_names:
            df = pd.read_excel(xls, sheet_name=sheet_name, dtype=str)
            # Skip empty sheets
            if not df.empty and len(df.columns) > 1:
                sheets[sheet_name] = df
        if not sheets:
            raise ValueError("No valid sheets found in the Excel file.")
        return sheets

    else:
        raise ValueError(f"Unsupported file type: {ext}")


def suggest_column_mapping(df: pd.DataFrame) -> Dict[str, Optional[str]]:
    """
    Suggest a mapping from record fields to actual column names.
    Returns: { field: actual_column_name_or_None }
    """
    cols_lower = {str(c).lower().strip(): c for c in df.columns}
    mapping: Dict[str, Optional[str]] = {}
    used = set()

    for field, aliases in COLUMN_ALIASES.items():
        matched = None
        for alias in aliases:
            column = cols_lower.get(alias)
            if column is not None and column not in used:
                matched = column
                break
        mapping[field] = matched
        if matched is not None:
            used.add(matched)

    return mapping


def _cell(value: Any) -> Any:
    if value is None or (isinstance(value, float) and pd.isna(value)):
        return None
    if isinstance(value, str):
        value = value.strip()
        return value or None
    return value


def dataframe_to_records(
    df: pd.DataFrame,
    mapping: Optional[Dict[str, Optional[str]]] = None,
) -> List[Dict[str, Any]]:
    """
    Turn transcript rows into raw record dicts ({label, weight, mark, period,
    exclude_from_average, category, honors}). Fully blank rows are dropped;
    values are passed through as text so the engine does all validation.
    """
    mapping = mapping or suggest_column_mapping(df)
    columns = {field: col for field, col in mapping.items() if col and col in df.columns}
    if not columns:
        return []

    subset = df[list(columns.values())].dropna(how="all")
    records: List[Dict[str, Any]] = []
    for _, row in subset.iterrows():
        record = {field: _cell(row[col]) for field, col in columns.items()}
        if all(v is None for v in record.values()):
            continue
        records.append(record)
    return records


def validate_transcript(df: pd.DataFrame) -> List[Dict]:
    """
    Validate a parsed transcript and return a list of issues found.
    """
    issues = []
    mapping = suggest_column_mapping(df)

    for field in REQUIRED_FIELDS:
        if mapping.get(field) is None:
            issues.append({
                "type": "missing_column",
                "severity": "critical",
                "message": f"Required column '{field}' not found. "
                           f"Expected one of: {COLUMN_ALIASES.get(field, [])}",
            })

    if mapping.get("period") is None:
        issues.append({
            "type": "missing_column",
            "severity": "warning",
            "message": "No year/term column found; every row must name its period.",
        })

    if len(df) == 0:
        issues.append({
            "type": "empty_data",
            "severity": "critical",
            "message": "The uploaded file contains no data rows.",
        })

    weight_col = mapping.get("weight")
    if weight_col and len(df) > 0:
        weights = pd.to_numeric(df[weight_col], errors="coerce")
        invalid_count = int(weights.isna().sum() - df[weight_col].isna().sum())
        if invalid_count > 0:
            issues.append({
                "type": "invalid_weights",
                "severity": "warning",
                "message": f"{invalid_count} credit values could not be parsed as numbers.",
            })

    return issues
