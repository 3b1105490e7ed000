"""
Tests for core/parser.py — transcript parsing, column mapping, record extraction.
"""

import os
import sys

import pandas as pd
import pytest

# Ensure backend/ is on the path
sys.path.insert(0, os.path.join(os.path.dirname(__file__), ".."))

from core.parser import (
    dataframe_to_records,
    parse_upload,
    suggest_column_mapping,
    validate_transcript,
)

SAMPLE_CSV = os.path.join(os.path.dirname(__file__), "..", "sample_data", "sample_transcript.csv")


@pytest.fixture
def sample_df():
    return list(parse_upload(SAMPLE_CSV).values())[0]


class TestParseUpload:
    """Tests for the parse_upload function."""

    def test_csv_parse_returns_dict(self):
        result = parse_upload(SAMPLE_CSV)
        assert isinstance(result, dict)
        assert list(result.keys()) == ["Sheet1"]

    def test_csv_parse_not_empty(self, sample_df):
        assert len(sample_df) == 7
        assert "Credits" in sample_df.columns

    def test_xlsx_parse(self, tmp_path):
        path = tmp_path / "transcript.xlsx"
        pd.DataFrame({"Module": ["Law"], "Credits": [20], "Mark": [65], "Year": [1]}).to_excel(
            path, index=False, engine="openpyxl"
        )
        result = parse_upload(str(path))
        df = list(result.values())[0]
        assert list(df.columns) == ["Module", "Credits", "Mark", "Year"]

    def test_unsupported_extension(self, tmp_path):
        path = tmp_path / "transcript.pdf"
        path.write_text("nope")
        with pytest.raises(ValueError):
            parse_upload(str(path))

    def test_invalid_file_raises(self):
        with pytest.raises(Exception):
            parse_upload("nonexistent_file.csv")


class TestSuggestColumnMapping:

    def test_sample_mapping(self, sample_df):
        mapping = suggest_column_mapping(sample_df)
        assert mapping["label"] == "Module"
        assert mapping["weight"] == "Credits"
        assert mapping["mark"] == "Mark"
        assert mapping["period"] == "Year"
        assert mapping["exclude_from_average"] is None

    def test_us_style_headers(self):
        df = pd.DataFrame(columns=["Course", "Units", "Grade", "Term", "P/NP"])
        mapping = suggest_column_mapping(df)
        assert mapping == {
            "label": "Course",
            "weight": "Units",
            "mark": "Grade",
            "period": "Term",
            "exclude_from_average": "P/NP",
            "category": None,
            "honors": None,
        }

    def test_column_used_once(self):
        df = pd.DataFrame(columns=["Name", "Credits", "Score", "Year"])
        mapping = suggest_column_mapping(df)
        assert list(mapping.values()).count("Name") == 1


class TestDataframeToRecords:

    def test_sample_records(self, sample_df):
        records = dataframe_to_records(sample_df)
        assert len(records) == 7
        assert records[0] == {
            "label": "Foundations of Economics",
            "weight": "60",
            "mark": "65",
            "period": "1",
        }

    def test_blank_rows_dropped(self):
        df = pd.DataFrame({
            "Module": ["Law", None, " "],
            "Credits": ["20", None, ""],
            "Mark": ["65", None, None],
            "Year": ["1", None, None],
        })
        records = dataframe_to_records(df)
        assert len(records) == 1
        assert records[0]["label"] == "Law"

    def test_explicit_mapping(self):
        df = pd.DataFrame({"A": ["Law"], "B": ["20"], "C": ["65"], "D": ["2"]})
        records = dataframe_to_records(df, {"label": "A", "weight": "B", "mark": "C", "period": "D"})
        assert records == [{"label": "Law", "weight": "20", "mark": "65", "period": "2"}]

    def test_no_matching_columns(self):
        assert dataframe_to_records(pd.DataFrame({"x": [1]})) == []


class TestValidateTranscript:

    def test_sample_has_no_issues(self, sample_df):
        assert validate_transcript(sample_df) == []

    def test_missing_required_columns(self):
        issues = validate_transcript(pd.DataFrame({"Module": ["Law"]}))
        critical = [i for i in issues if i["severity"] == "critical"]
        assert {i["type"] for i in critical} == {"missing_column"}
        assert len(critical) == 2

    def test_empty_data(self):
        df = pd.DataFrame(columns=["Module", "Credits", "Mark", "Year"])
        assert any(i["type"] == "empty_data" for i in validate_transcript(df))

    def test_invalid_weights(self):
        df = pd.DataFrame({"Credits": ["20", "twenty"], "Mark": ["60", "70"], "Year": ["1", "1"]})
        issues = validate_transcript(df)
        assert any(i["type"] == "invalid_weights" for i in issues)
