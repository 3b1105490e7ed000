"""
Upload routes — transcript upload, column auto-mapping and sample data loading.
"""

import json
import logging
import uuid
from pathlib import Path
from typing import Optional

from fastapi import APIRouter, File, Form, HTTPException, UploadFile

from core.parser import (
    SAMPLE_DATA_DIR,
    dataframe_to_records,
    parse_upload,
    suggest_column_mapping,
    validate_transcript,
)

logger = logging.getLogger(__name__)

router = APIRouter()

# Keep upload path stable regardless of process working directory.
UPLOAD_DIR = Path(__file__).resolve().parent.parent / "uploads"
UPLOAD_DIR.mkdir(exist_ok=True)

MAX_PREVIEW_ROWS = 500


def _transcript_response(filename: str, sheets_data: dict, mapping: Optional[dict] = None) -> dict:
    first_sheet = list(sheets_data.keys())[0]
    df = sheets_data[first_sheet]
    suggested = suggest_column_mapping(df)
    if mapping:
        suggested.update({k: v for k, v in mapping.items() if k in suggested})
    records = dataframe_to_records(df, suggested)
    return {
        "filename": filename,
        "sheets": list(sheets_data.keys()),
        "columns": [str(c) for c in df.columns],
        "mapping": suggested,
        "issues": validate_transcript(df),
        "record_count": len(records),
        "records": records[:MAX_PREVIEW_ROWS],
    }


@router.post("/transcript")
async def upload_transcript(
    file: UploadFile = File(...),
    mapping: Optional[str] = Form(None),  # JSON string of column mapping overrides
):
    """
    Upload a CSV or Excel transcript.
    Returns the detected column mapping, issues and records ready for /api/convert.
    Nothing is kept on the server; the temporary file is removed.
    """
    ext = Path(file.filename or "").suffix.lower()
    if ext not in (".csv", ".xlsx"):
        raise HTTPException(400, f"Unsupported file type: {ext}. Use CSV or Excel (.xlsx).")

    overrides = None
    if mapping:
        try:
            overrides = json.loads(mapping)
        except json.JSONDecodeError:
            raise HTTPException(400, "Invalid mapping JSON.")
        if not isinstance(overrides, dict):
            raise HTTPException(400, "Mapping must be a JSON object.")

    save_path = UPLOAD_DIR / f"{uuid.uuid4()}{ext}"
    try:
        with open(save_path, "wb") as f:
            while True:
                chunk = await file.read(1024 * 1024)
                if not chunk:
                    break
                f.write(chunk)
        sheets_data = parse_upload(str(save_path))
        return _transcript_response(file.filename, sheets_data, overrides)
    except Exception as e:
        logger.info("Rejected transcript upload %s: %s", file.filename, e)
        raise HTTPException(400, f"Failed to process upload '{file.filename}': {str(e)}")
    finally:
        save_path.unlink(missing_ok=True)


@router.get("/sample/{dataset_name}")
async def load_sample_data(dataset_name: str):
    """Load one of the bundled sample transcripts."""
    sample_files = {
        "transcript": SAMPLE_DATA_DIR / "sample_transcript.csv",
    }

    if dataset_name not in sample_files:
        raise HTTPException(404, f"Sample dataset '{dataset_name}' not found. Available: {list(sample_files.keys())}")

    file_path = sample_files[dataset_name]
    if not file_path.exists():
        raise HTTPException(404, f"Sample file not found on disk: {file_path.name}")

    sheets_data = parse_upload(str(file_path))
    return _transcript_response(file_path.name, sheets_data)
