"""
Conversion routes — UK/US grade conversion, plain-text export and scheme lookup.
"""

from fastapi import APIRouter, HTTPException
from fastapi.responses import PlainTextResponse

from core.converter import ConversionFailure, default_engine
from core.errors import ConfigurationError
from core.summary import format_failure_text, format_result_text

router = APIRouter()

FAILURE_STATUS = {
    "validation": 400,
    "incomplete": 422,
    "configuration": 404,
}


def _run(payload: dict):
    institution = payload.get("institution")
    if not institution:
        raise HTTPException(400, "No institution provided.")
    records = payload.get("records")
    if not isinstance(records, list) or not records:
        raise HTTPException(400, "No records provided.")

    return default_engine().convert(
        records,
        institution,
        cohort=payload.get("cohort"),
        scale=payload.get("scale"),
    )


@router.post("")
async def convert_grades(payload: dict):
    """Convert module marks into an overall score, GPA and classification."""
    outcome = _run(payload)
    if isinstance(outcome, ConversionFailure):
        raise HTTPException(FAILURE_STATUS.get(outcome.kind, 400), outcome.to_dict())
    return outcome.to_dict()


@router.post("/export", response_class=PlainTextResponse)
async def export_summary(payload: dict):
    """Same conversion, returned as a downloadable text summary."""
    outcome = _run(payload)
    if isinstance(outcome, ConversionFailure):
        return PlainTextResponse(
            format_failure_text(outcome),
            status_code=FAILURE_STATUS.get(outcome.kind, 400),
        )
    filename = f"{outcome.institution}-gpa-summary.txt"
    return PlainTextResponse(
        format_result_text(outcome),
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/institutions")
async def list_institutions():
    """List supported institutions with their cohorts and scales."""
    registry = default_engine().registry
    out = []
    for institution_id in registry.institutions():
        scheme = registry.scheme(institution_id)
        out.append({
            "id": scheme.id,
            "name": scheme.name,
            "mark_type": scheme.mark_type,
            "cohorts": list(scheme.cohort_variants.keys()),
            "scales": list(scheme.scales),
        })
    return {"institutions": out}


@router.get("/institutions/{institution_id}")
async def describe_institution(institution_id: str):
    """Full weighting, GPA table and classification bands for one institution."""
    try:
        return default_engine().registry.describe(institution_id)
    except ConfigurationError as e:
        raise HTTPException(404, e.to_dict())
