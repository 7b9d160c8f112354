"""
Reports API Router

Endpoints for exporting reports as downloadable documents and listing the
available report types.
"""

import logging
from typing import List, Optional

from fastapi import APIRouter, HTTPException
from fastapi.responses import Response
from pydantic import BaseModel

from fintrack.schemas.records import BudgetRecord, GoalRecord, TransactionRecord
from fintrack.schemas.reporting import (
    REPORT_TYPE_DESCRIPTIONS,
    REPORT_TYPE_LABELS,
    DateRangePreset,
    ReportConfiguration,
    ReportType,
)
from fintrack.services.date_range_service import date_range_from_preset, period_label
from fintrack.services.report_export_service import ERROR_CONFIGURATION, export_report

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/reports", tags=["reports"])


# ----- Pydantic Schemas -----

class ExportRequest(BaseModel):
    config: ReportConfiguration
    transactions: List[TransactionRecord] = []
    budgets: List[BudgetRecord] = []
    goals: List[GoalRecord] = []
    narrative: Optional[str] = None


class ReportTypeInfo(BaseModel):
    id: ReportType
    label: str
    description: str


# ----- Endpoints -----

@router.get("/types", response_model=List[ReportTypeInfo])
async def list_report_types():
    """Report types offered by the export dialog."""
    return [
        ReportTypeInfo(
            id=report_type,
            label=REPORT_TYPE_LABELS[report_type],
            description=REPORT_TYPE_DESCRIPTIONS[report_type],
        )
        for report_type in ReportType
    ]


@router.post("/export")
async def export(request: ExportRequest):
    """Build the requested report and return it as an attachment."""
    result = await export_report(
        request.config,
        request.transactions,
        request.budgets,
        request.goals,
        narrative=request.narrative,
    )
    if not result.success:
        status = 400 if result.error_kind == ERROR_CONFIGURATION else 500
        raise HTTPException(status_code=status, detail=result.error)

    return Response(
        content=result.content,
        media_type=result.media_type,
        headers={"Content-Disposition": f'attachment; filename="{result.filename}"'},
    )


@router.get("/date-range")
async def resolve_date_range(preset: DateRangePreset = DateRangePreset.THIS_MONTH):
    """Concrete bounds and label for a date range preset (custom is rejected)."""
    date_range = date_range_from_preset(preset)
    return {
        "preset": preset.value,
        "start": date_range.start,
        "end": date_range.end,
        "label": period_label(date_range),
    }
