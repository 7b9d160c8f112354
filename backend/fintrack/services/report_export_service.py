"""
Report Export Service

Drives one export end to end:
1. Validate the configuration (nothing runs on a bad config)
2. Assemble report data for the selected report type and range
3. Capture chart surfaces, omitting any chart that fails
4. Encode with a fresh encoder for the selected format
5. Return the bytes, filename and media type, or a single error message

Failures are reported in the ExportResult rather than raised, and nothing
is retried: a second attempt is an explicit new call.
"""

import asyncio
import logging
import re
from datetime import datetime
from typing import List, Optional, Sequence, Tuple

from fintrack.config import settings
from fintrack.exceptions import EncodingError, ValidationError
from fintrack.schemas.records import BudgetRecord, GoalRecord, TransactionRecord
from fintrack.schemas.reporting import (
    REPORT_TYPE_LABELS,
    ExportFormat,
    ExportResult,
    RasterImage,
    ReportConfiguration,
    ReportData,
)
from fintrack.services.chart_capture_service import (
    ChartCaptureAdapter,
    build_report_capture_adapter,
)
from fintrack.services.report_data_service import assemble
from fintrack.services.report_generator_service import get_encoder

logger = logging.getLogger(__name__)

ERROR_CONFIGURATION = "configuration"
ERROR_ENCODING = "encoding"


def validate_configuration(config: ReportConfiguration) -> None:
    """Raise ValidationError for a configuration that cannot produce a report."""
    if config.date_range.start > config.date_range.end:
        raise ValidationError("Date range start must not be after its end")
    if not (config.include_summary or config.include_details or config.include_charts):
        raise ValidationError("Select at least one of summary, details or charts")
    if config.file_name is not None and not config.file_name.strip():
        raise ValidationError("File name must not be blank")


def degrade_unsupported_format(config: ReportConfiguration) -> ReportConfiguration:
    """Unsupported formats become a summary-only delimited-text export."""
    if config.export_format is not None:
        return config
    logger.warning(
        f"Unsupported export format '{config.format}', exporting summary-only CSV instead"
    )
    return config.model_copy(update={
        "format": ExportFormat.DELIMITED_TEXT.value,
        "include_summary": True,
        "include_details": False,
        "include_charts": False,
    })


def build_filename(config: ReportConfiguration, extension: str, now: datetime) -> str:
    """'{Report_Type_Label}_{YYYY-MM-DD}.{ext}', or the caller's file name with the extension."""
    if config.file_name:
        base = config.file_name.strip()
        if base.lower().endswith(f".{extension}"):
            base = base[: -(len(extension) + 1)]
        return f"{base}.{extension}"
    label = re.sub(r"\s+", "_", REPORT_TYPE_LABELS[config.report_type])
    return f"{label}_{now.strftime('%Y-%m-%d')}.{extension}"


async def capture_charts(
    report: ReportData,
    capture: Optional[ChartCaptureAdapter],
    surface_ids: Sequence[str],
) -> Tuple[List[RasterImage], List[str]]:
    """Captured images in request order plus the ids that were omitted."""
    adapter = capture or build_report_capture_adapter(report)
    results = await adapter.capture_all(surface_ids)
    images = []
    omitted = []
    for result in results:
        if result.ok:
            images.append(result.image)
        else:
            omitted.append(result.surface_id)
            logger.warning(f"Omitting chart {result.surface_id}: {result.error}")
    return images, omitted


async def export_report(
    config: ReportConfiguration,
    transactions: Sequence[TransactionRecord],
    budgets: Sequence[BudgetRecord] = (),
    goals: Sequence[GoalRecord] = (),
    capture: Optional[ChartCaptureAdapter] = None,
    narrative: Optional[str] = None,
    now: Optional[datetime] = None,
) -> ExportResult:
    """
    Export one report.

    Args:
        config: Immutable export configuration
        transactions: All transactions; filtered to config.date_range here
        budgets: Budgets for the budget_performance report
        goals: Goals for the goal_progress report
        capture: Chart capture adapter; built-in Pillow charts when omitted
        narrative: Optional insight text for the PDF
        now: Clock override for the filename and generation timestamp

    Returns:
        ExportResult with content on success, or error / error_kind on failure
    """
    now = now or datetime.now()

    try:
        validate_configuration(config)
    except ValidationError as e:
        logger.info(f"Rejected export configuration: {e.message}")
        return ExportResult(success=False, error=e.message, error_kind=ERROR_CONFIGURATION)

    config = degrade_unsupported_format(config)
    logger.info(
        f"Exporting {config.report_type.value} as {config.format} "
        f"({config.date_range.start:%Y-%m-%d} to {config.date_range.end:%Y-%m-%d})"
    )

    report, metadata = assemble(
        config, transactions, budgets, goals, generated_at=now, narrative=narrative,
    )

    charts: List[RasterImage] = []
    omitted: List[str] = []
    if config.include_charts and config.export_format == ExportFormat.PDF:
        charts, omitted = await capture_charts(report, capture, settings.chart_surface_ids)

    encoder = get_encoder(config.format)
    try:
        content = await asyncio.to_thread(encoder.encode, config, report, metadata, charts)
    except EncodingError as e:
        return ExportResult(
            success=False,
            format=encoder.format,
            error=e.message,
            error_kind=ERROR_ENCODING,
            omitted_charts=tuple(omitted),
        )

    if encoder.skipped_charts:
        logger.warning(f"Charts left out of the document: {encoder.skipped_charts}")
        omitted += encoder.skipped_charts

    filename = build_filename(config, encoder.extension, now)
    logger.info(f"Export complete: {filename} ({len(content)} bytes)")
    return ExportResult(
        success=True,
        filename=filename,
        content=content,
        media_type=encoder.media_type,
        format=encoder.format,
        omitted_charts=tuple(omitted),
    )
