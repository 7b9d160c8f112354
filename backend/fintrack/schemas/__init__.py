"""Centralized schemas for records, report configuration and report output"""

from .records import (
    BudgetRecord,
    GoalContribution,
    GoalRecord,
    TransactionRecord,
    TransactionType,
)
from .reporting import (
    CaptureResult,
    CaptureStatus,
    ChartPoint,
    DateRange,
    DateRangePreset,
    DetailTable,
    ExportFormat,
    ExportResult,
    RasterImage,
    ReportConfiguration,
    ReportData,
    ReportMetadata,
    ReportType,
)

__all__ = [
    # Record schemas
    "TransactionRecord",
    "TransactionType",
    "BudgetRecord",
    "GoalRecord",
    "GoalContribution",
    # Configuration
    "DateRange",
    "DateRangePreset",
    "ExportFormat",
    "ReportConfiguration",
    "ReportType",
    # Report structures
    "ReportData",
    "DetailTable",
    "ChartPoint",
    "ReportMetadata",
    # Chart capture
    "RasterImage",
    "CaptureResult",
    "CaptureStatus",
    # Export outcome
    "ExportResult",
]
