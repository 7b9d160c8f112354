"""Report configuration and intermediate report structures"""

from dataclasses import dataclass, field
from datetime import datetime, time
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Optional, Tuple

from pydantic import BaseModel, ConfigDict, field_validator

from fintrack.schemas.records import Instant


class ExportFormat(str, Enum):
    PDF = "pdf"
    SPREADSHEET = "spreadsheet"
    DELIMITED_TEXT = "delimited-text"


# Names accepted from callers in addition to the canonical values
FORMAT_ALIASES = {
    "excel": ExportFormat.SPREADSHEET.value,
    "xlsx": ExportFormat.SPREADSHEET.value,
    "csv": ExportFormat.DELIMITED_TEXT.value,
    "delimited_text": ExportFormat.DELIMITED_TEXT.value,
}


class ReportType(str, Enum):
    MONTHLY_SUMMARY = "monthly_summary"
    CATEGORY_BREAKDOWN = "category_breakdown"
    BUDGET_PERFORMANCE = "budget_performance"
    GOAL_PROGRESS = "goal_progress"
    TRANSACTION_HISTORY = "transaction_history"
    TAX_EXPENSES = "tax_expenses"


REPORT_TYPE_LABELS = {
    ReportType.MONTHLY_SUMMARY: "Monthly Summary",
    ReportType.CATEGORY_BREAKDOWN: "Category Breakdown",
    ReportType.BUDGET_PERFORMANCE: "Budget Performance",
    ReportType.GOAL_PROGRESS: "Goal Progress",
    ReportType.TRANSACTION_HISTORY: "Transaction History",
    ReportType.TAX_EXPENSES: "Tax Expenses",
}

REPORT_TYPE_TITLES = {
    ReportType.MONTHLY_SUMMARY: "Monthly Financial Summary",
    ReportType.CATEGORY_BREAKDOWN: "Category Spending Breakdown",
    ReportType.BUDGET_PERFORMANCE: "Budget Performance Report",
    ReportType.GOAL_PROGRESS: "Goal Progress Report",
    ReportType.TRANSACTION_HISTORY: "Transaction History Report",
    ReportType.TAX_EXPENSES: "Tax-Ready Expense Report",
}

REPORT_TYPE_DESCRIPTIONS = {
    ReportType.MONTHLY_SUMMARY: "High-level overview of income & expenses.",
    ReportType.CATEGORY_BREAKDOWN: "Where your money goes by category.",
    ReportType.BUDGET_PERFORMANCE: "How well you stuck to your budgets.",
    ReportType.GOAL_PROGRESS: "Progress towards your savings goals.",
    ReportType.TRANSACTION_HISTORY: "Complete list of all transactions.",
    ReportType.TAX_EXPENSES: "Tax-deductible expenses helper.",
}


class DateRangePreset(str, Enum):
    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this_week"
    LAST_WEEK = "last_week"
    THIS_MONTH = "this_month"
    LAST_MONTH = "last_month"
    THIS_QUARTER = "this_quarter"
    THIS_YEAR = "this_year"
    LAST_YEAR = "last_year"
    ALL_TIME = "all_time"
    CUSTOM = "custom"


class DateRange(BaseModel):
    model_config = ConfigDict(frozen=True)

    start: Instant
    end: Instant
    preset: Optional[DateRangePreset] = None

    def normalized(self) -> "DateRange":
        """Widen to whole calendar days: start at midnight, end at the day's last instant."""
        return DateRange(
            start=datetime.combine(self.start.date(), time.min),
            end=datetime.combine(self.end.date(), time.max),
            preset=self.preset,
        )

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


class ReportConfiguration(BaseModel):
    """Immutable per-export settings; built once and passed through every stage."""

    model_config = ConfigDict(frozen=True)

    format: str = ExportFormat.PDF.value
    report_type: ReportType = ReportType.MONTHLY_SUMMARY
    date_range: DateRange
    include_charts: bool = True
    include_summary: bool = True
    include_details: bool = True
    file_name: Optional[str] = None

    @field_validator("format", mode="before")
    @classmethod
    def normalize_format(cls, v) -> str:
        if isinstance(v, ExportFormat):
            return v.value
        v = str(v).strip().lower()
        return FORMAT_ALIASES.get(v, v)

    @property
    def export_format(self) -> Optional[ExportFormat]:
        """Canonical format, or None when the caller asked for something unsupported"""
        try:
            return ExportFormat(self.format)
        except ValueError:
            return None


# ----- Intermediate representation (one export invocation owns these) -----


@dataclass(frozen=True)
class DetailTable:
    headers: Tuple[str, ...] = ()
    rows: Tuple[Tuple[Any, ...], ...] = ()

    def __post_init__(self):
        width = len(self.headers)
        for i, row in enumerate(self.rows):
            if len(row) != width:
                raise ValueError(
                    f"Detail row {i} has {len(row)} cells, expected {width}"
                )

    @property
    def is_empty(self) -> bool:
        return not self.rows


@dataclass(frozen=True)
class ChartPoint:
    category: str
    amount: Decimal


@dataclass(frozen=True)
class ReportData:
    summary: Dict[str, Any] = field(default_factory=dict)
    detail: DetailTable = field(default_factory=DetailTable)
    chart_series: Tuple[ChartPoint, ...] = ()
    # Secondary series for the trend chart: (month label, income, expense)
    monthly_series: Tuple[Tuple[str, Decimal, Decimal], ...] = ()
    narrative: Optional[str] = None


@dataclass(frozen=True)
class ReportMetadata:
    title: str
    period: str
    generated_at: datetime
    record_count: int
    report_type: ReportType = ReportType.MONTHLY_SUMMARY
    currency: str = "USD"


# ----- Chart capture -----


@dataclass(frozen=True)
class RasterImage:
    surface_id: str
    data: bytes
    width: int
    height: int
    image_format: str = "PNG"
    scale: int = 2


class CaptureStatus(str, Enum):
    OK = "ok"
    SURFACE_NOT_FOUND = "surface_not_found"
    EMPTY_SURFACE = "empty_surface"
    RENDER_FAILED = "render_failed"


@dataclass(frozen=True)
class CaptureResult:
    surface_id: str
    status: CaptureStatus
    image: Optional[RasterImage] = None
    error: Optional[str] = None

    @property
    def ok(self) -> bool:
        return self.status == CaptureStatus.OK


# ----- Export outcome -----


@dataclass
class ExportResult:
    success: bool
    filename: str = ""
    content: Optional[bytes] = None
    media_type: str = ""
    format: Optional[ExportFormat] = None
    error: Optional[str] = None
    error_kind: Optional[str] = None  # "configuration" | "encoding"
    omitted_charts: Tuple[str, ...] = ()

    @property
    def size(self) -> int:
        return len(self.content) if self.content else 0
