"""
Report Data Service

Shapes metrics into the format-agnostic report structure every encoder reads:
- Summary map (metric name -> value)
- Detail table chosen by report type
- Expense-by-category and monthly series for charts
- Report metadata (title, period, record count, timestamp)
"""

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Dict, Optional, Sequence, Tuple

from fintrack.config import settings
from fintrack.schemas.records import (
    BudgetRecord,
    GoalRecord,
    TransactionRecord,
    TransactionType,
)
from fintrack.schemas.reporting import (
    REPORT_TYPE_TITLES,
    ChartPoint,
    DateRange,
    DetailTable,
    ReportConfiguration,
    ReportData,
    ReportMetadata,
    ReportType,
)
from fintrack.services.date_range_service import (
    month_key,
    month_label,
    period_label,
    previous_month_key,
)
from fintrack.services.metrics_service import (
    budget_forecast,
    category_breakdown,
    filter_by_range,
    financial_health_score,
    goal_progress,
    monthly_aggregates,
    summary_metrics,
    tax_deductible_expenses,
)

logger = logging.getLogger(__name__)

# Placeholder for cells that have no value (e.g. income share of expense)
EMPTY_CELL = "-"


@dataclass(frozen=True)
class _AssemblyInput:
    """Everything a detail builder may read; built once per assemble() call."""

    config: ReportConfiguration
    window: DateRange
    records: Sequence[TransactionRecord]  # Already filtered to the window
    all_transactions: Sequence[TransactionRecord]
    budgets: Sequence[BudgetRecord]
    goals: Sequence[GoalRecord]


def _format_percent(value) -> str:
    return f"{value:.1f}%"


def _type_label(txn_type: TransactionType) -> str:
    return txn_type.value.capitalize()


# ---------------------------------------------------------------------------
# Detail builders, one per report type
# ---------------------------------------------------------------------------


def _monthly_summary_detail(data: _AssemblyInput) -> DetailTable:
    rows = tuple(
        (month_label(m.month_key), m.income, m.expense, m.net_savings)
        for m in monthly_aggregates(data.records)
    )
    return DetailTable(headers=("Month", "Income", "Expenses", "Net Savings"), rows=rows)


def _category_breakdown_detail(data: _AssemblyInput) -> DetailTable:
    rows = []
    for row in category_breakdown(data.records):
        percent = (
            _format_percent(row.percent_of_type_total)
            if row.percent_of_type_total is not None
            else EMPTY_CELL
        )
        rows.append((row.category, _type_label(row.type), row.count, row.amount, percent))
    return DetailTable(
        headers=("Category", "Type", "Transaction Count", "Total Amount", "% of Total"),
        rows=tuple(rows),
    )


def _budget_performance_detail(data: _AssemblyInput) -> DetailTable:
    forecast = budget_forecast(data.records, data.budgets, data.window.end)
    rows = tuple(
        (
            row.category,
            "Over Budget" if row.over_budget else "On Track",
            row.budget_amount,
            row.spent_so_far,
            row.projected_total,
        )
        for row in forecast
    )
    return DetailTable(
        headers=("Category", "Status", "Budget", "Spent So Far", "Projected Total"),
        rows=rows,
    )


def _goal_progress_detail(data: _AssemblyInput) -> DetailTable:
    rows = tuple(
        (
            row.name,
            row.target_date.strftime("%Y-%m-%d") if row.target_date else EMPTY_CELL,
            row.target_amount,
            row.saved_to_date,
            row.contributed_in_period,
            row.monthly_target,
            _format_percent(row.percent_complete),
        )
        for row in goal_progress(data.goals, data.window)
    )
    return DetailTable(
        headers=(
            "Goal", "Target Date", "Target", "Saved To Date",
            "In Period", "Monthly Needed", "Progress",
        ),
        rows=rows,
    )


def _transaction_history_detail(data: _AssemblyInput) -> DetailTable:
    newest_first = sorted(data.records, key=lambda r: (r.date, r.id), reverse=True)
    rows = tuple(
        (
            r.date.strftime("%Y-%m-%d"),
            r.description,
            r.category,
            _type_label(r.type),
            r.amount,
        )
        for r in newest_first
    )
    return DetailTable(headers=("Date", "Description", "Category", "Type", "Amount"), rows=rows)


def _tax_expenses_detail(data: _AssemblyInput) -> DetailTable:
    rows = tuple(
        (r.date.strftime("%Y-%m-%d"), r.category, r.description, r.amount)
        for r in tax_deductible_expenses(data.records, settings.tax_deductible_categories)
    )
    return DetailTable(headers=("Date", "Category", "Description", "Amount"), rows=rows)


DetailBuilder = Callable[[_AssemblyInput], DetailTable]

_DETAIL_BUILDERS: Dict[ReportType, DetailBuilder] = {
    ReportType.MONTHLY_SUMMARY: _monthly_summary_detail,
    ReportType.CATEGORY_BREAKDOWN: _category_breakdown_detail,
    ReportType.BUDGET_PERFORMANCE: _budget_performance_detail,
    ReportType.GOAL_PROGRESS: _goal_progress_detail,
    ReportType.TRANSACTION_HISTORY: _transaction_history_detail,
    ReportType.TAX_EXPENSES: _tax_expenses_detail,
}

_missing = set(ReportType) - set(_DETAIL_BUILDERS)
if _missing:
    raise RuntimeError(
        f"No detail builder registered for report type(s): {sorted(t.value for t in _missing)}"
    )


# ---------------------------------------------------------------------------
# Summary and chart series
# ---------------------------------------------------------------------------


def _summary_map(data: _AssemblyInput) -> Dict[str, object]:
    metrics = summary_metrics(data.records)
    summary: Dict[str, object] = {
        "Total Income": metrics.total_income,
        "Total Expense": metrics.total_expense,
        "Net Savings": metrics.net_savings,
        "Savings Rate": _format_percent(metrics.savings_rate),
    }

    if data.config.report_type == ReportType.BUDGET_PERFORMANCE:
        current = month_key(data.window.end)
        health = financial_health_score(
            data.all_transactions, data.budgets, current, previous_month_key(current),
        )
        summary["Financial Health Score"] = f"{health.score} ({health.status})"

    return summary


def _chart_series(records: Sequence[TransactionRecord]) -> Tuple[ChartPoint, ...]:
    return tuple(
        ChartPoint(category=row.category, amount=row.amount)
        for row in category_breakdown(records)
        if row.type == TransactionType.EXPENSE
    )


def _monthly_series(records: Sequence[TransactionRecord]):
    return tuple(
        (month_label(m.month_key), m.income, m.expense)
        for m in monthly_aggregates(records)
    )


def assemble(
    config: ReportConfiguration,
    transactions: Sequence[TransactionRecord],
    budgets: Sequence[BudgetRecord] = (),
    goals: Sequence[GoalRecord] = (),
    generated_at: Optional[datetime] = None,
    narrative: Optional[str] = None,
) -> Tuple[ReportData, ReportMetadata]:
    """
    Build the report structure for one export.

    Transactions are always filtered to the configured range first. An empty
    window is not an error: the detail table comes back with headers and no
    rows, and the summary reports zeros.

    Args:
        config: Export configuration (report type, range, include flags)
        transactions: Every transaction the caller knows about
        budgets: Budgets, used by budget_performance
        goals: Savings goals, used by goal_progress
        generated_at: Timestamp stamped into the metadata (defaults to now)
        narrative: Optional insight text passed through to the PDF

    Returns:
        (ReportData, ReportMetadata)
    """
    window = config.date_range.normalized()
    records = filter_by_range(transactions, window)
    data = _AssemblyInput(
        config=config,
        window=window,
        records=records,
        all_transactions=transactions,
        budgets=budgets,
        goals=goals,
    )

    detail = _DETAIL_BUILDERS[config.report_type](data)
    summary = _summary_map(data) if config.include_summary else {}

    report = ReportData(
        summary=summary,
        detail=detail,
        chart_series=_chart_series(records),
        monthly_series=_monthly_series(records),
        narrative=narrative,
    )
    metadata = ReportMetadata(
        title=REPORT_TYPE_TITLES[config.report_type],
        period=period_label(config.date_range),
        generated_at=generated_at or datetime.now(),
        record_count=len(records),
        report_type=config.report_type,
    )

    logger.debug(
        f"Assembled {config.report_type.value}: {len(records)} records in range, "
        f"{len(detail.rows)} detail rows"
    )
    return report, metadata
