"""
Metrics Service

Pure aggregation functions over transaction, budget and goal records:
- Range filtering (closed interval over whole calendar days)
- Income/expense totals and savings rate
- Category breakdown and monthly aggregates
- Budget run-rate forecast
- Composite financial health score
- Goal progress

Nothing here mutates its inputs or reads the clock, so the same records
always produce the same numbers on screen and in exported documents.
"""

import logging
import math
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Sequence

from fintrack.schemas.records import (
    BudgetRecord,
    GoalRecord,
    TransactionRecord,
    TransactionType,
)
from fintrack.schemas.reporting import DateRange
from fintrack.services.date_range_service import days_in_month, month_key

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
HUNDRED = Decimal("100")

# A 20% savings rate earns the full savings score
TARGET_SAVINGS_RATE = 20.0
# Transactions per month needed for a full activity score
TARGET_ACTIVITY_COUNT = 5

HEALTH_WEIGHTS = {
    "savings": 0.30,
    "budget_adherence": 0.30,
    "trend": 0.20,
    "activity": 0.20,
}

HEALTH_STATUSES = [
    (80, "Excellent"),
    (60, "Good"),
    (40, "Fair"),
]


@dataclass(frozen=True)
class SummaryMetrics:
    total_income: Decimal
    total_expense: Decimal
    net_savings: Decimal
    savings_rate: Decimal  # Percent of income, 0 when there is no income


@dataclass(frozen=True)
class CategoryRow:
    category: str
    type: TransactionType
    count: int
    amount: Decimal
    percent_of_type_total: Optional[Decimal]  # None for income rows


@dataclass(frozen=True)
class MonthlyRow:
    month_key: str
    income: Decimal
    expense: Decimal
    net_savings: Decimal


@dataclass(frozen=True)
class BudgetForecastRow:
    category: str
    budget_amount: Decimal
    spent_so_far: Decimal
    projected_total: Decimal
    over_budget: bool

    @property
    def projected_ratio(self) -> Decimal:
        return self.projected_total / self.budget_amount


@dataclass(frozen=True)
class HealthScore:
    score: int
    status: str
    component_scores: Dict[str, float] = field(default_factory=dict)


@dataclass(frozen=True)
class GoalProgressRow:
    goal_id: str
    name: str
    target_amount: Decimal
    saved_to_date: Decimal
    contributed_in_period: Decimal
    remaining: Decimal
    percent_complete: Decimal
    monthly_target: Decimal
    target_date: Optional[datetime] = None


def _sum(amounts: Iterable[Decimal]) -> Decimal:
    return sum(amounts, ZERO)


def filter_by_range(
    records: Sequence[TransactionRecord],
    date_range: DateRange,
) -> List[TransactionRecord]:
    """
    Keep records dated inside the range, both ends inclusive.

    The range is widened to whole days first, so a record at 23:59 on the
    end day is kept. Input order is preserved; filtering twice with the
    same range returns the same list.
    """
    window = date_range.normalized()
    return [r for r in records if window.contains(r.date)]


def summary_metrics(records: Sequence[TransactionRecord]) -> SummaryMetrics:
    """Income/expense totals, net savings and savings rate (percent)."""
    total_income = _sum(r.amount for r in records if r.is_income)
    total_expense = _sum(r.amount for r in records if r.is_expense)
    net_savings = total_income - total_expense
    if total_income > 0:
        savings_rate = net_savings / total_income * HUNDRED
    else:
        savings_rate = ZERO
    return SummaryMetrics(
        total_income=total_income,
        total_expense=total_expense,
        net_savings=net_savings,
        savings_rate=savings_rate,
    )


def category_breakdown(records: Sequence[TransactionRecord]) -> List[CategoryRow]:
    """
    Group by (category, type).

    Expense rows carry their share of total expense; income rows carry None.
    Sorted by amount descending, then category name, then type.
    """
    counts: Dict[tuple, int] = defaultdict(int)
    amounts: Dict[tuple, Decimal] = defaultdict(Decimal)
    for r in records:
        key = (r.category, r.type)
        counts[key] += 1
        amounts[key] += r.amount

    total_expense = _sum(r.amount for r in records if r.is_expense)

    rows = []
    for (category, txn_type), amount in amounts.items():
        percent = None
        if txn_type == TransactionType.EXPENSE and total_expense > 0:
            percent = amount / total_expense * HUNDRED
        rows.append(CategoryRow(
            category=category,
            type=txn_type,
            count=counts[(category, txn_type)],
            amount=amount,
            percent_of_type_total=percent,
        ))

    rows.sort(key=lambda row: (-row.amount, row.category, row.type.value))
    return rows


def monthly_aggregates(records: Sequence[TransactionRecord]) -> List[MonthlyRow]:
    """Income, expense and net per calendar month, oldest month first."""
    income: Dict[str, Decimal] = defaultdict(Decimal)
    expense: Dict[str, Decimal] = defaultdict(Decimal)
    for r in records:
        key = month_key(r.date)
        if r.is_income:
            income[key] += r.amount
        else:
            expense[key] += r.amount

    return [
        MonthlyRow(
            month_key=key,
            income=income[key],
            expense=expense[key],
            net_savings=income[key] - expense[key],
        )
        for key in sorted(set(income) | set(expense))
    ]


def _expense_by_category(
    records: Iterable[TransactionRecord],
    month: str,
    cutoff: Optional[datetime] = None,
) -> Dict[str, Decimal]:
    spent: Dict[str, Decimal] = defaultdict(Decimal)
    for r in records:
        if not r.is_expense or month_key(r.date) != month:
            continue
        if cutoff is not None and r.date > cutoff:
            continue
        spent[r.category] += r.amount
    return spent


def budget_forecast(
    transactions: Sequence[TransactionRecord],
    budgets: Sequence[BudgetRecord],
    as_of: datetime,
) -> List[BudgetForecastRow]:
    """
    Project month-end spend per budget from the run rate so far.

    projected = spent + (spent / day_of_month) * days_left_in_month

    Only budgets for as_of's month take part; zero-amount budgets are
    skipped. Most at-risk (projected / budget) first, ties by category.
    """
    month = month_key(as_of)
    day = as_of.day
    remaining_days = days_in_month(as_of) - day
    cutoff = as_of.replace(hour=23, minute=59, second=59, microsecond=999999)
    spent_by_category = _expense_by_category(transactions, month, cutoff)

    rows = []
    for budget in budgets:
        if budget.month != month or budget.amount <= 0:
            continue
        spent = spent_by_category.get(budget.category, ZERO)
        daily_rate = spent / day
        projected = spent + daily_rate * remaining_days
        rows.append(BudgetForecastRow(
            category=budget.category,
            budget_amount=budget.amount,
            spent_so_far=spent,
            projected_total=projected,
            over_budget=projected > budget.amount,
        ))

    rows.sort(key=lambda row: (-row.projected_ratio, row.category))
    return rows


def _health_status(score: int) -> str:
    for threshold, label in HEALTH_STATUSES:
        if score >= threshold:
            return label
    return "Needs Improvement"


def financial_health_score(
    transactions: Sequence[TransactionRecord],
    budgets: Sequence[BudgetRecord],
    current_month: str,
    previous_month: str,
) -> HealthScore:
    """
    Weighted 0-100 score from four independently clamped components.

    - savings (30%): savings rate scaled so 20% earns 100
    - budget_adherence (30%): share of this month's budgets not exceeded,
      100 when the month has no budgets
    - trend (20%): 100 if spending did not grow versus the previous month,
      otherwise 100 minus the percent increase (0 when last month was 0)
    - activity (20%): transaction count scaled so 5 earns 100
    """
    current = [t for t in transactions if month_key(t.date) == current_month]
    previous = [t for t in transactions if month_key(t.date) == previous_month]

    current_summary = summary_metrics(current)
    savings = min(100.0, max(0.0, float(current_summary.savings_rate) / TARGET_SAVINGS_RATE * 100))

    month_budgets = [b for b in budgets if b.month == current_month]
    if month_budgets:
        spent = _expense_by_category(current, current_month)
        on_track = sum(1 for b in month_budgets if spent.get(b.category, ZERO) <= b.amount)
        adherence = on_track / len(month_budgets) * 100
    else:
        adherence = 100.0

    current_expense = current_summary.total_expense
    previous_expense = summary_metrics(previous).total_expense
    if current_expense <= previous_expense:
        trend = 100.0
    elif previous_expense == 0:
        trend = 0.0
    else:
        increase = float((current_expense - previous_expense) / previous_expense * HUNDRED)
        trend = max(0.0, 100.0 - increase)

    activity = min(100.0, len(current) / TARGET_ACTIVITY_COUNT * 100)

    components = {
        "savings": savings,
        "budget_adherence": adherence,
        "trend": trend,
        "activity": activity,
    }
    weighted = sum(components[name] * weight for name, weight in HEALTH_WEIGHTS.items())
    # Half-up rounding; the weighted sum is never negative
    score = int(math.floor(weighted + 0.5))

    logger.debug(f"Health score {current_month}: {score} from {components}")
    return HealthScore(score=score, status=_health_status(score), component_scores=components)


def _months_between(start: datetime, end: datetime) -> int:
    return (end.year - start.year) * 12 + (end.month - start.month)


def goal_progress(
    goals: Sequence[GoalRecord],
    date_range: DateRange,
) -> List[GoalProgressRow]:
    """
    Progress of each active goal as of the end of the range.

    monthly_target is what still has to be saved per month to reach the
    target by target_date (at least one month is assumed); it is 0 when
    there is no target date or the goal is already met.
    """
    window = date_range.normalized()
    rows = []
    for goal in goals:
        if not goal.is_active:
            continue
        saved = goal.initial_amount + _sum(
            c.amount for c in goal.contributions if c.date <= window.end
        )
        in_period = _sum(c.amount for c in goal.contributions if window.contains(c.date))
        remaining = max(ZERO, goal.target_amount - saved)

        monthly_target = ZERO
        if goal.target_date is not None and remaining > 0:
            months_left = max(1, _months_between(window.end, goal.target_date))
            monthly_target = remaining / months_left

        rows.append(GoalProgressRow(
            goal_id=goal.id,
            name=goal.name,
            target_amount=goal.target_amount,
            saved_to_date=saved,
            contributed_in_period=in_period,
            remaining=remaining,
            percent_complete=saved / goal.target_amount * HUNDRED,
            monthly_target=monthly_target,
            target_date=goal.target_date,
        ))

    rows.sort(key=lambda row: (-row.percent_complete, row.name))
    return rows


def tax_deductible_expenses(
    records: Sequence[TransactionRecord],
    categories: Iterable[str] = (),
) -> List[TransactionRecord]:
    """Expense records in the deductible categories (all expenses when none are configured)."""
    wanted = {c.strip().lower() for c in categories if c.strip()}
    selected = [
        r for r in records
        if r.is_expense and (not wanted or r.category.lower() in wanted)
    ]
    selected.sort(key=lambda r: (r.category.lower(), r.date, r.id))
    return selected
