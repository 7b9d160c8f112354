"""Financial record schemas consumed read-only by the report pipeline"""

import re
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Annotated, List, Optional

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field, field_validator

_MONTH_KEY_RE = re.compile(r"^\d{4}-(0[1-9]|1[0-2])$")


def coerce_instant(value):
    """Turn date-only values into midnight datetimes and aware ones into naive UTC."""
    if isinstance(value, str) and len(value) == 10:
        value = date.fromisoformat(value)
    if isinstance(value, date) and not isinstance(value, datetime):
        return datetime(value.year, value.month, value.day)
    if isinstance(value, datetime) and value.tzinfo is not None:
        return value.astimezone(timezone.utc).replace(tzinfo=None)
    return value


# Naive datetime; all instants in the pipeline are compared without tzinfo
Instant = Annotated[datetime, BeforeValidator(coerce_instant)]


class TransactionType(str, Enum):
    INCOME = "income"
    EXPENSE = "expense"


class TransactionRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    date: Instant
    amount: Decimal = Field(..., gt=0)
    type: TransactionType
    category: str
    description: str = ""
    emoji: Optional[str] = None  # Display tag only, stripped from PDFs

    @property
    def is_income(self) -> bool:
        return self.type == TransactionType.INCOME

    @property
    def is_expense(self) -> bool:
        return self.type == TransactionType.EXPENSE


class BudgetRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    category: str
    month: str  # "YYYY-MM"
    amount: Decimal = Field(..., ge=0)
    id: Optional[str] = None

    @field_validator("month")
    @classmethod
    def validate_month(cls, v: str) -> str:
        if not _MONTH_KEY_RE.match(v):
            raise ValueError(f"month must be YYYY-MM, got {v!r}")
        return v


class GoalContribution(BaseModel):
    model_config = ConfigDict(frozen=True)

    date: Instant
    amount: Decimal
    transaction_id: Optional[str] = None


class GoalRecord(BaseModel):
    model_config = ConfigDict(frozen=True)

    id: str
    name: str
    target_amount: Decimal = Field(..., gt=0)
    initial_amount: Decimal = Decimal("0")
    target_date: Optional[Instant] = None
    is_active: bool = True
    contributions: List[GoalContribution] = Field(default_factory=list)
