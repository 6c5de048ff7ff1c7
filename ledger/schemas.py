# ledger/schemas.py
"""
Pydantic schemas for transactions as they cross the HTTP boundary.

JSON field names follow the persisted document layout
(isRecurring, recurrenceFrequency, recurrenceEndDate, userId).
"""

from __future__ import annotations

import datetime as dt
from typing import List, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator
from pydantic.alias_generators import to_camel

TransactionType = Literal["income", "expense"]
Frequency = Literal["none", "daily", "weekly", "monthly", "yearly"]

FREQUENCIES = ("none", "daily", "weekly", "monthly", "yearly")


class _CamelModel(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class TransactionCreate(_CamelModel):
    """Payload for creating or replacing a transaction."""

    description: str = Field(min_length=1)
    amount: float = Field(gt=0)
    type: TransactionType
    date: dt.date
    category: str = Field(min_length=1)
    is_recurring: bool = False
    recurrence_frequency: Frequency = "none"
    recurrence_end_date: Optional[dt.date] = None

    @model_validator(mode="after")
    def _check_recurrence(self) -> "TransactionCreate":
        if not self.description.strip():
            raise ValueError("Description is required")
        if not self.category.strip():
            raise ValueError("Category is required")
        if self.is_recurring and self.recurrence_frequency == "none":
            raise ValueError("A recurring transaction needs a frequency")
        if (
            self.is_recurring
            and self.recurrence_end_date is not None
            and self.recurrence_end_date < self.date
        ):
            raise ValueError("Recurrence end date cannot be before the start date")
        return self


class TransactionRead(_CamelModel):
    """A normalized transaction (template or ledger entry)."""

    id: Optional[int] = None
    description: str = ""
    amount: float = 0.0
    type: str = "expense"
    date: str
    category: str = ""
    user_id: Optional[str] = None
    is_recurring: bool = False
    # Plain str: unknown values pass through so the engine can report them
    recurrence_frequency: str = "none"
    recurrence_end_date: Optional[str] = None

    # Fields the normalizer had to repair ("date", "recurrenceEndDate")
    invalid_fields: List[str] = Field(default_factory=list, exclude=True)

    @property
    def is_template(self) -> bool:
        return self.is_recurring and self.recurrence_frequency != "none"


class CategorySpending(BaseModel):
    category: str
    amount: float


class LedgerSummary(_CamelModel):
    month: Optional[str] = None
    total_income: float = 0.0
    total_expenses: float = 0.0
    net_balance: float = 0.0
    spending_by_category: List[CategorySpending] = Field(default_factory=list)


class MaterializationReport(_CamelModel):
    as_of: str
    created: int
    errors: List[str] = Field(default_factory=list)


class SchedulerStatus(_CamelModel):
    state: str
    passes: int = 0
    dropped: int = 0
    last_created: Optional[int] = None
    last_errors: List[str] = Field(default_factory=list)
    last_error: Optional[str] = None
