# ledger/services/records.py
#
# Record Helper Functions
# Converts validated transaction payloads into stored record dicts and ORM models,
# and calculates date ranges for monthly summaries.

from datetime import date
from typing import Any, Dict, Optional

from models import Transaction
from ledger.schemas import TransactionCreate


# ---- Record Preparation ----

def prepare_record(payload: TransactionCreate, user_id: str) -> Dict[str, Any]:
    """
    Turn a validated payload into the persisted record layout.

    Non-recurring records always get frequency "none" and no end date;
    the owner is stamped from the caller, never from the payload.
    """
    recurring = bool(payload.is_recurring)
    end_date = payload.recurrence_end_date if recurring else None

    return {
        "description": payload.description.strip(),
        "amount": float(payload.amount),
        "type": payload.type,
        "date": payload.date.isoformat(),
        "category": payload.category.strip(),
        "userId": user_id,
        "isRecurring": recurring,
        "recurrenceFrequency": payload.recurrence_frequency if recurring else "none",
        "recurrenceEndDate": end_date.isoformat() if end_date else None,
    }


# ---- Record <-> ORM Conversion ----

def build_transaction_from_record(record: dict) -> Transaction:
    """
    Convert one record dict (persisted layout, camelCase keys)
    into a Transaction ORM object.
    """
    date_raw = record.get("date")
    if isinstance(date_raw, date):
        date_raw = date_raw.isoformat()  # store as text

    return Transaction(
        user_id=record["userId"],
        description=record.get("description", ""),
        category=record.get("category", ""),
        amount=float(record.get("amount") or 0.0),
        type=record.get("type", "expense"),
        date=date_raw,
        is_recurring=bool(record.get("isRecurring", False)),
        recurrence_frequency=record.get("recurrenceFrequency") or "none",
        recurrence_end_date=record.get("recurrenceEndDate") or None,
    )


def record_from_transaction(tx: Transaction) -> Dict[str, Any]:
    """
    Raw record for one ORM row, as delivered by the repository.
    Fields are passed through untouched; NULL recurrence columns stay None.
    """
    return {
        "id": tx.id,
        "description": tx.description,
        "amount": tx.amount,
        "type": tx.type,
        "date": tx.date,
        "category": tx.category,
        "userId": tx.user_id,
        "isRecurring": tx.is_recurring,
        "recurrenceFrequency": tx.recurrence_frequency,
        "recurrenceEndDate": tx.recurrence_end_date,
    }


# Maps record keys to ORM column names (for partial updates)
RECORD_FIELDS = {
    "description": "description",
    "amount": "amount",
    "type": "type",
    "date": "date",
    "category": "category",
    "isRecurring": "is_recurring",
    "recurrenceFrequency": "recurrence_frequency",
    "recurrenceEndDate": "recurrence_end_date",
}


# ---- Date Range Utilities ----

def get_month_range(month_str: Optional[str], today: Optional[date] = None):
    """
    month_str: 'YYYY-MM' or None.
    Returns (start_date, end_date_exclusive, normalized_month_str).
    If month_str is None or invalid, uses the CURRENT month.
    """
    today = today or date.today()

    # 1) requested month, if it parses and is a representable calendar month
    if month_str:
        try:
            year_str, month_only_str = month_str.split("-")
            year, month = int(year_str), int(month_only_str)
            start_date, end_date_exclusive = _month_bounds(year, month)
            return start_date, end_date_exclusive, f"{year:04d}-{month:02d}"
        except ValueError:
            pass

    # 2) otherwise the current month
    year, month = today.year, today.month
    start_date, end_date_exclusive = _month_bounds(year, month)
    normalized = f"{year:04d}-{month:02d}"
    return start_date, end_date_exclusive, normalized


def _month_bounds(year: int, month: int):
    """First day of the month and first day of the next; ValueError if out of range."""
    start_date = date(year, month, 1)
    if month == 12:
        end_date_exclusive = date(year + 1, 1, 1)
    else:
        end_date_exclusive = date(year, month + 1, 1)
    return start_date, end_date_exclusive
