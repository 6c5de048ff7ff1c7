# ledger/services/normalizer.py
"""
Normalize raw repository records into TransactionRead objects.

Records may come from older clients, so the date fields arrive in several
encodings: plain 'YYYY-MM-DD' strings, ISO date-time strings, date/datetime
objects, epoch seconds, or timestamp mappings ({"seconds": ..., "nanoseconds": ...}).
Every one of them is reduced to a plain calendar-date string.

normalize() never raises. Anything it has to repair is logged and listed in
TransactionRead.invalid_fields so later stages can tell repaired values apart.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date, datetime, timezone
from typing import Any, Optional

from dateutil.parser import isoparse

from ledger.schemas import TransactionRead

logger = logging.getLogger(__name__)


def _from_epoch(seconds: float) -> Optional[date]:
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError):
        return None


def parse_calendar_date(value: Any) -> Optional[date]:
    """
    Return the calendar day encoded by `value`, or None if it can't be read.

    Time-of-day and timezone information on date-time strings is dropped:
    '2024-03-01T23:30:00-05:00' is 2024-03-01.
    """
    if value is None or isinstance(value, bool):
        return None

    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value

    if isinstance(value, (int, float)):
        return _from_epoch(value)

    if isinstance(value, Mapping):
        seconds = value.get("seconds", value.get("_seconds"))
        if isinstance(seconds, (int, float)) and not isinstance(seconds, bool):
            nanos = value.get("nanoseconds", value.get("_nanoseconds")) or 0
            return _from_epoch(seconds + nanos / 1e9)
        return None

    if isinstance(value, str):
        s = value.strip()
        if not s:
            return None
        try:
            return isoparse(s).date()
        except (ValueError, OverflowError):
            return None

    return None


def format_calendar_date(value: Any) -> Optional[str]:
    d = parse_calendar_date(value)
    return d.isoformat() if d else None


def _coerce_amount(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        return float(value)
    except (TypeError, ValueError):
        return None


_TRUE_FLAGS = {"true", "1", "yes"}
_FALSE_FLAGS = {"false", "0", "no", ""}


def _coerce_flag(value: Any) -> Optional[bool]:
    """True/False for a boolean-ish value, None if it can't be read."""
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int) and value in (0, 1):
        return bool(value)
    if isinstance(value, str):
        s = value.strip().lower()
        if s in _TRUE_FLAGS:
            return True
        if s in _FALSE_FLAGS:
            return False
    return None


def normalize(raw: Any, today: Optional[date] = None) -> TransactionRead:
    """
    Map one raw record (persisted layout, camelCase keys) to a TransactionRead.

    - unparseable `date` -> today, flagged "date"
    - unparseable `recurrenceEndDate` -> None, flagged "recurrenceEndDate"
    - absent recurrence fields -> False / "none" / None
    - `isRecurring` other than a boolean, 0/1 or "true"/"false" -> False,
      flagged "isRecurring"
    - non-recurring records never carry a frequency or end date
    """
    if not isinstance(raw, Mapping):
        logger.warning("[normalize] Record is not a mapping (%r); treating as empty", type(raw).__name__)
        raw = {}

    record_id = raw.get("id")
    invalid: list[str] = []

    tx_date = format_calendar_date(raw.get("date"))
    if tx_date is None:
        tx_date = (today or date.today()).isoformat()
        invalid.append("date")
        logger.warning(
            "[normalize] Could not parse date %r for record %r; defaulting to %s",
            raw.get("date"), record_id, tx_date,
        )

    amount = _coerce_amount(raw.get("amount"))
    if amount is None:
        invalid.append("amount")
        logger.warning("[normalize] Could not parse amount %r for record %r", raw.get("amount"), record_id)
        amount = 0.0

    is_recurring = _coerce_flag(raw.get("isRecurring"))
    if is_recurring is None:
        invalid.append("isRecurring")
        logger.warning(
            "[normalize] Could not read isRecurring %r for record %r; treating as a ledger entry",
            raw.get("isRecurring"), record_id,
        )
        is_recurring = False
    frequency = str(raw.get("recurrenceFrequency") or "none").strip().lower() or "none"

    end_date: Optional[str] = None
    raw_end = raw.get("recurrenceEndDate")
    if is_recurring and raw_end not in (None, ""):
        end_date = format_calendar_date(raw_end)
        if end_date is None:
            invalid.append("recurrenceEndDate")
            logger.warning(
                "[normalize] Could not parse recurrenceEndDate %r for record %r",
                raw_end, record_id,
            )

    if not is_recurring:
        frequency = "none"

    user_id = raw.get("userId")

    try:
        record_id = int(record_id) if record_id is not None else None
    except (TypeError, ValueError):
        record_id = None

    return TransactionRead(
        id=record_id,
        description=str(raw.get("description") or ""),
        amount=amount,
        type=str(raw.get("type") or "expense"),
        date=tx_date,
        category=str(raw.get("category") or ""),
        user_id=str(user_id) if user_id is not None else None,
        is_recurring=is_recurring,
        recurrence_frequency=frequency,
        recurrence_end_date=end_date,
        invalid_fields=invalid,
    )


def normalize_all(records, today: Optional[date] = None) -> list[TransactionRead]:
    return [normalize(r, today=today) for r in records]
