# ledger/services/recurrence.py
"""
Occurrence dates for recurring templates.

Step k of a schedule is always computed from the anchor (anchor + k units),
never from the previous occurrence. With relativedelta that gives the
month-end policy used everywhere in the ledger: a day that does not exist in
the target month is clamped to that month's last day, and the next step goes
back to the anchor's day.

    2024-01-31 monthly -> 01-31, 02-29, 03-31, 04-30, 05-31, ...
    2024-02-29 yearly  -> 2024-02-29, 2025-02-28, 2026-02-28, 2027-02-28, 2028-02-29
"""

from __future__ import annotations

from datetime import date
from typing import Callable, Dict, Iterator, Optional

from dateutil.relativedelta import relativedelta

from ledger.errors import (
    OccurrenceLimitExceeded,
    RecurrenceConsistencyError,
    UnsupportedFrequency,
)

DEFAULT_MAX_OCCURRENCES = 5000

# frequency -> offset of the k-th occurrence from the anchor
STEPS: Dict[str, Callable[[int], relativedelta]] = {
    "daily": lambda k: relativedelta(days=k),
    "weekly": lambda k: relativedelta(weeks=k),
    "monthly": lambda k: relativedelta(months=k),
    "yearly": lambda k: relativedelta(years=k),
}


def nth_occurrence(anchor: date, frequency: str, k: int) -> date:
    try:
        step = STEPS[frequency]
    except KeyError:
        raise UnsupportedFrequency(frequency) from None
    return anchor + step(k)


def generate_occurrences(
    anchor: date,
    frequency: str,
    end_date: Optional[date],
    as_of: date,
    limit: int = DEFAULT_MAX_OCCURRENCES,
) -> Iterator[date]:
    """
    Yield the occurrence dates of a schedule in ascending order.

    Starts at `anchor` (inclusive) and stops before the first date that is
    later than `as_of` or later than `end_date`. Raises UnsupportedFrequency
    for an unknown frequency, RecurrenceConsistencyError if a step fails to
    move forward, and OccurrenceLimitExceeded once more than `limit` dates
    would be produced.
    """
    if frequency not in STEPS:
        raise UnsupportedFrequency(frequency)

    bound = as_of if end_date is None else min(as_of, end_date)

    previous: Optional[date] = None
    k = 0
    while True:
        current = nth_occurrence(anchor, frequency, k)
        if current > bound:
            return
        if previous is not None and current <= previous:
            raise RecurrenceConsistencyError(
                f"{frequency} step {k} from {anchor} gave {current}, not after {previous}"
            )
        if k >= limit:
            raise OccurrenceLimitExceeded(limit)

        yield current
        previous = current
        k += 1
