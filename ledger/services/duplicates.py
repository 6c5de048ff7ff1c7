# ledger/services/duplicates.py
"""
Decide whether an occurrence of a template already exists.

There is no link from a generated instance back to its template, so the check
is a content match: a non-template transaction with the same description,
amount, type and category on the same calendar day counts as the occurrence.
Two manual entries that happen to match a template's fields and date are
indistinguishable from a generated one.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional, Set, Tuple

from ledger.schemas import TransactionRead
from ledger.services.normalizer import parse_calendar_date

OccurrenceKey = Tuple[str, float, str, str, date]


def occurrence_key(tx: TransactionRead, on: Optional[date] = None) -> Optional[OccurrenceKey]:
    day = on if on is not None else parse_calendar_date(tx.date)
    if day is None:
        return None
    return (tx.description, tx.amount, tx.type, tx.category, day)


def is_already_materialized(
    template: TransactionRead,
    candidate_date: date,
    known_transactions: Iterable[TransactionRead],
) -> bool:
    wanted = occurrence_key(template, candidate_date)
    for tx in known_transactions:
        if tx.is_recurring:
            continue
        if occurrence_key(tx) == wanted:
            return True
    return False


class MaterializedIndex:
    """
    Set of occurrence keys for the non-template transactions of a snapshot.

    Answers the same question as is_already_materialized() in constant time,
    and can be extended with candidates accepted earlier in the same pass.
    """

    def __init__(self, known_transactions: Iterable[TransactionRead] = ()):
        self._keys: Set[OccurrenceKey] = set()
        for tx in known_transactions:
            if not tx.is_recurring:
                self.add(tx)

    def add(self, tx: TransactionRead, on: Optional[date] = None) -> None:
        key = occurrence_key(tx, on)
        if key is not None:
            self._keys.add(key)

    def contains(self, template: TransactionRead, candidate_date: date) -> bool:
        return occurrence_key(template, candidate_date) in self._keys

    def __len__(self) -> int:
        return len(self._keys)
