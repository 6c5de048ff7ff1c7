# ledger/services/materialize.py
"""
Materialization of recurring templates.

One pass:
    1. pick the templates out of the user's snapshot
    2. expand each template's schedule up to `as_of` (and its own end date)
    3. drop dates that already have a matching ledger entry
    4. write everything that is left as ONE atomic batch

A pass keeps no state between runs. Idempotence comes only from re-checking
the snapshot, so running it again on the post-write snapshot creates nothing.

Problems with a single template are logged and reported in the result; the
other templates are still processed. A failed batch write raises
BatchWriteError and nothing from the pass is persisted.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Protocol, Sequence

from ledger.errors import BatchWriteError, RecurrenceError
from ledger.schemas import TransactionRead
from ledger.services.duplicates import MaterializedIndex
from ledger.services.normalizer import parse_calendar_date
from ledger.services.recurrence import DEFAULT_MAX_OCCURRENCES, generate_occurrences

logger = logging.getLogger(__name__)


class BatchWriter(Protocol):
    def batch_write(self, records: Sequence[Dict[str, Any]]) -> List[Any]:
        ...


@dataclass
class TemplateError:
    template_id: Optional[int]
    description: str
    reason: str

    def __str__(self) -> str:
        return f"template {self.template_id} ({self.description!r}): {self.reason}"


@dataclass
class MaterializationResult:
    created: int = 0
    records: List[Dict[str, Any]] = field(default_factory=list)
    errors: List[TemplateError] = field(default_factory=list)

    @property
    def up_to_date(self) -> bool:
        return self.created == 0


def select_templates(transactions: Iterable[TransactionRead]) -> List[TransactionRead]:
    return [tx for tx in transactions if tx.is_template]


def build_instance(template: TransactionRead, on: date, user_id: str) -> Dict[str, Any]:
    """New ledger record for one occurrence of `template`."""
    return {
        "description": template.description,
        "amount": template.amount,
        "type": template.type,
        "date": on.isoformat(),
        "category": template.category,
        "userId": user_id,
        "isRecurring": False,
        "recurrenceFrequency": "none",
        "recurrenceEndDate": None,
    }


def _template_problem(template: TransactionRead, user_id: str) -> Optional[str]:
    if template.user_id is not None and template.user_id != user_id:
        return f"belongs to user {template.user_id!r}"
    if "date" in template.invalid_fields:
        return "unparseable anchor date"
    if "recurrenceEndDate" in template.invalid_fields:
        return "unparseable recurrence end date"
    return None


def plan_occurrences(
    user_id: str,
    transactions: Sequence[TransactionRead],
    as_of: date,
    limit: int = DEFAULT_MAX_OCCURRENCES,
) -> MaterializationResult:
    """
    Work out which instances are missing, without writing anything.

    Candidates accepted for one template are added to the index before the
    next template is checked, so two templates with identical fields produce
    a single instance per date.
    """
    result = MaterializationResult()
    index = MaterializedIndex(transactions)

    for template in select_templates(transactions):
        problem = _template_problem(template, user_id)
        if problem:
            logger.warning("[materialize] Skipping template %r: %s", template.id, problem)
            result.errors.append(TemplateError(template.id, template.description, problem))
            continue

        anchor = parse_calendar_date(template.date)
        end_date = parse_calendar_date(template.recurrence_end_date)

        accepted = 0
        try:
            for day in generate_occurrences(anchor, template.recurrence_frequency, end_date, as_of, limit):
                if index.contains(template, day):
                    continue
                index.add(template, day)
                result.records.append(build_instance(template, day, user_id))
                accepted += 1
        except RecurrenceError as e:
            # Keep what was generated before the halt
            logger.warning("[materialize] Template %r halted: %s", template.id, e)
            result.errors.append(TemplateError(template.id, template.description, str(e)))

        if accepted:
            logger.debug("[materialize] Template %r: %d missing occurrence(s)", template.id, accepted)

    return result


def materialize(
    user_id: str,
    transactions: Sequence[TransactionRead],
    as_of: date,
    repository: BatchWriter,
    limit: int = DEFAULT_MAX_OCCURRENCES,
) -> MaterializationResult:
    """
    Run one full pass for `user_id` and persist the missing instances.

    Returns the result with `created` set to the number of instances written.
    Raises BatchWriteError if the batch could not be committed; in that case
    nothing was created.
    """
    result = plan_occurrences(user_id, transactions, as_of, limit)

    if not result.records:
        logger.info("[materialize] user=%r as_of=%s: up to date", user_id, as_of)
        return result

    logger.info(
        "[materialize] user=%r as_of=%s: writing %d instance(s)",
        user_id, as_of, len(result.records),
    )
    try:
        repository.batch_write(result.records)
    except BatchWriteError:
        logger.error("[materialize] Batch write failed for user=%r; nothing created", user_id)
        raise

    result.created = len(result.records)
    return result
