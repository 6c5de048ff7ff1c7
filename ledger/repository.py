# ledger/repository.py
"""
SQLAlchemy-backed transaction store with live snapshot subscriptions.

Reads and writes go through short-lived sessions from the session factory.
Every successful write is followed by a fresh snapshot (all of the owner's
records, date descending) pushed to that owner's subscribers, the same way a
document store's query listener fires after each change, including the
listener's own writes.

Records cross this boundary as plain dicts in the persisted layout
(see ledger.services.records.record_from_transaction).
"""

from __future__ import annotations

import logging
import threading
from collections import defaultdict
from typing import Any, Callable, Dict, List, Optional, Sequence

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, sessionmaker

from models import Transaction
from ledger.errors import BatchWriteError, TransactionNotFound
from ledger.services.records import (
    RECORD_FIELDS,
    build_transaction_from_record,
    record_from_transaction,
)

logger = logging.getLogger(__name__)

Snapshot = List[Dict[str, Any]]
SnapshotListener = Callable[[Snapshot], None]
ErrorListener = Callable[[Exception], None]


class _Subscription:
    def __init__(self, user_id: str, listener: SnapshotListener, on_error: Optional[ErrorListener]):
        self.user_id = user_id
        self.listener = listener
        self.on_error = on_error


class TransactionRepository:
    def __init__(self, session_factory: sessionmaker):
        self._session_factory = session_factory
        self._lock = threading.Lock()
        self._subscriptions: Dict[str, List[_Subscription]] = defaultdict(list)

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------

    def list_for_user(self, user_id: str) -> Snapshot:
        """All records owned by `user_id`, newest date first."""
        with self._session_factory() as db:
            rows = (
                db.query(Transaction)
                .filter(Transaction.user_id == user_id)
                .order_by(Transaction.date.desc(), Transaction.id.desc())
                .all()
            )
            return [record_from_transaction(tx) for tx in rows]

    def get(self, transaction_id: int) -> Optional[Dict[str, Any]]:
        with self._session_factory() as db:
            tx = db.get(Transaction, transaction_id)
            return record_from_transaction(tx) if tx else None

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------

    def create(self, record: Dict[str, Any]) -> Dict[str, Any]:
        with self._session_factory() as db:
            tx = build_transaction_from_record(record)
            self._commit(db, [tx])
            created = record_from_transaction(tx)
        self._notify(created["userId"])
        return created

    def update(self, transaction_id: int, fields: Dict[str, Any]) -> Dict[str, Any]:
        with self._session_factory() as db:
            tx = db.get(Transaction, transaction_id)
            if tx is None:
                raise TransactionNotFound(transaction_id)
            for key, value in fields.items():
                column = RECORD_FIELDS.get(key)
                if column is None:
                    continue  # id / userId are never rewritten
                setattr(tx, column, value)
            self._commit(db, [])
            updated = record_from_transaction(tx)
        self._notify(updated["userId"])
        return updated

    def delete(self, transaction_id: int) -> None:
        with self._session_factory() as db:
            tx = db.get(Transaction, transaction_id)
            if tx is None:
                raise TransactionNotFound(transaction_id)
            user_id = tx.user_id
            db.delete(tx)
            self._commit(db, [])
        self._notify(user_id)

    def batch_write(self, records: Sequence[Dict[str, Any]]) -> List[int]:
        """
        Insert all `records` in one database transaction.

        Either every record is committed or none is; any failure is raised as
        BatchWriteError after the session has been rolled back.
        """
        if not records:
            return []

        with self._session_factory() as db:
            try:
                orm_objects = [build_transaction_from_record(r) for r in records]
                db.add_all(orm_objects)
                db.commit()
            except (SQLAlchemyError, KeyError, TypeError, ValueError) as e:
                db.rollback()
                logger.error("[batch-write] ERROR inserting %d records: %r", len(records), e)
                raise BatchWriteError(f"Batch of {len(records)} records failed: {e}") from e
            ids = [tx.id for tx in orm_objects]

        logger.info("[batch-write] Inserted %d records", len(ids))
        for user_id in {r["userId"] for r in records}:
            self._notify(user_id)
        return ids

    def _commit(self, db: Session, new_objects: list) -> None:
        try:
            if new_objects:
                db.add_all(new_objects)
            db.commit()
            for obj in new_objects:
                db.refresh(obj)
        except SQLAlchemyError:
            db.rollback()
            raise

    # -------------------------------------------------------------------
    # Live updates
    # -------------------------------------------------------------------

    def subscribe(
        self,
        user_id: str,
        listener: SnapshotListener,
        on_error: Optional[ErrorListener] = None,
    ) -> Callable[[], None]:
        """
        Register `listener` for snapshots of `user_id`'s records.

        The current snapshot is delivered right away; later snapshots follow
        every committed write for that user. Returns an unsubscribe callable.
        """
        sub = _Subscription(user_id, listener, on_error)
        with self._lock:
            self._subscriptions[user_id].append(sub)

        self._deliver(sub)

        def unsubscribe() -> None:
            with self._lock:
                subs = self._subscriptions.get(user_id, [])
                if sub in subs:
                    subs.remove(sub)
                if not subs:
                    self._subscriptions.pop(user_id, None)

        return unsubscribe

    def subscriber_count(self, user_id: str) -> int:
        with self._lock:
            return len(self._subscriptions.get(user_id, []))

    def _notify(self, user_id: str) -> None:
        with self._lock:
            subs = list(self._subscriptions.get(user_id, []))
        for sub in subs:
            self._deliver(sub)

    def _deliver(self, sub: _Subscription) -> None:
        try:
            snapshot = self.list_for_user(sub.user_id)
        except SQLAlchemyError as e:
            logger.error("[subscribe] Could not load snapshot for user=%r: %r", sub.user_id, e)
            if sub.on_error is not None:
                sub.on_error(e)
            return
        sub.listener(snapshot)
