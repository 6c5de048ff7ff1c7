# ledger/errors.py
"""
Exception types raised by the ledger services.

Per-template problems (RecurrenceError and subclasses) are contained by the
materialization engine; pass-level problems (BatchWriteError) reach the caller.
"""


class LedgerError(Exception):
    """Base class for all ledger errors."""


class TransactionNotFound(LedgerError):
    def __init__(self, transaction_id):
        super().__init__(f"Transaction {transaction_id!r} not found")
        self.transaction_id = transaction_id


class RecurrenceError(LedgerError):
    """A template's schedule could not be expanded."""


class UnsupportedFrequency(RecurrenceError):
    def __init__(self, frequency):
        super().__init__(f"Unsupported recurrence frequency: {frequency!r}")
        self.frequency = frequency


class RecurrenceConsistencyError(RecurrenceError):
    """Stepping a schedule did not produce a strictly later date."""


class OccurrenceLimitExceeded(RecurrenceError):
    def __init__(self, limit: int):
        super().__init__(f"Occurrence limit of {limit} reached")
        self.limit = limit


class BatchWriteError(LedgerError):
    """An atomic batch write failed; nothing from the batch was persisted."""
