import os

# Must be set before db / ledger.config are imported anywhere
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["AUTO_MATERIALIZE"] = "0"

import pytest

from db import Base, SessionLocal, engine
import models  # noqa: F401
from ledger.repository import TransactionRepository


@pytest.fixture(autouse=True)
def schema():
    Base.metadata.create_all(bind=engine)
    yield
    Base.metadata.drop_all(bind=engine)


@pytest.fixture
def repo():
    return TransactionRepository(SessionLocal)


def make_record(**kwargs):
    base = dict(
        description="Coffee",
        amount=3.5,
        type="expense",
        date="2024-01-10",
        category="Food & Drinks",
        userId="alice",
        isRecurring=False,
        recurrenceFrequency="none",
        recurrenceEndDate=None,
    )
    base.update(kwargs)
    return base


def make_template(**kwargs):
    base = dict(
        description="Rent",
        amount=1500.0,
        type="expense",
        date="2024-01-01",
        category="Housing",
        userId="alice",
        isRecurring=True,
        recurrenceFrequency="monthly",
        recurrenceEndDate=None,
    )
    base.update(kwargs)
    return base
