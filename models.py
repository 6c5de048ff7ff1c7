# models.py
# Role: SQLAlchemy ORM models for the ledger domain.
#       Defines the Transaction model, which stores both plain ledger entries
#       and recurring templates for every user.

from sqlalchemy import Boolean, Column, Float, Integer, String
from db import Base


class Transaction(Base):
    """
    ORM model representing one stored transaction record.

    A row is either a plain ledger entry or, when is_recurring is set, a
    template whose dated instances are generated by the materialization
    engine. Instances are ordinary rows with is_recurring = False.

    Dates are kept as text. Rows written by older clients may carry other
    encodings (ISO timestamps, etc.); ledger.services.normalizer turns them
    into plain YYYY-MM-DD calendar dates on the way out.
    """

    __tablename__ = "transactions"

    # Primary key (opaque to clients)
    id = Column(Integer, primary_key=True, index=True)

    # Owner; every record belongs to exactly one user
    user_id = Column(String, nullable=False, index=True)

    description = Column(String, nullable=False)

    category = Column(String, nullable=False)

    # Always positive; the sign lives in `type`
    amount = Column(Float, nullable=False)

    # "income" | "expense"
    type = Column(String, nullable=False)

    # Occurrence date, normally 'YYYY-MM-DD'
    date = Column(String, nullable=False, index=True)

    # Recurrence fields. NULL on rows created before recurrence existed.
    is_recurring = Column(Boolean, nullable=True)
    recurrence_frequency = Column(String, nullable=True)
    recurrence_end_date = Column(String, nullable=True)
