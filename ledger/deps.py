# ledger/deps.py
# Role: Shared application-level dependencies and globals.
#       Provides the SQLAlchemy session dependency, the transaction repository,
#       the per-user materialization scheduler registry, and the caller's user id.

"""
Shared dependencies and globals for the ledger service.
"""

from typing import Generator, Optional

from fastapi import Header, HTTPException
from sqlalchemy.orm import Session

from db import SessionLocal
from ledger.config import settings
from ledger.repository import TransactionRepository
from ledger.services.scheduler import SchedulerRegistry

# -------------------------------------------------------------------
# Repository & schedulers
# -------------------------------------------------------------------

# One repository for the process, so live-update subscribers see every write
REPOSITORY = TransactionRepository(SessionLocal)

# One materialization scheduler per user (started on first request)
SCHEDULERS = SchedulerRegistry(REPOSITORY, settings)


def get_repository() -> TransactionRepository:
    return REPOSITORY


def get_schedulers() -> SchedulerRegistry:
    return SCHEDULERS


# -------------------------------------------------------------------
# Caller identity
# -------------------------------------------------------------------

def get_user_id(x_user_id: Optional[str] = Header(default=None)) -> str:
    """
    Owner of the request, taken from the X-User-Id header.
    Authentication happens in front of this service.
    """
    if not x_user_id or not x_user_id.strip():
        raise HTTPException(status_code=401, detail="Missing X-User-Id header")
    return x_user_id.strip()


# -------------------------------------------------------------------
# Database dependency
# -------------------------------------------------------------------

def get_db() -> Generator[Session, None, None]:
    """
    FastAPI dependency that yields a database session and ensures it is closed.

    Typical usage in routes:
        db: Session = Depends(get_db)
    """
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()
