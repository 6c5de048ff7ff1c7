# db.py
# Role: Database bootstrap for the ledger service.
#       Defines the SQLAlchemy engine, session factory, and declarative Base.
#       Also ensures the on-disk database directory exists before the app starts.

"""
Database setup for the ledger service.

- Uses DATABASE_URL from settings (default: SQLite at <project_root>/database/ledger.db)
- Ensures the 'database' folder exists for the default location.
"""

import os
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker, declarative_base
from sqlalchemy.pool import StaticPool

from ledger.config import DB_DIR, settings

os.makedirs(DB_DIR, exist_ok=True)  # ensure folder exists

# SQLAlchemy connection URL
DATABASE_URL = settings.database_url


def build_engine(url: str):
    """
    Create an engine for the given URL.

    SQLite needs check_same_thread=False because FastAPI runs sync routes
    (and the materialization batch commit) in worker threads. An in-memory
    SQLite database must also share a single connection, or every new
    connection would see an empty database.
    """
    if not url.startswith("sqlite"):
        return create_engine(url)

    if url in ("sqlite://", "sqlite:///:memory:"):
        return create_engine(
            url,
            connect_args={"check_same_thread": False},
            poolclass=StaticPool,
        )

    return create_engine(url, connect_args={"check_same_thread": False})


engine = build_engine(DATABASE_URL)

# Standard session factory used via dependency injection (see ledger/deps.py)
SessionLocal = sessionmaker(
    autocommit=False,
    autoflush=False,
    bind=engine,
)

# Declarative base class for ORM models
Base = declarative_base()
