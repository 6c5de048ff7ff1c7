# main.py
# Role: Application entry point for the ledger service.
#       Configures logging, creates database tables, registers all route modules,
#       and stops background materialization on shutdown.

"""
Main FastAPI app for the personal finance ledger.

Here we only:
- configure logging
- create DB tables
- include route modules
- stop the per-user materialization schedulers on shutdown
"""

import logging
from contextlib import asynccontextmanager

from fastapi import FastAPI

from db import Base, engine
import models  # noqa: F401  (registers ORM models on Base)
from ledger.config import settings
from ledger.deps import SCHEDULERS
from ledger.routes_root import router as root_router
from ledger.routes_transactions import router as transactions_router
from ledger.routes_recurring import router as recurring_router
from ledger.routes_dashboard import router as dashboard_router


# -------------------------------------------------------------------
# Logging
# -------------------------------------------------------------------

logging.basicConfig(
    format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    level=getattr(logging, settings.log_level, logging.INFO),
)


# -------------------------------------------------------------------
# App & DB setup
# -------------------------------------------------------------------

@asynccontextmanager
async def lifespan(app: FastAPI):
    # Create database tables (only if they don't exist yet).
    Base.metadata.create_all(bind=engine)
    yield
    SCHEDULERS.stop_all()


# FastAPI application instance
app = FastAPI(title="Recurring Ledger", lifespan=lifespan)

# -------------------------------------------------------------------
# Include routers
# -------------------------------------------------------------------

# Health
app.include_router(root_router)

# Transaction list and CRUD
app.include_router(transactions_router)

# Recurring materialization status / trigger
app.include_router(recurring_router)

# Income / expense summary
app.include_router(dashboard_router)
