# routes_recurring.py
"""
Routes for recurring-transaction materialization: status and manual trigger.
"""

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, HTTPException, Query

from ledger.deps import get_schedulers, get_user_id
from ledger.errors import BatchWriteError
from ledger.schemas import MaterializationReport, SchedulerStatus
from ledger.services.scheduler import SchedulerRegistry

router = APIRouter(prefix="/recurring")


@router.post("/materialize", response_model=MaterializationReport)
async def materialize_now(
    as_of: Optional[date] = Query(None),
    user_id: str = Depends(get_user_id),
    schedulers: SchedulerRegistry = Depends(get_schedulers),
):
    """
    Run one materialization pass right away.

    `as_of` defaults to today. Returns 409 if a pass is already running
    for this user and 503 if the generated instances could not be saved.
    """
    scheduler = schedulers.get(user_id)
    as_of = as_of or date.today()

    try:
        result = await scheduler.run_now(as_of)
    except BatchWriteError as e:
        raise HTTPException(status_code=503, detail=f"Recurring transactions could not be saved: {e}")

    if result is None:
        raise HTTPException(status_code=409, detail="A materialization pass is already running")

    return MaterializationReport(
        as_of=as_of.isoformat(),
        created=result.created,
        errors=[str(e) for e in result.errors],
    )


@router.get("/status", response_model=SchedulerStatus)
def materialization_status(
    user_id: str = Depends(get_user_id),
    schedulers: SchedulerRegistry = Depends(get_schedulers),
):
    return schedulers.get(user_id).status()
