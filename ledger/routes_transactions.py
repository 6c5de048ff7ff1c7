# routes_transactions.py
"""
Routes for the transaction list and transaction CRUD.
"""

import asyncio
from typing import List

from fastapi import APIRouter, Depends, HTTPException, Response

from ledger.deps import get_repository, get_schedulers, get_user_id
from ledger.errors import TransactionNotFound
from ledger.repository import TransactionRepository
from ledger.schemas import TransactionCreate, TransactionRead
from ledger.services.normalizer import normalize, normalize_all
from ledger.services.records import prepare_record
from ledger.services.scheduler import SchedulerRegistry

router = APIRouter()


def _owned_record(repo: TransactionRepository, transaction_id: int, user_id: str) -> dict:
    record = repo.get(transaction_id)
    if record is None:
        raise HTTPException(status_code=404, detail="Transaction not found")
    if record.get("userId") != user_id:
        raise HTTPException(status_code=403, detail="This transaction does not belong to you")
    return record


@router.get("/transactions", response_model=List[TransactionRead])
async def list_transactions(
    user_id: str = Depends(get_user_id),
    repo: TransactionRepository = Depends(get_repository),
    schedulers: SchedulerRegistry = Depends(get_schedulers),
):
    """
    Current transaction list (templates and ledger entries), newest first.

    The first request for a user also starts that user's background
    materialization, which keeps the list up to date from then on.
    """
    await schedulers.ensure_started(user_id)
    records = await asyncio.to_thread(repo.list_for_user, user_id)
    return normalize_all(records)


@router.get("/transactions/{transaction_id}", response_model=TransactionRead)
def get_transaction(
    transaction_id: int,
    user_id: str = Depends(get_user_id),
    repo: TransactionRepository = Depends(get_repository),
):
    return normalize(_owned_record(repo, transaction_id, user_id))


@router.post("/transactions", response_model=TransactionRead, status_code=201)
def create_transaction(
    payload: TransactionCreate,
    user_id: str = Depends(get_user_id),
    repo: TransactionRepository = Depends(get_repository),
):
    created = repo.create(prepare_record(payload, user_id))
    return normalize(created)


@router.put("/transactions/{transaction_id}", response_model=TransactionRead)
def update_transaction(
    transaction_id: int,
    payload: TransactionCreate,
    user_id: str = Depends(get_user_id),
    repo: TransactionRepository = Depends(get_repository),
):
    _owned_record(repo, transaction_id, user_id)
    fields = prepare_record(payload, user_id)
    try:
        updated = repo.update(transaction_id, fields)
    except TransactionNotFound:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return normalize(updated)


@router.delete("/transactions/{transaction_id}", status_code=204)
def delete_transaction(
    transaction_id: int,
    user_id: str = Depends(get_user_id),
    repo: TransactionRepository = Depends(get_repository),
):
    _owned_record(repo, transaction_id, user_id)
    try:
        repo.delete(transaction_id)
    except TransactionNotFound:
        raise HTTPException(status_code=404, detail="Transaction not found")
    return Response(status_code=204)
