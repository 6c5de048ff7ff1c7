# ledger/routes_dashboard.py

from typing import Optional

from fastapi import APIRouter, Depends, Query

from .deps import get_repository, get_user_id
from ledger.repository import TransactionRepository
from ledger.schemas import LedgerSummary
from ledger.services.normalizer import normalize_all
from ledger.services.records import get_month_range
from ledger.services.summary import build_summary

router = APIRouter()


@router.get("/summary", response_model=LedgerSummary)
def summary(
    month: Optional[str] = Query(None),
    all_time: bool = Query(False),
    user_id: str = Depends(get_user_id),
    repo: TransactionRepository = Depends(get_repository),
):
    transactions = normalize_all(repo.list_for_user(user_id))

    if all_time:
        return build_summary(transactions)

    # Month range: [month_start, next_month_start), current month by default
    month_start, next_month_start, normalized_month = get_month_range(month)
    return build_summary(
        transactions,
        start=month_start,
        end_exclusive=next_month_start,
        month=normalized_month,
    )
