# ledger/services/summary.py
"""
Income / expense totals and spending by category.

Only ledger entries are summed; recurring templates describe a schedule, and
their occurrences are already present as materialized entries.
"""

from __future__ import annotations

from datetime import date
from typing import Iterable, Optional

import pandas as pd

from ledger.schemas import CategorySpending, LedgerSummary, TransactionRead


def _ledger_frame(transactions: Iterable[TransactionRead]) -> pd.DataFrame:
    rows = [
        {"date": tx.date, "type": tx.type, "category": tx.category or "Uncategorized", "amount": tx.amount}
        for tx in transactions
        if not tx.is_recurring
    ]
    df = pd.DataFrame(rows, columns=["date", "type", "category", "amount"])
    df["date"] = pd.to_datetime(df["date"], format="%Y-%m-%d", errors="coerce")
    df["amount"] = pd.to_numeric(df["amount"], errors="coerce").fillna(0.0)
    return df


def build_summary(
    transactions: Iterable[TransactionRead],
    start: Optional[date] = None,
    end_exclusive: Optional[date] = None,
    month: Optional[str] = None,
) -> LedgerSummary:
    df = _ledger_frame(transactions)

    if start is not None:
        df = df[df["date"] >= pd.Timestamp(start)]
    if end_exclusive is not None:
        df = df[df["date"] < pd.Timestamp(end_exclusive)]

    income = float(df.loc[df["type"] == "income", "amount"].sum())
    expenses_df = df[df["type"] == "expense"]
    expenses = float(expenses_df["amount"].sum())

    by_category = (
        expenses_df.groupby("category")["amount"]
        .sum()
        .sort_values(ascending=False)
    )

    return LedgerSummary(
        month=month,
        total_income=income,
        total_expenses=expenses,
        net_balance=income - expenses,
        spending_by_category=[
            CategorySpending(category=str(cat), amount=float(amt))
            for cat, amt in by_category.items()
        ],
    )
