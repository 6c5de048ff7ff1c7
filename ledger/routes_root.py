# routes_root.py
"""
Root / basic endpoints (health).
"""

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from ledger.deps import get_db

router = APIRouter()


@router.get("/")
def read_root(db: Session = Depends(get_db)):
    """
    Simple health check: the app is up and the database answers.
    """
    db.execute(text("SELECT 1"))
    return {"message": "Ledger service is running"}
