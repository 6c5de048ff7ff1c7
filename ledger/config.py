# ledger/config.py
# Role: Runtime settings for the ledger service.
#       Reads environment variables (optionally from a .env file) once at import time.

from __future__ import annotations

import os
from dataclasses import dataclass

from dotenv import load_dotenv

load_dotenv()

# Project root (one level above this package)
BASE_DIR = os.path.dirname(os.path.dirname(os.path.abspath(__file__)))

# Folder for the default SQLite DB
DB_DIR = os.path.join(BASE_DIR, "database")


def _env_truthy(name: str, default: str = "0") -> bool:
    v = os.getenv(name, default)
    return str(v).strip().lower() in ("1", "true", "yes", "y", "on")


def _env_float(name: str, default: float) -> float:
    try:
        return float(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


def _env_int(name: str, default: int) -> int:
    try:
        return int(os.getenv(name, default))
    except (TypeError, ValueError):
        return default


@dataclass(frozen=True)
class Settings:
    database_url: str
    auto_materialize: bool = True
    debounce_seconds: float = 0.5
    max_occurrences: int = 5000
    log_level: str = "INFO"


def load_settings() -> Settings:
    default_url = f"sqlite:///{os.path.join(DB_DIR, 'ledger.db')}"
    return Settings(
        database_url=os.getenv("DATABASE_URL", default_url),
        auto_materialize=_env_truthy("AUTO_MATERIALIZE", "1"),
        debounce_seconds=max(0.0, _env_float("MATERIALIZE_DEBOUNCE_SECONDS", 0.5)),
        max_occurrences=max(1, _env_int("MAX_OCCURRENCES_PER_TEMPLATE", 5000)),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


settings = load_settings()
