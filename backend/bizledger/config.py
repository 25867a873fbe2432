# backend/bizledger/config.py
from __future__ import annotations
import os


def _env_int(name: str, default: int) -> int:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return int(raw)


def _env_float(name: str, default: float) -> float:
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    return float(raw)


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite file for local development; point DATABASE_URL at PostgreSQL in production
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///bizledger.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Stock thresholds applied when an item is created without explicit levels
    DEFAULT_MIN_STOCK_LEVEL = _env_int("DEFAULT_MIN_STOCK_LEVEL", 10)

    # Receipt/order numbers render as PREFIX-00001
    DOCUMENT_NUMBER_PAD = _env_int("DOCUMENT_NUMBER_PAD", 5)

    # Caller-side retry for TransactionConflict / DuplicateKey (HTTP layer only)
    LEDGER_RETRY_ATTEMPTS = _env_int("LEDGER_RETRY_ATTEMPTS", 3)
    LEDGER_RETRY_BASE_DELAY = _env_float("LEDGER_RETRY_BASE_DELAY", 0.05)

    DEFAULT_PAGE_SIZE = _env_int("DEFAULT_PAGE_SIZE", 25)
    MAX_PAGE_SIZE = _env_int("MAX_PAGE_SIZE", 200)
