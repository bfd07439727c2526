# backend/posledger/config.py
from __future__ import annotations
import os


def _env_flag(name: str, default: bool = False) -> bool:
    raw = os.environ.get(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/posledger.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL",
        "sqlite:///posledger.sqlite3",
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Chart-of-accounts codes used when a completed sale is posted
    SALE_CASH_ACCOUNT = os.environ.get("SALE_CASH_ACCOUNT", "11000")
    SALE_INVENTORY_ACCOUNT = os.environ.get("SALE_INVENTORY_ACCOUNT", "13000")
    SALE_REVENUE_ACCOUNT = os.environ.get("SALE_REVENUE_ACCOUNT", "41000")
    SALE_COGS_ACCOUNT = os.environ.get("SALE_COGS_ACCOUNT", "51000")

    # Off by default: approved cancellations leave the sale's entries as posted
    POST_CANCELLATION_REVERSALS = _env_flag("POST_CANCELLATION_REVERSALS")

    DEFAULT_MIN_STOCK = int(os.environ.get("DEFAULT_MIN_STOCK", "10"))
