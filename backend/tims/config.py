# backend/tims/config.py
from __future__ import annotations
import os


def _split_origins(raw: str) -> set[str]:
    return {o.strip() for o in raw.split(",") if o.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/tims.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location (e.g. postgresql://...)
        "sqlite:///tims.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Dashboard origins allowed to call the API from the browser
    CORS_ALLOWED_ORIGINS = _split_origins(os.environ.get(
        "CORS_ALLOWED_ORIGINS",
        "http://localhost:5173,http://127.0.0.1:5173,http://localhost:4173,http://127.0.0.1:4173",
    ))

    # Most-recent-N cap on GET /api/notifications
    NOTIFICATION_LIST_LIMIT = int(os.environ.get("NOTIFICATION_LIST_LIMIT", "50"))

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO").upper()

    # Stock writes re-run on lock/version conflicts before giving up (500)
    STOCK_WRITE_ATTEMPTS = int(os.environ.get("STOCK_WRITE_ATTEMPTS", "5"))
    STOCK_RETRY_BACKOFF_SECONDS = float(os.environ.get("STOCK_RETRY_BACKOFF_SECONDS", "0.1"))
