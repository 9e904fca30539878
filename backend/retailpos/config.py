# backend/retailpos/config.py
from __future__ import annotations
import os


def _csv(value: str | None) -> set[str]:
    if not value:
        return set()
    return {part.strip() for part in value.split(",") if part.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/retailpos.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///retailpos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Invoice issuance: bounded retry for transient conflicts and number collisions
    ISSUANCE_MAX_ATTEMPTS = int(os.environ.get("ISSUANCE_MAX_ATTEMPTS", "3"))
    ISSUANCE_BACKOFF_BASE = float(os.environ.get("ISSUANCE_BACKOFF_BASE", "0.1"))

    CORS_ALLOWED_ORIGINS = _csv(os.environ.get("CORS_ALLOWED_ORIGINS")) or {
        "http://localhost:5173",
        "http://127.0.0.1:5173",
        "http://localhost:4173",
        "http://127.0.0.1:4173",
    }
