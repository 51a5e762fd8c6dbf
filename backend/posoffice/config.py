# backend/posoffice/config.py
from __future__ import annotations
import os


def _csv(value: str) -> set[str]:
    return {item.strip() for item in value.split(",") if item.strip()}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored in backend/instance/posoffice.sqlite3
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///posoffice.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    LOG_LEVEL = os.environ.get("LOG_LEVEL", "INFO")

    # Session tokens
    SESSION_TTL_HOURS = int(os.environ.get("SESSION_TTL_HOURS", "24"))
    SESSION_IDLE_MINUTES = int(os.environ.get("SESSION_IDLE_MINUTES", "120"))
    SESSION_COOKIE_NAME = os.environ.get("SESSION_COOKIE_NAME", "token")

    CORS_ORIGINS = _csv(os.environ.get("CORS_ORIGINS", "http://localhost:3000,http://127.0.0.1:3000"))

    # Bootstrap owner (flask system init)
    OWNER_NAME = os.environ.get("OWNER_NAME", "Owner")
    OWNER_EMAIL = os.environ.get("OWNER_EMAIL", "owner@email.com")
    OWNER_PASSWORD = os.environ.get("OWNER_PASSWORD", "Owner#12345")
    OWNER_PHONE = os.environ.get("OWNER_PHONE", "+6200000000000")

    EXPORT_CURRENCY_FORMAT = os.environ.get("EXPORT_CURRENCY_FORMAT", '"Rp" #,##0')
