# backend/furnipos/config.py
from __future__ import annotations
import os


def _env_bool(name: str, default: bool) -> bool:
    value = os.environ.get(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


class Config:
    # Optional "SECRET_KEY", with default dev key
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key-change-me")

    # SQLite DB stored next to the instance by default
    SQLALCHEMY_DATABASE_URI = os.environ.get(
        "DATABASE_URL", #optional alternative location
        "sqlite:///furnipos.sqlite3", #default local location
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Bearer session lifetimes
    SESSION_ABSOLUTE_TIMEOUT_HOURS = int(os.environ.get("SESSION_ABSOLUTE_TIMEOUT_HOURS", "24"))
    SESSION_IDLE_TIMEOUT_HOURS = int(os.environ.get("SESSION_IDLE_TIMEOUT_HOURS", "12"))

    # Notification fan-out
    LOW_STOCK_ALERTS_ENABLED = _env_bool("LOW_STOCK_ALERTS_ENABLED", True)
    NOTIFICATION_OUTBOX_ENABLED = _env_bool("NOTIFICATION_OUTBOX_ENABLED", True)

    # bcrypt cost factor; tests lower it
    BCRYPT_ROUNDS = int(os.environ.get("BCRYPT_ROUNDS", "12"))

    # Used by `flask system init` for the bootstrap owner account
    DEFAULT_OWNER_USERNAME = os.environ.get("DEFAULT_OWNER_USERNAME", "owner")
    DEFAULT_OWNER_PASSWORD = os.environ.get("DEFAULT_OWNER_PASSWORD", "Owner123!")
