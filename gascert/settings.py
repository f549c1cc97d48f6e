# gascert/settings.py
from __future__ import annotations

import os

DEFAULT_SQLITE_FILE = "gascert.db"


def _normalize_db_url(url: str | None) -> str | None:
    """Point bare postgres URLs at the psycopg2 driver; anything else passes through."""
    if not url or not url.strip():
        return None
    u = url.strip()
    for prefix in ("postgres://", "postgresql://"):
        if u.startswith(prefix):
            return "postgresql+psycopg2://" + u[len(prefix):]
    return u


def _database_uri() -> str:
    # SQLALCHEMY_DATABASE_URI wins over DATABASE_URL; local SQLite otherwise.
    return (
        _normalize_db_url(os.environ.get("SQLALCHEMY_DATABASE_URI"))
        or _normalize_db_url(os.environ.get("DATABASE_URL"))
        or "sqlite:///" + os.path.abspath(DEFAULT_SQLITE_FILE)
    )


def _int_env(name: str, default: int) -> int:
    try:
        return int(os.environ.get(name, default))
    except (TypeError, ValueError):
        return default


class Config:
    SECRET_KEY = os.environ.get("SECRET_KEY", "dev-secret-key")

    # ======================
    # Database (key/value state table)
    # ======================
    SQLALCHEMY_DATABASE_URI = _database_uri()
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # ======================
    # Certificates
    # ======================
    # Seconds of runtime between two automatic status passes.
    STATUS_REFRESH_SECONDS = _int_env("STATUS_REFRESH_SECONDS", 86400)

    # First serial number handed out when no counter is stored yet.
    CERT_SERIAL_BASE = _int_env("CERT_SERIAL_BASE", 1001)

    # Behind a TLS-terminating proxy in production.
    PREFERRED_URL_SCHEME = os.environ.get("PREFERRED_URL_SCHEME", "https")
