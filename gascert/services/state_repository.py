# gascert/services/state_repository.py
from __future__ import annotations

import logging
from datetime import datetime
from typing import Any

from sqlalchemy.exc import SQLAlchemyError

from gascert.extensions import db
from gascert.models import StoredState

KEY_CLIENTS = "clients"
KEY_CERTIFICATES = "certificates"
KEY_SETTINGS = "settings"
KEY_CERT_COUNTER = "cert_counter"

STATE_KEYS = (KEY_CLIENTS, KEY_CERTIFICATES, KEY_SETTINGS, KEY_CERT_COUNTER)

_MISSING = object()


class StateRepository:
    """
    Key -> JSON document storage backed by the ``app_state`` table.

    Each key is read and rewritten as a whole. Writes commit immediately;
    a failed commit is rolled back and logged, never raised, so the caller's
    in-memory state stays authoritative until the next successful write.
    """

    def __init__(self, logger: logging.Logger | None = None):
        self.logger = logger or logging.getLogger(__name__)

    def load(self, key: str, default: Any = None) -> Any:
        try:
            row = db.session.get(StoredState, key, populate_existing=True)
        except SQLAlchemyError:
            db.session.rollback()
            self.logger.exception("Reading state %r failed", key)
            return default
        if row is None or row.payload is None:
            return default
        return row.payload

    def save(self, key: str, payload: Any) -> bool:
        try:
            row = db.session.get(StoredState, key)
            if row is None:
                row = StoredState(key=key)
                db.session.add(row)
            row.payload = payload
            db.session.commit()
            return True
        except SQLAlchemyError:
            db.session.rollback()
            self.logger.exception("Writing state %r failed", key)
            return False

    def versions(self) -> dict[str, datetime] | None:
        """Last write time per stored key, or None when the table cannot be read."""
        try:
            rows = db.session.execute(db.select(StoredState.key, StoredState.updated_at)).all()
        except SQLAlchemyError:
            db.session.rollback()
            self.logger.exception("Reading state versions failed")
            return None
        return {key: stamp for key, stamp in rows}

    def has(self, key: str) -> bool:
        return self.load(key, _MISSING) is not _MISSING

    def clear(self) -> None:
        try:
            StoredState.query.delete()
            db.session.commit()
        except SQLAlchemyError:
            db.session.rollback()
            self.logger.exception("Clearing state failed")
