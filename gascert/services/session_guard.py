# gascert/services/session_guard.py
from __future__ import annotations

import time
from typing import Callable, MutableMapping

from gascert.models import AuthSettings
from gascert.utils.passwords import verify_password

SESSION_USER_KEY = "user"
SESSION_EXPIRY_KEY = "session_expiry"

STATE_ANONYMOUS = "anonymous"
STATE_AUTHENTICATED = "authenticated"


class SessionGuard:
    """
    Idle-timeout session for the single operator account.

    State lives in ``storage`` (the Flask session in production, a plain dict
    in tests) under two keys: the username and the absolute expiry as epoch
    seconds. ``auth`` is read on every call so settings changes apply to the
    next login or activity.
    """

    def __init__(
        self,
        storage: MutableMapping,
        auth: AuthSettings | Callable[[], AuthSettings],
        clock: Callable[[], float] = time.time,
    ):
        self.storage = storage
        self._auth = auth
        self.clock = clock

    @property
    def auth(self) -> AuthSettings:
        return self._auth() if callable(self._auth) else self._auth

    # ---------------------------------------------------------
    # State
    # ---------------------------------------------------------
    @property
    def username(self) -> str | None:
        return self.storage.get(SESSION_USER_KEY)

    @property
    def expires_at(self) -> float | None:
        raw = self.storage.get(SESSION_EXPIRY_KEY)
        try:
            return float(raw) if raw is not None else None
        except (TypeError, ValueError):
            return None

    @property
    def state(self) -> str:
        if self.username and self.expires_at is not None and self.clock() < self.expires_at:
            return STATE_AUTHENTICATED
        return STATE_ANONYMOUS

    @property
    def is_authenticated(self) -> bool:
        return self.state == STATE_AUTHENTICATED

    # ---------------------------------------------------------
    # Transitions
    # ---------------------------------------------------------
    def login(self, username: str, password: str) -> bool:
        auth = self.auth
        if (username or "") != auth.username or not verify_password(auth.password_hash, password or ""):
            return False

        self.storage[SESSION_USER_KEY] = auth.username
        self._extend()
        return True

    def touch(self) -> bool:
        """Slide the expiry forward after user activity. No-op unless authenticated."""
        if not self.is_authenticated:
            return False
        self._extend()
        return True

    def check(self) -> bool:
        """Expire the session once its deadline has passed. Returns True if still valid."""
        if self.is_authenticated:
            return True
        if self.username is not None or self.expires_at is not None:
            self.logout()
        return False

    def logout(self) -> None:
        self.storage.pop(SESSION_USER_KEY, None)
        self.storage.pop(SESSION_EXPIRY_KEY, None)

    def _extend(self) -> None:
        self.storage[SESSION_EXPIRY_KEY] = self.clock() + int(self.auth.session_timeout)
