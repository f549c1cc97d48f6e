# gascert/utils/passwords.py
from __future__ import annotations

import re
from typing import Tuple

from werkzeug.security import check_password_hash, generate_password_hash

PASSWORD_MIN_LENGTH = 8
HASH_METHOD = "scrypt"


# =========================
# Hashing
# =========================
def hash_password(plain_password: str) -> str:
    """The operator password is only ever stored as a werkzeug scrypt hash."""
    if not isinstance(plain_password, str) or not plain_password.strip():
        raise ValueError("Password must be a non-empty string.")
    return generate_password_hash(plain_password, method=HASH_METHOD)


def verify_password(password_hash: str, plain_password: str) -> bool:
    if not password_hash or not plain_password:
        return False
    try:
        return check_password_hash(password_hash, plain_password)
    except ValueError:
        # Hash copied by hand into the settings document and mangled.
        return False


# =========================
# Policy for new passwords (settings page, set_credentials.py)
# =========================
def validate_password(plain_password: str) -> Tuple[bool, str]:
    """
    Returns (ok, message). Messages are shown to the operator as-is.
    """
    if not isinstance(plain_password, str):
        return False, "La contraseña debe ser texto."

    pw = plain_password.strip()
    if not pw:
        return False, "La contraseña no puede estar vacía."
    if len(pw) < PASSWORD_MIN_LENGTH:
        return False, f"La contraseña debe tener al menos {PASSWORD_MIN_LENGTH} caracteres."
    if not re.search(r"[^\W\d_]", pw):
        return False, "Incluya al menos una letra."
    if not re.search(r"\d", pw):
        return False, "Incluya al menos un número."
    return True, ""
