# gascert/utils/validation.py
"""
Form validation for clients, certificates and settings.

Each validator takes the submitted form mapping and returns
``(cleaned, errors)``: ``cleaned`` holds normalized values ready for the
store, ``errors`` maps field name -> message. Callers must not mutate
anything when ``errors`` is non-empty.
"""

from __future__ import annotations

import re
from datetime import date
from typing import Callable, Mapping

from gascert.models import GAS_TYPES, INSTALLATION_TYPES
from .passwords import validate_password

PHONE_RE = re.compile(r"^\d{9}$")
EMAIL_RE = re.compile(r"\S+@\S+\.\S+")

NAME_MAXLEN = 160
ADDRESS_MAXLEN = 255
NOTES_MAXLEN = 2000


def _clean_str(value: str | None) -> str:
    return (value or "").strip()


def _optional(value: str | None) -> str | None:
    return _clean_str(value) or None


def _parse_date(val):
    try:
        if not val:
            return None
        return date.fromisoformat(str(val).strip())
    except (TypeError, ValueError):
        return None


def _parse_int(val):
    try:
        if val is None or str(val).strip() == "":
            return None
        return int(str(val).strip())
    except (TypeError, ValueError):
        return None


def parse_alert_days(raw: str | None) -> tuple[list[int], list[str]]:
    """'30, 60, x' -> ([30, 60], ['x']). Blank entries are ignored."""
    days, invalid = [], []
    for part in (raw or "").split(","):
        part = part.strip()
        if not part:
            continue
        value = _parse_int(part)
        if value is None:
            invalid.append(part)
        else:
            days.append(value)
    return days, invalid


# =========================================================
# Client
# =========================================================
def validate_client_form(form: Mapping) -> tuple[dict, dict]:
    data = {
        "name": _clean_str(form.get("name")),
        "phone": _clean_str(form.get("phone")),
        "email": _clean_str(form.get("email")).lower(),
        "address": _clean_str(form.get("address")),
        "dni": _optional(form.get("dni")),
        "alt_phone": _optional(form.get("alt_phone")),
        "notes": _optional(form.get("notes")),
        "installation_type": _optional(form.get("installation_type")),
        "contract_number": _optional(form.get("contract_number")),
        "installer_company": _optional(form.get("installer_company")),
        "gas_type": _optional(form.get("gas_type")),
    }
    errors: dict[str, str] = {}

    if not data["name"]:
        errors["name"] = "El nombre es obligatorio"
    elif len(data["name"]) > NAME_MAXLEN:
        errors["name"] = f"El nombre es demasiado largo (máx. {NAME_MAXLEN})"

    if not data["phone"]:
        errors["phone"] = "El teléfono es obligatorio"
    elif not PHONE_RE.match(data["phone"]):
        errors["phone"] = "El teléfono debe tener 9 dígitos"

    if not data["email"]:
        errors["email"] = "El email es obligatorio"
    elif not EMAIL_RE.search(data["email"]):
        errors["email"] = "El email no es válido"

    if not data["address"]:
        errors["address"] = "La dirección es obligatoria"
    elif len(data["address"]) > ADDRESS_MAXLEN:
        errors["address"] = f"La dirección es demasiado larga (máx. {ADDRESS_MAXLEN})"

    if data["alt_phone"] and not PHONE_RE.match(data["alt_phone"]):
        errors["alt_phone"] = "El teléfono alternativo debe tener 9 dígitos"

    if data["installation_type"] and data["installation_type"] not in INSTALLATION_TYPES:
        errors["installation_type"] = "Tipo de instalación no válido"

    if data["gas_type"] and data["gas_type"] not in GAS_TYPES:
        errors["gas_type"] = "Tipo de gas no válido"

    if data["notes"] and len(data["notes"]) > NOTES_MAXLEN:
        errors["notes"] = f"Las observaciones son demasiado largas (máx. {NOTES_MAXLEN})"

    return data, errors


# =========================================================
# Certificate
# =========================================================
def validate_certificate_form(
    form: Mapping,
    client_exists: Callable[[str], bool],
) -> tuple[dict, dict]:
    raw_issue = _clean_str(form.get("issue_date"))
    data = {
        "client_id": _clean_str(form.get("client_id")),
        "issue_date": _parse_date(raw_issue),
        "technical_notes": _optional(form.get("technical_notes")),
    }
    errors: dict[str, str] = {}

    if not data["client_id"]:
        errors["client_id"] = "Debe seleccionar un cliente"
    elif not client_exists(data["client_id"]):
        errors["client_id"] = "El cliente seleccionado no existe"

    if not raw_issue:
        errors["issue_date"] = "La fecha de emisión es obligatoria"
    elif data["issue_date"] is None:
        errors["issue_date"] = "La fecha de emisión no es válida"

    if data["technical_notes"] and len(data["technical_notes"]) > NOTES_MAXLEN:
        errors["technical_notes"] = f"Las observaciones son demasiado largas (máx. {NOTES_MAXLEN})"

    return data, errors


# =========================================================
# Settings
# =========================================================
def validate_settings_form(form: Mapping) -> tuple[dict, dict]:
    alert_days, invalid_days = parse_alert_days(form.get("alert_days"))
    data = {
        "company": {
            "name": _clean_str(form.get("company_name")),
            "address": _clean_str(form.get("company_address")),
            "phone": _clean_str(form.get("company_phone")),
            "email": _clean_str(form.get("company_email")).lower(),
            "logo": _optional(form.get("company_logo")),
        },
        "username": _clean_str(form.get("username")),
        "session_timeout": _parse_int(form.get("session_timeout")),
        "new_password": form.get("new_password") or "",
        "validity_years": _parse_int(form.get("validity_years")),
        "alert_days": sorted(set(alert_days)),
    }
    errors: dict[str, str] = {}

    if not data["company"]["name"]:
        errors["company_name"] = "El nombre de la empresa es obligatorio"

    if data["company"]["email"] and not EMAIL_RE.search(data["company"]["email"]):
        errors["company_email"] = "El email no es válido"

    if not data["username"]:
        errors["username"] = "El usuario es obligatorio"

    if data["session_timeout"] is None or data["session_timeout"] < 60:
        errors["session_timeout"] = "El tiempo de sesión debe ser de al menos 60 segundos"

    if data["new_password"]:
        ok, msg = validate_password(data["new_password"])
        if not ok:
            errors["new_password"] = msg

    if data["validity_years"] is None or data["validity_years"] < 1:
        errors["validity_years"] = "La validez debe ser de al menos 1 año"

    if invalid_days:
        errors["alert_days"] = "Días de alerta no válidos: " + ", ".join(invalid_days)
    elif not data["alert_days"]:
        errors["alert_days"] = "Indique al menos un día de alerta"
    elif any(d <= 0 for d in data["alert_days"]):
        errors["alert_days"] = "Los días de alerta deben ser positivos"

    return data, errors
