# gascert/services/sample_data.py
from __future__ import annotations

import uuid
from copy import deepcopy
from datetime import date

from gascert.config.company import COMPANY_PROFILE
from gascert.models import (
    AppSettings,
    AuthSettings,
    Certificate,
    CertificateSettings,
    Client,
    CompanyInfo,
    utcnow_naive,
)
from gascert.utils.dates import expiry_date
from gascert.utils.passwords import hash_password

DEFAULT_USERNAME = "gestion"
DEFAULT_PASSWORD = "gestion123"
DEFAULT_SESSION_TIMEOUT = 1800

DEFAULT_SETTINGS = {
    "company": {
        "name": COMPANY_PROFILE["name"],
        "address": COMPANY_PROFILE["address"],
        "phone": COMPANY_PROFILE["phone"],
        "email": COMPANY_PROFILE["email"],
        "logo": COMPANY_PROFILE["logo"],
    },
    "certificates": {
        "validity_years": 5,
        "alert_days": [30, 60, 90],
    },
}


def default_settings() -> AppSettings:
    base = deepcopy(DEFAULT_SETTINGS)
    return AppSettings(
        company=CompanyInfo(**base["company"]),
        auth=AuthSettings(
            username=DEFAULT_USERNAME,
            password_hash=hash_password(DEFAULT_PASSWORD),
            session_timeout=DEFAULT_SESSION_TIMEOUT,
        ),
        certificates=CertificateSettings(**base["certificates"]),
    )


def sample_clients() -> list[Client]:
    now = utcnow_naive()
    return [
        Client(
            id=str(uuid.uuid4()),
            name="Cliente Ejemplo",
            phone="600123456",
            email="cliente@ejemplo.com",
            address="Calle Ejemplo 1, 28001 Madrid",
            dni="12345678A",
            installation_type="individual",
            gas_type="natural",
            created_at=now,
            updated_at=now,
        )
    ]


def sample_certificates(
    clients: list[Client],
    serial: int,
    validity_years: int = 5,
    issued: date | None = None,
) -> list[Certificate]:
    if not clients:
        return []

    now = utcnow_naive()
    issued = issued or date.today()
    return [
        Certificate(
            id=str(uuid.uuid4()),
            serial_number=f"CERT-{serial}",
            client_id=clients[0].id,
            issue_date=issued,
            expiry_date=expiry_date(issued, validity_years),
            technical_notes="Instalación en buen estado general.",
            created_at=now,
            updated_at=now,
        )
    ]
