# gascert/models.py
from __future__ import annotations

from dataclasses import asdict, dataclass, field, fields
from datetime import date, datetime

from flask_login import UserMixin

from .extensions import db
from .utils.dates import (
    STATUS_CURRENT,
    STATUS_EXPIRED,
    STATUS_NEAR_EXPIRY,
    as_date,
)


# Naive UTC everywhere; the state table stores ISO strings without offset.
def utcnow_naive() -> datetime:
    return datetime.utcnow()


def _parse_dt(value) -> datetime:
    if isinstance(value, datetime):
        return value.replace(tzinfo=None)
    text = str(value).strip()
    if text.endswith("Z"):
        text = text[:-1]
    return datetime.fromisoformat(text).replace(tzinfo=None)


# =========================================================
# Persisted state (key -> JSON document)
# =========================================================
class StoredState(db.Model):
    __tablename__ = "app_state"

    key = db.Column(db.String(64), primary_key=True)
    payload = db.Column(db.JSON, nullable=True)
    updated_at = db.Column(
        db.DateTime,
        nullable=False,
        default=utcnow_naive,
        onupdate=utcnow_naive,
    )

    def __repr__(self) -> str:
        return f"<StoredState {self.key}>"


# =========================================================
# Operator (the single configured login)
# =========================================================
class Operator(UserMixin):
    def __init__(self, username: str):
        self.id = username
        self.username = username

    def __repr__(self) -> str:
        return f"<Operator {self.username}>"


# =========================================================
# Choices
# =========================================================
INSTALLATION_TYPES = {
    "individual": "Individual",
    "comunitaria": "Comunitaria",
}

GAS_TYPES = {
    "natural": "Gas natural",
    "butano": "Butano",
    "propano": "Propano",
}

CERTIFICATE_STATUSES = {
    STATUS_CURRENT: "Vigente",
    STATUS_NEAR_EXPIRY: "Próximo a vencer",
    STATUS_EXPIRED: "Vencido",
}


# =========================================================
# Client
# =========================================================
@dataclass
class Client:
    id: str
    name: str
    phone: str
    email: str
    address: str
    dni: str | None = None
    alt_phone: str | None = None
    notes: str | None = None
    installation_type: str | None = None
    contract_number: str | None = None
    installer_company: str | None = None
    gas_type: str | None = None
    created_at: datetime = field(default_factory=utcnow_naive)
    updated_at: datetime = field(default_factory=utcnow_naive)

    @property
    def installation_label(self) -> str:
        return INSTALLATION_TYPES.get(self.installation_type or "", "No especificado")

    @property
    def gas_label(self) -> str:
        return GAS_TYPES.get(self.gas_type or "", "No especificado")

    def to_dict(self) -> dict:
        data = asdict(self)
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Client":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["created_at"] = _parse_dt(values.get("created_at") or utcnow_naive())
        values["updated_at"] = _parse_dt(values.get("updated_at") or values["created_at"])
        return cls(**values)

    def __repr__(self) -> str:
        return f"<Client {self.id} {self.name}>"


# =========================================================
# Certificate
# =========================================================
@dataclass
class Certificate:
    id: str
    serial_number: str
    client_id: str
    issue_date: date
    expiry_date: date
    technical_notes: str | None = None
    # Cached; always re-derivable from expiry_date + thresholds.
    status: str = STATUS_CURRENT
    created_at: datetime = field(default_factory=utcnow_naive)
    updated_at: datetime = field(default_factory=utcnow_naive)

    @property
    def status_label(self) -> str:
        return CERTIFICATE_STATUSES.get(self.status, self.status)

    @property
    def serial_value(self) -> int:
        try:
            return int(self.serial_number.rsplit("-", 1)[-1])
        except (AttributeError, ValueError):
            return 0

    def to_dict(self) -> dict:
        data = asdict(self)
        data["issue_date"] = self.issue_date.isoformat()
        data["expiry_date"] = self.expiry_date.isoformat()
        data["created_at"] = self.created_at.isoformat()
        data["updated_at"] = self.updated_at.isoformat()
        return data

    @classmethod
    def from_dict(cls, data: dict) -> "Certificate":
        known = {f.name for f in fields(cls)}
        values = {k: v for k, v in data.items() if k in known}
        values["issue_date"] = as_date(values["issue_date"])
        values["expiry_date"] = as_date(values["expiry_date"])
        values["created_at"] = _parse_dt(values.get("created_at") or utcnow_naive())
        values["updated_at"] = _parse_dt(values.get("updated_at") or values["created_at"])
        if values.get("status") not in CERTIFICATE_STATUSES:
            values["status"] = STATUS_CURRENT
        return cls(**values)

    def __repr__(self) -> str:
        return f"<Certificate {self.serial_number} {self.status}>"


# =========================================================
# Settings (singleton)
# =========================================================
@dataclass
class CompanyInfo:
    name: str
    address: str
    phone: str
    email: str
    logo: str | None = None


@dataclass
class AuthSettings:
    username: str
    password_hash: str
    session_timeout: int = 1800  # seconds


@dataclass
class CertificateSettings:
    validity_years: int = 5
    alert_days: list[int] = field(default_factory=lambda: [30, 60, 90])


@dataclass
class AppSettings:
    company: CompanyInfo
    auth: AuthSettings
    certificates: CertificateSettings = field(default_factory=CertificateSettings)

    def to_dict(self) -> dict:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "AppSettings":
        certs = data.get("certificates") or {}
        return cls(
            company=CompanyInfo(**data["company"]),
            auth=AuthSettings(**data["auth"]),
            certificates=CertificateSettings(
                validity_years=int(certs.get("validity_years", 5)),
                alert_days=[int(d) for d in certs.get("alert_days", [30, 60, 90])],
            ),
        )


# =========================================================
# Dashboard statistics (derived)
# =========================================================
@dataclass(frozen=True)
class DashboardStats:
    total_clients: int = 0
    issued_this_month: int = 0
    issued_this_year: int = 0
    upcoming_renewals: int = 0
    current: int = 0
    near_expiry: int = 0
    expired: int = 0

    def to_dict(self) -> dict:
        return asdict(self)
