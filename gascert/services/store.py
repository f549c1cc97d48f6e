# gascert/services/store.py
"""
In-memory domain store for clients and certificates.

The store owns the working collections and mirrors each one to the
``StateRepository`` after every change. Certificate status is a cache: the
only place it is computed is ``_derive_status`` (via ``classify_status``),
which every mutation and the periodic pass go through.
"""

from __future__ import annotations

import logging
import threading
import uuid
from dataclasses import replace
from datetime import date, datetime
from typing import Callable, Iterable

from flask import current_app

from gascert.models import (
    CERTIFICATE_STATUSES,
    AppSettings,
    Certificate,
    Client,
    DashboardStats,
    utcnow_naive,
)
from gascert.utils.dates import (
    STATUS_CURRENT,
    STATUS_EXPIRED,
    STATUS_NEAR_EXPIRY,
    classify_status,
    expiry_date,
    last_months,
    month_label,
)

from .sample_data import default_settings, sample_certificates, sample_clients
from .state_repository import (
    KEY_CERT_COUNTER,
    KEY_CERTIFICATES,
    KEY_CLIENTS,
    KEY_SETTINGS,
    StateRepository,
)

SERIAL_PREFIX = "CERT-"
EXTENSION_KEY = "gascert_store"


def get_store() -> "CertificateStore":
    """The store registered on the current Flask app."""
    store = current_app.extensions[EXTENSION_KEY]
    store.ensure_loaded()
    return store


class CertificateStore:
    def __init__(
        self,
        repository: StateRepository,
        serial_base: int = 1001,
        refresh_interval: int = 86400,
        logger: logging.Logger | None = None,
        clock: Callable[[], datetime] | None = None,
    ):
        self.repository = repository
        self.serial_base = serial_base
        self.refresh_interval = refresh_interval
        self.logger = logger or logging.getLogger(__name__)
        self.clock = clock or datetime.now

        self.clients: list[Client] = []
        self.certificates: list[Certificate] = []
        self.settings: AppSettings | None = None
        self.next_serial = serial_base

        self._stats = DashboardStats()
        self._last_refresh: datetime | None = None
        self._loaded = False
        # Last seen write stamp per stored key; another process changing one triggers a reload.
        self._versions: dict[str, datetime] = {}
        self._lock = threading.RLock()

    # =========================================================
    # Loading
    # =========================================================
    def ensure_loaded(self) -> None:
        with self._lock:
            if not self._loaded:
                self.load()

    def sync(self) -> bool:
        """
        Reload when another process (a second worker, the CLI,
        set_credentials.py) wrote to the state table since this store last
        read or wrote it. Returns True when the store was (re)loaded.
        """
        with self._lock:
            if not self._loaded:
                self.load()
                return True

            current = self.repository.versions()
            if current is None or current == self._versions:
                return False

            self.logger.info("Stored state changed outside this process; reloading")
            self.load()
            return True

    def load(self) -> None:
        """Read all four documents, falling back to defaults when absent or malformed."""
        with self._lock:
            self._versions = self.repository.versions() or {}
            self.settings = self._load_settings()
            self.clients = self._load_clients()
            self.certificates = self._load_certificates()
            self.next_serial = self._load_counter()
            self._loaded = True

            self.refresh_statuses()
            self.logger.info(
                "Store loaded: %d clients, %d certificates, next serial %s%d",
                len(self.clients),
                len(self.certificates),
                SERIAL_PREFIX,
                self.next_serial,
            )

    def _load_settings(self) -> AppSettings:
        raw = self.repository.load(KEY_SETTINGS)
        if raw is not None:
            try:
                return AppSettings.from_dict(raw)
            except (KeyError, TypeError, ValueError, AttributeError):
                self.logger.warning("Stored settings are malformed; using defaults")

        settings = default_settings()
        self._save(KEY_SETTINGS, settings.to_dict())
        return settings

    def _load_clients(self) -> list[Client]:
        raw = self.repository.load(KEY_CLIENTS)
        if raw is not None:
            try:
                return [Client.from_dict(item) for item in raw]
            except (KeyError, TypeError, ValueError, AttributeError):
                self.logger.warning("Stored clients are malformed; loading sample data")

        clients = sample_clients()
        self._persist_clients(clients)
        return clients

    def _load_certificates(self) -> list[Certificate]:
        raw = self.repository.load(KEY_CERTIFICATES)
        if raw is not None:
            try:
                return [Certificate.from_dict(item) for item in raw]
            except (KeyError, TypeError, ValueError, AttributeError):
                self.logger.warning("Stored certificates are malformed; loading sample data")

        certificates = sample_certificates(
            self.clients,
            serial=self.serial_base,
            validity_years=self.settings.certificates.validity_years,
            issued=self.today(),
        )
        self._persist_certificates(certificates)
        return certificates

    def _load_counter(self) -> int:
        raw = self.repository.load(KEY_CERT_COUNTER)
        try:
            counter = int(raw) if raw is not None else self.serial_base
        except (TypeError, ValueError):
            self.logger.warning("Stored serial counter %r is malformed; recalculating", raw)
            counter = self.serial_base

        # Never hand out a serial that is already in use.
        highest = max((c.serial_value for c in self.certificates), default=0)
        counter = max(counter, highest + 1)
        if counter != raw:
            self._save(KEY_CERT_COUNTER, counter)
        return counter

    # =========================================================
    # Persistence helpers
    # =========================================================
    def _save(self, key: str, payload) -> None:
        if self.repository.save(key, payload):
            stamp = (self.repository.versions() or {}).get(key)
            if stamp is not None:
                self._versions[key] = stamp

    def _persist_clients(self, clients: Iterable[Client] | None = None) -> None:
        items = self.clients if clients is None else clients
        self._save(KEY_CLIENTS, [c.to_dict() for c in items])

    def _persist_certificates(self, certificates: Iterable[Certificate] | None = None) -> None:
        items = self.certificates if certificates is None else certificates
        self._save(KEY_CERTIFICATES, [c.to_dict() for c in items])

    def _persist_counter(self) -> None:
        self._save(KEY_CERT_COUNTER, self.next_serial)

    def _persist_settings(self) -> None:
        self._save(KEY_SETTINGS, self.settings.to_dict())

    # =========================================================
    # Derived state
    # =========================================================
    def today(self) -> date:
        return self.clock().date()

    @property
    def alert_days(self) -> list[int]:
        return list(self.settings.certificates.alert_days)

    @property
    def validity_years(self) -> int:
        return self.settings.certificates.validity_years

    def _derive_status(self, certificate: Certificate, today: date | None = None) -> str:
        return classify_status(certificate.expiry_date, self.alert_days, today or self.today())

    def refresh_statuses(self, today: date | None = None) -> int:
        """Recompute every certificate's status. Returns how many changed."""
        with self._lock:
            today = today or self.today()
            changed = 0
            for cert in self.certificates:
                status = self._derive_status(cert, today)
                if cert.status != status:
                    cert.status = status
                    changed += 1

            if changed:
                self._persist_certificates()
                self.logger.info("Status pass updated %d certificate(s)", changed)

            self._last_refresh = self.clock()
            self._refresh_stats(today)
            return changed

    def refresh_if_due(self, now: datetime | None = None) -> bool:
        """Run the status pass when ``refresh_interval`` seconds have passed since the last one."""
        with self._lock:
            now = now or self.clock()
            last = self._last_refresh
            if last is not None and (now - last).total_seconds() < self.refresh_interval:
                return False
            self.refresh_statuses(now.date())
            return True

    def compute_stats(self, today: date | None = None) -> DashboardStats:
        today = today or self.today()
        this_year = [c for c in self.certificates if c.issue_date.year == today.year]
        this_month = [c for c in this_year if c.issue_date.month == today.month]
        by_status = {status: 0 for status in CERTIFICATE_STATUSES}
        for cert in self.certificates:
            by_status[cert.status] = by_status.get(cert.status, 0) + 1

        return DashboardStats(
            total_clients=len(self.clients),
            issued_this_month=len(this_month),
            issued_this_year=len(this_year),
            upcoming_renewals=by_status[STATUS_NEAR_EXPIRY],
            current=by_status[STATUS_CURRENT],
            near_expiry=by_status[STATUS_NEAR_EXPIRY],
            expired=by_status[STATUS_EXPIRED],
        )

    def _refresh_stats(self, today: date | None = None) -> None:
        self._stats = self.compute_stats(today)

    @property
    def stats(self) -> DashboardStats:
        return self._stats

    # =========================================================
    # Clients
    # =========================================================
    def get_client(self, client_id: str) -> Client | None:
        return next((c for c in self.clients if c.id == client_id), None)

    def add_client(self, data: dict) -> Client:
        with self._lock:
            now = utcnow_naive()
            client = Client(id=str(uuid.uuid4()), created_at=now, updated_at=now, **data)
            self.clients.append(client)
            self._refresh_stats()
            self._persist_clients()
            self.logger.info("Client %s created", client.id)
            return client

    def update_client(self, client: Client) -> Client | None:
        with self._lock:
            for idx, existing in enumerate(self.clients):
                if existing.id == client.id:
                    updated = replace(client, created_at=existing.created_at, updated_at=utcnow_naive())
                    self.clients[idx] = updated
                    self._refresh_stats()
                    self._persist_clients()
                    return updated
            return None

    def delete_client(self, client_id: str) -> bool:
        with self._lock:
            if self.get_client(client_id) is None:
                return False

            self.clients = [c for c in self.clients if c.id != client_id]
            before = len(self.certificates)
            self.certificates = [c for c in self.certificates if c.client_id != client_id]
            removed = before - len(self.certificates)

            self._refresh_stats()
            self._persist_clients()
            self._persist_certificates()
            self.logger.info("Client %s deleted with %d certificate(s)", client_id, removed)
            return True

    def search_clients(self, term: str | None = None) -> list[Client]:
        needle = (term or "").strip().lower()
        if not needle:
            return list(self.clients)
        return [
            c
            for c in self.clients
            if needle in c.name.lower()
            or needle in c.phone
            or needle in c.email.lower()
            or needle in c.address.lower()
            or (c.dni and needle in c.dni.lower())
        ]

    # =========================================================
    # Certificates
    # =========================================================
    def get_certificate(self, certificate_id: str) -> Certificate | None:
        return next((c for c in self.certificates if c.id == certificate_id), None)

    def certificates_for_client(self, client_id: str) -> list[Certificate]:
        certs = [c for c in self.certificates if c.client_id == client_id]
        return sorted(certs, key=lambda c: c.issue_date, reverse=True)

    def add_certificate(self, data: dict) -> Certificate:
        """
        Issue a certificate. ``data`` carries client_id, issue_date and
        optionally technical_notes and expiry_date (computed when missing).
        """
        with self._lock:
            now = utcnow_naive()
            issue = data["issue_date"]
            cert = Certificate(
                id=str(uuid.uuid4()),
                serial_number=f"{SERIAL_PREFIX}{self.next_serial}",
                client_id=data["client_id"],
                issue_date=issue,
                expiry_date=data.get("expiry_date") or expiry_date(issue, self.validity_years),
                technical_notes=data.get("technical_notes"),
                created_at=now,
                updated_at=now,
            )
            cert.status = self._derive_status(cert)

            self.certificates.append(cert)
            self.next_serial += 1

            self._persist_certificates()
            self._persist_counter()
            self._refresh_stats()
            self.logger.info("Certificate %s issued for client %s", cert.serial_number, cert.client_id)
            return cert

    def update_certificate(self, certificate: Certificate) -> Certificate | None:
        with self._lock:
            for idx, existing in enumerate(self.certificates):
                if existing.id == certificate.id:
                    updated = replace(certificate, created_at=existing.created_at, updated_at=utcnow_naive())
                    updated.status = self._derive_status(updated)
                    self.certificates[idx] = updated
                    self._refresh_stats()
                    self._persist_certificates()
                    return updated
            return None

    def delete_certificate(self, certificate_id: str) -> bool:
        with self._lock:
            before = len(self.certificates)
            self.certificates = [c for c in self.certificates if c.id != certificate_id]
            if len(self.certificates) == before:
                return False
            self._refresh_stats()
            self._persist_certificates()
            self.logger.info("Certificate %s deleted", certificate_id)
            return True

    def renew_certificate(self, certificate_id: str) -> Certificate | None:
        """
        Issue a follow-up certificate for the same client starting today.
        The original certificate is left untouched.
        """
        with self._lock:
            original = self.get_certificate(certificate_id)
            if original is None:
                return None

            today = self.today()
            renewed = self.add_certificate(
                {
                    "client_id": original.client_id,
                    "issue_date": today,
                    "expiry_date": expiry_date(today, self.validity_years),
                    "technical_notes": original.technical_notes,
                }
            )
            self.logger.info("Certificate %s renewed as %s", original.serial_number, renewed.serial_number)
            return renewed

    def search_certificates(self, term: str | None = None, status: str | None = None) -> list[Certificate]:
        """Filter by status and free text (serial, client name/phone/dni); newest issue first."""
        certs = list(self.certificates)

        if status and status in CERTIFICATE_STATUSES:
            certs = [c for c in certs if c.status == status]

        needle = (term or "").strip().lower()
        if needle:
            clients = {c.id: c for c in self.clients}

            def matches(cert: Certificate) -> bool:
                if needle in cert.serial_number.lower():
                    return True
                client = clients.get(cert.client_id)
                if client is None:
                    return False
                return (
                    needle in client.name.lower()
                    or needle in client.phone
                    or bool(client.dni and needle in client.dni.lower())
                )

            certs = [c for c in certs if matches(c)]

        return sorted(certs, key=lambda c: (c.issue_date, c.serial_value), reverse=True)

    def upcoming_expiries(self, limit: int = 5) -> list[Certificate]:
        near = [c for c in self.certificates if c.status == STATUS_NEAR_EXPIRY]
        return sorted(near, key=lambda c: c.expiry_date)[:limit]

    def monthly_issued(self, months: int = 6, today: date | None = None) -> list[tuple[str, int]]:
        series = []
        for month in last_months(months, today or self.today()):
            count = sum(
                1
                for c in self.certificates
                if c.issue_date.year == month.year and c.issue_date.month == month.month
            )
            series.append((month_label(month), count))
        return series

    def status_breakdown(self) -> list[tuple[str, str, int]]:
        stats = self._stats
        counts = {
            STATUS_CURRENT: stats.current,
            STATUS_NEAR_EXPIRY: stats.near_expiry,
            STATUS_EXPIRED: stats.expired,
        }
        return [(status, label, counts[status]) for status, label in CERTIFICATE_STATUSES.items()]

    # =========================================================
    # Settings
    # =========================================================
    def update_settings(self, settings: AppSettings) -> AppSettings:
        with self._lock:
            previous = self.alert_days
            self.settings = settings
            self._persist_settings()
            if sorted(previous) != sorted(settings.certificates.alert_days):
                self.refresh_statuses()
            self.logger.info("Settings updated")
            return settings

    def reset(self) -> None:
        """Drop all stored state and reload defaults plus sample data."""
        with self._lock:
            self.repository.clear()
            self._loaded = False
            self._last_refresh = None
            self.load()
