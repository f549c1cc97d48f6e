"""
Pytest configuration and fixtures for the gas certificate back-office.

Two flavours of fixtures:
- ``store`` / ``repo``: a CertificateStore over an in-memory repository with a
  pinned clock, for pure domain tests (no Flask app needed).
- ``app`` / ``client`` / ``auth_client``: the real app on in-memory SQLite.
"""

import os
from datetime import date, datetime

import pytest

os.environ.setdefault("SECRET_KEY", "test-secret-key")

from gascert import create_app
from gascert.extensions import db
from gascert.services.sample_data import DEFAULT_PASSWORD, DEFAULT_USERNAME
from gascert.services.store import CertificateStore, get_store

TODAY = date(2026, 10, 19)
NOW = datetime(2026, 10, 19, 10, 30)


class MemoryRepository:
    """Same interface as StateRepository, backed by a dict."""

    def __init__(self, initial=None):
        self.data = dict(initial or {})
        self.writes = []
        self.stamps = {key: 0 for key in self.data}

    def load(self, key, default=None):
        value = self.data.get(key)
        return default if value is None else value

    def save(self, key, payload):
        self.data[key] = payload
        self.writes.append(key)
        self.stamps[key] = self.stamps.get(key, 0) + 1
        return True

    def versions(self):
        return dict(self.stamps)

    def has(self, key):
        return key in self.data

    def clear(self):
        self.data.clear()
        self.stamps.clear()


class Clock:
    def __init__(self, now=NOW):
        self.now = now

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return Clock()


@pytest.fixture
def repo():
    return MemoryRepository()


@pytest.fixture
def store(repo, clock):
    s = CertificateStore(repo, serial_base=1001, refresh_interval=86400, clock=clock)
    s.load()
    return s


@pytest.fixture
def client_data():
    return {
        "name": "Ana García",
        "phone": "611222333",
        "email": "ana@example.com",
        "address": "Calle Mayor 5, Madrid",
        "dni": "11111111H",
        "alt_phone": None,
        "notes": None,
        "installation_type": "individual",
        "contract_number": "CT-77",
        "installer_company": "Instalaciones Sur",
        "gas_type": "butano",
    }


@pytest.fixture
def app():
    app = create_app(
        {
            "TESTING": True,
            "SQLALCHEMY_DATABASE_URI": "sqlite://",
            "SECRET_KEY": "test-secret-key",
        }
    )
    with app.app_context():
        db.create_all()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture
def app_store(app):
    return get_store()


@pytest.fixture
def client(app):
    return app.test_client()


@pytest.fixture
def auth_client(client):
    resp = client.post(
        "/login",
        data={"username": DEFAULT_USERNAME, "password": DEFAULT_PASSWORD},
    )
    assert resp.status_code == 302
    return client
