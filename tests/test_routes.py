import time
from datetime import date

import pytest

from gascert.services.session_guard import SESSION_EXPIRY_KEY, SESSION_USER_KEY

CLIENT_FORM = {
    "name": "Ana García",
    "phone": "611222333",
    "email": "ana@example.com",
    "address": "Calle Mayor 5, Madrid",
    "gas_type": "butano",
    "installation_type": "individual",
}


def _add_client(store, **overrides):
    data = {
        "name": "Luis Pérez",
        "phone": "699888777",
        "email": "luis@example.com",
        "address": "Plaza Nueva 1",
        **overrides,
    }
    return store.add_client(data)


# ---------------------------------------------------------
# Authentication
# ---------------------------------------------------------
@pytest.mark.parametrize("path", ["/dashboard", "/clients", "/certificates", "/admin/settings"])
def test_protected_pages_redirect_to_login(client, path):
    resp = client.get(path)
    assert resp.status_code == 302
    assert "/login" in resp.headers["Location"]


def test_root_redirects_to_dashboard(client):
    resp = client.get("/")
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/dashboard")


def test_login_page_renders(client):
    resp = client.get("/login")
    assert resp.status_code == 200
    assert "Entrar" in resp.get_data(as_text=True)


def test_login_with_wrong_password(client):
    resp = client.post("/login", data={"username": "gestion", "password": "nope1234"})
    assert resp.status_code == 401
    assert "Usuario o contraseña incorrectos" in resp.get_data(as_text=True)


def test_login_requires_both_fields(client):
    resp = client.post("/login", data={"username": "gestion"})
    assert resp.status_code == 400


def test_login_sets_session_and_follows_next(client):
    resp = client.post(
        "/login?next=/clients",
        data={"username": "gestion", "password": "gestion123"},
    )
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/clients")

    with client.session_transaction() as sess:
        assert sess[SESSION_USER_KEY] == "gestion"
        assert sess[SESSION_EXPIRY_KEY] >= time.time() + 1700


def test_login_ignores_offsite_next(client):
    resp = client.post(
        "/login?next=https://evil.example/",
        data={"username": "gestion", "password": "gestion123"},
    )
    assert resp.headers["Location"].endswith("/dashboard")


def test_logout(auth_client):
    resp = auth_client.get("/logout")
    assert resp.status_code == 302
    assert auth_client.get("/dashboard").status_code == 302

    with auth_client.session_transaction() as sess:
        assert SESSION_USER_KEY not in sess


def test_idle_session_is_expired(auth_client):
    with auth_client.session_transaction() as sess:
        sess[SESSION_EXPIRY_KEY] = time.time() - 1

    resp = auth_client.get("/dashboard")
    assert resp.status_code == 302
    assert "/login" in resp.headers["Location"]

    with auth_client.session_transaction() as sess:
        assert SESSION_USER_KEY not in sess
    assert auth_client.get("/clients").status_code == 302


def test_activity_slides_session_expiry(auth_client):
    with auth_client.session_transaction() as sess:
        sess[SESSION_EXPIRY_KEY] = time.time() + 5

    assert auth_client.get("/dashboard").status_code == 200
    with auth_client.session_transaction() as sess:
        assert sess[SESSION_EXPIRY_KEY] > time.time() + 1000


# ---------------------------------------------------------
# Dashboard
# ---------------------------------------------------------
def test_dashboard_renders(auth_client):
    resp = auth_client.get("/dashboard")
    assert resp.status_code == 200
    assert "Panel de control" in resp.get_data(as_text=True)


def test_dashboard_data(auth_client, app_store):
    resp = auth_client.get("/dashboard/data")
    assert resp.status_code == 200
    payload = resp.get_json()

    assert payload["stats"] == app_store.stats.to_dict()
    assert len(payload["monthly"]["labels"]) == 6
    assert payload["statuses"]["keys"] == ["current", "near_expiry", "expired"]
    assert sum(payload["statuses"]["data"]) == len(app_store.certificates)


# ---------------------------------------------------------
# Clients
# ---------------------------------------------------------
def test_create_client(auth_client, app_store):
    resp = auth_client.post("/clients/new", data=CLIENT_FORM)
    assert resp.status_code == 302

    created = [c for c in app_store.clients if c.name == "Ana García"]
    assert len(created) == 1
    assert created[0].gas_type == "butano"
    assert "Ana García" in auth_client.get("/clients").get_data(as_text=True)


def test_create_client_with_errors(auth_client, app_store):
    before = len(app_store.clients)
    resp = auth_client.post("/clients/new", data={**CLIENT_FORM, "phone": "12"})

    assert resp.status_code == 400
    assert "El teléfono debe tener 9 dígitos" in resp.get_data(as_text=True)
    assert len(app_store.clients) == before


def test_client_search(auth_client, app_store):
    _add_client(app_store)
    body = auth_client.get("/clients?q=luis").get_data(as_text=True)
    assert "Luis Pérez" in body
    assert "Cliente Ejemplo" not in body


def test_edit_client(auth_client, app_store):
    luis = _add_client(app_store)
    resp = auth_client.post(
        f"/clients/{luis.id}/edit",
        data={**CLIENT_FORM, "name": "Luis P. Gómez"},
    )
    assert resp.status_code == 302
    assert app_store.get_client(luis.id).name == "Luis P. Gómez"
    assert app_store.get_client(luis.id).created_at == luis.created_at


def test_client_detail_lists_certificates(auth_client, app_store):
    luis = _add_client(app_store)
    cert = app_store.add_certificate({"client_id": luis.id, "issue_date": date.today()})

    resp = auth_client.get(f"/clients/{luis.id}")
    assert resp.status_code == 200
    assert cert.serial_number in resp.get_data(as_text=True)
    assert auth_client.get("/clients/unknown").status_code == 404


def test_delete_client_cascades(auth_client, app_store):
    luis = _add_client(app_store)
    app_store.add_certificate({"client_id": luis.id, "issue_date": date.today()})

    resp = auth_client.post(f"/clients/{luis.id}/delete")
    assert resp.status_code == 302
    assert app_store.get_client(luis.id) is None
    assert app_store.certificates_for_client(luis.id) == []


# ---------------------------------------------------------
# Certificates
# ---------------------------------------------------------
def test_new_certificate_form_preselects_client(auth_client, app_store):
    luis = _add_client(app_store)
    resp = auth_client.get(f"/certificates/new?client_id={luis.id}")
    assert resp.status_code == 200
    assert luis.id in resp.get_data(as_text=True)


def test_issue_certificate(auth_client, app_store):
    luis = _add_client(app_store)
    serial = app_store.next_serial

    resp = auth_client.post(
        "/certificates/new",
        data={"client_id": luis.id, "issue_date": "2026-01-15", "technical_notes": "Todo correcto"},
    )
    assert resp.status_code == 302

    (cert,) = app_store.certificates_for_client(luis.id)
    assert cert.serial_number == f"CERT-{serial}"
    assert cert.expiry_date == date(2031, 1, 15)
    assert cert.technical_notes == "Todo correcto"


def test_issue_certificate_for_unknown_client(auth_client, app_store):
    before = len(app_store.certificates)
    resp = auth_client.post("/certificates/new", data={"client_id": "ghost", "issue_date": "2026-01-15"})
    assert resp.status_code == 400
    assert len(app_store.certificates) == before


def test_edit_certificate_recomputes_expiry(auth_client, app_store):
    luis = _add_client(app_store)
    cert = app_store.add_certificate({"client_id": luis.id, "issue_date": date(2025, 5, 5)})

    resp = auth_client.post(
        f"/certificates/{cert.id}/edit",
        data={"client_id": luis.id, "issue_date": "2020-01-01"},
    )
    assert resp.status_code == 302

    updated = app_store.get_certificate(cert.id)
    assert updated.expiry_date == date(2025, 1, 1)
    assert updated.status == "expired"
    assert updated.serial_number == cert.serial_number


def test_certificate_filters(auth_client, app_store):
    luis = _add_client(app_store)
    old = app_store.add_certificate({"client_id": luis.id, "issue_date": date(2001, 1, 1)})

    body = auth_client.get("/certificates?status=expired").get_data(as_text=True)
    assert old.serial_number in body
    assert "CERT-1001" not in body


def test_renew_certificate(auth_client, app_store):
    luis = _add_client(app_store)
    old = app_store.add_certificate({"client_id": luis.id, "issue_date": date(2001, 1, 1)})

    resp = auth_client.post(
        f"/certificates/{old.id}/renew",
        data={"next": f"/clients/{luis.id}"},
    )
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith(f"/clients/{luis.id}")

    certs = app_store.certificates_for_client(luis.id)
    assert len(certs) == 2
    renewed = certs[0]
    assert renewed.issue_date == date.today()
    assert renewed.serial_value > old.serial_value
    assert app_store.get_certificate(old.id).issue_date == date(2001, 1, 1)


def test_renew_unknown_certificate(auth_client, app_store):
    before = len(app_store.certificates)
    resp = auth_client.post("/certificates/nope/renew", data={"next": "//evil.example"})
    assert resp.status_code == 302
    assert resp.headers["Location"].endswith("/certificates")
    assert len(app_store.certificates) == before


def test_delete_certificate(auth_client, app_store):
    cert = app_store.certificates[0]
    assert auth_client.post(f"/certificates/{cert.id}/delete").status_code == 302
    assert app_store.get_certificate(cert.id) is None


def test_certificate_pdf(auth_client, app_store):
    cert = app_store.certificates[0]
    resp = auth_client.get(f"/certificates/{cert.id}/pdf")

    assert resp.status_code == 200
    assert resp.mimetype == "application/pdf"
    assert cert.serial_number in resp.headers["Content-Disposition"]
    assert resp.data.startswith(b"%PDF")
    assert auth_client.get("/certificates/missing/pdf").status_code == 404


# ---------------------------------------------------------
# Admin
# ---------------------------------------------------------
SETTINGS_FORM = {
    "company_name": "Gas Norte",
    "company_address": "Av. Principal 10",
    "company_phone": "944000000",
    "company_email": "info@gasnorte.es",
    "username": "gestion",
    "session_timeout": "900",
    "new_password": "",
    "validity_years": "3",
    "alert_days": "15, 45",
}


def test_settings_page(auth_client):
    resp = auth_client.get("/admin/settings")
    assert resp.status_code == 200
    assert "Revisiones Gas Pro" in resp.get_data(as_text=True)


def test_update_settings(auth_client, app_store):
    resp = auth_client.post("/admin/settings", data=SETTINGS_FORM)
    assert resp.status_code == 302

    settings = app_store.settings
    assert settings.company.name == "Gas Norte"
    assert settings.auth.session_timeout == 900
    assert settings.certificates.validity_years == 3
    assert settings.certificates.alert_days == [15, 45]

    with auth_client.session_transaction() as sess:
        assert sess[SESSION_EXPIRY_KEY] <= time.time() + 901


def test_update_settings_rejects_invalid(auth_client, app_store):
    resp = auth_client.post("/admin/settings", data={**SETTINGS_FORM, "alert_days": ""})
    assert resp.status_code == 400
    assert app_store.settings.certificates.alert_days == [30, 60, 90]


def test_change_credentials(auth_client, app_store):
    resp = auth_client.post(
        "/admin/settings",
        data={**SETTINGS_FORM, "username": "oficina", "new_password": "nuevaClave9"},
    )
    assert resp.status_code == 302
    assert auth_client.get("/dashboard").status_code == 200

    auth_client.get("/logout")
    bad = auth_client.post("/login", data={"username": "gestion", "password": "gestion123"})
    assert bad.status_code == 401
    good = auth_client.post("/login", data={"username": "oficina", "password": "nuevaClave9"})
    assert good.status_code == 302


def test_reports(auth_client):
    for path in ("/admin/reports/clients.pdf", "/admin/reports/expiries.pdf?status=current"):
        resp = auth_client.get(path)
        assert resp.status_code == 200
        assert resp.mimetype == "application/pdf"
        assert resp.data.startswith(b"%PDF")


# ---------------------------------------------------------
# CLI
# ---------------------------------------------------------
def test_refresh_statuses_command(app, app_store):
    result = app.test_cli_runner().invoke(args=["refresh-statuses"])
    assert result.exit_code == 0
    assert "certificate(s)" in result.output


def test_seed_sample_data_command(app, app_store):
    _add_client(app_store)
    result = app.test_cli_runner().invoke(args=["seed-sample-data", "--yes"])
    assert result.exit_code == 0
    assert [c.name for c in app_store.clients] == ["Cliente Ejemplo"]
