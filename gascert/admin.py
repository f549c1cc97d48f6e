# gascert/admin.py
from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

from flask import Blueprint, current_app, flash, redirect, render_template, request, url_for
from flask_login import login_required, login_user

from gascert.auth import current_guard
from gascert.models import AppSettings, CERTIFICATE_STATUSES, CertificateSettings, CompanyInfo, Operator
from gascert.services.session_guard import SESSION_USER_KEY
from gascert.services.store import get_store
from gascert.utils.certificate_pdf import render_client_list_pdf, render_expiry_report_pdf
from gascert.utils.passwords import hash_password
from gascert.utils.validation import validate_settings_form

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def _settings_form(settings: AppSettings) -> dict:
    return {
        "company_name": settings.company.name,
        "company_address": settings.company.address,
        "company_phone": settings.company.phone,
        "company_email": settings.company.email,
        "company_logo": settings.company.logo or "",
        "username": settings.auth.username,
        "session_timeout": settings.auth.session_timeout,
        "validity_years": settings.certificates.validity_years,
        "alert_days": ", ".join(str(d) for d in settings.certificates.alert_days),
    }


def _pdf_response(pdf_bytes: bytes, filename: str):
    return current_app.response_class(
        pdf_bytes,
        mimetype="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )


# -------------------------------------------------------------------
# Settings
# GET+POST /admin/settings
# -------------------------------------------------------------------
@admin_bp.route("/settings", methods=["GET", "POST"])
@login_required
def settings():
    store = get_store()
    current = store.settings

    if request.method == "GET":
        return render_template(
            "admin/settings.html",
            form=_settings_form(current),
            errors={},
            current_year=datetime.utcnow().year,
        )

    data, errors = validate_settings_form(request.form)
    if errors:
        flash("Revise los campos marcados.", "danger")
        return (
            render_template(
                "admin/settings.html",
                form=request.form,
                errors=errors,
                current_year=datetime.utcnow().year,
            ),
            400,
        )

    password_hash = current.auth.password_hash
    if data["new_password"]:
        password_hash = hash_password(data["new_password"])

    updated = AppSettings(
        company=CompanyInfo(**data["company"]),
        auth=replace(
            current.auth,
            username=data["username"],
            password_hash=password_hash,
            session_timeout=data["session_timeout"],
        ),
        certificates=CertificateSettings(
            validity_years=data["validity_years"],
            alert_days=data["alert_days"],
        ),
    )
    store.update_settings(updated)

    # Keep the operator signed in under the (possibly renamed) account.
    guard = current_guard()
    if guard.username != updated.auth.username:
        guard.storage[SESSION_USER_KEY] = updated.auth.username
        login_user(Operator(updated.auth.username))
    guard.touch()

    flash("Configuración guardada.", "success")
    return redirect(url_for("admin.settings"))


# -------------------------------------------------------------------
# Reports
# -------------------------------------------------------------------
@admin_bp.route("/reports/clients.pdf", methods=["GET"])
@login_required
def report_clients():
    clients = sorted(get_store().clients, key=lambda c: c.name.lower())
    return _pdf_response(render_client_list_pdf(clients), f"Clientes_{date.today().isoformat()}.pdf")


@admin_bp.route("/reports/expiries.pdf", methods=["GET"])
@login_required
def report_expiries():
    store = get_store()
    status = (request.args.get("status") or "").strip()
    q = (request.args.get("q") or "").strip()
    certificates = store.search_certificates(q, status if status in CERTIFICATE_STATUSES else None)
    certificates = sorted(certificates, key=lambda c: c.expiry_date)
    clients_by_id = {c.id: c for c in store.clients}
    return _pdf_response(
        render_expiry_report_pdf(certificates, clients_by_id),
        f"Vencimientos_{date.today().isoformat()}.pdf",
    )
