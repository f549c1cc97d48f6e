# gascert/routes.py
from __future__ import annotations

from dataclasses import replace
from datetime import date, datetime

from flask import (
    Blueprint,
    abort,
    current_app,
    flash,
    jsonify,
    redirect,
    render_template,
    request,
    url_for,
)
from flask_login import login_required

from gascert.services.store import get_store
from gascert.utils.certificate_pdf import render_certificate_pdf
from gascert.utils.dates import expiry_date
from gascert.utils.validation import validate_certificate_form, validate_client_form

main = Blueprint("main", __name__)


def _clients_by_id() -> dict:
    return {c.id: c for c in get_store().clients}


def _render_client_form(client=None, form=None, errors=None, status: int = 200):
    return (
        render_template(
            "clients/form.html",
            client=client,
            form=form or (client.to_dict() if client else {}),
            errors=errors or {},
            current_year=datetime.utcnow().year,
        ),
        status,
    )


def _render_certificate_form(certificate=None, form=None, errors=None, status: int = 200):
    store = get_store()
    issue = (form or {}).get("issue_date") or date.today().isoformat()
    try:
        preview = expiry_date(issue, store.validity_years)
    except ValueError:
        preview = None

    return (
        render_template(
            "certificates/form.html",
            certificate=certificate,
            clients=sorted(store.clients, key=lambda c: c.name.lower()),
            form=form or {},
            errors=errors or {},
            expiry_preview=preview,
            validity_years=store.validity_years,
            current_year=datetime.utcnow().year,
        ),
        status,
    )


# =========================================================
# Landing
# =========================================================
@main.route("/")
def home():
    return redirect(url_for("main.dashboard"))


# =========================================================
# Dashboard
# =========================================================
@main.route("/dashboard")
@login_required
def dashboard():
    store = get_store()
    monthly = store.monthly_issued(6)
    peak = max((count for _, count in monthly), default=0)

    return render_template(
        "dashboard.html",
        stats=store.stats,
        monthly=monthly,
        monthly_peak=peak,
        breakdown=store.status_breakdown(),
        upcoming=store.upcoming_expiries(5),
        clients_by_id=_clients_by_id(),
        current_year=datetime.utcnow().year,
    )


@main.route("/dashboard/data")
@login_required
def dashboard_data():
    store = get_store()
    monthly = store.monthly_issued(6)
    breakdown = store.status_breakdown()
    return jsonify(
        {
            "stats": store.stats.to_dict(),
            "monthly": {
                "labels": [label for label, _ in monthly],
                "data": [count for _, count in monthly],
            },
            "statuses": {
                "keys": [key for key, _, _ in breakdown],
                "labels": [label for _, label, _ in breakdown],
                "data": [count for _, _, count in breakdown],
            },
        }
    )


# =========================================================
# Clients
# =========================================================
@main.route("/clients")
@login_required
def clients_list():
    q = (request.args.get("q") or "").strip()
    clients = get_store().search_clients(q)
    return render_template(
        "clients/list.html",
        clients=clients,
        q=q,
        current_year=datetime.utcnow().year,
    )


@main.route("/clients/new", methods=["GET", "POST"])
@login_required
def clients_new():
    if request.method == "GET":
        return _render_client_form()

    data, errors = validate_client_form(request.form)
    if errors:
        flash("Revise los campos marcados.", "danger")
        return _render_client_form(form=request.form, errors=errors, status=400)

    client = get_store().add_client(data)
    flash(f"Cliente {client.name} creado.", "success")
    return redirect(url_for("main.clients_list"))


@main.route("/clients/<client_id>")
@login_required
def clients_detail(client_id: str):
    store = get_store()
    client = store.get_client(client_id)
    if client is None:
        abort(404)

    return render_template(
        "clients/detail.html",
        client=client,
        certificates=store.certificates_for_client(client_id),
        current_year=datetime.utcnow().year,
    )


@main.route("/clients/<client_id>/edit", methods=["GET", "POST"])
@login_required
def clients_edit(client_id: str):
    store = get_store()
    client = store.get_client(client_id)
    if client is None:
        flash("El cliente no existe.", "danger")
        return redirect(url_for("main.clients_list"))

    if request.method == "GET":
        return _render_client_form(client=client)

    data, errors = validate_client_form(request.form)
    if errors:
        flash("Revise los campos marcados.", "danger")
        return _render_client_form(client=client, form=request.form, errors=errors, status=400)

    store.update_client(replace(client, **data))
    flash("Cliente actualizado.", "success")
    return redirect(url_for("main.clients_detail", client_id=client_id))


@main.route("/clients/<client_id>/delete", methods=["POST"])
@login_required
def clients_delete(client_id: str):
    if get_store().delete_client(client_id):
        flash("Cliente eliminado junto con sus certificados.", "success")
    else:
        flash("El cliente no existe.", "danger")
    return redirect(url_for("main.clients_list"))


# =========================================================
# Certificates
# =========================================================
@main.route("/certificates")
@login_required
def certificates_list():
    q = (request.args.get("q") or "").strip()
    status = (request.args.get("status") or "").strip()
    certificates = get_store().search_certificates(q, status or None)
    return render_template(
        "certificates/list.html",
        certificates=certificates,
        clients_by_id=_clients_by_id(),
        q=q,
        status=status,
        current_year=datetime.utcnow().year,
    )


@main.route("/certificates/new", methods=["GET", "POST"])
@login_required
def certificates_new():
    store = get_store()

    if request.method == "GET":
        return _render_certificate_form(
            form={
                "client_id": request.args.get("client_id") or "",
                "issue_date": date.today().isoformat(),
            }
        )

    data, errors = validate_certificate_form(request.form, lambda cid: store.get_client(cid) is not None)
    if errors:
        flash("Revise los campos marcados.", "danger")
        return _render_certificate_form(form=request.form, errors=errors, status=400)

    cert = store.add_certificate(data)
    flash(f"Certificado {cert.serial_number} emitido.", "success")
    return redirect(url_for("main.certificates_list"))


@main.route("/certificates/<certificate_id>/edit", methods=["GET", "POST"])
@login_required
def certificates_edit(certificate_id: str):
    store = get_store()
    cert = store.get_certificate(certificate_id)
    if cert is None:
        flash("El certificado no existe.", "danger")
        return redirect(url_for("main.certificates_list"))

    if request.method == "GET":
        return _render_certificate_form(
            certificate=cert,
            form={
                "client_id": cert.client_id,
                "issue_date": cert.issue_date.isoformat(),
                "technical_notes": cert.technical_notes or "",
            },
        )

    data, errors = validate_certificate_form(request.form, lambda cid: store.get_client(cid) is not None)
    if errors:
        flash("Revise los campos marcados.", "danger")
        return _render_certificate_form(certificate=cert, form=request.form, errors=errors, status=400)

    updated = store.update_certificate(
        replace(
            cert,
            client_id=data["client_id"],
            issue_date=data["issue_date"],
            expiry_date=expiry_date(data["issue_date"], store.validity_years),
            technical_notes=data["technical_notes"],
        )
    )
    flash(f"Certificado {updated.serial_number} actualizado.", "success")
    return redirect(url_for("main.certificates_list"))


@main.route("/certificates/<certificate_id>/renew", methods=["POST"])
@login_required
def certificates_renew(certificate_id: str):
    renewed = get_store().renew_certificate(certificate_id)
    if renewed is None:
        flash("No se pudo renovar: el certificado no existe.", "danger")
    else:
        flash(f"Certificado renovado como {renewed.serial_number}.", "success")

    next_url = request.form.get("next") or ""
    if next_url.startswith("/") and not next_url.startswith("//"):
        return redirect(next_url)
    return redirect(url_for("main.certificates_list"))


@main.route("/certificates/<certificate_id>/delete", methods=["POST"])
@login_required
def certificates_delete(certificate_id: str):
    if get_store().delete_certificate(certificate_id):
        flash("Certificado eliminado.", "success")
    else:
        flash("El certificado no existe.", "danger")
    return redirect(url_for("main.certificates_list"))


@main.route("/certificates/<certificate_id>/pdf")
@login_required
def certificates_pdf(certificate_id: str):
    store = get_store()
    cert = store.get_certificate(certificate_id)
    if cert is None:
        abort(404)
    client = store.get_client(cert.client_id)
    if client is None:
        abort(404)

    pdf_bytes = render_certificate_pdf(client, cert, store.settings)
    filename = f"Certificado_{cert.serial_number}.pdf"

    return current_app.response_class(
        pdf_bytes,
        mimetype="application/pdf",
        headers={"Content-Disposition": f'inline; filename="{filename}"'},
    )
