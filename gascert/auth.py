# gascert/auth.py
from __future__ import annotations

from datetime import datetime
from urllib.parse import urljoin, urlparse

from flask import Blueprint, current_app, flash, redirect, render_template, request, session, url_for
from flask_login import current_user, login_user, logout_user

from .extensions import login_manager
from .models import Operator
from .services.session_guard import SessionGuard
from .services.store import get_store

auth = Blueprint("auth", __name__)

# next= targets that would bounce straight back into the auth views
_NO_RETURN_PREFIXES = ("/login", "/logout")


def current_guard() -> SessionGuard:
    """Session guard bound to the browser session and the live auth settings."""
    return SessionGuard(session, lambda: get_store().settings.auth)


# =========================================================
# Flask-Login user loader
# =========================================================
@login_manager.user_loader
def load_user(user_id: str):
    # Flask-Login only knows the id; the guard decides whether it is still valid.
    if user_id and current_guard().username == user_id:
        return Operator(user_id)
    return None


# =========================================================
# Helpers
# =========================================================
def _is_safe_next(target: str) -> bool:
    if not target or target.startswith(_NO_RETURN_PREFIXES):
        return False
    host = urlparse(request.host_url)
    dest = urlparse(urljoin(request.host_url, target))
    return dest.scheme in ("http", "https") and dest.netloc == host.netloc


def _next_or_dashboard() -> str:
    nxt = request.args.get("next") or request.form.get("next") or ""
    return nxt if _is_safe_next(nxt) else url_for("main.dashboard")


def _login_page(next_url: str, status: int = 200):
    return (
        render_template("login.html", next=next_url, current_year=datetime.utcnow().year),
        status,
    )


# =========================================================
# Login / Logout
# =========================================================
@auth.route("/login", methods=["GET", "POST"])
def login():
    if getattr(current_user, "is_authenticated", False):
        return redirect(url_for("main.dashboard"))

    next_url = request.args.get("next") or request.form.get("next") or ""
    if request.method == "GET":
        return _login_page(next_url)

    username = (request.form.get("username") or "").strip()
    password = request.form.get("password") or ""
    if not username or not password:
        flash("Usuario y contraseña son obligatorios.", "danger")
        return _login_page(next_url, 400)

    guard = current_guard()
    if not guard.login(username, password):
        current_app.logger.warning("Failed login for %r from %s", username, request.remote_addr)
        flash("Usuario o contraseña incorrectos.", "danger")
        return _login_page(next_url, 401)

    login_user(Operator(guard.username))
    current_app.logger.info("Operator %s signed in", guard.username)
    return redirect(_next_or_dashboard())


@auth.route("/logout")
def logout():
    # Not login_required: an expired session would otherwise loop via /login?next=/logout.
    current_guard().logout()
    logout_user()
    flash("Ha cerrado la sesión.", "success")
    return redirect(url_for("auth.login"))
