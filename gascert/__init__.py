# gascert/__init__.py
from __future__ import annotations

from typing import Any, Mapping

from flask import Flask, flash, redirect, render_template, request, url_for
from flask_login import current_user, logout_user

from .settings import Config
from .extensions import db, migrate, login_manager


def create_app(overrides: Mapping[str, Any] | None = None) -> Flask:
    app = Flask(__name__)
    app.config.from_object(Config)
    if overrides:
        app.config.update(overrides)

    # ======================
    # Initialize Extensions
    # ======================
    db.init_app(app)
    migrate.init_app(app, db)
    login_manager.init_app(app)

    # ======================
    # Import Models (CRITICAL)
    # ======================
    from . import models  # noqa: F401

    # ======================
    # Domain store (one per app)
    # ======================
    from .services.state_repository import StateRepository
    from .services.store import EXTENSION_KEY, CertificateStore, get_store

    app.extensions[EXTENSION_KEY] = CertificateStore(
        StateRepository(logger=app.logger),
        serial_base=app.config["CERT_SERIAL_BASE"],
        refresh_interval=app.config["STATUS_REFRESH_SECONDS"],
        logger=app.logger,
    )

    # ======================
    # Global template context (Company identity + helpers)
    # ======================
    from .config.company import company_context
    from .models import CERTIFICATE_STATUSES, GAS_TYPES, INSTALLATION_TYPES
    from .utils.dates import days_remaining, format_date

    @app.context_processor
    def inject_company():
        settings = get_store().settings
        ctx = company_context(settings.company if settings else None)
        ctx.update(
            CERTIFICATE_STATUSES=CERTIFICATE_STATUSES,
            GAS_TYPES=GAS_TYPES,
            INSTALLATION_TYPES=INSTALLATION_TYPES,
            format_date=format_date,
            days_remaining=days_remaining,
        )
        return ctx

    # ======================
    # Register Blueprints
    # ======================
    from .routes import main
    from .auth import auth, current_guard
    from .admin import admin_bp

    app.register_blueprint(main)
    app.register_blueprint(auth)
    app.register_blueprint(admin_bp)

    from .cli import register_cli

    register_cli(app)

    # ======================
    # Pick up writes from other processes, daily status pass, idle session timeout
    # ======================
    @app.before_request
    def enforce_session_timeout():
        endpoint = request.endpoint or ""
        if endpoint.startswith("static"):
            return None

        store = get_store()
        store.sync()
        store.refresh_if_due()

        if not getattr(current_user, "is_authenticated", False):
            return None

        guard = current_guard()
        if not guard.check():
            logout_user()
            flash("Su sesión ha caducado por inactividad.", "warning")
            if endpoint == "auth.login":
                return None
            return redirect(url_for("auth.login", next=request.full_path))

        guard.touch()
        return None

    # ======================
    # Forbidden handler
    # ======================
    @app.errorhandler(403)
    def forbidden(e):
        return render_template("403.html"), 403

    # ======================
    # Not found handler
    # ======================
    @app.errorhandler(404)
    def not_found(e):
        return render_template("404.html"), 404

    return app
