# migrations/env.py
from __future__ import annotations

import logging
import os
import sys
from contextlib import nullcontext
from logging.config import fileConfig

from alembic import context
from flask import current_app, has_app_context

# <project_root>/migrations/env.py -> make "import gascert" work from plain alembic too
PROJECT_ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), ".."))
if PROJECT_ROOT not in sys.path:
    sys.path.insert(0, PROJECT_ROOT)

config = context.config

if config.config_file_name:
    fileConfig(config.config_file_name, disable_existing_loggers=False)

logger = logging.getLogger("alembic.env")


def _app_context():
    """
    ``flask db ...`` already runs inside an app context. Plain ``alembic``
    does not, so build the app from the environment (DATABASE_URL etc.).
    """
    if has_app_context():
        return nullcontext()

    from gascert import create_app

    return create_app().app_context()


def _engine():
    return current_app.extensions["migrate"].db.engine


def _metadata():
    db = current_app.extensions["migrate"].db
    return db.metadatas[None] if hasattr(db, "metadatas") else db.metadata


# Only the app_state table belongs to gascert; anything else that lives in a
# shared schema is left alone by autogenerate.
def include_object(object_, name, type_, reflected, compare_to):
    return not (type_ == "table" and reflected and compare_to is None)


def process_revision_directives(ctx, revision, directives):
    cmd_opts = getattr(config, "cmd_opts", None)
    if cmd_opts and getattr(cmd_opts, "autogenerate", False):
        if directives[0].upgrade_ops.is_empty():
            directives[:] = []
            logger.info("No changes in schema detected.")


def _configure_args() -> dict:
    args = dict(current_app.extensions["migrate"].configure_args or {})
    args.setdefault("include_object", include_object)
    args.setdefault("process_revision_directives", process_revision_directives)
    args.setdefault("compare_type", True)
    return args


def run_migrations_offline():
    url = _engine().url.render_as_string(hide_password=False)
    context.configure(
        url=url,
        target_metadata=_metadata(),
        literal_binds=True,
        **_configure_args(),
    )
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online():
    with _engine().connect() as connection:
        context.configure(
            connection=connection,
            target_metadata=_metadata(),
            **_configure_args(),
        )
        with context.begin_transaction():
            context.run_migrations()


with _app_context():
    if context.is_offline_mode():
        run_migrations_offline()
    else:
        run_migrations_online()
