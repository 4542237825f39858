"""Alembic environment for the purchase-token ledger.

``upgrade_head`` either hands over an open connection (``startup`` migrating
the engine it was given) or sets ``sqlalchemy.url``. Running ``alembic``
directly falls back to ``DATABASE_URI``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from alembic import context
from sqlalchemy import create_engine, pool
from sqlalchemy.engine import make_url

from billingsync.adapters.sqlalchemy import mapper_registry, start_mappers
from billingsync.config import get_database_config

if TYPE_CHECKING:
    from sqlalchemy.engine import Connection

config = context.config

log = logging.getLogger("alembic.env")

start_mappers()

# batch mode lets SQLite ledgers alter the purchase_tokens table in place
_OPTIONS: dict[str, Any] = {
    "target_metadata": mapper_registry.metadata,
    "render_as_batch": True,
    "compare_type": True,
    "compare_server_default": True,
}


def _database_url() -> str:
    return config.get_main_option("sqlalchemy.url") or get_database_config().uri


def _migrate(connection: Connection) -> None:
    context.configure(connection=connection, **_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_offline() -> None:
    """Emit the ledger DDL as SQL without connecting."""

    context.configure(url=_database_url(), literal_binds=True, **_OPTIONS)
    with context.begin_transaction():
        context.run_migrations()


def run_migrations_online() -> None:
    existing_connection: Connection | None = config.attributes.get("connection")
    if existing_connection is not None:
        _migrate(existing_connection)
        return

    url = make_url(_database_url())
    log.info("Migrating ledger at %s", url.render_as_string(hide_password=True))
    engine = create_engine(url, poolclass=pool.NullPool)
    try:
        with engine.connect() as connection:
            _migrate(connection)
    finally:
        engine.dispose()


if context.is_offline_mode():
    run_migrations_offline()
else:
    run_migrations_online()
