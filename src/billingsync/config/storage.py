"""Location of the purchase-token ledger."""

from __future__ import annotations

import os
from dataclasses import dataclass
from logging import getLogger
from pathlib import Path
from typing import Final

from .env import require_env_var

LOCAL_DATABASE_FILENAME: Final[str] = "billingsync.db"

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class DatabaseConfig:
    uri: str


def local_database_uri(directory: Path | None = None) -> str:
    """SQLite ledger in ``directory`` (the working directory by default)."""

    base = (directory or Path.cwd()).expanduser().resolve()
    return f"sqlite+pysqlite:///{base / LOCAL_DATABASE_FILENAME}"


def get_database_config(*, allow_local_default: bool = True) -> DatabaseConfig:
    """Return the ledger database from ``DATABASE_URI``.

    The HTTP service passes ``allow_local_default=False`` and refuses to start
    without an explicit database. One-off CLI commands fall back to a SQLite
    file in the working directory.
    """

    if not allow_local_default:
        return DatabaseConfig(uri=require_env_var("DATABASE_URI").strip())
    env_uri = os.getenv("DATABASE_URI")
    if env_uri and env_uri.strip():
        return DatabaseConfig(uri=env_uri.strip())
    uri = local_database_uri()
    log.warning("DATABASE_URI is not set, using local ledger %s", uri)
    return DatabaseConfig(uri=uri)
