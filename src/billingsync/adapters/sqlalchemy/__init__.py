"""SQLAlchemy adapter package for the purchase token ledger."""

from __future__ import annotations

from .mappings import mapper_registry, purchase_token_table, start_mappers
from .repositories import SqlAlchemyPurchaseTokenRepository
from .unit_of_work import (
    SqlAlchemyTokenStoreUnitOfWork,
    StartupError,
    shutdown,
    startup,
)

__all__ = [
    "SqlAlchemyPurchaseTokenRepository",
    "SqlAlchemyTokenStoreUnitOfWork",
    "StartupError",
    "mapper_registry",
    "purchase_token_table",
    "shutdown",
    "start_mappers",
    "startup",
]
