"""Domain port definitions for adapters."""

from __future__ import annotations

from .entitlements import EntitlementGateway
from .persistence import PurchaseTokenRepository, Repository
from .provider import ProviderClient
from .unit_of_work import (
    RepositoryCollection,
    TokenStoreRepositories,
    TokenStoreUnitOfWork,
    UnitOfWork,
)

__all__ = [
    "EntitlementGateway",
    "ProviderClient",
    "PurchaseTokenRepository",
    "Repository",
    "RepositoryCollection",
    "TokenStoreRepositories",
    "TokenStoreUnitOfWork",
    "UnitOfWork",
]
