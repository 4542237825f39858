"""Ports for persisting domain aggregates."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from datetime import datetime

    from billingsync.domain.model import PurchaseToken, PurchaseTokenStatus


@runtime_checkable
class Repository[TEntity](Protocol):
    """Minimal repository contract for a persistent aggregate store."""

    def add(self, entity: TEntity) -> None: ...


@runtime_checkable
class PurchaseTokenRepository(Repository["PurchaseToken"], Protocol):
    """Persistence contract for purchase token records.

    ``add`` must raise ``TokenConflictError`` when the token string already exists.
    """

    def get(self, record_id: str) -> PurchaseToken | None: ...

    def get_by_token(self, purchase_token: str) -> PurchaseToken | None: ...

    def update_status_and_expiry(
        self,
        record_id: str,
        *,
        status: PurchaseTokenStatus | None = None,
        expiry_at: datetime | None = None,
    ) -> PurchaseToken | None: ...
