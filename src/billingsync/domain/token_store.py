"""Token store operations, each committed in its own short unit of work."""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from billingsync.domain.model import mask_token

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from billingsync.domain.model import PurchaseToken, PurchaseTokenStatus
    from billingsync.domain.ports.unit_of_work import TokenStoreUnitOfWork

log = getLogger(__name__)


@dataclass(slots=True)
class TokenStore:
    """Synchronous facade over the purchase token repository.

    A unit of work is opened per call so no session outlives a single statement
    group, and in particular never spans a provider or ledger round trip.
    """

    unit_of_work_factory: Callable[[], TokenStoreUnitOfWork]

    def find_by_token(self, purchase_token: str) -> PurchaseToken | None:
        with self.unit_of_work_factory() as uow:
            return uow.repositories.purchase_tokens.get_by_token(purchase_token)

    def insert(self, record: PurchaseToken) -> None:
        """Persist a new record; raises ``TokenConflictError`` if the token exists."""

        with self.unit_of_work_factory() as uow:
            uow.repositories.purchase_tokens.add(record)
            uow.commit()
        log.info(
            "Inserted purchase token %s for user %s with status %s",
            mask_token(record.purchase_token),
            record.user_id,
            record.status.value,
        )

    def update_status_and_expiry(
        self,
        record_id: str,
        *,
        status: PurchaseTokenStatus | None = None,
        expiry_at: datetime | None = None,
    ) -> PurchaseToken | None:
        with self.unit_of_work_factory() as uow:
            updated = uow.repositories.purchase_tokens.update_status_and_expiry(
                record_id,
                status=status,
                expiry_at=expiry_at,
            )
            uow.commit()
        if updated is None:
            log.warning("Update skipped: no purchase token record with id %s", record_id)
        return updated
