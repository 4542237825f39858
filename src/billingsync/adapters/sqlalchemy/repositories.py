"""Repository implementations backed by SQLAlchemy sessions."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError

from billingsync.adapters.sqlalchemy.mappings import purchase_token_table
from billingsync.domain.errors import TokenConflictError
from billingsync.domain.model import PurchaseToken, mask_token

if TYPE_CHECKING:
    from datetime import datetime

    from sqlalchemy.orm import Session

    from billingsync.domain.model import PurchaseTokenStatus

log = getLogger(__name__)


class SqlAlchemyPurchaseTokenRepository:
    def __init__(self, session: Session) -> None:
        self.session = session

    def add(self, entity: PurchaseToken) -> None:
        """Stage and flush a new record so the unique constraint is checked right away."""

        self.session.add(entity)
        try:
            self.session.flush()
        except IntegrityError as exc:
            self.session.rollback()
            log.info("Purchase token %s already claimed", mask_token(entity.purchase_token))
            raise TokenConflictError from exc

    def get(self, record_id: str) -> PurchaseToken | None:
        return self.session.get(PurchaseToken, record_id)

    def get_by_token(self, purchase_token: str) -> PurchaseToken | None:
        stmt = select(PurchaseToken).where(purchase_token_table.c.purchase_token == purchase_token)
        return self.session.execute(stmt).scalar_one_or_none()

    def update_status_and_expiry(
        self,
        record_id: str,
        *,
        status: PurchaseTokenStatus | None = None,
        expiry_at: datetime | None = None,
    ) -> PurchaseToken | None:
        record = self.session.get(PurchaseToken, record_id, with_for_update=True)
        if record is None:
            return None
        if status is not None:
            record.status = status
        if expiry_at is not None:
            if expiry_at > record.expiry_at:
                record.expiry_at = expiry_at
            elif expiry_at < record.expiry_at:
                log.debug(
                    "Kept expiry of %s at %s (ignored older %s)",
                    mask_token(record.purchase_token),
                    record.expiry_at.isoformat(),
                    expiry_at.isoformat(),
                )
        self.session.flush()
        return record
