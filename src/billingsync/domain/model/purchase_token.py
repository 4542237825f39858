"""The persisted purchase token aggregate."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from uuid import uuid4

from billingsync.domain.model.enums import PurchaseTokenStatus


def new_id() -> str:
    return str(uuid4())


def utcnow() -> datetime:
    return datetime.now(tz=UTC)


@dataclass(eq=False, kw_only=True)
class PurchaseToken:
    """Local record of a provider purchase token and who owns it.

    ``user_id`` and ``purchase_token`` are fixed at creation. Only ``status`` and
    ``expiry_at`` change afterwards, and ``expiry_at`` only moves forward.
    """

    id: str = field(default_factory=new_id)
    user_id: str
    purchase_token: str
    status: PurchaseTokenStatus = PurchaseTokenStatus.PENDING
    created_at: datetime = field(default_factory=utcnow)
    expiry_at: datetime

    def is_owned_by(self, user_id: str) -> bool:
        return self.user_id == user_id

    def grants_access_at(self, moment: datetime) -> bool:
        return self.status is PurchaseTokenStatus.ACCESS_GRANTED and self.expiry_at > moment

    def is_fresh_claim(self, moment: datetime, *, window_seconds: float) -> bool:
        """Whether this is a ``Pending`` claim young enough to still be in flight."""

        if self.status is not PurchaseTokenStatus.PENDING:
            return False
        return (moment - self.created_at).total_seconds() < window_seconds

    def __repr__(self) -> str:
        return (
            f"PurchaseToken(id={self.id!r}, user_id={self.user_id!r}, "
            f"token={mask_token(self.purchase_token)!r}, status={self.status.value!r}, "
            f"expiry_at={self.expiry_at.isoformat()})"
        )


def mask_token(token: str) -> str:
    """Shorten a purchase token for log output."""

    if len(token) <= 12:
        return token
    return f"{token[:6]}…{token[-4:]}"
