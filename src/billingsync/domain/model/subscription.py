"""Value objects describing the provider's view of a subscription."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from billingsync.domain.model.enums import AcknowledgementState

if TYPE_CHECKING:
    from datetime import datetime


@dataclass(frozen=True, slots=True)
class LineItem:
    product_id: str
    expiry_time: datetime | None = None
    auto_renewing: bool | None = None


@dataclass(frozen=True, slots=True)
class SubscriptionDetail:
    """Authoritative subscription state as fetched from the provider."""

    purchase_token: str
    subscription_state: str | None
    acknowledgement_state: str | None = None
    line_items: tuple[LineItem, ...] = field(default_factory=tuple)
    external_account_id: str | None = None
    linked_purchase_token: str | None = None
    latest_order_id: str | None = None

    def line_item_for(self, product_id: str) -> LineItem | None:
        for item in self.line_items:
            if item.product_id == product_id:
                return item
        return None

    def latest_expiry(self) -> datetime | None:
        expiries = [item.expiry_time for item in self.line_items if item.expiry_time is not None]
        return max(expiries) if expiries else None

    @property
    def needs_acknowledgement(self) -> bool:
        return self.acknowledgement_state == AcknowledgementState.PENDING
