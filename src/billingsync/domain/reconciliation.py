"""Reconciliation step shared by the verification and notification paths.

The side effects are ordered acknowledge, then grant, then local commit, so that
a failure part way through leaves provider and ledger in a state that a retry of
the whole request can re-drive. Acknowledgement and grant are both idempotent.
"""

from __future__ import annotations

from dataclasses import dataclass
from logging import getLogger
from typing import TYPE_CHECKING

from billingsync.domain.errors import (
    ExternalAccountIdentifiersMissingError,
    SubscriptionInvalidLineItemsError,
)
from billingsync.domain.model import FreePlan, PurchaseTokenStatus, mask_token

if TYPE_CHECKING:
    from datetime import datetime

    from billingsync.domain.model import PurchaseToken, SubscriptionDetail, SubscriptionPlan
    from billingsync.domain.ports import EntitlementGateway, ProviderClient
    from billingsync.domain.token_store import TokenStore

log = getLogger(__name__)


def require_account_id(detail: SubscriptionDetail) -> str:
    account_id = detail.external_account_id
    if not account_id:
        raise ExternalAccountIdentifiersMissingError
    return account_id


def expiry_for(detail: SubscriptionDetail, product_id: str | None) -> datetime:
    """Expiry of the product's line item, or the latest line item when unmatched."""

    item = detail.line_item_for(product_id) if product_id else None
    expiry = item.expiry_time if item is not None else detail.latest_expiry()
    if expiry is None:
        raise SubscriptionInvalidLineItemsError
    return expiry


@dataclass(slots=True)
class Reconciler:
    """Applies provider truth to the ledger and the token store."""

    store: TokenStore
    provider: ProviderClient
    entitlements: EntitlementGateway
    plan: SubscriptionPlan

    def fetch(self, package_name: str, purchase_token: str) -> SubscriptionDetail:
        detail = self.provider.fetch_subscription_detail(package_name, purchase_token)
        log.debug(
            "Fetched subscription detail for %s: state=%s ack=%s linked=%s",
            mask_token(purchase_token),
            detail.subscription_state,
            detail.acknowledgement_state,
            mask_token(detail.linked_purchase_token) if detail.linked_purchase_token else None,
        )
        return detail

    def acknowledge_if_pending(self, package_name: str, detail: SubscriptionDetail) -> None:
        if not detail.needs_acknowledgement:
            return
        self.provider.acknowledge(package_name, detail.purchase_token)
        log.info("Acknowledged purchase token %s", mask_token(detail.purchase_token))

    def grant(self, account_id: str) -> None:
        self.entitlements.grant(account_id, self.plan)
        log.info("Granted %s plan to %s", self.plan.name, account_id)

    def revoke(self, account_id: str) -> None:
        self.entitlements.revoke(account_id)
        log.info("Revoked access for %s (now on %s plan)", account_id, FreePlan().name)

    def commit_granted(self, record: PurchaseToken, expiry_at: datetime) -> None:
        self.store.update_status_and_expiry(
            record.id,
            status=PurchaseTokenStatus.ACCESS_GRANTED,
            expiry_at=expiry_at,
        )

    def mark_expired(self, record: PurchaseToken) -> None:
        if record.status is PurchaseTokenStatus.EXPIRED:
            return
        self.store.update_status_and_expiry(record.id, status=PurchaseTokenStatus.EXPIRED)
        log.info("Marked purchase token %s as expired", mask_token(record.purchase_token))
