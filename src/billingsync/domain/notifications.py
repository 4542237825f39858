"""Lifecycle notification handling.

A notification is only a trigger: the processor re-fetches the subscription
detail for the referenced token and applies whatever transition the provider's
current state calls for. Replaying the same notification converges to the same
stored state.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from billingsync.domain.errors import TokenConflictError, TokenNotFoundError
from billingsync.domain.model import (
    PurchaseToken,
    PurchaseTokenStatus,
    SubscriptionNotificationType,
    mask_token,
)
from billingsync.domain.reconciliation import expiry_for, require_account_id
from billingsync.domain.subscription_state import Decision, decide, require_entitled

if TYPE_CHECKING:
    from datetime import datetime

    from billingsync.domain.model import SubscriptionDetail
    from billingsync.domain.reconciliation import Reconciler

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SubscriptionEvent:
    notification_type: int
    purchase_token: str
    subscription_id: str
    version: str = "1.0"


@dataclass(frozen=True, slots=True)
class OneTimeProductEvent:
    notification_type: int
    purchase_token: str
    sku: str
    version: str = "1.0"


@dataclass(frozen=True, slots=True)
class TestEvent:
    version: str = "1.0"


@dataclass(frozen=True, slots=True)
class DeveloperNotification:
    version: str
    package_name: str
    event_time: datetime
    subscription: SubscriptionEvent | None = None
    one_time_product: OneTimeProductEvent | None = None
    test: TestEvent | None = None


class NotificationOutcome(StrEnum):
    GRANTED = "granted"
    RENEWED = "renewed"
    REVOKED = "revoked"
    OBSERVED = "observed"
    STALE = "stale"
    ANOMALY = "anomaly"
    IGNORED = "ignored"
    TEST = "test"


GRANT_TYPES = frozenset(
    {
        SubscriptionNotificationType.PURCHASED,
        SubscriptionNotificationType.RENEWED,
        SubscriptionNotificationType.RECOVERED,
    }
)
REVOKE_TYPES = frozenset(
    {
        SubscriptionNotificationType.REVOKED,
        SubscriptionNotificationType.EXPIRED,
        SubscriptionNotificationType.ON_HOLD,
    }
)


@dataclass(slots=True)
class NotificationProcessor:
    reconciler: Reconciler

    def process(self, notification: DeveloperNotification) -> list[NotificationOutcome]:
        log.info(
            "Processing notification for package %s (event time %s)",
            notification.package_name,
            notification.event_time.isoformat(),
        )
        outcomes: list[NotificationOutcome] = []
        if notification.subscription is not None:
            outcomes.append(
                self.handle_subscription(notification.package_name, notification.subscription)
            )
        if notification.one_time_product is not None:
            event = notification.one_time_product
            # one-time products carry no entitlement in this service
            log.info(
                "Ignoring one-time product notification type=%s sku=%s token=%s",
                event.notification_type,
                event.sku,
                mask_token(event.purchase_token),
            )
            outcomes.append(NotificationOutcome.IGNORED)
        if notification.test is not None:
            log.info("Test notification received (version %s)", notification.test.version)
            outcomes.append(NotificationOutcome.TEST)
        if not outcomes:
            log.warning("Notification for %s carried no event payload", notification.package_name)
            outcomes.append(NotificationOutcome.ANOMALY)
        return outcomes

    def handle_subscription(self, package_name: str, event: SubscriptionEvent) -> NotificationOutcome:
        try:
            kind = SubscriptionNotificationType(event.notification_type)
        except ValueError:
            log.warning(
                "Unrecognised subscription notification type %s for token %s",
                event.notification_type,
                mask_token(event.purchase_token),
            )
            return NotificationOutcome.ANOMALY

        log.info(
            "Subscription notification %s for token %s (%s)",
            kind.name,
            mask_token(event.purchase_token),
            event.subscription_id,
        )
        detail = self.reconciler.fetch(package_name, event.purchase_token)
        self._expire_superseded(detail, event.purchase_token)

        if kind is SubscriptionNotificationType.PURCHASED:
            return self._on_purchase(package_name, event, detail)
        if kind in GRANT_TYPES:
            record = self._require_record(event.purchase_token, kind)
            return self._on_renewal(package_name, event, detail, record)
        if kind in REVOKE_TYPES:
            record = self._require_record(event.purchase_token, kind)
            return self._on_revocation(kind, detail, record)

        log.info(
            "No state change for %s on token %s (provider state %s)",
            kind.name,
            mask_token(event.purchase_token),
            detail.subscription_state,
        )
        return NotificationOutcome.OBSERVED

    def _expire_superseded(self, detail: SubscriptionDetail, current_token: str) -> None:
        linked = detail.linked_purchase_token
        if not linked or linked == current_token:
            return
        record = self.reconciler.store.find_by_token(linked)
        if record is None:
            log.debug("Superseded token %s has no local record", mask_token(linked))
            return
        log.info(
            "Token %s supersedes %s",
            mask_token(current_token),
            mask_token(linked),
        )
        self.reconciler.mark_expired(record)

    def _require_record(self, purchase_token: str, kind: SubscriptionNotificationType) -> PurchaseToken:
        record = self.reconciler.store.find_by_token(purchase_token)
        if record is None:
            raise TokenNotFoundError(
                f"{kind.name} notification for unknown purchase token {mask_token(purchase_token)}"
            )
        return record

    def _on_purchase(
        self,
        package_name: str,
        event: SubscriptionEvent,
        detail: SubscriptionDetail,
    ) -> NotificationOutcome:
        store = self.reconciler.store
        existing = store.find_by_token(event.purchase_token)
        if existing is not None:
            return self._on_renewal(package_name, event, detail, existing)

        decision = decide(detail)
        if decision is not Decision.PROCEED:
            return self._hold_back(decision, detail, event.purchase_token)

        account_id = require_account_id(detail)
        expiry_at = expiry_for(detail, event.subscription_id)
        self.reconciler.acknowledge_if_pending(package_name, detail)
        self.reconciler.grant(account_id)
        try:
            store.insert(
                PurchaseToken(
                    user_id=account_id,
                    purchase_token=event.purchase_token,
                    status=PurchaseTokenStatus.ACCESS_GRANTED,
                    expiry_at=expiry_at,
                )
            )
        except TokenConflictError:
            winner = store.find_by_token(event.purchase_token)
            if winner is None:
                raise
            self.reconciler.commit_granted(winner, expiry_at)
        return NotificationOutcome.GRANTED

    def _on_renewal(
        self,
        package_name: str,
        event: SubscriptionEvent,
        detail: SubscriptionDetail,
        record: PurchaseToken,
    ) -> NotificationOutcome:
        decision = decide(detail)
        if decision is Decision.REVOKE:
            log.info(
                "Grant notification for %s but provider reports %s, revoking",
                mask_token(event.purchase_token),
                detail.subscription_state,
            )
            return self._revoke(detail, record)
        if decision is not Decision.PROCEED:
            return self._hold_back(decision, detail, event.purchase_token)

        account_id = require_account_id(detail)
        expiry_at = expiry_for(detail, event.subscription_id)
        self.reconciler.acknowledge_if_pending(package_name, detail)
        self.reconciler.grant(account_id)
        self.reconciler.commit_granted(record, _not_before(expiry_at, record.expiry_at))
        return NotificationOutcome.RENEWED

    def _on_revocation(
        self,
        kind: SubscriptionNotificationType,
        detail: SubscriptionDetail,
        record: PurchaseToken,
    ) -> NotificationOutcome:
        if decide(detail) is Decision.PROCEED:
            log.warning(
                "Ignoring stale %s notification for %s: provider reports %s",
                kind.name,
                mask_token(record.purchase_token),
                detail.subscription_state,
            )
            return NotificationOutcome.STALE
        return self._revoke(detail, record)

    def _revoke(self, detail: SubscriptionDetail, record: PurchaseToken) -> NotificationOutcome:
        account_id = require_account_id(detail)
        self.reconciler.revoke(account_id)
        self.reconciler.mark_expired(record)
        return NotificationOutcome.REVOKED

    def _hold_back(
        self,
        decision: Decision,
        detail: SubscriptionDetail,
        purchase_token: str,
    ) -> NotificationOutcome:
        if decision is Decision.REJECT:
            require_entitled(detail)
        log.info(
            "Not granting %s: provider reports %s (%s)",
            mask_token(purchase_token),
            detail.subscription_state,
            decision.value,
        )
        return NotificationOutcome.OBSERVED


def _not_before(candidate: datetime, current: datetime) -> datetime:
    return max(candidate, current)
