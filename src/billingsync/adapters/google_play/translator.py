"""Translate Google Play payloads into domain value objects."""

from __future__ import annotations

from datetime import UTC, datetime
from typing import TYPE_CHECKING

from billingsync.domain.model import LineItem, SubscriptionDetail
from billingsync.domain.notifications import (
    DeveloperNotification,
    OneTimeProductEvent,
    SubscriptionEvent,
    TestEvent,
)

if TYPE_CHECKING:
    from .schema import DeveloperNotificationPayload, SubscriptionLineItem, SubscriptionPurchaseV2


def _as_utc(value: datetime | None) -> datetime | None:
    if value is None:
        return None
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _line_item(payload: SubscriptionLineItem) -> LineItem:
    plan = payload.auto_renewing_plan
    return LineItem(
        product_id=payload.product_id,
        expiry_time=_as_utc(payload.expiry_time),
        auto_renewing=plan.auto_renew_enabled if plan is not None else None,
    )


def parse_subscription_detail(purchase_token: str, payload: SubscriptionPurchaseV2) -> SubscriptionDetail:
    identifiers = payload.external_account_identifiers
    return SubscriptionDetail(
        purchase_token=purchase_token,
        subscription_state=payload.subscription_state,
        acknowledgement_state=payload.acknowledgement_state,
        line_items=tuple(_line_item(item) for item in payload.line_items),
        external_account_id=(
            identifiers.obfuscated_external_account_id if identifiers is not None else None
        ),
        linked_purchase_token=payload.linked_purchase_token,
        latest_order_id=payload.latest_order_id,
    )


def parse_developer_notification(payload: DeveloperNotificationPayload) -> DeveloperNotification:
    subscription = payload.subscription_notification
    one_time = payload.one_time_product_notification
    test = payload.test_notification
    return DeveloperNotification(
        version=payload.version,
        package_name=payload.package_name,
        event_time=datetime.fromtimestamp(payload.event_time_millis / 1000, tz=UTC),
        subscription=(
            SubscriptionEvent(
                notification_type=subscription.notification_type,
                purchase_token=subscription.purchase_token,
                subscription_id=subscription.subscription_id,
                version=subscription.version,
            )
            if subscription is not None
            else None
        ),
        one_time_product=(
            OneTimeProductEvent(
                notification_type=one_time.notification_type,
                purchase_token=one_time.purchase_token,
                sku=one_time.sku,
                version=one_time.version,
            )
            if one_time is not None
            else None
        ),
        test=TestEvent(version=test.version) if test is not None else None,
    )
