"""Domain model for purchase token reconciliation."""

from __future__ import annotations

from .enums import (
    AcknowledgementState,
    OneTimeProductNotificationType,
    PurchaseTokenStatus,
    SubscriptionNotificationType,
    SubscriptionState,
)
from .plans import FreePlan, ProPlan, SubscriptionPlan
from .purchase_token import PurchaseToken, mask_token, new_id, utcnow
from .subscription import LineItem, SubscriptionDetail

__all__ = [
    "AcknowledgementState",
    "FreePlan",
    "LineItem",
    "OneTimeProductNotificationType",
    "ProPlan",
    "PurchaseToken",
    "PurchaseTokenStatus",
    "SubscriptionDetail",
    "SubscriptionNotificationType",
    "SubscriptionPlan",
    "SubscriptionState",
    "mask_token",
    "new_id",
    "utcnow",
]
