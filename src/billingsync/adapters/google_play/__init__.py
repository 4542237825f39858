"""Public interface for the Google Play adapter."""

from __future__ import annotations

from .auth import GoogleAccessTokenProvider
from .client import GooglePlayClient, subscription_path
from .rtdn import decode_notification_data, decode_push_envelope
from .schema import DeveloperNotificationPayload, PubSubPushEnvelope, SubscriptionPurchaseV2
from .stub import InMemoryGooglePlayClient
from .translator import parse_developer_notification, parse_subscription_detail

__all__ = [
    "DeveloperNotificationPayload",
    "GoogleAccessTokenProvider",
    "GooglePlayClient",
    "InMemoryGooglePlayClient",
    "PubSubPushEnvelope",
    "SubscriptionPurchaseV2",
    "decode_notification_data",
    "decode_push_envelope",
    "parse_developer_notification",
    "parse_subscription_detail",
    "subscription_path",
]
