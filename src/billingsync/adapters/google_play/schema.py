"""Pydantic models describing Google Play Developer API and RTDN payloads."""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, field_validator


def _blank_to_none(value: object) -> object:
    if isinstance(value, str):
        stripped = value.strip()
        return stripped or None
    return value


class GooglePlayBaseModel(BaseModel):
    model_config = ConfigDict(extra="ignore", populate_by_name=True)


# purchases.subscriptionsv2 ------------------------------------------------


class AutoRenewingPlan(GooglePlayBaseModel):
    auto_renew_enabled: bool | None = Field(default=None, alias="autoRenewEnabled")


class SubscriptionLineItem(GooglePlayBaseModel):
    product_id: str = Field(alias="productId")
    expiry_time: datetime | None = Field(default=None, alias="expiryTime")
    auto_renewing_plan: AutoRenewingPlan | None = Field(default=None, alias="autoRenewingPlan")
    latest_successful_order_id: str | None = Field(default=None, alias="latestSuccessfulOrderId")


class ExternalAccountIdentifiers(GooglePlayBaseModel):
    external_account_id: str | None = Field(default=None, alias="externalAccountId")
    obfuscated_external_account_id: str | None = Field(
        default=None, alias="obfuscatedExternalAccountId"
    )
    obfuscated_external_profile_id: str | None = Field(
        default=None, alias="obfuscatedExternalProfileId"
    )

    _normalize_ids = field_validator(
        "external_account_id",
        "obfuscated_external_account_id",
        "obfuscated_external_profile_id",
        mode="before",
    )(_blank_to_none)


class SubscriptionPurchaseV2(GooglePlayBaseModel):
    kind: str | None = None
    region_code: str | None = Field(default=None, alias="regionCode")
    start_time: datetime | None = Field(default=None, alias="startTime")
    subscription_state: str | None = Field(default=None, alias="subscriptionState")
    acknowledgement_state: str | None = Field(default=None, alias="acknowledgementState")
    latest_order_id: str | None = Field(default=None, alias="latestOrderId")
    linked_purchase_token: str | None = Field(default=None, alias="linkedPurchaseToken")
    line_items: list[SubscriptionLineItem] = Field(default_factory=list, alias="lineItems")
    external_account_identifiers: ExternalAccountIdentifiers | None = Field(
        default=None, alias="externalAccountIdentifiers"
    )

    _normalize_state = field_validator(
        "subscription_state",
        "linked_purchase_token",
        mode="before",
    )(_blank_to_none)


class GoogleApiErrorBody(GooglePlayBaseModel):
    code: int | None = None
    message: str | None = None
    status: str | None = None


class GoogleApiErrorResponse(GooglePlayBaseModel):
    error: GoogleApiErrorBody


# Real-time developer notifications ----------------------------------------


class PubSubMessage(GooglePlayBaseModel):
    data: str
    message_id: str | None = Field(default=None, alias="messageId")
    publish_time: datetime | None = Field(default=None, alias="publishTime")
    attributes: dict[str, str] | None = None


class PubSubPushEnvelope(GooglePlayBaseModel):
    message: PubSubMessage
    subscription: str | None = None


class SubscriptionNotificationPayload(GooglePlayBaseModel):
    version: str = "1.0"
    notification_type: int = Field(alias="notificationType")
    purchase_token: str = Field(alias="purchaseToken")
    subscription_id: str = Field(default="", alias="subscriptionId")


class OneTimeProductNotificationPayload(GooglePlayBaseModel):
    version: str = "1.0"
    notification_type: int = Field(alias="notificationType")
    purchase_token: str = Field(alias="purchaseToken")
    sku: str = ""


class TestNotificationPayload(GooglePlayBaseModel):
    version: str = "1.0"


class DeveloperNotificationPayload(GooglePlayBaseModel):
    version: str = "1.0"
    package_name: str = Field(alias="packageName")
    event_time_millis: int = Field(alias="eventTimeMillis")
    subscription_notification: SubscriptionNotificationPayload | None = Field(
        default=None, alias="subscriptionNotification"
    )
    one_time_product_notification: OneTimeProductNotificationPayload | None = Field(
        default=None, alias="oneTimeProductNotification"
    )
    test_notification: TestNotificationPayload | None = Field(
        default=None, alias="testNotification"
    )
