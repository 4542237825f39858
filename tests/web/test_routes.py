from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import pytest
from fastapi.testclient import TestClient

from billingsync.adapters.push_auth import SigningKeyFetchError
from billingsync.app import BillingServices
from billingsync.domain.errors import (
    BadRequestError,
    BillingError,
    ProviderUnavailableError,
    PushAuthenticationError,
    ServiceAccessFailedError,
    SubscriptionOnHoldError,
    TokenAlreadyUsedError,
    TokenNotFoundError,
)
from billingsync.domain.model import PurchaseTokenStatus, SubscriptionNotificationType, SubscriptionState
from billingsync.web import create_app, status_for
from tests.helpers.purchases import (
    PACKAGE,
    PRODUCT,
    USER,
    make_detail,
    notification_data,
    push_envelope,
)

if TYPE_CHECKING:
    from billingsync.adapters.entitlements import InMemoryEntitlementGateway
    from billingsync.adapters.google_play import InMemoryGooglePlayClient
    from billingsync.domain.notifications import NotificationProcessor
    from billingsync.domain.token_store import TokenStore
    from billingsync.domain.verification import PurchaseVerifier


class _FakePushVerifier:
    def __init__(self, error: BillingError | None = None) -> None:
        self.error = error
        self.headers: list[str | None] = []

    def verify(self, authorization: str | None) -> dict[str, Any]:
        self.headers.append(authorization)
        if self.error is not None:
            raise self.error
        return {"email": "push@example.com"}


def _client(
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
    push_verifier: _FakePushVerifier | None = None,
) -> TestClient:
    services = BillingServices(
        verifier=verifier,
        processor=processor,
        push_verifier=push_verifier,  # type: ignore[arg-type]
    )
    return TestClient(create_app(services))


def _verify_body(token: str, *, user_id: str = USER) -> dict[str, str]:
    return {
        "user_id": user_id,
        "package_name": PACKAGE,
        "product_id": PRODUCT,
        "purchase_token": token,
    }


def test_health(verifier: PurchaseVerifier, processor: NotificationProcessor) -> None:
    response = _client(verifier, processor).get("/health")

    assert response.status_code == 200
    assert response.json() == {"status": "ok"}


def test_verify_grants_purchase(
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
    provider: InMemoryGooglePlayClient,
    ledger: InMemoryEntitlementGateway,
) -> None:
    provider.put(make_detail("tok-http"))
    client = _client(verifier, processor)

    first = client.post("/google/verify", json=_verify_body("tok-http"))
    second = client.post("/google/verify", json=_verify_body("tok-http"))

    assert first.status_code == 200
    assert first.json() == {
        "success": True,
        "message": "Purchase verified",
        "data": {"outcome": "granted"},
    }
    assert second.json()["data"] == {"outcome": "already_granted"}
    assert ledger.grants() == [USER]


def test_verify_rejects_token_of_another_user(
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
    provider: InMemoryGooglePlayClient,
) -> None:
    provider.put(make_detail("tok-taken"))
    client = _client(verifier, processor)
    client.post("/google/verify", json=_verify_body("tok-taken"))

    response = client.post("/google/verify", json=_verify_body("tok-taken", user_id="user-2"))

    assert response.status_code == 409
    body = response.json()
    assert body["success"] is False
    assert body["message"] == "Purchase token already used by different user"
    assert body["data"] == {"code": "token_already_used"}


def test_verify_reports_on_hold_as_accepted(
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
    provider: InMemoryGooglePlayClient,
) -> None:
    provider.put(make_detail("tok-hold", state=SubscriptionState.ON_HOLD))

    response = _client(verifier, processor).post("/google/verify", json=_verify_body("tok-hold"))

    assert response.status_code == 202
    assert response.json()["data"] == {"code": "subscription_on_hold"}


@pytest.mark.parametrize(
    "body",
    [
        {"user_id": USER, "package_name": PACKAGE, "product_id": PRODUCT},
        {**_verify_body("tok"), "user_id": "   "},
    ],
    ids=["missing-field", "blank-field"],
)
def test_verify_rejects_bad_input(
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
    body: dict[str, str],
) -> None:
    response = _client(verifier, processor).post("/google/verify", json=body)

    assert response.status_code == 400
    assert response.json()["success"] is False


def test_webhook_processes_notification(
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
    provider: InMemoryGooglePlayClient,
    token_store: TokenStore,
) -> None:
    provider.put(make_detail("tok-rtdn"))
    push = _FakePushVerifier()
    envelope = push_envelope(
        notification_data("tok-rtdn", SubscriptionNotificationType.PURCHASED),
        message_id="msg-7",
    )

    response = _client(verifier, processor, push).post(
        "/google/rtdn-webhook",
        json=envelope,
        headers={"Authorization": "Bearer signed"},
    )

    assert response.status_code == 200
    assert response.json()["data"] == {"message_id": "msg-7", "outcomes": ["granted"]}
    assert push.headers == ["Bearer signed"]
    record = token_store.find_by_token("tok-rtdn")
    assert record is not None
    assert record.status is PurchaseTokenStatus.ACCESS_GRANTED


def test_webhook_rejects_unauthenticated_delivery(
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
    provider: InMemoryGooglePlayClient,
) -> None:
    push = _FakePushVerifier(PushAuthenticationError("Missing Authorization header"))
    envelope = push_envelope(notification_data("tok-x", SubscriptionNotificationType.PURCHASED))

    response = _client(verifier, processor, push).post("/google/rtdn-webhook", json=envelope)

    assert response.status_code == 401
    assert response.json()["data"] == {"code": "unauthenticated"}
    assert provider.fetches == []


def test_webhook_asks_for_redelivery_when_keys_are_unavailable(
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
) -> None:
    push = _FakePushVerifier(SigningKeyFetchError())
    envelope = push_envelope(notification_data("tok-x", SubscriptionNotificationType.PURCHASED))

    response = _client(verifier, processor, push).post("/google/rtdn-webhook", json=envelope)

    assert response.status_code == 500


def test_webhook_rejects_malformed_body(
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
) -> None:
    response = _client(verifier, processor).post(
        "/google/rtdn-webhook",
        content=json.dumps({"message": {"data": "!!", "messageId": "bad"}}),
        headers={"Content-Type": "application/json"},
    )

    assert response.status_code == 400
    assert response.json()["data"] == {"code": "malformed_notification"}


def test_webhook_returns_server_error_for_redelivery(
    verifier: PurchaseVerifier,
    processor: NotificationProcessor,
    provider: InMemoryGooglePlayClient,
) -> None:
    provider.put(make_detail("tok-unknown-local", state=SubscriptionState.EXPIRED))
    envelope = push_envelope(
        notification_data("tok-unknown-local", SubscriptionNotificationType.REVOKED)
    )

    response = _client(verifier, processor).post("/google/rtdn-webhook", json=envelope)

    assert response.status_code == 500
    assert response.json()["data"] == {"code": "token_not_found"}


@pytest.mark.parametrize(
    ("error", "status"),
    [
        (TokenAlreadyUsedError(), 409),
        (SubscriptionOnHoldError(), 202),
        (BadRequestError(), 400),
        (PushAuthenticationError(), 401),
        (ProviderUnavailableError(), 502),
        (ServiceAccessFailedError(), 500),
        (TokenNotFoundError(), 500),
        (BillingError(), 500),
    ],
)
def test_status_for_maps_errors(error: BillingError, status: int) -> None:
    assert status_for(error) == status
