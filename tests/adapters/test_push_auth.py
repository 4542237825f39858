from __future__ import annotations

import time
from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING, Any

import httpx
import jwt
import pytest
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.algorithms import RSAAlgorithm

from billingsync.adapters.push_auth import (
    PushTokenVerifier,
    SigningKeyCache,
    SigningKeyFetchError,
)
from billingsync.config import PushAuthConfig, ResilienceConfig, RetryPolicy
from billingsync.domain.errors import PushAuthenticationError
from tests.helpers.http import FAST_RETRY, mock_client_factory

if TYPE_CHECKING:
    from cryptography.hazmat.primitives.asymmetric.rsa import RSAPrivateKey

CERTS_URL = "https://certs.test/oauth2/v3/certs"
AUDIENCE = "https://billing.example.com/google/rtdn-webhook"
PUSH_ACCOUNT = "pubsub-push@example.iam.gserviceaccount.com"


@pytest.fixture(scope="module")
def signing_key() -> RSAPrivateKey:
    return rsa.generate_private_key(public_exponent=65537, key_size=2048)


def _jwks(key: RSAPrivateKey, kid: str) -> dict[str, Any]:
    jwk = RSAAlgorithm.to_jwk(key.public_key(), as_dict=True)
    jwk.update({"kid": kid, "alg": "RS256", "use": "sig"})
    return {"keys": [jwk]}


def _token(key: RSAPrivateKey, *, kid: str = "key-1", **overrides: Any) -> str:
    now = datetime.now(tz=UTC)
    claims: dict[str, Any] = {
        "iss": "https://accounts.google.com",
        "aud": AUDIENCE,
        "iat": now,
        "exp": now + timedelta(hours=1),
        "email": PUSH_ACCOUNT,
        "email_verified": True,
    }
    claims.update(overrides)
    claims = {name: value for name, value in claims.items() if value is not None}
    return jwt.encode(claims, key, algorithm="RS256", headers={"kid": kid})


class _CertsEndpoint:
    def __init__(self, body: dict[str, Any]) -> None:
        self.body = body
        self.requests = 0

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests += 1
        return httpx.Response(200, json=self.body)


def _verifier(
    endpoint: _CertsEndpoint,
    *,
    email: str | None = PUSH_ACCOUNT,
) -> PushTokenVerifier:
    keys = SigningKeyCache(
        certs_url=CERTS_URL,
        resilience=ResilienceConfig(name="certs-test", retry=FAST_RETRY),
        client_factory=mock_client_factory(endpoint),
    )
    return PushTokenVerifier(
        config=PushAuthConfig(audience=AUDIENCE, service_account_email=email, certs_url=CERTS_URL),
        keys=keys,
    )


def test_valid_push_token_is_accepted(signing_key: RSAPrivateKey) -> None:
    endpoint = _CertsEndpoint(_jwks(signing_key, "key-1"))
    verifier = _verifier(endpoint)

    claims = verifier.verify(f"Bearer {_token(signing_key)}")
    verifier.verify(f"bearer {_token(signing_key)}")

    assert claims["email"] == PUSH_ACCOUNT
    assert endpoint.requests == 1


@pytest.mark.parametrize(
    "authorization",
    [None, "", "Basic dXNlcjpwYXNz", "Bearer ", "Bearer not-a-jwt"],
)
def test_missing_or_malformed_header_is_rejected(
    signing_key: RSAPrivateKey,
    authorization: str | None,
) -> None:
    verifier = _verifier(_CertsEndpoint(_jwks(signing_key, "key-1")))

    with pytest.raises(PushAuthenticationError):
        verifier.verify(authorization)


@pytest.mark.parametrize(
    "overrides",
    [
        {"aud": "https://someone-else.example.com"},
        {"iss": "https://evil.example.com"},
        {"exp": datetime.now(tz=UTC) - timedelta(minutes=5)},
        {"email": "other@example.com"},
        {"email_verified": False},
        {"iat": None},
    ],
    ids=["audience", "issuer", "expired", "email", "unverified-email", "missing-iat"],
)
def test_claims_are_enforced(signing_key: RSAPrivateKey, overrides: dict[str, Any]) -> None:
    verifier = _verifier(_CertsEndpoint(_jwks(signing_key, "key-1")))

    with pytest.raises(PushAuthenticationError):
        verifier.verify(f"Bearer {_token(signing_key, **overrides)}")


def test_email_is_not_checked_without_a_configured_account(signing_key: RSAPrivateKey) -> None:
    verifier = _verifier(_CertsEndpoint(_jwks(signing_key, "key-1")), email=None)

    claims = verifier.verify(f"Bearer {_token(signing_key, email='anyone@example.com')}")

    assert claims["aud"] == AUDIENCE


def test_token_signed_by_another_key_is_rejected(signing_key: RSAPrivateKey) -> None:
    impostor = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    verifier = _verifier(_CertsEndpoint(_jwks(signing_key, "key-1")))

    with pytest.raises(PushAuthenticationError):
        verifier.verify(f"Bearer {_token(impostor, kid='key-1')}")


def test_unknown_key_id_forces_one_refresh(signing_key: RSAPrivateKey) -> None:
    rotated = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    endpoint = _CertsEndpoint(_jwks(signing_key, "key-1"))
    verifier = _verifier(endpoint)
    verifier.verify(f"Bearer {_token(signing_key)}")

    endpoint.body = _jwks(rotated, "key-2")
    claims = verifier.verify(f"Bearer {_token(rotated, kid='key-2')}")

    assert claims["iss"] == "https://accounts.google.com"
    assert endpoint.requests == 2
    with pytest.raises(PushAuthenticationError, match="Unknown signing key"):
        verifier.verify(f"Bearer {_token(rotated, kid='key-9')}")


def test_key_set_is_cached_for_its_lifespan(signing_key: RSAPrivateKey) -> None:
    endpoint = _CertsEndpoint(_jwks(signing_key, "key-1"))
    cache = SigningKeyCache(
        certs_url=CERTS_URL,
        resilience=ResilienceConfig(name="certs-test", retry=FAST_RETRY),
        lifespan_seconds=0.2,
        client_factory=mock_client_factory(endpoint),
    )

    cache.get("key-1")
    cache.get("key-1")
    assert endpoint.requests == 1

    time.sleep(0.3)
    cache.get("key-1")
    assert endpoint.requests == 2


@pytest.mark.parametrize(
    ("status", "body"),
    [
        (500, b""),
        (200, b"<html>not json</html>"),
        (200, b'{"keys": []}'),
    ],
    ids=["server-error", "not-json", "no-keys"],
)
def test_failing_key_endpoint_is_not_an_authentication_failure(status: int, body: bytes) -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status, content=body)

    cache = SigningKeyCache(
        certs_url=CERTS_URL,
        resilience=ResilienceConfig(name="certs-test", retry=FAST_RETRY),
        client_factory=mock_client_factory(handler),
    )

    with pytest.raises(SigningKeyFetchError) as excinfo:
        cache.get("key-1")
    assert not isinstance(excinfo.value, PushAuthenticationError)


def test_failed_fetch_is_retried_on_the_next_lookup(signing_key: RSAPrivateKey) -> None:
    responses = [httpx.Response(503), httpx.Response(200, json=_jwks(signing_key, "key-1"))]

    def handler(request: httpx.Request) -> httpx.Response:
        return responses.pop(0)

    cache = SigningKeyCache(
        certs_url=CERTS_URL,
        resilience=ResilienceConfig(
            name="certs-test",
            retry=RetryPolicy(total=0, backoff_factor=0.0, backoff_jitter=0.0),
        ),
        client_factory=mock_client_factory(handler),
    )

    with pytest.raises(SigningKeyFetchError):
        cache.get("key-1")
    assert cache.get("key-1").key_id == "key-1"
