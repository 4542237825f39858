"""Authentication of Pub/Sub push deliveries.

Pub/Sub signs each push request with a Google-issued OIDC token. The public
signing keys come from Google's JWKS endpoint through ``jwt.PyJWKClient``,
which caches the key set for a fixed lifespan and refetches it once when a
token names a key id it has not seen.
"""

from __future__ import annotations

import threading
from logging import getLogger
from typing import TYPE_CHECKING, Any

import httpx
import jwt

from billingsync.adapters.http_resilience import BackgroundClient
from billingsync.domain.errors import BillingError, PushAuthenticationError

if TYPE_CHECKING:
    from collections.abc import Callable

    from billingsync.adapters.http_resilience import ResilientClient
    from billingsync.config.http_resilience import ResilienceConfig
    from billingsync.config.push_auth import PushAuthConfig

log = getLogger(__name__)


class SigningKeyFetchError(BillingError):
    code = "signing_keys_unavailable"
    retryable = True
    default_message = "Could not fetch push signing keys"


class _ResilientJWKClient(jwt.PyJWKClient):
    """``PyJWKClient`` that downloads the key set through ``ResilientClient``."""

    def __init__(
        self,
        uri: str,
        *,
        http: BackgroundClient,
        lifespan_seconds: float,
    ) -> None:
        super().__init__(uri, cache_keys=False, cache_jwk_set=True, lifespan=lifespan_seconds)
        self._http = http

    def fetch_data(self) -> Any:
        try:
            response = self._http.call(lambda client: client.get(self.uri))
        except httpx.HTTPError as exc:
            log.error("Fetching signing keys from %s failed: %s", self.uri, exc)
            raise SigningKeyFetchError from exc
        if response.is_error:
            log.error("Signing key endpoint returned %s", response.status_code)
            raise SigningKeyFetchError(f"Signing key endpoint returned {response.status_code}")
        try:
            data = response.json()
            if not isinstance(data, dict):
                raise jwt.PyJWKSetError("Key set is not a JSON object")
            key_set = jwt.PyJWKSet.from_dict(data)
        except (ValueError, jwt.PyJWKSetError) as exc:
            log.error("Signing key endpoint returned an unusable key set: %s", exc)
            raise SigningKeyFetchError from exc

        if self.jwk_set_cache is not None:
            self.jwk_set_cache.put(data)
        log.info("Loaded %d push signing keys from %s", len(key_set.keys), self.uri)
        return data


class SigningKeyCache:
    """Process-wide signing keys; one thread at a time may look up or refresh them."""

    def __init__(
        self,
        *,
        certs_url: str,
        resilience: ResilienceConfig,
        lifespan_seconds: float = 3600.0,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._http = BackgroundClient(resilience, client_factory=client_factory)
        self._jwk_client = _ResilientJWKClient(
            certs_url,
            http=self._http,
            lifespan_seconds=lifespan_seconds,
        )
        self._lock = threading.Lock()

    def get(self, key_id: str) -> jwt.PyJWK:
        with self._lock:
            try:
                return self._jwk_client.get_signing_key(key_id)
            except jwt.PyJWKClientError as exc:
                raise PushAuthenticationError(f"Unknown signing key id {key_id!r}") from exc

    def close(self) -> None:
        self._http.close()


class PushTokenVerifier:
    """Validates the bearer token on a push delivery."""

    def __init__(self, *, config: PushAuthConfig, keys: SigningKeyCache) -> None:
        self._config = config
        self._keys = keys

    def close(self) -> None:
        self._keys.close()

    def verify(self, authorization: str | None) -> dict[str, Any]:
        token = _bearer_token(authorization)
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as exc:
            raise PushAuthenticationError("Malformed bearer token") from exc
        key_id = header.get("kid")
        if not isinstance(key_id, str):
            raise PushAuthenticationError("Bearer token has no key id")

        key = self._keys.get(key_id)
        try:
            claims: dict[str, Any] = jwt.decode(
                token,
                key.key,
                algorithms=["RS256"],
                audience=self._config.audience,
                options={"require": ["exp", "iat", "iss", "aud"]},
            )
        except jwt.InvalidTokenError as exc:
            log.warning("Rejected push bearer token: %s", exc)
            raise PushAuthenticationError(f"Invalid bearer token: {exc}") from exc

        if claims.get("iss") not in self._config.issuers:
            log.warning("Rejected push bearer token from issuer %r", claims.get("iss"))
            raise PushAuthenticationError("Unexpected token issuer")
        expected_email = self._config.service_account_email
        if expected_email is not None:
            if claims.get("email") != expected_email or not claims.get("email_verified", False):
                log.warning("Rejected push bearer token for %r", claims.get("email"))
                raise PushAuthenticationError("Token was not issued to the push service account")
        return claims


def _bearer_token(authorization: str | None) -> str:
    if not authorization:
        raise PushAuthenticationError("Missing Authorization header")
    scheme, _, token = authorization.partition(" ")
    if scheme.lower() != "bearer" or not token.strip():
        raise PushAuthenticationError("Authorization header is not a bearer token")
    return token.strip()


def build_push_verifier(config: PushAuthConfig) -> PushTokenVerifier:
    keys = SigningKeyCache(
        certs_url=config.certs_url,
        resilience=config.resilience(),
        lifespan_seconds=config.key_cache_seconds,
    )
    return PushTokenVerifier(config=config, keys=keys)
