"""HTTP client for the Google Play Developer API (subscriptionsv2)."""

from __future__ import annotations

from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx
from pydantic import ValidationError

from billingsync.adapters.http_resilience import BackgroundClient
from billingsync.domain.errors import (
    ProviderRejectedError,
    ProviderResponseError,
    ProviderUnavailableError,
)
from billingsync.domain.model import mask_token

from .auth import GoogleAccessTokenProvider
from .schema import GoogleApiErrorResponse, SubscriptionPurchaseV2
from .translator import parse_subscription_detail

if TYPE_CHECKING:
    from collections.abc import Callable

    from billingsync.adapters.http_resilience import ResilientClient
    from billingsync.config.google_play import GooglePlayConfig
    from billingsync.config.http_resilience import ResilienceConfig
    from billingsync.domain.model import SubscriptionDetail

log = getLogger(__name__)


def subscription_path(package_name: str, purchase_token: str) -> str:
    return (
        f"applications/{quote(package_name, safe='')}"
        f"/purchases/subscriptionsv2/tokens/{quote(purchase_token, safe='')}"
    )


def _error_message(response: httpx.Response) -> str:
    try:
        body = GoogleApiErrorResponse.model_validate_json(response.content)
    except ValidationError:
        return response.reason_phrase or f"HTTP {response.status_code}"
    return body.error.message or body.error.status or f"HTTP {response.status_code}"


class GooglePlayClient:
    """Live provider client backed by the Android Publisher REST API."""

    def __init__(
        self,
        *,
        config: GooglePlayConfig,
        token_provider: GoogleAccessTokenProvider | None = None,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._tokens = token_provider or GoogleAccessTokenProvider(
            service_account_info=config.service_account_info,
            scopes=config.scopes,
        )
        self._http = BackgroundClient(config.resilience, client_factory=client_factory)

    def fetch_subscription_detail(self, package_name: str, purchase_token: str) -> SubscriptionDetail:
        headers = self._tokens.authorization_header()
        path = subscription_path(package_name, purchase_token)
        response = self._request("GET", path, headers)
        try:
            payload = SubscriptionPurchaseV2.model_validate_json(response.content)
        except ValidationError as exc:
            log.error("Unparseable Google Play response for %s: %s", _masked(path), exc)
            raise ProviderResponseError from exc
        return parse_subscription_detail(purchase_token, payload)

    def acknowledge(self, package_name: str, purchase_token: str) -> None:
        headers = self._tokens.authorization_header()
        path = f"{subscription_path(package_name, purchase_token)}:acknowledge"
        self._request("POST", path, headers)

    def close(self) -> None:
        self._http.close()

    def _request(self, method: str, path: str, headers: dict[str, str]) -> httpx.Response:
        response = self._http.call(lambda client: self._send(client, method, path, headers))
        self._raise_for_status(method, path, response)
        return response

    @staticmethod
    async def _send(
        client: ResilientClient, method: str, path: str, headers: dict[str, str]
    ) -> httpx.Response:
        try:
            if method == "POST":
                return await client.post(path, headers=headers, json={})
            return await client.get(path, headers=headers)
        except httpx.HTTPError as exc:
            log.error("Google Play %s %s failed: %s", method, _masked(path), exc)
            raise ProviderUnavailableError(f"Google Play request failed: {exc}") from exc

    @staticmethod
    def _raise_for_status(method: str, path: str, response: httpx.Response) -> None:
        status = response.status_code
        if status < 400:
            return
        message = _error_message(response)
        if status == 429 or status >= 500:
            log.error("Google Play %s %s unavailable (%s): %s", method, _masked(path), status, message)
            raise ProviderUnavailableError(f"Google Play returned {status}: {message}")
        log.warning("Google Play %s %s rejected (%s): %s", method, _masked(path), status, message)
        raise ProviderRejectedError(f"Google Play returned {status}: {message}", status_code=status)


def _masked(path: str) -> str:
    head, _, token = path.rpartition("/tokens/")
    if not head:
        return path
    token, colon, action = token.partition(":")
    return f"{head}/tokens/{mask_token(token)}{colon}{action}"
