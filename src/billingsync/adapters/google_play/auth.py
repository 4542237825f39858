"""Service-account access tokens for the Android Publisher API."""

from __future__ import annotations

import threading
from logging import getLogger
from typing import TYPE_CHECKING, Protocol

from google.auth.exceptions import GoogleAuthError
from google.auth.transport.requests import Request
from google.oauth2 import service_account

from billingsync.domain.errors import ProviderAuthFailedError

if TYPE_CHECKING:
    from collections.abc import Callable, Mapping, Sequence

log = getLogger(__name__)


class RefreshableCredentials(Protocol):
    """The slice of ``google.auth.credentials.Credentials`` used here."""

    @property
    def token(self) -> str | None: ...

    @property
    def valid(self) -> bool: ...

    def refresh(self, request: Request) -> None: ...


class GoogleAccessTokenProvider:
    """Caches a service-account bearer token and refreshes it shortly before expiry.

    ``Credentials.valid`` turns false ahead of the real expiry (google-auth applies
    its own refresh threshold), so callers never receive a token that is about to
    lapse mid-request. Refreshes are serialised so concurrent requests trigger at
    most one token exchange.
    """

    def __init__(
        self,
        *,
        service_account_info: Mapping[str, object] | None = None,
        scopes: Sequence[str] = (),
        credentials: RefreshableCredentials | None = None,
        request_factory: Callable[[], Request] = Request,
    ) -> None:
        if credentials is None and service_account_info is None:
            raise ValueError("Either service_account_info or credentials is required")
        self._info = dict(service_account_info) if service_account_info is not None else None
        self._scopes = tuple(scopes)
        self._credentials = credentials
        self._request_factory = request_factory
        self._lock = threading.Lock()

    def token(self) -> str:
        with self._lock:
            credentials = self._load_credentials()
            if not credentials.valid:
                self._refresh(credentials)
            token = credentials.token
        if not token:
            raise ProviderAuthFailedError("Service account refresh returned no access token")
        return token

    def authorization_header(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self.token()}"}

    def _load_credentials(self) -> RefreshableCredentials:
        if self._credentials is not None:
            return self._credentials
        try:
            credentials = service_account.Credentials.from_service_account_info(  # pyright: ignore[reportUnknownMemberType]
                self._info or {},
                scopes=list(self._scopes),
            )
        except (ValueError, KeyError) as exc:
            log.error("Service account credentials are unusable: %s", exc)
            raise ProviderAuthFailedError("Service account credentials are unusable") from exc
        self._credentials = credentials
        return credentials

    def _refresh(self, credentials: RefreshableCredentials) -> None:
        try:
            credentials.refresh(self._request_factory())
        except GoogleAuthError as exc:
            log.error("Failed to refresh service account access token: %s", exc)
            raise ProviderAuthFailedError from exc
        log.debug("Refreshed service account access token")
