"""Mapping of engine errors to HTTP status codes."""

from __future__ import annotations

from typing import Final

from billingsync.domain.errors import (
    BadRequestError,
    BillingError,
    ExternalAccountIdentifiersMissingError,
    ProviderRejectedError,
    ProviderResponseError,
    ProviderUnavailableError,
    PushAuthenticationError,
    SubscriptionStateError,
    SubscriptionSuspendedError,
    TokenAlreadyUsedError,
)

# first match wins, so subclasses precede their bases
STATUS_BY_ERROR: Final[tuple[tuple[type[BillingError], int], ...]] = (
    (TokenAlreadyUsedError, 409),
    (SubscriptionSuspendedError, 202),
    (SubscriptionStateError, 400),
    (ExternalAccountIdentifiersMissingError, 400),
    (ProviderRejectedError, 400),
    (BadRequestError, 400),
    (PushAuthenticationError, 401),
    (ProviderUnavailableError, 502),
    (ProviderResponseError, 502),
)


def status_for(error: BillingError) -> int:
    for error_type, status in STATUS_BY_ERROR:
        if isinstance(error, error_type):
            return status
    return 500
