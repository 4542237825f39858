"""Error taxonomy for the reconciliation engine.

Every error carries a stable ``code`` so outer layers can map it to a transport
status without inspecting messages. ``retryable`` marks failures where re-driving
the whole request later may succeed.
"""

from __future__ import annotations

from typing import ClassVar


class BillingError(RuntimeError):
    """Base class for all reconciliation failures."""

    code: ClassVar[str] = "internal_error"
    retryable: ClassVar[bool] = False
    default_message: ClassVar[str] = "Internal server error"

    def __init__(self, message: str | None = None) -> None:
        super().__init__(message or self.default_message)


class BadRequestError(BillingError):
    code = "bad_request"
    default_message = "Bad request"


# Token ownership / store ---------------------------------------------------


class TokenAlreadyUsedError(BillingError):
    code = "token_already_used"
    default_message = "Purchase token already used by different user"


class TokenConflictError(BillingError):
    """Raised by the token store when an insert hits the unique token constraint."""

    code = "token_conflict"
    retryable = True
    default_message = "Purchase token already exists"


class TokenNotFoundError(BillingError):
    code = "token_not_found"
    retryable = True
    default_message = "No local record for purchase token"


# Subscription state --------------------------------------------------------


class SubscriptionStateError(BillingError):
    """The provider reports a state that does not allow granting access."""


class SubscriptionCanceledError(SubscriptionStateError):
    code = "subscription_canceled"
    default_message = "Subscription has been canceled"


class SubscriptionExpiredError(SubscriptionStateError):
    code = "subscription_expired"
    default_message = "Subscription has expired"


class SubscriptionSuspendedError(SubscriptionStateError):
    """Accepted but not granted: the subscription may come back on its own."""


class SubscriptionOnHoldError(SubscriptionSuspendedError):
    code = "subscription_on_hold"
    default_message = "Subscription is on hold"


class SubscriptionPausedError(SubscriptionSuspendedError):
    code = "subscription_paused"
    default_message = "Subscription is paused by user"


class SubscriptionInvalidStateError(SubscriptionStateError):
    code = "subscription_invalid_state"
    default_message = "Unknown or invalid subscription state"


class SubscriptionNoStateError(SubscriptionStateError):
    code = "subscription_no_state"
    default_message = "No subscription state found in response"


class SubscriptionInvalidLineItemsError(SubscriptionStateError):
    code = "subscription_invalid_line_items"
    default_message = "Subscription has no valid line item for the product"


class ExternalAccountIdentifiersMissingError(BillingError):
    code = "external_account_identifiers_missing"
    default_message = "External account identifiers are missing"


# Provider ------------------------------------------------------------------


class ProviderError(BillingError):
    """Failure talking to the billing provider."""


class ProviderUnavailableError(ProviderError):
    code = "provider_unavailable"
    retryable = True
    default_message = "Billing provider is unavailable"


class ProviderRejectedError(ProviderError):
    code = "provider_rejected"
    default_message = "Billing provider rejected the request"

    def __init__(self, message: str | None = None, *, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class ProviderAuthFailedError(ProviderError):
    code = "provider_auth_failed"
    default_message = "Failed to obtain billing provider access token"


class ProviderResponseError(ProviderError):
    code = "provider_response_invalid"
    retryable = True
    default_message = "Failed to parse billing provider response"


# Entitlements --------------------------------------------------------------


class ServiceAccessFailedError(BillingError):
    code = "service_access_failed"
    retryable = True
    default_message = "Failed to update service access"


# Inbound -------------------------------------------------------------------


class MalformedNotificationError(BadRequestError):
    code = "malformed_notification"
    default_message = "Malformed push notification"


class PushAuthenticationError(BillingError):
    code = "unauthenticated"
    default_message = "Push delivery could not be authenticated"
