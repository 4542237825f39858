"""Port for the subscription billing provider."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from billingsync.domain.model import SubscriptionDetail


@runtime_checkable
class ProviderClient(Protocol):
    """Fetches authoritative subscription detail and acknowledges purchases.

    Implementations raise ``ProviderUnavailableError``, ``ProviderRejectedError``,
    ``ProviderAuthFailedError`` or ``ProviderResponseError``.
    """

    def fetch_subscription_detail(self, package_name: str, purchase_token: str) -> SubscriptionDetail:
        ...

    def acknowledge(self, package_name: str, purchase_token: str) -> None: ...
