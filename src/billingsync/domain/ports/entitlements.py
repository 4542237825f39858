"""Port for the external entitlement ledger."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol, runtime_checkable

if TYPE_CHECKING:
    from billingsync.domain.model import SubscriptionPlan


@runtime_checkable
class EntitlementGateway(Protocol):
    """Sets the plan of a user on the ledger.

    Both calls are "set plan" operations and therefore idempotent. Failures are
    reported as ``ServiceAccessFailedError``.
    """

    def grant(self, user_id: str, plan: SubscriptionPlan) -> None: ...

    def revoke(self, user_id: str) -> None: ...
