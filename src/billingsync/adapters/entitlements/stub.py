"""In-memory entitlement ledger."""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from billingsync.domain.errors import ServiceAccessFailedError
from billingsync.domain.model import FreePlan

if TYPE_CHECKING:
    from billingsync.domain.model import SubscriptionPlan


@dataclass
class InMemoryEntitlementGateway:
    plans: dict[str, SubscriptionPlan] = field(default_factory=dict)
    calls: list[tuple[str, str, str]] = field(default_factory=list)
    fail_with: ServiceAccessFailedError | None = None
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def grant(self, user_id: str, plan: SubscriptionPlan) -> None:
        self._set(user_id, plan, action="grant")

    def revoke(self, user_id: str) -> None:
        self._set(user_id, FreePlan(), action="revoke")

    def plan_for(self, user_id: str) -> SubscriptionPlan:
        return self.plans.get(user_id, FreePlan())

    def grants(self) -> list[str]:
        return [user_id for action, user_id, _ in self.calls if action == "grant"]

    def _set(self, user_id: str, plan: SubscriptionPlan, *, action: str) -> None:
        with self._lock:
            if self.fail_with is not None:
                raise self.fail_with
            self.calls.append((action, user_id, plan.name))
            self.plans[user_id] = plan
