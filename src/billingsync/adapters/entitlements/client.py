"""HTTP adapter for the external entitlement ledger."""

from __future__ import annotations

from dataclasses import asdict
from logging import getLogger
from typing import TYPE_CHECKING
from urllib.parse import quote

import httpx

from billingsync.adapters.http_resilience import BackgroundClient
from billingsync.domain.errors import ServiceAccessFailedError
from billingsync.domain.model import FreePlan

if TYPE_CHECKING:
    from collections.abc import Callable

    from billingsync.adapters.http_resilience import ResilientClient
    from billingsync.config.entitlements import EntitlementConfig
    from billingsync.config.http_resilience import ResilienceConfig
    from billingsync.domain.model import SubscriptionPlan


log = getLogger(__name__)


def plan_payload(plan: SubscriptionPlan) -> dict[str, object]:
    return asdict(plan)


class HttpEntitlementGateway:
    """Sets a user's plan with ``PUT users/{user_id}/subscription-plan``."""

    def __init__(
        self,
        *,
        config: EntitlementConfig,
        client_factory: Callable[[ResilienceConfig], ResilientClient] | None = None,
    ) -> None:
        self._config = config
        self._http = BackgroundClient(config.resilience, client_factory=client_factory)

    def grant(self, user_id: str, plan: SubscriptionPlan) -> None:
        self._set_plan(user_id, plan)

    def revoke(self, user_id: str) -> None:
        self._set_plan(user_id, FreePlan())

    def close(self) -> None:
        self._http.close()

    def _set_plan(self, user_id: str, plan: SubscriptionPlan) -> None:
        path = f"users/{quote(user_id, safe='')}/subscription-plan"
        headers = {"Authorization": f"Bearer {self._config.api_token}"}

        async def put(client: ResilientClient) -> httpx.Response:
            try:
                return await client.put(path, json=plan_payload(plan), headers=headers)
            except httpx.HTTPError as exc:
                log.error("Entitlement update for %s failed: %s", user_id, exc)
                raise ServiceAccessFailedError(f"Entitlement service unreachable: {exc}") from exc

        response = self._http.call(put)
        if response.is_error:
            log.error(
                "Entitlement update for %s to %s rejected with %s",
                user_id,
                plan.name,
                response.status_code,
            )
            raise ServiceAccessFailedError(
                f"Entitlement service returned {response.status_code} for {plan.name} plan"
            )
        log.debug("Entitlement service set %s plan for %s", plan.name, user_id)
