"""Entitlement ledger configuration values."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Final

from .env import env_choice, env_number, require_env_vars
from .errors import ConfigurationError
from .http_resilience import ResilienceConfig, RetryPolicy

DEFAULT_PRO_PLAN_CREDIT_ALLOTMENT: Final[int] = 30
ENTITLEMENT_TIMEOUT_SECONDS: Final[float] = 10.0

ENTITLEMENT_BACKENDS: Final[tuple[str, ...]] = ("http", "stub")


@dataclass(frozen=True)
class EntitlementConfig:
    base_url: str
    api_token: str
    resilience: ResilienceConfig


def get_entitlement_backend() -> str:
    return env_choice("BILLINGSYNC_ENTITLEMENTS", ENTITLEMENT_BACKENDS, default="http")


def get_pro_plan_credit_allotment() -> int:
    allotment = env_number("PRO_PLAN_CREDIT_ALLOTMENT", default=DEFAULT_PRO_PLAN_CREDIT_ALLOTMENT)
    if allotment < 0 or allotment != int(allotment):
        raise ConfigurationError("PRO_PLAN_CREDIT_ALLOTMENT must be a non-negative integer")
    return int(allotment)


def get_entitlement_config() -> EntitlementConfig:
    values = require_env_vars(("ENTITLEMENT_SERVICE_URL", "ENTITLEMENT_SERVICE_TOKEN"))
    base_url = values["ENTITLEMENT_SERVICE_URL"].rstrip("/") + "/"
    return EntitlementConfig(
        base_url=base_url,
        api_token=values["ENTITLEMENT_SERVICE_TOKEN"],
        resilience=ResilienceConfig(
            name="entitlements",
            base_url=base_url,
            timeout_seconds=ENTITLEMENT_TIMEOUT_SECONDS,
            retry=RetryPolicy(total=2),
            default_headers={"Accept": "application/json"},
        ),
    )
