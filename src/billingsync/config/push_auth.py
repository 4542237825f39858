"""Configuration for authenticating Pub/Sub push deliveries."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Final

from .env import env_choice, require_env_vars
from .http_resilience import ResilienceConfig

GOOGLE_CERTS_URL: Final[str] = "https://www.googleapis.com/oauth2/v3/certs"
GOOGLE_ISSUERS: Final[tuple[str, ...]] = ("accounts.google.com", "https://accounts.google.com")
PUSH_AUTH_MODES: Final[tuple[str, ...]] = ("google", "disabled")


@dataclass(frozen=True, slots=True)
class PushAuthConfig:
    audience: str
    service_account_email: str | None = None
    certs_url: str = GOOGLE_CERTS_URL
    issuers: tuple[str, ...] = GOOGLE_ISSUERS
    key_cache_seconds: float = 3600.0

    def resilience(self) -> ResilienceConfig:
        return ResilienceConfig(name="google-certs", timeout_seconds=5.0)


def get_push_auth_mode() -> str:
    return env_choice("BILLINGSYNC_PUSH_AUTH", PUSH_AUTH_MODES, default="google")


def get_push_auth_config() -> PushAuthConfig:
    values = require_env_vars(("PUSH_AUTH_AUDIENCE",))
    email = os.getenv("PUSH_AUTH_SERVICE_ACCOUNT_EMAIL")
    return PushAuthConfig(
        audience=values["PUSH_AUTH_AUDIENCE"],
        service_account_email=email.strip() if email and email.strip() else None,
    )
