"""Google Play Developer API configuration values."""

from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Final

from .env import env_choice, require_env_vars
from .errors import ConfigurationError
from .http_resilience import RateLimit, ResilienceConfig

ANDROID_PUBLISHER_BASE_URL: Final[str] = "https://androidpublisher.googleapis.com/androidpublisher/v3/"
ANDROID_PUBLISHER_SCOPE: Final[str] = "https://www.googleapis.com/auth/androidpublisher"
GOOGLE_PLAY_TIMEOUT_SECONDS: Final[float] = 10.0

PROVIDER_BACKENDS: Final[tuple[str, ...]] = ("google", "stub")


def default_google_play_resilience() -> ResilienceConfig:
    return ResilienceConfig(
        name="google-play",
        base_url=ANDROID_PUBLISHER_BASE_URL,
        timeout_seconds=GOOGLE_PLAY_TIMEOUT_SECONDS,
        ratelimit=RateLimit(max_calls=20, per_seconds=1.0),
        default_headers={"Accept": "application/json"},
    )


@dataclass(frozen=True)
class GooglePlayConfig:
    """Service-account credentials and transport settings for the publisher API."""

    service_account_info: dict[str, object]
    scopes: tuple[str, ...] = (ANDROID_PUBLISHER_SCOPE,)
    resilience: ResilienceConfig = field(default_factory=default_google_play_resilience)


def get_provider_backend() -> str:
    return env_choice("BILLINGSYNC_PROVIDER", PROVIDER_BACKENDS, default="google")


def get_google_play_config(*, resilience: ResilienceConfig | None = None) -> GooglePlayConfig:
    values = require_env_vars(("GOOGLE_SERVICE_ACCOUNT_JSON",))
    try:
        info = json.loads(values["GOOGLE_SERVICE_ACCOUNT_JSON"])
    except json.JSONDecodeError as exc:
        raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_JSON is not valid JSON") from exc
    if not isinstance(info, dict):
        raise ConfigurationError("GOOGLE_SERVICE_ACCOUNT_JSON must be a JSON object")
    return GooglePlayConfig(
        service_account_info=info,
        resilience=resilience or default_google_play_resilience(),
    )


def get_stub_fixture_path() -> Path | None:
    """JSON file of ``{purchase_token: subscriptionsv2 payload}`` seeding the stub provider."""

    raw = os.getenv("BILLINGSYNC_STUB_FIXTURES")
    if not raw or not raw.strip():
        return None
    path = Path(raw).expanduser()
    if not path.is_file():
        raise ConfigurationError(f"BILLINGSYNC_STUB_FIXTURES does not point to a file: {path}")
    return path
