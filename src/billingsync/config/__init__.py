"""Application configuration helpers."""

from __future__ import annotations

from .entitlements import (
    EntitlementConfig,
    get_entitlement_backend,
    get_entitlement_config,
    get_pro_plan_credit_allotment,
)
from .env import env_choice, env_number, require_env_var, require_env_vars
from .errors import ConfigurationError, MissingConfigurationError
from .google_play import (
    GooglePlayConfig,
    get_google_play_config,
    get_provider_backend,
    get_stub_fixture_path,
)
from .http_resilience import RateLimit, ResilienceConfig, RetryPolicy
from .logging import configure_logging
from .push_auth import PushAuthConfig, get_push_auth_config, get_push_auth_mode
from .reconciliation import ReconciliationConfig, get_reconciliation_config
from .storage import DatabaseConfig, get_database_config, local_database_uri

__all__ = [
    "ConfigurationError",
    "DatabaseConfig",
    "EntitlementConfig",
    "GooglePlayConfig",
    "MissingConfigurationError",
    "PushAuthConfig",
    "RateLimit",
    "ReconciliationConfig",
    "ResilienceConfig",
    "RetryPolicy",
    "configure_logging",
    "env_choice",
    "env_number",
    "get_database_config",
    "get_entitlement_backend",
    "get_entitlement_config",
    "get_google_play_config",
    "get_pro_plan_credit_allotment",
    "get_provider_backend",
    "get_push_auth_config",
    "get_push_auth_mode",
    "get_reconciliation_config",
    "get_stub_fixture_path",
    "local_database_uri",
    "require_env_var",
    "require_env_vars",
]
