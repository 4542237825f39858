"""Tuning knobs for the reconciliation engine."""

from __future__ import annotations

from dataclasses import dataclass

from .env import env_number
from .errors import ConfigurationError

DEFAULT_CLAIM_WAIT_SECONDS = 10.0
DEFAULT_CLAIM_POLL_SECONDS = 0.2


@dataclass(frozen=True, slots=True)
class ReconciliationConfig:
    # how long a fresh Pending claim is treated as an in-flight verification
    claim_wait_seconds: float = DEFAULT_CLAIM_WAIT_SECONDS
    claim_poll_seconds: float = DEFAULT_CLAIM_POLL_SECONDS


def get_reconciliation_config() -> ReconciliationConfig:
    wait = env_number("BILLINGSYNC_CLAIM_WAIT_SECONDS", default=DEFAULT_CLAIM_WAIT_SECONDS)
    if wait < 0:
        raise ConfigurationError("BILLINGSYNC_CLAIM_WAIT_SECONDS must be non-negative")
    return ReconciliationConfig(claim_wait_seconds=wait)
