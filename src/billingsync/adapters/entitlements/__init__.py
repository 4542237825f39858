"""Entitlement ledger adapters."""

from __future__ import annotations

from .client import HttpEntitlementGateway, plan_payload
from .stub import InMemoryEntitlementGateway

__all__ = ["HttpEntitlementGateway", "InMemoryEntitlementGateway", "plan_payload"]
