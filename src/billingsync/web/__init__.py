"""HTTP surface of the reconciliation engine."""

from __future__ import annotations

from .app import create_app
from .errors import status_for

__all__ = ["create_app", "status_for"]
