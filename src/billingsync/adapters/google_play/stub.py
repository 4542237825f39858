"""Deterministic in-memory provider used for local runs and tests."""

from __future__ import annotations

import json
import threading
from dataclasses import dataclass, field, replace
from logging import getLogger
from typing import TYPE_CHECKING

from billingsync.domain.errors import ProviderRejectedError
from billingsync.domain.model import AcknowledgementState, mask_token

from .schema import SubscriptionPurchaseV2
from .translator import parse_subscription_detail

if TYPE_CHECKING:
    from pathlib import Path

    from billingsync.domain.model import SubscriptionDetail

log = getLogger(__name__)


@dataclass
class InMemoryGooglePlayClient:
    details: dict[str, SubscriptionDetail] = field(default_factory=dict)
    fetches: list[str] = field(default_factory=list)
    acknowledged: list[str] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    @classmethod
    def from_fixture_file(cls, path: Path) -> InMemoryGooglePlayClient:
        """Load ``{purchase_token: subscriptionsv2 payload}`` from a JSON file."""

        raw = json.loads(path.read_text(encoding="utf-8"))
        client = cls()
        for token, payload in raw.items():
            client.put(parse_subscription_detail(token, SubscriptionPurchaseV2.model_validate(payload)))
        log.info("Loaded %d stub subscriptions from %s", len(client.details), path)
        return client

    def put(self, detail: SubscriptionDetail) -> None:
        with self._lock:
            self.details[detail.purchase_token] = detail

    def fetch_subscription_detail(self, package_name: str, purchase_token: str) -> SubscriptionDetail:
        with self._lock:
            self.fetches.append(purchase_token)
            detail = self.details.get(purchase_token)
        if detail is None:
            log.warning("Stub provider has no subscription for %s", mask_token(purchase_token))
            raise ProviderRejectedError("The purchase token was not found.", status_code=404)
        return detail

    def acknowledge(self, package_name: str, purchase_token: str) -> None:
        with self._lock:
            detail = self.details.get(purchase_token)
            if detail is None:
                raise ProviderRejectedError("The purchase token was not found.", status_code=404)
            self.acknowledged.append(purchase_token)
            self.details[purchase_token] = replace(
                detail, acknowledgement_state=AcknowledgementState.ACKNOWLEDGED.value
            )
