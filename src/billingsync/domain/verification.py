"""Synchronous purchase verification."""

from __future__ import annotations

import time
from dataclasses import dataclass, fields
from enum import StrEnum
from logging import getLogger
from typing import TYPE_CHECKING

from billingsync.domain.errors import (
    BadRequestError,
    SubscriptionInvalidLineItemsError,
    TokenAlreadyUsedError,
    TokenConflictError,
)
from billingsync.domain.model import PurchaseToken, PurchaseTokenStatus, mask_token, utcnow
from billingsync.domain.reconciliation import require_account_id
from billingsync.domain.subscription_state import require_entitled

if TYPE_CHECKING:
    from collections.abc import Callable
    from datetime import datetime

    from billingsync.domain.reconciliation import Reconciler

log = getLogger(__name__)


@dataclass(frozen=True, slots=True)
class VerifyRequest:
    user_id: str
    package_name: str
    product_id: str
    purchase_token: str

    def validate(self) -> None:
        for item in fields(self):
            value = getattr(self, item.name)
            if not isinstance(value, str) or not value.strip():
                raise BadRequestError(f"{item.name} must be a non-empty string")


class VerificationOutcome(StrEnum):
    GRANTED = "granted"
    ALREADY_GRANTED = "already_granted"


@dataclass(slots=True)
class PurchaseVerifier:
    """Decides grant / deny / already-granted for a client-submitted purchase token."""

    reconciler: Reconciler
    claim_wait_seconds: float = 10.0
    claim_poll_seconds: float = 0.2
    clock: Callable[[], datetime] = utcnow
    sleep: Callable[[float], None] = time.sleep

    def verify(self, request: VerifyRequest) -> VerificationOutcome:
        request.validate()
        store = self.reconciler.store

        existing = store.find_by_token(request.purchase_token)
        if existing is not None:
            settled = self._settle_existing(existing, request)
            if settled is not None:
                return settled

        detail = self.reconciler.fetch(request.package_name, request.purchase_token)
        line_item = detail.line_item_for(request.product_id)
        if line_item is None or line_item.expiry_time is None:
            raise SubscriptionInvalidLineItemsError
        require_entitled(detail)
        account_id = require_account_id(detail)
        if account_id != request.user_id:
            log.warning(
                "Purchase token %s is linked to account %s but was submitted by %s",
                mask_token(request.purchase_token),
                account_id,
                request.user_id,
            )

        record = existing
        if record is None:
            try:
                record = self._claim(request, line_item.expiry_time)
            except TokenConflictError:
                winner = store.find_by_token(request.purchase_token)
                if winner is None:
                    raise
                settled = self._settle_existing(winner, request)
                if settled is not None:
                    return settled
                record = winner

        self.reconciler.acknowledge_if_pending(request.package_name, detail)
        self.reconciler.grant(account_id)
        self.reconciler.commit_granted(record, line_item.expiry_time)
        log.info(
            "Verified purchase token %s for user %s until %s",
            mask_token(request.purchase_token),
            request.user_id,
            line_item.expiry_time.isoformat(),
        )
        return VerificationOutcome.GRANTED

    def _settle_existing(
        self,
        record: PurchaseToken,
        request: VerifyRequest,
    ) -> VerificationOutcome | None:
        if not record.is_owned_by(request.user_id):
            log.warning(
                "Rejected purchase token %s for user %s: owned by %s",
                mask_token(request.purchase_token),
                request.user_id,
                record.user_id,
            )
            raise TokenAlreadyUsedError

        if record.is_fresh_claim(self.clock(), window_seconds=self.claim_wait_seconds):
            record = self._await_claim(record)

        if record.grants_access_at(self.clock()):
            return VerificationOutcome.ALREADY_GRANTED
        return None

    def _await_claim(self, record: PurchaseToken) -> PurchaseToken:
        """Poll a concurrent verification's claim until it settles or goes stale."""

        window = self.claim_wait_seconds
        current = record
        while current.is_fresh_claim(self.clock(), window_seconds=window):
            self.sleep(self.claim_poll_seconds)
            refreshed = self.reconciler.store.find_by_token(record.purchase_token)
            if refreshed is None:
                break
            current = refreshed
        if current.status is PurchaseTokenStatus.PENDING:
            log.info("Claim on %s did not settle, re-driving", mask_token(record.purchase_token))
        return current

    def _claim(self, request: VerifyRequest, expiry_at: datetime) -> PurchaseToken:
        record = PurchaseToken(
            user_id=request.user_id,
            purchase_token=request.purchase_token,
            status=PurchaseTokenStatus.PENDING,
            created_at=self.clock(),
            expiry_at=expiry_at,
        )
        self.reconciler.store.insert(record)
        return record
