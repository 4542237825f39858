"""Interpretation of provider subscription states."""

from __future__ import annotations

from enum import StrEnum
from typing import TYPE_CHECKING

from billingsync.domain.errors import (
    SubscriptionCanceledError,
    SubscriptionExpiredError,
    SubscriptionInvalidStateError,
    SubscriptionNoStateError,
    SubscriptionOnHoldError,
    SubscriptionPausedError,
    SubscriptionStateError,
)
from billingsync.domain.model import SubscriptionState

if TYPE_CHECKING:
    from billingsync.domain.model import SubscriptionDetail


class Decision(StrEnum):
    PROCEED = "proceed"
    NO_ACTION = "no_action"
    SUSPEND = "suspend"
    REVOKE = "revoke"
    REJECT = "reject"


_DECISIONS: dict[str, Decision] = {
    SubscriptionState.ACTIVE: Decision.PROCEED,
    SubscriptionState.IN_GRACE_PERIOD: Decision.PROCEED,
    SubscriptionState.CANCELED: Decision.NO_ACTION,
    SubscriptionState.ON_HOLD: Decision.SUSPEND,
    SubscriptionState.PAUSED: Decision.SUSPEND,
    SubscriptionState.EXPIRED: Decision.REVOKE,
}

_ERRORS: dict[str, type[SubscriptionStateError]] = {
    SubscriptionState.CANCELED: SubscriptionCanceledError,
    SubscriptionState.ON_HOLD: SubscriptionOnHoldError,
    SubscriptionState.PAUSED: SubscriptionPausedError,
    SubscriptionState.EXPIRED: SubscriptionExpiredError,
}


def decide(detail: SubscriptionDetail) -> Decision:
    """Map the detail's provider state to a transition decision."""

    state = detail.subscription_state
    if not state:
        return Decision.REJECT
    return _DECISIONS.get(state, Decision.REJECT)


def require_entitled(detail: SubscriptionDetail) -> None:
    """Raise the matching state error unless the subscription grants access."""

    if decide(detail) is Decision.PROCEED:
        return
    state = detail.subscription_state
    if not state:
        raise SubscriptionNoStateError
    error_cls = _ERRORS.get(state, SubscriptionInvalidStateError)
    raise error_cls
