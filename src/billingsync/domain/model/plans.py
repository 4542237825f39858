"""Plan descriptors understood by the entitlement ledger."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal


@dataclass(frozen=True, slots=True)
class FreePlan:
    name: Literal["free"] = "free"


@dataclass(frozen=True, slots=True)
class ProPlan:
    total_video_credits_alloted: int
    free_video_credits_left: int
    name: Literal["pro"] = "pro"

    @classmethod
    def with_allotment(cls, credits: int) -> ProPlan:
        return cls(total_video_credits_alloted=credits, free_video_credits_left=credits)


type SubscriptionPlan = FreePlan | ProPlan
