"""Progression error taxonomy.

Faults (data integrity, store failures, a broken catalog) are exceptions.
Business-rule rejections are *values*: an ``Eligibility`` carrying an
``IneligibleReason`` that the presentation layer renders as a disabled or
locked affordance.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum


class ProgressionError(Exception):
    """Base class for progression faults."""


class InvalidReference(ProgressionError):
    """Progress data references an id that is not in the catalog."""

    def __init__(self, ref_id: str, kind: str = "challenge"):
        self.ref_id = ref_id
        self.kind = kind
        super().__init__(f"Unknown {kind} id in progress data: {ref_id!r}")


class StoreError(ProgressionError):
    """The progress store failed. Opaque to the engine; callers decide on retries."""


class CatalogError(ProgressionError):
    """Static catalog definitions are inconsistent."""


class IneligibleReason(str, Enum):
    locked = "locked"
    already_active = "already_active"
    already_completed = "already_completed"
    already_capped = "already_capped"
    daily_quota_exceeded = "daily_quota_exceeded"
    weekly_quota_exceeded = "weekly_quota_exceeded"
    already_completed_this_window = "already_completed_this_window"
    not_active = "not_active"


REASON_MESSAGES: dict[IneligibleReason, str] = {
    IneligibleReason.locked: "Complete the required first challenge to unlock",
    IneligibleReason.already_active: "This challenge is already in progress",
    IneligibleReason.already_completed: "You have already completed this challenge",
    IneligibleReason.already_capped: "Finish an active challenge before starting another",
    IneligibleReason.daily_quota_exceeded: "Daily boost limit reached for this category",
    IneligibleReason.weekly_quota_exceeded: "Weekly limit reached for this boost",
    IneligibleReason.already_completed_this_window: "Already completed today",
    IneligibleReason.not_active: "This challenge is not in progress",
}

TIER2_LOCKED_MESSAGE = "Complete every Tier 1 challenge in this category to unlock"


@dataclass(frozen=True, slots=True)
class Eligibility:
    allowed: bool
    reason: IneligibleReason | None = None
    detail: str | None = None

    @classmethod
    def ok(cls) -> Eligibility:
        return cls(allowed=True)

    @classmethod
    def deny(cls, reason: IneligibleReason, detail: str | None = None) -> Eligibility:
        return cls(allowed=False, reason=reason, detail=detail)

    @property
    def message(self) -> str:
        if self.detail:
            return self.detail
        if self.reason is None:
            return ""
        return REASON_MESSAGES[self.reason]

    def __bool__(self) -> bool:
        return self.allowed
