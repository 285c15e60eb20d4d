"""Progression contracts — Pydantic v2 models.

Static catalog definitions live in ``catalog.py`` as frozen dataclasses; the
models here describe per-user progress and the boards served to clients.
"""

from __future__ import annotations

import uuid
from datetime import date, datetime, timezone
from enum import Enum

from pydantic import BaseModel, Field

from fuelcore.progression.errors import IneligibleReason


class Category(str, Enum):
    mindset = "mindset"
    sleep = "sleep"
    exercise = "exercise"
    nutrition = "nutrition"
    biohacking = "biohacking"
    bonus = "bonus"


class ProgressStatus(str, Enum):
    active = "active"
    completed = "completed"


class ChallengeStatus(str, Enum):
    locked = "locked"
    available = "available"
    active = "active"
    completed = "completed"


class WindowKind(str, Enum):
    daily = "daily"
    weekly = "weekly"


# ---------------------------------------------------------------------------
# Progress records
# ---------------------------------------------------------------------------


class ChallengeProgress(BaseModel):
    challenge_id: str
    status: ProgressStatus = ProgressStatus.active
    started_at: datetime
    completed_at: datetime | None = None


class BoostCompletion(BaseModel):
    """One recorded boost.

    ``day_window`` / ``week_window`` are the local window start dates fixed
    when the row was written. When present they decide window membership, so
    a later request in another timezone sees the same "today" as the store.
    """

    boost_id: str
    user_id: str
    completed_at: datetime
    day_window: date | None = None
    week_window: date | None = None


class ProgressSnapshot(BaseModel):
    """Read-only view of one user's progress, assembled per request."""

    active_challenges: list[ChallengeProgress] = Field(default_factory=list)
    completed_challenge_ids: set[str] = Field(default_factory=set)
    boost_completions_this_period: dict[str, int] = Field(default_factory=dict)
    boost_completions: list[BoostCompletion] = Field(default_factory=list)

    model_config = {"frozen": True}

    def active_ids(self) -> set[str]:
        return {p.challenge_id for p in self.active_challenges}


# ---------------------------------------------------------------------------
# Boards
# ---------------------------------------------------------------------------


class ClassifiedChallenge(BaseModel):
    id: str
    name: str
    category: Category
    tier: int
    fuel_points: int
    description: str = ""
    duration_days: int = 21
    expert_reference: str | None = None
    status: ChallengeStatus
    recommended: bool = False
    lock_reason: str | None = None


class ChallengeCard(ClassifiedChallenge):
    can_start: bool = False
    ineligible_reason: IneligibleReason | None = None
    message: str = ""


class ChallengeBoard(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    category: Category | None = None
    challenges: list[ChallengeCard] = Field(default_factory=list)
    recommended_ids: list[str] = Field(default_factory=list)
    tier0_completed: bool = False
    active_count: int = 0
    max_active: int = 2
    slots_remaining: int = 0
    status_counts: dict[str, int] = Field(default_factory=dict)


class BoostCard(BaseModel):
    id: str
    name: str
    category: Category
    fuel_points: int
    weekly_limit: int | None = None
    completed_today: bool = False
    weekly_remaining: int | None = None
    can_complete: bool = False
    ineligible_reason: IneligibleReason | None = None
    message: str = ""


class CategoryQuota(BaseModel):
    category: Category
    name: str
    max_daily_boosts: int
    completed_today: int = 0
    remaining: int = 0
    boosts: list[BoostCard] = Field(default_factory=list)


class BoostBoard(BaseModel):
    id: str = Field(default_factory=lambda: str(uuid.uuid4()))
    generated_at: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    timezone: str = "UTC"
    daily_window: str
    weekly_window: str
    days_until_reset: int
    fuel_points_today: int = 0
    categories: list[CategoryQuota] = Field(default_factory=list)


class ResetInfo(BaseModel):
    timezone: str
    daily_window: str
    weekly_window: str
    weekly_window_start: datetime
    weekly_window_end: datetime
    days_until_reset: int


class IneligibleDetail(BaseModel):
    reason: IneligibleReason
    message: str
