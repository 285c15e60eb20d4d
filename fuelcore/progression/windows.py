"""Reset windows and boost quota accounting.

All windows are computed in one timezone policy: ``settings.default_tz``,
optionally overridden per call by a user-profile timezone. Naive datetimes
are treated as UTC. Daily windows are local calendar days; weekly windows
are 7-day periods starting at ``reset_weekday`` / ``reset_hour`` local time.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from zoneinfo import ZoneInfo

from fuelcore.config import settings
from fuelcore.progression.catalog import BoostDefinition, Catalog, CategoryDefinition
from fuelcore.progression.errors import Eligibility, IneligibleReason, InvalidReference
from fuelcore.progression.models import BoostCompletion, ProgressSnapshot, WindowKind


@dataclass(frozen=True, slots=True)
class Window:
    kind: WindowKind
    start: datetime
    end: datetime  # exclusive

    @property
    def id(self) -> str:
        return f"{self.kind.value}:{self.start.date().isoformat()}"

    def contains(self, ts: datetime) -> bool:
        return self.start <= _aware(ts) < self.end


def _tz(tz_name: str | None) -> ZoneInfo:
    return ZoneInfo(tz_name or settings.default_tz)


def _aware(ts: datetime) -> datetime:
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts


def _local(now: datetime, tz_name: str | None) -> datetime:
    return _aware(now).astimezone(_tz(tz_name))


def _local_midnight(day: date, tz: ZoneInfo, hour: int = 0) -> datetime:
    return datetime.combine(day, time(hour=hour), tzinfo=tz)


def local_date(ts: datetime, tz_name: str | None = None) -> date:
    return _local(ts, tz_name).date()


def current_daily_window(now: datetime, tz_name: str | None = None) -> Window:
    tz = _tz(tz_name)
    today = _local(now, tz_name).date()
    return Window(
        kind=WindowKind.daily,
        start=_local_midnight(today, tz),
        end=_local_midnight(today + timedelta(days=1), tz),
    )


def current_weekly_window(now: datetime, tz_name: str | None = None) -> Window:
    tz = _tz(tz_name)
    local_now = _local(now, tz_name)
    offset = (local_now.weekday() - settings.reset_weekday) % 7
    start = _local_midnight(local_now.date() - timedelta(days=offset), tz, settings.reset_hour)
    if start > local_now:
        # Reset day itself, before the reset hour: still in last week's window.
        start = _local_midnight(start.date() - timedelta(days=7), tz, settings.reset_hour)
    end = _local_midnight(start.date() + timedelta(days=7), tz, settings.reset_hour)
    return Window(kind=WindowKind.weekly, start=start, end=end)


def days_until_reset(now: datetime, tz_name: str | None = None) -> int:
    """Whole local calendar days until the next weekly boundary (0 on reset day before it passes)."""
    window = current_weekly_window(now, tz_name)
    return max(0, (window.end.date() - _local(now, tz_name).date()).days)


# ---------------------------------------------------------------------------
# Quotas
# ---------------------------------------------------------------------------


def remaining_quota(category: CategoryDefinition, snapshot: ProgressSnapshot) -> int:
    """Boosts still allowed today in ``category``. Never negative."""
    used = snapshot.boost_completions_this_period.get(category.id.value, 0)
    return max(0, category.max_daily_boosts - used)


def in_window(completion: BoostCompletion, window: Window) -> bool:
    """Window membership by the stored window key, falling back to the timestamp."""
    stored = completion.day_window if window.kind == WindowKind.daily else completion.week_window
    if stored is not None:
        return stored == window.start.date()
    return window.contains(completion.completed_at)


def completions_in_window(boost_id: str, snapshot: ProgressSnapshot, window: Window) -> int:
    return sum(1 for c in snapshot.boost_completions if c.boost_id == boost_id and in_window(c, window))


def completed_in_window(boost_id: str, snapshot: ProgressSnapshot, window: Window) -> bool:
    return completions_in_window(boost_id, snapshot, window) > 0


def weekly_remaining(
    boost: BoostDefinition,
    snapshot: ProgressSnapshot,
    now: datetime,
    tz_name: str | None = None,
) -> int | None:
    """Remaining completions this week, or None when the boost has no weekly cap."""
    if boost.weekly_limit is None:
        return None
    used = completions_in_window(boost.id, snapshot, current_weekly_window(now, tz_name))
    return max(0, boost.weekly_limit - used)


def can_complete_boost(
    boost: BoostDefinition,
    snapshot: ProgressSnapshot,
    now: datetime,
    catalog: Catalog,
    tz_name: str | None = None,
) -> Eligibility:
    """Advisory pre-check; the store enforces the same rules atomically."""
    category = catalog.get_category(boost.category)
    if category is None:
        raise InvalidReference(boost.category.value, kind="category")

    if completed_in_window(boost.id, snapshot, current_daily_window(now, tz_name)):
        return Eligibility.deny(IneligibleReason.already_completed_this_window)
    if remaining_quota(category, snapshot) == 0:
        return Eligibility.deny(IneligibleReason.daily_quota_exceeded)
    if weekly_remaining(boost, snapshot, now, tz_name) == 0:
        return Eligibility.deny(IneligibleReason.weekly_quota_exceeded)
    return Eligibility.ok()
