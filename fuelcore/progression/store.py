"""Progress store — async access to challenge_progress, boost_completions, category_scores.

Tables:
  challenge_progress: id, user_id, challenge_id, status ('active' | 'completed'),
      started_at (timestamptz), completed_at (timestamptz, nullable)
  boost_completions: id, user_id, boost_id, category, completed_at (timestamptz),
      day_window (date), week_window (date)
  category_scores: user_id, category, score

Reads assemble a ProgressSnapshot. Writes are single conditional
``INSERT ... SELECT ... WHERE`` / ``UPDATE ... WHERE`` statements run under a
per-user transaction advisory lock, so caps and quotas hold even when two
requests race past the engine's advisory checks. A write whose conditions no
longer hold returns None. Database failures surface as StoreError.

Boost rows carry the local day and week window keys they were written under;
reads, counts and the conditional insert all match on those keys.
"""

from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime
from typing import Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from fuelcore.progression import windows
from fuelcore.progression.catalog import BoostDefinition, Catalog, CategoryDefinition, ChallengeDefinition
from fuelcore.progression.errors import StoreError
from fuelcore.progression.models import (
    BoostCompletion,
    ChallengeProgress,
    ProgressSnapshot,
    ProgressStatus,
)

logger = logging.getLogger(__name__)

_LOCK_USER = "SELECT pg_advisory_xact_lock(hashtext(:user_id))"


def _rows(result: Any) -> list[dict[str, Any]]:
    columns = list(result.keys())
    return [dict(zip(columns, r)) for r in result.fetchall()]


def _first(result: Any) -> dict[str, Any] | None:
    rows = _rows(result)
    return rows[0] if rows else None


async def _write(session: AsyncSession, query: str, params: dict[str, Any]) -> dict[str, Any] | None:
    """Run one conditional write under the user's lock and commit."""
    try:
        await session.execute(text(_LOCK_USER), {"user_id": params["user_id"]})
        result = await session.execute(text(query), params)
        row = _first(result)
        await session.commit()
    except SQLAlchemyError as exc:
        await session.rollback()
        logger.warning("Progress store write failed for user %s: %s", params["user_id"], exc)
        raise StoreError("Progress store write failed") from exc
    return row


# ---------------------------------------------------------------------------
# Reads
# ---------------------------------------------------------------------------


async def fetch_snapshot(
    session: AsyncSession,
    user_id: str,
    now: datetime,
    tz_name: str | None = None,
) -> ProgressSnapshot:
    """Assemble the user's snapshot for the windows containing ``now``."""
    daily = windows.current_daily_window(now, tz_name)
    weekly = windows.current_weekly_window(now, tz_name)
    today = daily.start.date()
    week = weekly.start.date()

    try:
        progress_result = await session.execute(
            text(
                "SELECT challenge_id, status, started_at, completed_at "
                "FROM challenge_progress "
                "WHERE user_id = :user_id "
                "ORDER BY started_at"
            ),
            {"user_id": user_id},
        )
        progress_rows = _rows(progress_result)

        boost_result = await session.execute(
            text(
                "SELECT boost_id, user_id, category, completed_at, day_window, week_window "
                "FROM boost_completions "
                "WHERE user_id = :user_id AND (day_window = :day OR week_window = :week) "
                "ORDER BY completed_at"
            ),
            {"user_id": user_id, "day": today, "week": week},
        )
        boost_rows = _rows(boost_result)
    except SQLAlchemyError as exc:
        logger.warning("Progress store read failed for user %s: %s", user_id, exc)
        raise StoreError("Progress store read failed") from exc

    active: list[ChallengeProgress] = []
    completed: set[str] = set()
    for row in progress_rows:
        if row["status"] == ProgressStatus.completed.value:
            completed.add(row["challenge_id"])
        elif row["status"] == ProgressStatus.active.value:
            active.append(ChallengeProgress(**row))

    per_category = Counter(r["category"] for r in boost_rows if r.get("day_window") == today)

    return ProgressSnapshot(
        active_challenges=active,
        completed_challenge_ids=completed,
        boost_completions_this_period=dict(per_category),
        boost_completions=[
            BoostCompletion(
                boost_id=r["boost_id"],
                user_id=r["user_id"],
                completed_at=r["completed_at"],
                day_window=r.get("day_window"),
                week_window=r.get("week_window"),
            )
            for r in boost_rows
        ],
    )


async def fetch_category_scores(session: AsyncSession, user_id: str) -> dict[str, float]:
    """Health scores per category (0–100). Missing rows mean unscored; never raises on empty."""
    try:
        result = await session.execute(
            text("SELECT category, score FROM category_scores WHERE user_id = :user_id"),
            {"user_id": user_id},
        )
    except SQLAlchemyError as exc:
        logger.warning("Category score read failed for user %s: %s", user_id, exc)
        raise StoreError("Category score read failed") from exc
    return {r["category"]: float(r["score"]) for r in _rows(result) if r["score"] is not None}


# ---------------------------------------------------------------------------
# Writes
# ---------------------------------------------------------------------------


def _prerequisites(challenge: ChallengeDefinition, catalog: Catalog) -> tuple[list[str], int]:
    """Ids that must be completed first and how many of them are required."""
    if challenge.tier == 1:
        tier0 = [c.id for c in catalog.tier0_challenges()]
        return tier0, 1
    if challenge.tier == 2:
        tier1 = [c.id for c in catalog.challenges_in(challenge.category) if c.tier == 1]
        return tier1, len(tier1)
    return [], 0


async def start_challenge(
    session: AsyncSession,
    user_id: str,
    challenge: ChallengeDefinition,
    catalog: Catalog,
    cap: int,
    now: datetime,
) -> ChallengeProgress | None:
    """Atomically start ``challenge`` if cap, one-shot and tier gating still hold."""
    required_ids, required_count = _prerequisites(challenge, catalog)
    query = (
        "INSERT INTO challenge_progress (user_id, challenge_id, status, started_at) "
        "SELECT :user_id, :challenge_id, 'active', :now "
        "WHERE (SELECT count(*) FROM challenge_progress "
        "       WHERE user_id = :user_id AND status = 'active') < :cap "
        "AND NOT EXISTS (SELECT 1 FROM challenge_progress "
        "                WHERE user_id = :user_id AND challenge_id = :challenge_id)"
    )
    params: dict[str, Any] = {
        "user_id": user_id,
        "challenge_id": challenge.id,
        "now": now,
        "cap": cap,
    }
    if required_count:
        query += (
            " AND (SELECT count(*) FROM challenge_progress "
            "      WHERE user_id = :user_id AND status = 'completed' "
            "      AND challenge_id = ANY(:required_ids)) >= :required_count"
        )
        params["required_ids"] = required_ids
        params["required_count"] = required_count
    query += " RETURNING challenge_id, status, started_at, completed_at"

    row = await _write(session, query, params)
    if row is None:
        logger.info("Start of %s for user %s rejected by store conditions", challenge.id, user_id)
        return None
    logger.info("User %s started challenge %s", user_id, challenge.id)
    return ChallengeProgress(**row)


async def complete_challenge(
    session: AsyncSession,
    user_id: str,
    challenge_id: str,
    now: datetime,
) -> ChallengeProgress | None:
    """Move the user's active instance to completed; None if nothing is active."""
    query = (
        "UPDATE challenge_progress "
        "SET status = 'completed', completed_at = :now "
        "WHERE user_id = :user_id AND challenge_id = :challenge_id AND status = 'active' "
        "RETURNING challenge_id, status, started_at, completed_at"
    )
    row = await _write(session, query, {"user_id": user_id, "challenge_id": challenge_id, "now": now})
    if row is None:
        return None
    logger.info("User %s completed challenge %s", user_id, challenge_id)
    return ChallengeProgress(**row)


async def complete_boost(
    session: AsyncSession,
    user_id: str,
    boost: BoostDefinition,
    category: CategoryDefinition,
    now: datetime,
    tz_name: str | None = None,
) -> BoostCompletion | None:
    """Atomically record a boost if the daily, per-boost and weekly quotas still allow it."""
    day = windows.current_daily_window(now, tz_name).start.date()
    week = windows.current_weekly_window(now, tz_name).start.date()
    query = (
        "INSERT INTO boost_completions "
        "(user_id, boost_id, category, completed_at, day_window, week_window) "
        "SELECT :user_id, :boost_id, :category, :now, :day, :week "
        "WHERE NOT EXISTS (SELECT 1 FROM boost_completions "
        "                  WHERE user_id = :user_id AND boost_id = :boost_id AND day_window = :day) "
        "AND (SELECT count(*) FROM boost_completions "
        "     WHERE user_id = :user_id AND category = :category AND day_window = :day) < :max_daily"
    )
    params: dict[str, Any] = {
        "user_id": user_id,
        "boost_id": boost.id,
        "category": category.id.value,
        "now": now,
        "day": day,
        "week": week,
        "max_daily": category.max_daily_boosts,
    }
    if boost.weekly_limit is not None:
        query += (
            " AND (SELECT count(*) FROM boost_completions "
            "      WHERE user_id = :user_id AND boost_id = :boost_id AND week_window = :week) < :weekly_limit"
        )
        params["weekly_limit"] = boost.weekly_limit
    query += " RETURNING boost_id, user_id, completed_at, day_window, week_window"

    row = await _write(session, query, params)
    if row is None:
        logger.info("Boost %s for user %s rejected by store conditions", boost.id, user_id)
        return None
    logger.info("User %s completed boost %s (+%d FP)", user_id, boost.id, boost.fuel_points)
    return BoostCompletion(**row)
