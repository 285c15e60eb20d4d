"""Tests for the SQL progress store against a fake session."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone

import pytest
from sqlalchemy.exc import OperationalError

from fuelcore.progression import store
from fuelcore.progression.boards import build_boost_board
from fuelcore.progression.catalog import Catalog, CategoryDefinition, ChallengeDefinition
from fuelcore.progression.errors import IneligibleReason, StoreError
from fuelcore.progression.models import Category, ProgressStatus
from tests.conftest import NOW, FakeSession


def _progress_row(challenge_id: str, status: str = "active", completed_at=None) -> dict:
    return {
        "challenge_id": challenge_id,
        "status": status,
        "started_at": NOW - timedelta(days=3),
        "completed_at": completed_at,
    }


def _boost_row(boost_id: str, category: str, at=NOW, day=date(2026, 2, 18), week=date(2026, 2, 16)) -> dict:
    return {
        "boost_id": boost_id,
        "user_id": "u1",
        "category": category,
        "completed_at": at,
        "day_window": day,
        "week_window": week,
    }


def _db_error() -> OperationalError:
    return OperationalError("SELECT 1", {}, Exception("connection refused"))


class TestFetchSnapshot:
    @pytest.mark.asyncio
    async def test_empty(self):
        snap = await store.fetch_snapshot(FakeSession(), "u1", NOW, "UTC")
        assert snap.active_challenges == []
        assert snap.completed_challenge_ids == set()
        assert snap.boost_completions_this_period == {}

    @pytest.mark.asyncio
    async def test_splits_active_and_completed(self):
        session = FakeSession(
            results=[
                [
                    _progress_row("t0", "completed", completed_at=NOW - timedelta(days=1)),
                    _progress_row("t1-sleep"),
                ],
                [],
            ]
        )
        snap = await store.fetch_snapshot(session, "u1", NOW, "UTC")
        assert snap.completed_challenge_ids == {"t0"}
        assert [p.challenge_id for p in snap.active_challenges] == ["t1-sleep"]
        assert snap.active_challenges[0].status == ProgressStatus.active

    @pytest.mark.asyncio
    async def test_counts_only_todays_boosts(self):
        session = FakeSession(
            results=[
                [],
                [
                    _boost_row("sleep-light", "sleep"),
                    _boost_row("sleep-cool", "sleep"),
                    _boost_row("sleep-7h", "sleep", at=NOW - timedelta(days=1), day=date(2026, 2, 17)),
                    _boost_row("mind-meditate", "mindset"),
                ],
            ]
        )
        snap = await store.fetch_snapshot(session, "u1", NOW, "UTC")
        assert snap.boost_completions_this_period == {"sleep": 2, "mindset": 1}
        assert len(snap.boost_completions) == 4

    @pytest.mark.asyncio
    async def test_queries_by_window_keys(self):
        session = FakeSession()
        await store.fetch_snapshot(session, "u1", NOW, "UTC")
        sql, params = session.executed[1]
        assert "day_window = :day OR week_window = :week" in sql
        assert params["day"] == date(2026, 2, 18)
        assert params["week"] == date(2026, 2, 16)

    @pytest.mark.asyncio
    async def test_row_written_under_another_timezone_counts_for_its_day(self, catalog):
        # Written at 16:00Z from UTC+14, where it was already Feb 19.
        written = datetime(2026, 2, 18, 16, 0, tzinfo=timezone.utc)
        row = _boost_row("sleep-light", "sleep", at=written, day=date(2026, 2, 19))
        now = datetime(2026, 2, 19, 1, 0, tzinfo=timezone.utc)
        snap = await store.fetch_snapshot(FakeSession(results=[[], [row]]), "u1", now, "UTC")
        assert snap.boost_completions_this_period == {"sleep": 1}

        board = build_boost_board(catalog, snap, now, "UTC")
        sleep = next(q for q in board.categories if q.category == Category.sleep)
        light = next(b for b in sleep.boosts if b.id == "sleep-light")
        assert sleep.completed_today == 1
        assert board.fuel_points_today == 1
        assert light.completed_today is True
        assert light.can_complete is False
        assert light.ineligible_reason == IneligibleReason.already_completed_this_window

    @pytest.mark.asyncio
    async def test_db_failure_becomes_store_error(self):
        with pytest.raises(StoreError):
            await store.fetch_snapshot(FakeSession(error=_db_error()), "u1", NOW, "UTC")


class TestCategoryScores:
    @pytest.mark.asyncio
    async def test_scores(self):
        session = FakeSession(results=[[{"category": "sleep", "score": 42}, {"category": "mindset", "score": None}]])
        assert await store.fetch_category_scores(session, "u1") == {"sleep": 42.0}

    @pytest.mark.asyncio
    async def test_failure(self):
        with pytest.raises(StoreError):
            await store.fetch_category_scores(FakeSession(error=_db_error()), "u1")


class TestStartChallenge:
    @pytest.mark.asyncio
    async def test_inserted(self, catalog):
        session = FakeSession(results=[[], [_progress_row("t1-sleep")]])
        progress = await store.start_challenge(session, "u1", catalog.get_challenge("t1-sleep"), catalog, 2, NOW)
        assert progress is not None
        assert progress.challenge_id == "t1-sleep"
        assert session.commits == 1

    @pytest.mark.asyncio
    async def test_locks_user_first(self, catalog):
        session = FakeSession(results=[[], [_progress_row("t0")]])
        await store.start_challenge(session, "u1", catalog.get_challenge("t0"), catalog, 2, NOW)
        assert "pg_advisory_xact_lock" in session.executed[0][0]

    @pytest.mark.asyncio
    async def test_conditions_lost_returns_none(self, catalog):
        session = FakeSession(results=[[], []])
        progress = await store.start_challenge(session, "u1", catalog.get_challenge("t0"), catalog, 2, NOW)
        assert progress is None

    @pytest.mark.asyncio
    async def test_tier1_requires_tier0(self, catalog):
        session = FakeSession(results=[[], []])
        await store.start_challenge(session, "u1", catalog.get_challenge("t1-sleep"), catalog, 2, NOW)
        sql, params = session.executed[1]
        assert "ANY(:required_ids)" in sql
        assert params["required_ids"] == ["t0"]
        assert params["required_count"] == 1
        assert params["cap"] == 2

    @pytest.mark.asyncio
    async def test_tier2_requires_all_tier1(self, catalog):
        session = FakeSession(results=[[], []])
        await store.start_challenge(session, "u1", catalog.get_challenge("t2-sleep"), catalog, 2, NOW)
        _, params = session.executed[1]
        assert params["required_ids"] == ["t1-sleep", "t1-sleep-b"]
        assert params["required_count"] == 2

    @pytest.mark.asyncio
    async def test_tier1_without_tier0_stays_gated(self):
        catalog = Catalog(
            categories=(CategoryDefinition(id=Category.sleep, name="Sleep"),),
            challenges=(ChallengeDefinition(id="s1", name="S1", category=Category.sleep, tier=1, fuel_points=10),),
            boosts=(),
        )
        session = FakeSession(results=[[], []])
        progress = await store.start_challenge(session, "u1", catalog.get_challenge("s1"), catalog, 2, NOW)
        assert progress is None
        _, params = session.executed[1]
        assert params["required_ids"] == []
        assert params["required_count"] == 1

    @pytest.mark.asyncio
    async def test_tier0_has_no_prerequisite(self, catalog):
        session = FakeSession(results=[[], []])
        await store.start_challenge(session, "u1", catalog.get_challenge("t0"), catalog, 2, NOW)
        sql, params = session.executed[1]
        assert "required_ids" not in params
        assert "ANY(" not in sql

    @pytest.mark.asyncio
    async def test_failure_rolls_back(self, catalog):
        session = FakeSession(error=_db_error())
        with pytest.raises(StoreError):
            await store.start_challenge(session, "u1", catalog.get_challenge("t0"), catalog, 2, NOW)
        assert session.rollbacks == 1
        assert session.commits == 0


class TestCompleteChallenge:
    @pytest.mark.asyncio
    async def test_completed(self):
        row = _progress_row("t0", "completed", completed_at=NOW)
        session = FakeSession(results=[[], [row]])
        progress = await store.complete_challenge(session, "u1", "t0", NOW)
        assert progress.status == ProgressStatus.completed
        assert progress.completed_at == NOW

    @pytest.mark.asyncio
    async def test_not_active(self):
        assert await store.complete_challenge(FakeSession(), "u1", "t0", NOW) is None


class TestCompleteBoost:
    @pytest.mark.asyncio
    async def test_inserted(self, catalog):
        row = {"boost_id": "sleep-light", "user_id": "u1", "completed_at": NOW}
        session = FakeSession(results=[[], [row]])
        boost = catalog.get_boost("sleep-light")
        completion = await store.complete_boost(session, "u1", boost, catalog.get_category("sleep"), NOW, "UTC")
        assert completion.boost_id == "sleep-light"
        _, params = session.executed[1]
        assert params["day"] == date(2026, 2, 18)
        assert params["week"] == date(2026, 2, 16)
        assert params["max_daily"] == 3
        assert "weekly_limit" not in params

    @pytest.mark.asyncio
    async def test_weekly_limit_condition(self, catalog):
        session = FakeSession(results=[[], []])
        boost = catalog.get_boost("sleep-7h")
        completion = await store.complete_boost(session, "u1", boost, catalog.get_category("sleep"), NOW, "UTC")
        assert completion is None
        sql, params = session.executed[1]
        assert params["weekly_limit"] == 2
        assert "week_window = :week" in sql

    @pytest.mark.asyncio
    async def test_day_window_follows_timezone(self, catalog):
        session = FakeSession(results=[[], []])
        late = NOW.replace(hour=23, minute=30)
        await store.complete_boost(
            session, "u1", catalog.get_boost("sleep-light"), catalog.get_category("sleep"), late, "Asia/Tokyo"
        )
        _, params = session.executed[1]
        assert params["day"] == date(2026, 2, 19)
