"""Shared fixtures for the test suite."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any

import pytest
from httpx import ASGITransport, AsyncClient

from fuelcore.db import get_session
from fuelcore.main import app
from fuelcore.progression.catalog import (
    Catalog,
    CategoryDefinition,
    ChallengeDefinition,
    BoostDefinition,
    load_catalog,
)
from fuelcore.progression.models import (
    BoostCompletion,
    Category,
    ChallengeProgress,
    ProgressSnapshot,
)

NOW = datetime(2026, 2, 18, 12, 0, tzinfo=timezone.utc)  # a Wednesday


# ---------------------------------------------------------------------------
# Fake DB session (no real Postgres needed)
# ---------------------------------------------------------------------------

class FakeSession:
    """Minimal stand-in for AsyncSession.

    Each execute() pops the next queued row list (empty when exhausted) and
    records the statement and params for assertions.
    """

    def __init__(self, results: list[list[dict[str, Any]]] | None = None, error: Exception | None = None):
        self._results = list(results or [])
        self._error = error
        self.executed: list[tuple[str, dict[str, Any] | None]] = []
        self.commits = 0
        self.rollbacks = 0

    async def execute(self, stmt, params=None):
        self.executed.append((str(stmt), params))
        if self._error is not None:
            raise self._error
        rows = self._results.pop(0) if self._results else []
        return FakeResult(rows)

    async def commit(self):
        self.commits += 1

    async def rollback(self):
        self.rollbacks += 1

    async def __aenter__(self):
        return self

    async def __aexit__(self, *args):
        pass


class FakeResult:
    def __init__(self, rows: list[dict[str, Any]]):
        self._rows = rows
        self._keys = list(rows[0].keys()) if rows else []

    def keys(self):
        return self._keys

    def fetchall(self):
        return [tuple(r[k] for k in self._keys) for r in self._rows]

    def fetchone(self):
        rows = self.fetchall()
        return rows[0] if rows else None


# ---------------------------------------------------------------------------
# Catalog / snapshot builders
# ---------------------------------------------------------------------------

def make_catalog() -> Catalog:
    """Small catalog: one Tier 0, two Sleep Tier 1 + one Tier 2, one Mindset Tier 1."""
    return Catalog(
        categories=(
            CategoryDefinition(id=Category.mindset, name="Mindset", max_daily_boosts=3),
            CategoryDefinition(id=Category.sleep, name="Sleep", max_daily_boosts=3),
            CategoryDefinition(id=Category.bonus, name="Bonus", max_daily_boosts=3),
        ),
        challenges=(
            ChallengeDefinition(id="t0", name="Basics", category=Category.bonus, tier=0, fuel_points=50),
            ChallengeDefinition(id="t1-sleep", name="Schedule", category=Category.sleep, tier=1, fuel_points=50),
            ChallengeDefinition(id="t1-sleep-b", name="Sunset", category=Category.sleep, tier=1, fuel_points=50),
            ChallengeDefinition(id="t2-sleep", name="Sleep Pro", category=Category.sleep, tier=2, fuel_points=100),
            ChallengeDefinition(id="t1-mind", name="Gratitude", category=Category.mindset, tier=1, fuel_points=50),
        ),
        boosts=(
            BoostDefinition(id="sleep-light", name="Morning Light", category=Category.sleep, fuel_points=1),
            BoostDefinition(id="sleep-cool", name="Cool Room", category=Category.sleep, fuel_points=2),
            BoostDefinition(id="sleep-7h", name="Seven Hours", category=Category.sleep, fuel_points=3, weekly_limit=2),
            BoostDefinition(id="mind-meditate", name="Meditate", category=Category.mindset, fuel_points=2),
        ),
    )


def active(challenge_id: str, started_at: datetime = NOW) -> ChallengeProgress:
    return ChallengeProgress(challenge_id=challenge_id, started_at=started_at)


def boost_done(boost_id: str, at: datetime = NOW, user_id: str = "u1") -> BoostCompletion:
    return BoostCompletion(boost_id=boost_id, user_id=user_id, completed_at=at)


def make_snapshot(
    active_ids: tuple[str, ...] = (),
    completed: tuple[str, ...] = (),
    counts: dict[str, int] | None = None,
    completions: list[BoostCompletion] | None = None,
) -> ProgressSnapshot:
    return ProgressSnapshot(
        active_challenges=[active(cid) for cid in active_ids],
        completed_challenge_ids=set(completed),
        boost_completions_this_period=counts or {},
        boost_completions=completions or [],
    )


# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

@pytest.fixture()
def catalog() -> Catalog:
    return make_catalog()


@pytest.fixture()
def fake_session():
    """Return a FakeSession with no rows (queue results in tests if needed)."""
    return FakeSession()


@pytest.fixture()
def override_session(fake_session):
    """Override the FastAPI dependencies so no real DB is needed."""
    async def _override():
        yield fake_session

    app.dependency_overrides[get_session] = _override
    app.dependency_overrides[load_catalog] = make_catalog
    yield fake_session
    app.dependency_overrides.clear()


@pytest.fixture()
async def client(override_session):
    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac
