"""Progression HTTP router — catalog, boards and mutations."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.ext.asyncio import AsyncSession

from fuelcore.auth import verify_api_key
from fuelcore.config import settings
from fuelcore.db import get_session
from fuelcore.progression import boards, eligibility, store, windows
from fuelcore.progression.catalog import Catalog, load_catalog
from fuelcore.progression.errors import Eligibility, IneligibleReason, InvalidReference, StoreError
from fuelcore.progression.models import (
    BoostBoard,
    BoostCompletion,
    Category,
    ChallengeBoard,
    ChallengeProgress,
    IneligibleDetail,
    ProgressSnapshot,
    ResetInfo,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/progression", tags=["progression"])

RETRY_MESSAGE = "Progress service is temporarily unavailable. Please try again."


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _resolve_tz(tz: str | None) -> str:
    tz_name = tz or settings.default_tz
    try:
        ZoneInfo(tz_name)
    except (ZoneInfoNotFoundError, ValueError):
        raise HTTPException(status_code=422, detail=f"Unknown timezone: {tz_name}")
    return tz_name


def _conflict(verdict: Eligibility) -> HTTPException:
    detail = IneligibleDetail(reason=verdict.reason, message=verdict.message)
    return HTTPException(status_code=409, detail=detail.model_dump(mode="json"))


def _integrity_fault(exc: InvalidReference) -> HTTPException:
    logger.exception("Progress data integrity fault: %s", exc)
    return HTTPException(status_code=500, detail="Progress data references an unknown item")


def _store_fault(exc: StoreError) -> HTTPException:
    logger.error("Progress store unavailable: %s", exc, exc_info=exc.__cause__)
    return HTTPException(status_code=503, detail=RETRY_MESSAGE)


async def _snapshot(session: AsyncSession, user_id: str, now: datetime, tz_name: str) -> ProgressSnapshot:
    try:
        return await store.fetch_snapshot(session, user_id, now, tz_name)
    except StoreError as exc:
        raise _store_fault(exc)


# ---------------------------------------------------------------------------
# /progression/catalog
# ---------------------------------------------------------------------------


@router.get("/catalog")
async def get_catalog(
    _: str = Depends(verify_api_key),
    catalog: Catalog = Depends(load_catalog),
) -> dict:
    return {
        "categories": [
            {"id": c.id.value, "name": c.name, "max_daily_boosts": c.max_daily_boosts}
            for c in catalog.categories
        ],
        "challenges": [
            {
                "id": c.id,
                "name": c.name,
                "category": c.category.value,
                "tier": c.tier,
                "fuel_points": c.fuel_points,
                "description": c.description,
                "duration_days": c.duration_days,
                "expert_reference": c.expert_reference,
                "expert_name": c.expert_name,
            }
            for c in catalog.challenges
        ],
        "boosts": [
            {
                "id": b.id,
                "name": b.name,
                "category": b.category.value,
                "fuel_points": b.fuel_points,
                "weekly_limit": b.weekly_limit,
            }
            for b in catalog.boosts
        ],
    }


@router.get("/reset", response_model=ResetInfo)
async def get_reset(
    _: str = Depends(verify_api_key),
    tz: str | None = Query(default=None, description="Timezone (e.g. Europe/Berlin)"),
) -> ResetInfo:
    tz_name = _resolve_tz(tz)
    now = _now()
    weekly = windows.current_weekly_window(now, tz_name)
    return ResetInfo(
        timezone=tz_name,
        daily_window=windows.current_daily_window(now, tz_name).id,
        weekly_window=weekly.id,
        weekly_window_start=weekly.start,
        weekly_window_end=weekly.end,
        days_until_reset=windows.days_until_reset(now, tz_name),
    )


# ---------------------------------------------------------------------------
# /progression/users/{user_id}/challenges
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}/challenges", response_model=ChallengeBoard)
async def get_challenge_board(
    user_id: str,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
    catalog: Catalog = Depends(load_catalog),
    category: Category | None = Query(default=None, description="Only this category"),
    tz: str | None = Query(default=None, description="Timezone"),
) -> ChallengeBoard:
    tz_name = _resolve_tz(tz)
    snapshot = await _snapshot(session, user_id, _now(), tz_name)
    try:
        scores = await store.fetch_category_scores(session, user_id)
    except StoreError as exc:
        raise _store_fault(exc)

    try:
        return boards.build_challenge_board(catalog, snapshot, category_scores=scores, category=category)
    except InvalidReference as exc:
        raise _integrity_fault(exc)


@router.post("/users/{user_id}/challenges/{challenge_id}/start", response_model=ChallengeProgress)
async def start_challenge(
    user_id: str,
    challenge_id: str,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
    catalog: Catalog = Depends(load_catalog),
) -> ChallengeProgress:
    challenge = catalog.get_challenge(challenge_id)
    if challenge is None:
        raise HTTPException(status_code=404, detail=f"Unknown challenge: {challenge_id}")

    now = _now()
    cap = settings.max_active_challenges
    snapshot = await _snapshot(session, user_id, now, settings.default_tz)
    try:
        eligibility.check_references(catalog, snapshot)
        verdict = eligibility.can_start_challenge(challenge, snapshot, catalog, cap=cap)
    except InvalidReference as exc:
        raise _integrity_fault(exc)
    if not verdict:
        raise _conflict(verdict)

    try:
        progress = await store.start_challenge(session, user_id, challenge, catalog, cap, now)
    except StoreError as exc:
        raise _store_fault(exc)

    if progress is None:
        # Lost a race: report what the fresh snapshot says.
        fresh = await _snapshot(session, user_id, _now(), settings.default_tz)
        verdict = eligibility.can_start_challenge(challenge, fresh, catalog, cap=cap)
        if verdict:
            raise _store_fault(StoreError("Conditional start matched no row"))
        raise _conflict(verdict)
    return progress


@router.post("/users/{user_id}/challenges/{challenge_id}/complete", response_model=ChallengeProgress)
async def complete_challenge(
    user_id: str,
    challenge_id: str,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
    catalog: Catalog = Depends(load_catalog),
) -> ChallengeProgress:
    if catalog.get_challenge(challenge_id) is None:
        raise HTTPException(status_code=404, detail=f"Unknown challenge: {challenge_id}")

    try:
        progress = await store.complete_challenge(session, user_id, challenge_id, _now())
    except StoreError as exc:
        raise _store_fault(exc)
    if progress is None:
        raise _conflict(Eligibility.deny(IneligibleReason.not_active))
    return progress


# ---------------------------------------------------------------------------
# /progression/users/{user_id}/boosts
# ---------------------------------------------------------------------------


@router.get("/users/{user_id}/boosts", response_model=BoostBoard)
async def get_boost_board(
    user_id: str,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
    catalog: Catalog = Depends(load_catalog),
    tz: str | None = Query(default=None, description="Timezone"),
) -> BoostBoard:
    tz_name = _resolve_tz(tz)
    now = _now()
    snapshot = await _snapshot(session, user_id, now, tz_name)
    try:
        return boards.build_boost_board(catalog, snapshot, now, tz_name)
    except InvalidReference as exc:
        raise _integrity_fault(exc)


@router.post("/users/{user_id}/boosts/{boost_id}/complete", response_model=BoostCompletion)
async def complete_boost(
    user_id: str,
    boost_id: str,
    session: AsyncSession = Depends(get_session),
    _: str = Depends(verify_api_key),
    catalog: Catalog = Depends(load_catalog),
    tz: str | None = Query(default=None, description="Timezone"),
) -> BoostCompletion:
    boost = catalog.get_boost(boost_id)
    if boost is None:
        raise HTTPException(status_code=404, detail=f"Unknown boost: {boost_id}")
    category = catalog.get_category(boost.category)
    if category is None:
        raise _integrity_fault(InvalidReference(boost.category.value, kind="category"))

    tz_name = _resolve_tz(tz)
    now = _now()
    snapshot = await _snapshot(session, user_id, now, tz_name)
    verdict = windows.can_complete_boost(boost, snapshot, now, catalog, tz_name)
    if not verdict:
        raise _conflict(verdict)

    try:
        completion = await store.complete_boost(session, user_id, boost, category, now, tz_name)
    except StoreError as exc:
        raise _store_fault(exc)

    if completion is None:
        fresh_now = _now()
        fresh = await _snapshot(session, user_id, fresh_now, tz_name)
        verdict = windows.can_complete_boost(boost, fresh, fresh_now, catalog, tz_name)
        if verdict:
            raise _store_fault(StoreError("Conditional boost insert matched no row"))
        raise _conflict(verdict)
    return completion
