"""Board builders — assemble engine results into client view models.

Pure given their inputs: the router fetches the snapshot and the clock,
these functions only combine catalog, snapshot, eligibility, windows and
ranking.
"""

from __future__ import annotations

from datetime import datetime

from fuelcore.config import settings
from fuelcore.progression import eligibility, ranking, windows
from fuelcore.progression.catalog import Catalog
from fuelcore.progression.models import (
    BoostBoard,
    BoostCard,
    Category,
    CategoryQuota,
    ChallengeBoard,
    ChallengeCard,
    ProgressSnapshot,
)


def build_challenge_board(
    catalog: Catalog,
    snapshot: ProgressSnapshot,
    category_scores: dict[str, float] | None = None,
    category: Category | None = None,
    recommended: list[str] | None = None,
    cap: int | None = None,
) -> ChallengeBoard:
    max_active = settings.max_active_challenges if cap is None else cap

    # First pass without recommendations to derive them from statuses.
    classified = eligibility.classify_challenges(catalog, snapshot)
    if recommended is None:
        recommended = ranking.recommended_ids(category_scores, classified)
    rec_set = set(recommended)

    visible = classified if category is None else ranking.filter_category(classified, category)
    cards: list[ChallengeCard] = []
    for item in ranking.rank(visible, rec_set):
        definition = catalog.get_challenge(item.id)
        verdict = eligibility.can_start_challenge(definition, snapshot, catalog, cap=max_active)
        cards.append(
            ChallengeCard(
                **item.model_dump(exclude={"recommended"}),
                recommended=item.id in rec_set,
                can_start=verdict.allowed,
                ineligible_reason=verdict.reason,
                message=verdict.message,
            )
        )

    active_count = len(snapshot.active_challenges)
    return ChallengeBoard(
        category=category,
        challenges=cards,
        recommended_ids=list(recommended),
        tier0_completed=eligibility.tier0_completed(catalog, snapshot),
        active_count=active_count,
        max_active=max_active,
        slots_remaining=max(0, max_active - active_count),
        status_counts=eligibility.status_counts(classified),
    )


def build_boost_board(
    catalog: Catalog,
    snapshot: ProgressSnapshot,
    now: datetime,
    tz_name: str | None = None,
) -> BoostBoard:
    tz_label = tz_name or settings.default_tz
    daily = windows.current_daily_window(now, tz_name)
    weekly = windows.current_weekly_window(now, tz_name)

    fuel_today = 0
    for completion in snapshot.boost_completions:
        boost = catalog.get_boost(completion.boost_id)
        if boost is not None and windows.in_window(completion, daily):
            fuel_today += boost.fuel_points

    quotas: list[CategoryQuota] = []
    for cat in catalog.categories:
        boosts = catalog.boosts_in(cat.id)
        if not boosts:
            continue
        cards: list[BoostCard] = []
        for boost in boosts:
            verdict = windows.can_complete_boost(boost, snapshot, now, catalog, tz_name)
            cards.append(
                BoostCard(
                    id=boost.id,
                    name=boost.name,
                    category=boost.category,
                    fuel_points=boost.fuel_points,
                    weekly_limit=boost.weekly_limit,
                    completed_today=windows.completed_in_window(boost.id, snapshot, daily),
                    weekly_remaining=windows.weekly_remaining(boost, snapshot, now, tz_name),
                    can_complete=verdict.allowed,
                    ineligible_reason=verdict.reason,
                    message=verdict.message,
                )
            )
        quotas.append(
            CategoryQuota(
                category=cat.id,
                name=cat.name,
                max_daily_boosts=cat.max_daily_boosts,
                completed_today=snapshot.boost_completions_this_period.get(cat.id.value, 0),
                remaining=windows.remaining_quota(cat, snapshot),
                boosts=cards,
            )
        )

    return BoostBoard(
        timezone=tz_label,
        daily_window=daily.id,
        weekly_window=weekly.id,
        days_until_reset=windows.days_until_reset(now, tz_name),
        fuel_points_today=fuel_today,
        categories=quotas,
    )
