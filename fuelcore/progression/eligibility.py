"""Challenge eligibility — pure classification of the catalog against a snapshot.

Nothing here reads the clock, touches the store or mutates its inputs.
Unknown ids in progress data raise ``InvalidReference``; every other outcome
is a value.
"""

from __future__ import annotations

import logging
from collections import Counter
from typing import Iterable

from fuelcore.config import settings
from fuelcore.progression.catalog import Catalog, ChallengeDefinition
from fuelcore.progression.errors import (
    REASON_MESSAGES,
    TIER2_LOCKED_MESSAGE,
    Eligibility,
    IneligibleReason,
    InvalidReference,
)
from fuelcore.progression.models import Category, ChallengeStatus, ClassifiedChallenge, ProgressSnapshot

logger = logging.getLogger(__name__)


def check_references(catalog: Catalog, snapshot: ProgressSnapshot) -> None:
    """Raise InvalidReference if any progress entry points outside the catalog."""
    referenced = [p.challenge_id for p in snapshot.active_challenges]
    referenced.extend(sorted(snapshot.completed_challenge_ids))
    for challenge_id in referenced:
        if catalog.get_challenge(challenge_id) is None:
            logger.error("Progress references unknown challenge %r", challenge_id)
            raise InvalidReference(challenge_id)


def tier0_completed(catalog: Catalog, snapshot: ProgressSnapshot) -> bool:
    return any(c.id in snapshot.completed_challenge_ids for c in catalog.tier0_challenges())


def tier1_completed(catalog: Catalog, snapshot: ProgressSnapshot, category: Category | str) -> bool:
    """True when every Tier 1 challenge in ``category`` is completed (vacuously for none)."""
    return all(
        c.id in snapshot.completed_challenge_ids
        for c in catalog.challenges_in(category)
        if c.tier == 1
    )


def lock_reason(challenge: ChallengeDefinition, catalog: Catalog, snapshot: ProgressSnapshot) -> str | None:
    """User-facing unlock hint, or None when tier gating passes."""
    if challenge.tier == 1 and not tier0_completed(catalog, snapshot):
        return REASON_MESSAGES[IneligibleReason.locked]
    if challenge.tier == 2 and not tier1_completed(catalog, snapshot, challenge.category):
        return TIER2_LOCKED_MESSAGE
    return None


def _status(
    challenge: ChallengeDefinition,
    catalog: Catalog,
    snapshot: ProgressSnapshot,
    active_ids: set[str],
) -> ChallengeStatus:
    if challenge.id in snapshot.completed_challenge_ids:
        return ChallengeStatus.completed
    if challenge.id in active_ids:
        return ChallengeStatus.active
    if lock_reason(challenge, catalog, snapshot) is not None:
        return ChallengeStatus.locked
    return ChallengeStatus.available


def classify_challenges(
    catalog: Catalog,
    snapshot: ProgressSnapshot,
    recommended_ids: Iterable[str] = (),
) -> list[ClassifiedChallenge]:
    """One ClassifiedChallenge per catalog definition, in catalog order."""
    check_references(catalog, snapshot)
    recommended = set(recommended_ids)
    active_ids = snapshot.active_ids()

    result: list[ClassifiedChallenge] = []
    for ch in catalog.challenges:
        status = _status(ch, catalog, snapshot, active_ids)
        result.append(
            ClassifiedChallenge(
                id=ch.id,
                name=ch.name,
                category=ch.category,
                tier=ch.tier,
                fuel_points=ch.fuel_points,
                description=ch.description,
                duration_days=ch.duration_days,
                expert_reference=ch.expert_reference,
                status=status,
                recommended=ch.id in recommended,
                lock_reason=lock_reason(ch, catalog, snapshot) if status == ChallengeStatus.locked else None,
            )
        )
    return result


def can_start_challenge(
    challenge: ChallengeDefinition,
    snapshot: ProgressSnapshot,
    catalog: Catalog,
    cap: int | None = None,
) -> Eligibility:
    """Advisory pre-check for starting ``challenge``; the store re-checks atomically."""
    if catalog.get_challenge(challenge.id) is None:
        logger.error("Eligibility check for unknown challenge %r", challenge.id)
        raise InvalidReference(challenge.id)

    limit = settings.max_active_challenges if cap is None else cap

    if challenge.id in snapshot.active_ids():
        return Eligibility.deny(IneligibleReason.already_active)
    if challenge.id in snapshot.completed_challenge_ids:
        return Eligibility.deny(IneligibleReason.already_completed)
    if len(snapshot.active_challenges) >= limit:
        return Eligibility.deny(IneligibleReason.already_capped)
    hint = lock_reason(challenge, catalog, snapshot)
    if hint is not None:
        return Eligibility.deny(IneligibleReason.locked, detail=hint)
    return Eligibility.ok()


def status_counts(classified: Iterable[ClassifiedChallenge]) -> dict[str, int]:
    """Count per status, with every status present (zero when unused)."""
    counts = Counter(c.status.value for c in classified)
    return {s.value: counts.get(s.value, 0) for s in ChallengeStatus}
