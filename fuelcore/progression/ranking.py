"""Display ordering and recommendation derivation — pure functions."""

from __future__ import annotations

from typing import Iterable, Protocol, Sequence, TypeVar

from fuelcore.config import settings
from fuelcore.progression.models import Category, ChallengeStatus, ClassifiedChallenge


class _HasId(Protocol):
    id: str


T = TypeVar("T", bound=_HasId)


def rank(challenges: Sequence[T], recommended_ids: Iterable[str]) -> list[T]:
    """Stable partition: recommended items first, input order kept on both sides."""
    recommended = set(recommended_ids)
    if not recommended:
        return list(challenges)
    head = [c for c in challenges if c.id in recommended]
    tail = [c for c in challenges if c.id not in recommended]
    return head + tail


def filter_category(classified: Sequence[ClassifiedChallenge], category: Category | str) -> list[ClassifiedChallenge]:
    return [c for c in classified if c.category == category]


def recommended_ids(
    category_scores: dict[str, float] | None,
    classified: Sequence[ClassifiedChallenge],
    limit: int | None = None,
) -> list[str]:
    """Pick challenges to flag as "Required" for the user.

    - Until a Tier 0 challenge is completed, only Tier 0 is recommended.
    - After that, walk categories from the lowest health score upward and
      take the first available challenge in each, up to ``limit``.
      Unscored categories come last; ties keep catalog category order.
    """
    tier0 = [c for c in classified if c.tier == 0]
    if tier0 and not any(c.status == ChallengeStatus.completed for c in tier0):
        return [c.id for c in tier0]

    cap = settings.recommendation_limit if limit is None else limit
    if cap <= 0:
        return []

    scores = category_scores or {}
    order = list(Category)
    ranked_categories = sorted(
        order,
        key=lambda cat: (cat.value not in scores, scores.get(cat.value, 0.0), order.index(cat)),
    )

    picks: list[str] = []
    for cat in ranked_categories:
        first = next(
            (c for c in classified if c.category == cat and c.status == ChallengeStatus.available),
            None,
        )
        if first is not None:
            picks.append(first.id)
        if len(picks) >= cap:
            break
    return picks
