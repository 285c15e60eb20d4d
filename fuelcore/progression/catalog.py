"""Static challenge and boost catalog — configuration only, no DB.

Challenges are grouped by category and tier. Tier 0 is the required first
challenge that unlocks every Tier 1; completing all Tier 1 challenges in a
category unlocks that category's Tier 2 ("Pro") challenges. Boosts are
daily micro-actions capped per category per day and, for some, per week.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from functools import lru_cache

from fuelcore.progression.errors import CatalogError
from fuelcore.progression.models import Category

VALID_TIERS = (0, 1, 2)


@dataclass(frozen=True, slots=True)
class CategoryDefinition:
    id: Category
    name: str
    max_daily_boosts: int = 3


@dataclass(frozen=True, slots=True)
class ChallengeDefinition:
    id: str
    name: str
    category: Category
    tier: int
    fuel_points: int
    description: str = ""
    duration_days: int = 21
    expert_reference: str | None = None  # "Name - Title"

    @property
    def expert_name(self) -> str | None:
        if not self.expert_reference:
            return None
        return self.expert_reference.split(" - ")[0]


@dataclass(frozen=True, slots=True)
class BoostDefinition:
    id: str
    name: str
    category: Category
    fuel_points: int
    weekly_limit: int | None = None  # None = no weekly cap


@dataclass(frozen=True, slots=True)
class Catalog:
    categories: tuple[CategoryDefinition, ...] = ()
    challenges: tuple[ChallengeDefinition, ...] = ()
    boosts: tuple[BoostDefinition, ...] = ()
    _challenge_index: dict[str, ChallengeDefinition] = field(default_factory=dict, repr=False, compare=False)
    _boost_index: dict[str, BoostDefinition] = field(default_factory=dict, repr=False, compare=False)

    def __post_init__(self) -> None:
        self._challenge_index.update({c.id: c for c in self.challenges})
        self._boost_index.update({b.id: b for b in self.boosts})

    def get_challenge(self, challenge_id: str) -> ChallengeDefinition | None:
        return self._challenge_index.get(challenge_id)

    def get_boost(self, boost_id: str) -> BoostDefinition | None:
        return self._boost_index.get(boost_id)

    def get_category(self, category: Category | str) -> CategoryDefinition | None:
        for cat in self.categories:
            if cat.id == category:
                return cat
        return None

    def challenges_in(self, category: Category | str) -> list[ChallengeDefinition]:
        return [c for c in self.challenges if c.category == category]

    def boosts_in(self, category: Category | str) -> list[BoostDefinition]:
        return [b for b in self.boosts if b.category == category]

    def tier0_challenges(self) -> list[ChallengeDefinition]:
        return [c for c in self.challenges if c.tier == 0]


def validate_catalog(catalog: Catalog) -> Catalog:
    """Check ids, tiers, rewards and category references. Raises CatalogError."""
    declared = {c.id for c in catalog.categories}
    if len(declared) != len(catalog.categories):
        raise CatalogError("Duplicate category definitions")
    for cat in catalog.categories:
        if cat.max_daily_boosts <= 0:
            raise CatalogError(f"Category {cat.id.value} must allow at least one daily boost")

    seen: set[str] = set()
    for ch in catalog.challenges:
        if ch.id in seen:
            raise CatalogError(f"Duplicate challenge id: {ch.id}")
        seen.add(ch.id)
        if ch.tier not in VALID_TIERS:
            raise CatalogError(f"Challenge {ch.id} has invalid tier {ch.tier}")
        if ch.fuel_points <= 0:
            raise CatalogError(f"Challenge {ch.id} must award positive fuel points")
        if ch.duration_days <= 0:
            raise CatalogError(f"Challenge {ch.id} must last at least one day")
        if ch.category not in declared:
            raise CatalogError(f"Challenge {ch.id} references undeclared category {ch.category}")

    tiers = {ch.tier for ch in catalog.challenges}
    if 1 in tiers and 0 not in tiers:
        raise CatalogError("Tier 1 challenges require a Tier 0 challenge to unlock them")

    seen = set()
    for boost in catalog.boosts:
        if boost.id in seen:
            raise CatalogError(f"Duplicate boost id: {boost.id}")
        seen.add(boost.id)
        if boost.fuel_points <= 0:
            raise CatalogError(f"Boost {boost.id} must award positive fuel points")
        if boost.weekly_limit is not None and boost.weekly_limit <= 0:
            raise CatalogError(f"Boost {boost.id} has a non-positive weekly limit")
        if boost.category not in declared:
            raise CatalogError(f"Boost {boost.id} references undeclared category {boost.category}")

    return catalog


# ---------------------------------------------------------------------------
# Definitions
# ---------------------------------------------------------------------------

CATEGORIES: tuple[CategoryDefinition, ...] = (
    CategoryDefinition(id=Category.mindset, name="Mindset", max_daily_boosts=3),
    CategoryDefinition(id=Category.sleep, name="Sleep", max_daily_boosts=3),
    CategoryDefinition(id=Category.exercise, name="Exercise", max_daily_boosts=3),
    CategoryDefinition(id=Category.nutrition, name="Nutrition", max_daily_boosts=3),
    CategoryDefinition(id=Category.biohacking, name="Biohacking", max_daily_boosts=3),
    CategoryDefinition(id=Category.bonus, name="Bonus", max_daily_boosts=3),
)

CHALLENGES: tuple[ChallengeDefinition, ...] = (
    # T0 – required first challenge
    ChallengeDefinition(
        id="tc0",
        name="Morning Basics",
        category=Category.bonus,
        tier=0,
        fuel_points=50,
        description="Hydrate, get morning light and move for five minutes every day.",
    ),
    # Mindset
    ChallengeDefinition(
        id="mc1",
        name="Gratitude Reset",
        category=Category.mindset,
        tier=1,
        fuel_points=50,
        description="Write three things you are grateful for each evening.",
        expert_reference="Dr. Robert Emmons - Gratitude Researcher",
    ),
    ChallengeDefinition(
        id="mc2",
        name="Daily Meditation",
        category=Category.mindset,
        tier=1,
        fuel_points=50,
        description="Meditate for at least ten minutes a day.",
        expert_reference="Dr. Andrew Huberman - Neuroscientist",
    ),
    ChallengeDefinition(
        id="mc3",
        name="Deep Work Mastery",
        category=Category.mindset,
        tier=2,
        fuel_points=100,
        description="Protect a daily 90-minute block of focused work.",
        expert_reference="Cal Newport - Computer Scientist",
    ),
    # Sleep
    ChallengeDefinition(
        id="t1-sleep",
        name="Sleep Schedule Lock",
        category=Category.sleep,
        tier=1,
        fuel_points=50,
        description="Go to bed and wake up within the same 30-minute window every day.",
        expert_reference="Dr. Matthew Walker - Sleep Scientist",
    ),
    ChallengeDefinition(
        id="sc2",
        name="Screen Sunset",
        category=Category.sleep,
        tier=1,
        fuel_points=50,
        description="No screens for one hour before bed.",
    ),
    ChallengeDefinition(
        id="sc3",
        name="Sleep Quality Pro",
        category=Category.sleep,
        tier=2,
        fuel_points=100,
        description="Reach 85% sleep efficiency on your tracker for the full program.",
        expert_reference="Dr. Matthew Walker - Sleep Scientist",
    ),
    # Exercise
    ChallengeDefinition(
        id="ec1",
        name="Zone 2 Foundations",
        category=Category.exercise,
        tier=1,
        fuel_points=50,
        description="Accumulate 150 minutes of Zone 2 cardio each week.",
        expert_reference="Dr. Peter Attia - Longevity Physician",
    ),
    ChallengeDefinition(
        id="ec2",
        name="Daily Steps",
        category=Category.exercise,
        tier=1,
        fuel_points=50,
        description="Walk 8,000 steps every day.",
    ),
    ChallengeDefinition(
        id="ec3",
        name="Strength Builder",
        category=Category.exercise,
        tier=2,
        fuel_points=100,
        description="Complete three full-body resistance sessions per week.",
        expert_reference="Dr. Peter Attia - Longevity Physician",
    ),
    # Nutrition
    ChallengeDefinition(
        id="nc1",
        name="Protein Priority",
        category=Category.nutrition,
        tier=1,
        fuel_points=50,
        description="Eat 30 grams of protein with your first meal.",
    ),
    ChallengeDefinition(
        id="nc2",
        name="Whole Food Focus",
        category=Category.nutrition,
        tier=1,
        fuel_points=50,
        description="Skip ultra-processed foods for the full program.",
        expert_reference="Dr. Mark Hyman - Functional Medicine Physician",
    ),
    ChallengeDefinition(
        id="nc3",
        name="Time-Restricted Eating",
        category=Category.nutrition,
        tier=2,
        fuel_points=100,
        description="Keep all meals within a ten-hour window.",
        expert_reference="Dr. Satchin Panda - Circadian Biologist",
    ),
    # Biohacking
    ChallengeDefinition(
        id="bc1",
        name="Cold Exposure Starter",
        category=Category.biohacking,
        tier=1,
        fuel_points=50,
        description="End each shower with 60 seconds of cold water.",
        expert_reference="Dr. Susanna Søberg - Metabolism Researcher",
    ),
    ChallengeDefinition(
        id="bc2",
        name="Breathwork Practice",
        category=Category.biohacking,
        tier=1,
        fuel_points=50,
        description="Five minutes of cyclic sighing every day.",
    ),
    ChallengeDefinition(
        id="bc3",
        name="Heat Therapy Protocol",
        category=Category.biohacking,
        tier=2,
        fuel_points=100,
        description="Four 20-minute sauna sessions per week.",
        expert_reference="Dr. Rhonda Patrick - Biomedical Scientist",
    ),
)

BOOSTS: tuple[BoostDefinition, ...] = (
    # Mindset
    BoostDefinition(id="mindset-gratitude", name="Gratitude Journal", category=Category.mindset, fuel_points=1),
    BoostDefinition(id="mindset-meditate", name="10-Minute Meditation", category=Category.mindset, fuel_points=2),
    BoostDefinition(id="mindset-nature", name="Time in Nature", category=Category.mindset, fuel_points=2),
    BoostDefinition(id="mindset-digital-detox", name="Two-Hour Digital Detox", category=Category.mindset, fuel_points=3, weekly_limit=3),
    # Sleep
    BoostDefinition(id="sleep-morning-light", name="Morning Sunlight", category=Category.sleep, fuel_points=1),
    BoostDefinition(id="sleep-no-caffeine", name="No Caffeine After Noon", category=Category.sleep, fuel_points=2),
    BoostDefinition(id="sleep-cool-room", name="Cool Bedroom", category=Category.sleep, fuel_points=1),
    BoostDefinition(id="sleep-7-hours", name="Seven Hours of Sleep", category=Category.sleep, fuel_points=3),
    # Exercise
    BoostDefinition(id="exercise-walk", name="10-Minute Walk After Meal", category=Category.exercise, fuel_points=1),
    BoostDefinition(id="exercise-zone2", name="30 Minutes Zone 2", category=Category.exercise, fuel_points=3),
    BoostDefinition(id="exercise-mobility", name="Mobility Routine", category=Category.exercise, fuel_points=2),
    BoostDefinition(id="exercise-hiit", name="HIIT Session", category=Category.exercise, fuel_points=5, weekly_limit=2),
    # Nutrition
    BoostDefinition(id="nutrition-vegetables", name="Five Servings of Vegetables", category=Category.nutrition, fuel_points=2),
    BoostDefinition(id="nutrition-water", name="Two Liters of Water", category=Category.nutrition, fuel_points=1),
    BoostDefinition(id="nutrition-no-sugar", name="No Added Sugar", category=Category.nutrition, fuel_points=3),
    BoostDefinition(id="nutrition-fermented", name="Fermented Food", category=Category.nutrition, fuel_points=2),
    # Biohacking
    BoostDefinition(id="biohacking-cold-shower", name="Cold Shower", category=Category.biohacking, fuel_points=2),
    BoostDefinition(id="biohacking-breathwork", name="Box Breathing", category=Category.biohacking, fuel_points=1),
    BoostDefinition(id="biohacking-sauna", name="Sauna Session", category=Category.biohacking, fuel_points=3, weekly_limit=4),
    BoostDefinition(id="biohacking-grounding", name="Grounding", category=Category.biohacking, fuel_points=1),
)


@lru_cache(maxsize=1)
def load_catalog() -> Catalog:
    """Build and validate the process-wide catalog once."""
    return validate_catalog(Catalog(categories=CATEGORIES, challenges=CHALLENGES, boosts=BOOSTS))
