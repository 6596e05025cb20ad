"""Leaderboard scoring: tier weight x level multiplier x category bonus.

Pure functions over held badges. Badges whose id is no longer in the catalog
score zero and are left out of breakdowns.
"""

from __future__ import annotations

import math
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from types import MappingProxyType

from prompthub.badges.definitions import (
    BADGE_DEFINITIONS,
    BadgeCategory,
    BadgeDefinition,
    BadgeTier,
)
from prompthub.badges.ledger import HeldBadge


@dataclass(frozen=True)
class ScoringConfig:
    tier_weights: Mapping[BadgeTier, int]
    level_multipliers: Mapping[int, float]
    category_bonuses: Mapping[BadgeCategory, float]


DEFAULT_SCORING_CONFIG = ScoringConfig(
    tier_weights=MappingProxyType({
        BadgeTier.LEGENDARY: 1000,
        BadgeTier.EPIC: 500,
        BadgeTier.RARE: 200,
        BadgeTier.UNCOMMON: 50,
        BadgeTier.COMMON: 10,
    }),
    level_multipliers=MappingProxyType({
        1: 1.0,
        2: 1.5,
        3: 2.0,
        4: 3.0,
        5: 5.0,
    }),
    category_bonuses=MappingProxyType({
        BadgeCategory.CONTENT_CREATION: 1.2,
        BadgeCategory.ENGAGEMENT: 1.15,
        BadgeCategory.SOCIAL: 1.1,
        BadgeCategory.SPECIALTY: 1.25,
        BadgeCategory.TIME_BASED: 1.05,
        BadgeCategory.MILESTONE: 1.3,
    }),
)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def effective_tier(definition: BadgeDefinition, level: int | None) -> BadgeTier:
    """Tier a held badge scores at: the held level's tier for progressive badges."""
    return definition.tier_for(level)


def badge_score(badge: HeldBadge, config: ScoringConfig = DEFAULT_SCORING_CONFIG) -> int:
    definition = BADGE_DEFINITIONS.get(badge.badge_id)
    if definition is None:
        return 0
    level = badge.level or 1
    points = (
        config.tier_weights.get(effective_tier(definition, level), 0)
        * config.level_multipliers.get(level, 1.0)
        * config.category_bonuses.get(definition.category, 1.0)
    )
    return round_half_up(points)


def calculate_score(
    badges: Iterable[HeldBadge], config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> int:
    """Total score of a badge collection; each badge is rounded before summing."""
    return sum(badge_score(b, config) for b in badges)


def badge_breakdown(badges: Iterable[HeldBadge]) -> dict[str, int]:
    """Count of held badges per effective tier."""
    breakdown = {tier.value: 0 for tier in reversed(BadgeTier)}
    for badge in badges:
        definition = BADGE_DEFINITIONS.get(badge.badge_id)
        if definition is None:
            continue
        breakdown[effective_tier(definition, badge.level).value] += 1
    return breakdown


@dataclass(frozen=True)
class ScoredBadge:
    badge: HeldBadge
    definition: BadgeDefinition
    score: int


def top_badges(
    badges: Iterable[HeldBadge],
    limit: int = 3,
    config: ScoringConfig = DEFAULT_SCORING_CONFIG,
) -> list[ScoredBadge]:
    """Highest scoring badges first; ties keep ledger order."""
    scored = [
        ScoredBadge(b, BADGE_DEFINITIONS[b.badge_id], badge_score(b, config))
        for b in badges
        if b.badge_id in BADGE_DEFINITIONS
    ]
    scored.sort(key=lambda s: s.score, reverse=True)
    return scored[:limit]
