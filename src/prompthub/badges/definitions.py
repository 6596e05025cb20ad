"""Badge catalog — static achievement definitions and lookups.

The catalog is plain immutable data. It is checked once at import time by
``validate_catalog`` so a misconfigured definition fails process start rather
than a badge check.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Union

from prompthub.badges.stats import NUMERIC_STATS_FIELDS
from prompthub.badges.validators import VALIDATORS
from prompthub.errors import CatalogError


class BadgeTier(str, Enum):
    COMMON = "common"
    UNCOMMON = "uncommon"
    RARE = "rare"
    EPIC = "epic"
    LEGENDARY = "legendary"

    @property
    def rank(self) -> int:
        """Position in the tier order, common being 0."""
        return _TIER_ORDER.index(self)


_TIER_ORDER = [
    BadgeTier.COMMON,
    BadgeTier.UNCOMMON,
    BadgeTier.RARE,
    BadgeTier.EPIC,
    BadgeTier.LEGENDARY,
]


class BadgeCategory(str, Enum):
    CONTENT_CREATION = "content_creation"
    ENGAGEMENT = "engagement"
    SOCIAL = "social"
    TIME_BASED = "time_based"
    SPECIALTY = "specialty"
    MILESTONE = "milestone"


# --- Criteria variants ---


@dataclass(frozen=True)
class ThresholdCriteria:
    """Compare one numeric stats field against a threshold.

    ``threshold`` is only used by flat badges; progressive badges take their
    thresholds from the levels.
    """

    kind: ClassVar[str] = "threshold"
    field: str
    threshold: float | None = None


@dataclass(frozen=True)
class CustomCriteria:
    """Delegate to a named validator from the fixed dispatch table."""

    kind: ClassVar[str] = "custom"
    validator: str
    params: Mapping[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class TimeBasedCriteria:
    """Compare whole days of account age against a threshold."""

    kind: ClassVar[str] = "time_based"
    field: str = "account_age"
    threshold: float | None = None


Criteria = Union[ThresholdCriteria, CustomCriteria, TimeBasedCriteria]


@dataclass(frozen=True)
class BadgeLevel:
    level: int
    name: str
    threshold: float
    tier: BadgeTier


@dataclass(frozen=True)
class BadgeDefinition:
    id: str
    name: str
    description: str
    icon: str
    tier: BadgeTier
    category: BadgeCategory
    criteria: Criteria
    is_progressive: bool = False
    levels: tuple[BadgeLevel, ...] = ()

    def level_for(self, level: int) -> BadgeLevel | None:
        for entry in self.levels:
            if entry.level == level:
                return entry
        return None

    def next_level(self, after: int) -> BadgeLevel | None:
        """Lowest level above ``after``, or None when the badge is maxed."""
        for entry in self.levels:
            if entry.level > after:
                return entry
        return None

    def tier_for(self, level: int | None) -> BadgeTier:
        """Effective tier of this badge when held at ``level``.

        Progressive levels carry their own tier, which may differ from the
        definition's base tier. An unknown level falls back to the base tier.
        """
        if self.is_progressive and level:
            entry = self.level_for(level)
            if entry is not None:
                return entry.tier
        return self.tier

    def level_name(self, level: int | None) -> str:
        if self.is_progressive and level:
            entry = self.level_for(level)
            if entry is not None:
                return entry.name
        return self.name


# --- Catalog content ---


CONTENT_CREATION_BADGES: list[BadgeDefinition] = [
    BadgeDefinition(
        id="first_prompt",
        name="First Steps",
        description="Created your first prompt",
        icon="🌱",
        tier=BadgeTier.COMMON,
        category=BadgeCategory.CONTENT_CREATION,
        criteria=ThresholdCriteria(field="total_prompts", threshold=1),
    ),
    BadgeDefinition(
        id="prolific_creator",
        name="Prolific Creator",
        description="Created multiple prompts",
        icon="📝",
        tier=BadgeTier.UNCOMMON,
        category=BadgeCategory.CONTENT_CREATION,
        criteria=ThresholdCriteria(field="total_prompts"),
        is_progressive=True,
        levels=(
            BadgeLevel(1, "Bronze Creator", 10, BadgeTier.COMMON),
            BadgeLevel(2, "Silver Creator", 50, BadgeTier.UNCOMMON),
            BadgeLevel(3, "Gold Creator", 100, BadgeTier.RARE),
            BadgeLevel(4, "Platinum Creator", 500, BadgeTier.EPIC),
        ),
    ),
    BadgeDefinition(
        id="multi_agent_master",
        name="Multi-Agent Master",
        description="Created prompts for 5+ different AI agents",
        icon="🤖",
        tier=BadgeTier.RARE,
        category=BadgeCategory.CONTENT_CREATION,
        criteria=CustomCriteria("agent_diversity", {"min_agents": 5}),
    ),
    BadgeDefinition(
        id="category_explorer",
        name="Category Explorer",
        description="Created prompts in 5+ different categories",
        icon="🗺️",
        tier=BadgeTier.RARE,
        category=BadgeCategory.CONTENT_CREATION,
        criteria=CustomCriteria("category_diversity", {"min_categories": 5}),
    ),
    BadgeDefinition(
        id="quality_craftsman",
        name="Quality Craftsman",
        description="Maintain 4.5+ star average rating across 10+ rated prompts",
        icon="⭐",
        tier=BadgeTier.EPIC,
        category=BadgeCategory.CONTENT_CREATION,
        criteria=CustomCriteria("quality_rating", {"min_rating": 4.5, "min_prompts": 10}),
    ),
]

ENGAGEMENT_BADGES: list[BadgeDefinition] = [
    BadgeDefinition(
        id="popular_creator",
        name="Popular Creator",
        description="Received likes across all prompts",
        icon="❤️",
        tier=BadgeTier.UNCOMMON,
        category=BadgeCategory.ENGAGEMENT,
        criteria=ThresholdCriteria(field="total_likes"),
        is_progressive=True,
        levels=(
            BadgeLevel(1, "Liked", 100, BadgeTier.COMMON),
            BadgeLevel(2, "Well-Liked", 500, BadgeTier.UNCOMMON),
            BadgeLevel(3, "Beloved", 1000, BadgeTier.RARE),
            BadgeLevel(4, "Adored", 5000, BadgeTier.EPIC),
        ),
    ),
    BadgeDefinition(
        id="bookmarked",
        name="Bookmarked",
        description="Prompts saved by other users",
        icon="🔖",
        tier=BadgeTier.UNCOMMON,
        category=BadgeCategory.ENGAGEMENT,
        criteria=ThresholdCriteria(field="total_saves"),
        is_progressive=True,
        levels=(
            BadgeLevel(1, "Saved", 50, BadgeTier.COMMON),
            BadgeLevel(2, "Bookmarked", 200, BadgeTier.UNCOMMON),
            BadgeLevel(3, "Treasured", 500, BadgeTier.RARE),
            BadgeLevel(4, "Essential", 1000, BadgeTier.EPIC),
        ),
    ),
    BadgeDefinition(
        id="viral_hit",
        name="Viral Hit",
        description="Created a prompt with 100+ likes",
        icon="🚀",
        tier=BadgeTier.RARE,
        category=BadgeCategory.ENGAGEMENT,
        criteria=CustomCriteria("viral_prompt"),
    ),
]

SOCIAL_BADGES: list[BadgeDefinition] = [
    BadgeDefinition(
        id="influencer",
        name="Influencer",
        description="Gained followers in the community",
        icon="👑",
        tier=BadgeTier.RARE,
        category=BadgeCategory.SOCIAL,
        criteria=ThresholdCriteria(field="total_followers"),
        is_progressive=True,
        levels=(
            BadgeLevel(1, "Rising Star", 50, BadgeTier.UNCOMMON),
            BadgeLevel(2, "Influencer", 100, BadgeTier.RARE),
            BadgeLevel(3, "Celebrity", 500, BadgeTier.EPIC),
            BadgeLevel(4, "Legend", 1000, BadgeTier.LEGENDARY),
        ),
    ),
    BadgeDefinition(
        id="networker",
        name="Networker",
        description="Following 50+ users",
        icon="🤝",
        tier=BadgeTier.UNCOMMON,
        category=BadgeCategory.SOCIAL,
        criteria=ThresholdCriteria(field="total_following", threshold=50),
    ),
    BadgeDefinition(
        id="community_builder",
        name="Community Builder",
        description="100+ followers and following 50+ users",
        icon="🏗️",
        tier=BadgeTier.EPIC,
        category=BadgeCategory.SOCIAL,
        criteria=CustomCriteria("community_builder", {"min_followers": 100, "min_following": 50}),
    ),
]

TIME_BASED_BADGES: list[BadgeDefinition] = [
    BadgeDefinition(
        id="pioneer",
        name="Pioneer",
        description="Among the first 100 users",
        icon="🏴‍☠️",
        tier=BadgeTier.LEGENDARY,
        category=BadgeCategory.TIME_BASED,
        criteria=CustomCriteria(
            "pioneer_status",
            {"max_user_count": 100, "cutoff": "2024-01-01T00:00:00+00:00"},
        ),
    ),
    BadgeDefinition(
        id="veteran",
        name="Veteran",
        description="Long-time community member",
        icon="🎖️",
        tier=BadgeTier.RARE,
        category=BadgeCategory.TIME_BASED,
        criteria=TimeBasedCriteria(),
        is_progressive=True,
        levels=(
            BadgeLevel(1, "Established", 180, BadgeTier.UNCOMMON),
            BadgeLevel(2, "Veteran", 365, BadgeTier.RARE),
            BadgeLevel(3, "Elder", 730, BadgeTier.EPIC),
        ),
    ),
    BadgeDefinition(
        id="consistent_contributor",
        name="Consistent Contributor",
        description="Created prompts for consecutive days",
        icon="📅",
        tier=BadgeTier.RARE,
        category=BadgeCategory.TIME_BASED,
        criteria=ThresholdCriteria(field="consecutive_days"),
        is_progressive=True,
        levels=(
            BadgeLevel(1, "Week Warrior", 7, BadgeTier.COMMON),
            BadgeLevel(2, "Month Master", 30, BadgeTier.UNCOMMON),
            BadgeLevel(3, "Quarter Champion", 90, BadgeTier.RARE),
            BadgeLevel(4, "Year Legend", 365, BadgeTier.LEGENDARY),
        ),
    ),
]

COMMENT_BADGES: list[BadgeDefinition] = [
    BadgeDefinition(
        id="first_comment",
        name="First Comment",
        description="Left your first comment on a prompt",
        icon="💬",
        tier=BadgeTier.COMMON,
        category=BadgeCategory.ENGAGEMENT,
        criteria=ThresholdCriteria(field="total_comments", threshold=1),
    ),
    BadgeDefinition(
        id="conversationalist",
        name="Conversationalist",
        description="Active in community discussions",
        icon="🗣️",
        tier=BadgeTier.UNCOMMON,
        category=BadgeCategory.ENGAGEMENT,
        criteria=ThresholdCriteria(field="total_comments"),
        is_progressive=True,
        levels=(
            BadgeLevel(1, "Chatter", 10, BadgeTier.COMMON),
            BadgeLevel(2, "Conversationalist", 50, BadgeTier.UNCOMMON),
            BadgeLevel(3, "Discussion Leader", 100, BadgeTier.RARE),
            BadgeLevel(4, "Community Voice", 500, BadgeTier.EPIC),
        ),
    ),
    BadgeDefinition(
        id="helpful_commenter",
        name="Helpful Commenter",
        description="Comments that receive lots of likes",
        icon="👍",
        tier=BadgeTier.RARE,
        category=BadgeCategory.ENGAGEMENT,
        criteria=CustomCriteria("helpful_commenter", {"min_likes": 10, "min_comments": 5}),
    ),
    BadgeDefinition(
        id="discussion_starter",
        name="Discussion Starter",
        description="Comments that spark conversations",
        icon="🔥",
        tier=BadgeTier.RARE,
        category=BadgeCategory.ENGAGEMENT,
        criteria=CustomCriteria("discussion_starter", {"min_replies": 5, "min_comments": 3}),
    ),
    BadgeDefinition(
        id="community_helper",
        name="Community Helper",
        description="Actively helps other users through replies",
        icon="🤝",
        tier=BadgeTier.EPIC,
        category=BadgeCategory.SOCIAL,
        criteria=CustomCriteria("community_helper", {"min_replies": 20, "min_unique_users": 10}),
    ),
]

SPECIALTY_BADGES: list[BadgeDefinition] = [
    BadgeDefinition(
        id="chatgpt_master",
        name="ChatGPT Master",
        description="Expert in ChatGPT prompts",
        icon="🤖",
        tier=BadgeTier.RARE,
        category=BadgeCategory.SPECIALTY,
        criteria=CustomCriteria("agent_specialty", {"agent": "ChatGPT", "min_prompts": 50}),
    ),
    BadgeDefinition(
        id="claude_expert",
        name="Claude Expert",
        description="Expert in Claude prompts",
        icon="🧠",
        tier=BadgeTier.RARE,
        category=BadgeCategory.SPECIALTY,
        criteria=CustomCriteria("agent_specialty", {"agent": "Claude", "min_prompts": 50}),
    ),
    BadgeDefinition(
        id="image_wizard",
        name="Image Wizard",
        description="Master of image generation prompts",
        icon="🎨",
        tier=BadgeTier.RARE,
        category=BadgeCategory.SPECIALTY,
        criteria=CustomCriteria("image_generation", {"min_prompts": 20}),
    ),
    BadgeDefinition(
        id="code_whisperer",
        name="Code Whisperer",
        description="Expert in development prompts",
        icon="👨‍💻",
        tier=BadgeTier.RARE,
        category=BadgeCategory.SPECIALTY,
        criteria=CustomCriteria("category_specialty", {"category": "Development", "min_prompts": 20}),
    ),
]

ALL_BADGES: list[BadgeDefinition] = [
    *CONTENT_CREATION_BADGES,
    *ENGAGEMENT_BADGES,
    *SOCIAL_BADGES,
    *TIME_BASED_BADGES,
    *COMMENT_BADGES,
    *SPECIALTY_BADGES,
]


# --- Load-time checks ---


def _check_levels(badge: BadgeDefinition) -> None:
    if not badge.levels:
        raise CatalogError(f"progressive badge {badge.id!r} has no levels")
    for prev, cur in zip(badge.levels, badge.levels[1:]):
        if cur.level <= prev.level or cur.threshold <= prev.threshold:
            raise CatalogError(
                f"levels of {badge.id!r} must strictly increase by level and threshold"
            )


def _check_criteria(badge: BadgeDefinition) -> None:
    criteria = badge.criteria
    if isinstance(criteria, ThresholdCriteria):
        if criteria.field not in NUMERIC_STATS_FIELDS:
            raise CatalogError(f"badge {badge.id!r} compares unknown field {criteria.field!r}")
        if not badge.is_progressive and criteria.threshold is None:
            raise CatalogError(f"flat badge {badge.id!r} has no threshold")
    elif isinstance(criteria, CustomCriteria):
        if criteria.validator not in VALIDATORS:
            raise CatalogError(
                f"badge {badge.id!r} names unknown validator {criteria.validator!r}"
            )
    elif isinstance(criteria, TimeBasedCriteria):
        if criteria.field != "account_age":
            raise CatalogError(f"badge {badge.id!r} has unsupported time field {criteria.field!r}")
        if not badge.is_progressive and criteria.threshold is None:
            raise CatalogError(f"flat badge {badge.id!r} has no threshold")
    else:
        raise CatalogError(f"badge {badge.id!r} has unsupported criteria {criteria!r}")


def validate_catalog(badges: Iterable[BadgeDefinition]) -> dict[str, BadgeDefinition]:
    """Check every definition and index the catalog by id.

    Raises:
        CatalogError: On duplicate ids, malformed progressive levels, unknown
            threshold fields or unregistered validators.
    """
    index: dict[str, BadgeDefinition] = {}
    for badge in badges:
        if badge.id in index:
            raise CatalogError(f"duplicate badge id {badge.id!r}")
        if badge.is_progressive:
            _check_levels(badge)
        _check_criteria(badge)
        index[badge.id] = badge
    return index


BADGE_DEFINITIONS: dict[str, BadgeDefinition] = validate_catalog(ALL_BADGES)


def get_badge_definition(badge_id: str) -> BadgeDefinition | None:
    return BADGE_DEFINITIONS.get(badge_id)


def get_badges_by_category(category: BadgeCategory) -> list[BadgeDefinition]:
    return [b for b in ALL_BADGES if b.category == category]


def get_badges_by_tier(tier: BadgeTier) -> list[BadgeDefinition]:
    return [b for b in ALL_BADGES if b.tier == tier]


def highest_tier(held: Iterable[Any]) -> BadgeTier | None:
    """Highest effective tier among held badges (``badge_id``/``level`` objects).

    Badges missing from the catalog are ignored. Returns None for no badges.
    """
    best: BadgeTier | None = None
    for badge in held:
        definition = BADGE_DEFINITIONS.get(badge.badge_id)
        if definition is None:
            continue
        tier = definition.tier_for(badge.level)
        if best is None or tier.rank > best.rank:
            best = tier
    return best
