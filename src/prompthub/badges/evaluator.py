"""Eligibility evaluator: decides earned, level and progress for one badge.

Each criteria variant has its own registered implementation of
``_evaluate_criteria``; an unregistered variant raises ``TypeError``.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from datetime import datetime
from functools import singledispatch

import structlog

from prompthub.badges.definitions import (
    ALL_BADGES,
    BadgeDefinition,
    CustomCriteria,
    ThresholdCriteria,
    TimeBasedCriteria,
)
from prompthub.badges.stats import UserStats
from prompthub.badges.validators import run_validator
from prompthub.errors import UnknownValidatorError
from prompthub.time_utils import utcnow

logger = structlog.get_logger()


@dataclass(frozen=True)
class BadgeCheckResult:
    """Outcome of evaluating one badge for one user.

    ``earned`` means "award or upgrade now". For a progressive badge ``level``
    is the level to store; otherwise it is the level already held (or None).
    ``progress`` is informational, 0-100.
    """

    badge_id: str
    earned: bool
    level: int | None = None
    progress: float = 0.0
    previous_level: int = 0


def level_progress(value: float, threshold: float) -> float:
    if threshold <= 0:
        return 100.0
    return min(value / threshold, 1.0) * 100


def _scan_levels(
    definition: BadgeDefinition, value: float, current_level: int,
) -> BadgeCheckResult:
    # Highest satisfied level wins in one pass; lower levels are skipped.
    for entry in reversed(definition.levels):
        if value >= entry.threshold:
            if entry.level > current_level:
                following = definition.next_level(entry.level)
                return BadgeCheckResult(
                    badge_id=definition.id,
                    earned=True,
                    level=entry.level,
                    progress=100.0 if following is None else level_progress(value, following.threshold),
                    previous_level=current_level,
                )
            break

    upcoming = definition.next_level(current_level)
    return BadgeCheckResult(
        badge_id=definition.id,
        earned=False,
        level=current_level or None,
        progress=100.0 if upcoming is None else level_progress(value, upcoming.threshold),
        previous_level=current_level,
    )


def _compare_flat(
    definition: BadgeDefinition, value: float, threshold: float, current_level: int,
) -> BadgeCheckResult:
    if current_level:
        return BadgeCheckResult(definition.id, False, current_level, 100.0, current_level)
    met = value >= threshold
    return BadgeCheckResult(
        badge_id=definition.id,
        earned=met,
        level=1 if met else None,
        progress=level_progress(value, threshold),
    )


@singledispatch
def _evaluate_criteria(
    criteria: object,
    definition: BadgeDefinition,
    stats: UserStats,
    current_level: int,
    now: datetime,
) -> BadgeCheckResult:
    raise TypeError(f"no evaluator for criteria {type(criteria).__name__}")


@_evaluate_criteria.register(ThresholdCriteria)
def _(
    criteria: ThresholdCriteria,
    definition: BadgeDefinition,
    stats: UserStats,
    current_level: int,
    now: datetime,
) -> BadgeCheckResult:
    value = getattr(stats, criteria.field)
    if definition.is_progressive:
        return _scan_levels(definition, value, current_level)
    return _compare_flat(definition, value, criteria.threshold, current_level)


@_evaluate_criteria.register(TimeBasedCriteria)
def _(
    criteria: TimeBasedCriteria,
    definition: BadgeDefinition,
    stats: UserStats,
    current_level: int,
    now: datetime,
) -> BadgeCheckResult:
    age_days = stats.account_age_days(now)
    if definition.is_progressive:
        return _scan_levels(definition, age_days, current_level)
    return _compare_flat(definition, age_days, criteria.threshold, current_level)


@_evaluate_criteria.register(CustomCriteria)
def _(
    criteria: CustomCriteria,
    definition: BadgeDefinition,
    stats: UserStats,
    current_level: int,
    now: datetime,
) -> BadgeCheckResult:
    if current_level:
        return BadgeCheckResult(definition.id, False, current_level, 100.0, current_level)
    try:
        met = run_validator(criteria.validator, stats, criteria.params)
    except UnknownValidatorError:
        logger.warning("unknown_validator", badge_id=definition.id, validator=criteria.validator)
        met = False
    return BadgeCheckResult(
        badge_id=definition.id,
        earned=met,
        level=1 if met else None,
        progress=100.0 if met else 0.0,
    )


def evaluate(
    definition: BadgeDefinition,
    stats: UserStats,
    current_level: int = 0,
    now: datetime | None = None,
) -> BadgeCheckResult:
    """Evaluate one badge against a stats snapshot.

    Args:
        definition: Catalog entry to check.
        stats: Fresh snapshot for the user.
        current_level: Level currently held, 0 when the badge is not held.
        now: Reference time for account age, defaults to the current time.

    A failure inside one badge's evaluation is logged and reported as
    not-earned so the remaining badges still get checked.
    """
    try:
        return _evaluate_criteria(definition.criteria, definition, stats, current_level, now or utcnow())
    except Exception:
        logger.exception("badge_evaluation_failed", badge_id=definition.id)
        return BadgeCheckResult(definition.id, False, current_level or None, 0.0, current_level)


def evaluate_all(
    stats: UserStats,
    held_levels: Mapping[str, int],
    badges: Iterable[BadgeDefinition] = ALL_BADGES,
    now: datetime | None = None,
) -> list[BadgeCheckResult]:
    """Evaluate every catalog entry; ``held_levels`` maps badge id to held level."""
    now = now or utcnow()
    return [evaluate(b, stats, held_levels.get(b.id, 0), now) for b in badges]
