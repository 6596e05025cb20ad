"""Eligibility evaluator tests — flat, progressive, custom and time-based criteria."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from prompthub.badges import validators
from prompthub.badges.definitions import (
    BadgeCategory,
    BadgeDefinition,
    BadgeTier,
    CustomCriteria,
    get_badge_definition,
)
from prompthub.badges.evaluator import evaluate, evaluate_all, level_progress
from prompthub.badges.stats import UserStats

NOW = datetime(2026, 6, 15, tzinfo=timezone.utc)


def stats(**kwargs) -> UserStats:
    return UserStats(account_created_at=kwargs.pop("account_created_at", NOW - timedelta(days=10)), **kwargs)


PROLIFIC = get_badge_definition("prolific_creator")
FIRST_PROMPT = get_badge_definition("first_prompt")
VETERAN = get_badge_definition("veteran")


class TestFlatThreshold:
    def test_earned_at_threshold(self):
        result = evaluate(FIRST_PROMPT, stats(total_prompts=1), now=NOW)
        assert result.earned is True
        assert result.level == 1
        assert result.previous_level == 0

    def test_not_earned_below_threshold(self):
        result = evaluate(FIRST_PROMPT, stats(total_prompts=0), now=NOW)
        assert result.earned is False
        assert result.progress == 0.0

    def test_already_held_is_not_reawarded(self):
        result = evaluate(FIRST_PROMPT, stats(total_prompts=5), current_level=1, now=NOW)
        assert result.earned is False

    def test_networker_progress(self):
        result = evaluate(get_badge_definition("networker"), stats(total_following=25), now=NOW)
        assert result.earned is False
        assert result.progress == pytest.approx(50.0)


class TestProgressiveThreshold:
    def test_first_level(self):
        result = evaluate(PROLIFIC, stats(total_prompts=10), now=NOW)
        assert result.earned is True
        assert result.level == 1

    def test_level_skip_awards_highest_directly(self):
        result = evaluate(PROLIFIC, stats(total_prompts=150), now=NOW)
        assert result.earned is True
        assert result.level == 3
        assert result.previous_level == 0

    def test_strict_upgrade_only(self):
        result = evaluate(PROLIFIC, stats(total_prompts=60), current_level=2, now=NOW)
        assert result.earned is False
        assert result.level == 2

    def test_upgrade_from_held_level(self):
        result = evaluate(PROLIFIC, stats(total_prompts=60), current_level=1, now=NOW)
        assert result.earned is True
        assert result.level == 2
        assert result.previous_level == 1

    def test_held_level_above_stats_never_downgrades(self):
        result = evaluate(PROLIFIC, stats(total_prompts=12), current_level=3, now=NOW)
        assert result.earned is False
        assert result.level == 3

    def test_progress_toward_lowest_unearned_level(self):
        result = evaluate(PROLIFIC, stats(total_prompts=25), current_level=1, now=NOW)
        assert result.earned is False
        # next unearned level is Silver at 50
        assert result.progress == pytest.approx(50.0)

    def test_progress_from_nothing(self):
        result = evaluate(PROLIFIC, stats(total_prompts=4), now=NOW)
        assert result.earned is False
        assert result.level is None
        assert result.progress == pytest.approx(40.0)

    def test_progress_capped(self):
        # Held level 4 is the top; nothing left to earn.
        result = evaluate(PROLIFIC, stats(total_prompts=9000), current_level=4, now=NOW)
        assert result.earned is False
        assert result.progress == 100.0


class TestTimeBased:
    def test_account_age_levels(self):
        s = stats(account_created_at=NOW - timedelta(days=400))
        result = evaluate(VETERAN, s, now=NOW)
        assert result.earned is True
        assert result.level == 2

    def test_partial_day_does_not_count(self):
        s = stats(account_created_at=NOW - timedelta(days=179, hours=23))
        result = evaluate(VETERAN, s, now=NOW)
        assert result.earned is False
        assert result.progress == pytest.approx(179 / 180 * 100)


class TestCustom:
    def test_custom_earned(self):
        badge = get_badge_definition("viral_hit")
        result = evaluate(badge, stats(viral_prompts=1), now=NOW)
        assert result.earned is True
        assert result.progress == 100.0

    def test_custom_not_earned_has_no_partial_progress(self):
        badge = get_badge_definition("community_builder")
        result = evaluate(badge, stats(total_followers=99, total_following=99), now=NOW)
        assert result.earned is False
        assert result.progress == 0.0

    def test_unknown_validator_is_not_earned(self):
        badge = BadgeDefinition(
            id="mystery",
            name="Mystery",
            description="",
            icon="",
            tier=BadgeTier.RARE,
            category=BadgeCategory.MILESTONE,
            criteria=CustomCriteria("moon_phase", {}),
        )
        result = evaluate(badge, stats(), now=NOW)
        assert result.earned is False


class TestFailureIsolation:
    def test_validator_crash_only_affects_its_badge(self, monkeypatch):
        def boom(*_args):
            raise RuntimeError("validator exploded")

        monkeypatch.setitem(validators.VALIDATORS, "viral_prompt", boom)
        results = {r.badge_id: r for r in evaluate_all(stats(total_prompts=1, viral_prompts=3), {}, now=NOW)}
        assert results["viral_hit"].earned is False
        assert results["first_prompt"].earned is True

    def test_evaluate_all_covers_catalog(self):
        results = evaluate_all(stats(), {}, now=NOW)
        assert len(results) == 23


class TestLevelProgress:
    def test_zero_threshold(self):
        assert level_progress(0, 0) == 100.0

    def test_ratio(self):
        assert level_progress(5, 20) == pytest.approx(25.0)
