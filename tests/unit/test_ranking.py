"""Pure leaderboard ranking tests (no database)."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from types import MappingProxyType

import pytest

from prompthub.badges.definitions import BadgeCategory, BadgeTier
from prompthub.badges.ledger import HeldBadge
from prompthub.errors import InvalidFilterCombinationError
from prompthub.leaderboard.scoring import ScoringConfig
from prompthub.leaderboard.service import (
    LeaderboardFilters,
    LeaderboardPeriod,
    LeaderboardType,
    RankableUser,
    build_entries,
    matching_badges,
    period_cutoff,
    rank_users,
)

NOW = datetime(2026, 6, 15, 12, tzinfo=timezone.utc)


def badge(badge_id: str, level: int = 1, days_ago: int = 1) -> HeldBadge:
    return HeldBadge(badge_id=badge_id, level=level, earned_at=NOW - timedelta(days=days_ago))


def user(user_id: int, name: str, *badges: HeldBadge, joined_days_ago: int = 100) -> RankableUser:
    return RankableUser(
        user_id=user_id,
        name=name,
        joined_at=NOW - timedelta(days=joined_days_ago),
        badges=tuple(badges),
    )


class TestOrdering:
    def test_score_descending(self):
        users = [
            user(1, "low", badge("first_prompt")),
            user(2, "high", badge("pioneer")),
        ]
        ranked = rank_users(users, LeaderboardFilters(), NOW)
        assert [e.user_id for e in ranked] == [2, 1]
        assert [e.rank for e in ranked] == [1, 2]

    def test_badge_count_breaks_score_tie(self):
        config = ScoringConfig(
            tier_weights=MappingProxyType({BadgeTier.COMMON: 10, BadgeTier.RARE: 20}),
            level_multipliers=MappingProxyType({1: 1.0}),
            category_bonuses=MappingProxyType({}),
        )
        users = [
            user(1, "one", badge("chatgpt_master"), joined_days_ago=300),
            user(2, "two", badge("first_prompt"), badge("first_comment")),
        ]
        ranked = rank_users(users, LeaderboardFilters(), NOW, config)
        assert [e.total_score for e in ranked] == [20, 20]
        assert [e.user_id for e in ranked] == [2, 1]

    def test_full_tie_ordered_by_join_date(self):
        users = [
            user(1, "mid", badge("first_prompt"), joined_days_ago=50),
            user(2, "new", badge("first_prompt"), joined_days_ago=10),
            user(3, "old", badge("first_prompt"), joined_days_ago=90),
        ]
        ranked = rank_users(users, LeaderboardFilters(), NOW)
        assert [e.user_id for e in ranked] == [3, 1, 2]
        assert [e.rank for e in ranked] == [1, 2, 3]

    def test_users_without_badges_are_excluded(self):
        users = [user(1, "none"), user(2, "some", badge("first_prompt"))]
        entries, total = build_entries(users, LeaderboardFilters(), NOW)
        assert [e.user_id for e in entries] == [2]
        assert total == 1

    def test_entry_breakdown_and_top_badges(self):
        u = user(1, "ann", badge("first_prompt"), badge("influencer", 4), badge("veteran", 1))
        [entry] = rank_users([u], LeaderboardFilters(), NOW)
        assert entry.total_score == 12 + 3300 + 53
        assert entry.badge_count == 3
        assert entry.badge_breakdown["legendary"] == 1
        assert [t.badge.badge_id for t in entry.top_badges] == ["influencer", "veteran", "first_prompt"]


class TestPeriods:
    def test_cutoffs(self):
        assert period_cutoff(LeaderboardPeriod.ALL_TIME, NOW) is None
        assert period_cutoff(LeaderboardPeriod.WEEKLY, NOW) == NOW - timedelta(days=7)
        assert period_cutoff(LeaderboardPeriod.YEARLY, NOW) == NOW - timedelta(days=365)

    def test_weekly_excludes_older_badges(self):
        u = user(1, "ann", badge("first_prompt", days_ago=3), badge("pioneer", days_ago=10))
        filters = LeaderboardFilters(period=LeaderboardPeriod.WEEKLY)
        [entry] = rank_users([u], filters, NOW)
        assert entry.total_score == 12
        assert entry.badge_count == 1

    def test_user_with_only_old_badges_drops_out(self):
        users = [
            user(1, "old", badge("pioneer", days_ago=40)),
            user(2, "fresh", badge("first_prompt", days_ago=1)),
        ]
        entries, total = build_entries(users, LeaderboardFilters(period=LeaderboardPeriod.MONTHLY), NOW)
        assert [e.user_id for e in entries] == [2]
        assert total == 1

    def test_weekly_type_implies_weekly_period(self):
        filters = LeaderboardFilters(type=LeaderboardType.WEEKLY)
        assert filters.effective_period is LeaderboardPeriod.WEEKLY
        u = user(1, "ann", badge("first_prompt", days_ago=3), badge("pioneer", days_ago=10))
        [entry] = rank_users([u], filters, NOW)
        assert entry.total_score == 12

    def test_explicit_period_wins_over_type(self):
        filters = LeaderboardFilters(type=LeaderboardType.WEEKLY, period=LeaderboardPeriod.YEARLY)
        assert filters.effective_period is LeaderboardPeriod.YEARLY


class TestCategoryAndTier:
    def test_category_view_scores_only_that_category(self):
        u = user(1, "ann", badge("first_prompt"), badge("influencer", 4))
        filters = LeaderboardFilters(type=LeaderboardType.CATEGORY, category=BadgeCategory.SOCIAL)
        [entry] = rank_users([u], filters, NOW)
        assert entry.total_score == 3300
        assert entry.badge_count == 1

    def test_tier_view_uses_level_tier(self):
        badges = [badge("prolific_creator", 1), badge("prolific_creator", 2)]
        # Bronze Creator is common even though prolific_creator is uncommon.
        assert matching_badges(
            badges[:1], LeaderboardFilters(type=LeaderboardType.TIER, tier=BadgeTier.COMMON), NOW,
        ) == badges[:1]
        assert matching_badges(
            badges[:1], LeaderboardFilters(type=LeaderboardType.TIER, tier=BadgeTier.UNCOMMON), NOW,
        ) == []
        assert matching_badges(
            badges[1:], LeaderboardFilters(type=LeaderboardType.TIER, tier=BadgeTier.UNCOMMON), NOW,
        ) == badges[1:]

    def test_unknown_badges_never_match_a_category(self):
        u = user(1, "ann", badge("retired_badge"))
        filters = LeaderboardFilters(type=LeaderboardType.CATEGORY, category=BadgeCategory.SOCIAL)
        assert rank_users([u], filters, NOW) == []

    def test_category_without_value_is_rejected(self):
        with pytest.raises(InvalidFilterCombinationError):
            LeaderboardFilters(type=LeaderboardType.CATEGORY).validate()

    def test_tier_without_value_is_rejected(self):
        with pytest.raises(InvalidFilterCombinationError):
            LeaderboardFilters(type=LeaderboardType.TIER).validate()

    def test_overall_needs_nothing(self):
        LeaderboardFilters().validate()


class TestSearchAndPaging:
    def test_search_is_case_insensitive_substring(self):
        users = [
            user(1, "Annabel", badge("first_prompt")),
            user(2, "Bob", badge("pioneer")),
            user(3, "JOANNA", badge("first_comment")),
        ]
        entries, total = build_entries(users, LeaderboardFilters(search_query="ann"), NOW)
        assert sorted(e.user_id for e in entries) == [1, 3]
        assert total == 2

    def test_page_keeps_global_ranks(self):
        users = [
            user(i, f"user{i}", badge("first_prompt"), joined_days_ago=100 - i)
            for i in range(1, 8)
        ]
        entries, total = build_entries(users, LeaderboardFilters(limit=3, offset=3), NOW)
        assert total == 7
        assert [e.rank for e in entries] == [4, 5, 6]
        assert [e.user_id for e in entries] == [4, 5, 6]

    def test_offset_past_end_is_empty(self):
        users = [user(1, "ann", badge("first_prompt"))]
        entries, total = build_entries(users, LeaderboardFilters(offset=10), NOW)
        assert entries == []
        assert total == 1
