"""Custom badge validators and their fixed dispatch table.

Each validator receives the user's stats snapshot plus the parameters from
the badge definition and returns a plain bool; custom criteria report no
partial progress.
"""

from __future__ import annotations

from collections.abc import Callable, Mapping
from datetime import datetime
from typing import Any

from prompthub.badges.stats import UserStats
from prompthub.errors import UnknownValidatorError
from prompthub.time_utils import ensure_utc

Validator = Callable[[UserStats, Mapping[str, Any]], bool]

IMAGE_AGENTS = frozenset({"Stable Diffusion", "DALL-E", "Midjourney"})
IMAGE_CATEGORY = "Image Generation"


def check_agent_diversity(stats: UserStats, params: Mapping[str, Any]) -> bool:
    """Prompts written for at least ``min_agents`` different AI agents."""
    return len(stats.agents_used) >= params["min_agents"]


def check_category_diversity(stats: UserStats, params: Mapping[str, Any]) -> bool:
    """Prompts spread over at least ``min_categories`` categories."""
    return len(stats.categories_used) >= params["min_categories"]


def check_quality_rating(stats: UserStats, params: Mapping[str, Any]) -> bool:
    """High average rating across a minimum number of rated prompts."""
    return (
        stats.prompts_with_rating >= params["min_prompts"]
        and stats.average_rating >= params["min_rating"]
    )


def check_viral_prompt(stats: UserStats, params: Mapping[str, Any]) -> bool:  # noqa: ARG001
    """At least one prompt crossed ``Settings.viral_like_threshold`` likes."""
    return stats.viral_prompts > 0


def check_community_builder(stats: UserStats, params: Mapping[str, Any]) -> bool:
    return (
        stats.total_followers >= params["min_followers"]
        and stats.total_following >= params["min_following"]
    )


def check_pioneer_status(stats: UserStats, params: Mapping[str, Any]) -> bool:
    """Account created on or before the launch cutoff.

    Creation date stands in for "among the first N users".
    """
    cutoff = ensure_utc(datetime.fromisoformat(params["cutoff"]))
    return ensure_utc(stats.account_created_at) <= cutoff


def check_agent_specialty(stats: UserStats, params: Mapping[str, Any]) -> bool:
    return params["agent"] in stats.agents_used and stats.total_prompts >= params["min_prompts"]


def check_image_generation(stats: UserStats, params: Mapping[str, Any]) -> bool:
    uses_image_tools = bool(IMAGE_AGENTS & stats.agents_used) or IMAGE_CATEGORY in stats.categories_used
    return uses_image_tools and stats.total_prompts >= params["min_prompts"]


def check_category_specialty(stats: UserStats, params: Mapping[str, Any]) -> bool:
    return params["category"] in stats.categories_used and stats.total_prompts >= params["min_prompts"]


def check_helpful_commenter(stats: UserStats, params: Mapping[str, Any]) -> bool:
    return (
        stats.total_comments >= params["min_comments"]
        and stats.total_comment_likes >= params["min_likes"]
    )


def check_discussion_starter(stats: UserStats, params: Mapping[str, Any]) -> bool:
    """Enough comments, and enough of them drew replies."""
    return (
        stats.total_comments >= params["min_comments"]
        and stats.comments_with_replies >= params["min_replies"]
    )


def check_community_helper(stats: UserStats, params: Mapping[str, Any]) -> bool:
    return (
        stats.total_replies >= params["min_replies"]
        and stats.unique_users_helped >= params["min_unique_users"]
    )


VALIDATORS: Mapping[str, Validator] = {
    "agent_diversity": check_agent_diversity,
    "category_diversity": check_category_diversity,
    "quality_rating": check_quality_rating,
    "viral_prompt": check_viral_prompt,
    "community_builder": check_community_builder,
    "pioneer_status": check_pioneer_status,
    "agent_specialty": check_agent_specialty,
    "image_generation": check_image_generation,
    "category_specialty": check_category_specialty,
    "helpful_commenter": check_helpful_commenter,
    "discussion_starter": check_discussion_starter,
    "community_helper": check_community_helper,
}


def run_validator(name: str, stats: UserStats, params: Mapping[str, Any]) -> bool:
    """Run a registered validator by name.

    Raises:
        UnknownValidatorError: If ``name`` is not in the dispatch table.
    """
    validator = VALIDATORS.get(name)
    if validator is None:
        raise UnknownValidatorError(name)
    return validator(stats, params)
