"""Domain errors raised by the badge and leaderboard engine."""

from __future__ import annotations


class PromptHubError(Exception):
    """Base class for engine errors."""


class NotFoundError(PromptHubError):
    """A referenced user, prompt or comment does not exist."""

    def __init__(self, entity: str, entity_id: object) -> None:
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} not found: {entity_id}")


class UnknownValidatorError(PromptHubError):
    """A CUSTOM criteria names a validator missing from the dispatch table."""

    def __init__(self, validator: str) -> None:
        self.validator = validator
        super().__init__(f"Unknown badge validator: {validator}")


class CatalogError(PromptHubError):
    """The badge catalog failed its load-time checks."""


class InvalidFilterCombinationError(PromptHubError):
    """A leaderboard query is missing the filter value its type requires."""
