"""Custom exceptions for the ranking engine, its inputs, and configuration."""

from __future__ import annotations


class PhotoRankerError(Exception):
    """Base exception for all photo ranker errors."""


class InsufficientItemsError(PhotoRankerError):
    """Error when fewer than two items are available for a comparison."""

    def __init__(self, count: int) -> None:
        self.count = count
        super().__init__(f"At least 2 items are required to form a pair, got {count}")


class UnknownParticipantError(PhotoRankerError):
    """Error when a vote references an id that is not in the catalog."""

    def __init__(self, item_id: str) -> None:
        self.item_id = item_id
        super().__init__(f"Unknown item id: {item_id!r}")


class MalformedEventError(PhotoRankerError):
    """Error when a match event fails validation at an ingestion boundary."""

    def __init__(self, reason: str) -> None:
        self.reason = reason
        super().__init__(f"Malformed match event: {reason}")


class CatalogError(PhotoRankerError):
    """Error when a catalog manifest cannot be read or validated."""


class ConfigurationError(PhotoRankerError):
    """Base exception for configuration errors with optional suggestions."""

    def __init__(self, message: str, suggestion: str | None = None) -> None:
        self.message = message
        self.suggestion = suggestion
        super().__init__(self._format_message())

    def _format_message(self) -> str:
        msg = f"[Configuration Error] {self.message}"
        if self.suggestion:
            msg += f"\n[Suggestion] {self.suggestion}"
        return msg


class MissingFieldError(ConfigurationError):
    """Error when a required configuration field is missing."""

    def __init__(self, field: str, config_path: str) -> None:
        super().__init__(
            f"Missing required field '{field}' in {config_path}",
            "Add the field to your configuration.",
        )


class ValidationError(ConfigurationError):
    """Error when configuration validation fails."""

    def __init__(self, field: str, reason: str) -> None:
        super().__init__(
            f"Invalid value for '{field}'",
            f"{reason}",
        )
