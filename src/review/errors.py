"""Errors surfaced by the review item service."""

from __future__ import annotations


class ReviewItemError(Exception):
    """Base class for structured review item errors."""

    code = "error"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class InvalidArgumentError(ReviewItemError):
    """Malformed input rejected before any store mutation."""

    code = "invalid_argument"


class NotFoundError(ReviewItemError):
    """The item does not exist or belongs to another user."""

    code = "not_found"

    def __init__(self, item_id: int) -> None:
        super().__init__(f"Spaced repetition item {item_id} not found.")
        self.item_id = item_id


class ConflictError(ReviewItemError):
    """A concurrent review kept winning the race; the caller should retry."""

    code = "conflict"


class InternalError(ReviewItemError):
    """Unexpected failure of the underlying store."""

    code = "internal"
