"""Exceptions raised by the store and mapped to HTTP statuses by the API."""

from __future__ import annotations


class HelioError(Exception):
    """Base class for helio errors."""


class BookmarkValidationError(HelioError, ValueError):
    """Raised when caller input is malformed (blank url/title, bad body, bad URL)."""

    def __init__(self, message: str) -> None:
        self.message = message
        super().__init__(message)


class BookmarkNotFoundError(HelioError, KeyError):
    """Raised when an operation targets an id that is not in the store."""

    def __init__(self, bookmark_id: str) -> None:
        self.bookmark_id = bookmark_id
        super().__init__(bookmark_id)

    def __str__(self) -> str:
        return f"Bookmark not found: {self.bookmark_id}"
