"""Exception types raised by mnemo.

Only validation errors reach callers. Storage and backend failures are
recovered where they happen and degrade the result instead.
"""

from __future__ import annotations


class MnemoError(Exception):
    """Base exception for mnemo."""


class EmptyContentError(MnemoError, ValueError):
    """Memory content was empty or whitespace-only."""

    def __init__(self, message: str = "Memory content cannot be empty") -> None:
        super().__init__(message)


class BackendUnavailable(MnemoError):
    """The embedding/chat backend failed or returned an unusable response."""
