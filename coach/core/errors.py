"""
Error hierarchy for the coach core.

ValidationError is raised before any write happens. PersistenceError wraps
a failed durable commit; callers must assume the mutation did not happen.
"""

from __future__ import annotations


class CoachError(Exception):
    """Base class for all coach errors."""


class ValidationError(CoachError):
    """Invalid arguments supplied to a core operation."""


class NotFoundError(CoachError):
    """A referenced record does not exist."""


class PersistenceError(CoachError):
    """The store failed to durably commit a mutation."""
