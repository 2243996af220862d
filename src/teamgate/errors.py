"""Error taxonomy shared by every teamgate module.

All of these are programmer errors: bad input to a decision function or a
malformed catalog file. Policy rejections are never raised, they are
returned as values (``False`` or an invalid ``TransitionResult``).
"""

from __future__ import annotations


class TeamgateError(Exception):
    """Base class for all teamgate errors."""


class UnknownKeyError(TeamgateError, KeyError):
    """Raised for a tier, role, status, feature or permission outside its closed set."""

    def __str__(self) -> str:
        # KeyError would repr() the message
        return str(self.args[0]) if self.args else ""


class InvalidArgumentError(TeamgateError, ValueError):
    """Raised when an argument has the right name but an unusable value.

    Examples: a negative resource count, or a boolean capability check
    against a numeric cap.
    """


class CatalogError(TeamgateError):
    """Raised when a tier or role catalog cannot be loaded or violates its invariants."""


class ConfigError(TeamgateError):
    """Raised when ``teamgate.yaml`` is missing, unreadable or invalid."""
