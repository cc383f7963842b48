"""
PA Pedia - Errors
==================
Failure kinds raised while resolving unit records.
"""


class PediaError(Exception):
    """Base class for comparison engine errors."""


class UnitNotFoundError(PediaError):
    """Raised when a faction or unit id does not resolve."""


class TransientFetchError(PediaError):
    """Raised when faction data could not be read. Retrying may succeed."""


class MalformedRecordError(PediaError):
    """Raised when a unit record lacks the stat blocks needed for comparison."""
