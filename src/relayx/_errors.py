"""RelayX error hierarchy.

Every raised relayx error inherits from RelayError. API misuse errors also
inherit from the builtin they specialise so callers can catch either.
"""


class RelayError(Exception):
    """Base error for all relayx operations."""


class InvalidCallbackError(RelayError, TypeError):
    """A listener was registered without a callable callback."""


class InvalidDispositionError(RelayError, TypeError):
    """A value that is not a future was given where a pending result was expected."""


class ResolutionError(RelayError, LookupError):
    """Field resolution failed and the observable runs with strict_debug."""


class ResolutionWarning(UserWarning):
    """Field resolution failed; delivered to the observable's warning sink."""
