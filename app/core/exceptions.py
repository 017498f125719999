# app/core/exceptions.py
"""
Error taxonomy of the statistics engine.

The concrete classes also subclass the matching builtin so callers that
only know about `ValueError` / `PermissionError` keep working.
"""


class StatsError(Exception):
    """Base class for all caller-facing statistics errors."""


class InvalidParameterError(StatsError, ValueError):
    """
    A caller-supplied parameter is malformed or out of range
    (period, role, days, date range). Raised before any repository call.
    """


class ForbiddenError(StatsError, PermissionError):
    """
    The requester asked for data it is not allowed to see, e.g. a USER
    naming another user's id. Raised before any repository call.
    """
