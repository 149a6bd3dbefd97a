"""Exception hierarchy for pyvictron.

Every error raised by the library derives from :class:`VictronError`, so
callers can use a single ``except VictronError`` around any read.
"""

from __future__ import annotations


class VictronError(Exception):
    """Base exception for all pyvictron errors."""

    pass


class ConfigurationError(VictronError, ValueError):
    """Connection parameters or catalog content are missing or invalid.

    Raised at the boundary, before any I/O is attempted.
    """

    pass


__all__ = [
    "ConfigurationError",
    "VictronError",
]
