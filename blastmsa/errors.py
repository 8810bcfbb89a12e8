# blastmsa/errors.py
from __future__ import annotations

__all__ = [
    "BlastMsaError",
    "DataSourceError",
    "ParseError",
    "AlignmentError",
    "CanceledError",
]


class BlastMsaError(Exception):
    """Base class for errors raised by this package."""


class DataSourceError(BlastMsaError, IOError):
    """Fatal problem with the upstream reads/matches; aborts the whole pass."""


class ParseError(BlastMsaError, ValueError):
    """A required marker or token is missing from a match text, or its content is unsupported."""


class AlignmentError(BlastMsaError, ValueError):
    """Coordinates of a match do not fit the read (or reference) they refer to."""


class CanceledError(BlastMsaError):
    """Raised by a progress listener when the user asked to stop."""
