# src/models/errors.py

"""Exceptions raised inside the acquisition pipeline.

None of these escape a batch run: the orchestrator turns them into a
failed ``SupplierOutcome`` whose reason is ``str(exc)``.
"""


class PriceTrackerError(Exception):
    """Base class for all pipeline errors."""


class NetworkError(PriceTrackerError):
    """Timeout, connection error, or non-2xx response."""


class ExtractionError(PriceTrackerError):
    """Expected field or selector absent, or value not numeric."""


class MatchError(PriceTrackerError):
    """No catalog entity matches a supplier's name pattern."""


class PersistenceError(PriceTrackerError):
    """A storage read or write failed."""
