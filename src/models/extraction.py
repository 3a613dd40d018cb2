# src/models/extraction.py

"""Outcome of a single supplier price extraction."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class ExtractionSuccess:
    """A price was found.

    ``strategy_label`` names what produced it: the winning CSS selector
    for page scrapers, or the JSON field for API scrapers.
    """

    price: float
    strategy_label: str
    observed_at: datetime

    @property
    def ok(self) -> bool:
        return True


@dataclass(frozen=True)
class ExtractionFailure:
    """No price could be extracted; ``reason`` is operator-facing."""

    reason: str

    @property
    def ok(self) -> bool:
        return False


ExtractionResult = ExtractionSuccess | ExtractionFailure
