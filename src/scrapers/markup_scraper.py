# src/scrapers/markup_scraper.py

"""Product-page scraper with ordered CSS selector fallback."""

import json
import math
import re
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from bs4 import BeautifulSoup

from src.models.errors import ExtractionError
from src.scrapers.base_scraper import BaseScraper

# Digits with optional thousands separators and optional decimal part
_PRICE_RE = re.compile(r"\d[\d,]*(?:\.\d+)?")

# Currency-looking amounts, used only for failure diagnostics
_AMOUNT_RE = re.compile(r"\$\s?[\d,]+\.?\d*")

# Bot-challenge markers, consulted only after every selector missed
_CHALLENGE_MARKERS: tuple[str, ...] = (
    "cdn-cgi/challenge-platform",
    "cf_chl_opt",
    "challenges.cloudflare.com",
    "cf-turnstile",
)


def parse_price(text: str | None) -> float | None:
    """Parse the first number in *text*, e.g. ``'$1,299.00'`` -> 1299.0.

    Returns ``None`` when the text holds no finite number.
    """
    if not text:
        return None
    match = _PRICE_RE.search(text)
    if not match:
        return None
    try:
        value = float(match.group(0).replace(",", ""))
    except ValueError:
        return None
    if not math.isfinite(value) or value < 0:
        return None
    return value


@dataclass(frozen=True)
class SelectorStrategy:
    """One CSS selector tried against a parsed product page."""

    selector: str

    def try_extract(self, document: BeautifulSoup) -> float | None:
        """Return the price in the first matching element, if any."""
        element = document.select_one(self.selector)
        if element is None:
            return None
        return parse_price(element.get_text().strip())


def load_selectors(
    source_name: str, path: Path,
) -> list[str]:
    """Load the ordered selector list for *source_name*."""
    with open(path, encoding="utf-8") as f:
        all_selectors: dict[str, Any] = json.load(f)
    selectors: list[str] = list(all_selectors.get(source_name, []))
    return selectors


class MarkupScraper(BaseScraper):
    """Scrapes a price out of a supplier's HTML product page.

    Strategies are tried strictly in order and the first one yielding
    a number wins; later strategies are never consulted, even if they
    would also match.
    """

    def __init__(
        self,
        source_name: str,
        url: str,
        selectors: list[str] | None = None,
    ) -> None:
        super().__init__(source_name)
        self._url = url
        if selectors is None:
            selectors = load_selectors(
                source_name, self.settings.SELECTORS_PATH
            )
        self.strategies: list[SelectorStrategy] = [
            SelectorStrategy(s) for s in selectors
        ]

    @property
    def target_url(self) -> str:
        return self._url

    def _get_document(self) -> BeautifulSoup:
        """Fetch and parse the product page."""
        headers: dict[str, str] = {
            **self.settings.DEFAULT_HEADERS,
        }
        resp = self._fetch_get(self._url, headers)
        document = BeautifulSoup(resp.text, "lxml")
        title = document.title.get_text(strip=True) if document.title else ""
        self.logger.debug(
            "[%s] Page title: %s", self.source_name, title
        )
        return document

    def find_price(
        self, document: BeautifulSoup,
    ) -> tuple[float, str] | None:
        """Run the strategies in order against a parsed document."""
        for strategy in self.strategies:
            price = strategy.try_extract(document)
            if price is None:
                self.logger.debug(
                    "[%s] Selector '%s' yielded no price",
                    self.source_name,
                    strategy.selector,
                )
                continue
            self.logger.debug(
                "[%s] Selector '%s' matched %.2f",
                self.source_name,
                strategy.selector,
                price,
            )
            return price, strategy.selector
        return None

    def _log_candidates(self, document: BeautifulSoup) -> None:
        """Log short text nodes that look like prices."""
        for node in document.find_all(string=_AMOUNT_RE):
            text = node.strip()
            if len(text) >= 100:
                continue
            parent = node.parent
            classes = " ".join(parent.get("class", [])) if parent else ""
            self.logger.debug(
                "[%s] Candidate %s.%s: %s",
                self.source_name,
                parent.name if parent else "?",
                classes or "no-class",
                text,
            )

    def _challenge_marker(self, document: BeautifulSoup) -> str | None:
        """Return the first bot-challenge marker in *document*, if any."""
        lower = str(document).lower()
        for marker in _CHALLENGE_MARKERS:
            if marker in lower:
                return marker
        return None

    def _extract_price(self) -> tuple[float, str]:
        document = self._get_document()
        found = self.find_price(document)
        if found is None:
            self.logger.warning(
                "[%s] No price with any of %d selectors: %s",
                self.source_name,
                len(self.strategies),
                ", ".join(s.selector for s in self.strategies),
            )
            self._log_candidates(document)
            marker = self._challenge_marker(document)
            if marker:
                self.logger.warning(
                    "[%s] Page looks like a challenge (marker: '%s')",
                    self.source_name,
                    marker,
                )
                raise ExtractionError(
                    "price not found with any selector "
                    f"(challenge page: {marker})"
                )
            raise ExtractionError("price not found with any selector")
        return found
