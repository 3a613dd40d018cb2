# src/scrapers/base_scraper.py

"""Abstract base class for all supplier price scrapers."""

import logging
from abc import ABC, abstractmethod
from datetime import datetime

from curl_cffi import requests as curl_requests

from src.config.settings import Settings
from src.models.errors import NetworkError, PriceTrackerError
from src.models.extraction import (
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
)


class BaseScraper(ABC):
    """Fetches one fixed target and turns it into an ExtractionResult.

    Subclasses implement :meth:`_extract_price`, which either returns a
    ``(price, strategy_label)`` pair or raises a ``PriceTrackerError``.
    :meth:`extract` never raises.
    """

    def __init__(self, source_name: str) -> None:
        self.source_name = source_name
        self.logger = logging.getLogger(
            f"price_tracker.{source_name}"
        )
        self.settings = Settings()
        self.session = curl_requests.Session(
            impersonate=self.settings.IMPERSONATE_BROWSER
        )
        self._request_timeout: int = (
            self.settings.REQUEST_TIMEOUT
        )

    def _fetch_get(
        self,
        url: str,
        headers: dict[str, str],
    ) -> curl_requests.Response:
        """Single GET with the configured timeout.  No retries."""
        self.logger.debug(
            "[%s] GET %s (timeout %ss)",
            self.source_name,
            url,
            self._request_timeout,
        )
        try:
            resp = self.session.get(
                url,
                headers=headers,
                timeout=self._request_timeout,
            )
        except Exception as exc:
            self.logger.warning(
                "[%s] Request error: %s",
                self.source_name,
                exc,
                exc_info=True,
            )
            raise NetworkError(f"request failed: {exc}") from exc

        if not 200 <= resp.status_code < 300:
            self.logger.warning(
                "[%s] HTTP %d from %s",
                self.source_name,
                resp.status_code,
                url,
            )
            raise NetworkError(f"HTTP {resp.status_code}")

        self.logger.info(
            "[%s] Fetched %s (%d)",
            self.source_name,
            url,
            resp.status_code,
        )
        return resp

    def extract(self) -> ExtractionResult:
        """Fetch the target and extract a price, never raising."""
        try:
            price, label = self._extract_price()
        except PriceTrackerError as exc:
            self.logger.error(
                "[%s] Extraction failed: %s", self.source_name, exc
            )
            return ExtractionFailure(reason=str(exc))
        except Exception as exc:
            self.logger.error(
                "[%s] Unexpected extraction error: %s",
                self.source_name,
                exc,
                exc_info=True,
            )
            return ExtractionFailure(
                reason=f"unexpected error: {exc}"
            )

        self.logger.info(
            "[%s] Extracted price %.2f via %s",
            self.source_name,
            price,
            label,
        )
        return ExtractionSuccess(
            price=price,
            strategy_label=label,
            observed_at=datetime.now(),
        )

    @property
    @abstractmethod
    def target_url(self) -> str:
        """Return the fixed URL this scraper fetches."""
        ...

    @abstractmethod
    def _extract_price(self) -> tuple[float, str]:
        """Return ``(price, strategy_label)`` or raise."""
        ...
