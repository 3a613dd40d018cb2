# src/scrapers/api_scraper.py

"""Scraper for suppliers that expose product pricing as JSON."""

import math
from typing import Any

from src.models.errors import ExtractionError
from src.scrapers.base_scraper import BaseScraper


def _to_price(value: Any) -> float | None:
    """Coerce a JSON price field to a finite, non-negative float."""
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, str) and not value.strip():
        return None
    try:
        price = float(value)
    except (TypeError, ValueError):
        return None
    if not math.isfinite(price) or price < 0:
        return None
    return price


class StructuredApiScraper(BaseScraper):
    """Reads a price from a known JSON shape.

    Subclasses fill in the endpoint and the shape: ``DATA_PATH`` leads
    to an array of variants, the variant is picked by two identifying
    fields, and ``DISCOUNT_FIELD`` is preferred over ``REGULAR_FIELD``.
    """

    API_URL: str = ""
    REFERER: str = ""
    DATA_PATH: tuple[str, ...] = ("data",)

    VARIANT_FIELD: str = "variant_id"
    VARIANT_ID: int = 0
    SKU_FIELD: str = "sku"
    SKU: str = ""

    DISCOUNT_FIELD: str = "sale_price"
    REGULAR_FIELD: str = "price"

    @property
    def target_url(self) -> str:
        return self.API_URL

    def _headers(self) -> dict[str, str]:
        headers = {**self.settings.JSON_HEADERS}
        if self.REFERER:
            headers["Referer"] = self.REFERER
        return headers

    def _variants(self, payload: Any) -> list[dict[str, Any]]:
        """Walk ``DATA_PATH`` down to the variant array."""
        node = payload
        for key in self.DATA_PATH:
            if not isinstance(node, dict) or key not in node:
                raise ExtractionError("no data in response")
            node = node[key]
        if not isinstance(node, list):
            raise ExtractionError("no data in response")
        return [item for item in node if isinstance(item, dict)]

    def find_variant(
        self, variants: list[dict[str, Any]],
    ) -> dict[str, Any]:
        """Return the first variant matching both identifying fields."""
        for item in variants:
            if (
                item.get(self.VARIANT_FIELD) == self.VARIANT_ID
                and item.get(self.SKU_FIELD) == self.SKU
            ):
                return item

        self.logger.warning(
            "[%s] Target variant not found (%s=%s, %s=%s); available: %s",
            self.source_name,
            self.VARIANT_FIELD,
            self.VARIANT_ID,
            self.SKU_FIELD,
            self.SKU,
            ", ".join(
                f"{v.get(self.SKU_FIELD)}/{v.get(self.VARIANT_FIELD)}"
                for v in variants
            ) or "none",
        )
        raise ExtractionError("target variant not found")

    def select_price(
        self, variant: dict[str, Any],
    ) -> tuple[float, str]:
        """Prefer the discounted price, fall back to the regular one.

        A zero discounted price means no active coupon.
        """
        sale = _to_price(variant.get(self.DISCOUNT_FIELD))
        if sale:
            return sale, f"API: sale price ({self.DISCOUNT_FIELD})"

        regular = _to_price(variant.get(self.REGULAR_FIELD))
        if regular is not None:
            return regular, f"API: regular price ({self.REGULAR_FIELD})"

        self.logger.warning(
            "[%s] No valid price; price fields present: %s",
            self.source_name,
            [k for k in variant if "price" in k.lower()],
        )
        raise ExtractionError("no valid price")

    def _extract_price(self) -> tuple[float, str]:
        resp = self._fetch_get(self.API_URL, self._headers())
        try:
            payload = resp.json()
        except ValueError as exc:
            raise ExtractionError(
                "response is not valid JSON"
            ) from exc

        variants = self._variants(payload)
        self.logger.debug(
            "[%s] Found %d variants", self.source_name, len(variants)
        )
        variant = self.find_variant(variants)
        return self.select_price(variant)
