# src/scrapers/growatt_scraper.py

"""Scraper for the Growatt INFINITY 2000 Pro product page."""

from src.scrapers.markup_scraper import MarkupScraper


class GrowattScraper(MarkupScraper):
    """Growatt INFINITY 2000 Pro price from growattportable.com.

    The page carries a product-specific price id, tried before the
    generic Shopify selectors (see ``selectors.json``).
    """

    PRODUCT_URL = (
        "https://growattportable.com/products/"
        "growatt-infinity-2000-pro-portable-power-station"
    )

    def __init__(self) -> None:
        super().__init__("growatt", self.PRODUCT_URL)
