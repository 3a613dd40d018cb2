# src/scrapers/ecoflow_scraper.py

"""Scraper for the EcoFlow DELTA 3 product page (us.ecoflow.com)."""

from src.scrapers.markup_scraper import MarkupScraper


class EcoFlowScraper(MarkupScraper):
    """EcoFlow DELTA 3 list price from the Shopify product page."""

    PRODUCT_URL = (
        "https://us.ecoflow.com/products/"
        "delta-3-portable-power-station?variant=42015827492937"
    )

    def __init__(self) -> None:
        super().__init__("ecoflow", self.PRODUCT_URL)
