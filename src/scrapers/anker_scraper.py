# src/scrapers/anker_scraper.py

"""Scraper for the Anker SOLIX F2000 via the store's coupon pricing API."""

from src.scrapers.api_scraper import StructuredApiScraper


class AnkerScraper(StructuredApiScraper):
    """Anker SOLIX F2000 price from the Shopify coupons endpoint.

    The product page renders prices client-side; the JSON endpoint it
    calls lists every F2000 bundle under ``data.f2000``.
    """

    API_URL = (
        "https://www.ankersolix.com/api/multipass/shopifyservices/"
        "coupons/by_products?handles%5B%5D=f2000%2Cf2000-expansion-battery"
        "%2Cf2000-home-backup-kit%2Cf2000-expansion-battery-home-backup-kit"
        "&shopify_domain=ankersolix-us.myshopify.com"
    )
    REFERER = "https://www.ankersolix.com/products/f2000?variant=49702419202378"
    DATA_PATH = ("data", "f2000")

    VARIANT_FIELD = "variant_shopify_id"
    VARIANT_ID = 49702419202378
    SKU_FIELD = "sku"
    SKU = "A1780112"

    DISCOUNT_FIELD = "variant_price4wscode"
    REGULAR_FIELD = "variant_price"

    def __init__(self) -> None:
        super().__init__("anker")
