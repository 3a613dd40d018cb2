# src/config/settings.py

"""Central configuration for the battery price tracker."""

import os
from pathlib import Path

from curl_cffi.requests import BrowserTypeLiteral
from dotenv import load_dotenv

load_dotenv()


def _env_flag(name: str, default: bool) -> bool:
    """Read a boolean flag from the environment."""
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in ("1", "true", "yes", "on")


class Settings:
    """Central configuration for the battery price tracker."""

    # --- Network ---
    REQUEST_TIMEOUT: int = 10           # Seconds before a request times out

    # --- Batch ---
    MAX_CONCURRENCY: int = int(os.getenv("MAX_CONCURRENCY", "4"))
    SUPPLIER_TIMEOUT: float = float(
        os.getenv("SUPPLIER_TIMEOUT", "30")
    )                                   # Whole extract/match/reconcile task
    SKIP_UNCHANGED_HISTORY: bool = _env_flag(
        "SKIP_UNCHANGED_HISTORY", False
    )
    HISTORY_LIMIT: int = 50             # Rows returned by history reads

    # --- Browser Impersonation ---
    IMPERSONATE_BROWSER: BrowserTypeLiteral = "chrome131"
    USER_AGENT: str = (
        "Mozilla/5.0 (Windows NT 10.0; Win64; x64) "
        "AppleWebKit/537.36 (KHTML, like Gecko) "
        "Chrome/131.0.0.0 Safari/537.36"
    )
    DEFAULT_HEADERS: dict[str, str] = {
        "User-Agent": USER_AGENT,
        "Accept": (
            "text/html,application/xhtml+xml,"
            "application/xml;q=0.9,image/avif,"
            "image/webp,image/apng,*/*;q=0.8"
        ),
        "Accept-Language": "en-US,en;q=0.9",
        "sec-ch-ua": (
            '"Google Chrome";v="131", '
            '"Chromium";v="131", '
            '"Not_A Brand";v="24"'
        ),
        "sec-ch-ua-mobile": "?0",
        "sec-ch-ua-platform": '"Windows"',
        "sec-fetch-dest": "document",
        "sec-fetch-mode": "navigate",
        "sec-fetch-site": "none",
        "sec-fetch-user": "?1",
        "Upgrade-Insecure-Requests": "1",
    }
    JSON_HEADERS: dict[str, str] = {
        "User-Agent": USER_AGENT,
        "Accept": "application/json, text/plain, */*",
    }

    # --- Paths ---
    BASE_DIR: Path = Path(__file__).resolve().parent.parent.parent
    SELECTORS_PATH: Path = BASE_DIR / "src" / "config" / "selectors.json"
    DB_PATH: Path = Path(
        os.getenv("PRICE_DB_PATH", str(BASE_DIR / "data" / "prices.db"))
    )
    SEED_PATH: Path = BASE_DIR / "data" / "seed_catalog.json"
    LOGS_DIR: Path = BASE_DIR / "logs"

    # --- Suppliers (batch order) ---
    SUPPLIERS: list[dict[str, str]] = [
        {
            "id": "growatt",
            "label": "Growatt",
            "pattern": "%infinity%2000%pro%",
            "scraper": "src.scrapers.growatt_scraper.GrowattScraper",
        },
        {
            "id": "ecoflow",
            "label": "EcoFlow",
            "pattern": "%delta%3%",
            "scraper": "src.scrapers.ecoflow_scraper.EcoFlowScraper",
        },
        {
            "id": "anker",
            "label": "Anker",
            "pattern": "%solix%f2000%",
            "scraper": "src.scrapers.anker_scraper.AnkerScraper",
        },
    ]
