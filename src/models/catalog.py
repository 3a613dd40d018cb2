# src/models/catalog.py

"""Catalog data models: battery classes, batteries, and price history."""

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True)
class BatteryClass:
    """Capacity and power ratings shared by a group of batteries."""

    id: int
    short_name: str
    capacity_kwh: float | None = None
    cpower_w: float | None = None     # continuous output
    ppower_w: float | None = None     # peak output


@dataclass
class CatalogEntity:
    """A tracked product as stored in the catalog."""

    id: int
    name: str
    supplier: str
    url: str = ""
    current_price: float | None = None
    updated_at: datetime | None = None
    class_id: int | None = None
    battery_class: BatteryClass | None = None


@dataclass(frozen=True)
class PriceHistoryRecord:
    """One immutable price observation for a catalog entity."""

    entity_id: int
    price: float
    scraped_at: datetime
