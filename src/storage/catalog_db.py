# src/storage/catalog_db.py

"""SQLite-backed catalog of tracked batteries and their price history."""

import json
import logging
import sqlite3
import threading
from datetime import datetime
from pathlib import Path
from typing import Any, Protocol

from src.config.settings import Settings
from src.models.catalog import (
    BatteryClass,
    CatalogEntity,
    PriceHistoryRecord,
)
from src.models.errors import PersistenceError

logger = logging.getLogger("price_tracker.catalog_db")

_SCHEMA = """\
CREATE TABLE IF NOT EXISTS battery_classes (
    id           INTEGER PRIMARY KEY AUTOINCREMENT,
    short_name   TEXT    NOT NULL UNIQUE,
    capacity_kwh REAL,
    cpower_w     REAL,
    ppower_w     REAL
);

CREATE TABLE IF NOT EXISTS batteries (
    id            INTEGER PRIMARY KEY AUTOINCREMENT,
    name          TEXT    NOT NULL UNIQUE,
    supplier      TEXT    NOT NULL,
    url           TEXT    NOT NULL DEFAULT '',
    current_price REAL    CHECK (current_price IS NULL OR current_price >= 0),
    updated_at    TEXT,
    class_id      INTEGER REFERENCES battery_classes(id)
);

CREATE TABLE IF NOT EXISTS price_history (
    id         INTEGER PRIMARY KEY AUTOINCREMENT,
    battery_id INTEGER NOT NULL REFERENCES batteries(id),
    price      REAL    NOT NULL,
    scraped_at TEXT    NOT NULL
);

CREATE INDEX IF NOT EXISTS idx_history_battery_date
    ON price_history(battery_id, scraped_at);
"""

_ENTITY_COLUMNS = (
    "b.id, b.name, b.supplier, b.url, b.current_price, "
    "b.updated_at, b.class_id"
)


class CatalogStore(Protocol):
    """The storage operations the acquisition pipeline relies on."""

    def find_entities_by_name_pattern(
        self, pattern: str,
    ) -> list[CatalogEntity]: ...

    def update_entity_price(
        self, entity_id: int, price: float, updated_at: datetime,
    ) -> CatalogEntity: ...

    def append_history(
        self, entity_id: int, price: float, scraped_at: datetime,
    ) -> None: ...

    def read_history(
        self, entity_id: int, limit: int = ...,
    ) -> list[PriceHistoryRecord]: ...

    def list_entities_with_class_info(self) -> list[CatalogEntity]: ...


def _parse_ts(raw: str | None) -> datetime | None:
    return datetime.fromisoformat(raw) if raw else None


def _row_to_entity(row: tuple[Any, ...]) -> CatalogEntity:
    return CatalogEntity(
        id=row[0],
        name=row[1],
        supplier=row[2],
        url=row[3],
        current_price=row[4],
        updated_at=_parse_ts(row[5]),
        class_id=row[6],
    )


def _validate_seed(
    data: Any, seed_path: Path,
) -> tuple[list[dict[str, Any]], list[dict[str, Any]]]:
    """Check the seed shape up front so a bad file writes nothing."""
    if not isinstance(data, dict):
        raise PersistenceError(
            f"malformed seed file {seed_path}: top level must be an object"
        )
    classes = data.get("classes", [])
    batteries = data.get("batteries", [])
    if not isinstance(classes, list) or not isinstance(batteries, list):
        raise PersistenceError(
            f"malformed seed file {seed_path}: "
            "'classes' and 'batteries' must be lists"
        )
    for i, cls in enumerate(classes):
        if not isinstance(cls, dict) or not cls.get("short_name"):
            raise PersistenceError(
                f"malformed seed file {seed_path}: "
                f"class #{i} has no short_name"
            )
    for i, battery in enumerate(batteries):
        if not isinstance(battery, dict):
            raise PersistenceError(
                f"malformed seed file {seed_path}: "
                f"battery #{i} is not an object"
            )
        missing = [k for k in ("name", "supplier") if not battery.get(k)]
        if missing:
            raise PersistenceError(
                f"malformed seed file {seed_path}: "
                f"battery #{i} is missing {', '.join(missing)}"
            )
    return classes, batteries


class CatalogDB:
    """SQLite implementation of :class:`CatalogStore`.

    One connection is shared by the batch worker threads; every
    statement runs under a lock, which gives the per-entity atomic
    writes the pipeline assumes.  There is no transaction spanning a
    price update and its history row.
    """

    def __init__(
        self, db_path: Path | None = None,
    ) -> None:
        path = db_path or Settings.DB_PATH
        path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.Lock()
        self._conn = sqlite3.connect(
            str(path), check_same_thread=False,
        )
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.execute("PRAGMA foreign_keys=ON")
        self._conn.executescript(_SCHEMA)
        logger.debug("CatalogDB opened at %s", path)

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()

    # ── Matching ─────────────────────────────────────────

    def find_entities_by_name_pattern(
        self, pattern: str,
    ) -> list[CatalogEntity]:
        """Return entities whose name is LIKE *pattern*, by name.

        SQLite's LIKE is case-insensitive for ASCII, so
        ``'%delta%3%'`` matches ``'EcoFlow DELTA 3'``.
        """
        try:
            with self._lock:
                rows = self._conn.execute(
                    f"SELECT {_ENTITY_COLUMNS} FROM batteries b "
                    "WHERE b.name LIKE ? "
                    "ORDER BY b.name, b.id",
                    (pattern,),
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"catalog lookup failed: {exc}"
            ) from exc
        return [_row_to_entity(r) for r in rows]

    def get_entity(self, entity_id: int) -> CatalogEntity | None:
        """Fetch a single entity by id."""
        with self._lock:
            row = self._conn.execute(
                f"SELECT {_ENTITY_COLUMNS} FROM batteries b "
                "WHERE b.id = ?",
                (entity_id,),
            ).fetchone()
        return _row_to_entity(row) if row else None

    # ── Writes ───────────────────────────────────────────

    def update_entity_price(
        self, entity_id: int, price: float, updated_at: datetime,
    ) -> CatalogEntity:
        """Set the current price and timestamp; return the new row."""
        try:
            with self._lock:
                cur = self._conn.execute(
                    "UPDATE batteries "
                    "SET current_price = ?, updated_at = ? "
                    "WHERE id = ?",
                    (price, updated_at.isoformat(), entity_id),
                )
                self._conn.commit()
                updated = cur.rowcount
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"price update failed: {exc}"
            ) from exc
        if updated == 0:
            raise PersistenceError(
                f"price update failed: no battery with id {entity_id}"
            )
        entity = self.get_entity(entity_id)
        if entity is None:
            raise PersistenceError(
                f"price update failed: battery {entity_id} vanished"
            )
        return entity

    def append_history(
        self, entity_id: int, price: float, scraped_at: datetime,
    ) -> None:
        """Insert one price observation.  Rows are never modified."""
        try:
            with self._lock:
                self._conn.execute(
                    "INSERT INTO price_history "
                    "(battery_id, price, scraped_at) VALUES (?, ?, ?)",
                    (entity_id, price, scraped_at.isoformat()),
                )
                self._conn.commit()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"history append failed: {exc}"
            ) from exc

    # ── Reads ────────────────────────────────────────────

    def read_history(
        self, entity_id: int, limit: int = Settings.HISTORY_LIMIT,
    ) -> list[PriceHistoryRecord]:
        """Return up to *limit* observations, most recent first."""
        try:
            with self._lock:
                rows = self._conn.execute(
                    "SELECT battery_id, price, scraped_at "
                    "FROM price_history WHERE battery_id = ? "
                    "ORDER BY scraped_at DESC, id DESC LIMIT ?",
                    (entity_id, limit),
                ).fetchall()
        except sqlite3.Error as exc:
            raise PersistenceError(
                f"history read failed: {exc}"
            ) from exc
        return [
            PriceHistoryRecord(
                entity_id=r[0],
                price=r[1],
                scraped_at=datetime.fromisoformat(r[2]),
            )
            for r in rows
        ]

    def list_entities_with_class_info(self) -> list[CatalogEntity]:
        """All batteries by name, each with its class record if any."""
        with self._lock:
            rows = self._conn.execute(
                f"SELECT {_ENTITY_COLUMNS}, "
                "       c.id, c.short_name, c.capacity_kwh, "
                "       c.cpower_w, c.ppower_w "
                "FROM batteries b "
                "LEFT JOIN battery_classes c ON c.id = b.class_id "
                "ORDER BY b.name",
            ).fetchall()
        entities: list[CatalogEntity] = []
        for r in rows:
            entity = _row_to_entity(r[:7])
            if r[7] is not None:
                entity.battery_class = BatteryClass(
                    id=r[7],
                    short_name=r[8],
                    capacity_kwh=r[9],
                    cpower_w=r[10],
                    ppower_w=r[11],
                )
            entities.append(entity)
        return entities

    # ── Seeding ──────────────────────────────────────────

    def add_class(
        self,
        short_name: str,
        capacity_kwh: float | None = None,
        cpower_w: float | None = None,
        ppower_w: float | None = None,
    ) -> int:
        """Insert or update a battery class; return its id."""
        with self._lock:
            self._conn.execute(
                "INSERT INTO battery_classes "
                "(short_name, capacity_kwh, cpower_w, ppower_w) "
                "VALUES (?, ?, ?, ?) "
                "ON CONFLICT(short_name) DO UPDATE SET "
                "capacity_kwh=excluded.capacity_kwh, "
                "cpower_w=excluded.cpower_w, "
                "ppower_w=excluded.ppower_w",
                (short_name, capacity_kwh, cpower_w, ppower_w),
            )
            class_id: int = self._conn.execute(
                "SELECT id FROM battery_classes WHERE short_name = ?",
                (short_name,),
            ).fetchone()[0]
            self._conn.commit()
        return class_id

    def add_entity(
        self,
        name: str,
        supplier: str,
        url: str = "",
        current_price: float | None = None,
        class_id: int | None = None,
    ) -> int:
        """Insert a battery (or refresh its metadata); return its id.

        An existing battery keeps its current price.
        """
        with self._lock:
            self._conn.execute(
                "INSERT INTO batteries "
                "(name, supplier, url, current_price, class_id) "
                "VALUES (?, ?, ?, ?, ?) "
                "ON CONFLICT(name) DO UPDATE SET "
                "supplier=excluded.supplier, url=excluded.url, "
                "class_id=excluded.class_id",
                (name, supplier, url, current_price, class_id),
            )
            entity_id: int = self._conn.execute(
                "SELECT id FROM batteries WHERE name = ?",
                (name,),
            ).fetchone()[0]
            self._conn.commit()
        return entity_id

    def import_seed(self, seed_path: Path) -> int:
        """Load classes and batteries from a JSON seed file.

        Expected shape::

            {"classes": [{"short_name": ..., "capacity_kwh": ...}],
             "batteries": [{"name": ..., "supplier": ..., "url": ...,
                            "class": "<short_name>"}]}

        Returns the number of batteries loaded.
        """
        try:
            with open(seed_path, encoding="utf-8") as f:
                data = json.load(f)
        except (json.JSONDecodeError, OSError) as exc:
            raise PersistenceError(
                f"cannot read seed file {seed_path}: {exc}"
            ) from exc
        classes, batteries = _validate_seed(data, seed_path)

        class_ids: dict[str, int] = {}
        for cls in classes:
            class_ids[cls["short_name"]] = self.add_class(
                cls["short_name"],
                cls.get("capacity_kwh"),
                cls.get("cpower_w"),
                cls.get("ppower_w"),
            )

        count = 0
        for battery in batteries:
            class_name = battery.get("class")
            self.add_entity(
                name=battery["name"],
                supplier=battery["supplier"],
                url=battery.get("url", ""),
                current_price=battery.get("current_price"),
                class_id=class_ids.get(class_name) if class_name else None,
            )
            count += 1

        logger.info(
            "Seeded %d classes and %d batteries from %s",
            len(class_ids),
            count,
            seed_path,
        )
        return count
