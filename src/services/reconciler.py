# src/services/reconciler.py

"""Applies an extracted price to the catalog and the history log."""

import logging
from dataclasses import dataclass
from datetime import datetime

from src.models.catalog import CatalogEntity
from src.models.errors import PersistenceError
from src.storage.catalog_db import CatalogStore

logger = logging.getLogger("price_tracker.reconciler")


@dataclass(frozen=True)
class WriteResult:
    """Outcome of one storage write."""

    ok: bool
    error: str = ""
    skipped: bool = False


@dataclass(frozen=True)
class ReconcileOutcome:
    """Two-phase result: the price update, then the history append.

    ``price_update`` decides success.  ``history_append`` may fail
    while the update stands; the catalog price then has no matching
    history row.
    """

    price_update: WriteResult
    history_append: WriteResult
    new_price: float
    old_price: float | None = None
    entity: CatalogEntity | None = None

    @property
    def ok(self) -> bool:
        return self.price_update.ok

    @property
    def delta(self) -> float | None:
        if self.old_price is None or not self.ok:
            return None
        return round(self.new_price - self.old_price, 2)


class Reconciler:
    """Writes a new current price, then appends it to the history log."""

    def __init__(
        self,
        store: CatalogStore,
        skip_unchanged_history: bool = False,
    ) -> None:
        self._store = store
        self._skip_unchanged = skip_unchanged_history

    def reconcile(
        self,
        entity: CatalogEntity,
        price: float,
        observed_at: datetime,
    ) -> ReconcileOutcome:
        """Update *entity* to *price* and record the observation."""
        old_price = entity.current_price

        try:
            updated = self._store.update_entity_price(
                entity.id, price, datetime.now()
            )
        except Exception as exc:
            logger.error(
                "Price update failed for '%s': %s",
                entity.name,
                exc,
                exc_info=not isinstance(exc, PersistenceError),
            )
            return ReconcileOutcome(
                price_update=WriteResult(
                    ok=False, error="price update failed"
                ),
                history_append=WriteResult(
                    ok=False, error="not attempted", skipped=True
                ),
                new_price=price,
                old_price=old_price,
                entity=entity,
            )

        if self._skip_unchanged and old_price == price:
            logger.info(
                "Price unchanged for '%s' (%.2f), history not appended",
                entity.name,
                price,
            )
            history = WriteResult(ok=True, skipped=True)
        else:
            history = self._append_history(entity, price, observed_at)

        return ReconcileOutcome(
            price_update=WriteResult(ok=True),
            history_append=history,
            new_price=price,
            old_price=old_price,
            entity=updated,
        )

    def _append_history(
        self,
        entity: CatalogEntity,
        price: float,
        observed_at: datetime,
    ) -> WriteResult:
        try:
            self._store.append_history(entity.id, price, observed_at)
        except Exception as exc:
            # Price update already committed; not rolled back
            logger.warning(
                "History append failed for '%s': %s",
                entity.name,
                exc,
                exc_info=not isinstance(exc, PersistenceError),
            )
            return WriteResult(ok=False, error=str(exc))
        return WriteResult(ok=True)
