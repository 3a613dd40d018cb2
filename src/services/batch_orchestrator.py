# src/services/batch_orchestrator.py

"""Runs extract → match → reconcile for every supplier and summarises."""

import asyncio
import importlib
import logging
from dataclasses import dataclass, field
from typing import Any, Protocol

from src.config.settings import Settings
from src.models.errors import PriceTrackerError
from src.models.extraction import ExtractionFailure, ExtractionResult
from src.services.catalog_matcher import CatalogMatcher
from src.services.reconciler import Reconciler
from src.storage.catalog_db import CatalogStore

logger = logging.getLogger("price_tracker.orchestrator")


class Extractor(Protocol):
    """Anything that can produce an ExtractionResult on demand."""

    def extract(self) -> ExtractionResult: ...


@dataclass
class SupplierSpec:
    """One configured supplier.

    Either ``extractor`` is given directly, or ``scraper_path`` names
    the class to instantiate inside the worker.
    """

    label: str
    pattern: str
    extractor: Extractor | None = None
    scraper_path: str = ""


@dataclass(frozen=True)
class SupplierOutcome:
    """Result of one supplier in one batch run.  Not persisted."""

    supplier: str
    ok: bool
    new_price: float | None = None
    old_price: float | None = None
    delta: float | None = None
    reason: str = ""
    entity_name: str = ""
    strategy_label: str = ""
    history_error: str = ""

    @classmethod
    def failure(cls, supplier: str, reason: str) -> "SupplierOutcome":
        return cls(supplier=supplier, ok=False, reason=reason)

    def to_dict(self) -> dict[str, object]:
        if not self.ok:
            return {
                "supplier": self.supplier,
                "success": False,
                "reason": self.reason,
            }
        return {
            "supplier": self.supplier,
            "success": True,
            "battery": self.entity_name,
            "old_price": self.old_price,
            "new_price": self.new_price,
            "delta": self.delta,
            "strategy": self.strategy_label,
            "history_error": self.history_error or None,
        }


@dataclass
class BatchSummary:
    """Aggregate of one batch run, one outcome per configured supplier."""

    outcomes: list[SupplierOutcome] = field(
        default_factory=lambda: list[SupplierOutcome]()
    )

    @property
    def total(self) -> int:
        return len(self.outcomes)

    @property
    def success_count(self) -> int:
        return sum(1 for o in self.outcomes if o.ok)

    @property
    def failure_count(self) -> int:
        return self.total - self.success_count

    def to_dict(self) -> dict[str, object]:
        return {
            "total": self.total,
            "successful": self.success_count,
            "failed": self.failure_count,
            "results": [o.to_dict() for o in self.outcomes],
        }

    def summary_lines(self) -> list[str]:
        """Human-readable summary, successes first."""
        lines: list[str] = []
        for o in self.outcomes:
            if not o.ok:
                continue
            change = (
                f" ({o.delta:+.2f})"
                if o.delta is not None
                else ""
            )
            lines.append(f"{o.supplier}: ${o.new_price:,.2f}{change}")
        for o in self.outcomes:
            if not o.ok:
                lines.append(f"{o.supplier}: {o.reason}")
        lines.append(
            f"Success: {self.success_count}/{self.total} suppliers updated"
        )
        return lines


def _load_scraper_class(dotted_path: str) -> type[Any]:
    """Dynamically import a scraper class from its dotted module path."""
    module_path, class_name = dotted_path.rsplit(".", 1)
    module = importlib.import_module(module_path)
    cls: type[Any] = getattr(module, class_name)
    return cls


def suppliers_from_settings(
    entries: list[dict[str, str]] | None = None,
) -> list[SupplierSpec]:
    """Build SupplierSpecs from the ``Settings.SUPPLIERS`` registry."""
    return [
        SupplierSpec(
            label=entry["label"],
            pattern=entry["pattern"],
            scraper_path=entry["scraper"],
        )
        for entry in (entries or Settings.SUPPLIERS)
    ]


class BatchOrchestrator:
    """Runs every supplier's pipeline concurrently and joins the results.

    Each supplier runs in its own worker thread, at most
    ``max_concurrency`` at a time, under its own timeout.  A slow or
    failing supplier never cancels or fails its siblings.
    """

    def __init__(
        self,
        store: CatalogStore,
        max_concurrency: int | None = None,
        supplier_timeout: float | None = None,
        skip_unchanged_history: bool | None = None,
    ) -> None:
        self.settings = Settings()
        self._matcher = CatalogMatcher(store)
        self._reconciler = Reconciler(
            store,
            skip_unchanged_history=(
                self.settings.SKIP_UNCHANGED_HISTORY
                if skip_unchanged_history is None
                else skip_unchanged_history
            ),
        )
        self._max_concurrency = max(
            1, max_concurrency or self.settings.MAX_CONCURRENCY
        )
        self._supplier_timeout = (
            supplier_timeout or self.settings.SUPPLIER_TIMEOUT
        )

    # ── Per-supplier pipeline (runs in a worker thread) ──

    def _extract(self, spec: SupplierSpec) -> ExtractionResult:
        extractor = spec.extractor
        if extractor is None:
            extractor = _load_scraper_class(spec.scraper_path)()
        return extractor.extract()

    def process_supplier(self, spec: SupplierSpec) -> SupplierOutcome:
        """Extract, match and reconcile one supplier.  Never raises."""
        logger.info("Starting %s price update", spec.label)
        try:
            result = self._extract(spec)
            if isinstance(result, ExtractionFailure):
                logger.warning(
                    "%s extraction failed: %s", spec.label, result.reason
                )
                return SupplierOutcome.failure(spec.label, result.reason)

            entity = self._matcher.match(spec.pattern)
            logger.info(
                "%s matched '%s' (current: %s)",
                spec.label,
                entity.name,
                entity.current_price,
            )

            outcome = self._reconciler.reconcile(
                entity, result.price, result.observed_at
            )
        except PriceTrackerError as exc:
            logger.warning("%s failed: %s", spec.label, exc)
            return SupplierOutcome.failure(spec.label, str(exc))
        except Exception as exc:
            logger.error(
                "%s failed unexpectedly: %s",
                spec.label,
                exc,
                exc_info=True,
            )
            return SupplierOutcome.failure(
                spec.label, f"unexpected error: {exc}"
            )

        if not outcome.ok:
            return SupplierOutcome.failure(
                spec.label, outcome.price_update.error
            )

        logger.info(
            "%s: updated '%s' to %.2f (delta %s)",
            spec.label,
            entity.name,
            outcome.new_price,
            outcome.delta,
        )
        return SupplierOutcome(
            supplier=spec.label,
            ok=True,
            new_price=outcome.new_price,
            old_price=outcome.old_price,
            delta=outcome.delta,
            entity_name=entity.name,
            strategy_label=result.strategy_label,
            history_error=outcome.history_append.error,
        )

    # ── Batch ────────────────────────────────────────────

    async def _run_one(
        self,
        spec: SupplierSpec,
        semaphore: asyncio.Semaphore,
    ) -> SupplierOutcome:
        async with semaphore:
            try:
                return await asyncio.wait_for(
                    asyncio.to_thread(self.process_supplier, spec),
                    timeout=self._supplier_timeout,
                )
            except asyncio.TimeoutError:
                logger.error(
                    "%s timed out after %.0fs",
                    spec.label,
                    self._supplier_timeout,
                )
                return SupplierOutcome.failure(
                    spec.label,
                    f"timed out after {self._supplier_timeout:.0f}s",
                )

    async def run_batch(
        self, suppliers: list[SupplierSpec] | None = None,
    ) -> BatchSummary:
        """Run every supplier and return one outcome for each, in order."""
        specs = suppliers if suppliers is not None else (
            suppliers_from_settings()
        )
        logger.info(
            "Starting batch for %d suppliers (concurrency %d)",
            len(specs),
            self._max_concurrency,
        )
        semaphore = asyncio.Semaphore(self._max_concurrency)
        results = await asyncio.gather(
            *(self._run_one(spec, semaphore) for spec in specs),
            return_exceptions=True,
        )

        summary = BatchSummary()
        for spec, result in zip(specs, results):
            if isinstance(result, SupplierOutcome):
                summary.outcomes.append(result)
            else:
                logger.error(
                    "%s task error: %s",
                    spec.label,
                    result,
                    exc_info=result,
                )
                summary.outcomes.append(
                    SupplierOutcome.failure(spec.label, str(result))
                )

        for line in summary.summary_lines():
            logger.info("Batch summary: %s", line)
        return summary
