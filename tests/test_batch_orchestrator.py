# tests/test_batch_orchestrator.py

"""Tests for BatchOrchestrator failure isolation and reporting."""

import tempfile
import threading
import unittest
from datetime import datetime
from pathlib import Path
from unittest.mock import patch

from src.models.extraction import (
    ExtractionFailure,
    ExtractionResult,
    ExtractionSuccess,
)
from src.services.batch_orchestrator import (
    BatchOrchestrator,
    BatchSummary,
    SupplierOutcome,
    SupplierSpec,
    suppliers_from_settings,
)
from src.storage.catalog_db import CatalogDB

LOAD_PATH = "src.services.batch_orchestrator._load_scraper_class"


class _FixedExtractor:
    """Returns the same canned result on every call."""

    def __init__(self, result: ExtractionResult) -> None:
        self.result = result
        self.calls = 0

    def extract(self) -> ExtractionResult:
        self.calls += 1
        return self.result


class _BrokenExtractor:
    """Violates the never-raise contract."""

    def extract(self) -> ExtractionResult:
        raise RuntimeError("parser exploded")


class _SlowExtractor:
    """Blocks until released, then gives up."""

    def __init__(self) -> None:
        self.release = threading.Event()

    def extract(self) -> ExtractionResult:
        self.release.wait(5)
        return ExtractionFailure("released")


def _priced(price: float) -> _FixedExtractor:
    return _FixedExtractor(
        ExtractionSuccess(
            price=price,
            strategy_label=".price",
            observed_at=datetime(2026, 10, 19, 6, 0, 0),
        )
    )


class TestBatchOrchestrator(unittest.IsolatedAsyncioTestCase):
    """run_batch against a temp catalog with fake extractors."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.mkdtemp()
        self.db = CatalogDB(db_path=Path(self.tmp_dir) / "test.db")
        self.growatt_id = self.db.add_entity(
            "Growatt INFINITY 2000 Pro", "Growatt", current_price=1599.0
        )
        self.ecoflow_id = self.db.add_entity(
            "EcoFlow Delta 3 Portable Power Station", "EcoFlow"
        )
        self.anker_id = self.db.add_entity(
            "Anker SOLIX F2000", "Anker", current_price=1399.0
        )

    def tearDown(self) -> None:
        self.db.close()

    async def test_one_outcome_per_supplier(self) -> None:
        """Every supplier is reported regardless of failures, in order."""
        specs = [
            SupplierSpec("Growatt", "%infinity%2000%pro%", _priced(1499.0)),
            SupplierSpec(
                "EcoFlow",
                "%delta%3%",
                _FixedExtractor(
                    ExtractionFailure("price not found with any selector")
                ),
            ),
            SupplierSpec("Anker", "%solix%f2000%", _BrokenExtractor()),
            SupplierSpec("Jackery", "%explorer%", _priced(999.0)),
        ]
        summary = await BatchOrchestrator(self.db).run_batch(specs)

        self.assertIsInstance(summary, BatchSummary)
        self.assertEqual(summary.total, 4)
        self.assertEqual(
            [o.supplier for o in summary.outcomes],
            ["Growatt", "EcoFlow", "Anker", "Jackery"],
        )
        self.assertEqual(summary.success_count, 1)
        self.assertEqual(summary.failure_count, 3)

        growatt, ecoflow, anker, jackery = summary.outcomes
        self.assertTrue(growatt.ok)
        self.assertEqual(growatt.delta, -100.0)
        self.assertEqual(growatt.strategy_label, ".price")
        self.assertEqual(
            ecoflow.reason, "price not found with any selector"
        )
        self.assertIn("parser exploded", anker.reason)
        self.assertIn("%explorer%", jackery.reason)

    async def test_extraction_failure_writes_nothing(self) -> None:
        specs = [
            SupplierSpec(
                "Anker",
                "%solix%f2000%",
                _FixedExtractor(ExtractionFailure("no valid price")),
            ),
        ]
        await BatchOrchestrator(self.db).run_batch(specs)
        entity = self.db.get_entity(self.anker_id)
        assert entity is not None
        self.assertEqual(entity.current_price, 1399.0)
        self.assertIsNone(entity.updated_at)
        self.assertEqual(self.db.read_history(self.anker_id), [])

    async def test_second_run_unchanged_price(self) -> None:
        """Re-running with the same price: delta 0, one more history row."""
        extractor = _priced(1299.0)
        specs = [SupplierSpec("Anker", "%solix%f2000%", extractor)]
        orchestrator = BatchOrchestrator(
            self.db, skip_unchanged_history=False
        )

        first = await orchestrator.run_batch(specs)
        self.assertEqual(first.outcomes[0].delta, -100.0)
        self.assertEqual(len(self.db.read_history(self.anker_id)), 1)

        second = await orchestrator.run_batch(specs)
        self.assertEqual(second.outcomes[0].delta, 0)
        self.assertEqual(second.outcomes[0].old_price, 1299.0)
        self.assertEqual(len(self.db.read_history(self.anker_id)), 2)
        self.assertEqual(extractor.calls, 2)

    async def test_no_old_price_has_no_delta(self) -> None:
        specs = [SupplierSpec("EcoFlow", "%delta%3%", _priced(849.0))]
        summary = await BatchOrchestrator(self.db).run_batch(specs)
        outcome = summary.outcomes[0]
        self.assertTrue(outcome.ok)
        self.assertIsNone(outcome.old_price)
        self.assertIsNone(outcome.delta)

    async def test_price_update_failure_reported(self) -> None:
        specs = [SupplierSpec("Anker", "%solix%f2000%", _priced(1.0))]
        with patch.object(
            self.db,
            "update_entity_price",
            side_effect=RuntimeError("read-only database"),
        ):
            summary = await BatchOrchestrator(self.db).run_batch(specs)
        self.assertFalse(summary.outcomes[0].ok)
        self.assertEqual(summary.outcomes[0].reason, "price update failed")
        self.assertEqual(self.db.read_history(self.anker_id), [])

    async def test_history_failure_still_success(self) -> None:
        specs = [SupplierSpec("Anker", "%solix%f2000%", _priced(1299.0))]
        with patch.object(
            self.db,
            "append_history",
            side_effect=RuntimeError("disk full"),
        ):
            summary = await BatchOrchestrator(self.db).run_batch(specs)
        outcome = summary.outcomes[0]
        self.assertTrue(outcome.ok)
        self.assertEqual(outcome.history_error, "disk full")

    async def test_slow_supplier_times_out_alone(self) -> None:
        slow = _SlowExtractor()
        specs = [
            SupplierSpec("Slow", "%infinity%", slow),
            SupplierSpec("Anker", "%solix%f2000%", _priced(1299.0)),
        ]
        orchestrator = BatchOrchestrator(
            self.db, max_concurrency=2, supplier_timeout=0.2
        )
        try:
            summary = await orchestrator.run_batch(specs)
        finally:
            slow.release.set()

        slow_outcome, anker = summary.outcomes
        self.assertFalse(slow_outcome.ok)
        self.assertIn("timed out", slow_outcome.reason)
        self.assertTrue(anker.ok)

    async def test_scraper_loaded_from_path(self) -> None:
        extractor = _priced(1499.0)
        specs = [
            SupplierSpec(
                "Growatt",
                "%infinity%2000%pro%",
                scraper_path="fake.FakeScraper",
            )
        ]
        with patch(LOAD_PATH, return_value=lambda: extractor):
            summary = await BatchOrchestrator(self.db).run_batch(specs)
        self.assertTrue(summary.outcomes[0].ok)
        self.assertEqual(extractor.calls, 1)

    async def test_unloadable_scraper_is_a_failure(self) -> None:
        specs = [
            SupplierSpec(
                "Ghost", "%x%", scraper_path="src.nowhere.GhostScraper"
            )
        ]
        summary = await BatchOrchestrator(self.db).run_batch(specs)
        self.assertEqual(summary.total, 1)
        self.assertFalse(summary.outcomes[0].ok)

    async def test_empty_supplier_list(self) -> None:
        summary = await BatchOrchestrator(self.db).run_batch([])
        self.assertEqual(summary.total, 0)
        self.assertEqual(summary.success_count, 0)


class TestBatchSummary(unittest.TestCase):
    """Summary aggregation and rendering."""

    def _summary(self) -> BatchSummary:
        return BatchSummary(outcomes=[
            SupplierOutcome(
                supplier="Growatt",
                ok=True,
                new_price=1499.0,
                old_price=1599.0,
                delta=-100.0,
                entity_name="Growatt INFINITY 2000 Pro",
            ),
            SupplierOutcome.failure("EcoFlow", "HTTP 503"),
            SupplierOutcome(supplier="Anker", ok=True, new_price=1299.0),
        ])

    def test_counts(self) -> None:
        summary = self._summary()
        self.assertEqual(
            (summary.total, summary.success_count, summary.failure_count),
            (3, 2, 1),
        )

    def test_to_dict(self) -> None:
        data = self._summary().to_dict()
        self.assertEqual(data["total"], 3)
        self.assertEqual(data["successful"], 2)
        self.assertEqual(data["failed"], 1)
        results = data["results"]
        assert isinstance(results, list)
        self.assertEqual(
            results[1],
            {"supplier": "EcoFlow", "success": False, "reason": "HTTP 503"},
        )

    def test_summary_lines(self) -> None:
        lines = self._summary().summary_lines()
        self.assertEqual(lines[0], "Growatt: $1,499.00 (-100.00)")
        self.assertEqual(lines[1], "Anker: $1,299.00")
        self.assertEqual(lines[2], "EcoFlow: HTTP 503")
        self.assertEqual(lines[3], "Success: 2/3 suppliers updated")


class TestSuppliersFromSettings(unittest.TestCase):
    """Registry entries become lazily-loaded SupplierSpecs."""

    def test_reference_suppliers(self) -> None:
        specs = suppliers_from_settings()
        self.assertEqual(
            [(s.label, s.pattern) for s in specs],
            [
                ("Growatt", "%infinity%2000%pro%"),
                ("EcoFlow", "%delta%3%"),
                ("Anker", "%solix%f2000%"),
            ],
        )
        self.assertTrue(all(s.extractor is None for s in specs))
        self.assertTrue(all(s.scraper_path for s in specs))


if __name__ == "__main__":
    unittest.main()
