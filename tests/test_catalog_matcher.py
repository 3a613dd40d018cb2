# tests/test_catalog_matcher.py

"""Tests for resolving supplier patterns to catalog entities."""

import tempfile
import unittest
from pathlib import Path

from src.models.errors import MatchError
from src.services.catalog_matcher import CatalogMatcher
from src.storage.catalog_db import CatalogDB


class TestCatalogMatcher(unittest.TestCase):
    """CatalogMatcher against a real temp catalog."""

    def setUp(self) -> None:
        self.tmp_dir = tempfile.mkdtemp()
        self.db = CatalogDB(db_path=Path(self.tmp_dir) / "test.db")
        self.matcher = CatalogMatcher(self.db)

    def tearDown(self) -> None:
        self.db.close()

    def test_delta3_pattern_matches(self) -> None:
        self.db.add_entity("EcoFlow Delta 3 Portable Power Station", "EcoFlow")
        entity = self.matcher.match("%delta%3%")
        self.assertEqual(entity.name, "EcoFlow Delta 3 Portable Power Station")

    def test_delta3_pattern_skips_delta_pro(self) -> None:
        self.db.add_entity("Delta Pro", "EcoFlow")
        with self.assertRaises(MatchError):
            self.matcher.match("%delta%3%")

    def test_first_by_name_when_several_match(self) -> None:
        self.db.add_entity("Zeta Delta 3", "X")
        self.db.add_entity("Alpha Delta 3", "Y")
        self.assertEqual(self.matcher.match("%delta%3%").name, "Alpha Delta 3")

    def test_empty_catalog(self) -> None:
        with self.assertRaises(MatchError) as ctx:
            self.matcher.match("%solix%f2000%")
        self.assertIn("%solix%f2000%", str(ctx.exception))

    def test_reference_patterns(self) -> None:
        self.db.add_entity("Growatt INFINITY 2000 Pro", "Growatt")
        self.db.add_entity("Anker SOLIX F2000", "Anker")
        self.assertEqual(
            self.matcher.match("%infinity%2000%pro%").supplier, "Growatt"
        )
        self.assertEqual(
            self.matcher.match("%solix%f2000%").supplier, "Anker"
        )


if __name__ == "__main__":
    unittest.main()
