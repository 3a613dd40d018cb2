# src/services/catalog_matcher.py

"""Resolves a supplier's product to a catalog entity by name pattern."""

import logging

from src.models.catalog import CatalogEntity
from src.models.errors import MatchError
from src.storage.catalog_db import CatalogStore

logger = logging.getLogger("price_tracker.matcher")


class CatalogMatcher:
    """Case-insensitive ``%``-wildcard substring match on entity names.

    No ranking and no fuzzy matching: when several entities match, the
    first in name order wins.
    """

    def __init__(self, store: CatalogStore) -> None:
        self._store = store

    def match(self, pattern: str) -> CatalogEntity:
        """Return the first entity matching *pattern*.

        Raises:
            MatchError: if no entity matches.
        """
        candidates = self._store.find_entities_by_name_pattern(pattern)
        if not candidates:
            logger.warning("No catalog entity matches '%s'", pattern)
            raise MatchError(
                f"no catalog entity matches pattern '{pattern}'"
            )
        if len(candidates) > 1:
            logger.info(
                "Pattern '%s' matched %d entities, using '%s'",
                pattern,
                len(candidates),
                candidates[0].name,
            )
        return candidates[0]
