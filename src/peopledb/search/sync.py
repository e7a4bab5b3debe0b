"""Keep a search index in step with the table, rebuilding only on change."""

from __future__ import annotations

import hashlib
import logging
from collections.abc import Iterable

from peopledb.core.types import EntityType
from peopledb.search.documents import to_search_documents
from peopledb.search.index import (
    DEFAULT_LIMIT,
    DEFAULT_THRESHOLD,
    DEFAULT_TOLERANCE,
    PersonSearchIndex,
    SearchResult,
)
from peopledb.store.pager import CrossEntityPager, EntityPage

logger = logging.getLogger(__name__)


def fingerprint(person_ids: Iterable[str]) -> str:
    """Order-independent digest of a set of person ids."""
    digest = hashlib.sha256()
    for person_id in sorted(set(person_ids)):
        digest.update(person_id.encode("utf-8"))
        digest.update(b"\0")
    return digest.hexdigest()


def build_index(snapshot: EntityPage) -> PersonSearchIndex:
    """Build a fresh index from a complete snapshot (see ``drain_all``)."""
    index = PersonSearchIndex()
    index.add_many(to_search_documents(snapshot.all_items()))
    return index


class SearchIndexSync:
    """Pull-based index maintenance.

    ``refresh`` reads only the person ids (index A) to compute the
    fingerprint, and drains the whole table only when that set differs from
    the last build. Edits to existing persons or their children do not
    change the fingerprint; call ``refresh(force=True)`` or the incremental
    ``add``/``remove`` on the index for those.
    """

    def __init__(self, pager: CrossEntityPager) -> None:
        self._pager = pager
        self._index: PersonSearchIndex | None = None
        self._fingerprint: str | None = None

    @property
    def index(self) -> PersonSearchIndex | None:
        return self._index

    @property
    def fingerprint(self) -> str | None:
        return self._fingerprint

    def index_ready(self) -> bool:
        return self._index is not None

    async def refresh(self, force: bool = False) -> bool:
        """Rebuild the index if the person set changed. Returns True if rebuilt."""
        if not force and self._index is not None:
            current = fingerprint(await self._pager.person_ids())
            if current == self._fingerprint:
                logger.debug("Person set unchanged, keeping search index")
                return False

        snapshot = await self._pager.drain_all()
        self._index = build_index(snapshot)
        # Taken from the snapshot so it always describes what was indexed
        self._fingerprint = fingerprint(
            str(item.get("id")) for item in snapshot.of(EntityType.PERSON)
        )
        logger.info(f"Rebuilt search index with {self._index.count()} documents")
        return True

    def search(
        self,
        term: str,
        limit: int = DEFAULT_LIMIT,
        tolerance: int = DEFAULT_TOLERANCE,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[SearchResult]:
        """Query the current index; empty until the first ``refresh``."""
        if self._index is None:
            return []
        return self._index.search(term, limit=limit, tolerance=tolerance, threshold=threshold)
