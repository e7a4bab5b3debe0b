"""Fuzzy person search over denormalized documents."""

from peopledb.search.documents import PersonSearchDocument, merge_entities, to_search_documents
from peopledb.search.index import PersonSearchIndex, SearchResult, tokenize
from peopledb.search.sync import SearchIndexSync, build_index, fingerprint

__all__ = [
    "PersonSearchDocument",
    "PersonSearchIndex",
    "SearchIndexSync",
    "SearchResult",
    "build_index",
    "fingerprint",
    "merge_entities",
    "to_search_documents",
    "tokenize",
]
