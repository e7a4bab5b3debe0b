"""In-memory fuzzy full-text index over person search documents.

Scoring is BM25 per field, summed over fields and query terms. A query term
matches an indexed token exactly, as a prefix, or within ``tolerance``
Levenshtein edits; inexact matches are down-weighted.
"""

from __future__ import annotations

import math
import re
from collections import Counter, defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any

from rapidfuzz import process
from rapidfuzz.distance import Levenshtein

from peopledb.search.documents import SEARCHABLE_FIELDS, PersonSearchDocument, to_search_documents

if TYPE_CHECKING:
    from peopledb.store.pager import EntityPage

DEFAULT_LIMIT = 50
DEFAULT_TOLERANCE = 1
DEFAULT_THRESHOLD = 0.0

_TOKEN_RE = re.compile(r"[^\W_]+")

# BM25 parameters
_K1 = 1.2
_B = 0.75

_PREFIX_WEIGHT = 0.8


def tokenize(text: str | None) -> list[str]:
    """Lowercased alphanumeric runs; punctuation and whitespace separate tokens."""
    if not text:
        return []
    return _TOKEN_RE.findall(text.casefold())


@dataclass
class SearchResult:
    """One hit."""

    id: str
    score: float
    document: PersonSearchDocument

    def to_dict(self) -> dict[str, Any]:
        return {"id": self.id, "score": self.score, "document": self.document.model_dump()}


class PersonSearchIndex:
    """Fuzzy-searchable index of ``PersonSearchDocument``.

    Not thread-safe. Readers may see a partially updated index while a
    document is being added or removed.
    """

    def __init__(self) -> None:
        self._documents: dict[str, PersonSearchDocument] = {}
        # token -> doc id -> field -> term frequency
        self._postings: dict[str, dict[str, Counter[str]]] = defaultdict(dict)
        # doc id -> field -> token count
        self._lengths: dict[str, dict[str, int]] = {}
        self._total_lengths: Counter[str] = Counter()

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._documents

    def count(self) -> int:
        return len(self._documents)

    def get(self, doc_id: str) -> PersonSearchDocument | None:
        return self._documents.get(doc_id)

    # === Maintenance ===

    def add(self, document: PersonSearchDocument) -> None:
        """Index a document, replacing any previous version with the same id."""
        if document.id in self._documents:
            self.remove(document.id)

        lengths: dict[str, int] = {}
        for field_name in SEARCHABLE_FIELDS:
            tokens = tokenize(getattr(document, field_name))
            lengths[field_name] = len(tokens)
            self._total_lengths[field_name] += len(tokens)
            for token in tokens:
                fields = self._postings[token].setdefault(document.id, Counter())
                fields[field_name] += 1

        self._documents[document.id] = document
        self._lengths[document.id] = lengths

    def add_many(self, documents: Iterable[PersonSearchDocument]) -> int:
        added = 0
        for document in documents:
            self.add(document)
            added += 1
        return added

    def remove(self, doc_id: str) -> bool:
        """Drop a document. Returns False if it was not indexed."""
        document = self._documents.pop(doc_id, None)
        if document is None:
            return False

        for field_name, length in self._lengths.pop(doc_id).items():
            self._total_lengths[field_name] -= length
        for field_name in SEARCHABLE_FIELDS:
            for token in set(tokenize(getattr(document, field_name))):
                postings = self._postings.get(token)
                if postings is None:
                    continue
                postings.pop(doc_id, None)
                if not postings:
                    del self._postings[token]
        return True

    def clear(self) -> None:
        self._documents.clear()
        self._postings.clear()
        self._lengths.clear()
        self._total_lengths.clear()

    def populate_from_page(self, page: EntityPage) -> int:
        """Index the persons of one pager page.

        Children only contribute when their person is in the same page, so
        use this on drained pages or accept partial documents.
        """
        return self.add_many(to_search_documents(page.all_items()))

    # === Search ===

    def _expand(self, term: str, tolerance: int) -> dict[str, float]:
        """Indexed tokens matching ``term``, with their match weight."""
        matches: dict[str, float] = {}
        if term in self._postings:
            matches[term] = 1.0
        for token in self._postings:
            if token != term and token.startswith(term):
                matches[token] = max(matches.get(token, 0.0), _PREFIX_WEIGHT)
        if tolerance > 0:
            vocabulary = list(self._postings)
            for token, distance, _ in process.extract(
                term,
                vocabulary,
                scorer=Levenshtein.distance,
                score_cutoff=tolerance,
                limit=None,
            ):
                if distance > 0:
                    matches[token] = max(matches.get(token, 0.0), 1.0 / (1 + distance))
        return matches

    def _bm25(self, doc_id: str, field_name: str, tf: int, doc_freq: int) -> float:
        n_docs = len(self._documents)
        idf = math.log(1 + (n_docs - doc_freq + 0.5) / (doc_freq + 0.5))
        avg_len = self._total_lengths[field_name] / n_docs if n_docs else 0.0
        length = self._lengths[doc_id][field_name]
        norm = 1 - _B + _B * (length / avg_len) if avg_len else 1.0
        return idf * (tf * (_K1 + 1)) / (tf + _K1 * norm)

    def search(
        self,
        term: str,
        limit: int = DEFAULT_LIMIT,
        tolerance: int = DEFAULT_TOLERANCE,
        threshold: float = DEFAULT_THRESHOLD,
    ) -> list[SearchResult]:
        """Rank documents against ``term``.

        Args:
            term: Free text; split into tokens like indexed text
            limit: Maximum number of results
            tolerance: Maximum Levenshtein distance for a fuzzy token match
            threshold: 0 returns only documents matching every query token;
                values up to 1 also admit that fraction of the documents
                matching only some tokens (best scored first)

        Returns:
            Results by descending score, ties broken by id
        """
        if limit < 1:
            return []
        if tolerance < 0:
            raise ValueError("tolerance must be >= 0")
        if not 0 <= threshold <= 1:
            raise ValueError("threshold must be between 0 and 1")

        query_terms = list(dict.fromkeys(tokenize(term)))
        if not query_terms:
            return []

        scores: dict[str, float] = defaultdict(float)
        matched: dict[str, set[str]] = defaultdict(set)
        for query_term in query_terms:
            for token, weight in self._expand(query_term, tolerance).items():
                postings = self._postings[token]
                for doc_id, fields in postings.items():
                    matched[doc_id].add(query_term)
                    for field_name, tf in fields.items():
                        scores[doc_id] += weight * self._bm25(doc_id, field_name, tf, len(postings))

        def rank(ids: Iterable[str]) -> list[str]:
            return sorted(ids, key=lambda i: (-scores[i], i))

        full = rank(i for i in matched if len(matched[i]) == len(query_terms))
        partial = rank(i for i in matched if len(matched[i]) < len(query_terms))
        admitted = full + partial[: math.ceil(len(partial) * threshold)]

        return [
            SearchResult(id=doc_id, score=scores[doc_id], document=self._documents[doc_id])
            for doc_id in rank(admitted)[:limit]
        ]
