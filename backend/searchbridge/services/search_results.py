"""
Typed views of engine search requests and result pages.
"""

import math
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from searchbridge.utils.exceptions import InvalidInputError


def total_pages(found: int, per_page: int) -> int:
    if per_page < 1:
        return 1
    return int(math.ceil(found / per_page))


@dataclass(frozen=True)
class SearchRequest:
    query: str
    page: int = 1
    per_page: int = 12
    filter_expression: Optional[str] = None
    sort_expression: Optional[str] = None

    def validate(self, max_result_window: int) -> None:
        """Reject requests the engine cannot serve, before any network call."""
        if not self.query or not self.query.strip():
            raise InvalidInputError("search query must not be empty", field="query")
        if self.page < 1:
            raise InvalidInputError(f"must be >= 1, got {self.page}", field="page")
        if self.per_page < 1:
            raise InvalidInputError(f"must be >= 1, got {self.per_page}", field="per_page")
        if self.page * self.per_page > max_result_window:
            raise InvalidInputError(
                f"page {self.page} x per_page {self.per_page} exceeds the result window of {max_result_window}",
                field="page",
            )

    def overrides(self) -> Dict[str, Any]:
        return {
            "page": self.page,
            "per_page": self.per_page,
            "filter_by": self.filter_expression,
            "sort_by": self.sort_expression,
        }


@dataclass(frozen=True)
class SearchHit:
    document_id: str
    rank_position: int
    document: Dict[str, Any] = field(default_factory=dict)


@dataclass
class SearchResultPage:
    hits: List[SearchHit]
    found: int
    requested_page: int
    per_page: int

    @property
    def total_pages(self) -> int:
        return total_pages(self.found, self.per_page)

    @property
    def document_ids(self) -> List[str]:
        return [hit.document_id for hit in self.hits]

    @property
    def documents(self) -> List[Dict[str, Any]]:
        return [hit.document for hit in self.hits]

    @classmethod
    def empty(cls, requested_page: int, per_page: int) -> "SearchResultPage":
        return cls(hits=[], found=0, requested_page=requested_page, per_page=per_page)

    @classmethod
    def from_engine(cls, payload: Dict[str, Any], requested_page: int, per_page: int) -> "SearchResultPage":
        """
        Parse a decoded engine search response.

        Hits without an id are skipped, repeated ids keep their first
        occurrence and the list is capped at ``per_page``.

        Raises:
            ValueError: If the payload is not a search response
        """
        if not isinstance(payload, dict):
            raise ValueError(f"Unexpected search payload: {type(payload).__name__}")

        raw_hits = payload.get("hits") or []
        if not isinstance(raw_hits, list):
            raise ValueError("Search payload 'hits' is not a list")

        hits: List[SearchHit] = []
        seen = set()
        for raw in raw_hits:
            if len(hits) >= per_page:
                break
            if not isinstance(raw, dict):
                raise ValueError(f"Search hit is not an object: {type(raw).__name__}")
            document = raw.get("document") or {}
            if not isinstance(document, dict):
                raise ValueError(f"Search hit document is not an object: {type(document).__name__}")
            document_id = document.get("id")
            if document_id is None or document_id == "":
                continue
            document_id = str(document_id)
            if document_id in seen:
                continue
            seen.add(document_id)
            hits.append(SearchHit(document_id=document_id, rank_position=len(hits), document=document))

        try:
            found = max(0, int(payload.get("found") or 0))
        except (TypeError, ValueError) as e:
            raise ValueError(f"Search payload 'found' is not a number: {payload.get('found')!r}") from e
        return cls(hits=hits, found=found, requested_page=requested_page, per_page=per_page)
