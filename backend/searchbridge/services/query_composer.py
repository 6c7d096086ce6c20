"""
Builds engine search parameters from a raw query.
"""

from dataclasses import dataclass, fields
from typing import Any, Dict, Mapping, Optional

from searchbridge.services.collections import CollectionType
from searchbridge.utils.exceptions import InvalidInputError


# Field order is the relevance weighting: earlier fields weigh more.
PRODUCT_QUERY_BY = "name,sku,categories,tags,brands,manufacturer,short_description,description"
TERM_QUERY_BY = "name,description"

MAX_TYPOS = 2
MIN_LEN_1TYPO = 3
MIN_LEN_2TYPO = 4

ALLOWED_OVERRIDES = frozenset({"filter_by", "sort_by", "page", "per_page", "preset", "query_by"})


def default_query_by(collection_type: CollectionType) -> str:
    if collection_type is CollectionType.PRODUCTS:
        return PRODUCT_QUERY_BY
    elif collection_type in (CollectionType.CATEGORIES, CollectionType.BRANDS):
        return TERM_QUERY_BY
    raise ValueError(f"Unhandled collection type: {collection_type!r}")


def allowed_typos(query: str) -> int:
    """Number of typos the engine tolerates for a query of this length."""
    length = len((query or "").strip())
    if length >= MIN_LEN_2TYPO:
        return min(2, MAX_TYPOS)
    if length >= MIN_LEN_1TYPO:
        return min(1, MAX_TYPOS)
    return 0


@dataclass(frozen=True)
class EngineParameters:
    q: str
    page: int
    per_page: int
    query_by: Optional[str] = None
    preset: Optional[str] = None
    filter_by: Optional[str] = None
    sort_by: Optional[str] = None
    num_typos: int = MAX_TYPOS
    min_len_1typo: int = MIN_LEN_1TYPO
    min_len_2typo: int = MIN_LEN_2TYPO
    exhaustive_search: bool = True
    prioritize_exact_match: bool = True

    def to_query_params(self) -> Dict[str, Any]:
        """Querystring parameters; unset values are omitted, booleans spelled as the engine expects."""
        params: Dict[str, Any] = {}
        for f in fields(self):
            value = getattr(self, f.name)
            if value is None:
                continue
            if isinstance(value, bool):
                value = "true" if value else "false"
            params[f.name] = value
        return params


class QueryComposer:
    """
    Composes engine parameters for one collection type.

    A preset replaces the default field list; a preset combined with an
    explicit ``query_by`` is rejected, and so is ``query_by`` on its own.
    """

    def __init__(
        self,
        collection_type: CollectionType = CollectionType.PRODUCTS,
        *,
        preset_prefix: str = "",
        default_per_page: int = 12,
    ):
        self.collection_type = collection_type
        self.preset_prefix = preset_prefix
        self.default_per_page = default_per_page

    def compose(self, query: str, overrides: Optional[Mapping[str, Any]] = None) -> EngineParameters:
        overrides = dict(overrides or {})

        unknown = set(overrides) - ALLOWED_OVERRIDES
        if unknown:
            raise InvalidInputError(f"Unsupported search overrides: {', '.join(sorted(unknown))}")

        preset = overrides.get("preset") or None
        query_by = overrides.get("query_by") or None
        if preset and query_by:
            raise InvalidInputError("A preset already defines query_by; pass one or the other", field="query_by")
        if query_by:
            raise InvalidInputError("query_by can only change through a preset", field="query_by")

        page = self._positive_int(overrides.get("page", 1), "page")
        per_page = self._positive_int(overrides.get("per_page", self.default_per_page), "per_page")

        return EngineParameters(
            q=query,
            page=page,
            per_page=per_page,
            query_by=None if preset else default_query_by(self.collection_type),
            preset=f"{self.preset_prefix}{preset}" if preset else None,
            filter_by=overrides.get("filter_by") or None,
            sort_by=overrides.get("sort_by") or None,
        )

    @staticmethod
    def _positive_int(value: Any, field: str) -> int:
        try:
            number = int(value)
        except (TypeError, ValueError):
            raise InvalidInputError(f"must be an integer, got {value!r}", field=field)
        if number < 1:
            raise InvalidInputError(f"must be >= 1, got {number}", field=field)
        return number
