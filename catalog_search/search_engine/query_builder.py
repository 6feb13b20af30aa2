"""Query builder for product search.

Constructs OpenSearch ``bool`` queries with a fluent, single-use builder.
``build()`` freezes the accumulated state into an immutable ``Query`` value;
a builder instance must not be shared between concurrent callers.

Example
>>> query = (
...     QueryBuilder("marketplace_products")
...     .search("running shoes")
...     .filter_by_price_range(20.0, None)
...     .sort_by_price("asc")
...     .paginate(2, 15)
...     .build()
... )
"""

import copy
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

# Field boosts for full-text matching.
SEARCH_FIELDS = ["title^2", "brand^1.5", "description"]


@dataclass(frozen=True)
class Query:
    """Engine request built from search criteria; rebuilt for every search."""
    index: str
    body: Dict[str, Any] = field(default_factory=dict)

    @property
    def size(self) -> int:
        return self.body.get("size", 0)

    @property
    def offset(self) -> int:
        return self.body.get("from", 0)

    def to_dict(self) -> Dict[str, Any]:
        """Return an independent copy suitable for the client or for logs."""
        return {"index": self.index, "body": copy.deepcopy(self.body)}


class QueryBuilder:
    """Fluent builder for product search queries."""

    def __init__(self, index: str = "products"):
        self.index = index
        self._must: List[Dict[str, Any]] = []
        self._filter: List[Dict[str, Any]] = []
        self._sort: Optional[Dict[str, Any]] = None
        self._size = 10
        self._from = 0

    def search(self, term: str) -> "QueryBuilder":
        """Add a fuzzy full-text clause across boosted fields."""
        if term and term.strip():
            self._must.append({
                "multi_match": {
                    "query": term,
                    "fields": list(SEARCH_FIELDS),
                    "type": "best_fields",
                    "fuzziness": "AUTO",
                }
            })
        return self

    def filter_by_category(self, category_id: str) -> "QueryBuilder":
        """Filter by exact category."""
        self._filter.append({"term": {"category_id": category_id}})
        return self

    def filter_by_price_range(
        self,
        min_price: Optional[float],
        max_price: Optional[float]
    ) -> "QueryBuilder":
        """Filter by inclusive price range; ``None`` bounds are omitted."""
        bounds: Dict[str, float] = {}
        if min_price is not None:
            bounds["gte"] = min_price
        if max_price is not None:
            bounds["lte"] = max_price

        if bounds:
            self._filter.append({"range": {"price": bounds}})
        return self

    def sort_by_price(self, direction: str = "asc") -> "QueryBuilder":
        """Sort by price, replacing any previous sort."""
        return self.sort_by_field("price", direction)

    def sort_by_relevance(self) -> "QueryBuilder":
        """Sort by score, replacing any previous sort."""
        self._sort = {"_score": {"order": "desc"}}
        return self

    def sort_by_field(self, field_name: str, direction: str = "desc") -> "QueryBuilder":
        """Sort by a document field, replacing any previous sort."""
        self._sort = {field_name: {"order": direction}}
        return self

    def paginate(self, page: int = 1, per_page: int = 10) -> "QueryBuilder":
        """Set page window: ``size=per_page``, ``from=(page-1)*per_page``."""
        self._size = per_page
        self._from = (page - 1) * per_page
        return self

    def build(self) -> Query:
        """Freeze the current state into a ``Query``.

        Repeated calls without further mutation return equal values; the
        returned body shares no containers with the builder.
        """
        body: Dict[str, Any] = {
            "query": {
                "bool": {
                    "must": copy.deepcopy(self._must),
                    "filter": copy.deepcopy(self._filter),
                    "should": [],
                }
            },
            "size": self._size,
            "from": self._from,
        }

        if self._sort:
            body["sort"] = [copy.deepcopy(self._sort)]

        return Query(index=self.index, body=body)
