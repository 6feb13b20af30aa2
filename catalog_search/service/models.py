"""Value objects exchanged by the repository, the service and its callers.

Every model is a frozen dataclass: a cached response is replaced, never
mutated in place. ``to_dict``/``from_dict`` give the JSON shape stored in the
cache and handed to the HTTP layer.
"""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional

from ..search_engine.base import SearchResult

__all__ = [
    "SORT_FIELDS",
    "SORT_DIRECTIONS",
    "SearchCriteria",
    "SearchResult",
    "Price",
    "ProductSummary",
    "PaginationLinks",
    "PaginationMeta",
    "FacetSet",
    "SearchResponse",
]

SORT_FIELDS = ("relevance", "price", "rating", "popularity", "date")
SORT_DIRECTIONS = ("asc", "desc")


@dataclass(frozen=True)
class SearchCriteria:
    """Sanitized search parameters for one request."""
    search: str = ""
    category_id: Optional[str] = None
    min_price: float = 0.0
    max_price: Optional[float] = None
    sort_by: str = "relevance"
    sort_direction: str = "desc"
    page: int = 1
    per_page: int = 15

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)


@dataclass(frozen=True)
class Price:
    amount: float
    currency: str
    formatted: str


@dataclass(frozen=True)
class ProductSummary:
    """API-shaped product with derived fields."""
    id: str
    title: str
    brand: Optional[str]
    price: Price
    rating: float
    stock_status: str
    availability: bool
    popularity: int
    category_id: Optional[str]
    seller_id: Optional[str]
    attributes: Dict[str, Any] = field(default_factory=dict)
    created_at: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ProductSummary":
        values = dict(data)
        values["price"] = Price(**values["price"])
        return cls(**values)


@dataclass(frozen=True)
class PaginationLinks:
    first: str
    last: str
    prev: Optional[str] = None
    next: Optional[str] = None


@dataclass(frozen=True)
class PaginationMeta:
    """Page window over ``total`` results.

    ``from_`` and ``to`` are 1-based item positions, ``None`` when there are
    no results; they serialize as ``from``/``to``.
    """
    current_page: int
    per_page: int
    total: int
    last_page: int
    from_: Optional[int]
    to: Optional[int]
    has_more_pages: bool
    links: PaginationLinks
    path: str = ""
    query_params: Dict[str, Any] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data = asdict(self)
        data["from"] = data.pop("from_")
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PaginationMeta":
        values = dict(data)
        values["from_"] = values.pop("from")
        values["links"] = PaginationLinks(**values["links"])
        return cls(**values)


@dataclass(frozen=True)
class FacetSet:
    """Filter options shown alongside results."""
    categories: List[Dict[str, Any]] = field(default_factory=list)
    brands: List[Dict[str, Any]] = field(default_factory=list)
    price_ranges: List[Dict[str, Any]] = field(default_factory=list)
    ratings: List[Dict[str, Any]] = field(default_factory=list)
    availability: List[Dict[str, Any]] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FacetSet":
        return cls(**{key: list(data.get(key, [])) for key in cls.__dataclass_fields__})


@dataclass(frozen=True)
class SearchResponse:
    """Shaped search response; ``error`` is set only for degraded responses."""
    products: List[ProductSummary]
    total: int
    took: int
    pagination: PaginationMeta
    filters: FacetSet
    error: Optional[str] = None

    @property
    def is_degraded(self) -> bool:
        return self.error is not None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "products": [product.to_dict() for product in self.products],
            "total": self.total,
            "took": self.took,
            "pagination": self.pagination.to_dict(),
            "filters": self.filters.to_dict(),
        }
        if self.error is not None:
            data["error"] = self.error
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SearchResponse":
        return cls(
            products=[ProductSummary.from_dict(product) for product in data.get("products", [])],
            total=data["total"],
            took=data.get("took", 0),
            pagination=PaginationMeta.from_dict(data["pagination"]),
            filters=FacetSet.from_dict(data.get("filters", {})),
            error=data.get("error"),
        )
