"""Product service: sanitize, cache, transform and paginate searches.

This is the interface consumed by the HTTP layer. It never raises on search:
when neither backend can answer, callers receive a success-shaped response
with an ``error`` marker and no products, so a degraded page can still be
rendered.

Caching is cache-aside with an explicit get, compute, put sequence. Degraded
responses are cached as well (``degraded_cache_ttl``, equal to the healthy
TTL by default) so a backend outage does not turn every request into two
failing backend calls; the cost is that recovery becomes visible only after
the entry expires.
"""

import math
import time
from typing import Any, Dict, List, Mapping, Optional, Union

import structlog

from ..common.config import DEFAULT_CURRENCY_SYMBOLS
from ..common.logging import log_performance
from ..common.metrics import MetricsCollector
from .cache_manager import Cache, generate_cache_key
from .facets import default_facet_set
from .formatting import transform_product
from .models import (
    SORT_DIRECTIONS,
    SORT_FIELDS,
    FacetSet,
    ProductSummary,
    SearchCriteria,
    SearchResponse,
    SearchResult,
)
from .pagination import build_pagination_meta
from .repository import ProductRepository, SearchUnavailable

logger = structlog.get_logger("search_service.product_service")

DEGRADED_ERROR = "Search temporarily unavailable"
SEARCH_CACHE_PREFIX = "product_search:"
FEATURED_CACHE_PREFIX = "featured_products:"


def _to_number(value: Any) -> float:
    """Lenient numeric coercion: anything unparseable becomes ``0.0``."""
    if isinstance(value, str):
        value = value.strip()
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _to_int(value: Any) -> int:
    return int(_to_number(value))


def _is_present(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, str) and not value.strip():
        return False
    return True


class ProductService:
    """Business layer over ``ProductRepository``."""

    def __init__(
        self,
        repository: ProductRepository,
        cache: Cache,
        facets: Optional[FacetSet] = None,
        currency_symbols: Optional[Mapping[str, str]] = None,
        cache_ttl: int = 300,
        degraded_cache_ttl: Optional[int] = None,
        base_url: str = "/api/v1/products/search",
        default_per_page: int = 15,
        max_per_page: int = 50,
        featured_limit: int = 10,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Construct the service.

        Parameters
        - repository: Engine/store resolution
        - cache: Shared response cache
        - facets: Facet set attached to every response
        - currency_symbols: ISO code -> display symbol
        - cache_ttl: Seconds a search response is cached
        - degraded_cache_ttl: Seconds a degraded response is cached
          (defaults to ``cache_ttl``)
        - base_url: Path used to build pagination links
        - default_per_page / max_per_page: Page size default and ceiling
        - featured_limit: Default size of the featured listing
        - metrics: Optional Prometheus collector
        """
        self.repository = repository
        self.cache = cache
        self.facets = facets or default_facet_set()
        self.currency_symbols = dict(currency_symbols or DEFAULT_CURRENCY_SYMBOLS)
        self.cache_ttl = cache_ttl
        self.degraded_cache_ttl = cache_ttl if degraded_cache_ttl is None else degraded_cache_ttl
        self.base_url = base_url
        self.default_per_page = default_per_page
        self.max_per_page = max_per_page
        self.featured_limit = featured_limit
        self.metrics = metrics

    def sanitize_search_criteria(
        self,
        raw: Union[Mapping[str, Any], SearchCriteria, None]
    ) -> SearchCriteria:
        """Coerce raw request parameters into valid ``SearchCriteria``.

        Total and idempotent: unparseable numbers become ``0``, unknown sort
        options fall back to their defaults, and an inverted price range is
        swapped so that ``min_price <= max_price``.
        """
        if isinstance(raw, SearchCriteria):
            raw = raw.to_dict()
        raw = raw or {}

        search = raw.get("search")
        search = "" if search is None else str(search).strip()

        category_id = raw.get("category_id")
        category_id = str(category_id).strip() if category_id is not None else None

        min_price = max(0.0, _to_number(raw.get("min_price")))
        max_price = max(0.0, _to_number(raw.get("max_price"))) if _is_present(raw.get("max_price")) else None
        if max_price is not None and min_price > max_price:
            min_price, max_price = max_price, min_price

        sort_by = raw.get("sort_by")
        sort_direction = raw.get("sort_direction")

        page = raw.get("page")
        per_page = raw.get("per_page")

        return SearchCriteria(
            search=search,
            category_id=category_id or None,
            min_price=min_price,
            max_price=max_price,
            sort_by=sort_by if isinstance(sort_by, str) and sort_by in SORT_FIELDS else "relevance",
            sort_direction=sort_direction if isinstance(sort_direction, str) and sort_direction in SORT_DIRECTIONS else "desc",
            page=max(1, _to_int(page)) if _is_present(page) else 1,
            per_page=(
                min(self.max_per_page, max(1, _to_int(per_page)))
                if _is_present(per_page) else self.default_per_page
            ),
        )

    @staticmethod
    def generate_cache_key(criteria: SearchCriteria) -> str:
        return generate_cache_key(SEARCH_CACHE_PREFIX, criteria.to_dict())

    async def search_products(
        self,
        raw_criteria: Union[Mapping[str, Any], SearchCriteria, None]
    ) -> SearchResponse:
        """Search products; always returns a response."""
        start_time = time.time()
        criteria = self.sanitize_search_criteria(raw_criteria)
        cache_key = self.generate_cache_key(criteria)

        cached = await self.cache.get(cache_key)
        if cached is not None:
            self._record_cache(hit=True, cache_type="search")
            self._record_search("cache", start_time)
            return SearchResponse.from_dict(cached)

        self._record_cache(hit=False, cache_type="search")

        try:
            result = await self.repository.search(criteria)
        except SearchUnavailable as e:
            logger.error("Product search failed", criteria=criteria.to_dict(), error=str(e))
            response = self.build_degraded_response(criteria)
            await self.cache.put(cache_key, response.to_dict(), self.degraded_cache_ttl)
            self._record_search("degraded", start_time)
            return response

        response = self.transform_search_results(result, criteria)
        await self.cache.put(cache_key, response.to_dict(), self.cache_ttl)

        self._record_search(result.source, start_time)
        log_performance(
            "product_search",
            (time.time() - start_time) * 1000,
            source=result.source,
            total=result.total,
        )
        return response

    def transform_search_results(self, result: SearchResult, criteria: SearchCriteria) -> SearchResponse:
        """Shape raw hits into the API response."""
        return SearchResponse(
            products=[self.transform_product(hit) for hit in result.hits],
            total=result.total,
            took=result.took_ms,
            pagination=build_pagination_meta(criteria, result.total, self.base_url, self.default_per_page),
            filters=self.response_facets(),
        )

    def response_facets(self) -> FacetSet:
        """Independent copy of the facet set for one response."""
        return FacetSet.from_dict(self.facets.to_dict())

    def transform_product(self, product: Dict[str, Any]) -> ProductSummary:
        return transform_product(product, self.currency_symbols)

    def build_degraded_response(self, criteria: SearchCriteria) -> SearchResponse:
        """Empty, success-shaped response flagged with ``error``."""
        return SearchResponse(
            products=[],
            total=0,
            took=0,
            pagination=build_pagination_meta(criteria, 0, self.base_url, self.default_per_page),
            filters=self.response_facets(),
            error=DEGRADED_ERROR,
        )

    async def get_featured_products(self, limit: Optional[int] = None) -> List[ProductSummary]:
        """Highest rated in-stock products; empty when the store is down."""
        limit = self.featured_limit if limit is None else limit
        limit = min(self.max_per_page, max(1, _to_int(limit)))
        cache_key = generate_cache_key(FEATURED_CACHE_PREFIX, {"limit": limit})

        cached = await self.cache.get(cache_key)
        if cached is not None:
            self._record_cache(hit=True, cache_type="featured")
            return [ProductSummary.from_dict(product) for product in cached.get("products", [])]

        self._record_cache(hit=False, cache_type="featured")

        try:
            rows = await self.repository.get_featured(limit)
        except SearchUnavailable as e:
            logger.error("Featured products unavailable", limit=limit, error=str(e))
            return []

        products = [self.transform_product(row) for row in rows]
        await self.cache.put(
            cache_key,
            {"products": [product.to_dict() for product in products]},
            self.cache_ttl
        )
        return products

    async def get_product_by_id(self, product_id: str) -> Optional[ProductSummary]:
        """Look up one product.

        Raises ``SearchUnavailable`` when the store cannot be reached, so
        callers can tell an outage from a missing product.
        """
        product = await self.repository.find(product_id)
        return self.transform_product(product) if product else None

    async def get_products_by_category(self, category_id: str, limit: int = 10) -> List[ProductSummary]:
        """In-stock products of a category; empty when the store is down."""
        limit = min(self.max_per_page, max(1, _to_int(limit)))
        try:
            rows = await self.repository.get_by_category(category_id, limit)
        except SearchUnavailable as e:
            logger.error("Category products unavailable", category_id=category_id, error=str(e))
            return []
        return [self.transform_product(row) for row in rows]

    async def health_check(self) -> Dict[str, Any]:
        """Backend reachability summary."""
        services = await self.repository.health_check()
        return {
            "status": "healthy" if all(services.values()) else "degraded",
            "services": {name: "healthy" if ok else "degraded" for name, ok in services.items()},
        }

    async def flush_cache(self) -> int:
        """Evict every cached response."""
        deleted = await self.cache.clear()
        logger.info("Product search cache flushed", keys_deleted=deleted)
        return deleted

    def _record_cache(self, hit: bool, cache_type: str) -> None:
        if not self.metrics:
            return
        if hit:
            self.metrics.record_cache_hit(cache_type)
        else:
            self.metrics.record_cache_miss(cache_type)

    def _record_search(self, source: str, start_time: float) -> None:
        if self.metrics:
            self.metrics.record_search(source, time.time() - start_time)
