"""Product repository: engine-first resolution with relational fallback.

Searches go to the search engine first. When the engine fails for any
reason (unreachable, open breaker, rejected query) the repository logs a
warning and answers from the relational store instead: a substring match on
title or brand, exact category, the same price bounds, capped at
``fallback_limit`` rows in primary-key order, with ``took_ms=0``. Fallback
ordering does not follow engine relevance.

Only when both sources fail does ``search`` raise ``SearchUnavailable``.
"""

import asyncio
from typing import Any, Dict, List, Optional, Set

import structlog

from ..common.metrics import MetricsCollector
from ..relational_store.base import RelationalStore
from ..search_engine.base import EngineQueryError, SearchEngineClient, SearchEngineError, SearchResult
from ..search_engine.query_builder import Query, QueryBuilder
from .models import SearchCriteria
from .outcome import Outcome, first_success

logger = structlog.get_logger("search_service.repository")


class SearchUnavailable(Exception):
    """Neither the search engine nor the relational store could answer."""
    pass


# sort_by value -> document field
SORT_FIELD_MAP = {
    "rating": "rating",
    "popularity": "popularity",
    "date": "created_at",
}


def build_query(criteria: SearchCriteria, index: str) -> Query:
    """Translate sanitized criteria into an engine query."""
    builder = QueryBuilder(index).search(criteria.search)

    if criteria.category_id:
        builder.filter_by_category(criteria.category_id)

    min_price = criteria.min_price if criteria.min_price > 0 else None
    builder.filter_by_price_range(min_price, criteria.max_price)

    if criteria.sort_by == "price":
        builder.sort_by_price(criteria.sort_direction)
    elif criteria.sort_by in SORT_FIELD_MAP:
        builder.sort_by_field(SORT_FIELD_MAP[criteria.sort_by], criteria.sort_direction)
    else:
        builder.sort_by_relevance()

    return builder.paginate(criteria.page, criteria.per_page).build()


def _within_price_range(row: Dict[str, Any], min_price: Optional[float], max_price: Optional[float]) -> bool:
    try:
        price = float(row.get("price"))
    except (TypeError, ValueError):
        return False
    if min_price is not None and price < min_price:
        return False
    if max_price is not None and price > max_price:
        return False
    return True


class ProductRepository:
    """Resolves product reads against the engine and the relational store."""

    def __init__(
        self,
        engine: SearchEngineClient,
        store: RelationalStore,
        index_name: str = "marketplace_products",
        fallback_limit: int = 20,
        metrics: Optional[MetricsCollector] = None,
    ):
        """Construct a repository.

        Parameters
        - engine: Primary full-text search engine
        - store: Relational store used for fallback and id lookups
        - index_name: Engine index queried for products
        - fallback_limit: Row cap for fallback searches
        - metrics: Optional collector for fallback/index counters
        """
        self.engine = engine
        self.store = store
        self.index_name = index_name
        self.fallback_limit = fallback_limit
        self.metrics = metrics
        self._index_tasks: Set["asyncio.Task[bool]"] = set()

    async def search(self, criteria: SearchCriteria) -> SearchResult:
        """Resolve criteria to a ``SearchResult``.

        Raises
        - ``SearchUnavailable`` when the engine and the store both fail
        """
        outcome = await first_success(
            lambda: self._search_engine(criteria),
            lambda: self._search_store(criteria),
            on_primary_failure=self._on_engine_failure,
        )

        if not outcome.ok:
            raise SearchUnavailable("Search engine and relational store both failed") from outcome.error

        return outcome.value

    async def _search_engine(self, criteria: SearchCriteria) -> Outcome[SearchResult]:
        query = build_query(criteria, self.index_name)
        try:
            result = await self.engine.execute(query)
        except SearchEngineError as e:
            return Outcome.failure(e, source="engine")
        except Exception as e:
            logger.error("Search engine client raised unexpectedly", error=str(e))
            return Outcome.failure(e, source="engine")
        return Outcome.success(result, source="engine")

    def _on_engine_failure(self, outcome: Outcome[SearchResult]) -> None:
        # TODO: let EngineQueryError propagate instead of falling back; a
        # rejected query is a builder defect, not an outage.
        reason = "query_error" if isinstance(outcome.error, EngineQueryError) else "unavailable"
        logger.warning(
            "Search engine failed, falling back to relational store",
            reason=reason,
            error=str(outcome.error),
        )
        if self.metrics:
            self.metrics.record_fallback(reason)

    async def _search_store(self, criteria: SearchCriteria) -> Outcome[SearchResult]:
        min_price = criteria.min_price if criteria.min_price > 0 else None
        max_price = criteria.max_price

        try:
            rows = await self.store.query_by_filter(
                search=criteria.search or None,
                category_id=criteria.category_id,
                min_price=min_price,
                max_price=max_price,
                limit=self.fallback_limit,
            )
        except Exception as e:
            logger.error("Relational fallback search failed", error=str(e))
            return Outcome.failure(e, source="fallback")

        # Price bounds are re-checked here; the store may treat them as hints.
        rows = [row for row in rows if _within_price_range(row, min_price, max_price)][:self.fallback_limit]

        return Outcome.success(
            SearchResult(hits=rows, total=len(rows), took_ms=0, source="fallback"),
            source="fallback",
        )

    async def find(self, product_id: str) -> Optional[Dict[str, Any]]:
        """Find a product row by id."""
        try:
            return await self.store.read_by_id(product_id)
        except Exception as e:
            logger.error("Product lookup failed", product_id=product_id, error=str(e))
            raise SearchUnavailable(f"Product lookup failed: {e}") from e

    async def get_by_category(self, category_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """In-stock products of one category."""
        try:
            return await self.store.query_by_category(category_id, limit)
        except Exception as e:
            logger.error("Category listing failed", category_id=category_id, error=str(e))
            raise SearchUnavailable(f"Category listing failed: {e}") from e

    async def get_featured(self, limit: int = 10) -> List[Dict[str, Any]]:
        """Highest rated in-stock products."""
        try:
            return await self.store.query_featured(limit)
        except Exception as e:
            logger.error("Featured listing failed", limit=limit, error=str(e))
            raise SearchUnavailable(f"Featured listing failed: {e}") from e

    def index_product(self, document: Dict[str, Any]) -> "asyncio.Task[bool]":
        """Schedule indexing of ``document`` without waiting for it.

        Must be called from a running event loop. Failures are logged and
        counted, never retried, and never reach the caller.
        """
        task = asyncio.create_task(self._index(document))
        self._index_tasks.add(task)
        task.add_done_callback(self._index_tasks.discard)
        return task

    async def _index(self, document: Dict[str, Any]) -> bool:
        try:
            indexed = await self.engine.index(document)
        except Exception as e:
            logger.error("Product indexing raised", product_id=document.get("id"), error=str(e))
            indexed = False

        if not indexed:
            logger.error("Failed to index product", product_id=document.get("id"))
        if self.metrics:
            self.metrics.record_index("success" if indexed else "failure")
        return indexed

    async def reindex_product(self, product_id: str) -> bool:
        """Re-read a product from the store and schedule its indexing.

        Returns ``False`` when the product does not exist.
        """
        product = await self.find(product_id)
        if product is None:
            logger.warning("Product not found for reindex", product_id=product_id)
            return False

        self.index_product(product)
        return True

    async def health_check(self) -> Dict[str, bool]:
        """Reachability of both sources."""
        engine_ok, store_ok = await asyncio.gather(self.engine.ping(), self.store.health_check())
        return {"search_engine": bool(engine_ok), "database": bool(store_ok)}

    async def drain_index_tasks(self) -> None:
        """Wait for scheduled indexing to finish (shutdown, tests)."""
        if self._index_tasks:
            await asyncio.gather(*list(self._index_tasks), return_exceptions=True)
