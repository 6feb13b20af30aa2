"""Shared fixtures and in-process fakes for the search capability boundaries."""

import copy
from typing import Any, Dict, List, Optional

import pytest
from prometheus_client import CollectorRegistry

from catalog_search.common.metrics import MetricsCollector
from catalog_search.relational_store.base import RelationalStore, StoreConnectionError
from catalog_search.search_engine.base import (
    EngineUnavailable,
    SearchEngineClient,
    SearchResult,
)
from catalog_search.service.cache_manager import Cache
from catalog_search.service.product_service import ProductService
from catalog_search.service.repository import ProductRepository


def make_product(product_id: str, **overrides: Any) -> Dict[str, Any]:
    """Build a product row shaped like the ``products`` table."""
    product = {
        "id": product_id,
        "title": f"Product {product_id}",
        "brand": "Acme",
        "price": 49.99,
        "currency": "USD",
        "stock": 25,
        "rating": 4.2,
        "popularity": 100,
        "category_id": "electronics",
        "seller_id": "seller-1",
        "attributes": {"color": "Blue"},
        "created_at": "2024-10-23T00:00:00",
    }
    product.update(overrides)
    return product


class FakeSearchEngine(SearchEngineClient):
    """Engine double returning a canned result or raising a canned error."""

    def __init__(self, result: Optional[SearchResult] = None, error: Optional[Exception] = None):
        self.result = result or SearchResult()
        self.error = error
        self.queries: List[Any] = []
        self.indexed: List[Dict[str, Any]] = []
        self.index_ok = True
        self.healthy = True

    async def execute(self, query):
        self.queries.append(query)
        if self.error is not None:
            raise self.error
        return self.result

    async def index(self, document):
        self.indexed.append(document)
        return self.index_ok

    async def ping(self):
        return self.healthy


class FakeStore(RelationalStore):
    """Store double filtering an in-memory list of rows."""

    def __init__(self, rows: Optional[List[Dict[str, Any]]] = None, error: Optional[Exception] = None):
        self.rows = rows or []
        self.error = error
        self.calls: List[Dict[str, Any]] = []
        self.healthy = True

    def _check(self) -> None:
        if self.error is not None:
            raise self.error

    async def query_by_filter(self, search=None, category_id=None, min_price=None, max_price=None, limit=20):
        self.calls.append({
            "search": search,
            "category_id": category_id,
            "min_price": min_price,
            "max_price": max_price,
            "limit": limit,
        })
        self._check()
        rows = sorted(self.rows, key=lambda row: row["id"])
        if search:
            needle = search.lower()
            rows = [r for r in rows if needle in r["title"].lower() or needle in (r["brand"] or "").lower()]
        if category_id:
            rows = [r for r in rows if r["category_id"] == category_id]
        return [copy.deepcopy(r) for r in rows[:limit]]

    async def read_by_id(self, product_id):
        self._check()
        for row in self.rows:
            if row["id"] == product_id:
                return copy.deepcopy(row)
        return None

    async def query_featured(self, limit=10):
        self._check()
        rows = [r for r in self.rows if r["stock"] > 0]
        rows.sort(key=lambda r: (-r["rating"], -r["popularity"], r["id"]))
        return [copy.deepcopy(r) for r in rows[:limit]]

    async def query_by_category(self, category_id, limit=10):
        self._check()
        rows = [r for r in self.rows if r["category_id"] == category_id and r["stock"] > 0]
        return [copy.deepcopy(r) for r in sorted(rows, key=lambda r: r["id"])[:limit]]

    async def health_check(self):
        return self.healthy


class FakeCache(Cache):
    """Dict-backed cache recording the TTL of every write."""

    def __init__(self):
        self.entries: Dict[str, Dict[str, Any]] = {}
        self.ttls: Dict[str, int] = {}

    async def get(self, key):
        value = self.entries.get(key)
        return copy.deepcopy(value) if value is not None else None

    async def put(self, key, value, ttl_seconds):
        self.entries[key] = copy.deepcopy(value)
        self.ttls[key] = ttl_seconds

    async def clear(self):
        count = len(self.entries)
        self.entries.clear()
        self.ttls.clear()
        return count


class CountingRepository(ProductRepository):
    """Repository that counts ``search`` calls."""

    def __init__(self, *args: Any, **kwargs: Any):
        super().__init__(*args, **kwargs)
        self.search_calls = 0

    async def search(self, criteria):
        self.search_calls += 1
        return await super().search(criteria)


@pytest.fixture
def products() -> List[Dict[str, Any]]:
    return [
        make_product("p-001", title="Galaxy Phone", brand="Samsung", price=699.0, stock=3),
        make_product("p-002", title="iPhone 15", brand="Apple", price=999.0, stock=0),
        make_product("p-003", title="Running Shoes", brand="Nike", price=89.5, category_id="clothing", stock=12),
        make_product("p-004", title="Phone Case", brand="Spigen", price=19.99, stock=40, rating=4.8),
        make_product("p-005", title="Trail Shoes", brand="Adidas", price=120.0, category_id="clothing", stock=60),
    ]


@pytest.fixture
def metrics() -> MetricsCollector:
    return MetricsCollector("test-search", registry=CollectorRegistry())


@pytest.fixture
def engine() -> FakeSearchEngine:
    return FakeSearchEngine()


@pytest.fixture
def store(products) -> FakeStore:
    return FakeStore(products)


@pytest.fixture
def cache() -> FakeCache:
    return FakeCache()


@pytest.fixture
def repository(engine, store, metrics) -> CountingRepository:
    return CountingRepository(engine, store, index_name="marketplace_products", metrics=metrics)


@pytest.fixture
def service(repository, cache, metrics) -> ProductService:
    return ProductService(repository, cache, metrics=metrics)


@pytest.fixture
def failing_engine() -> FakeSearchEngine:
    return FakeSearchEngine(error=EngineUnavailable("connection refused"))


@pytest.fixture
def failing_store() -> FakeStore:
    return FakeStore(error=StoreConnectionError("database is down"))
