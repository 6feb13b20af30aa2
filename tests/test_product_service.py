"""Tests for the product search service."""

import pytest

from catalog_search.search_engine.base import SearchResult
from catalog_search.service.facets import DEFAULT_FACETS
from catalog_search.service.models import SearchCriteria, SearchResponse
from catalog_search.service.product_service import DEGRADED_ERROR, ProductService

from .conftest import CountingRepository, FakeCache, FakeSearchEngine, FakeStore, make_product


class TestSanitizeSearchCriteria:
    """Raw request parameters are coerced, never rejected."""

    def test_defaults(self, service):
        assert service.sanitize_search_criteria({}) == SearchCriteria()
        assert service.sanitize_search_criteria(None) == SearchCriteria()

    def test_search_and_category_are_trimmed(self, service):
        criteria = service.sanitize_search_criteria({"search": "  phone  ", "category_id": "   "})
        assert criteria.search == "phone"
        assert criteria.category_id is None

    def test_prices_are_coerced(self, service):
        criteria = service.sanitize_search_criteria({"min_price": "-5", "max_price": "abc"})
        assert criteria.min_price == 0.0
        assert criteria.max_price == 0.0

        criteria = service.sanitize_search_criteria({"min_price": "10.5", "max_price": ""})
        assert criteria.min_price == 10.5
        assert criteria.max_price is None

    def test_inverted_price_range_is_swapped(self, service):
        criteria = service.sanitize_search_criteria({"min_price": 100, "max_price": 20})
        assert (criteria.min_price, criteria.max_price) == (20.0, 100.0)

    def test_unknown_sort_falls_back(self, service):
        criteria = service.sanitize_search_criteria({"sort_by": "name", "sort_direction": "sideways"})
        assert criteria.sort_by == "relevance"
        assert criteria.sort_direction == "desc"

        criteria = service.sanitize_search_criteria({"sort_by": "price", "sort_direction": "asc"})
        assert (criteria.sort_by, criteria.sort_direction) == ("price", "asc")

    @pytest.mark.parametrize("raw,expected", [
        ({"page": "0"}, 1),
        ({"page": "-3"}, 1),
        ({"page": "x"}, 1),
        ({"page": "4"}, 4),
    ])
    def test_page_is_clamped(self, service, raw, expected):
        assert service.sanitize_search_criteria(raw).page == expected

    @pytest.mark.parametrize("raw,expected", [
        ({"per_page": "0"}, 1),
        ({"per_page": "500"}, 50),
        ({"per_page": "20"}, 20),
        ({}, 15),
    ])
    def test_per_page_is_clamped(self, service, raw, expected):
        assert service.sanitize_search_criteria(raw).per_page == expected

    @pytest.mark.parametrize("raw", [
        None,
        {},
        {"search": None, "category_id": None, "min_price": None, "max_price": None, "page": None, "per_page": None},
        {"search": "", "category_id": "", "min_price": "", "max_price": "", "page": "", "per_page": ""},
        {"min_price": "abc", "max_price": "abc", "page": "abc", "per_page": "abc"},
        {"min_price": -5, "max_price": -5, "page": -5, "per_page": -5},
        {"min_price": "nan", "max_price": "inf", "page": "-inf", "per_page": "nan"},
        {"min_price": 10 ** 400, "max_price": 10 ** 400, "page": 10 ** 400, "per_page": 10 ** 400},
        {"min_price": [1], "max_price": {"a": 1}, "page": [2], "per_page": (3,)},
        {"min_price": True, "max_price": False, "page": True, "per_page": False},
        {"search": 42, "category_id": ["a"], "sort_by": 1, "sort_direction": None},
        {"search": " shoes ", "min_price": "90", "max_price": "30", "sort_by": "rating", "page": "2", "per_page": "999"},
        {"max_price": "49.5"},
        {"category_id": "   ", "search": "\t\n"},
    ])
    def test_total_and_idempotent(self, service, raw):
        """Any input sanitizes, and sanitizing again changes nothing."""
        once = service.sanitize_search_criteria(raw)

        assert once.page >= 1
        assert 1 <= once.per_page <= 50
        assert once.min_price >= 0
        assert once.max_price is None or once.min_price <= once.max_price
        assert service.sanitize_search_criteria(once) == once

    @pytest.mark.parametrize("field", ["page", "per_page", "min_price", "max_price"])
    def test_huge_integers_are_coerced(self, service, field):
        criteria = service.sanitize_search_criteria({field: 10 ** 400})
        assert criteria == service.sanitize_search_criteria({field: 0})


def test_cache_key_ignores_parameter_order(service):
    first = service.sanitize_search_criteria({"search": "phone", "page": 2, "category_id": "electronics"})
    second = service.sanitize_search_criteria({"category_id": "electronics", "page": "2", "search": "phone "})

    assert service.generate_cache_key(first) == service.generate_cache_key(second)
    assert service.generate_cache_key(first) != service.generate_cache_key(SearchCriteria())
    assert service.generate_cache_key(first).startswith("product_search:")


@pytest.mark.asyncio
async def test_search_products_shapes_engine_results(engine, service):
    engine.result = SearchResult(
        hits=[make_product("p-001", price=1234.5, stock=3), make_product("p-002", currency="EUR", stock=0)],
        total=47,
        took_ms=12,
    )

    response = await service.search_products({"search": "phone", "page": "4"})

    assert isinstance(response, SearchResponse)
    assert response.error is None
    assert response.total == 47
    assert response.took == 12
    assert [product.id for product in response.products] == ["p-001", "p-002"]

    first, second = response.products
    assert first.price.formatted == "$1,234.50"
    assert first.stock_status == "low_stock"
    assert first.availability is True
    assert second.price.formatted == "€49.99"
    assert second.stock_status == "out_of_stock"
    assert second.availability is False

    assert response.pagination.current_page == 4
    assert response.pagination.last_page == 4
    assert response.pagination.from_ == 46
    assert response.pagination.to == 47
    assert response.filters.to_dict() == DEFAULT_FACETS


@pytest.mark.asyncio
async def test_search_products_served_from_cache(engine, repository, cache, service, metrics):
    """Equivalent requests resolve against the backends once."""
    engine.result = SearchResult(hits=[make_product("p-001")], total=1, took_ms=3)

    first = await service.search_products({"search": "phone", "sort_by": "price"})
    second = await service.search_products({"sort_by": "price", "search": " phone"})

    assert repository.search_calls == 1
    assert second == first
    assert list(cache.ttls.values()) == [300]
    assert metrics.cache_hits.labels(cache_type="search")._value.get() == 1
    assert metrics.cache_misses.labels(cache_type="search")._value.get() == 1


@pytest.mark.asyncio
async def test_search_products_fallback(failing_engine, store, cache):
    repository = CountingRepository(failing_engine, store)
    service = ProductService(repository, cache)

    response = await service.search_products({"search": "shoes"})

    assert response.error is None
    assert response.took == 0
    assert [product.id for product in response.products] == ["p-003", "p-005"]


@pytest.mark.asyncio
async def test_search_products_degraded(failing_engine, failing_store, cache, metrics):
    """Both backends down -> empty success-shaped response, cached."""
    repository = CountingRepository(failing_engine, failing_store)
    service = ProductService(repository, cache, degraded_cache_ttl=30, metrics=metrics)

    response = await service.search_products({"search": "phone", "page": 3})

    assert response.is_degraded
    assert response.error == DEGRADED_ERROR
    assert response.products == []
    assert response.total == 0
    assert response.pagination.current_page == 3
    assert response.pagination.last_page == 1
    assert response.pagination.from_ is None
    assert response.filters.to_dict() == DEFAULT_FACETS

    key = service.generate_cache_key(service.sanitize_search_criteria({"search": "phone", "page": 3}))
    assert cache.entries[key]["error"] == DEGRADED_ERROR
    assert cache.ttls[key] == 30

    again = await service.search_products({"search": "phone", "page": 3})
    assert again.error == DEGRADED_ERROR
    assert repository.search_calls == 1


@pytest.mark.asyncio
async def test_custom_currency_symbols(engine, repository, cache):
    service = ProductService(repository, cache, currency_symbols={"JPY": "¥"})
    engine.result = SearchResult(hits=[make_product("p-001", price=1500, currency="JPY")], total=1)

    response = await service.search_products({})

    assert response.products[0].price.formatted == "¥1,500.00"


@pytest.mark.asyncio
async def test_get_featured_products(service, cache):
    featured = await service.get_featured_products(limit=2)

    assert [product.id for product in featured] == ["p-004", "p-001"]
    assert all(product.availability for product in featured)
    assert len(cache.entries) == 1

    cached = await service.get_featured_products(limit=2)
    assert cached == featured


@pytest.mark.asyncio
async def test_get_featured_products_store_down(engine, failing_store, cache):
    service = ProductService(CountingRepository(engine, failing_store), cache)

    assert await service.get_featured_products() == []
    assert cache.entries == {}


@pytest.mark.asyncio
async def test_get_product_by_id(service):
    product = await service.get_product_by_id("p-005")
    assert product.title == "Trail Shoes"
    assert product.stock_status == "in_stock"

    assert await service.get_product_by_id("missing") is None


@pytest.mark.asyncio
async def test_get_products_by_category(engine, service, failing_store, cache):
    products = await service.get_products_by_category("clothing")
    assert [product.id for product in products] == ["p-003", "p-005"]

    broken = ProductService(CountingRepository(engine, failing_store), cache)
    assert await broken.get_products_by_category("clothing") == []


@pytest.mark.asyncio
async def test_health_check(engine, service):
    health = await service.health_check()
    assert health == {
        "status": "healthy",
        "services": {"search_engine": "healthy", "database": "healthy"},
    }

    engine.healthy = False
    health = await service.health_check()
    assert health["status"] == "degraded"
    assert health["services"]["search_engine"] == "degraded"


@pytest.mark.asyncio
async def test_flush_cache(service, cache):
    await service.search_products({"search": "phone"})
    assert await service.flush_cache() == 1
    assert cache.entries == {}


@pytest.mark.asyncio
async def test_cached_response_round_trips():
    """A response read back from the cache equals the one computed."""
    engine = FakeSearchEngine(SearchResult(hits=[make_product("p-1", attributes={"size": "M"})], total=1))
    cache = FakeCache()
    service = ProductService(CountingRepository(engine, FakeStore()), cache)

    computed = await service.search_products({"search": "shirt", "max_price": "80"})
    stored = SearchResponse.from_dict(next(iter(cache.entries.values())))

    assert stored == computed
    assert stored.pagination.query_params == {"search": "shirt", "max_price": 80}


@pytest.mark.asyncio
async def test_create_product_service_from_config(tmp_path):
    """The factory wires every adapter from configuration."""
    from catalog_search.common.config import SearchConfig
    from catalog_search.relational_store.postgres import PostgresProductStore
    from catalog_search.search_engine.opensearch import OpenSearchEngineClient
    from catalog_search.service.cache_manager import SearchCacheManager
    from catalog_search.service.factory import create_product_service

    facets_file = tmp_path / "facets.json"
    facets_file.write_text('{"brands": [{"name": "Acme", "count": 2}]}', encoding="utf-8")
    config = SearchConfig(
        catalog_opensearch_index="products_test",
        search_cache_ttl=60,
        search_fallback_limit=5,
        catalog_facets_file=str(facets_file),
    )

    service = create_product_service(config)

    assert isinstance(service.repository.engine, OpenSearchEngineClient)
    assert isinstance(service.repository.store, PostgresProductStore)
    assert isinstance(service.cache, SearchCacheManager)
    assert service.repository.index_name == "products_test"
    assert service.repository.fallback_limit == 5
    assert service.cache_ttl == 60
    assert service.facets.brands == [{"name": "Acme", "count": 2}]

    await service.repository.engine.close()
    await service.cache.close()


@pytest.mark.asyncio
async def test_search_products_survives_huge_numbers(engine, service):
    engine.result = SearchResult(hits=[make_product("p-001")], total=1)

    response = await service.search_products({"page": 10 ** 400, "per_page": 10 ** 400, "min_price": 10 ** 400})

    assert response.error is None
    assert response.pagination.current_page == 1
    assert response.pagination.per_page == 1


@pytest.mark.asyncio
async def test_responses_do_not_share_facets(engine, service):
    """Mutating one response's filters leaves later responses intact."""
    first = await service.search_products({"search": "phone"})
    first.filters.brands.append({"name": "Injected", "count": 1})
    first.filters.categories[0]["count"] = -1

    second = await service.search_products({"search": "case"})
    degraded = service.build_degraded_response(SearchCriteria())

    assert second.filters.to_dict() == DEFAULT_FACETS
    assert degraded.filters.to_dict() == DEFAULT_FACETS
    assert service.facets.to_dict() == DEFAULT_FACETS
