"""Wiring helpers for the product search service.

Centralizes creation of the concrete adapters (OpenSearch, PostgreSQL,
Redis) so callers depend only on ``ProductService``.
"""

from typing import Optional

import structlog

from ..common.config import SearchConfig
from ..common.metrics import MetricsCollector
from ..relational_store.postgres import PostgresProductStore
from ..search_engine.opensearch import OpenSearchEngineClient
from .cache_manager import SearchCacheManager
from .facets import load_facet_set
from .product_service import ProductService
from .repository import ProductRepository

logger = structlog.get_logger("search_service.factory")


def create_search_engine(config: SearchConfig) -> OpenSearchEngineClient:
    """Create the OpenSearch client from configuration."""
    return OpenSearchEngineClient(
        hosts=config.opensearch_hosts(),
        index_name=config.catalog_opensearch_index,
        username=config.catalog_opensearch_username,
        password=config.catalog_opensearch_password,
        verify_certs=config.catalog_opensearch_verify_certs,
        timeout=config.catalog_opensearch_timeout,
        failure_threshold=config.catalog_engine_failure_threshold,
        recovery_timeout=config.catalog_engine_recovery_timeout,
    )


def create_relational_store(config: SearchConfig) -> PostgresProductStore:
    """Create the PostgreSQL product store from configuration."""
    return PostgresProductStore(
        dsn=config.catalog_db_dsn,
        pool_size=config.catalog_db_pool_size,
        command_timeout=config.catalog_db_command_timeout,
    )


def create_product_service(
    config: Optional[SearchConfig] = None,
    metrics: Optional[MetricsCollector] = None,
) -> ProductService:
    """Build a ``ProductService`` backed by OpenSearch, PostgreSQL and Redis."""
    config = config or SearchConfig()

    repository = ProductRepository(
        engine=create_search_engine(config),
        store=create_relational_store(config),
        index_name=config.catalog_opensearch_index,
        fallback_limit=config.search_fallback_limit,
        metrics=metrics,
    )

    service = ProductService(
        repository=repository,
        cache=SearchCacheManager(config.catalog_redis_url),
        facets=load_facet_set(config.catalog_facets_file),
        currency_symbols=config.catalog_currency_symbols,
        cache_ttl=config.search_cache_ttl,
        degraded_cache_ttl=config.search_degraded_cache_ttl,
        base_url=config.search_base_url,
        default_per_page=config.search_default_per_page,
        max_per_page=config.search_max_per_page,
        featured_limit=config.search_featured_limit,
        metrics=metrics,
    )

    logger.info(
        "Product service created",
        index=config.catalog_opensearch_index,
        cache_ttl=config.search_cache_ttl,
        env=config.catalog_env,
    )
    return service
