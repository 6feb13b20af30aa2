"""Product catalog search.

Subpackages:
- ``catalog_search.common``: configuration, logging, metrics, circuit breaker.
- ``catalog_search.search_engine``: search engine contract, query builder and
  the OpenSearch adapter.
- ``catalog_search.relational_store``: relational store contract and the
  PostgreSQL adapter.
- ``catalog_search.service``: repository with engine/store fallback, the
  product service (sanitize, cache, transform, paginate) and wiring helpers.

Usage:
- Build a ready-to-use service with
  ``catalog_search.service.factory.create_product_service(SearchConfig())``.
"""

__version__ = "0.1.0"
