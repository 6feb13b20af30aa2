"""Common utilities shared across the search core.

Includes:
- ``config``: Pydantic-based configuration from environment variables.
- ``logging``: structured logging setup with structlog.
- ``metrics``: Prometheus metrics helpers.
- ``circuit_breaker``: breaker guarding calls to the search engine.

Import pattern:
- from catalog_search.common.config import SearchConfig
- from catalog_search.common.logging import configure_logging
"""
