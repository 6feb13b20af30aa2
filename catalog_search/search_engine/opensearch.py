"""OpenSearch implementation of the search engine contract."""

from typing import Any, Dict, List, Optional

import structlog
from opensearchpy import AsyncOpenSearch, exceptions

from ..common.circuit_breaker import CircuitBreaker, CircuitBreakerError
from .base import (
    EngineQueryError,
    EngineUnavailable,
    SearchEngineClient,
    SearchResult,
)
from .query_builder import Query

logger = structlog.get_logger("search_engine.opensearch")


PRODUCT_INDEX_MAPPING: Dict[str, Any] = {
    "mappings": {
        "properties": {
            "id": {"type": "keyword"},
            "title": {
                "type": "text",
                "analyzer": "standard",
                "fields": {
                    "keyword": {"type": "keyword", "ignore_above": 256}
                }
            },
            "description": {"type": "text", "analyzer": "standard"},
            "brand": {"type": "keyword"},
            "category_id": {"type": "keyword"},
            "seller_id": {"type": "keyword"},
            "price": {"type": "float"},
            "currency": {"type": "keyword"},
            "rating": {"type": "float"},
            "stock": {"type": "integer"},
            "popularity": {"type": "integer"},
            "attributes": {"type": "object", "dynamic": True},
            "created_at": {
                "type": "date",
                "format": "strict_date_optional_time||yyyy-MM-dd HH:mm:ss||yyyy-MM-dd||epoch_millis"
            }
        }
    },
    "settings": {
        "index": {
            "number_of_shards": 1,
            "number_of_replicas": 0
        }
    }
}


class OpenSearchEngineClient(SearchEngineClient):
    """OpenSearch-backed product search engine."""

    def __init__(
        self,
        hosts: List[str],
        index_name: str = "marketplace_products",
        username: Optional[str] = None,
        password: Optional[str] = None,
        verify_certs: bool = False,
        timeout: int = 30,
        failure_threshold: int = 5,
        recovery_timeout: float = 60.0,
        client: Optional[AsyncOpenSearch] = None,
    ):
        """Initialize the OpenSearch client.

        Args:
            hosts: List of OpenSearch host URLs
            index_name: Products index name
            username: OpenSearch username
            password: OpenSearch password
            verify_certs: Whether to verify SSL certificates
            timeout: Per-request timeout in seconds
            failure_threshold: Consecutive outages before the breaker opens
            recovery_timeout: Seconds before the breaker lets a probe through
            client: Pre-built client (tests, shared connection pools)
        """
        self.hosts = hosts
        self.index_name = index_name

        self.client = client or AsyncOpenSearch(
            hosts=hosts,
            http_auth=(username, password) if username and password else None,
            verify_certs=verify_certs,
            ssl_assert_hostname=False,
            ssl_show_warn=False,
            use_ssl=hosts[0].startswith("https"),
            timeout=timeout,
        )

        self.circuit_breaker = CircuitBreaker(
            failure_threshold=failure_threshold,
            recovery_timeout=recovery_timeout,
            expected_exception=EngineUnavailable,
            name="opensearch",
        )

    async def ensure_index(self) -> None:
        """Create the products index with its mapping if it doesn't exist."""
        try:
            if not await self.client.indices.exists(index=self.index_name):
                await self.client.indices.create(index=self.index_name, body=PRODUCT_INDEX_MAPPING)
                logger.info("OpenSearch index created", index_name=self.index_name)
        except Exception as e:
            logger.error("Failed to create OpenSearch index", index_name=self.index_name, error=str(e))
            raise

    async def execute(self, query: Query) -> SearchResult:
        """Execute a search query through the circuit breaker."""
        try:
            response = await self.circuit_breaker.call(self._search, query)
        except CircuitBreakerError as e:
            raise EngineUnavailable(str(e)) from e

        return self._format_response(response)

    async def _search(self, query: Query) -> Dict[str, Any]:
        request = query.to_dict()
        logger.debug("OpenSearch query", index=request["index"], body=request["body"])

        try:
            return await self.client.search(index=request["index"], body=request["body"])
        except exceptions.ConnectionError as e:
            logger.error("OpenSearch connection failed", hosts=self.hosts, error=str(e))
            raise EngineUnavailable(f"OpenSearch connection failed: {e}") from e
        except exceptions.RequestError as e:
            logger.error("OpenSearch rejected query", error=str(e), query=request)
            raise EngineQueryError(f"Invalid search query: {e.error}", query=request) from e
        except exceptions.TransportError as e:
            if isinstance(e.status_code, int) and 400 <= e.status_code < 500 and e.status_code != 404:
                logger.error("OpenSearch rejected query", status=e.status_code, error=str(e))
                raise EngineQueryError(f"Invalid search query: {e.error}", query=request) from e
            logger.error("OpenSearch search failed", status=e.status_code, error=str(e))
            raise EngineUnavailable(f"OpenSearch search failed: {e}") from e

    @staticmethod
    def _format_response(response: Dict[str, Any]) -> SearchResult:
        hits = response.get("hits", {})
        total = hits.get("total", 0)
        if isinstance(total, dict):
            total = total.get("value", 0)

        return SearchResult(
            hits=[hit.get("_source", {}) for hit in hits.get("hits", [])],
            total=int(total),
            took_ms=int(response.get("took", 0)),
        )

    async def index(self, document: Dict[str, Any]) -> bool:
        """Index a product document; failures are logged, never raised."""
        product_id = document.get("id", "unknown")
        try:
            await self.client.index(
                index=self.index_name,
                id=product_id,
                body=document
            )
            logger.info("Product indexed in OpenSearch", product_id=product_id)
            return True
        except Exception as e:
            logger.error("Failed to index product", product_id=product_id, error=str(e))
            return False

    async def ping(self) -> bool:
        """Check if OpenSearch answers."""
        try:
            return bool(await self.client.ping())
        except Exception as e:
            logger.error("OpenSearch ping failed", error=str(e))
            return False

    async def close(self) -> None:
        """Close the OpenSearch client connection."""
        try:
            await self.client.close()
            logger.info("OpenSearch client connection closed")
        except Exception as e:
            logger.error("Failed to close OpenSearch client", error=str(e))
