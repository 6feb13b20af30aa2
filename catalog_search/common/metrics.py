"""Metrics collection for the catalog search core.

Thin convenience wrapper around ``prometheus_client`` so the repository and
service record search, fallback, cache and indexing metrics consistently.

Design notes
- Metrics and labels are predeclared to keep cardinality bounded
- Each collector owns its registry (inject one for testing)
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
import structlog

logger = structlog.get_logger("metrics")


class MetricsCollector:
    """Centralized metrics collection for product search.

    Parameters
    - service_name: Logical name of the owning service
    - registry: Optional custom ``CollectorRegistry`` (e.g. for testing)
    """

    def __init__(self, service_name: str, registry: Optional[CollectorRegistry] = None):
        self.service_name = service_name
        self.registry = registry or CollectorRegistry()

        self.search_requests = Counter(
            'catalog_search_requests_total',
            'Total product search requests by result source',
            ['source'],
            registry=self.registry
        )

        self.search_duration = Histogram(
            'catalog_search_duration_seconds',
            'Product search duration by result source',
            ['source'],
            registry=self.registry
        )

        self.engine_fallbacks = Counter(
            'catalog_search_engine_fallbacks_total',
            'Searches served by the relational fallback',
            ['reason'],
            registry=self.registry
        )

        self.cache_hits = Counter(
            'catalog_cache_hits_total',
            'Total cache hits',
            ['cache_type'],
            registry=self.registry
        )

        self.cache_misses = Counter(
            'catalog_cache_misses_total',
            'Total cache misses',
            ['cache_type'],
            registry=self.registry
        )

        self.index_operations = Counter(
            'catalog_index_operations_total',
            'Search engine document indexing attempts',
            ['status'],
            registry=self.registry
        )

    def record_search(self, source: str, duration: float) -> None:
        """Record a resolved search.

        ``source`` is one of ``engine``, ``fallback``, ``cache`` or
        ``degraded``; duration is in seconds.
        """
        self.search_requests.labels(source=source).inc()
        self.search_duration.labels(source=source).observe(duration)

    def record_fallback(self, reason: str) -> None:
        """Record a switch from the engine to the relational store."""
        self.engine_fallbacks.labels(reason=reason).inc()

    def record_cache_hit(self, cache_type: str) -> None:
        """Record cache hit."""
        self.cache_hits.labels(cache_type=cache_type).inc()

    def record_cache_miss(self, cache_type: str) -> None:
        """Record cache miss."""
        self.cache_misses.labels(cache_type=cache_type).inc()

    def record_index(self, status: str) -> None:
        """Record the outcome of a document indexing attempt."""
        self.index_operations.labels(status=status).inc()

    def get_metrics(self) -> str:
        """Get metrics in Prometheus exposition format for scraping."""
        return generate_latest(self.registry).decode('utf-8')


_metrics_collector: Optional[MetricsCollector] = None


def get_metrics_collector(service_name: str) -> MetricsCollector:
    """Get or create the process-wide metrics collector."""
    global _metrics_collector
    if _metrics_collector is None:
        _metrics_collector = MetricsCollector(service_name)
    return _metrics_collector
