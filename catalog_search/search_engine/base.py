"""Base search engine interface.

Defines the contract the product repository depends on, independent of the
backing engine (OpenSearch, Elasticsearch, ...).

All methods are asynchronous so they can share the caller's event loop.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from .query_builder import Query


@dataclass(frozen=True)
class SearchResult:
    """Raw resolution output before business shaping.

    ``hits`` are product documents in the order the source returned them;
    ``source`` names the backend that produced them.
    """
    hits: List[Dict[str, Any]] = field(default_factory=list)
    total: int = 0
    took_ms: int = 0
    source: str = "engine"


class SearchEngineClient(ABC):
    """Abstract base class for full-text search engines.

    Implementations translate transport failures into ``EngineUnavailable``
    and rejected queries into ``EngineQueryError``; nothing else escapes
    ``execute``.
    """

    @abstractmethod
    async def execute(self, query: "Query") -> SearchResult:
        """Execute a query.

        Returns
        - ``SearchResult`` with hits in engine order (score or sort key)

        Raises
        - ``EngineUnavailable`` when the engine cannot be reached
        - ``EngineQueryError`` when the engine rejects the query
        """
        pass

    @abstractmethod
    async def index(self, document: Dict[str, Any]) -> bool:
        """Index a product document.

        Returns ``True`` on success, ``False`` on failure. Never raises and
        is never retried.
        """
        pass

    @abstractmethod
    async def ping(self) -> bool:
        """Check if the engine is reachable."""
        pass


class SearchEngineError(Exception):
    """Base exception for search engine operations."""
    pass


class EngineUnavailable(SearchEngineError):
    """The engine is unreachable or refused service."""
    pass


class EngineQueryError(SearchEngineError):
    """The engine rejected the query as malformed."""

    def __init__(self, message: str, query: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.query = query or {}
