"""Base relational store interface.

The durable product store is the secondary resolution path for searches and
the source of truth for id lookups and featured listings. Rows are plain
dicts with the product columns (``id``, ``title``, ``brand``, ``price``,
``currency``, ``stock``, ``rating``, ``popularity``, ``category_id``,
``seller_id``, ``attributes``, ``created_at``).
"""

from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional


class RelationalStore(ABC):
    """Abstract base class for the relational product store."""

    @abstractmethod
    async def query_by_filter(
        self,
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: int = 20
    ) -> List[Dict[str, Any]]:
        """Filtered scan.

        ``search`` matches title or brand case-insensitively as a substring;
        ``category_id`` is an exact match; price bounds are inclusive and
        omitted when ``None``. Rows come back in primary-key order.
        """
        pass

    @abstractmethod
    async def read_by_id(self, product_id: str) -> Optional[Dict[str, Any]]:
        """Fetch one product row, or ``None`` when it doesn't exist."""
        pass

    @abstractmethod
    async def query_featured(self, limit: int = 10) -> List[Dict[str, Any]]:
        """In-stock products ordered by rating, then popularity."""
        pass

    @abstractmethod
    async def query_by_category(self, category_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        """In-stock products of one category in primary-key order."""
        pass

    @abstractmethod
    async def health_check(self) -> bool:
        """Check if the store is reachable."""
        pass


class StoreError(Exception):
    """Base exception for relational store operations."""
    pass


class StoreConnectionError(StoreError):
    """Connection error to the relational store."""
    pass


class StoreQueryError(StoreError):
    """Query error in the relational store."""
    pass
