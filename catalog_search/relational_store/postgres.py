"""PostgreSQL implementation of the relational product store.

Reads the ``products`` table owned by the catalog database. Schema and
migrations live with the application that owns the database; this adapter
only issues read queries.

Connection management
- A shared asyncpg pool is created on demand and reused across calls
- Queries are funneled through ``_fetch`` for uniform error handling
"""

import json
from datetime import datetime
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

import asyncpg
import structlog
from asyncpg import Pool

from .base import RelationalStore, StoreConnectionError, StoreQueryError

logger = structlog.get_logger("relational_store.postgres")


PRODUCT_COLUMNS = (
    "id, title, brand, category_id, price, currency, stock, seller_id, "
    "rating, popularity, attributes, created_at"
)


def _escape_like(term: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return term.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class PostgresProductStore(RelationalStore):
    """asyncpg-backed product store."""

    def __init__(
        self,
        dsn: str,
        pool_size: int = 10,
        command_timeout: int = 30,
        table: str = "products",
    ):
        """Configure a PostgreSQL-backed product store.

        Parameters
        - dsn: PostgreSQL DSN including database and credentials
        - pool_size: Max size of the asyncpg connection pool
        - command_timeout: Seconds to allow per DB command
        - table: Products table name
        """
        self.dsn = dsn
        self.pool_size = pool_size
        self.command_timeout = command_timeout
        self.table = table
        self._pool: Optional[Pool] = None

    async def _get_pool(self) -> Pool:
        """Get or lazily create the connection pool."""
        if self._pool is None:
            try:
                self._pool = await asyncpg.create_pool(
                    self.dsn,
                    min_size=1,
                    max_size=self.pool_size,
                    command_timeout=self.command_timeout,
                )
                logger.info("Created PostgreSQL connection pool", pool_size=self.pool_size)
            except Exception as e:
                logger.error("Failed to create PostgreSQL connection pool", error=str(e))
                raise StoreConnectionError(f"Failed to create connection pool: {e}") from e

        return self._pool

    async def _fetch(self, query: str, *args: Any) -> List[asyncpg.Record]:
        """Run a read query; failures are wrapped in ``StoreQueryError``."""
        pool = await self._get_pool()
        try:
            async with pool.acquire() as conn:
                return await conn.fetch(query, *args)
        except (OSError, asyncpg.exceptions.ConnectionDoesNotExistError) as e:
            logger.error("PostgreSQL connection lost", error=str(e))
            raise StoreConnectionError(f"Connection failed: {e}") from e
        except Exception as e:
            logger.error("Query execution failed", query=query, error=str(e))
            raise StoreQueryError(f"Query failed: {e}") from e

    @staticmethod
    def build_filter_query(
        table: str,
        search: Optional[str],
        category_id: Optional[str],
        min_price: Optional[float],
        max_price: Optional[float],
        limit: int
    ) -> Tuple[str, List[Any]]:
        """Compose the fallback search SQL and its positional arguments."""
        conditions: List[str] = []
        args: List[Any] = []

        if search:
            args.append(f"%{_escape_like(search)}%")
            conditions.append(f"(title ILIKE ${len(args)} OR brand ILIKE ${len(args)})")

        if category_id:
            args.append(category_id)
            conditions.append(f"category_id::text = ${len(args)}")

        if min_price is not None:
            args.append(float(min_price))
            conditions.append(f"price >= ${len(args)}::float8")

        if max_price is not None:
            args.append(float(max_price))
            conditions.append(f"price <= ${len(args)}::float8")

        args.append(limit)
        where = f"WHERE {' AND '.join(conditions)} " if conditions else ""
        query = f"SELECT {PRODUCT_COLUMNS} FROM {table} {where}ORDER BY id LIMIT ${len(args)}"
        return query, args

    async def query_by_filter(
        self,
        search: Optional[str] = None,
        category_id: Optional[str] = None,
        min_price: Optional[float] = None,
        max_price: Optional[float] = None,
        limit: int = 20
    ) -> List[Dict[str, Any]]:
        query, args = self.build_filter_query(self.table, search, category_id, min_price, max_price, limit)
        rows = await self._fetch(query, *args)
        return [self._row_to_product(row) for row in rows]

    async def read_by_id(self, product_id: str) -> Optional[Dict[str, Any]]:
        rows = await self._fetch(
            f"SELECT {PRODUCT_COLUMNS} FROM {self.table} WHERE id::text = $1",
            product_id
        )
        return self._row_to_product(rows[0]) if rows else None

    async def query_featured(self, limit: int = 10) -> List[Dict[str, Any]]:
        rows = await self._fetch(
            f"SELECT {PRODUCT_COLUMNS} FROM {self.table} WHERE stock > 0 "
            "ORDER BY rating DESC, popularity DESC, id LIMIT $1",
            limit
        )
        return [self._row_to_product(row) for row in rows]

    async def query_by_category(self, category_id: str, limit: int = 10) -> List[Dict[str, Any]]:
        rows = await self._fetch(
            f"SELECT {PRODUCT_COLUMNS} FROM {self.table} "
            "WHERE category_id::text = $1 AND stock > 0 ORDER BY id LIMIT $2",
            category_id,
            limit
        )
        return [self._row_to_product(row) for row in rows]

    async def health_check(self) -> bool:
        """Check database connectivity."""
        try:
            pool = await self._get_pool()
            async with pool.acquire() as conn:
                await conn.fetchval("SELECT 1")
            return True
        except Exception as e:
            logger.error("PostgreSQL health check failed", error=str(e))
            return False

    @staticmethod
    def _row_to_product(row: Any) -> Dict[str, Any]:
        """Convert a record into a JSON-friendly product dict."""
        product = dict(row)

        for key in ("id", "category_id", "seller_id"):
            if product.get(key) is not None:
                product[key] = str(product[key])

        for key in ("price", "rating"):
            if isinstance(product.get(key), Decimal):
                product[key] = float(product[key])

        attributes = product.get("attributes")
        if isinstance(attributes, str):
            product["attributes"] = json.loads(attributes)
        elif attributes is None:
            product["attributes"] = {}

        if isinstance(product.get("created_at"), datetime):
            product["created_at"] = product["created_at"].isoformat()

        return product

    async def close(self) -> None:
        """Close the connection pool."""
        if self._pool is not None:
            await self._pool.close()
            self._pool = None
            logger.info("PostgreSQL connection pool closed")
