"""Business transformations applied to raw product documents."""

import math
from typing import Any, Dict, Mapping, Optional

from ..common.config import DEFAULT_CURRENCY_SYMBOLS
from .models import Price, ProductSummary

OUT_OF_STOCK = "out_of_stock"
LOW_STOCK = "low_stock"
LIMITED_STOCK = "limited_stock"
IN_STOCK = "in_stock"


def get_stock_status(stock: int) -> str:
    """Map an inventory count to its stock status label."""
    if stock <= 0:
        return OUT_OF_STOCK
    if stock <= 5:
        return LOW_STOCK
    if stock <= 20:
        return LIMITED_STOCK
    return IN_STOCK


def format_price(
    amount: float,
    currency: str,
    symbols: Optional[Mapping[str, str]] = None
) -> str:
    """Format ``amount`` with two decimals behind the currency symbol.

    Unknown currency codes are printed verbatim as the prefix.

    >>> format_price(99.99, "USD")
    '$99.99'
    >>> format_price(10, "XYZ")
    'XYZ10.00'
    """
    table = DEFAULT_CURRENCY_SYMBOLS if symbols is None else symbols
    symbol = table.get(currency, currency)
    return f"{symbol}{float(amount):,.2f}"


def _as_float(value: Any) -> float:
    try:
        number = float(value)
    except (TypeError, ValueError, OverflowError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def _as_int(value: Any) -> int:
    return int(_as_float(value))


def transform_product(
    product: Dict[str, Any],
    symbols: Optional[Mapping[str, str]] = None,
    default_currency: str = "USD"
) -> ProductSummary:
    """Shape a raw engine hit or store row into a ``ProductSummary``."""
    amount = _as_float(product.get("price"))
    currency = product.get("currency") or default_currency
    stock = _as_int(product.get("stock"))

    return ProductSummary(
        id=str(product.get("id")),
        title=product.get("title", ""),
        brand=product.get("brand"),
        price=Price(
            amount=amount,
            currency=currency,
            formatted=format_price(amount, currency, symbols),
        ),
        rating=_as_float(product.get("rating")),
        stock_status=get_stock_status(stock),
        availability=stock > 0,
        popularity=_as_int(product.get("popularity")),
        category_id=product.get("category_id"),
        seller_id=product.get("seller_id"),
        attributes=dict(product.get("attributes") or {}),
        created_at=product.get("created_at"),
    )
