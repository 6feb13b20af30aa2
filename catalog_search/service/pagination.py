"""Pagination metadata and canonical page links."""

import math
from typing import Any, Dict, Optional
from urllib.parse import urlencode

from .models import PaginationLinks, PaginationMeta, SearchCriteria


def _plain_number(value: float) -> Any:
    """Render whole floats as ints so ``10.0`` appears as ``10`` in URLs."""
    return int(value) if float(value).is_integer() else value


def build_query_params(criteria: SearchCriteria, default_per_page: int = 15) -> Dict[str, Any]:
    """Criteria as query parameters, omitting values equal to their default."""
    params: Dict[str, Any] = {}

    if criteria.search:
        params["search"] = criteria.search
    if criteria.category_id:
        params["category_id"] = criteria.category_id
    if criteria.min_price:
        params["min_price"] = _plain_number(criteria.min_price)
    if criteria.max_price is not None:
        params["max_price"] = _plain_number(criteria.max_price)
    if criteria.sort_by != "relevance":
        params["sort_by"] = criteria.sort_by
    if criteria.sort_direction != "desc":
        params["sort_direction"] = criteria.sort_direction
    if criteria.per_page != default_per_page:
        params["per_page"] = criteria.per_page

    return params


def build_page_url(base_url: str, page: int, params: Dict[str, Any]) -> str:
    return f"{base_url}?{urlencode({**params, 'page': page})}"


def build_pagination_meta(
    criteria: SearchCriteria,
    total: int,
    base_url: str = "",
    default_per_page: int = 15
) -> PaginationMeta:
    """Compute the page window for ``total`` results.

    >>> meta = build_pagination_meta(SearchCriteria(page=4), 47)
    >>> (meta.last_page, meta.from_, meta.to, meta.has_more_pages)
    (4, 46, 47, False)
    """
    page = criteria.page
    per_page = criteria.per_page

    last_page = math.ceil(total / per_page) if total > 0 else 1
    from_item: Optional[int] = (page - 1) * per_page + 1 if total > 0 else None
    to_item: Optional[int] = min(page * per_page, total) if total > 0 else None

    params = build_query_params(criteria, default_per_page)

    return PaginationMeta(
        current_page=page,
        per_page=per_page,
        total=total,
        last_page=last_page,
        from_=from_item,
        to=to_item,
        has_more_pages=page < last_page,
        links=PaginationLinks(
            first=build_page_url(base_url, 1, params),
            last=build_page_url(base_url, last_page, params),
            prev=build_page_url(base_url, page - 1, params) if page > 1 else None,
            next=build_page_url(base_url, page + 1, params) if page < last_page else None,
        ),
        path=base_url,
        query_params=params,
    )
