"""Facet set attached to every search response.

The counts are precomputed catalog figures, not derived from the current
result page. A deployment can replace them with a JSON file
(``CATALOG_FACETS_FILE``) shaped like ``DEFAULT_FACETS``.
"""

import copy
from typing import Any, Dict, Optional

import structlog

from ..common.config import load_json_file
from .models import FacetSet

logger = structlog.get_logger("search_service.facets")


DEFAULT_FACETS: Dict[str, Any] = {
    "categories": [
        {"id": "electronics", "name": "Electronics", "count": 150},
        {"id": "clothing", "name": "Clothing", "count": 80},
        {"id": "books", "name": "Books", "count": 45},
        {"id": "home", "name": "Home & Garden", "count": 92},
    ],
    "brands": [
        {"name": "Apple", "count": 45},
        {"name": "Samsung", "count": 38},
        {"name": "Nike", "count": 22},
        {"name": "Adidas", "count": 18},
    ],
    "price_ranges": [
        {"min": 0, "max": 25, "label": "Under $25", "count": 120},
        {"min": 25, "max": 50, "label": "$25 - $50", "count": 85},
        {"min": 50, "max": 100, "label": "$50 - $100", "count": 65},
        {"min": 100, "max": 200, "label": "$100 - $200", "count": 40},
        {"min": 200, "max": None, "label": "Over $200", "count": 25},
    ],
    "ratings": [
        {"min": 4, "label": "4+ Stars", "count": 180},
        {"min": 3, "label": "3+ Stars", "count": 250},
        {"min": 2, "label": "2+ Stars", "count": 300},
    ],
    "availability": [
        {"key": "in_stock", "label": "In Stock", "count": 285},
        {"key": "out_of_stock", "label": "Out of Stock", "count": 15},
    ],
}


def default_facet_set() -> FacetSet:
    return FacetSet.from_dict(copy.deepcopy(DEFAULT_FACETS))


def load_facet_set(path: Optional[str] = None) -> FacetSet:
    """Load the facet set from ``path``, falling back to the defaults."""
    if not path:
        return default_facet_set()

    data = load_json_file(path)
    if not data:
        logger.warning("Facet file missing or empty, using defaults", path=path)
        return default_facet_set()

    logger.info("Loaded facet set", path=path)
    return FacetSet.from_dict(data)
