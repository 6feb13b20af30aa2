"""Product search service.

Primary components:
- ``models``: criteria, product summaries, pagination and response values.
- ``repository``: engine-first resolution with relational fallback.
- ``product_service``: sanitize, cache, transform and paginate searches.
- ``cache_manager``: cache contract and the Redis implementation.
- ``factory``: wiring of concrete adapters from ``SearchConfig``.
"""
