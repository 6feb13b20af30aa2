"""Search engine adapters and query construction.

Primary components:
- ``base``: abstract ``SearchEngineClient`` contract, ``SearchResult`` and the
  engine exceptions.
- ``query_builder``: fluent builder producing immutable ``Query`` values.
- ``opensearch``: OpenSearch implementation of the contract.

Guidance:
- Callers depend on ``SearchEngineClient`` only; construct concrete clients
  through ``catalog_search.service.factory``.
"""
