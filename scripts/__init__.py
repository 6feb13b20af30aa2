"""Operational scripts for catalog search.

Scripts include:
- ``opensearch_bootstrap.py``: wait for the cluster and create the products index.
"""
