"""Tests for the catalog search core.

The service and repository tests run against in-process fakes of the search
engine, relational store and cache (see ``conftest.py``); the adapter tests
mock the OpenSearch, asyncpg and Redis clients.
"""
