"""Relational store adapters.

Primary components:
- ``base``: abstract ``RelationalStore`` contract and store exceptions.
- ``postgres``: asyncpg implementation reading the ``products`` table.
"""
