"""
pysqladapt: Dialect adapter and schema introspection.

This module defines dependencies required for PostgreSQL.
"""

import asyncpg  # noqa: F401
