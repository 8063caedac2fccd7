"""Dialect strategies for MySQL, PostgreSQL and SQLite."""

from sqlweave.dialects.base import Dialect
from sqlweave.dialects.factory import DialectFactory, get_dialect
from sqlweave.dialects.mysql import MySQLDialect
from sqlweave.dialects.postgres import PostgresDialect
from sqlweave.dialects.sqlite import SQLiteDialect

__all__ = [
    "Dialect",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",
    "DialectFactory",
    "get_dialect",
]
