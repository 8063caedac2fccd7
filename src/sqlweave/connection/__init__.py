"""Database connection context: escaping, alias registry and execution."""

from sqlweave.connection.aliases import AliasRegistry
from sqlweave.connection.base import Connection, connect
from sqlweave.connection.result import Result

__all__ = [
    "AliasRegistry",
    "Connection",
    "Result",
    "connect",
]
