"""Dialect factory.

Maps an engine name (or ``DialectType``) to its dialect strategy. The
connection calls this once, at construction, and injects the result into
every builder it creates.
"""

from typing import Any, Dict, Type, Union

from sqlweave.common.exceptions import ErrorCode, configuration_error
from sqlweave.constants.dialect import DialectType
from sqlweave.dialects.base import Dialect
from sqlweave.dialects.mysql import MySQLDialect
from sqlweave.dialects.postgres import PostgresDialect
from sqlweave.dialects.sqlite import SQLiteDialect


class DialectFactory:
    """Factory for creating engine-specific dialects.

    Example:
        >>> DialectFactory.create("pgsql", replace_strategy="upsert")
        PostgresDialect(replace_strategy='upsert')
    """

    _registry: Dict[DialectType, Type[Dialect]] = {
        DialectType.MYSQL: MySQLDialect,
        DialectType.POSTGRES: PostgresDialect,
        DialectType.SQLITE: SQLiteDialect,
    }

    @staticmethod
    def create(dialect_type: Union[str, DialectType], **options: Any) -> Dialect:
        """Create the dialect for ``dialect_type``.

        Args:
            dialect_type: Engine name or enum member
            **options: Dialect-specific options (``replace_strategy`` for PostgreSQL)

        Raises:
            ConfigurationError: If the engine is unknown.
        """
        try:
            resolved = DialectType.parse(dialect_type)
        except ValueError as exc:
            raise configuration_error(
                f"Unsupported database driver: {dialect_type}",
                config_key="driver",
                error_code=ErrorCode.PLATFORM_NOT_SUPPORTED,
            ) from exc

        dialect_class = DialectFactory._registry[resolved]
        if dialect_class is PostgresDialect:
            return PostgresDialect(**options)
        return dialect_class()

    @staticmethod
    def from_settings(settings) -> Dialect:
        """Create the dialect described by ``DatabaseSettings``."""
        return DialectFactory.create(settings.driver, replace_strategy=settings.replace_strategy)


def get_dialect(dialect_type: Union[str, DialectType], **options: Any) -> Dialect:
    """Convenience wrapper around ``DialectFactory.create``."""
    return DialectFactory.create(dialect_type, **options)
