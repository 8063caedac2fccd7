"""Query builder factory.

Creates builders bound to a connection. When no connection is given one
is created from environment settings, so scripts can start with a single
call while applications pass their own ``Connection`` explicitly.
"""

from typing import TYPE_CHECKING, Any, Optional

from sqlweave.query_builder.builder import QueryBuilder

if TYPE_CHECKING:
    from sqlweave.connection import Connection
    from sqlweave.settings import DatabaseSettings


class QueryBuilderFactory:
    """Factory for ``QueryBuilder`` instances.

    Example:
        >>> builder = QueryBuilderFactory.create(connection)
        >>> sqlite = QueryBuilderFactory.create_for(driver="sqlite", database=":memory:")
    """

    @staticmethod
    def create(connection: Optional["Connection"] = None, tables: Any = None) -> QueryBuilder:
        """Create a builder on ``connection``, or on a new one from settings.

        Raises:
            ConfigurationError: If no connection is given and the
                environment settings are invalid.
        """
        if connection is None:
            from sqlweave.connection import connect

            connection = connect()
        return QueryBuilder(connection, tables)

    @staticmethod
    def from_settings(settings: "DatabaseSettings", tables: Any = None) -> QueryBuilder:
        from sqlweave.connection import Connection

        return QueryBuilder(Connection(settings), tables)

    @staticmethod
    def create_for(**overrides: Any) -> QueryBuilder:
        """Create a builder on a new connection built from setting overrides."""
        from sqlweave.connection import connect

        return QueryBuilder(connect(**overrides))


def get_query_builder(connection: Optional["Connection"] = None, tables: Any = None) -> QueryBuilder:
    """Convenience wrapper around ``QueryBuilderFactory.create``."""
    return QueryBuilderFactory.create(connection, tables)
