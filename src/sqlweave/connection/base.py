import time
from datetime import date, datetime, time as dt_time
from decimal import Decimal
from typing import TYPE_CHECKING, Any, Dict, Optional, Sequence, Tuple, Union

from sqlalchemy import create_engine, text
from sqlalchemy.engine import Engine
from sqlalchemy.exc import SQLAlchemyError

from sqlweave.common.exceptions import invalid_argument, query_execution_error
from sqlweave.connection.aliases import AliasRegistry
from sqlweave.connection.result import Result
from sqlweave.constants.sql import SQL_FUNCTIONS
from sqlweave.dialects import Dialect, DialectFactory
from sqlweave.logging import get_logger
from sqlweave.settings import DatabaseSettings, load_settings
from sqlweave.types import RawSql
from sqlweave.utils.decorators import traced

if TYPE_CHECKING:
    from sqlweave.query_builder.builder import QueryBuilder

logger = get_logger(__name__)


class Connection:
    """Database context shared by every builder created from it.

    The connection is the one object a caller constructs and passes around.
    It owns the settings, the dialect strategy, the table prefix, the
    identifier protection flag and the alias registry, and it executes
    compiled statements through a lazily created SQLAlchemy engine.

    Nothing here is global: two connections never share aliases, prefixes
    or engines.

    Example:
        >>> connection = Connection(load_settings(driver="sqlite", database="app.db"))
        >>> connection.table("users u").where("u.active", 1).all()
    """

    def __init__(
        self,
        settings: Optional[DatabaseSettings] = None,
        dialect: Optional[Dialect] = None,
        engine: Optional[Engine] = None,
    ):
        self.settings = settings or load_settings()
        self.dialect = dialect or DialectFactory.from_settings(self.settings)
        self.prefix = self.settings.prefix
        self.protect_identifiers = self.settings.protect_identifiers
        self.aliases = AliasRegistry(hashed=self.settings.hashed_aliases)
        self._engine = engine

    def __repr__(self) -> str:
        return f"Connection(dialect={self.dialect.name!r}, prefix={self.prefix!r})"

    @property
    def escape_char(self) -> str:
        return self.dialect.escape_char

    @property
    def engine(self) -> Engine:
        """Get or create the SQLAlchemy engine."""
        if self._engine is None:
            self._engine = create_engine(
                self.settings.sqlalchemy_url(),
                echo=self.settings.echo,
                pool_pre_ping=self.settings.pool_pre_ping,
            )
            logger.info(f"Created {self.dialect.name} engine")
        return self._engine

    def set_prefix(self, prefix: str) -> "Connection":
        self.prefix = prefix or ""
        return self

    # Builders

    def new_query(self) -> "QueryBuilder":
        """Return an empty builder bound to this connection."""
        from sqlweave.query_builder.builder import QueryBuilder
        return QueryBuilder(self)

    def table(self, tables) -> "QueryBuilder":
        return self.new_query().from_(tables)

    # Literals

    def escape_string(self, value: str) -> str:
        return self.dialect.escape_string(value)

    def quote(self, value: Any) -> str:
        """Render a Python value as an SQL literal."""
        if value is None:
            return "NULL"
        if isinstance(value, RawSql):
            return value.sql
        if isinstance(value, bool):
            return self.dialect.format_bool(value)
        if isinstance(value, (int, float, Decimal)):
            return str(value)
        if isinstance(value, datetime):
            value = value.strftime("%Y-%m-%d %H:%M:%S")
        elif isinstance(value, (date, dt_time)):
            value = value.isoformat()
        return f"'{self.escape_string(str(value))}'"

    @staticmethod
    def is_quoted(value: str) -> bool:
        return len(value) >= 2 and value[0] == "'" and value[-1] == "'"

    def escape_value(self, value: Any, escape: bool = True) -> str:
        """Render a comparison value.

        Numbers are never quoted. Strings are always quoted and escaped
        unless ``escape`` is False; wrap trusted SQL in ``RawSql`` to keep
        it verbatim.
        """
        if value is None:
            return "NULL"
        if not escape or isinstance(value, RawSql):
            return str(value)
        return self.quote(value)

    # Identifiers

    def is_escaped_identifier(self, value: Any) -> bool:
        """True for text already wrapped in the identifier escape character."""
        char = self.escape_char
        if not isinstance(value, str) or not self.protect_identifiers or not char:
            return False
        return all(
            len(part) >= 2 and part.startswith(char) and part.endswith(char)
            for part in value.split(".")
        )

    def _escape_segment(self, segment: str) -> str:
        char = self.escape_char
        if segment == "*" or (len(segment) >= 2 and segment.startswith(char) and segment.endswith(char)):
            return segment
        return f"{char}{segment.replace(char, char * 2)}{char}"

    def escape_identifiers(self, item: str) -> str:
        """Wrap each dotted segment of ``item`` in the escape character.

        Stars, numbers, quoted literals, function calls and SQL function
        names pass through unchanged, as does everything when identifier
        protection is off.
        """
        item = item.strip()
        if not self.protect_identifiers or not self.escape_char:
            return item
        if (
            item in ("", "*")
            or item.isdigit()
            or "(" in item
            or self.is_quoted(item)
            or item.upper() in SQL_FUNCTIONS
        ):
            return item
        return ".".join(self._escape_segment(part) for part in item.split("."))

    def strip_prefix(self, table: str) -> str:
        table = table.strip()
        if self.prefix and table.startswith(self.prefix):
            return table[len(self.prefix):]
        return table

    def prefix_table(self, table: str) -> str:
        """Return the escaped, prefixed name of ``table``."""
        table = (table or "").strip()
        if not table:
            raise invalid_argument("A table name is required.", argument="table")
        schema, _, name = table.rpartition(".")
        prefixed = f"{self.prefix}{name}"
        if schema:
            prefixed = f"{schema}.{prefixed}"
        return self.escape_identifiers(prefixed)

    def get_table_alias(self, table: str) -> Tuple[str, str]:
        """Resolve a table reference into ``(alias, table)`` and register it."""
        return self.aliases.resolve(self.strip_prefix(table))

    def make_table_name(self, table: str) -> str:
        """Render a table reference for a FROM or JOIN clause."""
        alias, name = self.get_table_alias(table)
        if alias == name:
            return self.prefix_table(name)
        return f"{self.prefix_table(name)} AS {self.escape_identifiers(alias)}"

    def table_qualifier(self, table: str) -> str:
        """Unescaped qualifier for a ``table.column`` reference.

        The registered alias wins; unknown tables fall back to their
        prefixed name.
        """
        table = table.strip()
        alias = self.aliases.alias_for(self.strip_prefix(table))
        if alias is not None:
            return alias
        if self.prefix and not table.startswith(self.prefix):
            return f"{self.prefix}{table}"
        return table

    def clear_aliases(self) -> None:
        self.aliases.clear()

    # Execution

    def _span_attributes(self, sql: str, params=None, setup=None) -> Dict[str, Any]:
        statement = (sql or "").strip()
        if len(statement) > 4096:
            statement = f"{statement[:4093]}..."
        return {
            "db.system": self.dialect.name,
            "db.operation": statement.split(" ", 1)[0].upper() if statement else None,
            "db.statement": statement,
            "db.statement.length": len(statement),
        }

    @traced(
        span_name="sqlweave.connection.query",
        attribute_getter=lambda self, sql, params=None, setup=None: self._span_attributes(sql),
    )
    def query(
        self,
        sql: str,
        params: Optional[Union[Dict[str, Any], Sequence[Any]]] = None,
        setup: Optional[Sequence[str]] = None,
    ) -> Union[Result, bool]:
        """Execute one statement.

        Args:
            sql: Compiled statement
            params: Bound parameters for ``:name`` placeholders
            setup: Session statements run first on the same connection

        Returns:
            A Result for row-returning statements, True otherwise.

        Raises:
            QueryExecutionError: If the driver rejects the statement.
        """
        start_time = time.time()
        payload: Dict[str, Any] = {"db.system": self.dialect.name}

        try:
            with self.engine.begin() as conn:
                for statement in setup or ():
                    conn.exec_driver_sql(statement)
                if params:
                    cursor = conn.execute(text(sql), params)
                else:
                    cursor = conn.exec_driver_sql(sql)
                result = Result.from_cursor(cursor) if cursor.returns_rows else True

            duration = time.time() - start_time
            if isinstance(result, Result):
                payload["rows"] = len(result)
            logger.info(
                "SQL query executed",
                extra={**payload, "duration.seconds": f"{duration:.6f}"},
            )
            return result

        except SQLAlchemyError as exc:
            duration = time.time() - start_time
            logger.error(
                "SQL query failed",
                extra={**payload, "duration.seconds": f"{duration:.6f}", "error": str(exc)},
            )
            raise query_execution_error(sql, exc) from exc

    def simple_query(self, sql: str) -> bool:
        """Execute a statement whose rows, if any, are discarded."""
        self.query(sql)
        return True

    def close(self) -> None:
        if self._engine is not None:
            self._engine.dispose()
            self._engine = None


def connect(settings: Optional[DatabaseSettings] = None, **overrides: Any) -> Connection:
    """Create a connection from settings, or from overrides plus the environment."""
    if settings is None:
        settings = load_settings(**overrides)
    elif overrides:
        settings = settings.model_copy(update=overrides)
    return Connection(settings)
