from sqlweave.__version__ import __version__

from sqlweave.common.exceptions import (
    ConfigurationError,
    ErrorCode,
    InvalidArgument,
    InvalidCondition,
    MissingData,
    QueryExecutionError,
    SqlWeaveError,
    UndefinedTable,
    UnsupportedFeature,
)
from sqlweave.connection import Connection, Result, connect
from sqlweave.constants import Connector, CrudMode, DialectType, LikeSide, ReplaceStrategy
from sqlweave.dialects import (
    Dialect,
    DialectFactory,
    MySQLDialect,
    PostgresDialect,
    SQLiteDialect,
)
from sqlweave.logging import get_logger, setup_logging
from sqlweave.query_builder import QueryBuilder, QueryBuilderFactory, get_query_builder
from sqlweave.settings import DatabaseSettings, load_settings
from sqlweave.types import RawSql

__all__ = [
    "__version__",

    "Connection",
    "connect",
    "Result",
    "QueryBuilder",
    "QueryBuilderFactory",
    "get_query_builder",
    "RawSql",

    "DatabaseSettings",
    "load_settings",

    "Dialect",
    "DialectFactory",
    "MySQLDialect",
    "PostgresDialect",
    "SQLiteDialect",

    "Connector",
    "CrudMode",
    "DialectType",
    "LikeSide",
    "ReplaceStrategy",

    # Exceptions (public API)
    "SqlWeaveError",
    "ErrorCode",
    "ConfigurationError",
    "InvalidArgument",
    "InvalidCondition",
    "MissingData",
    "UndefinedTable",
    "UnsupportedFeature",
    "QueryExecutionError",

    "get_logger",
    "setup_logging",
]
