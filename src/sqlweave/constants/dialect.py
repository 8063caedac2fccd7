"""Database engine constants."""

from enum import Enum


class DialectType(str, Enum):
    """Supported database engines.

    Values:
        MYSQL: MySQL and MariaDB
        POSTGRES: PostgreSQL
        SQLITE: SQLite 3
    """

    MYSQL = "mysql"
    POSTGRES = "postgres"
    SQLITE = "sqlite"

    @classmethod
    def parse(cls, value: "str | DialectType") -> "DialectType":
        """Resolve a driver name, accepting the common spellings."""
        if isinstance(value, cls):
            return value
        key = str(value).strip().lower()
        return cls(_DIALECT_ALIASES.get(key, key))


_DIALECT_ALIASES = {
    "mariadb": "mysql",
    "pgsql": "postgres",
    "postgresql": "postgres",
    "sqlite3": "sqlite",
}


class ReplaceStrategy(str, Enum):
    """How PostgreSQL serves REPLACE, which it lacks natively."""

    EMULATE = "emulate"
    UPSERT = "upsert"
