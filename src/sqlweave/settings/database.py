import re
from typing import Optional

from pydantic import Field, SecretStr, field_validator
from sqlalchemy.engine import URL, make_url

from sqlweave.constants.dialect import DialectType, ReplaceStrategy
from .base import SqlWeaveBaseSettings


_PREFIX_PATTERN = re.compile(r"^[A-Za-z0-9_]*$")

# SQLAlchemy driver names used when the URL is assembled from parts.
_DRIVERNAMES = {
    DialectType.MYSQL: "mysql+pymysql",
    DialectType.POSTGRES: "postgresql+psycopg2",
    DialectType.SQLITE: "sqlite",
}


class DatabaseSettings(SqlWeaveBaseSettings):
    """Connection and compilation settings for one database.

    Example:
        >>> settings = DatabaseSettings(driver="mysql", prefix="app_")
        >>> settings.driver
        <DialectType.MYSQL: 'mysql'>
    """

    driver: DialectType = Field(
        default=DialectType.SQLITE,
        description="Database engine: mysql, postgres (pgsql) or sqlite"
    )
    url: Optional[str] = Field(
        default=None,
        description="Full SQLAlchemy URL. Takes precedence over the individual connection fields."
    )
    host: str = Field(default="localhost", description="Database host")
    port: Optional[int] = Field(default=None, ge=1, le=65535, description="Database port")
    username: Optional[str] = Field(default=None, description="Database user")
    password: Optional[SecretStr] = Field(default=None, description="Database password")
    database: str = Field(
        default=":memory:",
        description="Database name, or file path for SQLite"
    )

    prefix: str = Field(
        default="",
        description="Prefix prepended to every table name (e.g. 'app_')"
    )
    protect_identifiers: bool = Field(
        default=True,
        description="Escape identifiers with the dialect's escape character by default"
    )
    hashed_aliases: bool = Field(
        default=False,
        description="Give unaliased tables a unique generated alias instead of their own name"
    )
    replace_strategy: ReplaceStrategy = Field(
        default=ReplaceStrategy.EMULATE,
        description="PostgreSQL REPLACE handling: 'emulate' (probe then insert/update) or 'upsert' (ON CONFLICT)"
    )

    echo: bool = Field(default=False, description="Echo statements through SQLAlchemy")
    pool_pre_ping: bool = Field(default=True, description="Test pooled connections before use")
    log_level: str = Field(default="INFO", description="Log level used by setup_logging")

    @field_validator("driver", mode="before")
    @classmethod
    def validate_driver(cls, v):
        """Accept the common spellings of each engine name."""
        return DialectType.parse(v)

    @field_validator("prefix")
    @classmethod
    def validate_prefix(cls, v: str) -> str:
        """Reject prefixes that could not be part of an identifier."""
        if not _PREFIX_PATTERN.match(v):
            raise ValueError(f"Table prefix may only contain letters, digits and underscores: {v!r}")
        return v

    @field_validator("log_level")
    @classmethod
    def validate_log_level(cls, v: str) -> str:
        level = v.upper()
        if level not in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"}:
            raise ValueError(f"Invalid log level: {v}")
        return level

    def sqlalchemy_url(self) -> URL:
        """Return the engine URL, built from parts when ``url`` is unset."""
        if self.url:
            return make_url(self.url)

        if self.driver == DialectType.SQLITE:
            return URL.create(_DRIVERNAMES[self.driver], database=self.database)

        return URL.create(
            _DRIVERNAMES[self.driver],
            username=self.username,
            password=self.password.get_secret_value() if self.password else None,
            host=self.host,
            port=self.port,
            database=self.database,
        )
