"""Unit tests for settings loading and the exception hierarchy."""

import pytest

from sqlweave.common.exceptions import (
    ConfigurationError,
    ErrorCode,
    InvalidArgument,
    MissingData,
    SqlWeaveError,
    UndefinedTable,
    invalid_argument,
    query_execution_error,
    unsupported_feature,
)
from sqlweave.constants.dialect import DialectType, ReplaceStrategy
from sqlweave.dialects import PostgresDialect
from sqlweave.connection import Connection, connect
from sqlweave.settings import DatabaseSettings, load_settings


class TestSettings:
    """Test DatabaseSettings validation and environment loading."""

    def test_defaults(self):
        settings = DatabaseSettings()

        assert settings.driver == DialectType.SQLITE
        assert settings.protect_identifiers is True
        assert settings.hashed_aliases is False
        assert settings.replace_strategy == ReplaceStrategy.EMULATE

    def test_driver_aliases(self):
        assert load_settings(driver="pgsql").driver == DialectType.POSTGRES
        assert load_settings(driver="MariaDB").driver == DialectType.MYSQL

    def test_environment_variables(self, monkeypatch):
        monkeypatch.setenv("SQLWEAVE_DRIVER", "postgresql")
        monkeypatch.setenv("SQLWEAVE_PREFIX", "app_")
        monkeypatch.setenv("SQLWEAVE_REPLACE_STRATEGY", "upsert")

        connection = connect()

        assert isinstance(connection.dialect, PostgresDialect)
        assert connection.dialect.replace_strategy == ReplaceStrategy.UPSERT
        assert connection.prefix == "app_"

    @pytest.mark.parametrize(
        "overrides",
        [
            {"driver": "oracle"},
            {"prefix": "bad-prefix"},
            {"log_level": "LOUD"},
            {"port": 0},
        ],
    )
    def test_invalid_settings(self, overrides):
        with pytest.raises(ConfigurationError, match="Invalid database settings"):
            load_settings(**overrides)

    def test_sqlalchemy_url(self):
        settings = DatabaseSettings(
            driver="mysql", username="app", password="secret", host="db", port=3306, database="main"
        )

        url = settings.sqlalchemy_url()

        assert url.drivername == "mysql+pymysql"
        assert url.host == "db"
        assert url.password == "secret"

    def test_explicit_url_wins(self):
        settings = DatabaseSettings(driver="postgres", url="postgresql+psycopg2://u@h/db")

        assert settings.sqlalchemy_url().database == "db"

    def test_connect_overrides_settings(self):
        base = DatabaseSettings(driver="mysql")

        connection = connect(base, prefix="x_")

        assert connection.prefix == "x_"
        assert base.prefix == ""

    def test_connections_are_independent(self):
        first = Connection(DatabaseSettings(protect_identifiers=False))
        second = Connection(DatabaseSettings(protect_identifiers=False))

        first.table("users u").sql()

        assert second.table("users").sql() == "SELECT * FROM users"


class TestExceptions:
    """Test error codes, messages and helpers."""

    def test_string_form(self):
        error = InvalidArgument("bad input")

        assert str(error) == "[VALIDATION_002] bad input"
        assert error.error_code == ErrorCode.INVALID_ARGUMENT

    def test_hierarchy(self):
        for error_class in (ConfigurationError, InvalidArgument, MissingData, UndefinedTable):
            assert issubclass(error_class, SqlWeaveError)

    def test_to_dict(self):
        error = invalid_argument("Bad limit", argument="limit", value=-1)

        assert error.to_dict() == {
            "type": "InvalidArgument",
            "message": "Bad limit",
            "error_code": "VALIDATION_002",
            "error_name": "INVALID_ARGUMENT",
            "details": {"argument": "limit", "value": "-1"},
        }

    def test_unsupported_feature_message(self):
        error = unsupported_feature("NATURAL JOIN", "sqlite")

        assert error.message == "NATURAL JOIN is not supported by the sqlite dialect."
        assert error.details == {"feature": "NATURAL JOIN", "dialect": "sqlite"}

    def test_query_execution_error_keeps_cause(self):
        cause = RuntimeError("boom")

        error = query_execution_error("SELECT 1", cause)

        assert error.cause is cause
        assert error.details["query"] == "SELECT 1"
        assert "caused by: RuntimeError: boom" in str(error)
