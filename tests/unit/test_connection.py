"""Unit tests for the connection context, alias registry, field resolver and results."""

from datetime import date, datetime
from decimal import Decimal

import pandas as pd
import pytest

from sqlweave.common.exceptions import InvalidArgument, QueryExecutionError
from sqlweave.connection import AliasRegistry, Connection, Result, connect
from sqlweave.query_builder import QueryBuilder, QueryBuilderFactory, get_query_builder
from sqlweave.settings import DatabaseSettings
from sqlweave.types import RawSql


class TestQuoting:
    """Test literal rendering."""

    @pytest.mark.parametrize(
        "value, expected",
        [
            (None, "NULL"),
            (5, "5"),
            (2.5, "2.5"),
            (Decimal("1.10"), "1.10"),
            ("5", "'5'"),
            ("O'Neil", "'O''Neil'"),
            (True, "1"),
            (RawSql("NOW()"), "NOW()"),
            (date(2024, 1, 31), "'2024-01-31'"),
            (datetime(2024, 1, 31, 8, 5, 0), "'2024-01-31 08:05:00'"),
        ],
    )
    def test_quote(self, connection, value, expected):
        assert connection.quote(value) == expected

    def test_postgres_booleans(self, postgres_connection):
        assert postgres_connection.quote(True) == "TRUE"

    def test_escape_value(self, connection):
        assert connection.escape_value("abc", escape=False) == "abc"
        assert connection.escape_value("'already'") == "'''already'''"
        assert connection.escape_value("'x' OR '1'='1'", escape=False) == "'x' OR '1'='1'"


class TestIdentifiers:
    """Test identifier escaping and table naming."""

    def test_escape_identifiers(self, mysql_connection):
        assert mysql_connection.escape_identifiers("users.name") == "`users`.`name`"
        assert mysql_connection.escape_identifiers("u.*") == "`u`.*"
        assert mysql_connection.escape_identifiers("*") == "*"
        assert mysql_connection.escape_identifiers("COUNT(id)") == "COUNT(id)"
        assert mysql_connection.escape_identifiers("`done`") == "`done`"

    def test_protection_off(self, connection):
        assert connection.escape_identifiers("users.name") == "users.name"

    def test_prefix_table_with_schema(self):
        connection = Connection(DatabaseSettings(driver="postgres", prefix="app_"))

        assert connection.prefix_table("public.users") == '"public"."app_users"'

    def test_prefix_table_requires_name(self, connection):
        with pytest.raises(InvalidArgument, match="A table name is required."):
            connection.prefix_table("  ")

    def test_make_table_name(self, mysql_connection):
        assert mysql_connection.make_table_name("users AS u") == "`users` AS `u`"
        assert mysql_connection.make_table_name("jobs") == "`jobs`"

    def test_set_prefix(self, connection):
        connection.set_prefix("x_")

        assert connection.table("users").sql() == "SELECT * FROM x_users"


class TestAliasRegistry:
    """Test table alias bookkeeping."""

    def test_resolve_registers_alias(self):
        registry = AliasRegistry()

        assert registry.resolve("users u") == ("u", "users")
        assert registry.resolve("users") == ("u", "users")
        assert registry.resolve("u") == ("u", "users")
        assert registry.alias_for("users") == "u"
        assert registry.table_for("u") == "users"

    def test_unaliased_table(self):
        registry = AliasRegistry()

        assert registry.resolve("jobs") == ("jobs", "jobs")
        assert "jobs" not in registry

    def test_hashed_alias_is_stable(self):
        registry = AliasRegistry(hashed=True)

        alias, table = registry.resolve("jobs")

        assert table == "jobs"
        assert alias.startswith("jobs_")
        assert registry.resolve("jobs") == (alias, "jobs")

    def test_clear(self, connection):
        connection.table("users u").sql()

        connection.clear_aliases()

        assert len(connection.aliases) == 0


class TestFieldResolver:
    """Test field expression resolution."""

    def test_split_alias(self, builder):
        resolver = builder.resolver

        assert resolver.split_alias("name AS n") == ("name", "n")
        assert resolver.split_alias("name n") == ("name", "n")
        assert resolver.split_alias("price * 2") == ("price * 2", "")

    def test_resolve_forms(self, mysql_connection):
        resolver = mysql_connection.new_query().resolver

        assert resolver.resolve("name") == "`name`"
        assert resolver.resolve("name AS n") == "`name` AS `n`"
        assert resolver.resolve("MAX(users.age) top") == "MAX(`users`.`age`) AS `top`"
        assert resolver.resolve("42") == "42"
        assert resolver.resolve("a + b") == "a + b"


class TestResult:
    """Test the row container."""

    def test_accessors(self):
        result = Result([{"id": 1, "name": "a"}, {"id": 2, "name": "b"}])

        assert len(result) == 2
        assert result.columns == ["id", "name"]
        assert result.first() == {"id": 1, "name": "a"}
        assert result.row(1) == {"id": 2, "name": "b"}
        assert result.row(5) is None
        assert result.value("name") == "a"
        assert result.values("id") == [1, 2]
        assert result.objects()[1].name == "b"

    def test_empty(self):
        result = Result([])

        assert result.first() is None
        assert result.value("id", default=0) == 0

    def test_to_dataframe(self):
        frame = Result([{"id": 1}], columns=["id"]).to_dataframe()

        assert isinstance(frame, pd.DataFrame)
        assert frame["id"].tolist() == [1]


class TestSqliteExecution:
    """Execute compiled statements against an in-memory SQLite database."""

    @pytest.fixture
    def sqlite(self):
        connection = connect(driver="sqlite", database=":memory:")
        connection.query("CREATE TABLE users (id INTEGER PRIMARY KEY, name TEXT, age INTEGER)")
        yield connection
        connection.close()

    def test_insert_and_fetch(self, sqlite):
        sqlite.table("users").insert({"name": "ann", "age": 31})
        sqlite.table("users").bulk_insert([{"name": "bob", "age": 17}, {"name": "cid", "age": 45}])

        adults = sqlite.table("users").select("name").where("age >=", 18).order_by("name").all()

        assert adults == [{"name": "ann"}, {"name": "cid"}]

    def test_update_delete_and_aggregates(self, sqlite):
        sqlite.table("users").bulk_insert([{"name": "ann", "age": 31}, {"name": "bob", "age": 17}])

        sqlite.table("users").where("name", "bob").update({"age": 18})
        sqlite.table("users").where("name", "ann").delete()

        assert sqlite.table("users").count() == 1
        assert sqlite.table("users").max("age") == 18.0
        assert sqlite.table("users").value("name") == "bob"

    def test_values_and_find_one(self, sqlite):
        sqlite.table("users").bulk_insert([{"name": "ann", "age": 31}, {"name": "bob", "age": 17}])

        assert sqlite.table("users").order_by("id").values("name") == ["ann", "bob"]
        assert sqlite.table("users").find_one("name", {"where": {"age <": 20}}) == {"name": "bob"}

    def test_raw_query_with_params(self, sqlite):
        sqlite.table("users").insert({"name": "ann", "age": 31})

        result = sqlite.table("users").query("SELECT name FROM users WHERE age > :age", {"age": 30})

        assert isinstance(result, Result)
        assert result.values("name") == ["ann"]

    def test_invalid_sql_raises(self, sqlite):
        with pytest.raises(QueryExecutionError, match="Query execution failed"):
            sqlite.query("SELECT * FROM missing_table")

    def test_new_query_type(self, sqlite):
        assert isinstance(sqlite.new_query(), QueryBuilder)


class TestQueryBuilderFactory:
    """Test builder construction helpers."""

    def test_create_on_connection(self, connection):
        builder = QueryBuilderFactory.create(connection, "users")

        assert builder.connection is connection
        assert builder.get_table() == "users"

    def test_get_query_builder(self, connection):
        assert get_query_builder(connection, "jobs j").sql() == "SELECT * FROM jobs AS j"

    def test_create_for_overrides(self):
        builder = QueryBuilderFactory.create_for(driver="mysql")

        assert builder.dialect.name == "mysql"
        assert builder.connection.escape_char == "`"
