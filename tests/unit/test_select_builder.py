"""Unit tests for SELECT compilation: tables, joins, ordering, grouping and limits."""

import re

import pytest

from sqlweave.common.exceptions import InvalidArgument, InvalidCondition, UndefinedTable, UnsupportedFeature
from sqlweave.connection import Connection
from sqlweave.constants.sql import CrudMode
from sqlweave.settings import DatabaseSettings
from sqlweave.types import RawSql


class TestFromClause:
    """Test table references and aliases."""

    def test_aliased_table_and_qualified_column(self, builder):
        sql = builder.from_("jobs j").where("jobs.id", 3).or_where("name", "dev").sql()

        assert sql == "SELECT * FROM jobs AS j WHERE j.id = 3 OR name = 'dev'"

    def test_explicit_as_alias(self, builder):
        assert builder.from_("jobs AS j").select("j.name").sql() == "SELECT j.name FROM jobs AS j"

    def test_multiple_tables_are_deduplicated(self, builder):
        sql = builder.from_(["users u", "jobs j"]).from_("users u").sql()

        assert sql == "SELECT * FROM users AS u, jobs AS j"

    def test_comma_separated_tables(self, builder):
        assert builder.from_("users u, jobs j").sql() == "SELECT * FROM users AS u, jobs AS j"

    def test_table_overwrites_from_list(self, builder):
        sql = builder.from_("users").table("jobs").sql()

        assert sql == "SELECT * FROM jobs"

    def test_select_without_from(self, builder):
        assert builder.from_(None).select(RawSql("1 + 1")).sql() == "SELECT 1 + 1"

    def test_missing_table_raises(self, builder):
        with pytest.raises(UndefinedTable, match="Table is not defined."):
            builder.where("id", 1).sql()

    def test_prefix_is_applied_to_tables_and_qualifiers(self):
        connection = Connection(DatabaseSettings(prefix="app_", protect_identifiers=False))

        sql = connection.table("jobs").where("jobs.id", 1).sql()

        assert sql == "SELECT * FROM app_jobs WHERE app_jobs.id = 1"

    def test_prefix_with_alias(self):
        connection = Connection(DatabaseSettings(prefix="app_", protect_identifiers=False))

        sql = connection.table("users u").where("users.id", 1).sql()

        assert sql == "SELECT * FROM app_users AS u WHERE u.id = 1"

    def test_aliases_persist_across_builders_of_one_connection(self, connection):
        connection.table("users u").sql()

        sql = connection.table("jobs").where("users.id", 2).sql()

        assert sql == "SELECT * FROM jobs WHERE u.id = 2"

    def test_hashed_aliases(self):
        connection = Connection(DatabaseSettings(hashed_aliases=True, protect_identifiers=False))

        sql = connection.table("users").sql()

        assert re.fullmatch(r"SELECT \* FROM users AS users_[0-9a-f]{10}", sql)

    def test_escaped_identifiers(self, mysql_connection):
        sql = mysql_connection.table("users u").select("u.name").where("u.id", 5).sql()

        assert sql == "SELECT `u`.`name` FROM `users` AS `u` WHERE `u`.`id` = 5"


class TestSelectList:
    """Test the select list and DISTINCT."""

    def test_default_star(self, builder):
        assert builder.from_("users").sql() == "SELECT * FROM users"

    def test_star_ignored_after_columns(self, builder):
        sql = builder.from_("users").select("id, name").select("*").sql()

        assert sql == "SELECT id, name FROM users"

    def test_duplicate_columns_are_dropped(self, builder):
        sql = builder.from_("users").select("id").select(["id", "name"]).sql()

        assert sql == "SELECT id, name FROM users"

    def test_function_and_alias(self, mysql_connection):
        sql = mysql_connection.table("users").select("COUNT(id) AS total").sql()

        assert sql == "SELECT COUNT(`id`) AS `total` FROM `users`"

    def test_expression_kept_verbatim(self, builder):
        sql = builder.from_("items").select("price * 2").sql()

        assert sql == "SELECT price * 2 FROM items"

    def test_distinct(self, builder):
        assert builder.from_("users").select("name").distinct().sql() == "SELECT DISTINCT name FROM users"

    def test_select_with_limit_and_offset(self, builder):
        sql = builder.from_("users").select("name", limit=5, offset=2).sql()

        assert sql == "SELECT name FROM users LIMIT 5 OFFSET 2"

    @pytest.mark.parametrize("limit, offset", [(-1, None), (5, -2), (None, "2")])
    def test_select_with_bad_counts_adds_no_columns(self, builder, limit, offset):
        builder.from_("t")

        with pytest.raises(InvalidArgument, match="must be a non-negative integer"):
            builder.select("a", limit=limit, offset=offset)

        assert builder.sql() == "SELECT * FROM t"


class TestJoins:
    """Test join types and ON conditions."""

    def test_shared_column_join(self, builder):
        sql = builder.from_("jobs j").join("users u", "id_user").sql()

        assert sql == "SELECT * FROM jobs AS j INNER JOIN users AS u ON j.id_user = u.id_user"

    def test_mapping_join(self, builder):
        sql = builder.from_("jobs j").left_join("users u", {"u.id_user": "j.id_user"}).sql()

        assert sql == "SELECT * FROM jobs AS j LEFT JOIN users AS u ON u.id_user = j.id_user"

    def test_mapping_join_with_or_marker_and_operator(self, builder):
        sql = (
            builder.from_("jobs j")
            .join("users u", {"u.id_user": "j.id_user", "|u.level >=": "j.level"})
            .sql()
        )

        assert sql == (
            "SELECT * FROM jobs AS j INNER JOIN users AS u "
            "ON u.id_user = j.id_user OR u.level >= j.level"
        )

    def test_outer_joins(self, builder):
        sql = builder.from_("jobs j").right_join("users u", "id_user", outer=True).sql()

        assert "RIGHT OUTER JOIN users AS u ON j.id_user = u.id_user" in sql

    def test_raw_join_condition(self, builder):
        sql = builder.from_("jobs j").join("users u", RawSql("u.id = j.owner_id")).sql()

        assert sql == "SELECT * FROM jobs AS j INNER JOIN users AS u ON u.id = j.owner_id"

    def test_unknown_join_type(self, builder):
        with pytest.raises(InvalidArgument, match="Unknown join type"):
            builder.from_("jobs").join("users", "id", "SIDEWAYS")

    def test_full_join_only_on_postgres(self, plain_mysql_connection, postgres_connection):
        with pytest.raises(UnsupportedFeature, match="FULL OUTER JOIN is not supported by the mysql dialect"):
            plain_mysql_connection.table("jobs").full_join("users", "id")

        sql = postgres_connection.table("jobs j").full_join("users u", "id").sql()
        assert sql == "SELECT * FROM jobs AS j FULL OUTER JOIN users AS u ON j.id = u.id"

    def test_natural_join(self, mysql_connection, connection):
        sql = mysql_connection.table("jobs").natural_join("users").sql()
        assert sql == "SELECT * FROM `jobs` NATURAL JOIN `users`"

        with pytest.raises(UnsupportedFeature, match="NATURAL JOIN"):
            connection.table("jobs").natural_join("users")

    def test_shared_column_join_needs_from(self, builder):
        with pytest.raises(InvalidArgument):
            builder.join("users", "id")


class TestOrderGroupLimit:
    """Test ORDER BY, GROUP BY, HAVING and LIMIT."""

    def test_order_by(self, builder):
        sql = builder.from_("users").order_by("name DESC, id").sql()

        assert sql == "SELECT * FROM users ORDER BY name DESC, id ASC"

    def test_order_by_mapping(self, builder):
        sql = builder.from_("users").order_by({"name": "desc", "id": "asc"}).sql()

        assert sql == "SELECT * FROM users ORDER BY name DESC, id ASC"

    def test_invalid_direction(self, builder):
        with pytest.raises(InvalidArgument, match="Invalid order direction"):
            builder.from_("users").order_by("name", "sideways")

    def test_latest_and_oldest(self, builder):
        assert builder.from_("posts").latest().sql() == "SELECT * FROM posts ORDER BY created_at DESC"
        assert builder.from_("posts").oldest("id").sql() == "SELECT * FROM posts ORDER BY id ASC"

    def test_random_order_per_dialect(self, connection, plain_mysql_connection):
        assert connection.table("users").sort_rand().sql() == "SELECT * FROM users ORDER BY RANDOM()"
        assert plain_mysql_connection.table("users").rand(5).sql() == "SELECT * FROM users ORDER BY RAND(5)"

    def test_postgres_seeded_random_adds_session_statement(self, postgres_connection):
        builder = postgres_connection.table("users").sort_rand(42)

        assert builder._state.session_statements == ["SET SEED TO 0.42"]
        assert builder.sql() == "SELECT * FROM users ORDER BY RANDOM()"

    def test_group_by_and_having(self, builder):
        sql = (
            builder.from_("staff")
            .select("dept, COUNT(id) AS total")
            .group_by("dept")
            .having("COUNT(id) >", 2)
            .sql()
        )

        assert sql == "SELECT dept, COUNT(id) AS total FROM staff GROUP BY dept HAVING COUNT(id) > 2"

    def test_having_like_and_in(self, builder):
        sql = (
            builder.from_("staff")
            .group_by("dept")
            .having_like("dept", "sal")
            .or_having_in("dept", ["hr", "it"])
            .sql()
        )

        assert sql == "SELECT * FROM staff GROUP BY dept HAVING dept LIKE '%sal%' OR dept IN ('hr','it')"

    @pytest.mark.parametrize(
        "call, error",
        [
            (lambda q: q.having(123), InvalidCondition),
            (lambda q: q.or_having_in("dept", []), InvalidArgument),
            (lambda q: q.having_like("dept", "x", side="middle"), InvalidArgument),
        ],
    )
    def test_failed_having_keeps_write_mode(self, builder, call, error):
        builder.from_("t").update({"a": 1}, execute=False)

        with pytest.raises(error):
            call(builder)

        assert builder.mode == CrudMode.UPDATE
        assert builder._state.having == []
        assert builder.sql() == "UPDATE t SET a = 1"

    def test_having_switches_to_select(self, builder):
        builder.from_("t").update({"a": 1}, execute=False).having("n >", 1)

        assert builder.mode == CrudMode.SELECT

    def test_limit_and_offset(self, builder):
        assert builder.from_("t").limit(5, 2).sql() == "SELECT * FROM t LIMIT 5 OFFSET 2"
        assert builder.from_("t").offset(10, 5).sql() == "SELECT * FROM t LIMIT 5 OFFSET 10"

    @pytest.mark.parametrize("value", [-1, "5", 1.5, True])
    def test_limit_rejects_invalid_values(self, builder, value):
        with pytest.raises(InvalidArgument, match="limit must be a non-negative integer"):
            builder.from_("t").limit(value)


class TestBuilderLifecycle:
    """Test consumption, preservation and cloning of builder state."""

    def test_sql_resets_builder(self, builder):
        builder.from_("users").where("id", 1)

        assert builder.sql() == "SELECT * FROM users WHERE id = 1"
        with pytest.raises(UndefinedTable):
            builder.sql()

    def test_sql_preserve_keeps_state(self, builder):
        builder.from_("users").where("id", 1)

        first = builder.sql(preserve=True)

        assert builder.sql() == first

    def test_clone_is_independent(self, builder):
        builder.from_("users").where("id", 1)
        copy = builder.clone().where("name", "ann")

        assert builder.sql() == "SELECT * FROM users WHERE id = 1"
        assert copy.sql() == "SELECT * FROM users WHERE id = 1 AND name = 'ann'"

    def test_new_query_shares_connection(self, builder):
        other = builder.new_query()

        assert other.connection is builder.connection
        assert other is not builder

    def test_failed_validation_leaves_state_untouched(self, builder):
        builder.from_("users").limit(3)

        with pytest.raises(InvalidArgument):
            builder.limit(-3)

        assert builder.sql() == "SELECT * FROM users LIMIT 3"

    def test_reset_returns_to_select(self, builder):
        builder.from_("users").set("name", "x")
        builder._state.mode = CrudMode.UPDATE

        builder.reset()

        assert builder.mode == CrudMode.SELECT
        assert builder._state.assignments == {}
