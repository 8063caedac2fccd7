"""Unit tests for nested queries and aggregate helpers."""

from unittest.mock import Mock

import pytest

from sqlweave.common.exceptions import InvalidArgument
from sqlweave.connection import Result


class TestSubqueries:
    """Test subqueries in FROM, the select list and conditions."""

    def test_where_in_subquery_callback(self, builder):
        sql = (
            builder.from_("users")
            .where_in("id", lambda q: q.select("user_id").from_("orders"))
            .sql()
        )

        assert sql == "SELECT * FROM users WHERE id IN (SELECT user_id FROM orders)"

    def test_where_value_from_builder(self, builder):
        latest = builder.new_query().from_("orders").select("MAX(total)")

        sql = builder.from_("orders").where("total", latest).sql()

        assert sql == "SELECT * FROM orders WHERE total = (SELECT MAX(total) FROM orders)"

    def test_subquery_builder_is_not_consumed(self, builder):
        child = builder.new_query().from_("orders").select("user_id")

        builder.from_("users").where_in("id", child).sql()

        assert child.sql() == "SELECT user_id FROM orders"

    def test_from_subquery_registers_alias(self, builder):
        sql = (
            builder.from_subquery(lambda q: q.from_("orders").select("user_id"), "o")
            .select("o.user_id")
            .sql()
        )

        assert sql == "SELECT o.user_id FROM (SELECT user_id FROM orders) o"

    def test_select_subquery(self, builder):
        sql = (
            builder.from_("users u")
            .select("u.name")
            .select_subquery(lambda q: q.from_("orders").select("COUNT(*)"), "total")
            .sql()
        )

        assert sql == "SELECT u.name, (SELECT COUNT(*) FROM orders) total FROM users AS u"

    def test_where_exists(self, builder):
        sql = (
            builder.from_("users")
            .where_exists(lambda q: q.from_("orders").where_raw("orders.user_id = users.id"))
            .or_where_not_exists(lambda q: q.from_("bans").where_raw("bans.user_id = users.id"))
            .sql()
        )

        assert sql == (
            "SELECT * FROM users WHERE EXISTS (SELECT * FROM orders WHERE orders.user_id = users.id) "
            "OR NOT EXISTS (SELECT * FROM bans WHERE bans.user_id = users.id)"
        )

    def test_self_reference_is_rejected(self, builder):
        builder.from_("users")

        with pytest.raises(InvalidArgument, match="cannot be the same object"):
            builder.where_in("id", builder)

    def test_callback_returning_parent_is_rejected(self, builder):
        builder.from_("users")

        with pytest.raises(InvalidArgument, match="cannot be the same object"):
            builder.where_exists(lambda q: builder)

    def test_invalid_source(self, builder):
        with pytest.raises(InvalidArgument, match="A subquery must be a builder"):
            builder.from_subquery(42, "x")


class TestAggregates:
    """Test count/min/max/sum/avg in test mode and against mocked results."""

    def test_count(self, builder):
        assert builder.from_("users").test_mode().count() == "SELECT COUNT(*) AS num_rows FROM users"

    def test_min_max_sum_avg(self, builder):
        assert builder.from_("t").test_mode().min("age") == "SELECT MIN(age) AS min_value FROM t"
        assert builder.from_("t").test_mode().max("age") == "SELECT MAX(age) AS max_value FROM t"
        assert builder.from_("t").test_mode().sum("age") == "SELECT SUM(age) AS sum_value FROM t"
        assert builder.from_("t").test_mode().avg("age") == "SELECT AVG(age) AS avg_value FROM t"

    def test_count_drops_order_by(self, builder):
        sql = builder.from_("users").where("active", 1).order_by("id").test_mode().count()

        assert sql == "SELECT COUNT(*) AS num_rows FROM users WHERE active = 1"

    def test_count_wraps_distinct(self, builder):
        sql = builder.from_("users").select("name").distinct().test_mode().count()

        assert sql == (
            "SELECT COUNT(*) AS num_rows FROM (SELECT DISTINCT name FROM users) count_all_results"
        )

    def test_sum_wraps_group_by(self, builder):
        sql = (
            builder.from_("orders")
            .select("user_id, SUM(total) AS total")
            .group_by("user_id")
            .test_mode()
            .sum("total")
        )

        assert sql == (
            "SELECT SUM(total) AS sum_value FROM "
            "(SELECT user_id, SUM(total) AS total FROM orders GROUP BY user_id) count_all_results"
        )

    def test_count_all_results_ignores_limit(self, builder):
        builder.from_("users").where("active", 1).limit(10).order_by("id").test_mode()

        sql = builder.count_all_results()

        assert sql == "SELECT COUNT(*) AS num_rows FROM users WHERE active = 1"
        assert builder._state.tables == []

    def test_count_all_results_without_reset(self, builder):
        builder.from_("users").limit(10).test_mode()

        builder.count_all_results(reset=False)

        assert builder.sql() == "SELECT * FROM users LIMIT 10"

    def test_count_reads_num_rows(self, connection):
        connection.query = Mock(return_value=Result([{"num_rows": 7}]))

        assert connection.table("users").count() == 7

    def test_count_of_empty_result_is_zero(self, connection):
        connection.query = Mock(return_value=Result([]))

        assert connection.table("users").count() == 0

    def test_avg_casts_to_float(self, connection):
        connection.query = Mock(return_value=Result([{"avg_value": "2.5"}]))

        assert connection.table("t").avg("score") == 2.5
