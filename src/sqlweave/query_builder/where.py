from datetime import date, datetime, time as dt_time
from typing import TYPE_CHECKING, Any, Callable, List, Optional, Sequence, Union

from sqlweave.common.exceptions import InvalidCondition, invalid_argument
from sqlweave.constants.sql import Connector, DatePart, LikeSide
from sqlweave.query_builder.conditions import like_side, split_connector
from sqlweave.query_builder.fragments import (
    ColumnRef,
    Condition,
    ConditionGroup,
    Exists,
    Literal,
    Predicate,
    Raw,
    Subquery,
)
from sqlweave.types import RawSql

if TYPE_CHECKING:
    from sqlweave.query_builder.builder import QueryBuilder

_DATE_INPUT_FORMATS = {
    DatePart.DATE: ("%Y-%m-%d", "%Y-%m-%d %H:%M:%S"),
    DatePart.TIME: ("%H:%M:%S", "%H:%M", "%Y-%m-%d %H:%M:%S"),
}


def _connector(connector: Union[str, Connector]) -> Connector:
    if isinstance(connector, Connector):
        return connector
    try:
        return Connector(str(connector).strip().upper())
    except ValueError:
        raise invalid_argument("Connector must be AND or OR.", argument="connector", value=connector) from None


class WhereMixin:
    """WHERE and HAVING clause operations for ``QueryBuilder``.

    Every public method normalizes its arguments into ``Condition``
    fragments and appends them to the WHERE (or HAVING) list. The
    connector is an explicit ``Connector``; the only place a string
    marker is understood is a leading ``|`` on a field passed to the
    generic ``where``/``having`` calls.
    """

    # Shared plumbing

    def _target(self, having: bool) -> List[Predicate]:
        return self._state.having if having else self._state.where

    def _append(self, predicates: Sequence[Predicate], having: bool = False) -> "QueryBuilder":
        self._target(having).extend(predicates)
        if having:
            self._as_select()
        return self

    def _add_where(
        self,
        field: Any,
        value: Any = None,
        escape: bool = True,
        connector: Connector = Connector.AND,
        negate: bool = False,
        having: bool = False,
    ) -> "QueryBuilder":
        if callable(field) and not isinstance(field, RawSql):
            return self._append([self._group(field, connector, negate)], having)
        predicates = self.conditions.parse_many(field, value, escape, connector, negate)
        return self._append(predicates, having)

    def _group(self, callback: Callable, connector: Connector, negate: bool) -> Predicate:
        """Build a parenthesized group from conditions added by ``callback``."""
        child = self.new_query()
        returned = callback(child)
        if isinstance(returned, type(self)):
            child = returned
        return ConditionGroup(tuple(child._state.where), connector, negate)

    # where

    def where(self, field: Any, value: Any = None, escape: bool = True) -> "QueryBuilder":
        """Add AND conditions.

        Args:
            field: ``"column [op]"``, a mapping of such keys to values,
                RawSql, or a callable receiving a fresh builder whose
                conditions become a parenthesized group. A key starting
                with ``|`` is joined with OR instead.
            value: Comparison value; see ``ConditionParser``.
            escape: Quote string values. With False, dotted values are
                treated as column references.
        """
        return self._add_where(field, value, escape)

    def or_where(self, field: Any, value: Any = None, escape: bool = True) -> "QueryBuilder":
        return self._add_where(field, value, escape, Connector.OR)

    def not_where(self, field: Any, value: Any = None, escape: bool = True) -> "QueryBuilder":
        return self._add_where(field, value, escape, negate=True)

    def or_not_where(self, field: Any, value: Any = None, escape: bool = True) -> "QueryBuilder":
        return self._add_where(field, value, escape, Connector.OR, negate=True)

    where_not = not_where
    or_where_not = or_not_where

    # IN

    def _in(
        self,
        field: str,
        values: Any,
        connector: Connector = Connector.AND,
        negate: bool = False,
        having: bool = False,
    ) -> "QueryBuilder":
        from sqlweave.query_builder.builder import QueryBuilder

        if isinstance(values, RawSql):
            operand = Raw(f"({values.sql})")
        elif isinstance(values, str):
            operand = Raw(f"({values})")
        elif isinstance(values, (list, tuple, set, frozenset, QueryBuilder)) or callable(values):
            operand = self.conditions.operand(values)
        else:
            raise invalid_argument(
                "IN values must be a list, a builder, a callable, RawSql or an SQL string.",
                argument="values",
                value=values,
            )

        field, connector = split_connector(field, connector)
        condition = Condition(
            ColumnRef(self.resolver.resolve(field)),
            "NOT IN" if negate else "IN",
            operand,
            connector,
        )
        return self._append([condition], having)

    def where_in(self, field: str, values: Any) -> "QueryBuilder":
        return self._in(field, values)

    def or_where_in(self, field: str, values: Any) -> "QueryBuilder":
        return self._in(field, values, Connector.OR)

    def where_not_in(self, field: str, values: Any) -> "QueryBuilder":
        return self._in(field, values, negate=True)

    def or_where_not_in(self, field: str, values: Any) -> "QueryBuilder":
        return self._in(field, values, Connector.OR, negate=True)

    # LIKE

    def _like(
        self,
        field: Any,
        match: Any = "",
        side: Union[str, LikeSide] = LikeSide.BOTH,
        escape: bool = True,
        insensitive: bool = False,
        connector: Connector = Connector.AND,
        negate: bool = False,
        having: bool = False,
    ) -> "QueryBuilder":
        pairs = field.items() if isinstance(field, dict) else [(field, match)]
        side = like_side(side)
        predicates = []
        for index, (key, value) in enumerate(pairs):
            key, key_connector = split_connector(key, connector if index == 0 else Connector.AND)
            predicates.append(
                self.conditions.like(key, value, side, escape, insensitive, negate, key_connector)
            )
        return self._append(predicates, having)

    def where_like(self, field: Any, match: Any = "", side: str = "both", escape: bool = True, insensitive: bool = False) -> "QueryBuilder":
        """``field LIKE '%match%'``.

        Args:
            side: Wildcard placement: both, before, after or none.
            insensitive: Compare case-insensitively (ILIKE on PostgreSQL,
                ``LOWER()`` on both operands elsewhere).
        """
        return self._like(field, match, side, escape, insensitive)

    def where_not_like(self, field: Any, match: Any = "", side: str = "both", escape: bool = True, insensitive: bool = False) -> "QueryBuilder":
        return self._like(field, match, side, escape, insensitive, negate=True)

    def or_where_like(self, field: Any, match: Any = "", side: str = "both", escape: bool = True, insensitive: bool = False) -> "QueryBuilder":
        return self._like(field, match, side, escape, insensitive, Connector.OR)

    def or_where_not_like(self, field: Any, match: Any = "", side: str = "both", escape: bool = True, insensitive: bool = False) -> "QueryBuilder":
        return self._like(field, match, side, escape, insensitive, Connector.OR, negate=True)

    like = where_like
    not_like = where_not_like
    or_like = or_where_like
    or_not_like = or_where_not_like

    # NULL

    def _null(self, fields: Union[str, Sequence[str]], connector: Connector, negate: bool) -> "QueryBuilder":
        if isinstance(fields, str):
            fields = [fields]
        operator = "IS NOT NULL" if negate else "IS NULL"
        predicates = []
        for index, field in enumerate(fields):
            field, field_connector = split_connector(field, connector if index == 0 else Connector.AND)
            predicates.append(Condition(ColumnRef(self.resolver.resolve(field)), operator, connector=field_connector))
        return self._append(predicates)

    def where_null(self, fields: Union[str, Sequence[str]]) -> "QueryBuilder":
        return self._null(fields, Connector.AND, False)

    def or_where_null(self, fields: Union[str, Sequence[str]]) -> "QueryBuilder":
        return self._null(fields, Connector.OR, False)

    def where_not_null(self, fields: Union[str, Sequence[str]]) -> "QueryBuilder":
        return self._null(fields, Connector.AND, True)

    def or_where_not_null(self, fields: Union[str, Sequence[str]]) -> "QueryBuilder":
        return self._null(fields, Connector.OR, True)

    # BETWEEN

    def _between(self, field: str, low: Any, high: Any, connector: Connector, negate: bool) -> "QueryBuilder":
        field, connector = split_connector(field, connector)
        return self._append([
            self.conditions.parse(field + (" NOT BETWEEN" if negate else " BETWEEN"), [low, high], True, connector)
        ])

    def where_between(self, field: str, low: Any, high: Any) -> "QueryBuilder":
        return self._between(field, low, high, Connector.AND, False)

    def or_where_between(self, field: str, low: Any, high: Any) -> "QueryBuilder":
        return self._between(field, low, high, Connector.OR, False)

    def where_not_between(self, field: str, low: Any, high: Any) -> "QueryBuilder":
        return self._between(field, low, high, Connector.AND, True)

    def or_where_not_between(self, field: str, low: Any, high: Any) -> "QueryBuilder":
        return self._between(field, low, high, Connector.OR, True)

    # Column to column

    def _column(self, first: Any, second: Optional[str], connector: Connector, negate: bool) -> "QueryBuilder":
        if isinstance(first, str):
            if second is None:
                raise invalid_argument(
                    "A column comparison needs a second column.", argument="second", value=first
                )
            pairs = [(first, second)]
        elif isinstance(first, dict):
            pairs = list(first.items())
        else:
            raise invalid_argument(
                "A column comparison takes a column name or a mapping of columns.",
                argument="first",
                value=first,
            )

        predicates = []
        for index, (left, right) in enumerate(pairs):
            left, left_connector = split_connector(left, connector if index == 0 else Connector.AND)
            predicates.append(self.conditions.column_comparison(left, right, left_connector, negate))
        return self._append(predicates)

    def where_column(self, first: Any, second: Optional[str] = None) -> "QueryBuilder":
        """``first = second`` with both sides resolved as columns.

        Example:
            >>> builder.from_(["users u", "jobs j"]).where_column("users.id_user", "jobs.id_user")
            # WHERE u.id_user = j.id_user
        """
        return self._column(first, second, Connector.AND, False)

    def or_where_column(self, first: Any, second: Optional[str] = None) -> "QueryBuilder":
        return self._column(first, second, Connector.OR, False)

    def where_not_column(self, first: Any, second: Optional[str] = None) -> "QueryBuilder":
        return self._column(first, second, Connector.AND, True)

    def or_where_not_column(self, first: Any, second: Optional[str] = None) -> "QueryBuilder":
        return self._column(first, second, Connector.OR, True)

    not_where_column = where_not_column
    or_not_where_column = or_where_not_column

    # Raw

    def _raw(self, sql: str, connector: Connector, negate: bool) -> "QueryBuilder":
        if not str(sql).strip():
            raise InvalidCondition("A raw condition cannot be empty.", details={"sql": repr(sql)})
        return self._append([Condition(Raw(str(sql)), connector=connector, negated=negate)])

    def where_raw(self, sql: str) -> "QueryBuilder":
        return self._raw(sql, Connector.AND, False)

    def or_where_raw(self, sql: str) -> "QueryBuilder":
        return self._raw(sql, Connector.OR, False)

    def where_not_raw(self, sql: str) -> "QueryBuilder":
        return self._raw(sql, Connector.AND, True)

    def or_where_not_raw(self, sql: str) -> "QueryBuilder":
        return self._raw(sql, Connector.OR, True)

    # EXISTS

    def where_exists(self, source: Any, connector: Union[str, Connector] = Connector.AND, negate: bool = False) -> "QueryBuilder":
        """``[NOT] EXISTS (subquery)`` from a builder or a callback."""
        connector = _connector(connector)
        exists = Exists(Subquery(self._compile_subquery(source)), connector, negate)
        return self._append([exists])

    def or_where_exists(self, source: Any) -> "QueryBuilder":
        return self.where_exists(source, Connector.OR)

    def where_not_exists(self, source: Any) -> "QueryBuilder":
        return self.where_exists(source, Connector.AND, True)

    def or_where_not_exists(self, source: Any) -> "QueryBuilder":
        return self.where_exists(source, Connector.OR, True)

    # Dates

    @staticmethod
    def _date_value(part: DatePart, value: Any) -> Any:
        """Normalize ``value`` to a date, time or integer part."""
        if isinstance(value, bool):
            raise invalid_argument(f"Invalid {part.value} value.", argument="value", value=value)

        if isinstance(value, int):
            if part in (DatePart.DAY, DatePart.MONTH, DatePart.YEAR):
                return value
            value = datetime.fromtimestamp(value)

        if isinstance(value, str):
            value = value.strip()
            if part in (DatePart.DAY, DatePart.MONTH, DatePart.YEAR) and value.isdigit():
                return int(value)
            for fmt in _DATE_INPUT_FORMATS.get(part, ("%Y-%m-%d", "%Y-%m-%d %H:%M:%S")):
                try:
                    value = datetime.strptime(value, fmt)
                    break
                except ValueError:
                    continue
            else:
                raise invalid_argument(
                    f"Cannot read {value!r} as a {part.value}.", argument="value", value=value
                )

        if part == DatePart.TIME:
            if isinstance(value, datetime):
                return value.time()
            if isinstance(value, dt_time):
                return value
        elif isinstance(value, (date, datetime)):
            if part == DatePart.DATE:
                return value
            return getattr(value, part.value)

        raise invalid_argument(f"Invalid {part.value} value.", argument="value", value=value)

    def _date(self, part: DatePart, field: Any, value: Any, connector: Connector) -> "QueryBuilder":
        pairs = field.items() if isinstance(field, dict) else [(field, value)]
        predicates = []
        for index, (key, item) in enumerate(pairs):
            key, key_connector = split_connector(key, connector if index == 0 else Connector.AND)
            column_text, operator = self.conditions.split_operator(key)
            normalized = self._date_value(part, item)
            column = self.dialect.date_predicate(part, self.resolver.resolve(column_text))
            literal = Literal(self.dialect.format_date_value(part, normalized))
            predicates.append(Condition(ColumnRef(column), operator or "=", literal, key_connector))
        return self._append(predicates)

    def where_date(self, field: Any, value: Any = None) -> "QueryBuilder":
        """Compare the date part of ``field``; a trailing operator is honored.

        Example:
            >>> builder.where_date("created_at >=", date(2024, 1, 31))
            # MySQL: WHERE DATE(created_at) >= '2024-01-31'
        """
        return self._date(DatePart.DATE, field, value, Connector.AND)

    def or_where_date(self, field: Any, value: Any = None) -> "QueryBuilder":
        return self._date(DatePart.DATE, field, value, Connector.OR)

    def where_time(self, field: Any, value: Any = None) -> "QueryBuilder":
        return self._date(DatePart.TIME, field, value, Connector.AND)

    def or_where_time(self, field: Any, value: Any = None) -> "QueryBuilder":
        return self._date(DatePart.TIME, field, value, Connector.OR)

    def where_day(self, field: Any, value: Any = None) -> "QueryBuilder":
        return self._date(DatePart.DAY, field, value, Connector.AND)

    def or_where_day(self, field: Any, value: Any = None) -> "QueryBuilder":
        return self._date(DatePart.DAY, field, value, Connector.OR)

    def where_month(self, field: Any, value: Any = None) -> "QueryBuilder":
        return self._date(DatePart.MONTH, field, value, Connector.AND)

    def or_where_month(self, field: Any, value: Any = None) -> "QueryBuilder":
        return self._date(DatePart.MONTH, field, value, Connector.OR)

    def where_year(self, field: Any, value: Any = None) -> "QueryBuilder":
        return self._date(DatePart.YEAR, field, value, Connector.AND)

    def or_where_year(self, field: Any, value: Any = None) -> "QueryBuilder":
        return self._date(DatePart.YEAR, field, value, Connector.OR)

    # HAVING

    def having(self, field: Any, value: Any = None, escape: bool = True) -> "QueryBuilder":
        return self._add_where(field, value, escape, having=True)

    def or_having(self, field: Any, value: Any = None, escape: bool = True) -> "QueryBuilder":
        return self._add_where(field, value, escape, Connector.OR, having=True)

    def having_in(self, field: str, values: Any) -> "QueryBuilder":
        return self._in(field, values, having=True)

    def or_having_in(self, field: str, values: Any) -> "QueryBuilder":
        return self._in(field, values, Connector.OR, having=True)

    def having_not_in(self, field: str, values: Any) -> "QueryBuilder":
        return self._in(field, values, negate=True, having=True)

    def or_having_not_in(self, field: str, values: Any) -> "QueryBuilder":
        return self._in(field, values, Connector.OR, negate=True, having=True)

    def having_like(self, field: Any, match: Any = "", side: str = "both", escape: bool = True, insensitive: bool = False) -> "QueryBuilder":
        return self._like(field, match, side, escape, insensitive, having=True)

    def having_not_like(self, field: Any, match: Any = "", side: str = "both", escape: bool = True, insensitive: bool = False) -> "QueryBuilder":
        return self._like(field, match, side, escape, insensitive, negate=True, having=True)

    def or_having_like(self, field: Any, match: Any = "", side: str = "both", escape: bool = True, insensitive: bool = False) -> "QueryBuilder":
        return self._like(field, match, side, escape, insensitive, Connector.OR, having=True)

    def or_having_not_like(self, field: Any, match: Any = "", side: str = "both", escape: bool = True, insensitive: bool = False) -> "QueryBuilder":
        return self._like(field, match, side, escape, insensitive, Connector.OR, negate=True, having=True)

    not_having_like = having_not_like
