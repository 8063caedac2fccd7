import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Dict, Iterable, List, Optional, Sequence, Union

from sqlweave.common.exceptions import (
    MissingData,
    UndefinedTable,
    invalid_argument,
    unsupported_feature,
)
from sqlweave.connection.result import Result
from sqlweave.constants.sql import (
    DEFAULT_TIMESTAMP_COLUMN,
    ORDER_DIRECTIONS,
    Connector,
    CrudMode,
)
from sqlweave.logging import get_logger
from sqlweave.query_builder.aggregates import AggregatesMixin
from sqlweave.query_builder.compiler import StatementCompiler
from sqlweave.query_builder.conditions import ConditionParser, split_connector
from sqlweave.query_builder.fields import FieldResolver
from sqlweave.query_builder.fragments import (
    Assignment,
    BuilderState,
    ColumnRef,
    Condition,
    Join,
    OrderTerm,
    Raw,
    TableRef,
)
from sqlweave.query_builder.subquery import SubqueryMixin
from sqlweave.query_builder.where import WhereMixin
from sqlweave.types import RawSql

if TYPE_CHECKING:
    from sqlweave.connection import Connection

logger = get_logger(__name__)

_DIRECTION_SUFFIX = re.compile(r"^(?P<field>.+?)\s+(?P<direction>ASC|DESC)$", re.IGNORECASE)


def split_list(value: str) -> List[str]:
    """Split a comma separated list, ignoring commas inside parentheses."""
    items: List[str] = []
    depth = 0
    current = ""
    for char in value:
        if char == "(":
            depth += 1
        elif char == ")":
            depth -= 1
        if char == "," and depth == 0:
            items.append(current)
            current = ""
            continue
        current += char
    items.append(current)
    return [item.strip() for item in items if item.strip()]


class QueryBuilder(WhereMixin, SubqueryMixin, AggregatesMixin):
    """Fluent builder compiling to dialect-correct SQL.

    A builder accumulates fragments through chained calls and turns them
    into exactly one statement. Compiling consumes the builder: ``sql()``
    and every terminal call (``execute``, ``insert``, ``all``, ...) reset
    it to an empty SELECT afterwards, unless ``sql(preserve=True)`` is
    used. Build a new builder, or ``clone()`` an existing one, for each
    statement.

    The dialect strategy comes from the connection and is fixed for the
    builder's lifetime. Table aliases live on the connection too, so
    every builder of one connection resolves ``table.column`` the same way.

    Test mode makes write and aggregate terminals return the compiled SQL
    instead of executing it.

    Example:
        >>> builder = connection.new_query()
        >>> builder.from_("jobs j").where("jobs.id", 3).or_where("name", "dev").sql()
        "SELECT * FROM jobs AS j WHERE j.id = 3 OR name = 'dev'"
    """

    def __init__(self, connection: "Connection", tables: Any = None):
        self.connection = connection
        self.dialect = connection.dialect
        self.resolver = FieldResolver(connection)
        self.conditions = ConditionParser(connection, self.resolver, self._compile_subquery)
        self.compiler = StatementCompiler(connection)
        self._state = BuilderState()
        self._test_mode = False
        if tables is not None:
            self.from_(tables)

    def __repr__(self) -> str:
        return f"QueryBuilder(dialect={self.dialect.name!r}, mode={self._state.mode.value!r})"

    @property
    def mode(self) -> CrudMode:
        return self._state.mode

    def test_mode(self, enabled: bool = True) -> "QueryBuilder":
        self._test_mode = enabled
        return self

    def _as_select(self) -> "QueryBuilder":
        self._state.mode = CrudMode.SELECT
        return self

    def _as_select_unless_write(self) -> "QueryBuilder":
        """ORDER BY and LIMIT are legal on UPDATE/DELETE, so keep those modes."""
        if self._state.mode not in (CrudMode.UPDATE, CrudMode.DELETE):
            self._state.mode = CrudMode.SELECT
        return self

    # FROM

    def _table_ref(self, reference: str) -> TableRef:
        alias, name = self.connection.get_table_alias(reference)
        return TableRef(
            sql=self.connection.make_table_name(reference),
            name=name,
            alias=alias if alias != name else "",
        )

    def _qualifier(self, table: TableRef) -> str:
        return table.alias or self.connection.table_qualifier(table.name)

    @staticmethod
    def _table_list(tables: Union[str, Iterable[str]]) -> List[str]:
        if isinstance(tables, str):
            return split_list(tables)
        references: List[str] = []
        for item in tables:
            references.extend(split_list(item))
        return references

    def from_(self, tables: Union[str, Sequence[str], None], overwrite: bool = False) -> "QueryBuilder":
        """Set the FROM list.

        Args:
            tables: ``"jobs j, users AS u"``, a list of such references, or
                None for a SELECT without FROM.
            overwrite: Replace the current FROM list instead of extending it.
        """
        if tables is None:
            self._state.tables = []
            self._state.no_from = True
            return self

        refs = [self._table_ref(reference) for reference in self._table_list(tables)]
        if overwrite:
            self._state.tables = []
        for ref in refs:
            if ref not in self._state.tables:
                self._state.tables.append(ref)
        self._state.no_from = False
        return self

    def table(self, tables: Union[str, Sequence[str]]) -> "QueryBuilder":
        return self.from_(tables, overwrite=True)

    into = table

    def get_table(self) -> str:
        """Main table without alias, as used by write statements."""
        if not self._state.tables:
            raise UndefinedTable("Table is not defined.")
        return self.compiler.target_table(self._state)

    # JOIN

    def join(
        self,
        table: str,
        fields: Union[str, Mapping, RawSql, None],
        kind: str = "INNER",
        escape: bool = False,
    ) -> "QueryBuilder":
        """Add a join.

        Args:
            table: ``"users u"`` style reference
            fields: A column shared by the last FROM table and ``table``, a
                mapping of ``"left [op]"`` to right-hand columns/values, or
                RawSql for a verbatim ON condition
            kind: INNER, LEFT, RIGHT, OUTER, LEFT OUTER, RIGHT OUTER
                (plus FULL OUTER where the dialect has it)
            escape: Quote mapping values instead of treating them as columns

        Example:
            >>> builder.from_("jobs j").join("users u", "id_user")
            # INNER JOIN users AS u ON j.id_user = u.id_user
        """
        kind = " ".join(kind.upper().split())
        if kind not in self.dialect.join_types:
            if kind.startswith("FULL"):
                raise unsupported_feature("FULL OUTER JOIN", self.dialect.name)
            raise invalid_argument(f"Unknown join type: {kind}", argument="kind", value=kind)

        if isinstance(fields, str) and not self._state.tables:
            raise invalid_argument(
                "Joining on a shared column needs a table in FROM first.", argument="fields"
            )

        ref = self._table_ref(table)
        conditions = self._join_conditions(ref, fields, escape)
        self._state.joins.append(Join(kind, ref, tuple(conditions)))
        return self._as_select()

    def _join_conditions(self, ref: TableRef, fields: Any, escape: bool) -> List[Condition]:
        if fields is None:
            return []
        if isinstance(fields, RawSql):
            return [Condition(Raw(fields.sql))]
        if isinstance(fields, str):
            left = self._qualifier(self._state.tables[-1])
            right = self._qualifier(ref)
            escape_id = self.connection.escape_identifiers
            return [Condition(
                ColumnRef(escape_id(f"{left}.{fields}")),
                "=",
                ColumnRef(escape_id(f"{right}.{fields}")),
            )]
        if isinstance(fields, Mapping):
            conditions = []
            for key, value in fields.items():
                key, connector = split_connector(key, Connector.AND)
                column_text, operator = self.conditions.split_operator(key)
                conditions.append(Condition(
                    ColumnRef(self.resolver.resolve(column_text)),
                    operator or "=",
                    self.conditions.operand(value, escape),
                    connector,
                ))
            return conditions
        raise invalid_argument("Unsupported join condition.", argument="fields", value=fields)

    def inner_join(self, table: str, fields: Any, escape: bool = False) -> "QueryBuilder":
        return self.join(table, fields, "INNER", escape)

    def left_join(self, table: str, fields: Any, outer: bool = False, escape: bool = False) -> "QueryBuilder":
        return self.join(table, fields, "LEFT OUTER" if outer else "LEFT", escape)

    def right_join(self, table: str, fields: Any, outer: bool = False, escape: bool = False) -> "QueryBuilder":
        return self.join(table, fields, "RIGHT OUTER" if outer else "RIGHT", escape)

    def full_join(self, table: str, fields: Any, escape: bool = False) -> "QueryBuilder":
        return self.join(table, fields, "FULL OUTER", escape)

    def natural_join(self, tables: Union[str, Sequence[str]]) -> "QueryBuilder":
        """``NATURAL JOIN`` each table; MySQL only."""
        self.dialect.check_natural_join()
        for reference in self._table_list(tables):
            self._state.joins.append(Join("", self._table_ref(reference), natural=True))
        return self._as_select()

    # SELECT list

    def select(self, fields: Union[str, Sequence[Any]] = "*", limit: Optional[int] = None, offset: Optional[int] = None) -> "QueryBuilder":
        """Add columns to the select list.

        ``"*"`` is ignored once explicit columns exist. ``limit`` and
        ``offset`` are shortcuts for the corresponding calls.
        """
        if limit is not None:
            self._count_argument("limit", limit)
        if offset is not None:
            self._count_argument("offset", offset)

        items = split_list(fields) if isinstance(fields, str) else list(fields)
        resolved = []
        for item in items:
            if isinstance(item, RawSql):
                resolved.append(Raw(item.sql))
                continue
            item = str(item).strip()
            if item == "*" and (self._state.fields or resolved):
                continue
            resolved.append(ColumnRef(self.resolver.resolve(item)))
        self._state.fields.extend(resolved)

        if limit is not None:
            self.limit(limit, offset)
        elif offset is not None:
            self.offset(offset)
        return self._as_select()

    def distinct(self, value: bool = True) -> "QueryBuilder":
        self._state.distinct = value
        return self._as_select()

    # ORDER BY / GROUP BY

    def order_by(self, field: Any, direction: str = "ASC", escape: bool = True) -> "QueryBuilder":
        """Add ORDER BY terms.

        Args:
            field: A column, ``"a DESC, b"``, a list of columns, or a
                mapping of column to direction.
            direction: ASC, DESC or RANDOM.
            escape: Resolve and escape the column; False keeps it verbatim.
        """
        if isinstance(field, Mapping):
            for key, value in field.items():
                self.order_by(key, value, escape)
            return self
        if isinstance(field, (list, tuple)):
            for item in field:
                self.order_by(item, direction, escape)
            return self

        direction = direction.strip().upper()
        if direction not in ORDER_DIRECTIONS:
            raise invalid_argument(
                f"Invalid order direction: {direction}", argument="direction", value=direction
            )

        if direction == "RANDOM":
            seed = field if isinstance(field, int) or (isinstance(field, str) and field.isdigit()) else None
            return self._order_random(int(seed) if seed is not None else None)

        for item in split_list(str(field)):
            item_direction = direction
            match = _DIRECTION_SUFFIX.match(item)
            if match:
                item, item_direction = match.group("field"), match.group("direction").upper()
            expression = ColumnRef(self.resolver.resolve(item)) if escape else Raw(item)
            self._state.order.append(OrderTerm(expression, item_direction))
        return self._as_select_unless_write()

    order = order_by

    def _order_random(self, seed: Optional[int] = None) -> "QueryBuilder":
        expression, session_statement = self.dialect.random_order(seed)
        self._state.order.append(OrderTerm(Raw(expression)))
        if session_statement:
            self._state.session_statements.append(session_statement)
        return self._as_select_unless_write()

    def sort_asc(self, field: Any, escape: bool = True) -> "QueryBuilder":
        return self.order_by(field, "ASC", escape)

    def sort_desc(self, field: Any, escape: bool = True) -> "QueryBuilder":
        return self.order_by(field, "DESC", escape)

    def sort_rand(self, seed: Optional[int] = None) -> "QueryBuilder":
        return self._order_random(seed)

    rand = sort_rand

    def latest(self, field: str = DEFAULT_TIMESTAMP_COLUMN) -> "QueryBuilder":
        return self.sort_desc(field)

    def oldest(self, field: str = DEFAULT_TIMESTAMP_COLUMN) -> "QueryBuilder":
        return self.sort_asc(field)

    def group_by(self, field: Union[str, Sequence[str]], escape: bool = True) -> "QueryBuilder":
        items = split_list(field) if isinstance(field, str) else list(field)
        for item in items:
            expression = ColumnRef(self.resolver.resolve(item)) if escape else ColumnRef(item)
            if expression not in self._state.groups:
                self._state.groups.append(expression)
        return self._as_select()

    group = group_by

    # LIMIT / OFFSET

    @staticmethod
    def _count_argument(name: str, value: Any) -> int:
        if isinstance(value, bool) or not isinstance(value, int) or value < 0:
            raise invalid_argument(f"{name} must be a non-negative integer.", argument=name, value=value)
        return value

    def _check_write_limit(self, mode: CrudMode) -> None:
        if self._state.limit is not None or self._state.offset is not None:
            self.dialect.check_limit(mode, offset=self._state.offset is not None)

    def limit(self, limit: int, offset: Optional[int] = None) -> "QueryBuilder":
        limit = self._count_argument("limit", limit)
        if offset is not None:
            offset = self._count_argument("offset", offset)
            self._state.offset = offset
        self._state.limit = limit
        return self._as_select_unless_write()

    def offset(self, offset: int, limit: Optional[int] = None) -> "QueryBuilder":
        offset = self._count_argument("offset", offset)
        if limit is not None:
            self._state.limit = self._count_argument("limit", limit)
        self._state.offset = offset
        return self._as_select_unless_write()

    def params(self, values: Mapping) -> "QueryBuilder":
        """Bind values for ``:name`` placeholders in raw fragments."""
        self._state.params.update(values)
        return self

    # Writes

    def _assignments(self, data: Any, value: Any = None, escape: Optional[bool] = None) -> Dict[str, Assignment]:
        if escape is None:
            escape = self.connection.protect_identifiers
        if isinstance(data, Mapping):
            pairs = list(data.items())
        elif isinstance(data, str):
            pairs = [(data, value)]
        else:
            raise invalid_argument("Data must be a mapping or a column name.", argument="data", value=data)

        assignments = {}
        for column, item in pairs:
            rendered = self.connection.quote(item) if escape else str(item)
            assignments[column] = Assignment(self.connection.escape_identifiers(column), rendered)
        return assignments

    def set(self, key: Any, value: Any = None, escape: Optional[bool] = None) -> "QueryBuilder":
        """Queue column values for INSERT/UPDATE/REPLACE.

        ``escape`` defaults to the connection's protect-identifiers flag;
        with False values are spliced in verbatim.
        """
        self._state.assignments.update(self._assignments(key, value, escape))
        return self

    def _require_data(self, data: Any, execute: bool, action: str) -> None:
        if not data and not self._state.assignments and execute:
            raise MissingData(f"You must give entries to {action}.", details={"action": action})

    def ignore(self, value: bool = True) -> "QueryBuilder":
        self._state.ignore = value
        self._state.mode = CrudMode.INSERT
        return self

    def insert(self, data: Optional[Mapping] = None, escape: bool = True, execute: bool = True):
        """INSERT the queued values plus ``data``.

        Returns:
            The execution result, the SQL in test mode, or the builder
            when ``execute`` is False.

        Raises:
            MissingData: If there is nothing to insert and ``execute`` is set.
        """
        self._require_data(data, execute, "insert")
        if data:
            self.set(data, escape=escape)
        self._state.mode = CrudMode.INSERT
        return self.execute() if execute else self

    def insert_ignore(self, data: Optional[Mapping] = None, escape: bool = True, execute: bool = True):
        self._require_data(data, execute, "insert")
        self.ignore(True)
        return self.insert(data, escape, execute)

    def bulk_insert(self, rows: Sequence[Mapping], escape: bool = True, ignore: bool = False, execute: bool = True):
        """One INSERT per row against the current table.

        In test mode, or with ``execute`` False, the statements are
        returned joined by ``"; "``.
        """
        if not rows:
            if execute:
                raise MissingData("You must give entries to insert.", details={"action": "bulk_insert"})
            return self

        statements = []
        for row in rows:
            state = self._state.copy()
            state.mode = CrudMode.INSERT
            state.ignore = ignore
            state.assignments = self._assignments(row, escape=escape)
            statements.append(self.compiler.compile(state))
        self.reset()

        if self._test_mode or not execute:
            return "; ".join(statements)

        for statement in statements:
            self.connection.query(statement)
        return True

    def bulk_insert_ignore(self, rows: Sequence[Mapping], escape: bool = True, execute: bool = True):
        return self.bulk_insert(rows, escape, True, execute)

    def update(self, data: Optional[Mapping] = None, escape: bool = True, execute: bool = True):
        """UPDATE the current table with the queued values plus ``data``.

        Raises:
            MissingData: If there is nothing to update and ``execute`` is set.
            UnsupportedFeature: If a LIMIT or OFFSET is set and the dialect forbids it.
        """
        self._require_data(data, execute, "update")
        self._check_write_limit(CrudMode.UPDATE)
        if data:
            self.set(data, escape=escape)
        self._state.mode = CrudMode.UPDATE
        return self.execute() if execute else self

    def replace(self, data: Optional[Mapping] = None, escape: bool = True, execute: bool = True):
        """REPLACE a row keyed by its first column.

        On PostgreSQL with the ``emulate`` strategy the row is probed with
        a SELECT (always executed, even in test mode) and the statement
        becomes an INSERT or an UPDATE. That pair is not atomic; see
        ``PostgresDialect``.
        """
        self._require_data(data, execute, "replace")
        if data:
            self.set(data, escape=escape)
        self._state.mode = CrudMode.REPLACE

        if not execute:
            return self
        if not self.dialect.native_replace and getattr(self.dialect, "emulates_replace", False):
            return self._emulate_replace()
        return self.execute()

    def _emulate_replace(self):
        state = self._state
        self.compiler.check_table(state)
        key, assignment = next(iter(state.assignments.items()))
        table = state.tables[-1]

        probe = self.new_query().from_(table.name).where(key, RawSql(assignment.value)).limit(1)
        exists = probe.first() is not None
        logger.debug(
            "Emulating REPLACE with a probe query",
            extra={"table": table.name, "key": key, "exists": exists},
        )

        if exists:
            state.mode = CrudMode.UPDATE
            state.where.append(Condition(ColumnRef(assignment.column), "=", Raw(assignment.value)))
        else:
            state.mode = CrudMode.INSERT
        return self.execute()

    def delete(self, where: Any = None, limit: Optional[int] = None, execute: bool = True):
        """DELETE from the current table.

        Raises:
            UnsupportedFeature: If a limit or offset is set (here or
                earlier) and the dialect cannot LIMIT a DELETE.
        """
        if limit is not None:
            self._count_argument("limit", limit)
            self.dialect.check_limit(CrudMode.DELETE)
        self._check_write_limit(CrudMode.DELETE)

        if not where:
            conditions = []
        elif callable(where) and not isinstance(where, RawSql):
            conditions = [self._group(where, Connector.AND, False)]
        else:
            conditions = self.conditions.parse_many(where)

        self._state.where.extend(conditions)
        self._state.mode = CrudMode.DELETE
        if limit is not None:
            self._state.limit = limit
        return self.execute() if execute else self

    def truncate(self, table: Optional[str] = None, execute: bool = True):
        if table:
            self.table(table)
        self._state.mode = CrudMode.TRUNCATE
        return self.execute() if execute else self

    def _step(self, column: str, amount: Union[int, float], sign: str, execute: bool):
        if isinstance(amount, bool) or not isinstance(amount, (int, float)):
            raise invalid_argument("Increment amount must be numeric.", argument="amount", value=amount)
        self._check_write_limit(CrudMode.UPDATE)
        escaped = self.resolver.resolve(column)
        expression = self.dialect.increment_expression(escaped, amount, sign)
        self._state.assignments[column] = Assignment(escaped, expression)
        self._state.mode = CrudMode.UPDATE
        return self.execute() if execute else self

    def increment(self, column: str, amount: Union[int, float] = 1, execute: bool = True):
        """``SET column = column + amount``."""
        return self._step(column, amount, "+", execute)

    def decrement(self, column: str, amount: Union[int, float] = 1, execute: bool = True):
        return self._step(column, amount, "-", execute)

    # Compilation

    def sql(self, preserve: bool = False) -> str:
        """Compile the accumulated state.

        Unless ``preserve`` is True the builder is reset afterwards, so a
        second call without new input fails with UndefinedTable.
        """
        sql = self.compiler.compile(self._state)
        if not preserve:
            self.reset()
        return sql

    def reset(self) -> "QueryBuilder":
        """Drop every fragment and return to an empty SELECT."""
        self._state = BuilderState()
        return self

    def clone(self) -> "QueryBuilder":
        """Independent copy of this builder, state included."""
        copy = QueryBuilder(self.connection)
        copy._state = self._state.copy()
        copy._test_mode = self._test_mode
        return copy

    def new_query(self) -> "QueryBuilder":
        """Empty builder on the same connection."""
        return QueryBuilder(self.connection)

    # Execution

    def query(self, sql: str, params: Optional[Mapping] = None):
        """Run arbitrary SQL on the builder's connection."""
        return self.connection.query(sql, params)

    def execute(self):
        """Compile and run the statement; returns the SQL in test mode."""
        if self._test_mode:
            return self.sql()
        return self._run()

    def _run(self):
        setup = list(self._state.session_statements)
        params = dict(self._state.params)
        sql = self.sql()
        return self.connection.query(sql, params or None, setup=setup or None)

    def _fetch(self) -> Result:
        result = self._run()
        return result if isinstance(result, Result) else Result([])

    def all(self) -> List[Dict[str, Any]]:
        return self._fetch().all()

    result = all

    def first(self) -> Optional[Dict[str, Any]]:
        self.limit(1)
        return self._fetch().first()

    one = first

    def row(self, index: int = 0) -> Optional[Dict[str, Any]]:
        return self._fetch().row(index)

    def value(self, name: Union[str, Sequence[str]]) -> Any:
        """Value(s) of ``name`` in the first row."""
        row = self.first() or {}
        if isinstance(name, str):
            return row.get(name)
        return [row.get(column) for column in name]

    def values(self, name: Union[str, Sequence[str]]) -> List[Any]:
        """Value(s) of ``name`` for every row."""
        rows = self.all()
        if isinstance(name, str):
            return [row.get(name) for row in rows]
        return [{column: row.get(column) for column in name} for row in rows]

    def find_all(self, fields: Union[str, Sequence[str]] = "*", options: Optional[Mapping] = None) -> List[Dict[str, Any]]:
        """SELECT ``fields`` with optional ``limit``, ``offset`` and ``where`` options."""
        options = options or {}
        self.select(fields)
        if options.get("limit") is not None:
            self.limit(options["limit"])
        if options.get("offset") is not None:
            self.offset(options["offset"])
        if options.get("where"):
            self.where(options["where"])
        return self.all()

    def find_one(self, fields: Union[str, Sequence[str]] = "*", options: Optional[Mapping] = None) -> Optional[Dict[str, Any]]:
        options = options or {}
        self.select(fields)
        if options.get("offset") is not None:
            self.offset(options["offset"])
        if options.get("where"):
            self.where(options["where"])
        return self.first()
