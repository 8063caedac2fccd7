import re
from typing import TYPE_CHECKING, Iterable, List, Sequence

from sqlweave.common.exceptions import UndefinedTable
from sqlweave.constants.sql import CrudMode
from sqlweave.logging import get_logger
from sqlweave.query_builder.fragments import (
    Between,
    BuilderState,
    ColumnRef,
    Condition,
    ConditionGroup,
    Exists,
    Join,
    Literal,
    Operand,
    Predicate,
    Raw,
    Subquery,
    TableRef,
    ValueList,
)

if TYPE_CHECKING:
    from sqlweave.connection import Connection

logger = get_logger(__name__)

# Quoted literals and identifiers, kept verbatim when collapsing whitespace.
_QUOTED = re.compile(r"('(?:[^']|'')*'|\"(?:[^\"]|\"\")*\"|`[^`]*`)")


def collapse_whitespace(sql: str) -> str:
    """Squeeze runs of whitespace to one space outside quoted text."""
    parts = _QUOTED.split(sql)
    for index in range(0, len(parts), 2):
        parts[index] = re.sub(r"\s+", " ", parts[index])
    return "".join(parts).strip()


class StatementCompiler:
    """Serializes a ``BuilderState`` into one SQL statement.

    The compiler is the only place fragments become text. It consults the
    connection for literal quoting and the dialect for every statement form
    that differs between engines. It never mutates the state it is given;
    resetting the builder afterwards is the builder's job.

    Runs of whitespace collapse to one space in the finished statement,
    raw fragments included; quoted literals and identifiers keep theirs.

    Example:
        >>> compiler = StatementCompiler(connection)
        >>> compiler.compile(state)
        "SELECT * FROM jobs AS j WHERE j.id = 3"
    """

    def __init__(self, connection: "Connection"):
        self.connection = connection
        self.dialect = connection.dialect

    def compile(self, state: BuilderState) -> str:
        """Compile ``state`` according to its CRUD mode.

        Raises:
            UndefinedTable: If the statement needs a table and none is set.
            UnsupportedFeature: If the dialect rejects LIMIT or OFFSET for the mode.
        """
        self.check_table(state)

        if state.mode in (CrudMode.UPDATE, CrudMode.DELETE) and (
            state.limit is not None or state.offset is not None
        ):
            self.dialect.check_limit(state.mode, offset=state.offset is not None)

        compilers = {
            CrudMode.SELECT: self.compile_select,
            CrudMode.INSERT: self.compile_insert,
            CrudMode.UPDATE: self.compile_update,
            CrudMode.DELETE: self.compile_delete,
            CrudMode.REPLACE: self.compile_replace,
            CrudMode.TRUNCATE: self.compile_truncate,
        }
        sql = collapse_whitespace(compilers[state.mode](state))
        logger.debug("Compiled statement", extra={"mode": state.mode.value, "sql": sql})
        return sql

    @staticmethod
    def check_table(state: BuilderState) -> None:
        """Raise UndefinedTable unless ``state`` has the table its mode needs."""
        if state.tables:
            return
        if state.mode == CrudMode.SELECT and state.no_from:
            return
        raise UndefinedTable("Table is not defined.", details={"mode": state.mode.value})

    @staticmethod
    def _join(parts: Iterable[str]) -> str:
        return " ".join(part.strip() for part in parts if part and part.strip())

    # Fragments

    def render_operand(self, operand: Operand) -> str:
        if isinstance(operand, (Raw, ColumnRef)):
            return operand.sql
        if isinstance(operand, Literal):
            return self.connection.escape_value(operand.value, operand.escape)
        if isinstance(operand, ValueList):
            return "(" + ",".join(self.render_operand(item) for item in operand.items) + ")"
        if isinstance(operand, Between):
            return f"{self.render_operand(operand.low)} AND {self.render_operand(operand.high)}"
        if isinstance(operand, Subquery):
            return self.render_subquery(operand)
        raise TypeError(f"Cannot render operand {operand!r}")

    @staticmethod
    def render_subquery(subquery: Subquery) -> str:
        sql = f"({subquery.sql})"
        return f"{sql} {subquery.alias}" if subquery.alias else sql

    def render_predicate(self, predicate: Predicate) -> str:
        if isinstance(predicate, ConditionGroup):
            text = f"({self.render_conditions(predicate.conditions)})"
            return f"NOT {text}" if predicate.negated else text

        if isinstance(predicate, Exists):
            keyword = "NOT EXISTS" if predicate.negated else "EXISTS"
            return f"{keyword} ({predicate.subquery.sql})"

        column = self.render_operand(predicate.column)
        if not predicate.operator:
            text = column
        elif predicate.value is None:
            text = f"{column} {predicate.operator}"
        else:
            text = f"{column} {predicate.operator} {self.render_operand(predicate.value)}"

        if predicate.negated:
            text = f"NOT ({text})"
        return text

    def render_conditions(self, predicates: Sequence[Predicate]) -> str:
        """Join predicates with their connectors; the first connector is dropped."""
        parts: List[str] = []
        for index, predicate in enumerate(predicates):
            if index:
                parts.append(predicate.connector.value)
            parts.append(self.render_predicate(predicate))
        return " ".join(parts)

    def _clause(self, keyword: str, predicates: Sequence[Predicate]) -> str:
        if not predicates:
            return ""
        return f"{keyword} {self.render_conditions(predicates)}"

    def render_table(self, table: TableRef) -> str:
        return table.sql

    def render_join(self, join: Join) -> str:
        if join.natural:
            return f"NATURAL JOIN {join.table.sql}"
        verb = f"{join.kind} JOIN" if join.kind else "JOIN"
        if not join.conditions:
            return f"{verb} {join.table.sql}"
        return f"{verb} {join.table.sql} ON {self.render_conditions(join.conditions)}"

    def _fields(self, state: BuilderState) -> str:
        rendered: List[str] = []
        for item in state.fields:
            text = self.render_subquery(item) if isinstance(item, Subquery) else item.sql
            if text not in rendered:
                rendered.append(text)
        if "*" in rendered:
            rendered.remove("*")
            rendered.insert(0, "*")
        return ", ".join(rendered) or "*"

    def _order(self, state: BuilderState) -> str:
        if not state.order:
            return ""
        terms = [
            f"{term.expression.sql} {term.direction}".strip() for term in state.order
        ]
        return "ORDER BY " + ", ".join(terms)

    def _groups(self, state: BuilderState) -> str:
        if not state.groups:
            return ""
        return "GROUP BY " + ", ".join(group.sql for group in state.groups)

    @staticmethod
    def _limit(state: BuilderState) -> str:
        parts = []
        if state.limit is not None:
            parts.append(f"LIMIT {state.limit}")
        if state.offset is not None:
            parts.append(f"OFFSET {state.offset}")
        return " ".join(parts)

    def target_table(self, state: BuilderState) -> str:
        """Main table of a write statement, without its alias."""
        table = state.tables[-1]
        if table.name:
            return self.connection.prefix_table(table.name)
        return table.sql

    # Statements

    def compile_select(self, state: BuilderState) -> str:
        verb = "SELECT DISTINCT" if state.distinct else "SELECT"
        from_clause = ""
        if state.tables:
            from_clause = "FROM " + ", ".join(self.render_table(table) for table in state.tables)
        return self._join([
            verb,
            self._fields(state),
            from_clause,
            *(self.render_join(join) for join in state.joins),
            self._clause("WHERE", state.where),
            self._groups(state),
            self._clause("HAVING", state.having),
            self._order(state),
            self._limit(state),
        ])

    def _columns_and_values(self, state: BuilderState):
        columns = [assignment.column for assignment in state.assignments.values()]
        values = [assignment.value for assignment in state.assignments.values()]
        return columns, values

    def _ignore(self, state: BuilderState) -> bool:
        if not state.ignore:
            return False
        if not self.dialect.supports_ignore(state.mode):
            logger.warning(
                f"{self.dialect.name} has no IGNORE form for {state.mode.value}; flag dropped"
            )
            return False
        return True

    def compile_insert(self, state: BuilderState) -> str:
        columns, values = self._columns_and_values(state)
        return self.dialect.insert_statement(
            self.target_table(state), columns, values, ignore=self._ignore(state)
        )

    def compile_replace(self, state: BuilderState) -> str:
        columns, values = self._columns_and_values(state)
        return self.dialect.replace_statement(self.target_table(state), columns, values)

    def compile_update(self, state: BuilderState) -> str:
        keyword = self.dialect.ignore_keyword(state.mode) if self._ignore(state) else ""
        assignments = ", ".join(
            f"{assignment.column} = {assignment.value}" for assignment in state.assignments.values()
        )
        return self._join([
            "UPDATE",
            keyword,
            self.target_table(state),
            f"SET {assignments}",
            self._clause("WHERE", state.where),
            self._order(state),
            self._limit(state),
        ])

    def compile_delete(self, state: BuilderState) -> str:
        keyword = self.dialect.ignore_keyword(state.mode) if self._ignore(state) else ""
        return self._join([
            "DELETE",
            keyword,
            "FROM",
            self.target_table(state),
            self._clause("WHERE", state.where),
            self._order(state),
            self._limit(state),
        ])

    def compile_truncate(self, state: BuilderState) -> str:
        return self.dialect.truncate_statement(self.target_table(state))
