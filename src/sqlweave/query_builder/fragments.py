"""Value objects accumulated by the builder.

Each clause of a statement is an ordered list of these small, immutable
fragments. They hold resolved identifiers and raw Python values; turning
them into SQL text is left entirely to ``StatementCompiler``.
"""

from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple, Union

from sqlweave.constants.sql import Connector, CrudMode


@dataclass(frozen=True)
class Raw:
    """SQL text emitted verbatim."""

    sql: str


@dataclass(frozen=True)
class ColumnRef:
    """A resolved, already escaped column or expression."""

    sql: str


@dataclass(frozen=True)
class Literal:
    """A value quoted by the connection at compile time."""

    value: Any
    escape: bool = True


@dataclass(frozen=True)
class ValueList:
    """Parenthesized list of literals, as used by IN."""

    items: Tuple[Literal, ...]


@dataclass(frozen=True)
class Between:
    low: Literal
    high: Literal


@dataclass(frozen=True)
class Subquery:
    """Compiled text of a nested builder."""

    sql: str
    alias: str = ""


Operand = Union[Raw, ColumnRef, Literal, ValueList, Between, Subquery]


@dataclass(frozen=True)
class Condition:
    """One boolean term: ``column operator value``.

    ``operator`` is empty for verbatim predicates, in which case only
    ``column`` is rendered.
    """

    column: Operand
    operator: str = ""
    value: Optional[Operand] = None
    connector: Connector = Connector.AND
    negated: bool = False


@dataclass(frozen=True)
class Exists:
    """``[NOT] EXISTS (subquery)``."""

    subquery: Subquery
    connector: Connector = Connector.AND
    negated: bool = False


@dataclass(frozen=True)
class ConditionGroup:
    """Parenthesized sequence of conditions."""

    conditions: Tuple["Predicate", ...]
    connector: Connector = Connector.AND
    negated: bool = False


Predicate = Union[Condition, ConditionGroup, Exists]


@dataclass(frozen=True)
class TableRef:
    """A table in the FROM list.

    ``name`` is the canonical table name without prefix and ``alias`` its
    registered alias; ``sql`` is the rendered reference.
    """

    sql: str
    name: str = ""
    alias: str = ""


@dataclass(frozen=True)
class Join:
    kind: str
    table: TableRef
    conditions: Tuple[Predicate, ...] = ()
    natural: bool = False


@dataclass(frozen=True)
class OrderTerm:
    expression: Union[ColumnRef, Raw]
    direction: str = ""


@dataclass(frozen=True)
class Assignment:
    """Escaped column and rendered value for INSERT/UPDATE/REPLACE."""

    column: str
    value: str


@dataclass
class BuilderState:
    """Everything a builder has accumulated for the next statement."""

    tables: List[TableRef] = field(default_factory=list)
    no_from: bool = False
    fields: List[Union[ColumnRef, Raw, Subquery]] = field(default_factory=list)
    where: List[Predicate] = field(default_factory=list)
    having: List[Predicate] = field(default_factory=list)
    joins: List[Join] = field(default_factory=list)
    groups: List[ColumnRef] = field(default_factory=list)
    order: List[OrderTerm] = field(default_factory=list)
    limit: Optional[int] = None
    offset: Optional[int] = None
    distinct: bool = False
    ignore: bool = False
    mode: CrudMode = CrudMode.SELECT
    assignments: Dict[str, Assignment] = field(default_factory=dict)
    params: Dict[str, Any] = field(default_factory=dict)
    session_statements: List[str] = field(default_factory=list)

    def copy(self) -> "BuilderState":
        """Independent copy; fragments are immutable so lists are shallow-copied."""
        return BuilderState(
            tables=list(self.tables),
            no_from=self.no_from,
            fields=list(self.fields),
            where=list(self.where),
            having=list(self.having),
            joins=list(self.joins),
            groups=list(self.groups),
            order=list(self.order),
            limit=self.limit,
            offset=self.offset,
            distinct=self.distinct,
            ignore=self.ignore,
            mode=self.mode,
            assignments=dict(self.assignments),
            params=dict(self.params),
            session_statements=list(self.session_statements),
        )
