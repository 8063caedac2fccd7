import re
from collections.abc import Mapping
from typing import TYPE_CHECKING, Any, Callable, List, Tuple, Union

from sqlweave.common.exceptions import InvalidCondition, invalid_argument
from sqlweave.constants.sql import (
    NULLARY_OPERATORS,
    OPERATOR_ALIASES,
    OPERATORS,
    OR_MARKER,
    Connector,
    LikeSide,
)
from sqlweave.query_builder.fields import FieldResolver
from sqlweave.query_builder.fragments import (
    Between,
    ColumnRef,
    Condition,
    Literal,
    Operand,
    Raw,
    Subquery,
    ValueList,
)
from sqlweave.types import RawSql

if TYPE_CHECKING:
    from sqlweave.connection import Connection

_NEGATIONS = {
    "=": "!=",
    "!=": "=",
    "<>": "=",
    "<": ">=",
    ">": "<=",
    "<=": ">",
    ">=": "<",
    "LIKE": "NOT LIKE",
    "NOT LIKE": "LIKE",
    "IN": "NOT IN",
    "NOT IN": "IN",
    "BETWEEN": "NOT BETWEEN",
    "NOT BETWEEN": "BETWEEN",
    "IS NULL": "IS NOT NULL",
    "IS NOT NULL": "IS NULL",
}

_DOTTED_COLUMN = re.compile(r"^[A-Za-z_][\w$]*\.[A-Za-z_][\w$]*$")


def split_connector(field: str, default: Connector = Connector.AND) -> Tuple[str, Connector]:
    """Strip a leading OR marker from a public field string."""
    stripped = field.lstrip()
    if stripped.startswith(OR_MARKER):
        return stripped[len(OR_MARKER):].strip(), Connector.OR
    return field.strip(), default


def like_side(side: Union[str, LikeSide]) -> LikeSide:
    """Normalize a wildcard placement name."""
    try:
        return LikeSide(side.lower() if isinstance(side, str) else side)
    except ValueError:
        raise invalid_argument(
            "LIKE side must be one of both, before, after or none.", argument="side", value=side
        ) from None


def negate_operator(operator: str) -> str:
    return _NEGATIONS.get(operator or "=", f"NOT {operator}")


class ConditionParser:
    """Builds ``Condition`` fragments from where/having style arguments.

    A field string may end with an operator token (``"age >="``,
    ``"name NOT LIKE"``, ``"id @"``); the default is ``=``. Values decide
    the shape of the right-hand side:

    - ``None`` with no operator keeps the field as a verbatim predicate
    - a list or tuple becomes an IN-list (or the two bounds of BETWEEN)
    - a builder or callable becomes a parenthesized subquery
    - ``RawSql`` is spliced in unquoted
    - anything else is a literal quoted at compile time, unless
      ``escape`` is False

    Args:
        connection: Connection supplying identifier escaping
        resolver: Field resolver bound to the same connection
        subquery: Callable compiling a builder or callback to SQL text
    """

    def __init__(
        self,
        connection: "Connection",
        resolver: FieldResolver,
        subquery: Callable[[Any], str],
    ):
        self.connection = connection
        self.resolver = resolver
        self.subquery = subquery

    @staticmethod
    def split_operator(field: str) -> Tuple[str, str]:
        """Split ``"column op"`` into the column text and the SQL operator."""
        text = field.strip()
        upper = text.upper()
        for token in OPERATORS:
            if not upper.endswith(token):
                continue
            head = text[: len(text) - len(token)]
            if token[0].isalpha() and head and not head[-1].isspace():
                continue
            if not head.strip():
                continue
            return head.strip(), OPERATOR_ALIASES.get(token, token)
        return text, ""

    @staticmethod
    def normalize(field: Any, value: Any = None) -> List[Tuple[Any, Any]]:
        """Turn the accepted field shapes into ``(field, value)`` pairs.

        Raises:
            InvalidCondition: If ``field`` is not a string, RawSql, mapping
                or sequence of fields/pairs.
        """
        if isinstance(field, (str, RawSql)):
            return [(field, value)]
        if isinstance(field, Mapping):
            return list(field.items())
        if isinstance(field, (list, tuple)):
            pairs = []
            for item in field:
                if isinstance(item, (str, RawSql)):
                    pairs.append((item, value))
                elif isinstance(item, (list, tuple)) and len(item) == 2:
                    pairs.append((item[0], item[1]))
                else:
                    raise InvalidCondition(
                        f"Unsupported condition entry: {item!r}",
                        details={"field": repr(field)},
                    )
            return pairs
        raise InvalidCondition(
            "A condition field must be a string, a mapping or a sequence.",
            details={"field": repr(field)},
        )

    def operand(self, value: Any, escape: bool = True) -> Operand:
        """Build the right-hand side of a comparison."""
        from sqlweave.query_builder.builder import QueryBuilder

        if isinstance(value, RawSql):
            return Raw(value.sql)
        if isinstance(value, QueryBuilder) or callable(value):
            return Subquery(self.subquery(value))
        if isinstance(value, (list, tuple, set, frozenset)):
            if not value:
                raise invalid_argument("An IN-list needs at least one value.", argument="value")
            return ValueList(tuple(Literal(item, escape) for item in value))
        if isinstance(value, str):
            if self.connection.is_escaped_identifier(value):
                return ColumnRef(value)
            if not escape and _DOTTED_COLUMN.match(value.strip()):
                return ColumnRef(self.resolver.resolve(value))
        return Literal(value, escape)

    def parse(
        self,
        field: str,
        value: Any = None,
        escape: bool = True,
        connector: Connector = Connector.AND,
        negate: bool = False,
    ) -> Condition:
        """Parse one field/value pair into a condition."""
        if not field.strip():
            raise InvalidCondition("A condition field cannot be empty.", details={"field": repr(field)})
        column_text, operator = self.split_operator(field)

        if value is None and not operator:
            return Condition(Raw(field.strip()), connector=connector, negated=negate)

        if value is None and operator in ("=", "!=", "<>"):
            operator = "IS NULL" if operator == "=" else "IS NOT NULL"

        column = ColumnRef(self.resolver.resolve(column_text))

        if operator in NULLARY_OPERATORS:
            return Condition(column, negate_operator(operator) if negate else operator, connector=connector)

        operator = operator or "="
        right = self.operand(value, escape) if value is not None else Literal(None)

        if isinstance(right, ValueList):
            operator, right = self._list_operator(operator, right)

        if negate:
            operator = negate_operator(operator)

        return Condition(column, operator, right, connector)

    @staticmethod
    def _list_operator(operator: str, values: ValueList) -> Tuple[str, Operand]:
        if operator in ("BETWEEN", "NOT BETWEEN"):
            if len(values.items) != 2:
                raise invalid_argument(
                    "BETWEEN needs exactly two values.", argument="value", value=values.items
                )
            return operator, Between(values.items[0], values.items[1])
        if operator in ("=", "IN"):
            return "IN", values
        if operator in ("!=", "<>", "NOT IN"):
            return "NOT IN", values
        raise invalid_argument(
            f"Operator {operator} cannot compare against a list.", argument="value"
        )

    def parse_many(
        self,
        field: Any,
        value: Any = None,
        escape: bool = True,
        connector: Connector = Connector.AND,
        negate: bool = False,
    ) -> List[Condition]:
        """Parse every pair of a normalized field argument.

        The OR marker is honored on each key; pairs without one use
        ``connector`` for the first pair and AND for the rest.
        """
        conditions = []
        for index, (key, item) in enumerate(self.normalize(field, value)):
            default = connector if index == 0 else Connector.AND
            if isinstance(key, RawSql):
                conditions.append(Condition(Raw(key.sql), connector=default, negated=negate))
                continue
            if not isinstance(key, str):
                raise InvalidCondition(
                    f"Condition keys must be strings, got {type(key).__name__}.",
                    details={"field": repr(key)},
                )
            key, key_connector = split_connector(key, default)
            conditions.append(self.parse(key, item, escape, key_connector, negate))
        return conditions

    def column_comparison(
        self,
        first: str,
        second: str,
        connector: Connector = Connector.AND,
        negate: bool = False,
    ) -> Condition:
        """``first op second`` where both sides are columns."""
        column_text, operator = self.split_operator(first)
        operator = operator or "="
        if negate:
            operator = negate_operator(operator)
        return Condition(
            ColumnRef(self.resolver.resolve(column_text)),
            operator,
            ColumnRef(self.resolver.resolve(second)),
            connector,
        )

    def like(
        self,
        field: str,
        match: str,
        side: LikeSide = LikeSide.BOTH,
        escape: bool = True,
        insensitive: bool = False,
        negate: bool = False,
        connector: Connector = Connector.AND,
    ) -> Condition:
        """``field [NOT] LIKE '%match%'`` using the dialect's case handling."""
        column = self.resolver.resolve(field)
        pattern = self.like_match(match, side)
        column, pattern, operator = self.connection.dialect.like_statement(
            column, pattern, negate, insensitive
        )
        value: Operand = Literal(pattern) if escape else Raw(f"'{pattern}'")
        return Condition(ColumnRef(column), operator, value, connector)

    @staticmethod
    def like_match(value: Any, side: LikeSide = LikeSide.BOTH) -> str:
        """Place wildcards around ``value``.

        Wildcards already present in ``value`` win over ``side``: two of
        them mean both sides, a single leading one means before, anything
        else after.
        """
        value = str(value)
        count = value.count("%")
        if count:
            if count >= 2:
                side = LikeSide.BOTH
            elif value.startswith("%"):
                side = LikeSide.BEFORE
            else:
                side = LikeSide.AFTER
            value = value.replace("%", "")

        side = like_side(side)
        if side == LikeSide.BEFORE:
            return f"%{value}"
        if side == LikeSide.AFTER:
            return f"{value}%"
        if side == LikeSide.NONE:
            return value
        return f"%{value}%"
