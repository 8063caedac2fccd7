import re
from typing import TYPE_CHECKING, Tuple

from sqlweave.constants.sql import SQL_FUNCTIONS

if TYPE_CHECKING:
    from sqlweave.connection import Connection

_AS_ALIAS = re.compile(r"^(?P<expr>.+?)\s+AS\s+(?P<alias>[^\s]+)$", re.IGNORECASE | re.DOTALL)
_SPACE_ALIAS = re.compile(r"^(?P<expr>[^\s]+)\s+(?P<alias>[A-Za-z_][\w$]*)$")
_FUNCTION = re.compile(r"^(?P<func>[A-Za-z_]+)\s*\(\s*(?P<inner>[\w$.*]+)\s*\)$")
_IDENTIFIER = re.compile(r"^[\w$*]+(?:\.[\w$*]+){0,2}$")
_NUMBER = re.compile(r"^-?\d+(?:\.\d+)?$")


class FieldResolver:
    """Turns field expressions into escaped SQL.

    Understood forms, each optionally followed by ``AS alias`` or a bare
    ``alias``:

    - ``column``
    - ``table.column``, where ``table`` may be a table name or an alias
      registered on the connection; unknown tables get the connection
      prefix
    - ``FUNC(column)`` for functions in the allow-list, with the inner
      column resolved as above

    Anything else (arithmetic, nested calls, literals) is returned
    verbatim. Resolution only reads and never registers aliases, so the
    same reference always produces the same text on one connection.
    """

    def __init__(self, connection: "Connection"):
        self.connection = connection

    def resolve(self, expression: str) -> str:
        expr, alias = self.split_alias(expression.strip())
        sql = self.resolve_expression(expr)
        if alias:
            sql = f"{sql} AS {self.connection.escape_identifiers(alias)}"
        return sql

    @staticmethod
    def split_alias(expression: str) -> Tuple[str, str]:
        """Split ``"expr AS alias"`` or ``"expr alias"`` into its parts."""
        match = _AS_ALIAS.match(expression)
        if match:
            return match.group("expr").strip(), match.group("alias")

        match = _SPACE_ALIAS.match(expression)
        if match and match.group("expr").upper() not in SQL_FUNCTIONS:
            return match.group("expr"), match.group("alias")

        return expression, ""

    def resolve_expression(self, expr: str) -> str:
        match = _FUNCTION.match(expr)
        if match and match.group("func").upper() in SQL_FUNCTIONS:
            return f"{match.group('func')}({self.resolve_column(match.group('inner'))})"

        if _IDENTIFIER.match(expr) and not _NUMBER.match(expr):
            return self.resolve_column(expr)

        return expr

    def resolve_column(self, name: str) -> str:
        """Resolve ``column`` or ``table.column`` and escape it."""
        if name == "*":
            return name

        parts = name.split(".")
        if len(parts) == 2:
            table, column = parts
            name = f"{self.connection.table_qualifier(table)}.{column}"

        return self.connection.escape_identifiers(name)
