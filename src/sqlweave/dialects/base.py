from abc import ABC
from datetime import date, datetime, time
from typing import ClassVar, FrozenSet, Optional, Sequence, Tuple, Union

from sqlweave.common.exceptions import unsupported_feature
from sqlweave.constants.dialect import DialectType
from sqlweave.constants.sql import JOIN_TYPES, CrudMode, DatePart
from sqlweave.logging import get_logger

logger = get_logger(__name__)

DateValue = Union[date, datetime, time, int]

_DATE_FORMATS = {
    DatePart.DATE: "%Y-%m-%d",
    DatePart.TIME: "%H:%M:%S",
}


class Dialect(ABC):
    """Engine-specific SQL behavior consulted by the builder and compiler.

    A dialect is a strategy object: it is selected once when a connection
    is created and injected into every builder bound to that connection.
    The builder never branches on the engine name itself; it asks the
    dialect capability questions ("can DELETE take a LIMIT?", "how is a
    case-insensitive LIKE spelled?") and splices the answers into its
    fragments.

    Subclasses override the class attributes for simple capability flags
    and the methods for anything that produces SQL text.

    Attributes:
        type: Engine this dialect describes
        escape_char: Identifier quote character
        supports_natural_join: Whether NATURAL JOIN may be emitted
        native_replace: Whether REPLACE INTO exists natively
        join_types: Accepted join type keywords
    """

    type: ClassVar[DialectType]
    escape_char: ClassVar[str] = '"'
    supports_natural_join: ClassVar[bool] = False
    native_replace: ClassVar[bool] = True
    join_types: ClassVar[Tuple[str, ...]] = JOIN_TYPES

    # Statement kinds that accept an IGNORE-equivalent.
    ignore_modes: ClassVar[FrozenSet[CrudMode]] = frozenset()
    # Statement kinds, besides SELECT, that accept LIMIT/OFFSET.
    limit_modes: ClassVar[FrozenSet[CrudMode]] = frozenset({CrudMode.UPDATE, CrudMode.DELETE})

    @property
    def name(self) -> str:
        return self.type.value

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}()"

    # Capability queries

    def supports_ignore(self, mode: CrudMode) -> bool:
        return mode in self.ignore_modes

    def ignore_keyword(self, mode: CrudMode) -> str:
        """Keyword placed after the statement verb, or ``''``."""
        return ""

    def can_limit(self, mode: CrudMode) -> bool:
        return mode == CrudMode.SELECT or mode in self.limit_modes

    def check_limit(self, mode: CrudMode, offset: bool = False) -> None:
        """Raise UnsupportedFeature if ``mode`` cannot take a LIMIT.

        OFFSET is rejected outside SELECT.
        """
        if offset and mode != CrudMode.SELECT:
            raise unsupported_feature(f"OFFSET on {mode.value.upper()}", self.name)
        if not self.can_limit(mode):
            raise unsupported_feature(f"LIMIT on {mode.value.upper()}", self.name)

    def check_natural_join(self) -> None:
        if not self.supports_natural_join:
            raise unsupported_feature("NATURAL JOIN", self.name)

    # Literals

    def escape_string(self, text: str) -> str:
        """Escape a string for use inside single quotes."""
        return text.replace("'", "''")

    def format_bool(self, value: bool) -> str:
        return "1" if value else "0"

    # Statement forms

    def insert_statement(
        self,
        table: str,
        columns: Sequence[str],
        values: Sequence[str],
        ignore: bool = False,
    ) -> str:
        keyword = self.ignore_keyword(CrudMode.INSERT) if ignore else ""
        verb = f"INSERT {keyword}" if keyword else "INSERT"
        return f"{verb} INTO {table} ({','.join(columns)}) VALUES ({','.join(values)})"

    def replace_statement(self, table: str, columns: Sequence[str], values: Sequence[str]) -> str:
        return f"REPLACE INTO {table} ({','.join(columns)}) VALUES ({','.join(values)})"

    def truncate_statement(self, table: str) -> str:
        return f"TRUNCATE {table}"

    # Expressions

    def like_operator(self, negate: bool = False, insensitive: bool = False) -> str:
        return "NOT LIKE" if negate else "LIKE"

    def like_statement(
        self,
        column: str,
        match: str,
        negate: bool = False,
        insensitive: bool = False,
    ) -> Tuple[str, str, str]:
        """Return ``(column, match, operator)`` for a LIKE predicate.

        Engines without a case-insensitive operator compare lower-cased
        operands instead.
        """
        if insensitive:
            column = f"LOWER({column})"
            match = match.lower()
        return column, match, self.like_operator(negate, insensitive)

    def random_keyword(self) -> str:
        return "RAND()"

    def random_order(self, seed: Optional[int] = None) -> Tuple[str, Optional[str]]:
        """Return the random ORDER BY expression and an optional session statement."""
        if seed is not None:
            return f"RAND({int(seed)})", None
        return self.random_keyword(), None

    def date_predicate(self, part: DatePart, column: str) -> str:
        """Wrap ``column`` so it can be compared against a date part."""
        return f"{part.value.upper()}({column})"

    def format_date_value(self, part: DatePart, value: DateValue) -> Union[str, int]:
        """Render a normalized date value as the literal to compare against."""
        if part in _DATE_FORMATS:
            return value.strftime(_DATE_FORMATS[part])
        return int(value)

    def increment_expression(self, column: str, amount: Union[int, float], sign: str = "+") -> str:
        return f"{column} {sign} {amount}"
