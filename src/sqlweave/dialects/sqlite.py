from typing import ClassVar, FrozenSet, Optional, Tuple, Union

from sqlweave.constants.dialect import DialectType
from sqlweave.constants.sql import CrudMode, DatePart
from sqlweave.logging import get_logger
from .base import Dialect, DateValue

logger = get_logger(__name__)

_STRFTIME_CODES = {
    DatePart.DATE: "%Y-%m-%d",
    DatePart.TIME: "%H:%M:%S",
    DatePart.DAY: "%d",
    DatePart.MONTH: "%m",
    DatePart.YEAR: "%Y",
}


class SQLiteDialect(Dialect):
    """SQLite 3.

    ``INSERT OR IGNORE``, no LIMIT on UPDATE/DELETE, TRUNCATE rewritten to
    an unqualified DELETE, and ``strftime`` for date parts. ``strftime``
    returns zero-padded text, so date parts are compared as strings.
    """

    type = DialectType.SQLITE
    ignore_modes: ClassVar[FrozenSet[CrudMode]] = frozenset({CrudMode.INSERT})
    limit_modes: ClassVar[FrozenSet[CrudMode]] = frozenset()

    def insert_statement(self, table, columns, values, ignore=False) -> str:
        verb = "INSERT OR IGNORE" if ignore else "INSERT"
        return f"{verb} INTO {table} ({','.join(columns)}) VALUES ({','.join(values)})"

    def truncate_statement(self, table: str) -> str:
        return f"DELETE FROM {table}"

    def random_keyword(self) -> str:
        return "RANDOM()"

    def random_order(self, seed: Optional[int] = None) -> Tuple[str, Optional[str]]:
        if seed is not None:
            logger.debug("SQLite cannot seed RANDOM(); seed %s ignored", seed)
        return self.random_keyword(), None

    def date_predicate(self, part: DatePart, column: str) -> str:
        return f"strftime('{_STRFTIME_CODES[part]}', {column})"

    def format_date_value(self, part: DatePart, value: DateValue) -> Union[str, int]:
        if part == DatePart.YEAR:
            return f"{int(value):04d}"
        if part in (DatePart.DAY, DatePart.MONTH):
            return f"{int(value):02d}"
        return value.strftime(_STRFTIME_CODES[part])
