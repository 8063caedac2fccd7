from typing import ClassVar, FrozenSet

from sqlweave.constants.dialect import DialectType
from sqlweave.constants.sql import CrudMode
from .base import Dialect


class MySQLDialect(Dialect):
    """MySQL and MariaDB.

    Backtick identifiers, ``IGNORE`` on every write statement, LIMIT on
    UPDATE/DELETE, native REPLACE, ``RAND([seed])`` and NATURAL JOIN.
    """

    type = DialectType.MYSQL
    escape_char = "`"
    supports_natural_join = True
    ignore_modes: ClassVar[FrozenSet[CrudMode]] = frozenset(
        {CrudMode.INSERT, CrudMode.UPDATE, CrudMode.DELETE}
    )

    def ignore_keyword(self, mode: CrudMode) -> str:
        return "IGNORE" if self.supports_ignore(mode) else ""

    def escape_string(self, text: str) -> str:
        return text.replace("\\", "\\\\").replace("'", "''")
