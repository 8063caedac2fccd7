from typing import ClassVar, FrozenSet, Optional, Sequence, Tuple, Union

from sqlweave.constants.dialect import DialectType, ReplaceStrategy
from sqlweave.constants.sql import JOIN_TYPES, CrudMode, DatePart
from .base import Dialect


class PostgresDialect(Dialect):
    """PostgreSQL.

    PostgreSQL has no REPLACE statement. Two strategies are offered:

    ``emulate`` (default)
        The builder treats the first column as the conflict key, probes for
        an existing row with a SELECT and then runs either an INSERT or an
        UPDATE. The probe and the write are separate statements, so the
        emulation is not atomic: a concurrent writer can insert the same
        key between them.

    ``upsert``
        The statement is compiled to ``INSERT ... ON CONFLICT (key) DO
        UPDATE SET ...``. This is atomic and is the recommended choice
        whenever the key column carries a unique constraint, which ON
        CONFLICT requires.

    Compiling a REPLACE to text always yields the upsert form; the
    emulation only happens when the builder executes.
    """

    type = DialectType.POSTGRES
    native_replace = False
    join_types = JOIN_TYPES + ("FULL OUTER", "FULL")
    ignore_modes: ClassVar[FrozenSet[CrudMode]] = frozenset({CrudMode.INSERT})
    limit_modes: ClassVar[FrozenSet[CrudMode]] = frozenset()

    def __init__(self, replace_strategy: Union[str, ReplaceStrategy] = ReplaceStrategy.EMULATE):
        self.replace_strategy = ReplaceStrategy(replace_strategy)

    def __repr__(self) -> str:
        return f"PostgresDialect(replace_strategy={self.replace_strategy.value!r})"

    @property
    def emulates_replace(self) -> bool:
        return self.replace_strategy == ReplaceStrategy.EMULATE

    def format_bool(self, value: bool) -> str:
        return "TRUE" if value else "FALSE"

    def insert_statement(self, table, columns, values, ignore=False) -> str:
        sql = super().insert_statement(table, columns, values)
        return f"{sql} ON CONFLICT DO NOTHING" if ignore else sql

    def replace_statement(self, table: str, columns: Sequence[str], values: Sequence[str]) -> str:
        insert = super().insert_statement(table, columns, values)
        key, rest = columns[0], columns[1:]
        if not rest:
            return f"{insert} ON CONFLICT ({key}) DO NOTHING"
        assignments = ", ".join(f"{column} = EXCLUDED.{column}" for column in rest)
        return f"{insert} ON CONFLICT ({key}) DO UPDATE SET {assignments}"

    def truncate_statement(self, table: str) -> str:
        return f"TRUNCATE {table} RESTART IDENTITY"

    def like_operator(self, negate: bool = False, insensitive: bool = False) -> str:
        operator = "ILIKE" if insensitive else "LIKE"
        return f"NOT {operator}" if negate else operator

    def like_statement(self, column, match, negate=False, insensitive=False) -> Tuple[str, str, str]:
        return column, match, self.like_operator(negate, insensitive)

    def random_keyword(self) -> str:
        return "RANDOM()"

    def random_order(self, seed: Optional[int] = None) -> Tuple[str, Optional[str]]:
        if seed is None:
            return self.random_keyword(), None
        # setseed() takes a value in [-1, 1]; integers map onto 0.<digits>
        seed = int(seed)
        value = float(f"0.{seed}") if seed > 1 else float(seed)
        return self.random_keyword(), f"SET SEED TO {value}"

    def date_predicate(self, part: DatePart, column: str) -> str:
        if part == DatePart.DATE:
            return f"{column}::date"
        if part == DatePart.TIME:
            return f"{column}::time"
        return f"extract({part.value} from {column})"
