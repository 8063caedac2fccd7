"""SQL and query-related constants.

This module contains the fundamental enums and fixed vocabularies used by
the builder, the condition grammar and the dialect layer. It has no
dependencies on other sqlweave modules.
"""

from enum import Enum


class CrudMode(str, Enum):
    """Statement kind a builder is currently assembling.

    The mode decides which accumulated fragments the compiler serializes.
    Every builder starts (and is reset) in ``SELECT`` mode.
    """

    SELECT = "select"
    INSERT = "insert"
    UPDATE = "update"
    DELETE = "delete"
    REPLACE = "replace"
    TRUNCATE = "truncate"


class Connector(str, Enum):
    """Logical connector joining a condition to the one before it."""

    AND = "AND"
    OR = "OR"


class LikeSide(str, Enum):
    """Where wildcards are placed around a LIKE match."""

    BOTH = "both"
    BEFORE = "before"
    AFTER = "after"
    NONE = "none"


class DatePart(str, Enum):
    """Date component compared by the ``where_date`` family."""

    DATE = "date"
    TIME = "time"
    DAY = "day"
    MONTH = "month"
    YEAR = "year"


# Leading character of a field string that selects OR instead of AND.
# Only the public API understands it; internally ``Connector`` is used.
OR_MARKER = "|"

# Shorthand operator tokens and their SQL spelling.
OPERATOR_ALIASES = {
    "%": "LIKE",
    "!%": "NOT LIKE",
    "@": "IN",
    "!@": "NOT IN",
}

# Recognized trailing operators, longest first so multi-word forms win.
OPERATORS = (
    "IS NOT NULL",
    "NOT BETWEEN",
    "NOT LIKE",
    "IS NULL",
    "BETWEEN",
    "NOT IN",
    "LIKE",
    "IN",
    "!%",
    "!@",
    "<=",
    ">=",
    "<>",
    "!=",
    "%",
    "@",
    "<",
    ">",
    "=",
)

# Operators that never take a right-hand value.
NULLARY_OPERATORS = frozenset({"IS NULL", "IS NOT NULL"})

JOIN_TYPES = (
    "INNER",
    "LEFT",
    "RIGHT",
    "OUTER",
    "LEFT OUTER",
    "RIGHT OUTER",
)

ORDER_DIRECTIONS = ("ASC", "DESC", "RANDOM")

# Functions whose single column argument is resolved and escaped on its own.
SQL_FUNCTIONS = frozenset({
    "ABS", "AVG", "CEIL", "CEILING", "CHAR_LENGTH", "COALESCE", "CONCAT",
    "COUNT", "DATE", "DAY", "DISTINCT", "FLOOR", "HOUR", "IFNULL", "LCASE",
    "LENGTH", "LOWER", "LTRIM", "MAX", "MD5", "MIN", "MINUTE", "MONTH",
    "NOW", "NULLIF", "RAND", "RANDOM", "ROUND", "RTRIM", "SECOND", "SUM",
    "TIME", "TRIM", "UCASE", "UPPER", "YEAR",
})

DEFAULT_TIMESTAMP_COLUMN = "created_at"
