"""Constants module for sqlweave.

Organization:
    - sql: statement modes, connectors, operators and function allow-list
    - dialect: supported engines and engine-specific strategies
"""

from sqlweave.constants.dialect import DialectType, ReplaceStrategy
from sqlweave.constants.sql import (
    DEFAULT_TIMESTAMP_COLUMN,
    JOIN_TYPES,
    NULLARY_OPERATORS,
    OPERATOR_ALIASES,
    OPERATORS,
    OR_MARKER,
    ORDER_DIRECTIONS,
    SQL_FUNCTIONS,
    Connector,
    CrudMode,
    DatePart,
    LikeSide,
)

__all__ = [
    "DialectType",
    "ReplaceStrategy",
    "CrudMode",
    "Connector",
    "LikeSide",
    "DatePart",
    "OR_MARKER",
    "OPERATOR_ALIASES",
    "OPERATORS",
    "NULLARY_OPERATORS",
    "JOIN_TYPES",
    "ORDER_DIRECTIONS",
    "SQL_FUNCTIONS",
    "DEFAULT_TIMESTAMP_COLUMN",
]
