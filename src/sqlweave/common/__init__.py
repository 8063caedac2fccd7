"""Common exceptions for sqlweave.

All exceptions inherit from SqlWeaveError and carry an ErrorCode plus
structured details. The builder raises the specific subclasses; helper
functions build the most common ones with consistent details.
"""

from sqlweave.common.exceptions import (
    ConfigurationError,
    ErrorCode,
    InvalidArgument,
    InvalidCondition,
    MissingData,
    QueryExecutionError,
    SqlWeaveError,
    UndefinedTable,
    UnsupportedFeature,
    configuration_error,
    invalid_argument,
    query_execution_error,
    unsupported_feature,
)

__all__ = [
    "SqlWeaveError",
    "ErrorCode",
    "ConfigurationError",
    "InvalidCondition",
    "InvalidArgument",
    "MissingData",
    "UndefinedTable",
    "UnsupportedFeature",
    "QueryExecutionError",
    "configuration_error",
    "invalid_argument",
    "unsupported_feature",
    "query_execution_error",
]
