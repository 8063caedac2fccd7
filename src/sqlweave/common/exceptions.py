from enum import Enum
from typing import Any, Dict, Optional


class ErrorCode(Enum):
    """Standard error codes for sqlweave operations.

    Codes are grouped by category so callers can branch on the kind of
    failure without matching on exception classes or messages.

    Attributes:
        CONFIG_*: Configuration-related errors (1xxx)
        VALIDATION_*: Builder input validation errors (2xxx)
        EXECUTION_*: Runtime execution errors (4xxx)
        RESOURCE_*: Missing tables or data (5xxx)
        PLATFORM_*: Dialect capability errors (7xxx)
    """
    # Configuration errors (1xxx)
    CONFIG_ERROR = "CONFIG_001"
    CONFIG_INVALID = "CONFIG_003"

    # Validation errors (2xxx)
    VALIDATION_ERROR = "VALIDATION_001"
    INVALID_ARGUMENT = "VALIDATION_002"
    INVALID_CONDITION = "VALIDATION_003"
    MISSING_DATA = "VALIDATION_004"

    # Execution errors (4xxx)
    EXECUTION_ERROR = "EXECUTION_001"
    QUERY_EXECUTION_ERROR = "EXECUTION_002"

    # Resource errors (5xxx)
    TABLE_NOT_DEFINED = "RESOURCE_002"

    # Platform errors (7xxx)
    PLATFORM_NOT_SUPPORTED = "PLATFORM_002"
    FEATURE_NOT_SUPPORTED = "PLATFORM_004"


class SqlWeaveError(Exception):
    """Base exception for all sqlweave errors.

    Attributes:
        message: Error message
        error_code: Error code from ErrorCode enum
        details: Additional error details
        cause: Optional underlying exception
    """

    default_code = ErrorCode.EXECUTION_ERROR

    def __init__(
        self,
        message: str,
        error_code: Optional[ErrorCode] = None,
        details: Optional[Dict[str, Any]] = None,
        cause: Optional[Exception] = None,
    ):
        super().__init__(message)
        self.message = message
        self.error_code = error_code or self.default_code
        self.details = details or {}
        self.cause = cause

        # Lazy import to avoid a circular dependency with the logging package
        from sqlweave.logging import get_logger
        get_logger(__name__).error(
            message,
            extra={"error_code": self.error_code.value, "details": self.details},
            exc_info=cause is not None,
        )

    def __str__(self) -> str:
        msg = f"[{self.error_code.value}] {self.message}"
        if self.cause:
            msg = f"{msg} (caused by: {type(self.cause).__name__}: {str(self.cause)})"
        return msg

    def to_dict(self) -> Dict[str, Any]:
        """Convert exception to dictionary for serialization."""
        return {
            "type": self.__class__.__name__,
            "message": self.message,
            "error_code": self.error_code.value,
            "error_name": self.error_code.name,
            "details": self.details,
        }


class ConfigurationError(SqlWeaveError):
    default_code = ErrorCode.CONFIG_ERROR


class InvalidCondition(SqlWeaveError):
    """A where/having field is neither a string nor a mapping/sequence."""

    default_code = ErrorCode.INVALID_CONDITION


class InvalidArgument(SqlWeaveError):
    """A builder call received a malformed argument."""

    default_code = ErrorCode.INVALID_ARGUMENT


class MissingData(SqlWeaveError):
    """A write was requested for immediate execution with nothing to write."""

    default_code = ErrorCode.MISSING_DATA


class UndefinedTable(SqlWeaveError):
    """Compilation was attempted without a table reference."""

    default_code = ErrorCode.TABLE_NOT_DEFINED


class UnsupportedFeature(SqlWeaveError):
    """The active dialect cannot perform the requested operation."""

    default_code = ErrorCode.FEATURE_NOT_SUPPORTED


class QueryExecutionError(SqlWeaveError):
    default_code = ErrorCode.QUERY_EXECUTION_ERROR


# Helper functions for common error scenarios
def _truncate_query(query: str) -> str:
    return query[:500] + "..." if len(query) > 500 else query


def configuration_error(
    message: str,
    config_key: Optional[str] = None,
    **kwargs
) -> ConfigurationError:
    """Create a configuration error.

    Args:
        message: Error message
        config_key: Configuration key that caused the error
        **kwargs: Additional error details

    Returns:
        ConfigurationError with CONFIG_ERROR code
    """
    details = kwargs.get('details', {})
    if config_key:
        details["config_key"] = config_key

    return ConfigurationError(
        message=message,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )


def invalid_argument(
    message: str,
    argument: Optional[str] = None,
    value: Any = None,
    **kwargs
) -> InvalidArgument:
    """Create an invalid argument error.

    Args:
        message: Error message
        argument: Name of the offending argument
        value: Offending value
        **kwargs: Additional error details

    Returns:
        InvalidArgument with INVALID_ARGUMENT code
    """
    details = kwargs.get('details', {})
    if argument:
        details["argument"] = argument
    if value is not None:
        details["value"] = repr(value)

    return InvalidArgument(
        message=message,
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )


def unsupported_feature(
    feature: str,
    dialect: str,
    **kwargs
) -> UnsupportedFeature:
    """Create an unsupported feature error for a dialect.

    Args:
        feature: Human readable name of the feature
        dialect: Dialect name
        **kwargs: Additional error details

    Returns:
        UnsupportedFeature with FEATURE_NOT_SUPPORTED code
    """
    details = kwargs.get('details', {})
    details["feature"] = feature
    details["dialect"] = dialect

    return UnsupportedFeature(
        message=f"{feature} is not supported by the {dialect} dialect.",
        details=details,
        **{k: v for k, v in kwargs.items() if k != 'details'}
    )


def query_execution_error(
    query: str,
    original_error: Exception,
    **kwargs
) -> QueryExecutionError:
    """Create a query execution error.

    Args:
        query: SQL query that failed
        original_error: The underlying exception
        **kwargs: Additional error details

    Returns:
        QueryExecutionError with QUERY_EXECUTION_ERROR code
    """
    details = kwargs.get('details', {})
    details["query"] = _truncate_query(query)

    return QueryExecutionError(
        message=f"Query execution failed: {str(original_error)}",
        details=details,
        cause=original_error,
        **{k: v for k, v in kwargs.items() if k not in ['details', 'cause']}
    )
