"""Settings for sqlweave connections.

Settings are built on pydantic-settings and read ``SQLWEAVE_`` prefixed
environment variables and an optional ``.env`` file. There is no global
settings instance: ``load_settings`` returns a fresh object each call, and
that object is passed explicitly to the connection that uses it.

Example:
    >>> settings = load_settings(driver="pgsql", prefix="app_")
    >>> connection = Connection(settings)
"""

from typing import Any

from pydantic import ValidationError

from sqlweave.common.exceptions import configuration_error
from sqlweave.settings.base import SqlWeaveBaseSettings
from sqlweave.settings.database import DatabaseSettings


def load_settings(**overrides: Any) -> DatabaseSettings:
    """Build database settings from the environment plus explicit overrides.

    Raises:
        ConfigurationError: If the resulting settings fail validation.
    """
    try:
        return DatabaseSettings(**overrides)
    except ValidationError as exc:
        raise configuration_error(
            f"Invalid database settings: {exc.error_count()} error(s)",
            config_key=", ".join(str(err["loc"][0]) for err in exc.errors() if err["loc"]),
            cause=exc,
        ) from exc


__all__ = [
    "SqlWeaveBaseSettings",
    "DatabaseSettings",
    "load_settings",
]
