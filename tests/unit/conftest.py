"""Shared fixtures for builder tests.

Every fixture creates a fresh connection so alias registries never leak
between tests. Engines are never created unless a test executes SQL.
"""

import pytest

from sqlweave.connection import Connection
from sqlweave.settings import DatabaseSettings


def make_connection(driver: str = "sqlite", **overrides) -> Connection:
    overrides.setdefault("protect_identifiers", False)
    return Connection(DatabaseSettings(driver=driver, **overrides))


@pytest.fixture
def connection():
    """SQLite connection without identifier escaping, for readable SQL."""
    return make_connection("sqlite")


@pytest.fixture
def mysql_connection():
    """MySQL connection with backtick escaping enabled."""
    return make_connection("mysql", protect_identifiers=True)


@pytest.fixture
def plain_mysql_connection():
    return make_connection("mysql")


@pytest.fixture
def postgres_connection():
    return make_connection("postgres")


@pytest.fixture
def builder(connection):
    return connection.new_query()
