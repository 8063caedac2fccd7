"""Fluent SQL query builder.

A ``QueryBuilder`` accumulates clause fragments through chained calls and
compiles them into one statement for the dialect of its connection. The
pieces are split by concern:

- fields.py: ``FieldResolver``, column and table.column resolution
- conditions.py: ``ConditionParser``, where/having argument parsing
- compiler.py: ``StatementCompiler``, fragment serialization
- where.py, subquery.py, aggregates.py: builder operation groups
- builder.py: ``QueryBuilder`` itself

Example:
    >>> from sqlweave import connect
    >>> connection = connect(driver="sqlite", protect_identifiers=False)
    >>> connection.table("jobs j").where("jobs.id", 3).or_where("name", "dev").sql()
    "SELECT * FROM jobs AS j WHERE j.id = 3 OR name = 'dev'"
"""

from sqlweave.query_builder.builder import QueryBuilder
from sqlweave.query_builder.compiler import StatementCompiler
from sqlweave.query_builder.conditions import ConditionParser
from sqlweave.query_builder.factory import QueryBuilderFactory, get_query_builder
from sqlweave.query_builder.fields import FieldResolver
from sqlweave.query_builder.fragments import BuilderState

__all__ = [
    "QueryBuilder",
    "QueryBuilderFactory",
    "get_query_builder",
    "StatementCompiler",
    "ConditionParser",
    "FieldResolver",
    "BuilderState",
]
