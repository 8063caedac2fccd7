from typing import TYPE_CHECKING, Any

from sqlweave.common.exceptions import invalid_argument
from sqlweave.query_builder.fragments import Subquery, TableRef
from sqlweave.types import RawSql

if TYPE_CHECKING:
    from sqlweave.query_builder.builder import QueryBuilder


class SubqueryMixin:
    """Nested SELECTs spliced into FROM, the select list or a condition.

    A subquery source is either a ready builder or a callable that receives
    a fresh builder on the same connection. The child is compiled as a
    SELECT with its state preserved, so neither builder is reset or shares
    mutable state with the other.
    """

    def _subquery_builder(self, source: Any) -> "QueryBuilder":
        from sqlweave.query_builder.builder import QueryBuilder

        if source is self:
            raise invalid_argument("The subquery cannot be the same object as the main query.")

        if isinstance(source, QueryBuilder):
            return source

        if callable(source):
            child = self.new_query()
            returned = source(child)
            if returned is self:
                raise invalid_argument("The subquery cannot be the same object as the main query.")
            return returned if isinstance(returned, QueryBuilder) else child

        raise invalid_argument(
            "A subquery must be a builder or a callable receiving one.",
            argument="source",
            value=source,
        )

    def _compile_subquery(self, source: Any) -> str:
        """SQL text of ``source`` without the surrounding parentheses."""
        if isinstance(source, RawSql):
            return source.sql
        child = self._subquery_builder(source)
        return child.compiler.compile_select(child._state)

    def _subquery_alias(self, alias: str) -> str:
        return self.connection.escape_identifiers(alias.strip()) if alias and alias.strip() else ""

    def from_subquery(self, source: Any, alias: str = "") -> "QueryBuilder":
        """Add ``(SELECT ...) alias`` to the FROM list.

        The alias is registered on the connection so ``alias.column``
        references resolve to it.
        """
        subquery = Subquery(self._compile_subquery(source), self._subquery_alias(alias))
        if alias:
            self.connection.aliases.register(alias.strip(), alias.strip())
        self._state.tables.append(
            TableRef(sql=self.compiler.render_subquery(subquery), alias=alias.strip())
        )
        return self

    def select_subquery(self, source: Any, alias: str) -> "QueryBuilder":
        """Add ``(SELECT ...) alias`` to the select list."""
        subquery = Subquery(self._compile_subquery(source), self._subquery_alias(alias))
        self._state.fields.append(subquery)
        return self._as_select()
