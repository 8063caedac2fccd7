from typing import TYPE_CHECKING, Union

from sqlweave.constants.sql import CrudMode
from sqlweave.query_builder.fragments import ColumnRef, TableRef

if TYPE_CHECKING:
    from sqlweave.query_builder.builder import QueryBuilder

Number = Union[int, float]


class AggregatesMixin:
    """``count``/``min``/``max``/``sum``/``avg`` on top of the current query.

    Each helper replaces the select list with one aggregate column, runs
    the statement (or returns its SQL in test mode) and casts the scalar
    it reads back. When DISTINCT or GROUP BY is active the current SELECT
    is first wrapped as a derived table, so the aggregate counts result
    rows rather than grouped source rows.
    """

    def _aggregate(self, function: str, field: str, alias: str, cast) -> Union[Number, str, None]:
        state = self._state
        column = field if field == "*" else self.resolver.resolve(field)

        if state.distinct or state.groups:
            inner = self.compiler.compile_select(state)
            params = dict(state.params)
            self.reset()
            self._state.params = params
            self._state.tables = [TableRef(sql=f"({inner}) count_all_results")]
            column = field if field == "*" else self.connection.escape_identifiers(field.split(".")[-1])

        self._state.mode = CrudMode.SELECT
        self._state.fields = [ColumnRef(f"{function}({column}) AS {alias}")]
        self._state.order = []

        if self._test_mode:
            return self.sql()

        value = self._fetch().value(alias)
        return cast(value) if value is not None else None

    def count(self, field: str = "*") -> Union[int, str]:
        """Number of rows matched, read from the ``num_rows`` column."""
        result = self._aggregate("COUNT", field, "num_rows", int)
        return 0 if result is None else result

    def min(self, field: str) -> Union[float, str, None]:
        return self._aggregate("MIN", field, "min_value", float)

    def max(self, field: str) -> Union[float, str, None]:
        return self._aggregate("MAX", field, "max_value", float)

    def sum(self, field: str) -> Union[float, str, None]:
        return self._aggregate("SUM", field, "sum_value", float)

    def avg(self, field: str) -> Union[float, str, None]:
        return self._aggregate("AVG", field, "avg_value", float)

    def count_all_results(self, reset: bool = True) -> Union[int, str]:
        """Count every row the current query matches, ignoring LIMIT and ORDER BY.

        The count runs on a clone; the builder itself is reset afterwards
        unless ``reset`` is False.
        """
        clone = self.clone()
        clone._state.limit = None
        clone._state.offset = None
        clone._state.order = []
        result = clone.count()
        if reset:
            self.reset()
        return result
