from types import SimpleNamespace
from typing import Any, Dict, Iterator, List, Optional, Sequence

import pandas as pd


class Result:
    """Rows returned by a statement.

    Rows are plain dictionaries keyed by column name, in the order the
    driver returned them.
    """

    def __init__(self, rows: Sequence[Dict[str, Any]], columns: Optional[Sequence[str]] = None):
        self._rows: List[Dict[str, Any]] = [dict(row) for row in rows]
        if columns is None:
            columns = list(self._rows[0].keys()) if self._rows else []
        self.columns: List[str] = list(columns)

    @classmethod
    def from_cursor(cls, cursor_result) -> "Result":
        """Build from a SQLAlchemy ``CursorResult`` that returns rows."""
        columns = list(cursor_result.keys())
        rows = [dict(mapping) for mapping in cursor_result.mappings().all()]
        return cls(rows, columns)

    def __len__(self) -> int:
        return len(self._rows)

    def __iter__(self) -> Iterator[Dict[str, Any]]:
        return iter(self._rows)

    def __repr__(self) -> str:
        return f"Result(rows={len(self._rows)}, columns={self.columns})"

    @property
    def row_count(self) -> int:
        return len(self._rows)

    def all(self) -> List[Dict[str, Any]]:
        return list(self._rows)

    def objects(self) -> List[SimpleNamespace]:
        """Rows with attribute access, e.g. ``result.objects()[0].name``."""
        return [SimpleNamespace(**row) for row in self._rows]

    def first(self) -> Optional[Dict[str, Any]]:
        return self._rows[0] if self._rows else None

    def row(self, index: int = 0) -> Optional[Dict[str, Any]]:
        """Row at ``index``, or None when out of range."""
        if 0 <= index < len(self._rows):
            return self._rows[index]
        return None

    def value(self, column: str, default: Any = None) -> Any:
        """Value of ``column`` in the first row."""
        first = self.first()
        if first is None:
            return default
        return first.get(column, default)

    def values(self, column: str) -> List[Any]:
        """Every value of ``column``, one per row."""
        return [row.get(column) for row in self._rows]

    def to_dataframe(self) -> pd.DataFrame:
        return pd.DataFrame(self._rows, columns=self.columns)
