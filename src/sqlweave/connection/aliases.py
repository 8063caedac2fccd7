import re
import uuid
from typing import Dict, Iterator, Optional, Tuple

# "jobs j" or "jobs AS j"
_ALIASED_TABLE = re.compile(r"^(?P<table>[^\s,]+)\s+(?:AS\s+)?(?P<alias>[^\s,]+)$", re.IGNORECASE)


class AliasRegistry:
    """Canonical table name to alias mapping owned by a connection.

    Table names are stored without the connection prefix. Every builder
    bound to the same connection shares one registry, so a reference such
    as ``users.id`` resolves to the same alias for the lifetime of the
    connection.
    """

    def __init__(self, hashed: bool = False):
        self.hashed = hashed
        self._aliases: Dict[str, str] = {}

    def __contains__(self, table: str) -> bool:
        return table in self._aliases

    def __len__(self) -> int:
        return len(self._aliases)

    def __iter__(self) -> Iterator[Tuple[str, str]]:
        return iter(self._aliases.items())

    def register(self, table: str, alias: str) -> None:
        self._aliases[table] = alias

    def clear(self) -> None:
        self._aliases.clear()

    def table_for(self, alias: str) -> Optional[str]:
        """Reverse lookup: the table registered under ``alias``."""
        for table, known in self._aliases.items():
            if known == alias:
                return table
        return None

    def alias_for(self, name: str) -> Optional[str]:
        """Return the alias for a table or alias name, None when unknown."""
        if name in self._aliases:
            return self._aliases[name]
        if self.table_for(name) is not None:
            return name
        return None

    def resolve(self, reference: str) -> Tuple[str, str]:
        """Resolve a table reference and register its alias.

        Args:
            reference: ``"table"``, ``"table alias"`` or ``"table AS alias"``

        Returns:
            ``(alias, table)``; alias equals table for unaliased references.
        """
        reference = reference.strip()
        match = _ALIASED_TABLE.match(reference)
        if match:
            table, alias = match.group("table"), match.group("alias")
            if alias != table:
                self.register(table, alias)
            return alias, table

        if reference in self._aliases:
            return self._aliases[reference], reference

        owner = self.table_for(reference)
        if owner is not None:
            return reference, owner

        if self.hashed:
            alias = f"{reference}_{uuid.uuid4().hex[:10]}"
            self.register(reference, alias)
            return alias, reference

        return reference, reference
