class RawSql:
    """SQL text that is already valid and must never be quoted or escaped.

    Example:
        >>> builder.where(RawSql("created_at > NOW() - INTERVAL 1 DAY"))
        >>> builder.update({"hits": RawSql("hits + 1")})
    """

    __slots__ = ("sql",)

    def __init__(self, sql: str):
        self.sql = str(sql)

    def __str__(self) -> str:
        return self.sql

    def __repr__(self) -> str:
        return f"RawSql({self.sql!r})"

    def __eq__(self, other) -> bool:
        return isinstance(other, RawSql) and other.sql == self.sql

    def __hash__(self) -> int:
        return hash(("RawSql", self.sql))
