"""Value types shared across sqlweave."""

from .raw import RawSql

__all__ = ["RawSql"]
