"""
Capability descriptors for the SQL backends seedsync can talk to.
"""

from typing import Optional

from pydantic import BaseModel
from sqlalchemy.engine import Dialect


class BackendCapabilities(BaseModel):
    """
    Which SQL features the executor may rely on for a backend.

    ``last_insert_id_sql`` and ``rowid_column`` describe how to find a freshly
    inserted row when ``returning`` is unavailable. Without a ``rowid_column``
    keys supplied by the seed are taken as given, and a generated key is found
    by matching the first primary key column against the last insert id.
    """

    name: str
    returning: bool = False
    arrays: bool = False
    concurrent_writes: bool = True
    last_insert_id_sql: Optional[str] = None
    rowid_column: Optional[str] = None

    @classmethod
    def for_dialect(cls, dialect: Dialect) -> "BackendCapabilities":
        name = dialect.name

        if name == "sqlite":
            return cls(
                name=name,
                returning=False,
                arrays=False,
                concurrent_writes=False,
                last_insert_id_sql="SELECT last_insert_rowid()",
                rowid_column="rowid",
            )
        if name == "postgresql":
            return cls(name=name, returning=True, arrays=True)
        if name in ("mysql", "mariadb"):
            return cls(
                name=name,
                returning=False,
                last_insert_id_sql="SELECT LAST_INSERT_ID()",
            )

        return cls(
            name=name,
            returning=bool(getattr(dialect, "insert_returning", False)),
        )
