"""
Database models for seed entry tracking.
"""

import uuid
from datetime import datetime
from typing import Any, Callable, Dict, List, Optional, Union

from pydantic import BaseModel
from sqlalchemy import (
    Boolean,
    Column,
    DateTime,
    Integer,
    MetaData,
    Table,
    Text,
    TypeDecorator,
)
from sqlalchemy.dialects import postgresql

from seedsync.db.capabilities import BackendCapabilities

TRACKING_TABLE_NAME = "seedsync_seed_entry"

PrimaryKey = Union[int, str, List[Union[int, str]]]

metadata = MetaData()


class StringList(TypeDecorator):
    """
    A list of strings.

    Stored as a native ``text[]`` where the backend has arrays, and as
    comma-delimited text everywhere else.
    """

    impl = Text
    cache_ok = True

    def load_dialect_impl(self, dialect):
        if BackendCapabilities.for_dialect(dialect).arrays:
            return dialect.type_descriptor(postgresql.ARRAY(Text))
        return dialect.type_descriptor(Text())

    def process_bind_param(self, value, dialect):
        if value is None:
            return None
        if BackendCapabilities.for_dialect(dialect).arrays:
            return [str(item) for item in value]
        return ",".join(str(item) for item in value)

    def process_result_value(self, value, dialect):
        if value is None:
            return None
        if isinstance(value, str):
            return value.split(",")
        return list(value)


seed_entries = Table(
    TRACKING_TABLE_NAME,
    metadata,
    Column("id", Integer, primary_key=True, autoincrement=True),
    Column("seed_id", Text, nullable=False, unique=True),
    Column("table_name", Text, nullable=False),
    Column("schema_name", Text, nullable=True),
    Column("object_hash", Text, nullable=False),
    Column("synchronize", Boolean, nullable=False),
    Column("created_ids", StringList, nullable=False),
    Column("created_id_names", StringList, nullable=False),
    Column("created_id_types", StringList, nullable=True),
    Column("created_at", DateTime, nullable=False, index=True),
)


# Key values are stored as text next to the name of their Python type
KEY_TYPES: Dict[str, Callable[[str], Any]] = {
    "int": int,
    "str": str,
    "uuid": uuid.UUID,
}


def key_type_name(value: Any) -> str:
    """The name a key value's type is tracked under."""
    if isinstance(value, int) and not isinstance(value, bool):
        return "int"
    if isinstance(value, uuid.UUID):
        return "uuid"
    return "str"


def coerce_key_value(value: Any) -> Any:
    """
    Guess the type of a key stored without one.

    Only rows tracked before key types were recorded need this: a canonical
    integer literal ("12", not "012") is read back as an int.
    """
    if isinstance(value, str):
        digits = value[1:] if value.startswith("-") else value
        if digits.isdigit() and str(int(value)) == value:
            return int(value)
    return value


def restore_key_value(value: str, type_name: Optional[str]) -> Any:
    if type_name is None:
        return coerce_key_value(value)
    return KEY_TYPES.get(type_name, str)(value)


class TrackingRecord(BaseModel):
    """One previously seeded entry, as stored in the tracking table."""

    seed_id: str
    table_name: str
    schema_name: Optional[str] = None
    object_hash: str
    synchronize: bool
    created_ids: List[str]
    created_id_names: List[str]
    created_id_types: Optional[List[str]] = None
    created_at: datetime

    @property
    def key_values(self) -> List[Any]:
        types = self.created_id_types or [None] * len(self.created_ids)
        return [
            restore_key_value(value, type_name)
            for value, type_name in zip(self.created_ids, types)
        ]

    @property
    def primary_key(self) -> PrimaryKey:
        """The stored key, a scalar for single-column keys."""
        values = self.key_values
        if len(values) == 1:
            return values[0]
        return values

    def __repr__(self) -> str:
        return (
            f"<TrackingRecord(seed_id={self.seed_id}, "
            f"table={self.table_name}, synchronize={self.synchronize})>"
        )
