"""
Value model for seed entry columns.

A column value is a scalar, a mapping or list of values (JSON-like data), or
a :class:`Reference` to another seed entry. References are recognised once,
when an entry is constructed, so later passes never need to inspect raw
mappings for a ``$id`` key.
"""

import hashlib
import json
from dataclasses import dataclass
from datetime import date, datetime, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional, Union

Scalar = Union[str, int, float, bool, None]


@dataclass(frozen=True)
class Reference:
    """A placeholder for the primary key of another seed entry."""

    seed_id: str
    column: Optional[str] = None


Value = Union[Scalar, Reference, Dict[str, Any], List[Any]]


def canonical_id(raw: Any) -> str:
    """Strings are kept as-is, anything else is serialized with sorted keys."""
    if isinstance(raw, str):
        return raw
    return json.dumps(raw, sort_keys=True, separators=(",", ":"), default=str)


def iso_timestamp(value: Union[date, datetime]) -> str:
    """Format a date as an ISO-8601 UTC string with millisecond precision."""
    if not isinstance(value, datetime):
        value = datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    elif value.tzinfo is None:
        # YAML timestamps without an offset are UTC
        value = value.replace(tzinfo=timezone.utc)

    value = value.astimezone(timezone.utc)
    return value.strftime("%Y-%m-%dT%H:%M:%S.") + f"{value.microsecond // 1000:03d}Z"


def prepare_value(raw: Any, render: Callable[[str], str]) -> Value:
    """
    Convert raw seed data into the value model.

    Strings are rendered, dates become ISO strings, and mappings carrying a
    ``$id`` become references.
    """
    if isinstance(raw, str):
        return render(raw)
    if isinstance(raw, (date, datetime)):
        return iso_timestamp(raw)
    if isinstance(raw, dict):
        if "$id" in raw:
            column = raw.get("$idColumn")
            return Reference(
                seed_id=canonical_id(prepare_value(raw["$id"], render)),
                column=render(column) if isinstance(column, str) else column,
            )
        return {key: prepare_value(val, render) for key, val in raw.items()}
    if isinstance(raw, (list, tuple)):
        return [prepare_value(val, render) for val in raw]
    return raw


def iter_references(value: Value) -> Iterator[Reference]:
    if isinstance(value, Reference):
        yield value
    elif isinstance(value, dict):
        for val in value.values():
            yield from iter_references(val)
    elif isinstance(value, list):
        for val in value:
            yield from iter_references(val)


def substitute_references(value: Value, resolve: Callable[[Reference], Any]) -> Any:
    """Return a copy of ``value`` with every reference replaced by ``resolve(ref)``."""
    if isinstance(value, Reference):
        return resolve(value)
    if isinstance(value, dict):
        return {key: substitute_references(val, resolve) for key, val in value.items()}
    if isinstance(value, list):
        return [substitute_references(val, resolve) for val in value]
    return value


def content_hash(payload: Dict[str, Any]) -> str:
    """Calculate a SHA256 of a column payload to detect changes."""
    data_str = json.dumps(payload, sort_keys=True, default=str)
    return hashlib.sha256(data_str.encode()).hexdigest()
