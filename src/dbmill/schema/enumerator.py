"""Object enumerator: streams every scriptable object in a fixed kind order."""

import logging
from collections.abc import Iterator
from typing import Any, Protocol

from dbmill.exceptions import EnumerationError
from dbmill.schema import queries
from dbmill.schema.models import DatabaseObject, Module
from dbmill.types import kind_from_catalog_type

logger = logging.getLogger(__name__)


class StreamingClient(Protocol):
    """Protocol for a client that can stream query rows."""

    def iterate(self, sql: str) -> Iterator[Any]: ...


def _get(row: Any, key: str) -> Any:
    if hasattr(row, "get"):
        return row.get(key)
    return row[key]


def _flag(value: Any) -> bool | None:
    return None if value is None else bool(value)


def object_from_row(row: Any) -> DatabaseObject | None:
    """Map one enumeration row to a DatabaseObject or Module.

    Returns None for object types the scripting engine does not know.
    """
    type_name = _get(row, "type") or ""
    kind = kind_from_catalog_type(type_name)
    if kind is None:
        logger.warning(
            f"Skipping {_get(row, 'schema')}.{_get(row, 'name')}: "
            f"unknown object type {type_name!r}"
        )
        return None

    fields = dict(
        catalog=_get(row, "catalog"),
        schema=_get(row, "schema"),
        name=_get(row, "name"),
        kind=kind,
        definition=_get(row, "definition"),
        owner=_get(row, "owner"),
        description=_get(row, "description"),
    )
    if kind.is_module:
        return Module(
            **fields,
            uses_ansi_nulls=_flag(_get(row, "uses_ansi_nulls")),
            uses_quoted_identifier=_flag(_get(row, "uses_quoted_identifier")),
            parent=_get(row, "parent"),
            parent_type=_get(row, "parent_type"),
        )
    return DatabaseObject(**fields)


class ObjectEnumerator:
    """Stream database objects one at a time, in enumeration order."""

    def __init__(self, client: StreamingClient) -> None:
        self._client = client

    def __iter__(self) -> Iterator[DatabaseObject]:
        return self.stream()

    def stream(self) -> Iterator[DatabaseObject]:
        try:
            for row in self._client.iterate(queries.OBJECTS):
                obj = object_from_row(row)
                if obj is not None:
                    yield obj
        except EnumerationError:
            raise
        except Exception as e:
            raise EnumerationError(f"Failed to enumerate database objects: {e}") from e
