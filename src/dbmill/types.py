"""Core type definitions for dbmill."""

from enum import Enum
from typing import TypeAlias

CatalogName: TypeAlias = str
SchemaName: TypeAlias = str
ObjectName: TypeAlias = str
QualifiedName: TypeAlias = str

__all__ = [
    "CatalogName",
    "SchemaName",
    "ObjectName",
    "QualifiedName",
    "ObjectKind",
    "OwnerKind",
    "IndexKind",
    "PermissionState",
    "CATALOG_TYPE_KINDS",
    "kind_from_catalog_type",
    "kind_from_name",
    "quote_name",
    "qualified_name",
]


class ObjectKind(Enum):
    """Kinds of scriptable database objects, in enumeration order."""

    SCHEMA = "schema"
    DATA_TYPE = "dataType"
    TABLE_TYPE = "tableType"
    TABLE = "table"
    VIEW = "view"
    TRIGGER = "trigger"
    FUNCTION = "function"
    PROCEDURE = "procedure"

    @property
    def is_module(self) -> bool:
        return self in _MODULE_KINDS


_MODULE_KINDS = frozenset(
    {ObjectKind.VIEW, ObjectKind.TRIGGER, ObjectKind.FUNCTION, ObjectKind.PROCEDURE}
)


class OwnerKind(Enum):
    """Context a column or index definition is rendered in."""

    TABLE = "table"
    MEMORY_OPTIMIZED_TABLE = "memory_optimized_table"
    TABLE_TYPE = "table_type"
    ALTER_TABLE = "alter_table"


class IndexKind(Enum):
    """Index classes, in the order table types list them."""

    PRIMARY_KEY = "PRIMARY KEY"
    UNIQUE = "UNIQUE"
    CUSTOM = "CUSTOM"


class PermissionState(Enum):
    """States of sys.database_permissions rows, in rendering order."""

    GRANT = "GRANT"
    GRANT_WITH_GRANT_OPTION = "GRANT_WITH_GRANT_OPTION"
    DENY = "DENY"
    REVOKE = "REVOKE"


CATALOG_TYPE_KINDS: dict[str, ObjectKind] = {
    "SCHEMA": ObjectKind.SCHEMA,
    "DATA TYPE": ObjectKind.DATA_TYPE,
    "TABLE TYPE": ObjectKind.TABLE_TYPE,
    "BASE TABLE": ObjectKind.TABLE,
    "VIEW": ObjectKind.VIEW,
    "TRIGGER": ObjectKind.TRIGGER,
    "FUNCTION": ObjectKind.FUNCTION,
    "PROCEDURE": ObjectKind.PROCEDURE,
}

_KINDS_BY_NAME: dict[str, ObjectKind] = {kind.value.lower(): kind for kind in ObjectKind}
_KINDS_BY_NAME["domain"] = ObjectKind.DATA_TYPE


def kind_from_catalog_type(type_name: str) -> ObjectKind | None:
    """Map an object type string from the enumeration query to a kind."""
    return CATALOG_TYPE_KINDS.get(type_name.strip().upper())


def kind_from_name(name: str) -> ObjectKind | None:
    """Map a layout kind name (e.g. "tableType") to a kind, case-insensitively."""
    return _KINDS_BY_NAME.get(name.strip().lower())


def quote_name(name: str) -> str:
    """Quote an identifier with square brackets."""
    return "[" + name.replace("]", "]]") + "]"


def qualified_name(schema: str | None, name: str) -> QualifiedName:
    """Return the quoted schema-qualified name, or just [name] without a schema."""
    if not schema:
        return quote_name(name)
    return f"{quote_name(schema)}.{quote_name(name)}"
