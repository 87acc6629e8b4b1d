"""Metadata model for scripting a SQL Server database."""

from collections.abc import Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Optional

from dbmill.types import (
    IndexKind,
    ObjectKind,
    PermissionState,
    QualifiedName,
    qualified_name,
)

# grantee -> state -> permission names
ObjectPermissions = Mapping[str, Mapping[PermissionState, frozenset[str]]]

TYPE_SECURABLE_PREFIX = "TYPE::"


def type_securable(schema: str, name: str) -> str:
    """Key under which permissions on a user-defined type are stored."""
    return TYPE_SECURABLE_PREFIX + qualified_name(schema, name)


@dataclass(frozen=True)
class DatabaseObject:
    """A scriptable object as returned by the object enumerator."""

    catalog: str
    schema: Optional[str]
    name: str
    kind: ObjectKind
    definition: Optional[str] = None
    owner: Optional[str] = None
    description: Optional[str] = None

    @property
    def qualified_name(self) -> QualifiedName:
        """Quoted schema-qualified name; schemas are named by themselves."""
        if self.kind is ObjectKind.SCHEMA:
            return qualified_name(None, self.name)
        return qualified_name(self.schema, self.name)


@dataclass(frozen=True)
class Module(DatabaseObject):
    """View, procedure, function or trigger with its SET options.

    ``None`` means the option is unknown. ``parent`` names the table or view
    a trigger is defined on; ``parent_type`` is its catalog type
    (``USER_TABLE`` or ``VIEW``).
    """

    uses_ansi_nulls: Optional[bool] = None
    uses_quoted_identifier: Optional[bool] = None
    parent: Optional[str] = None
    parent_type: Optional[str] = None


@dataclass(frozen=True)
class Column:
    """Column of a table or table type."""

    name: str
    type_name: str
    id: int = 0
    type_schema: Optional[str] = None
    is_user_defined_type: bool = False
    max_length: Optional[str] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    collation: Optional[str] = None
    is_nullable: bool = True
    is_identity: bool = False
    identity_seed: Optional[int] = None
    identity_increment: Optional[int] = None
    is_not_for_replication: bool = False
    is_computed: bool = False
    is_persisted: bool = False
    computed_definition: Optional[str] = None
    default_name: Optional[str] = None
    default_definition: Optional[str] = None
    is_sparse: bool = False
    is_filestream: bool = False
    is_rowguidcol: bool = False
    is_xml_document: bool = False
    xml_collection_schema: Optional[str] = None
    xml_collection_name: Optional[str] = None
    generated_always: Optional[str] = None
    is_hidden: bool = False
    masking_function: Optional[str] = None
    encryption_key: Optional[str] = None
    encryption_type: Optional[str] = None
    encryption_algorithm: Optional[str] = None
    description: Optional[str] = None

    @property
    def is_row_start(self) -> bool:
        return (self.generated_always or "").endswith("ROW START")

    @property
    def is_row_end(self) -> bool:
        return (self.generated_always or "").endswith("ROW END")


@dataclass(frozen=True)
class IndexColumn:
    """Key or included column of an index."""

    name: str
    key_ordinal: int = 0
    is_descending: bool = False
    id: int = 0


@dataclass(frozen=True)
class Index:
    """Index or index-backed constraint of a table or table type."""

    name: str
    type: str = "NONCLUSTERED"
    is_primary_key: bool = False
    is_unique: bool = False
    is_unique_constraint: bool = False
    ignore_dup_key: bool = False
    columns: tuple[IndexColumn, ...] = ()
    included_columns: tuple[IndexColumn, ...] = ()
    filter_definition: Optional[str] = None
    bucket_count: Optional[int] = None
    # secondary XML indexes: the primary XML index they use and PATH|VALUE|PROPERTY
    using_xml_index: Optional[str] = None
    secondary_xml_type: Optional[str] = None
    fill_factor: int = 0
    is_padded: bool = False
    is_disabled: bool = False
    allow_row_locks: bool = True
    allow_page_locks: bool = True
    optimize_for_sequential_key: bool = False
    description: Optional[str] = None

    @property
    def kind(self) -> IndexKind:
        if self.is_primary_key:
            return IndexKind.PRIMARY_KEY
        if self.is_unique:
            return IndexKind.UNIQUE
        return IndexKind.CUSTOM

    @property
    def is_constraint(self) -> bool:
        return self.is_primary_key or self.is_unique_constraint

    @property
    def is_secondary_xml(self) -> bool:
        return self.using_xml_index is not None

    def key_columns(self) -> list[IndexColumn]:
        """Key columns in key-ordinal order."""
        return sorted(self.columns, key=lambda c: (c.key_ordinal, c.id))

    def sorted_included_columns(self) -> list[IndexColumn]:
        """Included columns in key-ordinal order."""
        return sorted(self.included_columns, key=lambda c: (c.key_ordinal, c.id))


@dataclass(frozen=True)
class ColumnReference:
    """Local to referenced column pair of a foreign key."""

    id: int
    column: str
    referenced_column: str


@dataclass(frozen=True)
class ForeignKey:
    name: str
    referenced_schema: str
    referenced_name: str
    columns: tuple[ColumnReference, ...] = ()
    is_disabled: bool = False
    is_not_for_replication: bool = False
    is_not_trusted: bool = False
    delete_action: str = "NO_ACTION"
    update_action: str = "NO_ACTION"
    description: Optional[str] = None

    def column_pairs(self) -> list[ColumnReference]:
        return sorted(self.columns, key=lambda c: c.id)


@dataclass(frozen=True)
class UserDefinedType:
    """Scalar alias type or table type.

    Scalar types carry the parent type clause; table types are described by
    the columns and indexes stored under their name in the graph.
    """

    schema: str
    name: str
    is_table_type: bool = False
    parent_type: Optional[str] = None
    max_length: Optional[str] = None
    precision: Optional[int] = None
    scale: Optional[int] = None
    collation: Optional[str] = None
    is_nullable: bool = True
    is_memory_optimized: bool = False


@dataclass(frozen=True)
class DataSpace:
    name: str
    type: Optional[str] = None
    is_default: bool = False


@dataclass(frozen=True)
class Table:
    """Physical attributes of a user table."""

    schema: str
    name: str
    data_space: Optional[str] = None
    lob_data_space: Optional[DataSpace] = None
    filestream_data_space: Optional[str] = None
    lock_escalation: str = "TABLE"
    durability: str = "SCHEMA_AND_DATA"
    is_memory_optimized: bool = False
    temporal_type: str = "NON_TEMPORAL_TABLE"
    history_table_schema: Optional[str] = None
    history_table_name: Optional[str] = None
    history_retention_period: Optional[int] = None
    history_retention_period_unit: Optional[str] = None
    is_node: bool = False
    is_edge: bool = False
    is_tracked_by_cdc: bool = False
    is_filetable: bool = False

    @property
    def is_system_versioned(self) -> bool:
        return self.temporal_type == "SYSTEM_VERSIONED_TEMPORAL_TABLE"


def _freeze(mapping: Mapping) -> Mapping:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class MetadataGraph:
    """Read-only snapshot of the catalog for one scripting run.

    Every facet is keyed by the quoted schema-qualified owner name
    (``[schema].[name]``). Permissions on schemas are keyed by ``[schema]``
    and permissions on types by ``TYPE::[schema].[name]``.
    """

    server_version: int = 0
    collation: str = ""
    columns: Mapping[str, tuple[Column, ...]] = field(default_factory=dict)
    indexes: Mapping[str, tuple[Index, ...]] = field(default_factory=dict)
    foreign_keys: Mapping[str, tuple[ForeignKey, ...]] = field(default_factory=dict)
    permissions: Mapping[str, ObjectPermissions] = field(default_factory=dict)
    types: Mapping[str, UserDefinedType] = field(default_factory=dict)
    tables: Mapping[str, Table] = field(default_factory=dict)

    @classmethod
    def build(
        cls,
        *,
        server_version: int = 0,
        collation: str = "",
        columns: Optional[Mapping[str, list[Column]]] = None,
        indexes: Optional[Mapping[str, list[Index]]] = None,
        foreign_keys: Optional[Mapping[str, list[ForeignKey]]] = None,
        permissions: Optional[Mapping[str, Mapping[str, Mapping]]] = None,
        types: Optional[Mapping[str, UserDefinedType]] = None,
        tables: Optional[Mapping[str, Table]] = None,
    ) -> "MetadataGraph":
        """Assemble a graph, freezing every nested collection."""
        frozen_permissions = {
            name: _freeze(
                {
                    grantee: _freeze(
                        {state: frozenset(perms) for state, perms in states.items()}
                    )
                    for grantee, states in grantees.items()
                }
            )
            for name, grantees in (permissions or {}).items()
        }
        return cls(
            server_version=server_version,
            collation=collation or "",
            columns=_freeze(
                {
                    k: tuple(sorted(v, key=lambda c: c.id))
                    for k, v in (columns or {}).items()
                }
            ),
            indexes=_freeze({k: tuple(v) for k, v in (indexes or {}).items()}),
            foreign_keys=_freeze(
                {k: tuple(v) for k, v in (foreign_keys or {}).items()}
            ),
            permissions=_freeze(frozen_permissions),
            types=_freeze(types or {}),
            tables=_freeze(tables or {}),
        )

    def columns_of(self, name: str) -> tuple[Column, ...]:
        return self.columns.get(name, ())

    def indexes_of(self, name: str) -> tuple[Index, ...]:
        return self.indexes.get(name, ())

    def foreign_keys_of(self, name: str) -> tuple[ForeignKey, ...]:
        return self.foreign_keys.get(name, ())

    def permissions_of(self, name: str) -> ObjectPermissions:
        return self.permissions.get(name, MappingProxyType({}))

    def type_of(self, name: str) -> Optional[UserDefinedType]:
        return self.types.get(name)

    def table_of(self, name: str) -> Optional[Table]:
        return self.tables.get(name)
