"""Catalog reader: materializes SQL Server catalog views into the metadata model."""

import functools
import logging
from typing import Any, Callable, Protocol, TypeVar

from dbmill.exceptions import MetadataLoadError
from dbmill.schema import queries
from dbmill.schema.models import (
    Column,
    ColumnReference,
    DataSpace,
    ForeignKey,
    Index,
    IndexColumn,
    MetadataGraph,
    Table,
    UserDefinedType,
    type_securable,
)
from dbmill.types import PermissionState, qualified_name

logger = logging.getLogger(__name__)

T = TypeVar("T")

# grantee -> state -> permission names, per securable
PermissionMap = dict[str, dict[str, dict[PermissionState, set[str]]]]


class SQLClient(Protocol):
    """Protocol for SQL client used by the catalog reader."""

    def fetchall(self, sql: str) -> list: ...


def select_dialect(texts: dict[int, str], version: int) -> str:
    """Pick the query text for a server major version, else the oldest dialect."""
    if version in texts:
        return texts[version]
    return texts[min(texts)]


def _facet(name: str) -> Callable[[Callable[..., T]], Callable[..., T]]:
    """Turn any failure while loading a facet into MetadataLoadError."""

    def decorator(method: Callable[..., T]) -> Callable[..., T]:
        @functools.wraps(method)
        def wrapper(*args: Any, **kwargs: Any) -> T:
            try:
                return method(*args, **kwargs)
            except MetadataLoadError:
                raise
            except Exception as e:
                raise MetadataLoadError(f"Failed to load {name}: {e}") from e

        return wrapper

    return decorator


class CatalogReader:
    """Read metadata facets from a SQL Server database.

    Each facet issues one read-only query and groups the mapped entities by
    the quoted schema-qualified name of their owner.
    """

    def __init__(self, client: SQLClient) -> None:
        self._client = client

    def _row_get(self, row: Any, key: str, default: Any = None) -> Any:
        """Get a value from a row, supporting dict-like rows and pyodbc Row objects."""
        if hasattr(row, "get"):
            return row.get(key, default)
        try:
            return row[key]
        except (KeyError, IndexError, TypeError):
            return getattr(row, key, default)

    def _bool(self, row: Any, key: str, default: bool = False) -> bool:
        value = self._row_get(row, key)
        if value is None:
            return default
        return bool(value)

    def _int(self, row: Any, key: str) -> int | None:
        value = self._row_get(row, key)
        return None if value is None else int(value)

    @_facet("server version")
    def server_version(self) -> int:
        rows = self._client.fetchall(queries.SERVER_VERSION)
        if not rows:
            return 0
        return int(self._row_get(rows[0], "version") or 0)

    @_facet("database collation")
    def database_collation(self) -> str:
        rows = self._client.fetchall(queries.DATABASE_COLLATION)
        if not rows:
            return ""
        return self._row_get(rows[0], "collation") or ""

    @_facet("permissions")
    def permissions(self) -> PermissionMap:
        result: PermissionMap = {}
        for row in self._client.fetchall(queries.PERMISSIONS):
            state_desc = self._row_get(row, "state")
            try:
                state = PermissionState(state_desc)
            except ValueError as e:
                raise MetadataLoadError(
                    f"Unknown permission state: {state_desc!r}"
                ) from e

            schema = self._row_get(row, "schema")
            obj = self._row_get(row, "object")
            if self._row_get(row, "class") == "TYPE":
                securable = type_securable(schema, obj)
            else:
                securable = qualified_name(schema, obj)

            grantees = result.setdefault(securable, {})
            states = grantees.setdefault(self._row_get(row, "user"), {})
            states.setdefault(state, set()).add(self._row_get(row, "permission"))
        return result

    @_facet("user-defined types")
    def user_defined_types(self) -> dict[str, UserDefinedType]:
        result = {}
        for row in self._client.fetchall(queries.USER_DEFINED_TYPES):
            udt = UserDefinedType(
                schema=self._row_get(row, "schema"),
                name=self._row_get(row, "type"),
                is_table_type=self._bool(row, "is_table_type"),
                parent_type=self._row_get(row, "parent_type"),
                max_length=self._row_get(row, "max_length"),
                precision=self._int(row, "precision"),
                scale=self._int(row, "scale"),
                collation=self._row_get(row, "collation_name"),
                is_nullable=self._bool(row, "is_nullable", True),
                is_memory_optimized=self._bool(row, "is_memory_optimized"),
            )
            result[qualified_name(udt.schema, udt.name)] = udt
        return result

    @_facet("columns")
    def columns(self) -> dict[str, list[Column]]:
        result: dict[str, list[Column]] = {}
        for row in self._client.fetchall(queries.COLUMNS):
            owner = self._owner_name(row, "object_schema", "object_name")
            column = Column(
                id=int(self._row_get(row, "column_id")),
                name=self._row_get(row, "column_name"),
                type_name=self._row_get(row, "type_name"),
                type_schema=self._row_get(row, "type_schema"),
                is_user_defined_type=self._bool(row, "is_user_defined_type"),
                max_length=self._row_get(row, "max_length"),
                precision=self._int(row, "precision"),
                scale=self._int(row, "scale"),
                collation=self._row_get(row, "collation_name"),
                is_nullable=self._bool(row, "is_nullable", True),
                is_identity=self._bool(row, "is_identity"),
                identity_seed=self._int(row, "seed_value"),
                identity_increment=self._int(row, "increment_value"),
                is_not_for_replication=self._bool(row, "is_not_for_replication"),
                is_computed=self._bool(row, "is_computed"),
                is_persisted=self._bool(row, "is_persisted"),
                computed_definition=self._row_get(row, "computed_definition"),
                default_name=self._row_get(row, "default_constraint"),
                default_definition=self._row_get(row, "default_definition"),
                is_sparse=self._bool(row, "is_sparse"),
                is_filestream=self._bool(row, "is_filestream"),
                is_rowguidcol=self._bool(row, "is_rowguidcol"),
                is_xml_document=self._bool(row, "is_xml_document"),
                xml_collection_schema=self._row_get(row, "xml_schema_collection_schema"),
                xml_collection_name=self._row_get(row, "xml_schema_collection_name"),
                generated_always=self._row_get(row, "generated_always"),
                is_hidden=self._bool(row, "is_hidden"),
                masking_function=self._row_get(row, "masking_function"),
                encryption_key=self._row_get(row, "encryption_key"),
                encryption_type=self._row_get(row, "encryption_type"),
                encryption_algorithm=self._row_get(row, "encryption_algorithm"),
                description=self._row_get(row, "column_description"),
            )
            result.setdefault(owner, []).append(column)
        return result

    @_facet("indexes")
    def indexes(self, version: int = 0) -> dict[str, list[Index]]:
        sql = select_dialect(queries.INDEXES, version)

        # One row per index column; collect columns, then build frozen indexes.
        headers: dict[tuple[str, str], Any] = {}
        keys: dict[tuple[str, str], list[IndexColumn]] = {}
        included: dict[tuple[str, str], list[IndexColumn]] = {}

        for row in self._client.fetchall(sql):
            owner = self._owner_name(row, "schema", "object_name")
            ident = (owner, self._row_get(row, "index_name"))
            headers.setdefault(ident, row)
            column = IndexColumn(
                name=self._row_get(row, "column_name"),
                key_ordinal=int(self._row_get(row, "key_ordinal") or 0),
                is_descending=self._bool(row, "is_descending_key"),
                id=int(self._row_get(row, "index_column_id") or 0),
            )
            if self._bool(row, "is_included_column"):
                included.setdefault(ident, []).append(column)
            else:
                keys.setdefault(ident, []).append(column)

        result: dict[str, list[Index]] = {}
        for ident, row in headers.items():
            owner, name = ident
            index = Index(
                name=name,
                type=self._row_get(row, "index_type") or "NONCLUSTERED",
                is_primary_key=self._bool(row, "is_primary_key"),
                is_unique=self._bool(row, "is_unique"),
                is_unique_constraint=self._bool(row, "is_unique_constraint"),
                ignore_dup_key=self._bool(row, "ignore_dup_key"),
                columns=tuple(keys.get(ident, ())),
                included_columns=tuple(included.get(ident, ())),
                filter_definition=self._row_get(row, "filter_definition"),
                bucket_count=self._int(row, "bucket_count"),
                using_xml_index=self._row_get(row, "using_xml_index"),
                secondary_xml_type=self._row_get(row, "secondary_xml_type"),
                fill_factor=self._int(row, "fill_factor") or 0,
                is_padded=self._bool(row, "is_padded"),
                is_disabled=self._bool(row, "is_disabled"),
                allow_row_locks=self._bool(row, "allow_row_locks", True),
                allow_page_locks=self._bool(row, "allow_page_locks", True),
                optimize_for_sequential_key=self._bool(
                    row, "optimize_for_sequential_key"
                ),
                description=self._row_get(row, "description"),
            )
            result.setdefault(owner, []).append(index)
        return result

    @_facet("foreign keys")
    def foreign_keys(self) -> dict[str, list[ForeignKey]]:
        headers: dict[tuple[str, str], Any] = {}
        pairs: dict[tuple[str, str], list[ColumnReference]] = {}

        for row in self._client.fetchall(queries.FOREIGN_KEYS):
            owner = self._owner_name(row, "parent_schema", "parent_name")
            ident = (owner, self._row_get(row, "foreign_key"))
            headers.setdefault(ident, row)
            pairs.setdefault(ident, []).append(
                ColumnReference(
                    id=int(self._row_get(row, "constraint_column_id")),
                    column=self._row_get(row, "parent_column"),
                    referenced_column=self._row_get(row, "referenced_column"),
                )
            )

        result: dict[str, list[ForeignKey]] = {}
        for ident, row in headers.items():
            owner, name = ident
            fk = ForeignKey(
                name=name,
                referenced_schema=self._row_get(row, "referenced_schema"),
                referenced_name=self._row_get(row, "referenced_name"),
                columns=tuple(pairs[ident]),
                is_disabled=self._bool(row, "is_disabled"),
                is_not_for_replication=self._bool(row, "is_not_for_replication"),
                is_not_trusted=self._bool(row, "is_not_trusted"),
                delete_action=self._row_get(row, "delete_action") or "NO_ACTION",
                update_action=self._row_get(row, "update_action") or "NO_ACTION",
                description=self._row_get(row, "description"),
            )
            result.setdefault(owner, []).append(fk)
        return result

    @_facet("tables")
    def tables(self, version: int = 0) -> dict[str, Table]:
        sql = select_dialect(queries.TABLES, version)
        result = {}
        for row in self._client.fetchall(sql):
            lob_name = self._row_get(row, "lob_data_space")
            lob_data_space = None
            if lob_name:
                lob_data_space = DataSpace(
                    name=lob_name,
                    type=self._row_get(row, "lob_data_space_type"),
                    is_default=self._bool(row, "is_default_data_space"),
                )
            table = Table(
                schema=self._row_get(row, "schema"),
                name=self._row_get(row, "name"),
                data_space=self._row_get(row, "data_space"),
                lob_data_space=lob_data_space,
                filestream_data_space=self._row_get(row, "filestream_data_space"),
                lock_escalation=self._row_get(row, "lock_escalation") or "TABLE",
                durability=self._row_get(row, "durability") or "SCHEMA_AND_DATA",
                is_memory_optimized=self._bool(row, "is_memory_optimized"),
                temporal_type=self._row_get(row, "temporal_type")
                or "NON_TEMPORAL_TABLE",
                history_table_schema=self._row_get(row, "history_table_schema"),
                history_table_name=self._row_get(row, "history_table_name"),
                history_retention_period=self._int(row, "history_retention_period"),
                history_retention_period_unit=self._row_get(
                    row, "history_retention_period_unit"
                ),
                is_node=self._bool(row, "is_node"),
                is_edge=self._bool(row, "is_edge"),
                is_tracked_by_cdc=self._bool(row, "is_tracked_by_cdc"),
                is_filetable=self._bool(row, "is_filetable"),
            )
            result[qualified_name(table.schema, table.name)] = table
        return result

    def _owner_name(self, row: Any, schema_key: str, name_key: str) -> str:
        schema = self._row_get(row, schema_key)
        name = self._row_get(row, name_key)
        if not schema or not str(schema).strip() or not name or not str(name).strip():
            raise MetadataLoadError(
                f"Impossible to identify the owner object {schema!r}.{name!r}"
            )
        return qualified_name(schema, name)


def load_metadata_graph(
    client: SQLClient, *, skip_permissions: bool = False
) -> MetadataGraph:
    """Load every facet into a frozen MetadataGraph.

    Any facet failure aborts the load; no partial graph is returned.
    """
    reader = CatalogReader(client)

    version = reader.server_version()
    logger.info(f"Loading metadata (server version {version})...")

    collation = reader.database_collation()
    permissions = {} if skip_permissions else reader.permissions()
    types = reader.user_defined_types()
    columns = reader.columns()
    indexes = reader.indexes(version)
    foreign_keys = reader.foreign_keys()
    tables = reader.tables(version)

    logger.info(
        f"Loaded {len(tables)} tables, {len(types)} user-defined types, "
        f"{sum(len(c) for c in columns.values())} columns, "
        f"{sum(len(i) for i in indexes.values())} indexes, "
        f"{sum(len(f) for f in foreign_keys.values())} foreign keys"
    )

    return MetadataGraph.build(
        server_version=version,
        collation=collation,
        columns=columns,
        indexes=indexes,
        foreign_keys=foreign_keys,
        permissions=permissions,
        types=types,
        tables=tables,
    )
