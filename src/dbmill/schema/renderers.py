"""Definition renderers: one strategy per object kind."""

from collections.abc import Callable, Mapping
from dataclasses import dataclass
from functools import partial
from types import MappingProxyType

from dbmill.exceptions import ConfigError, KindMismatchError, MissingMetadataError
from dbmill.schema.ddl import (
    batch,
    column_definition,
    description_statement,
    escape_string,
    foreign_key_definition,
    index_definition,
    ordered_indexes,
    permission_statements,
    schema_permission_blocks,
    type_clause,
)
from dbmill.schema.models import DatabaseObject, MetadataGraph, Module, type_securable
from dbmill.types import ObjectKind, OwnerKind, quote_name


@dataclass(frozen=True)
class RenderOptions:
    skip_permissions: bool = False


Renderer = Callable[[DatabaseObject, MetadataGraph, RenderOptions], str]


def _script(*blocks: str) -> str:
    """Join statement blocks with a blank line; scripts end with a newline."""
    return "\n\n".join(block for block in blocks if block) + "\n"


def _expect(obj: DatabaseObject, kind: ObjectKind) -> None:
    if obj.kind is not kind:
        raise KindMismatchError(obj.qualified_name, kind, obj.kind)


def _permissions(
    securable: str, key: str, graph: MetadataGraph, options: RenderOptions
) -> list[str]:
    if options.skip_permissions:
        return []
    statements = permission_statements(securable, graph.permissions_of(key))
    return [batch(s) for s in statements]


def render_schema(
    obj: DatabaseObject, graph: MetadataGraph, options: RenderOptions
) -> str:
    _expect(obj, ObjectKind.SCHEMA)

    statement = f"CREATE SCHEMA {quote_name(obj.name)}"
    if obj.owner:
        statement += f" AUTHORIZATION {quote_name(obj.owner)}"

    blocks = [batch(statement)]
    if not options.skip_permissions:
        blocks.extend(
            batch(b)
            for b in schema_permission_blocks(
                obj.name, graph.permissions_of(obj.qualified_name)
            )
        )
    if obj.description:
        blocks.append(
            batch(description_statement(obj.description, ("SCHEMA", obj.name)))
        )
    return _script(*blocks)


_MODULE_LEVEL_TYPES = {
    ObjectKind.VIEW: "VIEW",
    ObjectKind.PROCEDURE: "PROCEDURE",
    ObjectKind.FUNCTION: "FUNCTION",
    ObjectKind.TRIGGER: "TRIGGER",
}


def _module_description(obj: Module) -> str:
    levels = [("SCHEMA", obj.schema)]
    if obj.kind is ObjectKind.TRIGGER and obj.parent:
        parent_level = "VIEW" if obj.parent_type == "VIEW" else "TABLE"
        levels += [(parent_level, obj.parent), ("TRIGGER", obj.name)]
    else:
        levels.append((_MODULE_LEVEL_TYPES[obj.kind], obj.name))
    return batch(description_statement(obj.description, *levels))


def render_module(
    obj: DatabaseObject,
    graph: MetadataGraph,
    options: RenderOptions,
    *,
    kind: ObjectKind,
) -> str:
    """Render a view, procedure, function or trigger from its stored definition."""
    _expect(obj, kind)
    if not isinstance(obj, Module):
        raise KindMismatchError(obj.qualified_name, kind, obj.kind)

    definition = (obj.definition or "").strip("\r\n")
    if not definition.strip():
        raise MissingMetadataError(
            f"No definition available for {obj.qualified_name} (encrypted?)"
        )

    flags = []
    if obj.uses_quoted_identifier:
        flags.append("QUOTED_IDENTIFIER")
    if obj.uses_ansi_nulls:
        flags.append("ANSI_NULLS")

    body = batch(definition)
    if flags:
        body = f"{batch('SET ' + ', '.join(flags) + ' ON')}\n{body}"

    blocks = [body]
    blocks.extend(_permissions(obj.qualified_name, obj.qualified_name, graph, options))
    if obj.description:
        blocks.append(_module_description(obj))
    return _script(*blocks)


def _type_description(obj: DatabaseObject) -> str:
    levels = (("SCHEMA", obj.schema), ("TYPE", obj.name))
    return batch(description_statement(obj.description, *levels))


def _type_permissions(
    obj: DatabaseObject, graph: MetadataGraph, options: RenderOptions
) -> list[str]:
    return _permissions(
        f"TYPE::{obj.qualified_name}",
        type_securable(obj.schema, obj.name),
        graph,
        options,
    )


def render_data_type(
    obj: DatabaseObject, graph: MetadataGraph, options: RenderOptions
) -> str:
    """Render a scalar alias type."""
    _expect(obj, ObjectKind.DATA_TYPE)

    udt = graph.type_of(obj.qualified_name)
    if udt is None or not udt.parent_type:
        raise MissingMetadataError(f"No type metadata for {obj.qualified_name}")

    statement = f"CREATE TYPE {obj.qualified_name} FROM " + type_clause(
        udt.parent_type,
        max_length=udt.max_length,
        precision=udt.precision,
        scale=udt.scale,
    )
    if not udt.is_nullable:
        statement += " NOT NULL"

    blocks = [batch(statement)]
    blocks.extend(_type_permissions(obj, graph, options))
    if obj.description:
        blocks.append(_type_description(obj))
    return _script(*blocks)


def render_table_type(
    obj: DatabaseObject, graph: MetadataGraph, options: RenderOptions
) -> str:
    """Render a user-defined table type with its columns and indexes."""
    _expect(obj, ObjectKind.TABLE_TYPE)

    name = obj.qualified_name
    udt = graph.type_of(name)
    columns = graph.columns_of(name)
    if udt is None or not columns:
        raise MissingMetadataError(f"No columns found for table type {name}")

    items = [
        column_definition(c, OwnerKind.TABLE_TYPE, graph.collation) for c in columns
    ]
    items.extend(
        index_definition(i, OwnerKind.TABLE_TYPE)
        for i in ordered_indexes(graph.indexes_of(name))
    )

    statement = f"CREATE TYPE {name} AS TABLE (\n  " + ",\n  ".join(items) + "\n)"
    if udt.is_memory_optimized:
        statement += "\nWITH (MEMORY_OPTIMIZED = ON)"

    blocks = [batch(statement)]
    blocks.extend(_type_permissions(obj, graph, options))
    if obj.description:
        blocks.append(_type_description(obj))
    return _script(*blocks)


def _system_versioning(table) -> str:
    history = (
        f"{quote_name(table.history_table_schema)}."
        f"{quote_name(table.history_table_name)}"
    )
    clause = f"SYSTEM_VERSIONING = ON (HISTORY_TABLE = {history}"
    if table.history_retention_period is not None:
        if table.history_retention_period < 0:
            clause += ", HISTORY_RETENTION_PERIOD = INFINITE"
        else:
            unit = table.history_retention_period_unit or "DAY"
            period = table.history_retention_period
            clause += f", HISTORY_RETENTION_PERIOD = {period} {unit}"
    return clause + ")"


def render_table(
    obj: DatabaseObject, graph: MetadataGraph, options: RenderOptions
) -> str:
    """Render CREATE TABLE plus the statements that complete it.

    The CREATE TABLE statement carries columns, the system-time period,
    primary key and unique constraints (every index for memory-optimized
    tables), storage and table options. Standalone indexes, foreign keys,
    lock escalation, CDC, permissions and descriptions follow as separate
    batches.
    """
    _expect(obj, ObjectKind.TABLE)

    name = obj.qualified_name
    table = graph.table_of(name)
    if table is None:
        raise MissingMetadataError(f"No table metadata for {name}")
    columns = graph.columns_of(name)
    if not columns and not table.is_filetable:
        raise MissingMetadataError(f"No columns found for table {name}")

    owner = (
        OwnerKind.MEMORY_OPTIMIZED_TABLE
        if table.is_memory_optimized
        else OwnerKind.TABLE
    )
    indexes = ordered_indexes(graph.indexes_of(name))
    if table.is_memory_optimized:
        inline, standalone = indexes, []
    else:
        inline = [i for i in indexes if i.is_constraint]
        standalone = [i for i in indexes if not i.is_constraint]

    if table.is_filetable:
        statement = f"CREATE TABLE {name} AS FILETABLE"
    else:
        items = [column_definition(c, owner, graph.collation) for c in columns]
        row_start = next((c for c in columns if c.is_row_start), None)
        row_end = next((c for c in columns if c.is_row_end), None)
        if row_start and row_end:
            items.append(
                f"PERIOD FOR SYSTEM_TIME ({quote_name(row_start.name)}, "
                f"{quote_name(row_end.name)})"
            )
        items.extend(index_definition(i, owner) for i in inline)
        statement = f"CREATE TABLE {name}\n(\n  " + ",\n  ".join(items) + "\n)"
        if table.is_node:
            statement += " AS NODE"
        elif table.is_edge:
            statement += " AS EDGE"

    if not table.is_memory_optimized:
        if table.data_space:
            statement += f" ON {quote_name(table.data_space)}"
        if table.lob_data_space and not table.is_filetable:
            statement += f" TEXTIMAGE_ON {quote_name(table.lob_data_space.name)}"
        if table.filestream_data_space:
            statement += f" FILESTREAM_ON {quote_name(table.filestream_data_space)}"

    table_options = []
    if table.is_memory_optimized:
        table_options.append("MEMORY_OPTIMIZED = ON")
        table_options.append(f"DURABILITY = {table.durability}")
    if table.is_system_versioned and table.history_table_name:
        table_options.append(_system_versioning(table))
    if table_options:
        statement += f"\nWITH ({', '.join(sorted(table_options))})"

    blocks = [batch(statement)]
    blocks.extend(
        batch(index_definition(i, OwnerKind.ALTER_TABLE, name)) for i in standalone
    )
    blocks.extend(
        batch(f"ALTER INDEX {quote_name(i.name)} ON {name} DISABLE")
        for i in indexes
        if i.is_disabled
    )

    foreign_keys = sorted(graph.foreign_keys_of(name), key=lambda fk: fk.name)
    for fk in foreign_keys:
        blocks.append(batch(foreign_key_definition(fk, name)))
        if fk.is_disabled:
            blocks.append(
                batch(f"ALTER TABLE {name} NOCHECK CONSTRAINT {quote_name(fk.name)}")
            )

    if table.lock_escalation and table.lock_escalation != "TABLE":
        blocks.append(
            batch(
                f"ALTER TABLE {name} SET (LOCK_ESCALATION = {table.lock_escalation})"
            )
        )

    if table.is_tracked_by_cdc:
        blocks.append(
            batch(
                "EXECUTE sys.sp_cdc_enable_table "
                f"@source_schema = N'{escape_string(obj.schema)}', "
                f"@source_name = N'{escape_string(obj.name)}', @role_name = NULL"
            )
        )

    blocks.extend(_permissions(name, name, graph, options))

    table_level = (("SCHEMA", obj.schema), ("TABLE", obj.name))
    if obj.description:
        blocks.append(batch(description_statement(obj.description, *table_level)))
    described = [(c.description, ("COLUMN", c.name)) for c in columns]
    described += [(i.description, ("INDEX", i.name)) for i in indexes]
    described += [(fk.description, ("CONSTRAINT", fk.name)) for fk in foreign_keys]
    for description, level in described:
        if description:
            blocks.append(
                batch(description_statement(description, *table_level, level))
            )

    return _script(*blocks)


def build_dispatch_table() -> Mapping[ObjectKind, Renderer]:
    """Map every object kind to its renderer."""
    return MappingProxyType(
        {
            ObjectKind.SCHEMA: render_schema,
            ObjectKind.DATA_TYPE: render_data_type,
            ObjectKind.TABLE_TYPE: render_table_type,
            ObjectKind.TABLE: render_table,
            ObjectKind.VIEW: partial(render_module, kind=ObjectKind.VIEW),
            ObjectKind.TRIGGER: partial(render_module, kind=ObjectKind.TRIGGER),
            ObjectKind.FUNCTION: partial(render_module, kind=ObjectKind.FUNCTION),
            ObjectKind.PROCEDURE: partial(render_module, kind=ObjectKind.PROCEDURE),
        }
    )


class DefinitionRenderer:
    """Render objects against one metadata snapshot."""

    def __init__(
        self,
        graph: MetadataGraph,
        *,
        options: RenderOptions | None = None,
        renderers: Mapping[ObjectKind, Renderer] | None = None,
    ) -> None:
        renderers = renderers if renderers is not None else build_dispatch_table()
        missing = [kind.value for kind in ObjectKind if kind not in renderers]
        if missing:
            raise ConfigError(f"No renderer for object kinds: {', '.join(missing)}")
        self._graph = graph
        self._options = options or RenderOptions()
        self._renderers = renderers

    def render(self, obj: DatabaseObject) -> str:
        return self._renderers[obj.kind](obj, self._graph, self._options)
