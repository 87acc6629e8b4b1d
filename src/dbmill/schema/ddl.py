"""Clause-level T-SQL rendering for columns, indexes, keys and permissions.

Every function here is a pure function of its arguments. Column and index
text depends on the context the definition appears in, passed explicitly as
an ``OwnerKind``.
"""

from collections.abc import Callable, Iterator
from typing import Optional

from dbmill.schema.models import Column, ForeignKey, Index, ObjectPermissions
from dbmill.types import IndexKind, OwnerKind, PermissionState, quote_name

BATCH_SEPARATOR = "GO"


def escape_string(value: str) -> str:
    """Escape single quotes for SQL string literals."""
    return value.replace("'", "''")


def batch(statement: str) -> str:
    """Terminate a statement with the batch separator."""
    return f"{statement}\n{BATCH_SEPARATOR}"


def type_clause(
    type_name: str,
    *,
    type_schema: Optional[str] = None,
    is_user_defined: bool = False,
    max_length: Optional[str] = None,
    precision: Optional[int] = None,
    scale: Optional[int] = None,
    xml_collection_schema: Optional[str] = None,
    xml_collection_name: Optional[str] = None,
    is_xml_document: bool = False,
) -> str:
    """Render ``[schema].[type](length)`` for a column or alias type."""
    clause = quote_name(type_name)
    if is_user_defined and type_schema:
        clause = f"{quote_name(type_schema)}.{clause}"

    if max_length:
        clause += f"({max_length})"
    elif precision:
        if scale:
            clause += f"({precision}, {scale})"
        else:
            clause += f"({precision})"
    elif type_name.lower() == "xml" and xml_collection_name:
        # T-SQL grammar: xml ( { CONTENT | DOCUMENT } schema_collection )
        content = "DOCUMENT" if is_xml_document else "CONTENT"
        collection = quote_name(xml_collection_name)
        if xml_collection_schema:
            collection = f"{quote_name(xml_collection_schema)}.{collection}"
        clause += f"({content} {collection})"

    return clause


# Column trailing clauses. Each returns None when it does not apply.

ColumnClause = Callable[[Column, OwnerKind, str], Optional[str]]


def _filestream(
    column: Column, owner: OwnerKind, default_collation: str
) -> Optional[str]:
    return "FILESTREAM" if column.is_filestream else None


def _collate(
    column: Column, owner: OwnerKind, default_collation: str
) -> Optional[str]:
    if column.collation and column.collation != default_collation:
        return f"COLLATE {column.collation}"
    return None


def _sparse(
    column: Column, owner: OwnerKind, default_collation: str
) -> Optional[str]:
    return "SPARSE" if column.is_sparse else None


def _masked(
    column: Column, owner: OwnerKind, default_collation: str
) -> Optional[str]:
    if column.masking_function:
        return f"MASKED WITH (FUNCTION = '{escape_string(column.masking_function)}')"
    return None


def _default(
    column: Column, owner: OwnerKind, default_collation: str
) -> Optional[str]:
    if not column.default_definition:
        return None
    if owner is OwnerKind.TABLE_TYPE or not column.default_name:
        return f"DEFAULT {column.default_definition}"
    constraint = quote_name(column.default_name)
    return f"CONSTRAINT {constraint} DEFAULT {column.default_definition}"


def _identity(
    column: Column, owner: OwnerKind, default_collation: str
) -> Optional[str]:
    if not column.is_identity:
        return None
    seed = 1 if column.identity_seed is None else column.identity_seed
    increment = 1 if column.identity_increment is None else column.identity_increment

    clause = "IDENTITY"
    if (seed, increment) != (1, 1):
        clause += f"({seed}, {increment})"
    on_table = owner in (OwnerKind.TABLE, OwnerKind.ALTER_TABLE)
    if column.is_not_for_replication and on_table:
        clause += " NOT FOR REPLICATION"
    return clause


def _generated(
    column: Column, owner: OwnerKind, default_collation: str
) -> Optional[str]:
    if not column.generated_always:
        return None
    if column.is_hidden:
        return f"{column.generated_always} HIDDEN"
    return column.generated_always


def _not_null(
    column: Column, owner: OwnerKind, default_collation: str
) -> Optional[str]:
    if column.is_nullable or column.is_identity:
        return None
    return "NOT NULL"


def _rowguidcol(
    column: Column, owner: OwnerKind, default_collation: str
) -> Optional[str]:
    return "ROWGUIDCOL" if column.is_rowguidcol else None


def _encrypted(
    column: Column, owner: OwnerKind, default_collation: str
) -> Optional[str]:
    if not column.encryption_key:
        return None
    return (
        f"ENCRYPTED WITH (COLUMN_ENCRYPTION_KEY = {quote_name(column.encryption_key)}, "
        f"ENCRYPTION_TYPE = {column.encryption_type}, "
        f"ALGORITHM = '{escape_string(column.encryption_algorithm or '')}')"
    )


_TABLE_CLAUSES: tuple[ColumnClause, ...] = (
    _filestream,
    _collate,
    _sparse,
    _masked,
    _default,
    _identity,
    _generated,
    _not_null,
    _rowguidcol,
    _encrypted,
)

COLUMN_CLAUSES: dict[OwnerKind, tuple[ColumnClause, ...]] = {
    OwnerKind.TABLE: _TABLE_CLAUSES,
    OwnerKind.ALTER_TABLE: _TABLE_CLAUSES,
    OwnerKind.MEMORY_OPTIMIZED_TABLE: (
        _collate,
        _default,
        _identity,
        _generated,
        _not_null,
    ),
    OwnerKind.TABLE_TYPE: (
        _collate,
        _default,
        _identity,
        _not_null,
        _rowguidcol,
    ),
}


def column_definition(
    column: Column,
    owner: OwnerKind = OwnerKind.TABLE,
    default_collation: str = "",
) -> str:
    """Render a column definition for the given owner context."""
    name = quote_name(column.name)

    if column.is_computed:
        definition = f"{name} AS {column.computed_definition}"
        if column.is_persisted:
            definition += " PERSISTED"
        return definition

    parts = [
        name,
        type_clause(
            column.type_name,
            type_schema=column.type_schema,
            is_user_defined=column.is_user_defined_type,
            max_length=column.max_length,
            precision=column.precision,
            scale=column.scale,
            xml_collection_schema=column.xml_collection_schema,
            xml_collection_name=column.xml_collection_name,
            is_xml_document=column.is_xml_document,
        ),
    ]
    for clause in COLUMN_CLAUSES[owner]:
        text = clause(column, owner, default_collation)
        if text:
            parts.append(text)
    return " ".join(parts)


def _index_column_list(columns) -> str:
    return ", ".join(
        quote_name(c.name) + (" DESC" if c.is_descending else "") for c in columns
    )


def index_options(index: Index, owner: OwnerKind) -> list[str]:
    """WITH (...) options of an index, sorted lexicographically."""
    options = []
    if index.bucket_count:
        options.append(f"BUCKET_COUNT = {index.bucket_count}")
    if index.ignore_dup_key:
        options.append("IGNORE_DUP_KEY = ON")

    if owner in (OwnerKind.TABLE, OwnerKind.ALTER_TABLE):
        if index.fill_factor:
            options.append(f"FILLFACTOR = {index.fill_factor}")
        if index.is_padded:
            options.append("PAD_INDEX = ON")
        if not index.allow_row_locks:
            options.append("ALLOW_ROW_LOCKS = OFF")
        if not index.allow_page_locks:
            options.append("ALLOW_PAGE_LOCKS = OFF")
        if index.optimize_for_sequential_key:
            options.append("OPTIMIZE_FOR_SEQUENTIAL_KEY = ON")

    return sorted(options)


def _with_clause(index: Index, owner: OwnerKind) -> str:
    options = index_options(index, owner)
    return f" WITH ({', '.join(options)})" if options else ""


def _include_clause(index: Index) -> str:
    included = index.sorted_included_columns()
    if not included:
        return ""
    return f" INCLUDE ({_index_column_list(included)})"


def _type_keyword(index: Index) -> str:
    if not index.type or index.type.upper() == "NONCLUSTERED":
        return ""
    return index.type.upper()


def _inline_index(index: Index, owner: OwnerKind) -> str:
    parts = ["PRIMARY KEY" if index.is_primary_key else "INDEX", quote_name(index.name)]
    if index.is_unique and not index.is_primary_key:
        parts.append("UNIQUE")
    keyword = _type_keyword(index)
    if keyword:
        parts.append(keyword)
    parts.append(f"({_index_column_list(index.key_columns())})")
    return " ".join(parts) + _with_clause(index, owner) + _include_clause(index)


def _constraint(index: Index, owner: OwnerKind) -> str:
    keyword = "PRIMARY KEY" if index.is_primary_key else "UNIQUE"
    kind = (index.type or "NONCLUSTERED").upper()
    return (
        f"CONSTRAINT {quote_name(index.name)} {keyword} {kind} "
        f"({_index_column_list(index.key_columns())})" + _with_clause(index, owner)
    )


def _create_xml_index(index: Index, table_name: str) -> str:
    keyword = "XML INDEX" if index.is_secondary_xml else "PRIMARY XML INDEX"
    statement = (
        f"CREATE {keyword} {quote_name(index.name)} ON {table_name} "
        f"({_index_column_list(index.key_columns())})"
    )
    if index.is_secondary_xml:
        statement += (
            f" USING XML INDEX {quote_name(index.using_xml_index)}"
            f" FOR {index.secondary_xml_type}"
        )
    return statement + _with_clause(index, OwnerKind.ALTER_TABLE)


def _create_index(index: Index, table_name: str) -> str:
    kind = (index.type or "").upper()
    if kind == "XML":
        return _create_xml_index(index, table_name)
    parts = ["CREATE"]
    if index.is_unique:
        parts.append("UNIQUE")
    if _type_keyword(index):
        parts.append(_type_keyword(index))
    parts.append(f"INDEX {quote_name(index.name)} ON {table_name}")
    statement = " ".join(parts)

    if kind == "CLUSTERED COLUMNSTORE":
        return statement + _with_clause(index, OwnerKind.ALTER_TABLE)
    if kind == "NONCLUSTERED COLUMNSTORE":
        columns = index.key_columns() + index.sorted_included_columns()
        return (
            statement
            + f" ({_index_column_list(columns)})"
            + _with_clause(index, OwnerKind.ALTER_TABLE)
        )

    statement += f" ({_index_column_list(index.key_columns())})"
    statement += _include_clause(index)
    if index.filter_definition:
        statement += f" WHERE {index.filter_definition}"
    return statement + _with_clause(index, OwnerKind.ALTER_TABLE)


def index_definition(
    index: Index,
    owner: OwnerKind = OwnerKind.TABLE_TYPE,
    table_name: str = "",
) -> str:
    """Render an index for the given owner context.

    Table types use the inline ``PRIMARY KEY``/``INDEX`` form. Tables render
    primary key and unique constraints inline as ``CONSTRAINT``; memory
    optimized tables also inline their other indexes. ``ALTER_TABLE`` renders
    a standalone statement against ``table_name``, the only form that carries
    a filter predicate.
    """
    if owner is OwnerKind.TABLE_TYPE:
        return _inline_index(index, owner)
    if owner is OwnerKind.ALTER_TABLE:
        if index.is_constraint:
            return f"ALTER TABLE {table_name} ADD " + _constraint(index, owner)
        return _create_index(index, table_name)
    if index.is_constraint:
        return _constraint(index, owner)
    return _inline_index(index, owner)


_INDEX_KIND_ORDER = {kind: position for position, kind in enumerate(IndexKind)}


def ordered_indexes(indexes) -> list[Index]:
    """Primary keys, then unique, then custom indexes, each sorted by name.

    Secondary XML indexes come last so the primary XML index they use exists.
    """
    return sorted(
        indexes,
        key=lambda i: (_INDEX_KIND_ORDER[i.kind], i.is_secondary_xml, i.name),
    )


def _referential_action(action: str) -> str:
    return action.replace("_", " ").upper()


def foreign_key_definition(fk: ForeignKey, table_name: str) -> str:
    pairs = fk.column_pairs()
    local = ", ".join(quote_name(p.column) for p in pairs)
    referenced = ", ".join(quote_name(p.referenced_column) for p in pairs)
    check = "NOCHECK" if fk.is_not_trusted else "CHECK"
    target = f"{quote_name(fk.referenced_schema)}.{quote_name(fk.referenced_name)}"

    statement = (
        f"ALTER TABLE {table_name} WITH {check} ADD CONSTRAINT {quote_name(fk.name)} "
        f"FOREIGN KEY ({local}) REFERENCES {target} ({referenced})"
    )
    if fk.delete_action and fk.delete_action != "NO_ACTION":
        statement += f" ON DELETE {_referential_action(fk.delete_action)}"
    if fk.update_action and fk.update_action != "NO_ACTION":
        statement += f" ON UPDATE {_referential_action(fk.update_action)}"
    if fk.is_not_for_replication:
        statement += " NOT FOR REPLICATION"
    return statement


def _ordered_permissions(
    permissions: ObjectPermissions,
) -> Iterator[tuple[str, PermissionState, list[str]]]:
    for grantee in sorted(permissions):
        states = permissions[grantee]
        for state in PermissionState:
            names = states.get(state)
            if names:
                yield grantee, state, sorted(names)


def _grant_parts(state: PermissionState) -> tuple[str, str, str]:
    """(verb, preposition, suffix) for a permission state."""
    if state is PermissionState.GRANT_WITH_GRANT_OPTION:
        return "GRANT", "TO", " WITH GRANT OPTION"
    if state is PermissionState.REVOKE:
        return "REVOKE", "FROM", ""
    return state.value, "TO", ""


def permission_statements(securable: str, permissions: ObjectPermissions) -> list[str]:
    """One statement per permission on an object or type securable."""
    statements = []
    for grantee, state, names in _ordered_permissions(permissions):
        verb, preposition, suffix = _grant_parts(state)
        for name in names:
            statements.append(
                f"{verb} {name} ON {securable} "
                f"{preposition} {quote_name(grantee)}{suffix}"
            )
    return statements


def schema_permission_blocks(schema: str, permissions: ObjectPermissions) -> list[str]:
    """One statement per (grantee, state) listing every permission on a schema."""
    blocks = []
    for grantee, state, names in _ordered_permissions(permissions):
        verb, preposition, suffix = _grant_parts(state)
        listing = ",\n  ".join(names)
        blocks.append(
            f"{verb}\n  {listing}\nON SCHEMA :: {quote_name(schema)} "
            f"{preposition} {quote_name(grantee)}{suffix}"
        )
    return blocks


def description_statement(description: str, *levels: tuple[str, str]) -> str:
    """sp_addextendedproperty call storing an MS_Description.

    ``levels`` are (type, name) pairs for level0, level1 and level2.
    """
    params = ["@name = N'MS_Description'"]
    for depth, (level_type, level_name) in enumerate(levels):
        params.append(f"@level{depth}type = N'{level_type}'")
        params.append(f"@level{depth}name = N'{escape_string(level_name)}'")
    params.append(f"@value = N'{escape_string(description)}'")
    return "EXECUTE sp_addextendedproperty " + ", ".join(params)
