"""Catalog queries used by the catalog reader and the object enumerator.

All queries are parameter-free and read-only. Facets whose catalog views
changed between releases keep one text per dialect, keyed by the server
major version that introduced it.
"""

SERVER_VERSION = """
select isnull(
    try_cast(
        left(
            cast(serverproperty('productversion') as nvarchar(128)),
            patindex('%.%', cast(serverproperty('productversion') as nvarchar(128))) - 1
        ) as int
    ),
    0
) as version
"""

DATABASE_COLLATION = """
select isnull(cast(databasepropertyex(db_name(), 'Collation') as nvarchar(128)), N'') as collation
"""

PERMISSIONS = """
select permissions.[schema], permissions.object, permissions.class, permissions.permission,
    permissions.state, permissions.[user]
from (
    select
        [schema] = case perm.class
            when 1 then schema_name(objects.schema_id)
            when 6 then schema_name(types.schema_id)
            else null
        end,
        [object] = case perm.class
            when 1 then objects.name
            when 3 then schema_name(perm.major_id)
            when 6 then types.name
            else null
        end,
        [class] = perm.class_desc,
        [permission] = perm.permission_name,
        [state] = perm.state_desc,
        [user] = user_name(perm.grantee_principal_id)
    from sys.database_permissions as perm
        left join sys.objects as objects on (perm.class = 1) and (perm.major_id = objects.object_id)
        left join sys.types as types on (perm.class = 6) and (perm.major_id = types.user_type_id)
    where perm.class in (1, 3, 6) and perm.major_id > 0 and perm.minor_id = 0
) as permissions
where not permissions.object is null and not permissions.permission is null
    and not permissions.state is null and not permissions.[user] is null
order by permissions.[schema], permissions.object, permissions.[user], permissions.state,
    permissions.permission
"""

USER_DEFINED_TYPES = """
select userTypes.[schema], userTypes.type, userTypes.parent_type, userTypes.max_length,
    userTypes.precision, userTypes.scale, userTypes.collation_name, userTypes.is_nullable,
    userTypes.is_table_type, userTypes.is_memory_optimized
from (
    select
        [type] = types.name,
        [schema] = schema_name(types.schema_id),
        [parent_type] = st.name,
        [max_length] = iif(
            st.name in ('char', 'varchar', 'nchar', 'nvarchar', 'binary', 'varbinary'),
            iif(
                types.max_length = -1,
                'max',
                iif(
                    st.name in ('nchar', 'nvarchar'),
                    cast(types.max_length / 2 as nvarchar(4)),
                    cast(types.max_length as nvarchar(4))
                )
            ),
            iif(
                st.name = 'float',
                iif(types.max_length != 53, cast(types.max_length as nvarchar(4)), null),
                iif(
                    st.name in ('datetime2', 'time', 'datetimeoffset'),
                    iif(types.scale != 7, cast(types.scale as nvarchar(4)), null),
                    null
                )
            )
        ),
        [precision] = iif(st.name in ('decimal', 'numeric'), types.precision, null),
        [scale] = iif(st.name in ('decimal', 'numeric'), types.scale, null),
        [collation_name] = types.collation_name,
        [is_nullable] = types.is_nullable,
        [is_table_type] = types.is_table_type,
        [is_memory_optimized] = cast(0 as bit)
    from sys.types as types
        inner join sys.types as st on (types.system_type_id = st.system_type_id)
            and (st.system_type_id = st.user_type_id)
    where types.is_user_defined != cast(0 as bit) and types.is_assembly_type = cast(0 as bit)
        and types.is_table_type = cast(0 as bit)
    union all
    select
        [type] = types.name,
        [schema] = schema_name(types.schema_id),
        [parent_type] = null,
        [max_length] = null,
        [precision] = null,
        [scale] = null,
        [collation_name] = types.collation_name,
        [is_nullable] = types.is_nullable,
        [is_table_type] = types.is_table_type,
        [is_memory_optimized] = types.is_memory_optimized
    from sys.table_types as types
    where types.is_user_defined != cast(0 as bit) and types.is_assembly_type = cast(0 as bit)
) as userTypes
order by userTypes.[schema], userTypes.[type]
"""

COLUMNS = """
with obj (schema_id, object_id, object_name) as (
    select ttypes.schema_id, ttypes.type_table_object_id as object_id, ttypes.name as object_name
    from sys.table_types as ttypes
    where ttypes.is_user_defined != cast(0 as bit) and ttypes.is_assembly_type != cast(1 as bit)
    union
    select tables.schema_id, tables.object_id, tables.name as object_name
    from sys.tables as tables
    where tables.type = 'U' and tables.is_ms_shipped = cast(0 as bit)
)
select
    [object_schema] = schema_name(o.schema_id),
    [object_name] = o.object_name,
    [column_id] = columns.column_id,
    [column_name] = columns.name,
    [column_description] = cast(sep.value as nvarchar(2048)),
    [type_name] = st.name,
    [type_schema] = schema_name(st.schema_id),
    [is_user_defined_type] = st.is_user_defined,
    [max_length] = iif(
        st.name in ('char', 'varchar', 'nchar', 'nvarchar', 'binary', 'varbinary'),
        iif(
            columns.max_length = -1,
            'max',
            iif(
                st.name in ('nchar', 'nvarchar'),
                cast(columns.max_length / 2 as nvarchar(4)),
                cast(columns.max_length as nvarchar(4))
            )
        ),
        iif(
            st.name = 'float',
            iif(columns.max_length != 53, cast(columns.max_length as nvarchar(4)), null),
            iif(
                st.name in ('datetime2', 'time', 'datetimeoffset'),
                iif(columns.scale != 7, cast(columns.scale as nvarchar(4)), null),
                null
            )
        )
    ),
    [precision] = iif(st.name in ('decimal', 'numeric'), columns.precision, null),
    [scale] = iif(st.name in ('decimal', 'numeric'), columns.scale, null),
    [collation_name] = columns.collation_name,
    [is_nullable] = columns.is_nullable,
    [is_rowguidcol] = columns.is_rowguidcol,
    [is_identity] = columns.is_identity,
    [seed_value] = cast(ident.seed_value as bigint),
    [increment_value] = cast(ident.increment_value as bigint),
    [is_not_for_replication] = isnull(ident.is_not_for_replication, cast(0 as bit)),
    [is_computed] = columns.is_computed,
    [is_persisted] = isnull(cc.is_persisted, cast(0 as bit)),
    [computed_definition] = cc.definition,
    [is_filestream] = columns.is_filestream,
    [is_xml_document] = columns.is_xml_document,
    [xml_schema_collection_schema] = schema_name(xsc.schema_id),
    [xml_schema_collection_name] = xsc.name,
    [default_constraint] = def.name,
    [default_definition] = def.definition,
    [is_sparse] = columns.is_sparse,
    [generated_always] = case columns.generated_always_type
        when 1 then 'GENERATED ALWAYS AS ROW START'
        when 2 then 'GENERATED ALWAYS AS ROW END'
        else null
    end,
    [is_hidden] = columns.is_hidden,
    [masking_function] = mc.masking_function,
    [encryption_key] = cek.name,
    [encryption_type] = case columns.encryption_type
        when 1 then N'DETERMINISTIC'
        when 2 then N'RANDOMIZED'
        else null
    end,
    [encryption_algorithm] = columns.encryption_algorithm_name
from obj as o
    inner join sys.columns as columns on (o.object_id = columns.object_id)
        inner join sys.types as st on (columns.user_type_id = st.user_type_id)
        left join sys.default_constraints as def on (columns.default_object_id = def.object_id)
        left join sys.computed_columns as cc on (columns.object_id = cc.object_id)
            and (columns.column_id = cc.column_id)
        left join sys.identity_columns as ident on (columns.object_id = ident.object_id)
            and (columns.column_id = ident.column_id)
        left join sys.masked_columns as mc on (columns.object_id = mc.object_id)
            and (columns.column_id = mc.column_id) and (mc.is_masked != cast(0 as bit))
        left join sys.extended_properties as sep on (columns.object_id = sep.major_id)
            and (columns.column_id = sep.minor_id) and (sep.name = N'MS_Description')
            and (sep.class = 1)
        left join sys.column_encryption_keys as cek
            on (columns.column_encryption_key_id = cek.column_encryption_key_id)
        left join sys.xml_schema_collections as xsc on (columns.xml_collection_id = xsc.xml_collection_id)
order by [object_schema], [object_name], [column_id]
"""

_INDEXES_TEMPLATE = """
select
    [schema] = iif(objects.type = 'TT', schema_name(table_types.schema_id), schema_name(objects.schema_id)),
    [object_name] = iif(objects.type = 'TT', table_types.name, objects.name),
    [index_id] = indexes.index_id,
    [index_name] = indexes.name,
    [index_type] = indexes.type_desc,
    [is_unique] = indexes.is_unique,
    [is_primary_key] = indexes.is_primary_key,
    [is_unique_constraint] = indexes.is_unique_constraint,
    [ignore_dup_key] = indexes.ignore_dup_key,
    [fill_factor] = indexes.fill_factor,
    [is_padded] = indexes.is_padded,
    [is_disabled] = indexes.is_disabled,
    [allow_row_locks] = indexes.allow_row_locks,
    [allow_page_locks] = indexes.allow_page_locks,
    [optimize_for_sequential_key] = {optimize_for_sequential_key},
    [filter_definition] = indexes.filter_definition,
    [index_column_id] = index_columns.index_column_id,
    [column_name] = columns.name,
    [is_descending_key] = index_columns.is_descending_key,
    [is_included_column] = index_columns.is_included_column,
    [key_ordinal] = index_columns.key_ordinal,
    [bucket_count] = hash_indexes.bucket_count,
    [using_xml_index] = using_indexes.name,
    [secondary_xml_type] = xml_indexes.secondary_type_desc,
    [description] = cast(sep.value as nvarchar(2048))
from sys.indexes as indexes
    inner join sys.objects as objects on (indexes.object_id = objects.object_id)
        and (objects.type in ('U', 'TT')) and (objects.is_ms_shipped = cast(0 as bit))
        left join sys.table_types as table_types on (objects.object_id = table_types.type_table_object_id)
    inner join sys.index_columns as index_columns on (indexes.object_id = index_columns.object_id)
        and (indexes.index_id = index_columns.index_id)
        inner join sys.columns as columns on (index_columns.object_id = columns.object_id)
            and (index_columns.column_id = columns.column_id)
    left join sys.hash_indexes as hash_indexes on (indexes.object_id = hash_indexes.object_id)
        and (indexes.index_id = hash_indexes.index_id)
    left join sys.xml_indexes as xml_indexes on (indexes.object_id = xml_indexes.object_id)
        and (indexes.index_id = xml_indexes.index_id)
        left join sys.indexes as using_indexes on (xml_indexes.object_id = using_indexes.object_id)
            and (xml_indexes.using_xml_index_id = using_indexes.index_id)
    left join sys.extended_properties as sep on (sep.class = 7) and (sep.major_id = indexes.object_id)
        and (sep.minor_id = indexes.index_id) and (sep.name = N'MS_Description')
where indexes.type in (1, 2, 3, 5, 6, 7) and indexes.is_hypothetical = cast(0 as bit)
    and (xml_indexes.xml_index_type is null or xml_indexes.xml_index_type in (0, 1))
order by [schema], [object_name], [index_id], [index_column_id]
"""

INDEXES: dict[int, str] = {
    13: _INDEXES_TEMPLATE.format(optimize_for_sequential_key="cast(0 as bit)"),
    15: _INDEXES_TEMPLATE.format(
        optimize_for_sequential_key="indexes.optimize_for_sequential_key"
    ),
    16: _INDEXES_TEMPLATE.format(
        optimize_for_sequential_key="indexes.optimize_for_sequential_key"
    ),
}

FOREIGN_KEYS = """
select
    [foreign_key] = fk.name,
    [constraint_column_id] = fkc.constraint_column_id,
    [parent_schema] = schema_name(parent.schema_id),
    [parent_name] = parent.name,
    [parent_column] = pc.name,
    [referenced_schema] = schema_name(ref.schema_id),
    [referenced_name] = ref.name,
    [referenced_column] = rc.name,
    [is_disabled] = fk.is_disabled,
    [is_not_for_replication] = fk.is_not_for_replication,
    [is_not_trusted] = fk.is_not_trusted,
    [delete_action] = fk.delete_referential_action_desc,
    [update_action] = fk.update_referential_action_desc,
    [description] = cast(sep.value as nvarchar(2048))
from sys.foreign_keys as fk
    inner join sys.foreign_key_columns as fkc on (fk.object_id = fkc.constraint_object_id)
    inner join sys.objects as parent on (fk.parent_object_id = parent.object_id)
    inner join sys.columns as pc on (fkc.parent_object_id = pc.object_id)
        and (fkc.parent_column_id = pc.column_id)
    inner join sys.objects as ref on (fk.referenced_object_id = ref.object_id)
    inner join sys.columns as rc on (fkc.referenced_object_id = rc.object_id)
        and (fkc.referenced_column_id = rc.column_id)
    left join sys.extended_properties as sep on (sep.class = 1) and (sep.major_id = fk.object_id)
        and (sep.minor_id = 0) and (sep.name = N'MS_Description')
where parent.is_ms_shipped = cast(0 as bit)
order by [parent_schema], [parent_name], [foreign_key], [constraint_column_id]
"""

_TABLES_TEMPLATE = """
select
    [schema] = schema_name(objects.schema_id),
    [name] = objects.name,
    [data_space] = table_data_spaces.name,
    [lob_data_space] = data_spaces.name,
    [lob_data_space_type] = data_spaces.type_desc,
    [is_default_data_space] = data_spaces.is_default,
    [filestream_data_space] = filegroup_name(tables.filestream_data_space_id),
    [is_tracked_by_cdc] = tables.is_tracked_by_cdc,
    [lock_escalation] = tables.lock_escalation_desc,
    [is_filetable] = tables.is_filetable,
    [durability] = tables.durability_desc,
    [is_memory_optimized] = tables.is_memory_optimized,
    [temporal_type] = tables.temporal_type_desc,
    [history_table_schema] = schema_name(history_objects.schema_id),
    [history_table_name] = history_objects.name,
    [history_retention_period] = {history_retention_period},
    [history_retention_period_unit] = {history_retention_period_unit},
    [is_node] = {is_node},
    [is_edge] = {is_edge}
from sys.tables as tables
    inner join sys.objects as objects on (tables.object_id = objects.object_id)
    left join sys.indexes as table_indexes on (tables.object_id = table_indexes.object_id)
        and (table_indexes.index_id < 2)
        left join sys.data_spaces as table_data_spaces
            on (table_indexes.data_space_id = table_data_spaces.data_space_id)
    left join sys.data_spaces as data_spaces on (tables.lob_data_space_id = data_spaces.data_space_id)
    left join sys.tables as history_tables
        inner join sys.objects as history_objects on (history_tables.object_id = history_objects.object_id)
    on (tables.history_table_id = history_tables.object_id)
where tables.is_ms_shipped = cast(0 as bit)
order by [schema], [name]
"""

TABLES: dict[int, str] = {
    13: _TABLES_TEMPLATE.format(
        history_retention_period="cast(null as int)",
        history_retention_period_unit="cast(null as nvarchar(60))",
        is_node="cast(0 as bit)",
        is_edge="cast(0 as bit)",
    ),
    14: _TABLES_TEMPLATE.format(
        history_retention_period="cast(null as int)",
        history_retention_period_unit="cast(null as nvarchar(60))",
        is_node="tables.is_node",
        is_edge="tables.is_edge",
    ),
    15: _TABLES_TEMPLATE.format(
        history_retention_period="tables.history_retention_period",
        history_retention_period_unit="tables.history_retention_period_unit_desc",
        is_node="tables.is_node",
        is_edge="tables.is_edge",
    ),
}
TABLES[16] = TABLES[15]

OBJECTS = """
select objects.[catalog], objects.[schema], objects.[name], objects.[type], objects.[definition],
    objects.[owner], objects.uses_ansi_nulls, objects.uses_quoted_identifier, objects.[description],
    objects.[parent], objects.[parent_type]
from (
    select
        [order] = 1,
        [catalog] = db_name(),
        [schema] = schemas.name,
        [name] = schemas.name,
        [type] = N'SCHEMA',
        [definition] = cast(null as nvarchar(max)),
        [owner] = user_name(schemas.principal_id),
        [uses_ansi_nulls] = cast(null as bit),
        [uses_quoted_identifier] = cast(null as bit),
        [description] = cast(sep.value as nvarchar(2048)),
        [parent] = cast(null as sysname),
        [parent_type] = cast(null as nvarchar(60))
    from sys.schemas as schemas
        left join sys.extended_properties as sep on (sep.class = 3) and (sep.major_id = schemas.schema_id)
            and (sep.minor_id = 0) and (sep.name = N'MS_Description')
    where schemas.schema_id < 16384 and schemas.name not in (N'sys', N'INFORMATION_SCHEMA', N'guest')

    union all

    select
        [order] = 2,
        [catalog] = db_name(),
        [schema] = schema_name(types.schema_id),
        [name] = types.name,
        [type] = iif(types.is_table_type = cast(1 as bit), N'TABLE TYPE', N'DATA TYPE'),
        [definition] = cast(null as nvarchar(max)),
        [owner] = user_name(types.principal_id),
        [uses_ansi_nulls] = cast(null as bit),
        [uses_quoted_identifier] = cast(null as bit),
        [description] = cast(sep.value as nvarchar(2048)),
        [parent] = cast(null as sysname),
        [parent_type] = cast(null as nvarchar(60))
    from sys.types as types
        left join sys.extended_properties as sep on (sep.class = 6) and (sep.major_id = types.user_type_id)
            and (sep.minor_id = 0) and (sep.name = N'MS_Description')
    where types.is_user_defined != cast(0 as bit) and types.is_assembly_type = cast(0 as bit)

    union all

    select
        [order] = case objects.type
            when 'U' then 3
            when 'V' then 4
            when 'TR' then 5
            when 'P' then 7
            else 6
        end,
        [catalog] = db_name(),
        [schema] = schema_name(objects.schema_id),
        [name] = objects.name,
        [type] = case objects.type
            when 'U' then N'BASE TABLE'
            when 'V' then N'VIEW'
            when 'TR' then N'TRIGGER'
            when 'P' then N'PROCEDURE'
            else N'FUNCTION'
        end,
        [definition] = modules.definition,
        [owner] = user_name(isnull(objects.principal_id, schemas.principal_id)),
        [uses_ansi_nulls] = modules.uses_ansi_nulls,
        [uses_quoted_identifier] = modules.uses_quoted_identifier,
        [description] = cast(sep.value as nvarchar(2048)),
        [parent] = iif(objects.type = 'TR', object_name(objects.parent_object_id), null),
        [parent_type] = iif(objects.type = 'TR', parents.type_desc, null)
    from sys.objects as objects
        inner join sys.schemas as schemas on (objects.schema_id = schemas.schema_id)
        left join sys.sql_modules as modules on (objects.object_id = modules.object_id)
        left join sys.objects as parents on (objects.parent_object_id = parents.object_id)
        left join sys.extended_properties as sep on (sep.class = 1) and (sep.major_id = objects.object_id)
            and (sep.minor_id = 0) and (sep.name = N'MS_Description')
    where objects.type in ('U', 'V', 'TR', 'P', 'FN', 'IF', 'TF')
        and objects.is_ms_shipped = cast(0 as bit)
) as objects
order by objects.[order], objects.[type], objects.[schema], objects.[name]
"""
