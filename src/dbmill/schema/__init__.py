"""Catalog metadata, enumeration and definition rendering."""

from dbmill.schema.catalog import CatalogReader, load_metadata_graph
from dbmill.schema.enumerator import ObjectEnumerator
from dbmill.schema.models import (
    Column,
    DatabaseObject,
    ForeignKey,
    Index,
    MetadataGraph,
    Module,
    Table,
    UserDefinedType,
)
from dbmill.schema.renderers import DefinitionRenderer, RenderOptions

__all__ = [
    "CatalogReader",
    "Column",
    "DatabaseObject",
    "DefinitionRenderer",
    "ForeignKey",
    "Index",
    "MetadataGraph",
    "Module",
    "ObjectEnumerator",
    "RenderOptions",
    "Table",
    "UserDefinedType",
    "load_metadata_graph",
]
