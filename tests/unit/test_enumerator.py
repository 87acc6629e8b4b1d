"""Tests for the object enumerator."""

from unittest.mock import MagicMock

import pytest

from dbmill.exceptions import EnumerationError
from dbmill.schema.enumerator import ObjectEnumerator, object_from_row
from dbmill.schema.models import DatabaseObject, Module
from dbmill.types import ObjectKind
from tests.helpers import FakeRow, make_mock_client, object_row


class TestObjectFromRow:
    """Test object_from_row() mapping."""

    def test_table_row(self):
        obj = object_from_row(FakeRow(object_row("BASE TABLE", "dbo", "Orders")))
        assert type(obj) is DatabaseObject
        assert obj.kind is ObjectKind.TABLE
        assert obj.qualified_name == "[dbo].[Orders]"

    def test_module_row_carries_set_options(self):
        row = object_row(
            "TRIGGER",
            "dbo",
            "trOrders",
            definition="CREATE TRIGGER trOrders ON dbo.Orders AFTER INSERT AS SELECT 1",
            uses_ansi_nulls=1,
            uses_quoted_identifier=0,
            parent="Orders",
            parent_type="USER_TABLE",
        )
        obj = object_from_row(FakeRow(row))
        assert isinstance(obj, Module)
        assert obj.kind is ObjectKind.TRIGGER
        assert obj.uses_ansi_nulls is True
        assert obj.uses_quoted_identifier is False
        assert obj.parent == "Orders"
        assert obj.parent_type == "USER_TABLE"

    def test_unknown_type_is_skipped(self, caplog):
        assert object_from_row(FakeRow(object_row("SYNONYM", "dbo", "syn"))) is None
        assert "unknown object type 'SYNONYM'" in caplog.text


class TestObjectEnumerator:
    """Test ObjectEnumerator streaming."""

    def test_streams_in_query_order(self):
        client = make_mock_client(
            objects=[
                object_row("SCHEMA", "sales", "sales"),
                object_row("SYNONYM", "dbo", "syn"),
                object_row("BASE TABLE", "sales", "Orders"),
                object_row("PROCEDURE", "sales", "GetOrders", definition="CREATE PROCEDURE x AS SELECT 1"),
            ]
        )
        objects = list(ObjectEnumerator(client))
        assert [(o.kind, o.name) for o in objects] == [
            (ObjectKind.SCHEMA, "sales"),
            (ObjectKind.TABLE, "Orders"),
            (ObjectKind.PROCEDURE, "GetOrders"),
        ]

    def test_stream_is_lazy(self):
        client = MagicMock()
        client.iterate.return_value = iter([FakeRow(object_row("VIEW", "dbo", "v"))])
        stream = ObjectEnumerator(client).stream()
        client.iterate.assert_not_called()
        assert next(stream).name == "v"

    def test_query_failure_raises_enumeration_error(self):
        client = MagicMock()
        client.iterate.side_effect = RuntimeError("connection reset")
        with pytest.raises(EnumerationError, match="connection reset"):
            list(ObjectEnumerator(client))

    def test_failure_mid_stream(self):
        def rows(sql):
            yield FakeRow(object_row("VIEW", "dbo", "v1"))
            raise OSError("network down")

        client = MagicMock()
        client.iterate.side_effect = rows
        stream = ObjectEnumerator(client).stream()
        assert next(stream).name == "v1"
        with pytest.raises(EnumerationError, match="network down"):
            next(stream)
