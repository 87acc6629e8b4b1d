"""Tests for core type definitions."""

from dbmill.types import (
    ObjectKind,
    OwnerKind,
    PermissionState,
    kind_from_catalog_type,
    kind_from_name,
    qualified_name,
    quote_name,
)


class TestObjectKind:
    """Test ObjectKind enum."""

    def test_enumeration_order(self):
        assert list(ObjectKind) == [
            ObjectKind.SCHEMA,
            ObjectKind.DATA_TYPE,
            ObjectKind.TABLE_TYPE,
            ObjectKind.TABLE,
            ObjectKind.VIEW,
            ObjectKind.TRIGGER,
            ObjectKind.FUNCTION,
            ObjectKind.PROCEDURE,
        ]

    def test_module_kinds(self):
        modules = {kind for kind in ObjectKind if kind.is_module}
        assert modules == {
            ObjectKind.VIEW,
            ObjectKind.TRIGGER,
            ObjectKind.FUNCTION,
            ObjectKind.PROCEDURE,
        }

    def test_owner_kinds_are_distinct(self):
        assert len({k.value for k in OwnerKind}) == 4

    def test_permission_states_in_rendering_order(self):
        assert [s.value for s in PermissionState] == [
            "GRANT",
            "GRANT_WITH_GRANT_OPTION",
            "DENY",
            "REVOKE",
        ]


class TestKindMappings:
    """Test catalog type strings and layout names map to kinds."""

    def test_catalog_types(self):
        assert kind_from_catalog_type("SCHEMA") is ObjectKind.SCHEMA
        assert kind_from_catalog_type("DATA TYPE") is ObjectKind.DATA_TYPE
        assert kind_from_catalog_type("TABLE TYPE") is ObjectKind.TABLE_TYPE
        assert kind_from_catalog_type("BASE TABLE") is ObjectKind.TABLE
        assert kind_from_catalog_type("view") is ObjectKind.VIEW
        assert kind_from_catalog_type(" PROCEDURE ") is ObjectKind.PROCEDURE

    def test_unknown_catalog_type(self):
        assert kind_from_catalog_type("SYNONYM") is None

    def test_layout_names_are_case_insensitive(self):
        assert kind_from_name("tableType") is ObjectKind.TABLE_TYPE
        assert kind_from_name("TABLETYPE") is ObjectKind.TABLE_TYPE
        assert kind_from_name("procedure") is ObjectKind.PROCEDURE

    def test_domain_is_an_alias_for_data_type(self):
        assert kind_from_name("domain") is ObjectKind.DATA_TYPE

    def test_unknown_layout_name(self):
        assert kind_from_name("staticData") is None


class TestQuoting:
    """Test identifier quoting."""

    def test_quote_name(self):
        assert quote_name("Orders") == "[Orders]"

    def test_quote_name_doubles_closing_bracket(self):
        assert quote_name("odd]name") == "[odd]]name]"

    def test_qualified_name(self):
        assert qualified_name("dbo", "Orders") == "[dbo].[Orders]"

    def test_qualified_name_without_schema(self):
        assert qualified_name(None, "Sales") == "[Sales]"
        assert qualified_name("", "Sales") == "[Sales]"
