"""Field definition to ResolvedField mapping."""

from datetime import datetime, timezone

import pytest

from schema2crud.services.field_types import FieldKind, resolve_field, resolve_fields


@pytest.mark.parametrize("token,kind", [
    ("String", FieldKind.STRING),
    ("number", FieldKind.NUMBER),
    ("BOOLEAN", FieldKind.BOOLEAN),
    ("Date", FieldKind.DATE),
    ("Array", FieldKind.ARRAY),
    ("Object", FieldKind.OBJECT),
    ("Mixed", FieldKind.MIXED),
    ("ObjectId", FieldKind.OBJECT_ID),
])
def test_known_tokens(token, kind):
    field = resolve_field("f", {"type": token})

    assert field.kind is kind
    assert field.fallback is False


def test_unknown_token_falls_back_to_string():
    field = resolve_field("f", {"type": "Decimal128"})

    assert field.kind is FieldKind.STRING
    assert field.fallback is True
    assert field.declared_type == "Decimal128"


def test_shorthand_forms():
    assert resolve_field("f", "Number").kind is FieldKind.NUMBER
    assert resolve_field("f", ["String"]).kind is FieldKind.ARRAY
    assert resolve_field("f", {}).kind is FieldKind.STRING


def test_constraints_pass_through():
    field = resolve_field("email", {
        "type": "String", "required": True, "unique": True, "trim": True,
        "lowercase": True, "index": True, "sparse": True, "enum": ["a", "b"],
    })

    assert field.required and field.unique and field.trim and field.lowercase
    assert field.index and field.sparse
    assert field.enum == ("a", "b")


def test_enum_object_form():
    assert resolve_field("f", {"type": "String", "enum": {"values": ["x"]}}).enum == ("x",)


def test_date_now_is_evaluated_per_call():
    field = resolve_field("at", {"type": "Date", "default": "Date.now"})

    first = field.default_value()
    second = field.default_value()

    assert isinstance(first, datetime)
    assert first.tzinfo is not None
    assert second >= first


def test_date_now_on_number_is_epoch_millis():
    value = resolve_field("at", {"type": "Number", "default": "Date.now"}).default_value()

    assert isinstance(value, int)
    assert value > 1_600_000_000_000


@pytest.mark.parametrize("raw,expected", [("true", True), ("false", False)])
def test_boolean_string_defaults(raw, expected):
    assert resolve_field("f", {"type": "Boolean", "default": raw}).default_value() is expected


def test_literal_defaults_are_copied():
    field = resolve_field("tags", {"type": "Array", "default": ["a"]})

    value = field.default_value()
    value.append("b")

    assert field.default_value() == ["a"]


def test_no_default():
    assert resolve_field("f", "String").has_default is False


def test_date_bounds_are_parsed():
    field = resolve_field("at", {"type": "Date", "min": "2020-01-01T00:00:00Z"})
    assert field.minimum == datetime(2020, 1, 1, tzinfo=timezone.utc)


def test_non_numeric_bound_is_ignored():
    assert resolve_field("n", {"type": "Number", "max": "lots"}).maximum is None


def test_resolve_fields_keeps_declaration_order():
    fields = resolve_fields({"b": "String", "a": "Number"})
    assert list(fields) == ["b", "a"]
