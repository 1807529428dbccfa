import pytest

from checklist_engine.core.field_types import (
    RATING_MAX,
    RATING_MIN,
    FieldType,
    ValueKind,
    default_value_shape,
    field_type_catalog,
    field_type_label,
    needs_options,
    option_types,
    parse_field_type,
    supports_range,
)

OPTION_TYPES = {FieldType.SELECT, FieldType.MULTISELECT, FieldType.RADIO}


def test_closed_set_of_fifteen_types():
    """All field types have a label and a value shape"""
    assert len(FieldType) == 15
    for t in FieldType:
        assert field_type_label(t)
        assert default_value_shape(t) is not None


@pytest.mark.parametrize("field_type", list(FieldType))
def test_needs_options_only_for_choice_types(field_type):
    """select, multiselect and radio are the only types carrying options"""
    assert needs_options(field_type) is (field_type in OPTION_TYPES)


def test_option_types_in_enum_order():
    assert option_types() == (FieldType.SELECT, FieldType.MULTISELECT, FieldType.RADIO)


def test_parse_field_type_is_case_sensitive():
    assert parse_field_type("select") is FieldType.SELECT
    assert parse_field_type("datetime") is FieldType.DATETIME
    assert parse_field_type("Select") is None
    assert parse_field_type("slider") is None
    assert parse_field_type("") is None


def test_rating_shape_is_bounded_integer():
    shape = default_value_shape(FieldType.RATING)
    assert shape.kind is ValueKind.INTEGER
    assert (shape.minimum, shape.maximum) == (RATING_MIN, RATING_MAX) == (1, 5)


def test_multi_value_shapes():
    assert default_value_shape(FieldType.MULTISELECT).multiple is True
    assert default_value_shape(FieldType.FILE).multiple is True
    assert default_value_shape(FieldType.SELECT).multiple is False


def test_supports_range():
    assert supports_range(FieldType.NUMBER)
    assert supports_range(FieldType.RATING)
    assert not supports_range(FieldType.TEXT)
    assert not supports_range(FieldType.SELECT)


def test_registry_accepts_raw_string_keys():
    """FieldType is a str enum, so stored string values work as lookups"""
    assert needs_options("radio") is True
    assert field_type_label("boolean") == "Sim/Não"


def test_catalog_lists_every_type_with_metadata():
    catalog = field_type_catalog()
    assert [c["type"] for c in catalog] == [t.value for t in FieldType]

    select = next(c for c in catalog if c["type"] == "select")
    assert select["label"] == "Lista Suspensa"
    assert select["needs_options"] is True
    assert select["value_shape"]["kind"] == "option"

    rating = next(c for c in catalog if c["type"] == "rating")
    assert rating["value_shape"]["minimum"] == 1
    assert rating["value_shape"]["maximum"] == 5
