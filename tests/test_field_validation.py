import pytest

from checklist_engine.core.field_types import FieldType, needs_options, supports_range
from checklist_engine.core.field_validation import (
    count_by_severity,
    has_errors,
    normalize_options,
    validate_fields,
)
from checklist_engine.schemas.validation import Severity
from tests.helpers import make_field, valid_fields

OPTION_TYPES = [FieldType.SELECT, FieldType.MULTISELECT, FieldType.RADIO]
PLAIN_TYPES = [t for t in FieldType if t not in OPTION_TYPES]


def _codes(issues):
    return [i.code for i in issues]


def test_blank_select_yields_name_then_options_error():
    """{name:"", type:"select", options:[]} gives exactly two errors, in order"""
    issues = validate_fields([{"name": "", "type": "select", "options": []}])

    assert _codes(issues) == ["missing_name", "missing_options"]
    assert all(i.severity == Severity.ERROR for i in issues)
    assert issues[0].message == "Field 1: name is required."
    assert issues[1].message == "Field 1: type requires options."
    assert all(i.field_index == 0 for i in issues)


def test_valid_fields_have_no_issues():
    assert validate_fields(valid_fields()) == ()


def test_empty_field_list():
    assert validate_fields([]) == ()


@pytest.mark.parametrize("field_type", OPTION_TYPES)
def test_option_types_without_options_get_one_error(field_type):
    """Other fields in the list don't change the count for this one"""
    fields = [make_field("Ok", FieldType.TEXT), make_field("Escolha", field_type, order_index=1)]
    issues = validate_fields(fields)

    errors = [i for i in issues if i.severity == Severity.ERROR]
    assert len(errors) == 1
    assert errors[0].field_index == 1
    assert errors[0].code == "missing_options"


@pytest.mark.parametrize("field_type", PLAIN_TYPES)
def test_plain_types_never_flagged_for_options(field_type):
    fields = [make_field("", FieldType.SELECT), make_field("Campo", field_type, order_index=1)]
    issues = validate_fields(fields)

    assert [i for i in issues if i.field_index == 1] == []


@pytest.mark.parametrize(
    "options",
    [
        ["Conforme"],
        '["Conforme", "Não Conforme"]',
        "Conforme",  # freeform text is a single option
        "  Bom  ",
    ],
)
def test_options_accept_list_or_raw_text(options):
    assert validate_fields([make_field("Estado", FieldType.RADIO, options=options)]) == ()


@pytest.mark.parametrize("options", [[], [""], ["  ", ""], "", "   ", "[]", '["", " "]'])
def test_options_without_a_non_blank_entry(options):
    issues = validate_fields([make_field("Estado", FieldType.SELECT, options=options)])
    assert _codes(issues) == ["missing_options"]


def test_blank_entries_next_to_valid_options_warn():
    issues = validate_fields([make_field("Estado", FieldType.SELECT, options=["Bom", "", "Ruim"])])
    assert _codes(issues) == ["blank_options"]
    assert issues[0].severity == Severity.WARNING
    assert not has_errors(issues)


def test_long_name_is_a_warning():
    ok = validate_fields([make_field("x" * 200)])
    long_name = validate_fields([make_field("x" * 201)])

    assert ok == ()
    assert _codes(long_name) == ["name_too_long"]
    assert long_name[0].severity == Severity.WARNING


def test_name_limit_is_configurable():
    issues = validate_fields([make_field("Capacete")], max_name_length=5)
    assert _codes(issues) == ["name_too_long"]


def test_required_without_name_adds_info_note():
    issues = validate_fields([make_field("  ", FieldType.TEXT, required=True)])

    assert _codes(issues) == ["missing_name", "required_without_name"]
    assert [i.severity for i in issues] == [Severity.ERROR, Severity.INFO]
    assert issues[1].message == "Field 1: marked as required."


def test_unknown_type_from_raw_mapping():
    issues = validate_fields([{"name": "Deslizante", "type": "slider"}])
    assert _codes(issues) == ["unknown_type"]
    assert has_errors(issues)


def test_number_range():
    bad = validate_fields([make_field("Temperatura", FieldType.NUMBER, min=10, max=5)])
    good = validate_fields([make_field("Temperatura", FieldType.NUMBER, min=0, max=100)])

    assert _codes(bad) == ["invalid_range"]
    assert bad[0].severity == Severity.ERROR
    assert good == ()


def test_rating_range():
    """Rating accepts a scale and rejects an inverted one"""
    good = validate_fields([make_field("Nota", FieldType.RATING, min=1, max=5)])
    bad = validate_fields([make_field("Nota", FieldType.RATING, min=5, max=1)])

    assert good == ()
    assert _codes(bad) == ["invalid_range"]


@pytest.mark.parametrize("field_type", list(FieldType))
def test_range_rule_follows_supports_range(field_type):
    options = ["A", "B"] if needs_options(field_type) else []
    issues = validate_fields([make_field("Campo", field_type, options=options, min=5, max=1)])

    expected = "invalid_range" if supports_range(field_type) else "range_ignored"
    assert expected in _codes(issues)


def test_range_on_non_number_is_ignored_with_warning():
    issues = validate_fields([make_field("Observações", FieldType.TEXTAREA, max=10)])
    assert _codes(issues) == ["range_ignored"]
    assert issues[0].severity == Severity.WARNING


def test_issues_grouped_by_field_in_order():
    fields = [
        make_field("", FieldType.TEXT),
        make_field("Ok", FieldType.DATE, order_index=1),
        make_field("", FieldType.RADIO, order_index=2),
    ]
    issues = validate_fields(fields)

    assert [(i.field_index, i.code) for i in issues] == [
        (0, "missing_name"),
        (2, "missing_name"),
        (2, "missing_options"),
    ]
    assert issues[1].message.startswith("Field 3:")


def test_normalize_options():
    assert normalize_options(None) == []
    assert normalize_options(["A", "B"]) == ["A", "B"]
    assert normalize_options('["A", "B"]') == ["A", "B"]
    assert normalize_options("Conforme") == ["Conforme"]
    assert normalize_options("123") == ["123"]  # JSON scalar stays freeform text
    assert normalize_options("[broken") == ["[broken"]
    assert normalize_options("  ") == []


def test_count_by_severity():
    issues = validate_fields(
        [
            make_field("", FieldType.SELECT, required=True),
            make_field("x" * 300, FieldType.TEXT, order_index=1),
        ]
    )
    assert count_by_severity(issues) == {"error": 2, "warning": 1, "info": 1}
