"""
Field type registry: the closed set of field types and what each one means.

Adding a type means adding an enum member and its row in _TYPE_SPECS; the
import-time check below fails loudly if the table falls out of sync.
"""

from dataclasses import dataclass
from enum import Enum


class FieldType(str, Enum):
    TEXT = "text"
    TEXTAREA = "textarea"
    SELECT = "select"
    MULTISELECT = "multiselect"
    RADIO = "radio"
    CHECKBOX = "checkbox"
    BOOLEAN = "boolean"
    NUMBER = "number"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    RATING = "rating"
    FILE = "file"
    SIGNATURE = "signature"
    LOCATION = "location"


class ValueKind(str, Enum):
    STRING = "string"
    OPTION = "option"
    OPTION_SET = "option_set"
    BOOLEAN = "boolean"
    NUMBER = "number"
    INTEGER = "integer"
    DATE = "date"
    TIME = "time"
    DATETIME = "datetime"
    FILE_REFERENCE = "file_reference"
    SIGNATURE = "signature"
    COORDINATES = "coordinates"


@dataclass(frozen=True)
class ValueShape:
    """Expected runtime value of an answered field."""

    kind: ValueKind
    description: str
    multiple: bool = False
    minimum: int | None = None
    maximum: int | None = None


@dataclass(frozen=True)
class FieldTypeSpec:
    label: str
    needs_options: bool
    supports_range: bool
    value_shape: ValueShape


RATING_MIN = 1
RATING_MAX = 5

_TYPE_SPECS: dict[FieldType, FieldTypeSpec] = {
    FieldType.TEXT: FieldTypeSpec(
        "Texto Curto", False, False, ValueShape(ValueKind.STRING, "single line of text")
    ),
    FieldType.TEXTAREA: FieldTypeSpec(
        "Texto Longo", False, False, ValueShape(ValueKind.STRING, "multi-line text")
    ),
    FieldType.SELECT: FieldTypeSpec(
        "Lista Suspensa", True, False, ValueShape(ValueKind.OPTION, "one of the field options")
    ),
    FieldType.MULTISELECT: FieldTypeSpec(
        "Múltipla Escolha",
        True,
        False,
        ValueShape(ValueKind.OPTION_SET, "set of selected option strings", multiple=True),
    ),
    FieldType.RADIO: FieldTypeSpec(
        "Escolha Única", True, False, ValueShape(ValueKind.OPTION, "one of the field options")
    ),
    FieldType.CHECKBOX: FieldTypeSpec(
        "Caixa de Seleção", False, False, ValueShape(ValueKind.BOOLEAN, "checked / unchecked")
    ),
    FieldType.BOOLEAN: FieldTypeSpec(
        "Sim/Não", False, False, ValueShape(ValueKind.BOOLEAN, "single true/false")
    ),
    FieldType.NUMBER: FieldTypeSpec(
        "Número", False, True, ValueShape(ValueKind.NUMBER, "number, optionally bounded by min/max")
    ),
    FieldType.DATE: FieldTypeSpec(
        "Data", False, False, ValueShape(ValueKind.DATE, "ISO date YYYY-MM-DD")
    ),
    FieldType.TIME: FieldTypeSpec(
        "Hora", False, False, ValueShape(ValueKind.TIME, "time of day HH:MM")
    ),
    FieldType.DATETIME: FieldTypeSpec(
        "Data e Hora", False, False, ValueShape(ValueKind.DATETIME, "ISO timestamp")
    ),
    FieldType.RATING: FieldTypeSpec(
        "Avaliação (1-5)",
        False,
        True,
        ValueShape(ValueKind.INTEGER, "integer 1-5", minimum=RATING_MIN, maximum=RATING_MAX),
    ),
    FieldType.FILE: FieldTypeSpec(
        "Upload de Arquivo",
        False,
        False,
        ValueShape(ValueKind.FILE_REFERENCE, "references to uploaded files", multiple=True),
    ),
    FieldType.SIGNATURE: FieldTypeSpec(
        "Assinatura Digital", False, False, ValueShape(ValueKind.SIGNATURE, "signature image data")
    ),
    FieldType.LOCATION: FieldTypeSpec(
        "Localização GPS", False, False, ValueShape(ValueKind.COORDINATES, "latitude/longitude pair")
    ),
}

_missing = set(FieldType) - set(_TYPE_SPECS)
if _missing:
    raise RuntimeError(f"field types without a registry entry: {sorted(t.value for t in _missing)}")


def needs_options(field_type: FieldType) -> bool:
    return _TYPE_SPECS[FieldType(field_type)].needs_options


def supports_range(field_type: FieldType) -> bool:
    return _TYPE_SPECS[FieldType(field_type)].supports_range


def default_value_shape(field_type: FieldType) -> ValueShape:
    return _TYPE_SPECS[FieldType(field_type)].value_shape


def field_type_label(field_type: FieldType) -> str:
    return _TYPE_SPECS[FieldType(field_type)].label


def option_types() -> tuple[FieldType, ...]:
    return tuple(t for t in FieldType if _TYPE_SPECS[t].needs_options)


def parse_field_type(raw: str) -> FieldType | None:
    """Case-sensitive lookup by string key. None if unknown."""
    try:
        return FieldType(raw)
    except ValueError:
        return None


def field_type_catalog() -> list[dict]:
    """
    Authoritative list for field-type pickers, in enum order:
      [{"type": "text", "label": "Texto Curto", "needs_options": False, ...}]
    """
    out = []
    for t in FieldType:
        spec = _TYPE_SPECS[t]
        shape = spec.value_shape
        out.append(
            {
                "type": t.value,
                "label": spec.label,
                "needs_options": spec.needs_options,
                "supports_range": spec.supports_range,
                "value_shape": {
                    "kind": shape.kind.value,
                    "description": shape.description,
                    "multiple": shape.multiple,
                    "minimum": shape.minimum,
                    "maximum": shape.maximum,
                },
            }
        )
    return out
