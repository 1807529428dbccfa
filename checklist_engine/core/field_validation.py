from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from pydantic import BaseModel

from checklist_engine.core.field_types import (
    FieldType,
    field_type_label,
    needs_options,
    parse_field_type,
    supports_range,
)
from checklist_engine.schemas.validation import Severity, ValidationIssue

NAME_WARNING_LENGTH = 200


def normalize_options(options: Any) -> list[str]:
    """
    Options arrive either as a list or as raw text:
      ["A", "B"]        -> ["A", "B"]
      '["A", "B"]'      -> ["A", "B"]   (JSON array text)
      "Conforme"        -> ["Conforme"] (freeform text is a single option)
      "" / None         -> []
    """
    if options is None:
        return []

    if isinstance(options, str):
        text = options.strip()
        if not text:
            return []
        try:
            parsed = json.loads(text)
        except ValueError:
            return [text]
        if isinstance(parsed, list):
            return ["" if o is None else str(o) for o in parsed]
        return [text]

    if isinstance(options, (list, tuple)):
        return ["" if o is None else str(o) for o in options]

    return []


def _has_valid_option(options: list[str]) -> bool:
    return any(o.strip() for o in options)


def _as_mapping(field: Any) -> Mapping[str, Any]:
    if isinstance(field, BaseModel):
        return field.model_dump()
    if isinstance(field, Mapping):
        return field
    return {}


def _validate_one(index: int, field: Any, max_name_length: int) -> list[ValidationIssue]:
    issues: list[ValidationIssue] = []
    n = index + 1
    data = _as_mapping(field)

    name = data.get("name")
    name = name if isinstance(name, str) else ""
    blank_name = name.strip() == ""

    raw_type = data.get("type")
    ftype = raw_type if isinstance(raw_type, FieldType) else parse_field_type(str(raw_type or ""))

    # 1. missing name
    if blank_name:
        issues.append(
            ValidationIssue(
                severity=Severity.ERROR,
                field_index=index,
                code="missing_name",
                message=f"Field {n}: name is required.",
                suggestion="Add a descriptive name for this field.",
            )
        )

    # 2. missing options (unknown types are reported in the same slot)
    options = normalize_options(data.get("options"))
    if ftype is None:
        issues.append(
            ValidationIssue(
                severity=Severity.ERROR,
                field_index=index,
                code="unknown_type",
                message=f"Field {n}: unknown field type {raw_type!r}.",
                suggestion="Pick one of the types listed by the field type catalog.",
            )
        )
    elif needs_options(ftype) and not _has_valid_option(options):
        issues.append(
            ValidationIssue(
                severity=Severity.ERROR,
                field_index=index,
                code="missing_options",
                message=f"Field {n}: type requires options.",
                suggestion=f'Add at least one valid option for "{field_type_label(ftype)}".',
            )
        )

    # 3. overlong name
    if len(name) > max_name_length:
        issues.append(
            ValidationIssue(
                severity=Severity.WARNING,
                field_index=index,
                code="name_too_long",
                message=f"Field {n}: name is too long ({len(name)} characters).",
                suggestion="Consider a more concise name.",
            )
        )

    # 4. required without name
    if data.get("required") is True and blank_name:
        issues.append(
            ValidationIssue(
                severity=Severity.INFO,
                field_index=index,
                code="required_without_name",
                message=f"Field {n}: marked as required.",
                suggestion="Required fields must be answered by inspectors.",
            )
        )

    # 5. blank entries next to valid options
    if ftype is not None and needs_options(ftype) and _has_valid_option(options):
        blanks = sum(1 for o in options if not o.strip())
        if blanks:
            issues.append(
                ValidationIssue(
                    severity=Severity.WARNING,
                    field_index=index,
                    code="blank_options",
                    message=f"Field {n}: {blanks} blank option(s) will be shown as empty choices.",
                    suggestion="Remove empty options.",
                )
            )

    # 6. range bounds
    mn, mx = data.get("min"), data.get("max")
    if ftype is not None and supports_range(ftype):
        if isinstance(mn, (int, float)) and isinstance(mx, (int, float)) and mn > mx:
            issues.append(
                ValidationIssue(
                    severity=Severity.ERROR,
                    field_index=index,
                    code="invalid_range",
                    message=f"Field {n}: min ({mn}) is greater than max ({mx}).",
                    suggestion="Swap or correct the bounds.",
                )
            )
    elif ftype is not None and (mn is not None or mx is not None):
        issues.append(
            ValidationIssue(
                severity=Severity.WARNING,
                field_index=index,
                code="range_ignored",
                message=f"Field {n}: min/max only apply to number and rating fields and will be ignored.",
            )
        )

    return issues


def validate_fields(
    fields: Sequence[Any],
    *,
    max_name_length: int = NAME_WARNING_LENGTH,
) -> tuple[ValidationIssue, ...]:
    """
    Check every field definition; never raises.

    Issues come out grouped per field, in field order, and within a field in
    rule order (name, options, name length, required, blank options, range).
    """
    out: list[ValidationIssue] = []
    for index, field in enumerate(fields or ()):
        out.extend(_validate_one(index, field, max_name_length))
    return tuple(out)


def has_errors(issues: Sequence[ValidationIssue]) -> bool:
    return any(i.severity == Severity.ERROR for i in issues)


def count_by_severity(issues: Sequence[ValidationIssue]) -> dict[str, int]:
    counts = {s.value: 0 for s in Severity}
    for i in issues:
        counts[i.severity.value] += 1
    return counts
