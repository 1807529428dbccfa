from enum import Enum

from pydantic import BaseModel, ConfigDict


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"
    INFO = "info"


class ValidationIssue(BaseModel):
    """Diagnostic about one field of a template. Never fatal to saving."""
    model_config = ConfigDict(frozen=True)

    severity: Severity
    field_index: int  # 0-based position in the submitted field list
    code: str  # missing_name, missing_options, name_too_long, ...
    message: str
    suggestion: str | None = None


class DecodeIssue(BaseModel):
    """Problem found while reading CSV text."""
    model_config = ConfigDict(frozen=True)

    severity: Severity
    row: int  # 1-based CSV line number, header is line 1
    code: str
    message: str
    structural: bool = False  # True: nothing was importable


class ValidationPreviewResponse(BaseModel):
    """Response from the validate-without-saving endpoint"""
    valid: bool  # no issues at all
    can_activate: bool  # no error-severity issues
    issues: list[ValidationIssue]
