"""
Typed errors raised by the template engine.

Validation problems are never raised: they come back as ValidationIssue data.
Everything here is a structural or lookup failure that the caller must
surface with its specific reason.
"""

from typing import Any


class TemplateEngineError(Exception):
    """Base error. `code` is stable and machine-readable."""

    code = "TEMPLATE_ENGINE_ERROR"

    def __init__(self, message: str, **context: Any) -> None:
        self.message = message
        self.context = context
        super().__init__(f"[{self.code}] {message}")

    def to_dict(self) -> dict[str, Any]:
        return {"code": self.code, "message": self.message, **self.context}


class NotFound(TemplateEngineError):
    code = "NOT_FOUND"


class CycleDetected(TemplateEngineError):
    code = "CYCLE_DETECTED"


class NotAFolder(TemplateEngineError):
    code = "NOT_A_FOLDER"


class FolderNotEmpty(TemplateEngineError):
    code = "FOLDER_NOT_EMPTY"


class StaleVersion(TemplateEngineError):
    code = "STALE_VERSION"


class StructuralDecodeFailure(TemplateEngineError):
    """Nothing in the CSV was importable (mandatory columns missing)."""

    code = "CSV_STRUCTURE_INVALID"

    def __init__(self, message: str, issues=(), **context: Any) -> None:
        self.issues = tuple(issues)
        super().__init__(message, **context)

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["issues"] = [i.model_dump(mode="json") for i in self.issues]
        return out


class ActivationBlocked(TemplateEngineError):
    """Template has error-severity issues and cannot be activated."""

    code = "ACTIVATION_BLOCKED"

    def __init__(self, message: str, issues=(), **context: Any) -> None:
        self.issues = tuple(issues)
        super().__init__(message, **context)

    def to_dict(self) -> dict[str, Any]:
        out = super().to_dict()
        out["issues"] = [i.model_dump(mode="json") for i in self.issues]
        return out


class GeneratorUnavailable(TemplateEngineError):
    code = "GENERATOR_UNAVAILABLE"


class RepositoryError(TemplateEngineError):
    """Storage failure at the repository boundary. Not retried by the engine."""

    code = "REPOSITORY_ERROR"


class IOTimeout(RepositoryError):
    code = "IO_TIMEOUT"
