"""
Template lifecycle: create, update, duplicate, import/export, activation.

Every entry path (manual fields, CSV import, duplication) goes through the
same validate-then-persist step. Validation problems never block saving;
they block activation only.
"""

from __future__ import annotations

import logging
import re
import uuid
from collections.abc import Callable, Sequence
from datetime import datetime

from checklist_engine.core.config import settings
from checklist_engine.core.csv_codec import HEADER, decode_fields, encode_fields, encode_template_list
from checklist_engine.core.errors import (
    ActivationBlocked,
    GeneratorUnavailable,
    IOTimeout,
    NotFound,
    StaleVersion,
    StructuralDecodeFailure,
)
from checklist_engine.core.field_types import FieldType, option_types
from checklist_engine.core.field_validation import count_by_severity, has_errors, validate_fields
from checklist_engine.core.template_tree import TemplateTree
from checklist_engine.db.repository import NodeFilter, TemplateRepository
from checklist_engine.schemas.templates import (
    NAME_MAX_LENGTH,
    FieldDefinition,
    FolderCreate,
    FolderUpdate,
    ImportResult,
    Template,
    TemplateDraft,
    TemplateResult,
)
from checklist_engine.schemas.validation import ValidationIssue

logger = logging.getLogger(__name__)

# prompt -> raw text; the engine never talks to a model directly
CsvGenerator = Callable[[str], str]

_FENCE = re.compile(r"```(?:csv)?[ \t]*\n?", re.IGNORECASE)

_CONTENT_ATTRS = ("name", "description", "category", "is_public", "tags")


def _normalize_fields(fields: Sequence[FieldDefinition]) -> list[FieldDefinition]:
    """Keep the submitted order (stable by order_index) and renumber 0..n-1."""
    ordered = sorted(fields, key=lambda f: f.order_index)
    return [f.model_copy(update={"order_index": i}) for i, f in enumerate(ordered)]


def _field_content(fields: Sequence[FieldDefinition]) -> list[dict]:
    return [f.model_dump(mode="json", exclude={"id"}) for f in fields]


def strip_markdown_fences(text: str) -> str:
    return _FENCE.sub("", text or "").strip()


class TemplateService:
    def __init__(
        self,
        repository: TemplateRepository,
        *,
        generator: CsvGenerator | None = None,
        max_name_length: int | None = None,
    ) -> None:
        self.repo = repository
        self.tree = TemplateTree(repository)
        self.generator = generator
        self.max_name_length = max_name_length or settings.MAX_FIELD_NAME_LENGTH

    # ---- helpers ----

    def _validate(self, fields: Sequence[FieldDefinition]) -> tuple[ValidationIssue, ...]:
        return validate_fields(fields, max_name_length=self.max_name_length)

    def get_template(self, template_id: str) -> Template:
        node = self.repo.get(template_id)
        if not isinstance(node, Template):
            raise NotFound("Template not found", template_id=template_id)
        return node

    def list_templates(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> list[Template]:
        return self.repo.list(
            NodeFilter(kind="template", category=category, search=search, is_active=is_active)
        )

    def preview_fields(self, fields: Sequence[FieldDefinition]) -> tuple[ValidationIssue, ...]:
        """Validate without saving anything."""
        return self._validate(fields)

    # ---- lifecycle ----

    def create_template(self, draft: TemplateDraft) -> TemplateResult:
        self.tree.ensure_parent(draft.parent_folder_id)

        fields = _normalize_fields(draft.fields)
        issues = self._validate(fields)

        template = Template(
            name=draft.name,
            description=draft.description,
            category=draft.category,
            is_public=draft.is_public,
            tags=list(draft.tags),
            parent_folder_id=draft.parent_folder_id,
            display_order=(
                draft.display_order
                if draft.display_order is not None
                else self.tree.next_display_order(draft.parent_folder_id)
            ),
            fields=fields,
            version=1,
            usage_count=0,
            is_active=False,
        )
        self.repo.save(template)

        logger.info(
            "template created",
            extra={"node_id": template.id, "issues": count_by_severity(issues)},
        )
        return TemplateResult(template=template, issues=list(issues))

    def update_template(
        self,
        template_id: str,
        draft: TemplateDraft,
        *,
        expected_version: int | None = None,
    ) -> TemplateResult:
        current = self.get_template(template_id)
        if expected_version is not None and expected_version != current.version:
            raise StaleVersion(
                "Stale version",
                template_id=template_id,
                expected=current.version,
                got=expected_version,
            )

        if draft.parent_folder_id != current.parent_folder_id:
            self.tree.ensure_parent(draft.parent_folder_id)

        fields = _normalize_fields(draft.fields)
        issues = self._validate(fields)

        content_changed = _field_content(fields) != _field_content(current.fields) or any(
            getattr(draft, a) != getattr(current, a) for a in _CONTENT_ATTRS
        )
        placement_changed = draft.parent_folder_id != current.parent_folder_id or (
            draft.display_order is not None and draft.display_order != current.display_order
        )
        if not content_changed and not placement_changed:
            return TemplateResult(template=current, issues=list(issues))

        updates: dict = {
            "parent_folder_id": draft.parent_folder_id,
            "updated_at": datetime.utcnow(),
        }
        if draft.display_order is not None:
            updates["display_order"] = draft.display_order
        if content_changed:
            updates.update(
                name=draft.name,
                description=draft.description,
                category=draft.category,
                is_public=draft.is_public,
                tags=list(draft.tags),
                fields=fields,
                version=current.version + 1,
            )
            if current.is_active and has_errors(issues):
                updates["is_active"] = False
                logger.warning(
                    "template deactivated by invalid update",
                    extra={"node_id": template_id, "issues": count_by_severity(issues)},
                )

        updated = current.model_copy(update=updates)
        self.repo.save(updated)
        logger.info("template updated", extra={"node_id": template_id})
        return TemplateResult(template=updated, issues=list(issues))

    def duplicate_template(
        self,
        template_id: str,
        *,
        keep_parent: bool = False,
        name_suffix: str | None = None,
    ) -> Template:
        source = self.get_template(template_id)
        suffix = settings.DUPLICATE_NAME_SUFFIX if name_suffix is None else name_suffix
        parent_id = source.parent_folder_id if keep_parent else None

        # keep the suffix visible: trim the source name, never the suffix
        base = source.name[: max(NAME_MAX_LENGTH - len(suffix), 0)].rstrip()
        duplicate = Template(
            name=f"{base}{suffix}"[:NAME_MAX_LENGTH],
            description=source.description,
            category=source.category,
            is_public=source.is_public,
            tags=list(source.tags),
            parent_folder_id=parent_id,
            display_order=self.tree.next_display_order(parent_id),
            fields=[f.model_copy(deep=True, update={"id": str(uuid.uuid4())}) for f in source.fields],
            version=1,
            usage_count=0,
            is_active=False,
        )
        self.repo.save(duplicate)
        logger.info("template duplicated", extra={"node_id": duplicate.id})
        return duplicate

    def delete_template(self, template_id: str) -> None:
        self.get_template(template_id)
        self.repo.delete(template_id)
        logger.info("template deleted", extra={"node_id": template_id})

    def move_template(self, template_id: str, parent_folder_id: str | None) -> Template:
        self.get_template(template_id)
        return self.tree.move(template_id, parent_folder_id)

    # ---- activation / usage ----

    def activate_template(self, template_id: str) -> Template:
        template = self.get_template(template_id)
        issues = self._validate(template.fields)
        if has_errors(issues):
            raise ActivationBlocked(
                "Template has validation errors and cannot be activated",
                issues=issues,
                template_id=template_id,
            )
        if template.is_active:
            return template
        activated = template.model_copy(update={"is_active": True, "updated_at": datetime.utcnow()})
        self.repo.save(activated)
        return activated

    def deactivate_template(self, template_id: str) -> Template:
        template = self.get_template(template_id)
        if not template.is_active:
            return template
        deactivated = template.model_copy(update={"is_active": False, "updated_at": datetime.utcnow()})
        self.repo.save(deactivated)
        return deactivated

    def record_usage(self, template_id: str) -> Template:
        """Called when an inspection is started from this template."""
        template = self.get_template(template_id)
        if not template.is_active:
            raise ActivationBlocked("Template is not active", template_id=template_id)
        used = template.model_copy(update={"usage_count": template.usage_count + 1})
        self.repo.save(used)
        return used

    # ---- CSV ----

    def import_from_csv(
        self,
        name: str,
        category: str,
        csv_text: str,
        *,
        description: str | None = None,
        parent_folder_id: str | None = None,
        quoted_fields: bool | None = None,
    ) -> ImportResult:
        quoted = settings.CSV_QUOTED_FIELDS if quoted_fields is None else quoted_fields
        decoded = decode_fields(csv_text, quoted_fields=quoted)
        if decoded.failed:
            raise StructuralDecodeFailure(decoded.issues[0].message, issues=decoded.issues)

        created = self.create_template(
            TemplateDraft(
                name=name,
                category=category,
                description=description,
                parent_folder_id=parent_folder_id,
                fields=list(decoded.fields),
            )
        )
        return ImportResult(
            template=created.template,
            issues=created.issues,
            decode_issues=list(decoded.issues),
        )

    def export_to_csv(self, template_id: str) -> str:
        return encode_fields(self.get_template(template_id).fields)

    def export_templates_csv(
        self,
        *,
        category: str | None = None,
        search: str | None = None,
        is_active: bool | None = None,
    ) -> str:
        """Template list as CSV (one row per template, folders left out)."""
        return encode_template_list(
            self.list_templates(category=category, search=search, is_active=is_active)
        )

    def draft_csv_from_prompt(self, prompt: str) -> str:
        """
        Ask the external generator for checklist CSV text. The result is not
        saved; callers preview it and then go through import_from_csv.
        """
        if self.generator is None:
            raise GeneratorUnavailable("No CSV generator configured")

        instructions = (
            f"{prompt}\n\n"
            "Gere um CSV para este checklist com as seguintes colunas:\n"
            f"{','.join(HEADER)}\n\n"
            f"Tipos disponíveis: {', '.join(t.value for t in FieldType)}\n\n"
            f"Para campos com opções ({', '.join(t.value for t in option_types())}), "
            "separe as opções com pipe (|).\n\n"
            "IMPORTANTE: Retorne APENAS o conteúdo CSV puro, sem markdown, "
            "sem explicações e sem formatação adicional."
        )
        try:
            raw = self.generator(instructions)
        except TimeoutError as e:
            raise IOTimeout("CSV generator timed out") from e
        return strip_markdown_fences(raw)

    # ---- folders (delegated to the tree) ----

    def create_folder(self, payload: FolderCreate):
        return self.tree.create_folder(
            payload.name,
            payload.parent_folder_id,
            payload.icon,
            payload.color,
            display_order=payload.display_order,
            description=payload.description,
        )

    def update_folder(self, folder_id: str, payload: FolderUpdate):
        return self.tree.update_folder(folder_id, **payload.model_dump(exclude_unset=True))

    def delete_folder(self, folder_id: str) -> None:
        self.tree.delete_folder(folder_id)
