import uuid
from datetime import datetime
from typing import Annotated, Literal, Union

from pydantic import BaseModel, Field, TypeAdapter, computed_field

from checklist_engine.core.field_types import FieldType
from checklist_engine.schemas.validation import DecodeIssue, Severity, ValidationIssue


NAME_MAX_LENGTH = 200  # template_nodes.name is String(200)


def _new_id() -> str:
    return str(uuid.uuid4())


class FieldDefinition(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str = ""  # blank is allowed in drafts, validation flags it
    type: FieldType
    required: bool = False
    # structured list, or raw text (JSON-array-like or freeform) from some entry paths
    options: list[str] | str = Field(default_factory=list)
    description: str | None = None
    placeholder: str | None = None
    order_index: int = Field(default=0, ge=0)
    min: int | None = None
    max: int | None = None


class NodeBase(BaseModel):
    id: str = Field(default_factory=_new_id)
    name: str
    parent_folder_id: str | None = None
    display_order: int = 0
    created_at: datetime = Field(default_factory=datetime.utcnow)
    updated_at: datetime = Field(default_factory=datetime.utcnow)


class Folder(NodeBase):
    kind: Literal["folder"] = "folder"
    description: str | None = None
    icon: str = "folder"
    color: str = "#6B7280"


class Template(NodeBase):
    kind: Literal["template"] = "template"
    description: str | None = None
    category: str = "geral"
    is_public: bool = False
    is_active: bool = False
    version: int = Field(default=1, ge=1)
    fields: list[FieldDefinition] = Field(default_factory=list)
    usage_count: int = Field(default=0, ge=0)
    tags: list[str] = Field(default_factory=list)


TemplateNode = Annotated[Union[Folder, Template], Field(discriminator="kind")]

node_adapter: TypeAdapter[Folder | Template] = TypeAdapter(TemplateNode)


# ---- request payloads ----


class TemplateDraft(BaseModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    description: str | None = Field(default=None, max_length=2000)
    category: str = Field(default="geral", min_length=1, max_length=100)
    fields: list[FieldDefinition] = Field(default_factory=list)
    parent_folder_id: str | None = None
    is_public: bool = False
    tags: list[str] = Field(default_factory=list)
    display_order: int | None = None


class FolderCreate(BaseModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    parent_folder_id: str | None = None
    icon: str = "folder"
    color: str = "#6B7280"
    description: str | None = Field(default=None, max_length=2000)
    display_order: int | None = None


class FolderUpdate(BaseModel):
    name: str | None = Field(default=None, min_length=1, max_length=NAME_MAX_LENGTH)
    icon: str | None = None
    color: str | None = None
    description: str | None = Field(default=None, max_length=2000)
    display_order: int | None = None


class MoveRequest(BaseModel):
    parent_folder_id: str | None = None  # None moves to the root


class DuplicateRequest(BaseModel):
    keep_parent: bool = False


class CsvImportRequest(BaseModel):
    name: str = Field(min_length=1, max_length=NAME_MAX_LENGTH)
    category: str = Field(default="geral", min_length=1, max_length=100)
    csv_text: str
    description: str | None = Field(default=None, max_length=2000)
    parent_folder_id: str | None = None
    quoted_fields: bool | None = None  # None: use CSV_QUOTED_FIELDS setting


class GenerateCsvRequest(BaseModel):
    prompt: str = Field(min_length=1, max_length=4000)


class FieldsPreviewRequest(BaseModel):
    fields: list[FieldDefinition]


# ---- responses ----


class FolderView(BaseModel):
    """Folder with its nested sub-folders, for the hierarchy browser"""
    id: str
    name: str
    icon: str
    color: str
    display_order: int
    template_count: int  # templates directly inside this folder
    template_ids: list[str]
    folders: list["FolderView"] = Field(default_factory=list)


class TreeOut(BaseModel):
    folders: list[FolderView]
    root_template_ids: list[str]


class TemplateResult(BaseModel):
    """Saved template plus the issues found on its fields"""
    template: Template
    issues: list[ValidationIssue] = Field(default_factory=list)

    @computed_field
    @property
    def can_activate(self) -> bool:
        return not any(i.severity == Severity.ERROR for i in self.issues)


class ImportResult(TemplateResult):
    decode_issues: list[DecodeIssue] = Field(default_factory=list)
