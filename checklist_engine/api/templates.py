import re
import unicodedata
from datetime import date

from fastapi import APIRouter, Depends, Header, Query, Response, status
from fastapi.responses import PlainTextResponse
from sqlalchemy.orm import Session

from checklist_engine.api.deps import get_template_service
from checklist_engine.core.audit import log_event
from checklist_engine.core.csv_codec import SAMPLE_CSV
from checklist_engine.core.field_validation import count_by_severity, has_errors
from checklist_engine.core.optimistic_lock import parse_if_match, set_etag
from checklist_engine.core.security import get_actor_email
from checklist_engine.db.session import get_db
from checklist_engine.schemas.templates import (
    CsvImportRequest,
    DuplicateRequest,
    FieldsPreviewRequest,
    Folder,
    GenerateCsvRequest,
    ImportResult,
    MoveRequest,
    Template,
    TemplateDraft,
    TemplateResult,
)
from checklist_engine.schemas.validation import ValidationPreviewResponse
from checklist_engine.services.template_service import TemplateService

router = APIRouter(prefix="/templates", tags=["templates"])


def _csv_filename(name: str) -> str:
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode("ascii")
    slug = re.sub(r"[^A-Za-z0-9_-]+", "_", ascii_name).strip("_")
    return f"{slug or 'template'}.csv"


@router.get("", response_model=list[Template])
def list_templates(
    category: str | None = Query(default=None),
    search: str | None = Query(default=None, description="Matches name or description"),
    is_active: bool | None = Query(default=None),
    service: TemplateService = Depends(get_template_service),
):
    return service.list_templates(category=category, search=search, is_active=is_active)


@router.get("/sample-csv", response_class=PlainTextResponse)
def sample_csv():
    """Downloadable example file for the CSV import screen."""
    return PlainTextResponse(
        SAMPLE_CSV,
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": 'attachment; filename="modelo_checklist.csv"'},
    )


@router.get("/export-csv")
def export_templates_csv(
    category: str | None = Query(default=None),
    search: str | None = Query(default=None),
    is_active: bool | None = Query(default=None),
    service: TemplateService = Depends(get_template_service),
):
    """Template list (not folders) as CSV."""
    return Response(
        content=service.export_templates_csv(category=category, search=search, is_active=is_active),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="checklists_{date.today().isoformat()}.csv"'},
    )


@router.post("/validate", response_model=ValidationPreviewResponse)
def validate_fields_preview(
    payload: FieldsPreviewRequest,
    service: TemplateService = Depends(get_template_service),
):
    issues = service.preview_fields(payload.fields)
    return ValidationPreviewResponse(
        valid=not issues,
        can_activate=not has_errors(issues),
        issues=list(issues),
    )


@router.post("/import-csv", response_model=ImportResult, status_code=status.HTTP_201_CREATED)
def import_csv(
    payload: CsvImportRequest,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    result = service.import_from_csv(
        payload.name,
        payload.category,
        payload.csv_text,
        description=payload.description,
        parent_folder_id=payload.parent_folder_id,
        quoted_fields=payload.quoted_fields,
    )

    log_event(
        db=db,
        actor_email=actor_email,
        action="TEMPLATE_IMPORTED_CSV",
        entity_type="template",
        entity_id=result.template.id,
        metadata={
            "field_count": len(result.template.fields),
            "skipped_rows": len(result.decode_issues),
            "issues": count_by_severity(result.issues),
        },
    )
    db.commit()
    return result


@router.post("/generate-csv")
def generate_csv(
    payload: GenerateCsvRequest,
    service: TemplateService = Depends(get_template_service),
):
    """Draft CSV text from a description. Nothing is saved."""
    return {"csv_text": service.draft_csv_from_prompt(payload.prompt)}


@router.post("", response_model=TemplateResult, status_code=status.HTTP_201_CREATED)
def create_template(
    payload: TemplateDraft,
    response: Response,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    result = service.create_template(payload)

    log_event(
        db=db,
        actor_email=actor_email,
        action="TEMPLATE_CREATED",
        entity_type="template",
        entity_id=result.template.id,
        metadata={"name": result.template.name, "issues": count_by_severity(result.issues)},
    )
    db.commit()

    set_etag(response, result.template.version)
    return result


@router.get("/{template_id}", response_model=Template)
def get_template(
    template_id: str,
    response: Response,
    service: TemplateService = Depends(get_template_service),
):
    template = service.get_template(template_id)
    set_etag(response, template.version)
    return template


@router.put("/{template_id}", response_model=TemplateResult)
def update_template(
    template_id: str,
    payload: TemplateDraft,
    response: Response,
    if_match: str | None = Header(default=None, alias="If-Match"),
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    expected_version = parse_if_match(if_match)
    result = service.update_template(template_id, payload, expected_version=expected_version)

    log_event(
        db=db,
        actor_email=actor_email,
        action="TEMPLATE_UPDATED",
        entity_type="template",
        entity_id=template_id,
        metadata={
            "version": result.template.version,
            "is_active": result.template.is_active,
            "issues": count_by_severity(result.issues),
        },
    )
    db.commit()

    set_etag(response, result.template.version)
    return result


@router.delete("/{template_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_template(
    template_id: str,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    service.delete_template(template_id)

    log_event(
        db=db,
        actor_email=actor_email,
        action="TEMPLATE_DELETED",
        entity_type="template",
        entity_id=template_id,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.post("/{template_id}/duplicate", response_model=Template, status_code=status.HTTP_201_CREATED)
def duplicate_template(
    template_id: str,
    payload: DuplicateRequest | None = None,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    keep_parent = payload.keep_parent if payload else False
    duplicate = service.duplicate_template(template_id, keep_parent=keep_parent)

    log_event(
        db=db,
        actor_email=actor_email,
        action="TEMPLATE_DUPLICATED",
        entity_type="template",
        entity_id=duplicate.id,
        metadata={"source_id": template_id},
    )
    db.commit()
    return duplicate


@router.post("/{template_id}/move", response_model=Template)
def move_template(
    template_id: str,
    payload: MoveRequest,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    moved = service.move_template(template_id, payload.parent_folder_id)

    log_event(
        db=db,
        actor_email=actor_email,
        action="TEMPLATE_MOVED",
        entity_type="template",
        entity_id=template_id,
        metadata={"parent_folder_id": payload.parent_folder_id},
    )
    db.commit()
    return moved


@router.get("/{template_id}/path", response_model=list[Folder])
def template_path(
    template_id: str,
    service: TemplateService = Depends(get_template_service),
):
    service.get_template(template_id)
    return service.tree.resolve_path(template_id)


@router.post("/{template_id}/activate", response_model=Template)
def activate_template(
    template_id: str,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    template = service.activate_template(template_id)

    log_event(
        db=db,
        actor_email=actor_email,
        action="TEMPLATE_ACTIVATED",
        entity_type="template",
        entity_id=template_id,
        metadata={"version": template.version},
    )
    db.commit()
    return template


@router.post("/{template_id}/deactivate", response_model=Template)
def deactivate_template(
    template_id: str,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    template = service.deactivate_template(template_id)

    log_event(
        db=db,
        actor_email=actor_email,
        action="TEMPLATE_DEACTIVATED",
        entity_type="template",
        entity_id=template_id,
        metadata={"version": template.version},
    )
    db.commit()
    return template


@router.post("/{template_id}/usage", response_model=Template)
def record_usage(
    template_id: str,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
):
    template = service.record_usage(template_id)
    db.commit()
    return template


@router.get("/{template_id}/export-csv")
def export_csv(
    template_id: str,
    service: TemplateService = Depends(get_template_service),
):
    template = service.get_template(template_id)
    return Response(
        content=service.export_to_csv(template_id),
        media_type="text/csv; charset=utf-8",
        headers={"Content-Disposition": f'attachment; filename="{_csv_filename(template.name)}"'},
    )
