from fastapi import APIRouter, Depends, Query, Response, status
from sqlalchemy.orm import Session

from checklist_engine.api.deps import get_template_service
from checklist_engine.core.audit import log_event
from checklist_engine.core.security import get_actor_email
from checklist_engine.db.session import get_db
from checklist_engine.schemas.templates import (
    Folder,
    FolderCreate,
    FolderUpdate,
    MoveRequest,
    TemplateNode,
    TreeOut,
)
from checklist_engine.services.template_service import TemplateService

router = APIRouter(prefix="/folders", tags=["folders"])


@router.post("", response_model=Folder, status_code=status.HTTP_201_CREATED)
def create_folder(
    payload: FolderCreate,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    folder = service.create_folder(payload)

    log_event(
        db=db,
        actor_email=actor_email,
        action="FOLDER_CREATED",
        entity_type="folder",
        entity_id=folder.id,
        metadata={"name": folder.name, "parent_folder_id": folder.parent_folder_id},
    )
    db.commit()
    return folder


@router.get("/tree", response_model=TreeOut)
def folder_tree(service: TemplateService = Depends(get_template_service)):
    return service.tree.build_hierarchy()


@router.get("/children", response_model=list[TemplateNode])
def list_children(
    folder_id: str | None = Query(default=None, description="Omit for the root level"),
    search: str | None = Query(default=None),
    service: TemplateService = Depends(get_template_service),
):
    return service.tree.list_children(folder_id, search=search)


@router.get("/{folder_id}", response_model=Folder)
def get_folder(
    folder_id: str,
    service: TemplateService = Depends(get_template_service),
):
    return service.tree.get_folder(folder_id)


@router.patch("/{folder_id}", response_model=Folder)
def update_folder(
    folder_id: str,
    payload: FolderUpdate,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    folder = service.update_folder(folder_id, payload)

    log_event(
        db=db,
        actor_email=actor_email,
        action="FOLDER_UPDATED",
        entity_type="folder",
        entity_id=folder_id,
        metadata=payload.model_dump(exclude_unset=True),
    )
    db.commit()
    return folder


@router.delete("/{folder_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_folder(
    folder_id: str,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    service.delete_folder(folder_id)

    log_event(
        db=db,
        actor_email=actor_email,
        action="FOLDER_DELETED",
        entity_type="folder",
        entity_id=folder_id,
    )
    db.commit()
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{folder_id}/path", response_model=list[Folder])
def folder_path(
    folder_id: str,
    service: TemplateService = Depends(get_template_service),
):
    """Breadcrumb: ancestors from the root down, not including the folder itself."""
    service.tree.get_folder(folder_id)
    return service.tree.resolve_path(folder_id)


@router.post("/{folder_id}/move", response_model=Folder)
def move_folder(
    folder_id: str,
    payload: MoveRequest,
    db: Session = Depends(get_db),
    service: TemplateService = Depends(get_template_service),
    actor_email: str | None = Depends(get_actor_email),
):
    service.tree.get_folder(folder_id)
    moved = service.tree.move(folder_id, payload.parent_folder_id)

    log_event(
        db=db,
        actor_email=actor_email,
        action="FOLDER_MOVED",
        entity_type="folder",
        entity_id=folder_id,
        metadata={"parent_folder_id": payload.parent_folder_id},
    )
    db.commit()
    return moved
