from fastapi import APIRouter

from checklist_engine.core.field_types import field_type_catalog

router = APIRouter(prefix="/field-types", tags=["field-types"])


@router.get("")
def list_field_types():
    """Authoritative field type list for pickers; do not duplicate it client-side."""
    return field_type_catalog()
