from fastapi import APIRouter

router = APIRouter()


@router.get("/")
def root():
    return {
        "name": "Checklist Template Engine",
        "status": "ok",
        "docs": "/docs",
        "health": "/health",
        "field_types": "/field-types",
    }
