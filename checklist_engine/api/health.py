from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session

from checklist_engine.core.config import settings
from checklist_engine.db.session import get_db

router = APIRouter(tags=["health"])


@router.get("/health")
def health(db: Session = Depends(get_db)):
    # template storage must answer before we report ok
    db.execute(text("SELECT 1"))
    return {"status": "ok", "env": settings.APP_ENV}
