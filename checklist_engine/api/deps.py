from fastapi import Depends, Request
from sqlalchemy.orm import Session

from checklist_engine.db.repository import SqlAlchemyTemplateRepository
from checklist_engine.db.session import get_db
from checklist_engine.services.template_service import CsvGenerator, TemplateService


def get_csv_generator(request: Request) -> CsvGenerator | None:
    # set by the host application: app.state.csv_generator = callable(prompt) -> str
    return getattr(request.app.state, "csv_generator", None)


def get_template_service(
    db: Session = Depends(get_db),
    generator: CsvGenerator | None = Depends(get_csv_generator),
) -> TemplateService:
    return TemplateService(SqlAlchemyTemplateRepository(db), generator=generator)
