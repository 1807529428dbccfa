from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from checklist_engine.api.audit import router as audit_router
from checklist_engine.api.errors import engine_error_handler
from checklist_engine.api.field_types import router as field_types_router
from checklist_engine.api.folders import router as folders_router
from checklist_engine.api.health import router as health_router
from checklist_engine.api.root import router as root_router
from checklist_engine.api.templates import router as templates_router
from checklist_engine.core.config import settings
from checklist_engine.core.errors import TemplateEngineError
from checklist_engine.core.logging import setup_logging

setup_logging(settings.LOG_LEVEL)

app = FastAPI(title="Checklist Template Engine")

# prompt -> CSV text callable, installed by the host application
app.state.csv_generator = None

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins_list,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.add_exception_handler(TemplateEngineError, engine_error_handler)

app.include_router(root_router)
app.include_router(health_router)
app.include_router(field_types_router)
app.include_router(folders_router)
app.include_router(templates_router)
app.include_router(audit_router)
