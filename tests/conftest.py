import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from checklist_engine.main import app
from checklist_engine.db.base import Base
from checklist_engine.db.repository import InMemoryTemplateRepository
from checklist_engine.db.session import get_db
from checklist_engine.services.template_service import TemplateService

# One shared in-memory SQLite connection for the whole run
engine = create_engine(
    "sqlite://",
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)
TestingSessionLocal = sessionmaker(
    bind=engine,
    autocommit=False,
    autoflush=False,
    expire_on_commit=False,
)


@pytest.fixture()
def db_session():
    """
    Fresh schema per test. Application code may commit freely; the tables
    are dropped afterwards.
    """
    Base.metadata.create_all(bind=engine)
    session = TestingSessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def override_get_db(db_session):
    def _get_db_override():
        yield db_session

    app.dependency_overrides[get_db] = _get_db_override
    yield
    app.dependency_overrides.clear()
    app.state.csv_generator = None


@pytest.fixture()
def repo():
    return InMemoryTemplateRepository()


@pytest.fixture()
def service(repo):
    return TemplateService(repo)
