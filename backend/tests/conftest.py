import os, tempfile
import pytest

_fd, _DB_PATH = tempfile.mkstemp(suffix=".db")
os.close(_fd)
os.environ["DATABASE_URL"] = f"sqlite:///{_DB_PATH}"

from fastapi.testclient import TestClient
from sqlalchemy.orm import sessionmaker

from main import app
from db import engine, get_db
from models import Alumni, StudyProgram
from security import verify_admin

@pytest.fixture(scope="session")
def test_engine():
    # main already created the tables on this engine (foreign keys pragma included)
    return engine

@pytest.fixture(scope="session")
def TestingSessionLocal(test_engine):
    return sessionmaker(autocommit=False, autoflush=False, bind=test_engine)

@pytest.fixture(scope="session", autouse=True)
def override_di(TestingSessionLocal):
    def _get_db():
        db = TestingSessionLocal()
        try:
            yield db
        finally:
            db.close()
    app.dependency_overrides[get_db] = _get_db
    app.dependency_overrides[verify_admin] = lambda: None

@pytest.fixture
def client():
    return TestClient(app)

@pytest.fixture
def db_session(TestingSessionLocal):
    db = TestingSessionLocal()
    try:
        yield db
    finally:
        db.close()

@pytest.fixture
def make_program(db_session):
    def _make(name="Computer Science", code="CS", level="S1"):
        row = StudyProgram(name=name, code=code, level=level)
        db_session.add(row)
        db_session.commit()
        return row.id
    return _make

@pytest.fixture
def make_alumni(db_session):
    def _make(enrollment_year=2018, graduate_year=2022, study_program_id=None, name="Alumni"):
        row = Alumni(name=name, npm=f"NPM{enrollment_year}", gender="F",
                     enrollment_year=enrollment_year, graduate_year=graduate_year,
                     study_program_id=study_program_id)
        db_session.add(row)
        db_session.commit()
        return row.id
    return _make
