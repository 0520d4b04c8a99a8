import uuid
from datetime import datetime, timezone

import pytest
from fastapi.testclient import TestClient
from sqlalchemy import create_engine, event
from sqlalchemy.orm import sessionmaker

from applyhub.config import settings
from applyhub.constants import CustomFieldType, JobState, UserRole
from applyhub.database import get_db, init_db
from applyhub.dependencies import get_application_service, get_document_store
from applyhub.main import app
from applyhub.models.job import CustomField, Job
from applyhub.models.user import User
from applyhub.services.application_service import ApplicationService
from applyhub.services.auth_service import Actor, auth_service
from applyhub.services.document_store import DocumentStore


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


class RecordingNotifier:
    """Stands in for the dispatcher and keeps every event handed to it."""

    def __init__(self):
        self.events = []
        self.on_send = None

    def send_async(self, event):
        if self.on_send is not None:
            self.on_send(event)
        self.events.append(event)

    def kinds(self):
        return [e.kind.value for e in self.events]


@pytest.fixture
def tmp_data(tmp_path):
    data_path = tmp_path / "ApplyHub"
    data_path.mkdir()
    return data_path


@pytest.fixture
def test_db(tmp_data):
    db_path = tmp_data / "db.sqlite"
    engine = create_engine(
        f"sqlite:///{db_path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    TestSession = sessionmaker(bind=engine, autoflush=False, autocommit=False)

    init_db(db_path)

    def override_get_db():
        db = TestSession()
        try:
            yield db
        finally:
            db.close()

    app.dependency_overrides[get_db] = override_get_db
    yield TestSession
    app.dependency_overrides.clear()
    engine.dispose()


@pytest.fixture
def db(test_db):
    session = test_db()
    yield session
    session.close()


@pytest.fixture
def store(tmp_data):
    return DocumentStore(tmp_data)


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def service(store, notifier):
    return ApplicationService(store, notifier)


@pytest.fixture
def make_user(db):
    def _make(role=UserRole.APPLICANT, first_name="Ada", last_name="Lovelace"):
        user = User(
            id=str(uuid.uuid4()),
            email=f"{uuid.uuid4().hex[:10]}@example.org",
            first_name=first_name,
            last_name=last_name,
            role=UserRole(role).value,
            created_at=_now(),
        )
        db.add(user)
        db.commit()
        return user
    return _make


@pytest.fixture
def make_actor(make_user):
    def _make(role=UserRole.APPLICANT, **kwargs):
        return Actor.for_user(make_user(role, **kwargs))
    return _make


@pytest.fixture
def make_job(db, make_user):
    def _make(title="Research Assistant", state=JobState.OPEN, professor=None, file_field=False):
        professor = professor or make_user(UserRole.PROFESSOR, first_name="Grace", last_name="Hopper")
        job = Job(
            id=str(uuid.uuid4()),
            title=title,
            supervising_professor_id=professor.id,
            state=JobState(state).value,
            created_at=_now(),
        )
        db.add(job)
        if file_field:
            db.add(CustomField(
                id=str(uuid.uuid4()),
                job_id=job.id,
                question="Upload your portfolio",
                field_type=CustomFieldType.FILE_UPLOAD.value,
            ))
        db.add(CustomField(
            id=str(uuid.uuid4()),
            job_id=job.id,
            question="Why this group?",
            field_type=CustomFieldType.FREE_TEXT.value,
        ))
        db.commit()
        return job
    return _make


@pytest.fixture
def fresh_auth_service():
    """Reset in-memory session tokens for each test."""
    original = auth_service.__dict__.copy()
    auth_service._active_tokens = {}
    yield auth_service
    auth_service.__dict__.update(original)


@pytest.fixture
def client(tmp_data, test_db, store, service, fresh_auth_service):
    original_data_path = settings.data_path
    settings.data_path = tmp_data
    app.dependency_overrides[get_document_store] = lambda: store
    app.dependency_overrides[get_application_service] = lambda: service
    c = TestClient(app)
    yield c
    settings.data_path = original_data_path
