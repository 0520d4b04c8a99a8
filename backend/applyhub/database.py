import sqlite3
from pathlib import Path
from sqlalchemy import create_engine, event
from sqlalchemy.orm import DeclarativeBase, sessionmaker

from applyhub.config import settings


class Base(DeclarativeBase):
    pass


def _set_sqlite_pragmas(dbapi_conn, connection_record):
    cursor = dbapi_conn.cursor()
    cursor.execute("PRAGMA journal_mode=WAL")
    cursor.execute("PRAGMA foreign_keys=ON")
    cursor.close()


def get_engine(db_path: Path | None = None):
    path = db_path or settings.db_path
    engine = create_engine(
        f"sqlite:///{path}",
        connect_args={"check_same_thread": False},
    )
    event.listen(engine, "connect", _set_sqlite_pragmas)
    return engine


engine = get_engine()
SessionLocal = sessionmaker(bind=engine, autoflush=False, autocommit=False)


def get_db():
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


_SNAPSHOT_COLUMNS = """\
    first_name                TEXT,
    last_name                 TEXT,
    gender                    TEXT,
    nationality               TEXT,
    birthday                  TEXT,
    phone_number              TEXT,
    website                   TEXT,
    linkedin_url              TEXT,
    street                    TEXT,
    postal_code               TEXT,
    city                      TEXT,
    country                   TEXT,
    bachelor_degree_name      TEXT,
    bachelor_grade_upper_limit TEXT,
    bachelor_grade_lower_limit TEXT,
    bachelor_grade            TEXT,
    bachelor_university       TEXT,
    master_degree_name        TEXT,
    master_grade_upper_limit  TEXT,
    master_grade_lower_limit  TEXT,
    master_grade              TEXT,
    master_university         TEXT,"""


SCHEMA_SQL = f"""\
-- ============================================================
-- USERS
-- ============================================================
CREATE TABLE IF NOT EXISTS users (
    id            TEXT PRIMARY KEY,
    email         TEXT NOT NULL UNIQUE,
    first_name    TEXT,
    last_name     TEXT,
    role          TEXT NOT NULL DEFAULT 'APPLICANT'
                  CHECK(role IN ('APPLICANT','PROFESSOR','ADMIN')),
    password_hash TEXT,
    created_at    TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

-- ============================================================
-- AUTH THROTTLE
-- ============================================================
CREATE TABLE IF NOT EXISTS auth_throttle (
    key             TEXT PRIMARY KEY,
    failed_attempts INTEGER NOT NULL,
    last_failed_at  REAL NOT NULL
);

-- ============================================================
-- JOBS
-- ============================================================
CREATE TABLE IF NOT EXISTS jobs (
    id                       TEXT PRIMARY KEY,
    title                    TEXT NOT NULL,
    supervising_professor_id TEXT NOT NULL REFERENCES users(id),
    state                    TEXT NOT NULL DEFAULT 'OPEN'
                             CHECK(state IN ('OPEN','CLOSED')),
    created_at               TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE TABLE IF NOT EXISTS custom_fields (
    id         TEXT PRIMARY KEY,
    job_id     TEXT NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    question   TEXT NOT NULL,
    field_type TEXT NOT NULL
               CHECK(field_type IN ('FREE_TEXT','SINGLE_CHOICE','MULTIPLE_CHOICE','FILE_UPLOAD'))
);

CREATE INDEX IF NOT EXISTS idx_custom_fields_job ON custom_fields(job_id);

-- ============================================================
-- APPLICANT PROFILES
-- ============================================================
CREATE TABLE IF NOT EXISTS applicant_profiles (
    user_id    TEXT PRIMARY KEY REFERENCES users(id) ON DELETE CASCADE,
{_SNAPSHOT_COLUMNS}
    updated_at TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

-- ============================================================
-- APPLICATIONS
-- ============================================================
CREATE TABLE IF NOT EXISTS applications (
    id                 TEXT PRIMARY KEY,
    applicant_id       TEXT NOT NULL REFERENCES applicant_profiles(user_id) ON DELETE CASCADE,
    job_id             TEXT NOT NULL REFERENCES jobs(id) ON DELETE CASCADE,
    state              TEXT NOT NULL DEFAULT 'SAVED'
                       CHECK(state IN ('SAVED','SENT','WITHDRAWN','IN_REVIEW',
                                       'ACCEPTED','REJECTED','JOB_CLOSED')),
    applied_at         TEXT,
    desired_start_date TEXT,
    motivation         TEXT,
    projects           TEXT,
    special_skills     TEXT,
{_SNAPSHOT_COLUMNS}
    created_at         TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    updated_at         TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    UNIQUE(applicant_id, job_id)
);

CREATE INDEX IF NOT EXISTS idx_applications_state ON applications(state);
CREATE INDEX IF NOT EXISTS idx_applications_job ON applications(job_id);

CREATE TABLE IF NOT EXISTS custom_field_answers (
    id              TEXT PRIMARY KEY,
    application_id  TEXT NOT NULL REFERENCES applications(id) ON DELETE CASCADE,
    custom_field_id TEXT NOT NULL REFERENCES custom_fields(id) ON DELETE CASCADE,
    answer          TEXT,
    UNIQUE(application_id, custom_field_id)
);

-- ============================================================
-- DOCUMENTS
-- ============================================================
CREATE TABLE IF NOT EXISTS documents (
    id          TEXT PRIMARY KEY,
    sha256      TEXT NOT NULL UNIQUE,
    stored_path TEXT NOT NULL UNIQUE,
    mime_type   TEXT NOT NULL,
    size_bytes  INTEGER NOT NULL,
    uploaded_by TEXT REFERENCES users(id) ON DELETE SET NULL,
    created_at  TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now'))
);

CREATE TABLE IF NOT EXISTS document_associations (
    id                     TEXT PRIMARY KEY,
    document_id            TEXT NOT NULL REFERENCES documents(id),
    category               TEXT NOT NULL
                           CHECK(category IN ('CV','REFERENCE','BACHELOR_TRANSCRIPT',
                                              'MASTER_TRANSCRIPT','CUSTOM')),
    name                   TEXT NOT NULL,
    applicant_id           TEXT REFERENCES applicant_profiles(user_id) ON DELETE CASCADE,
    application_id         TEXT REFERENCES applications(id) ON DELETE CASCADE,
    custom_field_answer_id TEXT REFERENCES custom_field_answers(id) ON DELETE CASCADE,
    created_at             TEXT NOT NULL DEFAULT (strftime('%Y-%m-%dT%H:%M:%SZ','now')),
    -- exactly one owner
    CHECK((applicant_id IS NOT NULL)
          + (application_id IS NOT NULL)
          + (custom_field_answer_id IS NOT NULL) = 1)
);

CREATE INDEX IF NOT EXISTS idx_assoc_applicant ON document_associations(applicant_id, category);
CREATE INDEX IF NOT EXISTS idx_assoc_application ON document_associations(application_id, category);
CREATE INDEX IF NOT EXISTS idx_assoc_answer ON document_associations(custom_field_answer_id);
"""


def init_db(db_path: Path | None = None):
    path = db_path or settings.db_path
    path.parent.mkdir(parents=True, exist_ok=True)
    conn = sqlite3.connect(str(path))
    conn.executescript(SCHEMA_SQL)
    conn.close()
