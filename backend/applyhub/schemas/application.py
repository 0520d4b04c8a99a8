from pydantic import BaseModel

from applyhub.constants import ApplicationState
from applyhub.schemas.snapshot import SnapshotFields


class ApplicationUpdate(SnapshotFields):
    state: ApplicationState | None = None
    desired_start_date: str | None = None
    motivation: str | None = None
    projects: str | None = None
    special_skills: str | None = None


class ApplicationResponse(SnapshotFields):
    id: str | None
    job_id: str
    applicant_id: str | None
    state: str
    applied_at: str | None
    desired_start_date: str | None
    motivation: str | None
    projects: str | None
    special_skills: str | None
    created_at: str | None
    updated_at: str | None


class ApplicationListResponse(BaseModel):
    applications: list[ApplicationResponse]
    total: int
    page: int
    per_page: int
