from pydantic import BaseModel


class SnapshotFields(BaseModel):
    first_name: str | None = None
    last_name: str | None = None
    gender: str | None = None
    nationality: str | None = None
    birthday: str | None = None
    phone_number: str | None = None
    website: str | None = None
    linkedin_url: str | None = None
    street: str | None = None
    postal_code: str | None = None
    city: str | None = None
    country: str | None = None
    bachelor_degree_name: str | None = None
    bachelor_grade_upper_limit: str | None = None
    bachelor_grade_lower_limit: str | None = None
    bachelor_grade: str | None = None
    bachelor_university: str | None = None
    master_degree_name: str | None = None
    master_grade_upper_limit: str | None = None
    master_grade_lower_limit: str | None = None
    master_grade: str | None = None
    master_university: str | None = None
