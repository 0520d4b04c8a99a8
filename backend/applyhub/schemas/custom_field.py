from pydantic import BaseModel


class CustomFieldAnswerRequest(BaseModel):
    answer: str | None = None


class CustomFieldAnswerResponse(BaseModel):
    id: str
    application_id: str
    custom_field_id: str
    answer: str | None
