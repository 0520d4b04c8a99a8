from pydantic import BaseModel


class DocumentDescriptorResponse(BaseModel):
    id: str
    name: str
    category: str
    mime_type: str
    size_bytes: int


class DocumentRename(BaseModel):
    name: str


class ApplicationDocumentsResponse(BaseModel):
    cv: DocumentDescriptorResponse | None = None
    references: list[DocumentDescriptorResponse] = []
    bachelor_transcripts: list[DocumentDescriptorResponse] = []
    master_transcripts: list[DocumentDescriptorResponse] = []
