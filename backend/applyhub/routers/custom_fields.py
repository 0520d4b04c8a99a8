from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from applyhub.database import get_db
from applyhub.dependencies import get_document_store, require_actor
from applyhub.routers.documents import association_to_response, read_uploads
from applyhub.schemas.custom_field import CustomFieldAnswerRequest, CustomFieldAnswerResponse
from applyhub.schemas.document import DocumentDescriptorResponse
from applyhub.services import custom_field_service
from applyhub.services.auth_service import Actor
from applyhub.services.document_store import DocumentStore

router = APIRouter(tags=["custom-fields"])


@router.put("/applications/{application_id}/custom-fields/{custom_field_id}", response_model=CustomFieldAnswerResponse)
async def answer_custom_field(
    application_id: str,
    custom_field_id: str,
    req: CustomFieldAnswerRequest,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    answer = custom_field_service.answer_field(db, application_id, custom_field_id, req.answer, actor)
    return CustomFieldAnswerResponse(
        id=answer.id,
        application_id=answer.application_id,
        custom_field_id=answer.custom_field_id,
        answer=answer.answer,
    )


@router.post("/custom-field-answers/{answer_id}/documents", response_model=list[DocumentDescriptorResponse])
async def upload_answer_documents(
    answer_id: str,
    files: list[UploadFile] = File(...),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
    actor: Actor = Depends(require_actor),
):
    incoming = await read_uploads(files)
    associations = custom_field_service.upload_documents(db, store, answer_id, incoming, actor)
    return [association_to_response(a) for a in associations]


@router.get("/custom-field-answers/{answer_id}/documents", response_model=list[DocumentDescriptorResponse])
async def list_answer_documents(
    answer_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    return [association_to_response(a) for a in custom_field_service.list_documents(db, answer_id, actor)]
