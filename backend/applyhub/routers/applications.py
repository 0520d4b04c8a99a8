from fastapi import APIRouter, Depends, File, Query, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from applyhub.constants import DocumentCategory
from applyhub.database import get_db
from applyhub.dependencies import get_application_service, get_optional_actor, require_actor
from applyhub.models.application import Application
from applyhub.models.profile import SNAPSHOT_FIELDS
from applyhub.routers.documents import descriptor_to_response, read_uploads
from applyhub.schemas.application import ApplicationListResponse, ApplicationResponse, ApplicationUpdate
from applyhub.schemas.document import ApplicationDocumentsResponse, DocumentDescriptorResponse
from applyhub.services.application_service import ApplicationService
from applyhub.services.auth_service import Actor
from applyhub.services.uploads import parse_category

router = APIRouter(prefix="/applications", tags=["applications"])


def _application_to_response(application: Application) -> ApplicationResponse:
    return ApplicationResponse(
        id=application.id,
        job_id=application.job_id,
        applicant_id=application.applicant_id,
        state=application.state,
        applied_at=application.applied_at,
        desired_start_date=application.desired_start_date,
        motivation=application.motivation,
        projects=application.projects,
        special_skills=application.special_skills,
        created_at=application.created_at,
        updated_at=application.updated_at,
        **{field: getattr(application, field) for field in SNAPSHOT_FIELDS},
    )


@router.post("/create/{job_id}", response_model=ApplicationResponse)
async def create_application(
    job_id: str,
    db: Session = Depends(get_db),
    service: ApplicationService = Depends(get_application_service),
    actor: Actor | None = Depends(get_optional_actor),
):
    return _application_to_response(service.create(db, job_id, actor))


@router.get("", response_model=ApplicationListResponse)
async def list_applications(
    page: int = Query(1, ge=1),
    per_page: int = Query(25, ge=1, le=100),
    db: Session = Depends(get_db),
    service: ApplicationService = Depends(get_application_service),
    actor: Actor = Depends(require_actor),
):
    items, total = service.list_for_applicant(db, actor, page, per_page)
    return ApplicationListResponse(
        applications=[_application_to_response(a) for a in items],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{application_id}", response_model=ApplicationResponse)
async def get_application(
    application_id: str,
    db: Session = Depends(get_db),
    service: ApplicationService = Depends(get_application_service),
    actor: Actor = Depends(require_actor),
):
    return _application_to_response(service.get(db, application_id, actor))


@router.put("/{application_id}", response_model=ApplicationResponse)
async def update_application(
    application_id: str,
    req: ApplicationUpdate,
    db: Session = Depends(get_db),
    service: ApplicationService = Depends(get_application_service),
    actor: Actor = Depends(require_actor),
):
    application = service.update(db, application_id, req.model_dump(exclude_unset=True), actor)
    return _application_to_response(application)


@router.put("/{application_id}/withdraw", response_model=ApplicationResponse)
async def withdraw_application(
    application_id: str,
    db: Session = Depends(get_db),
    service: ApplicationService = Depends(get_application_service),
    actor: Actor = Depends(require_actor),
):
    return _application_to_response(service.withdraw(db, application_id, actor))


@router.delete("/{application_id}", status_code=204)
async def delete_application(
    application_id: str,
    db: Session = Depends(get_db),
    service: ApplicationService = Depends(get_application_service),
    actor: Actor = Depends(require_actor),
):
    service.delete(db, application_id, actor)
    return Response(status_code=204)


@router.post("/{application_id}/documents/{category}", response_model=list[DocumentDescriptorResponse])
async def upload_documents(
    application_id: str,
    category: str,
    files: list[UploadFile] = File(...),
    db: Session = Depends(get_db),
    service: ApplicationService = Depends(get_application_service),
    actor: Actor = Depends(require_actor),
):
    incoming = await read_uploads(files)
    descriptors = service.upload_documents(db, application_id, parse_category(category), incoming, actor)
    return [descriptor_to_response(d) for d in descriptors]


@router.get("/{application_id}/documents", response_model=ApplicationDocumentsResponse)
async def list_documents(
    application_id: str,
    db: Session = Depends(get_db),
    service: ApplicationService = Depends(get_application_service),
    actor: Actor = Depends(require_actor),
):
    grouped = service.document_ids(db, application_id, actor)
    cvs = grouped[DocumentCategory.CV]
    return ApplicationDocumentsResponse(
        cv=descriptor_to_response(cvs[0]) if cvs else None,
        references=[descriptor_to_response(d) for d in grouped[DocumentCategory.REFERENCE]],
        bachelor_transcripts=[descriptor_to_response(d) for d in grouped[DocumentCategory.BACHELOR_TRANSCRIPT]],
        master_transcripts=[descriptor_to_response(d) for d in grouped[DocumentCategory.MASTER_TRANSCRIPT]],
    )


@router.delete("/{application_id}/documents/{category}")
async def delete_documents_of_category(
    application_id: str,
    category: str,
    db: Session = Depends(get_db),
    service: ApplicationService = Depends(get_application_service),
    actor: Actor = Depends(require_actor),
):
    removed = service.delete_documents_of_category(db, application_id, parse_category(category), actor)
    return {"removed": removed}
