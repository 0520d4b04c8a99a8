from fastapi import APIRouter, Depends, File, UploadFile
from sqlalchemy.orm import Session

from applyhub.database import get_db
from applyhub.dependencies import get_document_store, require_actor
from applyhub.models.profile import SNAPSHOT_FIELDS, ApplicantProfile
from applyhub.routers.documents import association_to_response, read_uploads
from applyhub.schemas.document import DocumentDescriptorResponse
from applyhub.schemas.profile import ProfileResponse, ProfileUpdate
from applyhub.services import profile_service
from applyhub.services.auth_service import Actor
from applyhub.services.document_store import DocumentStore
from applyhub.services.uploads import parse_category

router = APIRouter(prefix="/profile", tags=["profile"])


def _profile_to_response(profile: ApplicantProfile) -> ProfileResponse:
    return ProfileResponse(
        user_id=profile.user_id,
        updated_at=profile.updated_at,
        **{field: getattr(profile, field) for field in SNAPSHOT_FIELDS},
    )


@router.get("", response_model=ProfileResponse)
async def get_profile(db: Session = Depends(get_db), actor: Actor = Depends(require_actor)):
    profile = profile_service.get_or_create_profile(db, actor.user_id)
    db.commit()
    return _profile_to_response(profile)


@router.put("", response_model=ProfileResponse)
async def update_profile(
    req: ProfileUpdate,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    profile = profile_service.update_profile(db, actor, req.model_dump(exclude_unset=True))
    return _profile_to_response(profile)


@router.post("/documents/{category}", response_model=list[DocumentDescriptorResponse])
async def upload_profile_documents(
    category: str,
    files: list[UploadFile] = File(...),
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
    actor: Actor = Depends(require_actor),
):
    incoming = await read_uploads(files)
    associations = profile_service.upload_documents(db, store, actor, parse_category(category), incoming)
    return [association_to_response(a) for a in associations]


@router.get("/documents", response_model=dict[str, list[DocumentDescriptorResponse]])
async def list_profile_documents(db: Session = Depends(get_db), actor: Actor = Depends(require_actor)):
    grouped = profile_service.list_documents(db, actor)
    return {category.value: [association_to_response(a) for a in items] for category, items in grouped.items()}
