import logging
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from applyhub.constants import APPLICANT_CATEGORIES, DocumentCategory
from applyhub.exceptions import NotFoundError
from applyhub.models.document import DocumentAssociation
from applyhub.models.profile import SNAPSHOT_FIELDS, ApplicantProfile
from applyhub.models.user import User
from applyhub.services import reconciler
from applyhub.services.auth_service import Actor
from applyhub.services.document_store import DocumentStore
from applyhub.services.reconciler import ProfileOwner
from applyhub.services.uploads import IncomingFile, accepted_files, store_all

logger = logging.getLogger(__name__)


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def get_or_create_profile(db: Session, user_id: str) -> ApplicantProfile:
    """Return the applicant's profile, creating it on first access.

    Must run before anything else is written in the session: a concurrent
    first access trips the primary key and the session is rolled back.
    """
    profile = db.query(ApplicantProfile).filter(ApplicantProfile.user_id == user_id).first()
    if profile:
        return profile

    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise NotFoundError("User not found")

    profile = ApplicantProfile(
        user_id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        updated_at=_now(),
    )
    db.add(profile)
    try:
        db.flush()
    except IntegrityError:
        db.rollback()
        logger.info("Profile for user %s was created concurrently; reusing it", user_id)
        return db.query(ApplicantProfile).filter(ApplicantProfile.user_id == user_id).one()
    logger.info("Provisioned applicant profile for user %s", user_id)
    return profile


def update_profile(db: Session, actor: Actor, edits: dict) -> ApplicantProfile:
    profile = get_or_create_profile(db, actor.user_id)
    for key, value in edits.items():
        if key in SNAPSHOT_FIELDS:
            setattr(profile, key, value)
    profile.updated_at = _now()
    db.commit()
    db.refresh(profile)
    return profile


def upload_documents(
    db: Session,
    store: DocumentStore,
    actor: Actor,
    category: DocumentCategory,
    files: list[IncomingFile],
) -> list[DocumentAssociation]:
    files = accepted_files(category, files)
    profile = get_or_create_profile(db, actor.user_id)
    documents = store_all(db, store, files, actor.user_id)
    associations = reconciler.replace_documents(db, ProfileOwner(profile.user_id), category, documents)
    profile.updated_at = _now()
    db.commit()
    return associations


def list_documents(db: Session, actor: Actor) -> dict[DocumentCategory, list[DocumentAssociation]]:
    owner = ProfileOwner(actor.user_id)
    return {category: reconciler.list_associations(db, owner, category) for category in APPLICANT_CATEGORIES}
