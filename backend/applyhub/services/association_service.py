"""Single-association operations, authorised against whichever owner holds it."""
from sqlalchemy.orm import Session

from applyhub.exceptions import ForbiddenError, NotFoundError
from applyhub.models.application import CustomFieldAnswer
from applyhub.models.document import DocumentAssociation
from applyhub.services import reconciler
from applyhub.services.application_service import ensure_editable, ensure_owner, load_application
from applyhub.services.auth_service import Actor
from applyhub.services.document_store import DocumentStore
from applyhub.services.reconciler import ApplicationOwner, CustomFieldAnswerOwner, ProfileOwner


def _authorize(db: Session, association: DocumentAssociation, actor: Actor, write: bool) -> None:
    owner = reconciler.owner_of(association)
    if isinstance(owner, ProfileOwner):
        if not (actor.is_admin or owner.id == actor.user_id):
            raise ForbiddenError("Document belongs to another applicant")
        return

    if isinstance(owner, ApplicationOwner):
        application = load_application(db, owner.id)
    elif isinstance(owner, CustomFieldAnswerOwner):
        answer = db.query(CustomFieldAnswer).filter(CustomFieldAnswer.id == owner.id).first()
        if answer is None:
            raise NotFoundError(f"Custom field answer {owner.id} not found")
        application = answer.application
    else:
        raise NotFoundError(f"Owner of document association {association.id} not found")
    ensure_owner(application, actor)
    if write:
        ensure_editable(application)


def rename_document(db: Session, association_id: str, new_name: str, actor: Actor) -> DocumentAssociation:
    association = reconciler.get(db, association_id)
    _authorize(db, association, actor, write=True)
    reconciler.rename(db, association_id, new_name)
    db.commit()
    db.refresh(association)
    return association


def delete_document(db: Session, association_id: str, actor: Actor) -> None:
    association = reconciler.get(db, association_id)
    _authorize(db, association, actor, write=True)
    reconciler.delete(db, association_id)
    db.commit()


def download_document(
    db: Session, store: DocumentStore, association_id: str, actor: Actor
) -> tuple[DocumentAssociation, bytes]:
    association = reconciler.get(db, association_id)
    _authorize(db, association, actor, write=False)
    return association, store.download(association.document)
