import uuid

from sqlalchemy.orm import Session

from applyhub.constants import CustomFieldType, DocumentCategory
from applyhub.exceptions import InvalidParameterError, NotFoundError
from applyhub.models.application import CustomFieldAnswer
from applyhub.models.document import DocumentAssociation
from applyhub.models.job import CustomField
from applyhub.services import reconciler
from applyhub.services.application_service import ensure_editable, ensure_owner, load_application
from applyhub.services.auth_service import Actor
from applyhub.services.document_store import DocumentStore
from applyhub.services.reconciler import CustomFieldAnswerOwner
from applyhub.services.uploads import IncomingFile, store_all


def _load_answer(db: Session, answer_id: str) -> CustomFieldAnswer:
    answer = db.query(CustomFieldAnswer).filter(CustomFieldAnswer.id == answer_id).first()
    if not answer:
        raise NotFoundError(f"Custom field answer {answer_id} not found")
    return answer


def answer_field(
    db: Session, application_id: str, custom_field_id: str, value: str | None, actor: Actor
) -> CustomFieldAnswer:
    application = load_application(db, application_id)
    ensure_owner(application, actor)
    ensure_editable(application)

    field = db.query(CustomField).filter(
        CustomField.id == custom_field_id,
        CustomField.job_id == application.job_id,
    ).first()
    if not field:
        raise NotFoundError("Custom field not found for this job")

    answer = db.query(CustomFieldAnswer).filter(
        CustomFieldAnswer.application_id == application.id,
        CustomFieldAnswer.custom_field_id == field.id,
    ).first()
    if answer is None:
        answer = CustomFieldAnswer(id=str(uuid.uuid4()), application_id=application.id, custom_field_id=field.id)
        db.add(answer)
    answer.answer = value
    db.commit()
    db.refresh(answer)
    return answer


def upload_documents(
    db: Session,
    store: DocumentStore,
    answer_id: str,
    files: list[IncomingFile],
    actor: Actor,
) -> list[DocumentAssociation]:
    answer = _load_answer(db, answer_id)
    ensure_owner(answer.application, actor)
    ensure_editable(answer.application)
    if answer.custom_field.field_type != CustomFieldType.FILE_UPLOAD.value:
        raise InvalidParameterError("Custom field does not accept file uploads")

    documents = store_all(db, store, files, actor.user_id)
    associations = reconciler.replace_documents(
        db, CustomFieldAnswerOwner(answer.id), DocumentCategory.CUSTOM, documents
    )
    db.commit()
    return associations


def list_documents(db: Session, answer_id: str, actor: Actor) -> list[DocumentAssociation]:
    answer = _load_answer(db, answer_id)
    ensure_owner(answer.application, actor)
    return reconciler.list_associations(db, CustomFieldAnswerOwner(answer.id))
