"""Document association reconciliation.

An association links one owner (applicant profile, application or custom
field answer) to one stored ``Document`` under a category. Updating an
owner's documents for a category is a full replace: every existing
association is removed and one fresh association is created per requested
document. Association ids are therefore not stable across a replace.
"""
import logging
import uuid
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Iterable, Union

from sqlalchemy.orm import Session

from applyhub.constants import DocumentCategory
from applyhub.exceptions import InvalidParameterError, NotFoundError
from applyhub.models.document import Document, DocumentAssociation
from applyhub.utils.filesystem import display_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProfileOwner:
    id: str
    column = "applicant_id"


@dataclass(frozen=True)
class ApplicationOwner:
    id: str
    column = "application_id"


@dataclass(frozen=True)
class CustomFieldAnswerOwner:
    id: str
    column = "custom_field_answer_id"


OwnerRef = Union[ProfileOwner, ApplicationOwner, CustomFieldAnswerOwner]


def apply_owner(owner: OwnerRef, association: DocumentAssociation) -> None:
    """Point the association at exactly this owner."""
    association.applicant_id = None
    association.application_id = None
    association.custom_field_answer_id = None
    setattr(association, owner.column, owner.id)


def owner_of(association: DocumentAssociation) -> OwnerRef:
    if association.applicant_id is not None:
        return ProfileOwner(association.applicant_id)
    if association.application_id is not None:
        return ApplicationOwner(association.application_id)
    if association.custom_field_answer_id is not None:
        return CustomFieldAnswerOwner(association.custom_field_answer_id)
    raise NotFoundError(f"Document association {association.id} has no owner")


@dataclass(frozen=True)
class DocumentDescriptor:
    id: str
    name: str
    category: str
    mime_type: str
    size_bytes: int


def descriptor(association: DocumentAssociation) -> DocumentDescriptor:
    return DocumentDescriptor(
        id=association.id,
        name=association.name,
        category=association.category,
        mime_type=association.document.mime_type,
        size_bytes=association.document.size_bytes,
    )


def list_associations(
    db: Session, owner: OwnerRef, category: DocumentCategory | None = None
) -> list[DocumentAssociation]:
    query = db.query(DocumentAssociation).filter(
        getattr(DocumentAssociation, owner.column) == owner.id
    )
    if category is not None:
        query = query.filter(DocumentAssociation.category == category.value)
    return query.order_by(DocumentAssociation.created_at.asc(), DocumentAssociation.name.asc()).all()


def reconcile(
    db: Session,
    owner: OwnerRef,
    category: DocumentCategory,
    existing: Iterable[DocumentAssociation],
    new_documents: Iterable[tuple[Document, str]],
) -> list[DocumentAssociation]:
    """Replace ``existing`` with one new association per ``(document, name)``.

    Cardinality is not checked here; callers decide how many documents a
    category may hold. Changes are flushed, never committed, so the replace
    becomes visible only with the caller's transaction.
    """
    removed = 0
    for association in existing:
        db.delete(association)
        removed += 1
    db.flush()

    now = datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")
    created: list[DocumentAssociation] = []
    for document, name in new_documents:
        association = DocumentAssociation(
            id=str(uuid.uuid4()),
            document_id=document.id,
            category=category.value,
            name=name,
            created_at=now,
        )
        apply_owner(owner, association)
        association.document = document
        db.add(association)
        created.append(association)
    db.flush()

    logger.debug(
        "Reconciled %s %s category=%s removed=%d added=%d",
        type(owner).__name__, owner.id, category.value, removed, len(created),
    )
    return created


def replace_documents(
    db: Session,
    owner: OwnerRef,
    category: DocumentCategory,
    new_documents: Iterable[tuple[Document, str]],
) -> list[DocumentAssociation]:
    return reconcile(db, owner, category, list_associations(db, owner, category), list(new_documents))


def copy_associations(
    db: Session, source: OwnerRef, target: OwnerRef, category: DocumentCategory
) -> list[DocumentAssociation]:
    """Make target's documents for category equal to source's, by document identity."""
    wanted = [(a.document, a.name) for a in list_associations(db, source, category)]
    return replace_documents(db, target, category, wanted)


def get(db: Session, association_id: str | None) -> DocumentAssociation:
    if not association_id:
        raise InvalidParameterError("association id is required")
    association = db.query(DocumentAssociation).filter(DocumentAssociation.id == association_id).first()
    if not association:
        raise NotFoundError(f"Document association {association_id} not found")
    return association


def rename(db: Session, association_id: str, new_name: str) -> DocumentAssociation:
    association = get(db, association_id)
    name = display_name(new_name or "")
    if not name:
        raise InvalidParameterError("name must not be empty")
    association.name = name
    db.flush()
    return association


def delete(db: Session, association_id: str) -> None:
    """Remove one association; the underlying Document is left in place."""
    association = get(db, association_id)
    db.delete(association)
    db.flush()


def delete_category(db: Session, owner: OwnerRef, category: DocumentCategory) -> int:
    existing = list_associations(db, owner, category)
    reconcile(db, owner, category, existing, [])
    return len(existing)
