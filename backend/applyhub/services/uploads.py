"""Category rules applied to an upload batch before reconciliation."""
import logging
from dataclasses import dataclass

from sqlalchemy.orm import Session

from applyhub.constants import APPLICANT_CATEGORIES, SINGLE_DOCUMENT_CATEGORIES, DocumentCategory
from applyhub.exceptions import InvalidParameterError, UnsupportedError
from applyhub.models.document import Document
from applyhub.services.document_store import DocumentStore
from applyhub.utils.filesystem import display_name

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class IncomingFile:
    filename: str
    content: bytes
    mime_type: str | None = None


def parse_category(raw: str) -> DocumentCategory:
    try:
        return DocumentCategory(raw.strip().upper())
    except (ValueError, AttributeError):
        raise InvalidParameterError(f"Unknown document category: {raw}")


def accepted_files(category: DocumentCategory, files: list[IncomingFile]) -> list[IncomingFile]:
    """Apply the per-category batch policy for applicant documents.

    Single-document categories keep only the first file of the batch.
    """
    if category not in APPLICANT_CATEGORIES:
        raise UnsupportedError(f"Uploading {category.value} documents is not supported here")
    if category in SINGLE_DOCUMENT_CATEGORIES and len(files) > 1:
        logger.warning("Ignoring %d extra file(s) for single-document category %s", len(files) - 1, category.value)
        return files[:1]
    return files


def store_all(
    db: Session, store: DocumentStore, files: list[IncomingFile], uploader_id: str
) -> list[tuple[Document, str]]:
    return [
        (store.upload(db, f.content, f.filename, f.mime_type, uploader_id), display_name(f.filename))
        for f in files
    ]
