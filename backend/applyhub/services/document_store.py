"""Content-addressed document storage.

Bytes are written once under ``documents/<sha256>.<ext>`` and made read-only;
the matching ``Document`` row is shared by every upload of the same content.
"""
import hashlib
import logging
import os
import uuid
from datetime import datetime, timezone
from pathlib import Path

from sqlalchemy.orm import Session

from applyhub.config import settings
from applyhub.exceptions import NotFoundError, UploadError
from applyhub.models.document import Document
from applyhub.utils.filesystem import ensure_data_dirs, file_extension

logger = logging.getLogger(__name__)


def sha256_bytes(data: bytes) -> str:
    return hashlib.sha256(data).hexdigest()


def sha256_file(file_path: Path) -> str:
    h = hashlib.sha256()
    with open(file_path, "rb") as f:
        for chunk in iter(lambda: f.read(8192), b""):
            h.update(chunk)
    return h.hexdigest()


class DocumentStore:
    def __init__(self, data_path: Path | None = None):
        self._data_path = data_path

    @property
    def root(self) -> Path:
        return (self._data_path or settings.data_path) / "documents"

    def upload(
        self,
        db: Session,
        content: bytes,
        filename: str | None,
        mime_type: str | None,
        uploader_id: str | None,
    ) -> Document:
        ext = self._validate(content, filename)
        file_hash = sha256_bytes(content)

        ensure_data_dirs(self._data_path)
        stored_name = f"{file_hash}.{ext}"
        path = self.root / stored_name
        try:
            if not path.exists():
                path.write_bytes(content)
                os.chmod(path, 0o444)
        except OSError as exc:
            raise UploadError(f"Cannot store file: {exc}") from exc

        existing = db.query(Document).filter(Document.sha256 == file_hash).first()
        if existing:
            logger.debug("Reusing document %s for hash %s", existing.id, file_hash[:12])
            return existing

        doc = Document(
            id=str(uuid.uuid4()),
            sha256=file_hash,
            stored_path=f"documents/{stored_name}",
            mime_type=mime_type or "application/octet-stream",
            size_bytes=len(content),
            uploaded_by=uploader_id,
            created_at=datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ"),
        )
        db.add(doc)
        db.flush()
        return doc

    def download(self, document: Document) -> bytes:
        path = self.full_path(document)
        if not path.exists():
            raise NotFoundError("Document file missing from storage")
        return path.read_bytes()

    def verify(self, document: Document) -> bool:
        """Re-hash the stored file and compare against the recorded SHA-256."""
        path = self.full_path(document)
        if not path.exists():
            raise NotFoundError("Document file missing from storage")
        return sha256_file(path) == document.sha256

    def full_path(self, document: Document) -> Path:
        base = self._data_path or settings.data_path
        path = (base / document.stored_path).resolve()
        if not path.is_relative_to(self.root.resolve()):
            raise UploadError("Stored path lies outside storage root")
        return path

    def _validate(self, content: bytes, filename: str | None) -> str:
        if not content or not filename:
            raise UploadError("Empty file or missing filename")
        max_bytes = settings.max_upload_bytes
        if len(content) > max_bytes:
            raise UploadError(f"File too large (max {max_bytes} bytes)", status_code=413)
        ext = file_extension(filename)
        if not ext:
            raise UploadError("Missing file extension")
        if ext not in settings.allowed_extensions:
            raise UploadError(f"File extension not allowed: .{ext}")
        return ext


document_store = DocumentStore()
