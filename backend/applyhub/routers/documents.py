from fastapi import APIRouter, Depends, HTTPException, UploadFile
from fastapi.responses import Response
from sqlalchemy.orm import Session

from applyhub.config import settings
from applyhub.database import get_db
from applyhub.dependencies import get_document_store, require_actor
from applyhub.models.document import DocumentAssociation
from applyhub.schemas.document import DocumentDescriptorResponse, DocumentRename
from applyhub.services import association_service, reconciler
from applyhub.services.auth_service import Actor
from applyhub.services.document_store import DocumentStore
from applyhub.services.reconciler import DocumentDescriptor
from applyhub.services.uploads import IncomingFile
from applyhub.utils.filesystem import sanitize_filename

router = APIRouter(prefix="/documents", tags=["documents"])


def descriptor_to_response(d: DocumentDescriptor) -> DocumentDescriptorResponse:
    return DocumentDescriptorResponse(
        id=d.id,
        name=d.name,
        category=d.category,
        mime_type=d.mime_type,
        size_bytes=d.size_bytes,
    )


def association_to_response(association: DocumentAssociation) -> DocumentDescriptorResponse:
    return descriptor_to_response(reconciler.descriptor(association))


async def read_uploads(files: list[UploadFile]) -> list[IncomingFile]:
    """Read every part into memory, rejecting oversized files early."""
    max_bytes = settings.max_upload_bytes
    incoming: list[IncomingFile] = []
    for file in files:
        size = 0
        chunks: list[bytes] = []
        while True:
            chunk = await file.read(1024 * 1024)
            if not chunk:
                break
            size += len(chunk)
            if size > max_bytes:
                raise HTTPException(status_code=413, detail=f"File too large (max {max_bytes} bytes)")
            chunks.append(chunk)
        incoming.append(IncomingFile(filename=file.filename or "", content=b"".join(chunks), mime_type=file.content_type))
    return incoming


@router.put("/{association_id}/name", response_model=DocumentDescriptorResponse)
async def rename_document(
    association_id: str,
    req: DocumentRename,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    association = association_service.rename_document(db, association_id, req.name, actor)
    return association_to_response(association)


@router.delete("/{association_id}", status_code=204)
async def delete_document(
    association_id: str,
    db: Session = Depends(get_db),
    actor: Actor = Depends(require_actor),
):
    association_service.delete_document(db, association_id, actor)
    return Response(status_code=204)


@router.get("/{association_id}/download")
async def download_document(
    association_id: str,
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
    actor: Actor = Depends(require_actor),
):
    association, content = association_service.download_document(db, store, association_id, actor)
    return Response(
        content=content,
        media_type=association.document.mime_type or "application/octet-stream",
        headers={"Content-Disposition": f'attachment; filename="{sanitize_filename(association.name)}"'},
    )
