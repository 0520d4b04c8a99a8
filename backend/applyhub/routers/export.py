from fastapi import APIRouter, Depends
from fastapi.responses import StreamingResponse
from sqlalchemy.orm import Session

from applyhub.database import get_db
from applyhub.dependencies import get_document_store, require_actor
from applyhub.services.auth_service import Actor
from applyhub.services.document_store import DocumentStore
from applyhub.services.export_service import export_applicant_json, export_applicant_zip

router = APIRouter(prefix="/export", tags=["export"])


@router.get("/json")
async def json_export(db: Session = Depends(get_db), actor: Actor = Depends(require_actor)):
    return export_applicant_json(db, actor)


@router.get("/zip")
async def zip_export(
    db: Session = Depends(get_db),
    store: DocumentStore = Depends(get_document_store),
    actor: Actor = Depends(require_actor),
):
    buf = export_applicant_zip(db, store, actor)
    return StreamingResponse(
        buf,
        media_type="application/zip",
        headers={"Content-Disposition": 'attachment; filename="applyhub_export.zip"'},
    )
