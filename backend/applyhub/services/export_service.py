"""Export of everything stored about one applicant."""
import io
import json
import zipfile

from sqlalchemy.orm import Session

from applyhub.constants import APPLICANT_CATEGORIES
from applyhub.models.application import Application
from applyhub.models.profile import SNAPSHOT_FIELDS, ApplicantProfile
from applyhub.services import reconciler
from applyhub.services.auth_service import Actor
from applyhub.services.document_store import DocumentStore
from applyhub.services.reconciler import ApplicationOwner, OwnerRef, ProfileOwner
from applyhub.utils.filesystem import sanitize_filename


def _documents(db: Session, owner: OwnerRef) -> list[dict]:
    out = []
    for category in APPLICANT_CATEGORIES:
        for association in reconciler.list_associations(db, owner, category):
            out.append({
                "id": association.id,
                "name": association.name,
                "category": association.category,
                "sha256": association.document.sha256,
                "mime_type": association.document.mime_type,
                "size_bytes": association.document.size_bytes,
            })
    return out


def export_applicant_json(db: Session, actor: Actor) -> dict:
    data = {"version": "1", "user_id": actor.user_id, "profile": None, "applications": []}

    profile = db.query(ApplicantProfile).filter(ApplicantProfile.user_id == actor.user_id).first()
    if profile:
        data["profile"] = {field: getattr(profile, field) for field in SNAPSHOT_FIELDS}
        data["profile"]["documents"] = _documents(db, ProfileOwner(profile.user_id))

    applications = (
        db.query(Application)
        .filter(Application.applicant_id == actor.user_id)
        .order_by(Application.created_at)
        .all()
    )
    for application in applications:
        entry = {
            "id": application.id,
            "job_id": application.job_id,
            "job_title": application.job.title,
            "state": application.state,
            "applied_at": application.applied_at,
            "desired_start_date": application.desired_start_date,
            "motivation": application.motivation,
            "projects": application.projects,
            "special_skills": application.special_skills,
        }
        entry.update({field: getattr(application, field) for field in SNAPSHOT_FIELDS})
        entry["documents"] = _documents(db, ApplicationOwner(application.id))
        data["applications"].append(entry)
    return data


def export_applicant_zip(db: Session, store: DocumentStore, actor: Actor) -> io.BytesIO:
    data = export_applicant_json(db, actor)
    buf = io.BytesIO()
    with zipfile.ZipFile(buf, "w", zipfile.ZIP_DEFLATED) as zf:
        zf.writestr("data.json", json.dumps(data, indent=2))
        owners: list[tuple[str, OwnerRef]] = []
        if data["profile"] is not None:
            owners.append(("profile", ProfileOwner(actor.user_id)))
        owners.extend((f"applications/{a['id']}", ApplicationOwner(a["id"])) for a in data["applications"])
        for prefix, owner in owners:
            for association in reconciler.list_associations(db, owner):
                arcname = f"{prefix}/{association.category}/{association.id}_{sanitize_filename(association.name)}"
                zf.writestr(arcname, store.download(association.document))
    buf.seek(0)
    return buf
