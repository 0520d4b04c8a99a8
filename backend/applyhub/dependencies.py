from fastapi import Depends, Header, HTTPException
from sqlalchemy.orm import Session

from applyhub.database import get_db
from applyhub.models.user import User
from applyhub.services.application_service import ApplicationService, application_service
from applyhub.services.auth_service import Actor, auth_service
from applyhub.services.document_store import DocumentStore, document_store


def get_optional_actor(
    authorization: str | None = Header(None),
    db: Session = Depends(get_db),
) -> Actor | None:
    if not authorization:
        return None
    if not authorization.startswith("Bearer "):
        raise HTTPException(status_code=401, detail="Missing bearer token")
    user_id = auth_service.resolve(authorization[7:])
    if user_id is None:
        raise HTTPException(status_code=401, detail="Session expired or invalid token")
    user = db.query(User).filter(User.id == user_id).first()
    if not user:
        raise HTTPException(status_code=401, detail="Unknown user")
    return Actor.for_user(user)


def require_actor(actor: Actor | None = Depends(get_optional_actor)) -> Actor:
    if actor is None:
        raise HTTPException(status_code=401, detail="Authentication required")
    return actor


def get_document_store() -> DocumentStore:
    return document_store


def get_application_service() -> ApplicationService:
    return application_service
