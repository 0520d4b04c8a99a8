"""Application lifecycle: creation, edits, submission, withdrawal, deletion.

State changes go through ``lifecycle.TRANSITIONS``; this module carries out
the effects a transition names. All writes of one operation share a single
commit, and notifications are handed to the dispatcher only after it.
"""
import logging
import uuid
from datetime import datetime, timezone

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from applyhub.constants import APPLICANT_CATEGORIES, ApplicationState, DocumentCategory, JobState
from applyhub.exceptions import (
    ForbiddenError,
    InvalidParameterError,
    NotFoundError,
    OperationNotAllowedError,
)
from applyhub.models.application import Application
from applyhub.models.job import Job
from applyhub.models.profile import SNAPSHOT_FIELDS, copy_snapshot
from applyhub.services import lifecycle, reconciler
from applyhub.services.auth_service import Actor
from applyhub.services.document_store import DocumentStore, document_store
from applyhub.services.lifecycle import Action, Effect, Transition
from applyhub.services.notification_service import (
    NotificationDispatcher,
    NotificationEvent,
    NotificationKind,
    dispatcher,
)
from applyhub.services.profile_service import get_or_create_profile
from applyhub.services.reconciler import ApplicationOwner, DocumentDescriptor, ProfileOwner
from applyhub.services.uploads import IncomingFile, accepted_files, store_all

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = SNAPSHOT_FIELDS + ("desired_start_date", "motivation", "projects", "special_skills")

_NOTIFICATION_KINDS = {
    Effect.NOTIFY_SENT: NotificationKind.APPLICATION_SENT,
    Effect.NOTIFY_RECEIVED: NotificationKind.APPLICATION_RECEIVED,
    Effect.NOTIFY_WITHDRAWN: NotificationKind.APPLICATION_WITHDRAWN,
}


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def load_application(db: Session, application_id: str | None) -> Application:
    if not application_id:
        raise InvalidParameterError("application id is required")
    application = db.query(Application).filter(Application.id == application_id).first()
    if not application:
        raise NotFoundError(f"Application {application_id} not found")
    return application


def ensure_owner(application: Application, actor: Actor | None) -> None:
    if actor is None:
        raise ForbiddenError("Authentication required")
    if actor.is_admin or application.applicant_id == actor.user_id:
        return
    raise ForbiddenError("Only the applicant may change this application")


def ensure_editable(application: Application) -> None:
    if not lifecycle.is_editable(application.state):
        raise OperationNotAllowedError(
            f"Application in state {application.state} can no longer be changed"
        )


class ApplicationService:
    def __init__(self, store: DocumentStore, notifier: NotificationDispatcher):
        self.store = store
        self.notifier = notifier

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def get(self, db: Session, application_id: str, actor: Actor | None) -> Application:
        application = load_application(db, application_id)
        ensure_owner(application, actor)
        return application

    def list_for_applicant(
        self, db: Session, actor: Actor, page: int = 1, per_page: int = 25
    ) -> tuple[list[Application], int]:
        query = db.query(Application).filter(Application.applicant_id == actor.user_id)
        total = query.count()
        items = (
            query.order_by(Application.updated_at.desc())
            .offset((page - 1) * per_page)
            .limit(per_page)
            .all()
        )
        return items, total

    def document_ids(
        self, db: Session, application_id: str, actor: Actor
    ) -> dict[DocumentCategory, list[DocumentDescriptor]]:
        application = self.get(db, application_id, actor)
        owner = ApplicationOwner(application.id)
        return {
            category: [reconciler.descriptor(a) for a in reconciler.list_associations(db, owner, category)]
            for category in APPLICANT_CATEGORIES
        }

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def create(self, db: Session, job_id: str | None, actor: Actor | None) -> Application:
        if not job_id:
            raise InvalidParameterError("job id is required")
        job = db.query(Job).filter(Job.id == job_id).first()
        if not job:
            raise NotFoundError(f"Job {job_id} not found")

        if actor is None:
            # Anonymous preview: never added to the session.
            return Application(job_id=job.id, state=ApplicationState.SAVED.value)

        existing = self._find_existing(db, actor.user_id, job.id)
        if existing:
            return existing
        if job.state != JobState.OPEN.value:
            raise OperationNotAllowedError("Job is not accepting applications")

        profile = get_or_create_profile(db, actor.user_id)
        now = _now()
        application = Application(
            id=str(uuid.uuid4()),
            applicant_id=profile.user_id,
            job_id=job.id,
            state=ApplicationState.SAVED.value,
            created_at=now,
            updated_at=now,
        )
        copy_snapshot(profile, application)
        db.add(application)
        try:
            db.flush()
        except IntegrityError:
            db.rollback()
            existing = self._find_existing(db, actor.user_id, job.id)
            if existing is None:
                raise
            logger.info("Application for user %s and job %s created concurrently", actor.user_id, job.id)
            return existing

        source, target = ProfileOwner(profile.user_id), ApplicationOwner(application.id)
        for category in APPLICANT_CATEGORIES:
            reconciler.copy_associations(db, source, target, category)

        db.commit()
        db.refresh(application)
        logger.info("Created application %s for job %s", application.id, job.id)
        return application

    def update(self, db: Session, application_id: str, edits: dict, actor: Actor) -> Application:
        application = load_application(db, application_id)
        ensure_owner(application, actor)

        action = lifecycle.action_for_update(application.state, edits.get("state"))
        transition = lifecycle.resolve(application.state, action)
        changes = {
            key: value
            for key, value in edits.items()
            if key in EDITABLE_FIELDS and getattr(application, key) != value
        }
        if action in (Action.EDIT, Action.SUBMIT):
            for key, value in changes.items():
                setattr(application, key, value)
        elif changes:
            raise OperationNotAllowedError(
                f"Application in state {application.state} can no longer be changed: "
                + ", ".join(sorted(changes))
            )

        events = self._apply(db, application, transition)
        db.commit()
        db.refresh(application)
        self._dispatch(events)
        return application

    def withdraw(self, db: Session, application_id: str, actor: Actor) -> Application:
        application = load_application(db, application_id)
        ensure_owner(application, actor)
        transition = lifecycle.resolve(application.state, Action.WITHDRAW)
        events = self._apply(db, application, transition)
        db.commit()
        db.refresh(application)
        self._dispatch(events)
        return application

    def delete(self, db: Session, application_id: str, actor: Actor) -> None:
        application = load_application(db, application_id)
        ensure_owner(application, actor)
        lifecycle.resolve(application.state, Action.DELETE)
        db.delete(application)
        db.commit()
        logger.info("Deleted application %s", application_id)

    # ------------------------------------------------------------------
    # Documents
    # ------------------------------------------------------------------

    def upload_documents(
        self,
        db: Session,
        application_id: str,
        category: DocumentCategory,
        files: list[IncomingFile],
        actor: Actor,
    ) -> list[DocumentDescriptor]:
        application = load_application(db, application_id)
        ensure_owner(application, actor)
        ensure_editable(application)
        files = accepted_files(category, files)

        documents = store_all(db, self.store, files, actor.user_id)
        associations = reconciler.replace_documents(db, ApplicationOwner(application.id), category, documents)
        application.updated_at = _now()
        db.commit()
        return [reconciler.descriptor(a) for a in associations]

    def delete_documents_of_category(
        self, db: Session, application_id: str, category: DocumentCategory, actor: Actor
    ) -> int:
        application = load_application(db, application_id)
        ensure_owner(application, actor)
        ensure_editable(application)
        removed = reconciler.delete_category(db, ApplicationOwner(application.id), category)
        application.updated_at = _now()
        db.commit()
        return removed

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _find_existing(self, db: Session, applicant_id: str, job_id: str) -> Application | None:
        return (
            db.query(Application)
            .filter(Application.applicant_id == applicant_id, Application.job_id == job_id)
            .first()
        )

    def _apply(self, db: Session, application: Application, transition: Transition) -> list[NotificationEvent]:
        previous = application.state
        now = _now()
        for effect in transition.state_effects:
            if effect == Effect.STAMP_APPLIED_AT:
                if application.applied_at is None:
                    application.applied_at = now
            elif effect == Effect.SYNC_PROFILE_FIELDS:
                profile = application.applicant
                copy_snapshot(application, profile)
                profile.updated_at = now
            elif effect == Effect.SYNC_PROFILE_DOCUMENTS:
                source = ApplicationOwner(application.id)
                target = ProfileOwner(application.applicant_id)
                for category in APPLICANT_CATEGORIES:
                    reconciler.copy_associations(db, source, target, category)

        if transition.target is not None:
            application.state = transition.target.value
        application.updated_at = now
        if previous != application.state:
            logger.info("Application %s: %s -> %s", application.id, previous, application.state)
        return [self._event(effect, application) for effect in transition.notifications]

    def _event(self, effect: Effect, application: Application) -> NotificationEvent:
        job = application.job
        recipient = job.supervising_professor_id if effect == Effect.NOTIFY_RECEIVED else application.applicant_id
        return NotificationEvent(
            kind=_NOTIFICATION_KINDS[effect],
            application_id=application.id,
            recipient_id=recipient,
            job_title=job.title,
        )

    def _dispatch(self, events: list[NotificationEvent]) -> None:
        for event in events:
            self.notifier.send_async(event)


application_service = ApplicationService(document_store, dispatcher)
