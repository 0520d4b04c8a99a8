import pytest

from applyhub.constants import ApplicationState, DocumentCategory, JobState, UserRole
from applyhub.exceptions import (
    ForbiddenError,
    NotFoundError,
    OperationNotAllowedError,
    UnsupportedError,
)
from applyhub.models.application import Application
from applyhub.models.document import Document, DocumentAssociation
from applyhub.models.profile import ApplicantProfile
from applyhub.services import profile_service, reconciler
from applyhub.services.reconciler import ApplicationOwner, ProfileOwner
from applyhub.services.uploads import IncomingFile


def _pdf(name, content=None):
    return IncomingFile(filename=name, content=content or name.encode() * 4, mime_type="application/pdf")


def _names(db, owner, category):
    return sorted(a.name for a in reconciler.list_associations(db, owner, category))


class TestCreate:
    def test_anonymous_create_is_a_preview(self, db, service, make_job):
        job = make_job()
        application = service.create(db, job.id, None)

        assert application.state == ApplicationState.SAVED.value
        assert application.job_id == job.id
        assert application.id is None
        assert db.query(Application).count() == 0

    def test_unknown_job(self, db, service, make_actor):
        with pytest.raises(NotFoundError):
            service.create(db, "missing-job", make_actor())

    def test_closed_job_rejected(self, db, service, make_actor, make_job):
        job = make_job(state=JobState.CLOSED)
        with pytest.raises(OperationNotAllowedError):
            service.create(db, job.id, make_actor())

    def test_create_provisions_profile_and_snapshot(self, db, service, make_actor, make_job):
        actor = make_actor(first_name="Alan", last_name="Turing")
        application = service.create(db, make_job().id, actor)

        profile = db.query(ApplicantProfile).filter(ApplicantProfile.user_id == actor.user_id).one()
        assert profile.first_name == "Alan"
        assert application.state == ApplicationState.SAVED.value
        assert application.applicant_id == actor.user_id
        assert application.first_name == "Alan"
        assert application.last_name == "Turing"
        assert application.applied_at is None

    def test_create_is_idempotent(self, db, service, make_actor, make_job):
        actor = make_actor()
        job = make_job()
        first = service.create(db, job.id, actor)
        second = service.create(db, job.id, actor)
        assert first.id == second.id
        assert db.query(Application).count() == 1

    def test_prefills_profile_documents(self, db, store, service, make_actor, make_job):
        actor = make_actor()
        profile_service.upload_documents(db, store, actor, DocumentCategory.CV, [_pdf("cv.pdf")])
        profile_service.upload_documents(
            db, store, actor, DocumentCategory.REFERENCE, [_pdf("ref1.pdf"), _pdf("ref2.pdf")]
        )
        profile_ids = {a.id for a in reconciler.list_associations(db, ProfileOwner(actor.user_id))}

        application = service.create(db, make_job().id, actor)
        owner = ApplicationOwner(application.id)

        assert _names(db, owner, DocumentCategory.CV) == ["cv.pdf"]
        assert _names(db, owner, DocumentCategory.REFERENCE) == ["ref1.pdf", "ref2.pdf"]
        # profile keeps its own rows; the application gets distinct rows for the same documents
        assert {a.id for a in reconciler.list_associations(db, ProfileOwner(actor.user_id))} == profile_ids
        app_rows = reconciler.list_associations(db, owner)
        assert not profile_ids & {a.id for a in app_rows}
        assert db.query(Document).count() == 3

    def test_snapshot_does_not_follow_profile_edits(self, db, service, make_actor, make_job):
        actor = make_actor()
        application = service.create(db, make_job().id, actor)
        profile_service.update_profile(db, actor, {"city": "Munich"})

        db.refresh(application)
        assert application.city is None

    def test_concurrent_create_returns_existing_row(self, test_db, service, make_actor, make_job, monkeypatch):
        actor = make_actor()
        job = make_job()

        first_session = test_db()
        winner = service.create(first_session, job.id, actor)
        first_session.close()

        # The second caller checked for an existing row before the winner committed.
        real_find = service._find_existing
        calls = []

        def stale_find(db, applicant_id, job_id):
            calls.append(job_id)
            if len(calls) == 1:
                return None
            return real_find(db, applicant_id, job_id)

        monkeypatch.setattr(service, "_find_existing", stale_find)
        second_session = test_db()
        loser = service.create(second_session, job.id, actor)

        assert loser.id == winner.id
        assert second_session.query(Application).count() == 1
        second_session.close()


class TestUpdate:
    def _application(self, db, service, make_actor, make_job):
        actor = make_actor()
        application = service.create(db, make_job().id, actor)
        return actor, application

    def test_edit_overwrites_fields(self, db, service, make_actor, make_job, notifier):
        actor, application = self._application(db, service, make_actor, make_job)
        updated = service.update(db, application.id, {"motivation": "Robots", "city": "Berlin"}, actor)

        assert updated.motivation == "Robots"
        assert updated.city == "Berlin"
        assert updated.state == ApplicationState.SAVED.value
        assert notifier.events == []
        # the profile is only synced on send
        profile = db.query(ApplicantProfile).filter(ApplicantProfile.user_id == actor.user_id).one()
        assert profile.city is None

    def test_only_owner_may_update(self, db, service, make_actor, make_job):
        _, application = self._application(db, service, make_actor, make_job)
        with pytest.raises(ForbiddenError):
            service.update(db, application.id, {"motivation": "x"}, make_actor())

    def test_admin_may_update(self, db, service, make_actor, make_job):
        _, application = self._application(db, service, make_actor, make_job)
        admin = make_actor(UserRole.ADMIN)
        updated = service.update(db, application.id, {"motivation": "by admin"}, admin)
        assert updated.motivation == "by admin"

    def test_send_syncs_profile_and_notifies(self, db, service, make_actor, make_job, notifier):
        actor, application = self._application(db, service, make_actor, make_job)
        job = application.job

        sent = service.update(
            db, application.id, {"state": ApplicationState.SENT, "city": "Garching", "bachelor_grade": "1.3"}, actor
        )

        assert sent.state == ApplicationState.SENT.value
        assert sent.applied_at is not None
        profile = db.query(ApplicantProfile).filter(ApplicantProfile.user_id == actor.user_id).one()
        assert profile.city == "Garching"
        assert profile.bachelor_grade == "1.3"

        assert notifier.kinds() == ["APPLICATION_SENT", "APPLICATION_RECEIVED"]
        assert notifier.events[0].recipient_id == actor.user_id
        assert notifier.events[1].recipient_id == job.supervising_professor_id
        assert notifier.events[1].job_title == job.title

    def test_send_replaces_profile_documents(self, db, store, service, make_actor, make_job):
        actor = make_actor()
        profile_service.upload_documents(db, store, actor, DocumentCategory.CV, [_pdf("old.pdf")])
        profile_service.upload_documents(db, store, actor, DocumentCategory.REFERENCE, [_pdf("ref.pdf")])
        application = service.create(db, make_job().id, actor)

        service.upload_documents(db, application.id, DocumentCategory.CV, [_pdf("new.pdf")], actor)
        service.delete_documents_of_category(db, application.id, DocumentCategory.REFERENCE, actor)
        service.update(db, application.id, {"state": "SENT"}, actor)

        profile = ProfileOwner(actor.user_id)
        assert _names(db, profile, DocumentCategory.CV) == ["new.pdf"]
        # a category emptied on the application is emptied on the profile
        assert _names(db, profile, DocumentCategory.REFERENCE) == []
        # documents themselves survive
        assert db.query(Document).count() == 3

    def test_resend_does_not_restamp_or_notify(self, db, service, make_actor, make_job, notifier):
        actor, application = self._application(db, service, make_actor, make_job)
        sent = service.update(db, application.id, {"state": "SENT"}, actor)
        applied_at = sent.applied_at
        notifier.events.clear()

        again = service.update(db, application.id, {"state": "SENT", "motivation": None}, actor)

        assert again.applied_at == applied_at
        assert notifier.events == []

    def test_resend_with_edits_rejected(self, db, service, make_actor, make_job, notifier):
        actor, application = self._application(db, service, make_actor, make_job)
        service.update(db, application.id, {"state": "SENT", "city": "Munich"}, actor)
        notifier.events.clear()

        with pytest.raises(OperationNotAllowedError):
            service.update(db, application.id, {"state": "SENT", "city": "Berlin"}, actor)

        db.rollback()
        db.refresh(application)
        assert application.city == "Munich"
        assert notifier.events == []

    def test_withdraw_with_edits_rejected(self, db, service, make_actor, make_job):
        actor, application = self._application(db, service, make_actor, make_job)
        service.update(db, application.id, {"state": "SENT"}, actor)
        with pytest.raises(OperationNotAllowedError):
            service.update(db, application.id, {"state": "WITHDRAWN", "motivation": "bye"}, actor)
        db.rollback()
        db.refresh(application)
        assert application.state == ApplicationState.SENT.value

    def test_saved_edits_leave_profile_untouched(self, db, store, service, make_actor, make_job):
        actor = make_actor()
        profile_service.update_profile(db, actor, {"city": "Munich", "bachelor_grade": "2.0"})
        profile_service.upload_documents(db, store, actor, DocumentCategory.CV, [_pdf("profile-cv.pdf")])
        application = service.create(db, make_job().id, actor)

        service.update(db, application.id, {"city": "Berlin", "bachelor_grade": "1.0"}, actor)
        service.upload_documents(db, application.id, DocumentCategory.CV, [_pdf("draft-cv.pdf")], actor)

        profile = db.query(ApplicantProfile).filter(ApplicantProfile.user_id == actor.user_id).one()
        db.refresh(profile)
        assert profile.city == "Munich"
        assert profile.bachelor_grade == "2.0"
        assert _names(db, ProfileOwner(actor.user_id), DocumentCategory.CV) == ["profile-cv.pdf"]

    def test_sent_application_is_locked(self, db, service, make_actor, make_job):
        actor, application = self._application(db, service, make_actor, make_job)
        service.update(db, application.id, {"state": "SENT"}, actor)
        with pytest.raises(OperationNotAllowedError):
            service.upload_documents(db, application.id, DocumentCategory.CV, [_pdf("late.pdf")], actor)

    def test_reviewer_state_rejected(self, db, service, make_actor, make_job):
        actor, application = self._application(db, service, make_actor, make_job)
        with pytest.raises(OperationNotAllowedError):
            service.update(db, application.id, {"state": "ACCEPTED"}, actor)
        db.refresh(application)
        assert application.state == ApplicationState.SAVED.value

    def test_notifications_follow_commit(self, db, test_db, service, make_actor, make_job, notifier):
        actor, application = self._application(db, service, make_actor, make_job)
        seen = []

        def check_committed(event):
            other = test_db()
            try:
                seen.append(other.query(Application).filter(Application.id == event.application_id).one().state)
            finally:
                other.close()

        notifier.on_send = check_committed
        service.update(db, application.id, {"state": "SENT"}, actor)
        assert seen == ["SENT", "SENT"]


class TestWithdrawAndDelete:
    def test_withdraw_sent(self, db, service, make_actor, make_job, notifier):
        actor = make_actor()
        application = service.create(db, make_job().id, actor)
        service.update(db, application.id, {"state": "SENT"}, actor)
        notifier.events.clear()

        withdrawn = service.withdraw(db, application.id, actor)

        assert withdrawn.state == ApplicationState.WITHDRAWN.value
        assert notifier.kinds() == ["APPLICATION_WITHDRAWN"]
        assert notifier.events[0].recipient_id == actor.user_id

    def test_withdraw_saved(self, db, service, make_actor, make_job, notifier):
        actor = make_actor()
        application = service.create(db, make_job().id, actor)

        withdrawn = service.withdraw(db, application.id, actor)

        assert withdrawn.state == ApplicationState.WITHDRAWN.value
        assert withdrawn.applied_at is None
        assert notifier.kinds() == ["APPLICATION_WITHDRAWN"]
        # a withdrawn draft is no longer editable
        with pytest.raises(OperationNotAllowedError):
            service.update(db, application.id, {"motivation": "again"}, actor)

    def test_withdraw_via_update(self, db, service, make_actor, make_job, notifier):
        actor = make_actor()
        application = service.create(db, make_job().id, actor)
        service.update(db, application.id, {"state": "SENT"}, actor)
        withdrawn = service.update(db, application.id, {"state": "WITHDRAWN"}, actor)
        assert withdrawn.state == ApplicationState.WITHDRAWN.value
        assert notifier.kinds()[-1] == "APPLICATION_WITHDRAWN"

    def test_delete_removes_associations_not_documents(self, db, store, service, make_actor, make_job):
        actor = make_actor()
        profile_service.upload_documents(db, store, actor, DocumentCategory.CV, [_pdf("cv.pdf")])
        application = service.create(db, make_job().id, actor)
        application_id = application.id

        service.delete(db, application_id, actor)

        assert db.query(Application).count() == 0
        assert db.query(DocumentAssociation).filter(DocumentAssociation.application_id == application_id).count() == 0
        assert len(reconciler.list_associations(db, ProfileOwner(actor.user_id))) == 1
        assert db.query(Document).count() == 1

    def test_delete_by_stranger(self, db, service, make_actor, make_job):
        application = service.create(db, make_job().id, make_actor())
        with pytest.raises(ForbiddenError):
            service.delete(db, application.id, make_actor())


class TestApplicationDocuments:
    def test_cv_upload_replaces_previous(self, db, service, make_actor, make_job):
        actor = make_actor()
        application = service.create(db, make_job().id, actor)
        owner = ApplicationOwner(application.id)

        service.upload_documents(db, application.id, DocumentCategory.CV, [_pdf("doc1.pdf")], actor)
        service.upload_documents(db, application.id, DocumentCategory.CV, [_pdf("doc2.pdf")], actor)

        assert _names(db, owner, DocumentCategory.CV) == ["doc2.pdf"]

    def test_cv_keeps_first_file_only(self, db, service, make_actor, make_job):
        actor = make_actor()
        application = service.create(db, make_job().id, actor)

        descriptors = service.upload_documents(
            db, application.id, DocumentCategory.CV, [_pdf("first.pdf"), _pdf("second.pdf")], actor
        )

        assert [d.name for d in descriptors] == ["first.pdf"]

    def test_transcripts_keep_whole_batch(self, db, service, make_actor, make_job):
        actor = make_actor()
        application = service.create(db, make_job().id, actor)

        descriptors = service.upload_documents(
            db, application.id, DocumentCategory.BACHELOR_TRANSCRIPT, [_pdf("t1.pdf"), _pdf("t2.pdf")], actor
        )

        assert sorted(d.name for d in descriptors) == ["t1.pdf", "t2.pdf"]
        assert all(d.size_bytes > 0 for d in descriptors)

    def test_custom_category_unsupported(self, db, service, make_actor, make_job):
        actor = make_actor()
        application = service.create(db, make_job().id, actor)
        with pytest.raises(UnsupportedError):
            service.upload_documents(db, application.id, DocumentCategory.CUSTOM, [_pdf("x.pdf")], actor)

    def test_document_ids_grouped(self, db, service, make_actor, make_job):
        actor = make_actor()
        application = service.create(db, make_job().id, actor)
        service.upload_documents(db, application.id, DocumentCategory.MASTER_TRANSCRIPT, [_pdf("m.pdf")], actor)

        grouped = service.document_ids(db, application.id, actor)

        assert set(grouped) == {
            DocumentCategory.CV,
            DocumentCategory.REFERENCE,
            DocumentCategory.BACHELOR_TRANSCRIPT,
            DocumentCategory.MASTER_TRANSCRIPT,
        }
        assert [d.name for d in grouped[DocumentCategory.MASTER_TRANSCRIPT]] == ["m.pdf"]
        assert grouped[DocumentCategory.CV] == []

    def test_upload_name_drops_directories(self, db, service, make_actor, make_job):
        actor = make_actor()
        application = service.create(db, make_job().id, actor)

        descriptors = service.upload_documents(
            db, application.id, DocumentCategory.REFERENCE, [_pdf("../x/ref.pdf"), _pdf("C:\\docs\\letter.pdf")], actor
        )

        assert sorted(d.name for d in descriptors) == ["letter.pdf", "ref.pdf"]
