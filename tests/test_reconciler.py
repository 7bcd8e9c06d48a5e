"""Tests for status reconciliation against tracked jobs."""
from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from jobtrack.gmail.classifier import Verdict, classify
from jobtrack.gmail.scanner import EmailUpdateRecord
from jobtrack.persistence.models import StatusHistory
from jobtrack.tracking.job_store import JobStore
from jobtrack.tracking.reconciler import StatusReconciler, can_transition, company_matches


def make_update(company_key="acme", suggested_status="interviewing", verdict=Verdict.POSITIVE,
                subject="Interview with Acme", message_id="m1"):
    return EmailUpdateRecord(
        company_key=company_key,
        verdict=verdict,
        suggested_status=suggested_status,
        subject=subject,
        sender=f"hr@{company_key}.io",
        timestamp=datetime(2026, 10, 15, 9, 30, tzinfo=timezone.utc),
        message_id=message_id,
    )


def update_from_email(subject, sender, message_id="m1"):
    result = classify(subject, "", sender)
    return EmailUpdateRecord(
        company_key=result.company_key,
        verdict=result.verdict,
        suggested_status=result.suggested_status,
        subject=subject,
        sender=sender,
        timestamp=datetime(2026, 10, 15, 9, 30, tzinfo=timezone.utc),
        message_id=message_id,
    )


@pytest.fixture
def store(test_db):
    return JobStore(test_db)


@pytest.fixture
def reconciler(store):
    return StatusReconciler(store)


class TestCompanyMatching:
    @pytest.mark.parametrize(
        "key,name",
        [
            ("acme", "Acme"),
            ("acme", "Acme Corp"),
            ("amazonaws", "Amazon"),
            ("Globex", "globex"),
        ],
    )
    def test_matches_in_either_direction(self, key, name):
        assert company_matches(key, name) is True

    @pytest.mark.parametrize("key,name", [("acme", "Globex"), ("", "Acme"), ("acme", "")])
    def test_non_matches(self, key, name):
        assert company_matches(key, name) is False


class TestTransitions:
    @pytest.mark.parametrize("current", ["offered", "rejected"])
    def test_terminal_statuses_are_final(self, current):
        assert can_transition(current, "interviewing") is False

    def test_same_status_is_not_a_transition(self):
        assert can_transition("interviewing", "interviewing") is False

    def test_no_suggestion(self):
        assert can_transition("applied", None) is False

    def test_any_non_terminal_may_move(self):
        assert can_transition("saved", "rejected") is True
        assert can_transition("interviewing", "offered") is True


class TestReconcile:
    """Tests for applying one update record."""

    def test_positive_update_moves_job(self, reconciler, store, job_factory):
        job = job_factory("Acme", status="applied")

        result = reconciler.reconcile(make_update(), store.find_by_owner())

        assert result.applied is True
        assert result.job_ids == [job.id]
        assert store.get(job.id).status == "interviewing"

    def test_no_matching_job(self, reconciler, store, job_factory):
        job = job_factory("Globex", status="applied")

        result = reconciler.reconcile(make_update(), store.find_by_owner())

        assert result.applied is False
        assert store.get(job.id).status == "applied"

    def test_no_suggestion_changes_nothing(self, reconciler, store, job_factory):
        job = job_factory("Acme", status="applied")

        result = reconciler.reconcile(make_update(suggested_status=None), store.find_by_owner())

        assert result.applied is False
        assert store.get(job.id).status == "applied"

    @pytest.mark.parametrize("terminal", ["offered", "rejected"])
    def test_terminal_job_is_left_alone(self, reconciler, store, job_factory, terminal):
        job = job_factory("Acme", status=terminal)

        result = reconciler.reconcile(make_update(), store.find_by_owner())

        assert result.applied is False
        assert store.get(job.id).status == terminal

    def test_all_matching_jobs_are_updated(self, reconciler, store, job_factory):
        backend = job_factory("Amazon", external_id="a-1", status="applied")
        aws = job_factory("Amazon Web Services", external_id="a-2", status="saved")
        other = job_factory("Globex", external_id="g-1", status="applied")

        result = reconciler.reconcile(
            make_update(company_key="amazon", suggested_status="rejected", verdict=Verdict.NEGATIVE),
            store.find_by_owner(),
        )

        assert sorted(result.job_ids) == sorted([backend.id, aws.id])
        assert store.get(backend.id).status == "rejected"
        assert store.get(aws.id).status == "rejected"
        assert store.get(other.id).status == "applied"

    def test_stale_read_loses_to_concurrent_change(self, reconciler, store, job_factory, test_db):
        job = job_factory("Acme", status="applied")
        snapshot = [SimpleNamespace(id=job.id, status="applied", company_name="Acme")]

        # Another writer rejects the job after the snapshot was read
        store.compare_and_set_status(job.id, "applied", "rejected", source="manual")

        result = reconciler.reconcile(make_update(), snapshot)

        assert result.applied is False
        assert store.get(job.id).status == "rejected"
        assert test_db.query(StatusHistory).filter_by(source="email").count() == 0


class TestReconcileAll:
    """Tests for batches and repeated scans."""

    def test_idempotent_on_repeat(self, reconciler, store, job_factory, test_db):
        job = job_factory("Acme", status="applied")
        updates = [make_update()]

        first = reconciler.reconcile_all(updates, store.find_by_owner())
        second = reconciler.reconcile_all(updates, store.find_by_owner())

        assert first.applied_count == 1
        assert second.applied_count == 0
        assert store.get(job.id).status == "interviewing"
        assert test_db.query(StatusHistory).filter_by(job_id=job.id).count() == 1

    def test_later_record_sees_earlier_change(self, reconciler, store, job_factory):
        job = job_factory("Acme", status="applied")
        updates = [
            make_update(message_id="m1"),
            make_update(suggested_status="rejected", verdict=Verdict.NEGATIVE, message_id="m2"),
            make_update(message_id="m3"),
        ]

        summary = reconciler.reconcile_all(updates, store.find_by_owner())

        assert summary.applied_count == 2
        assert summary.touched_job_ids == [job.id]
        assert store.get(job.id).status == "rejected"

    def test_every_record_is_logged(self, reconciler, store, job_factory):
        job_factory("Acme", status="applied")
        updates = [make_update(message_id="m1"), make_update(company_key="initech", message_id="m2")]

        reconciler.reconcile_all(updates, store.find_by_owner())

        entries = {e.message_id: e for e in store.get_email_updates()}
        assert entries["m1"].applied is True
        assert len(entries["m1"].job_ids) == 1
        assert entries["m2"].applied is False
        assert entries["m2"].job_ids == []

    def test_logging_can_be_disabled(self, store, job_factory):
        job_factory("Acme", status="applied")

        StatusReconciler(store, log_updates=False).reconcile_all([make_update()], store.find_by_owner())

        assert store.get_email_updates() == []


class TestEndToEnd:
    """Classifier output flowing into reconciliation."""

    def test_interview_invitation_moves_applied_job(self, reconciler, store, job_factory):
        job = job_factory("Acme", status="applied")
        update = update_from_email("Interview invitation - Acme Corp", "hr@acme.io")

        assert update.verdict == Verdict.POSITIVE
        assert update.company_key == "acme"
        assert update.suggested_status == "interviewing"

        reconciler.reconcile_all([update], store.find_by_owner())

        assert store.get(job.id).status == "interviewing"

    def test_rejection_email_rejects_job(self, reconciler, store, job_factory):
        job = job_factory("Globex", status="interviewing")
        update = update_from_email(
            "Unfortunately, we have decided to move forward with other candidates",
            "talent@globex.com",
        )

        assert update.verdict == Verdict.NEGATIVE
        assert update.suggested_status == "rejected"

        reconciler.reconcile_all([update], store.find_by_owner())

        assert store.get(job.id).status == "rejected"

    def test_same_email_in_two_scans(self, reconciler, store, job_factory, test_db):
        job = job_factory("Acme", status="applied")
        update = update_from_email("Interview invitation - Acme Corp", "hr@acme.io")

        first = reconciler.reconcile_all([update], store.find_by_owner())
        second = reconciler.reconcile_all([update], store.find_by_owner())

        assert first.applied_count == 1
        assert second.applied_count == 0
        assert store.get(job.id).status == "interviewing"
        assert test_db.query(StatusHistory).filter_by(job_id=job.id).count() == 1


class TestLastUpdated:
    """Reconciliation touches last_updated only on a real status change."""

    @staticmethod
    def _backdate(test_db, job):
        job.last_updated = datetime.now(timezone.utc) - timedelta(days=2)
        test_db.commit()
        test_db.expire_all()
        return job.last_updated

    def test_applied_update_moves_it(self, reconciler, store, job_factory, test_db):
        job = job_factory("Acme", status="applied")
        before = self._backdate(test_db, job)

        reconciler.reconcile(make_update(), store.find_by_owner())

        test_db.expire_all()
        assert job.last_updated > before

    def test_repeat_reconcile_keeps_it(self, reconciler, store, job_factory, test_db):
        job = job_factory("Acme", status="applied")
        reconciler.reconcile_all([make_update()], store.find_by_owner())
        after_first = self._backdate(test_db, job)

        reconciler.reconcile_all([make_update()], store.find_by_owner())

        test_db.expire_all()
        assert job.last_updated == after_first

    @pytest.mark.parametrize("terminal", ["offered", "rejected"])
    def test_terminal_skip_keeps_it(self, reconciler, store, job_factory, test_db, terminal):
        job = job_factory("Acme", status=terminal)
        before = self._backdate(test_db, job)

        reconciler.reconcile(make_update(), store.find_by_owner())

        test_db.expire_all()
        assert job.last_updated == before

    def test_unmatched_job_keeps_it(self, reconciler, store, job_factory, test_db):
        job = job_factory("Globex", status="applied")
        before = self._backdate(test_db, job)

        reconciler.reconcile(make_update(), store.find_by_owner())

        test_db.expire_all()
        assert job.last_updated == before
