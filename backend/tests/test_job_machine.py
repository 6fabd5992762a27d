from datetime import datetime, timezone
from types import SimpleNamespace

import pytest

from marketplace.errors import InvalidTransition, ValidationError
from marketplace.services.job_machine import (
    TRANSITIONS,
    JobEvent,
    JobStatus,
    allowed_events,
    apply_event,
    can_apply,
)

NOW = datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)


def _job(status="draft", **fields):
    base = {
        "status": status, "professional_id": None, "final_price": None,
        "published_at": None, "assigned_at": None, "started_at": None, "completed_at": None,
        "delivered_at": None, "cancelled_at": None, "cancellation_reason": None,
        "disputed_at": None, "disputed_by": None, "dispute_reason": None, "updated_at": None,
    }
    base.update(fields)
    return SimpleNamespace(**base)


class TestTransitions:
    def test_every_event_has_a_rule(self):
        assert set(TRANSITIONS) == set(JobEvent)

    def test_publish_sets_published_at(self):
        job = _job("draft")
        assert apply_event(job, JobEvent.PUBLISH, NOW) == (JobStatus.DRAFT, JobStatus.PENDING)
        assert job.status == "pending"
        assert job.published_at == "2025-03-10T15:00:00Z"
        assert job.updated_at == "2025-03-10T15:00:00Z"

    def test_full_happy_path(self):
        job = _job("draft")
        apply_event(job, "publish", NOW)
        apply_event(job, "receive_quotation", NOW)
        apply_event(job, "accept_quotation", NOW, {"professional_id": "p1", "final_price": 12000})
        for event in ("confirm", "start_work", "complete_work", "deliver"):
            apply_event(job, event, NOW)
        assert job.status == "delivered"
        assert job.professional_id == "p1"
        assert job.final_price == 12000
        assert job.started_at and job.completed_at and job.delivered_at

    def test_accept_directly_from_pending(self):
        job = _job("pending")
        apply_event(job, JobEvent.ACCEPT_QUOTATION, NOW, {"professional_id": "p1", "final_price": 0})
        assert job.status == "assigned"
        assert job.assigned_at == "2025-03-10T15:00:00Z"

    def test_start_work_on_draft_is_invalid(self):
        job = _job("draft")
        with pytest.raises(InvalidTransition) as exc:
            apply_event(job, JobEvent.START_WORK, NOW)
        assert exc.value.current_state == "draft"
        assert exc.value.event == "start_work"
        assert job.status == "draft"
        assert job.updated_at is None

    @pytest.mark.parametrize("status", ["delivered", "cancelled", "disputed"])
    def test_terminal_states_reject_cancel(self, status):
        job = _job(status)
        with pytest.raises(InvalidTransition):
            apply_event(job, JobEvent.CANCEL, NOW, {"reason": "changed my mind"})
        assert job.status == status

    def test_cancel_requires_reason(self):
        job = _job("pending")
        with pytest.raises(ValidationError) as exc:
            apply_event(job, JobEvent.CANCEL, NOW, {"reason": "  "})
        assert exc.value.field == "reason"
        assert job.status == "pending"

    def test_cancel_clears_assignment(self):
        job = _job("assigned", professional_id="p1", final_price=5000)
        apply_event(job, JobEvent.CANCEL, NOW, {"reason": "no longer needed"})
        assert job.status == "cancelled"
        assert job.professional_id is None
        assert job.final_price is None
        assert job.cancellation_reason == "no longer needed"

    def test_dispute_keeps_professional(self):
        job = _job("completed", professional_id="p1", final_price=5000)
        apply_event(job, JobEvent.DISPUTE, NOW, {"reason": "leak is back", "actor_id": "c1"})
        assert job.status == "disputed"
        assert job.professional_id == "p1"
        assert job.disputed_by == "c1"
        assert job.disputed_at == "2025-03-10T15:00:00Z"

    def test_accept_requires_professional_and_price(self):
        job = _job("quoted")
        with pytest.raises(ValidationError):
            apply_event(job, JobEvent.ACCEPT_QUOTATION, NOW, {"final_price": 100})
        with pytest.raises(ValidationError):
            apply_event(job, JobEvent.ACCEPT_QUOTATION, NOW, {"professional_id": "p1", "final_price": -1})
        assert job.status == "quoted"

    def test_timestamps_are_set_once(self):
        job = _job("draft", published_at="2025-01-01T00:00:00Z")
        apply_event(job, JobEvent.PUBLISH, NOW)
        assert job.published_at == "2025-01-01T00:00:00Z"


class TestQueries:
    def test_allowed_events_from_quoted(self):
        assert set(allowed_events("quoted")) == {JobEvent.ACCEPT_QUOTATION, JobEvent.CANCEL}

    def test_nothing_leaves_cancelled(self):
        assert allowed_events(JobStatus.CANCELLED) == []

    def test_can_apply(self):
        assert can_apply("in_progress", JobEvent.DISPUTE)
        assert not can_apply("in_progress", JobEvent.CANCEL)
