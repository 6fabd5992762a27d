"""
Job lifecycle state machine.

The machine is pure: it validates an event against the job's current status
and applies the status change plus the timestamp/metadata side effects of
that event to the given job object. Persistence, authority checks and
cascades to quotations live in the job service.
"""
from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from marketplace.errors import InvalidTransition, ValidationError
from marketplace.utils.timeutil import to_iso


class JobStatus(str, Enum):
    DRAFT = "draft"
    PENDING = "pending"
    QUOTED = "quoted"
    ASSIGNED = "assigned"
    CONFIRMED = "confirmed"
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"
    DELIVERED = "delivered"
    CANCELLED = "cancelled"
    DISPUTED = "disputed"


class JobEvent(str, Enum):
    PUBLISH = "publish"
    RECEIVE_QUOTATION = "receive_quotation"
    ACCEPT_QUOTATION = "accept_quotation"
    CONFIRM = "confirm"
    START_WORK = "start_work"
    COMPLETE_WORK = "complete_work"
    DELIVER = "deliver"
    CANCEL = "cancel"
    DISPUTE = "dispute"


@dataclass(frozen=True)
class Transition:
    sources: frozenset[JobStatus]
    target: JobStatus
    timestamp_field: str | None = None


TRANSITIONS: dict[JobEvent, Transition] = {
    JobEvent.PUBLISH: Transition(
        frozenset({JobStatus.DRAFT}), JobStatus.PENDING, "published_at"
    ),
    JobEvent.RECEIVE_QUOTATION: Transition(
        frozenset({JobStatus.PENDING}), JobStatus.QUOTED
    ),
    JobEvent.ACCEPT_QUOTATION: Transition(
        frozenset({JobStatus.PENDING, JobStatus.QUOTED}), JobStatus.ASSIGNED, "assigned_at"
    ),
    JobEvent.CONFIRM: Transition(
        frozenset({JobStatus.ASSIGNED}), JobStatus.CONFIRMED
    ),
    JobEvent.START_WORK: Transition(
        frozenset({JobStatus.CONFIRMED}), JobStatus.IN_PROGRESS, "started_at"
    ),
    JobEvent.COMPLETE_WORK: Transition(
        frozenset({JobStatus.IN_PROGRESS}), JobStatus.COMPLETED, "completed_at"
    ),
    JobEvent.DELIVER: Transition(
        frozenset({JobStatus.COMPLETED}), JobStatus.DELIVERED, "delivered_at"
    ),
    JobEvent.CANCEL: Transition(
        frozenset({
            JobStatus.DRAFT, JobStatus.PENDING, JobStatus.QUOTED,
            JobStatus.ASSIGNED, JobStatus.CONFIRMED,
        }),
        JobStatus.CANCELLED,
        "cancelled_at",
    ),
    JobEvent.DISPUTE: Transition(
        frozenset({JobStatus.IN_PROGRESS, JobStatus.COMPLETED, JobStatus.DELIVERED}),
        JobStatus.DISPUTED,
        "disputed_at",
    ),
}

_unmapped = set(JobEvent) - set(TRANSITIONS)
if _unmapped:
    raise RuntimeError(f"Job events without a transition rule: {sorted(e.value for e in _unmapped)}")

# Statuses in which a professional is attached to the job.
ASSIGNED_STATUSES = frozenset({
    JobStatus.ASSIGNED, JobStatus.CONFIRMED, JobStatus.IN_PROGRESS,
    JobStatus.COMPLETED, JobStatus.DELIVERED,
})
OPEN_FOR_QUOTATIONS = frozenset({JobStatus.PENDING, JobStatus.QUOTED})
TERMINAL_STATUSES = frozenset({JobStatus.DELIVERED, JobStatus.CANCELLED, JobStatus.DISPUTED})


def can_apply(status: str | JobStatus, event: JobEvent) -> bool:
    return JobStatus(status) in TRANSITIONS[event].sources


def allowed_events(status: str | JobStatus) -> list[JobEvent]:
    current = JobStatus(status)
    return [event for event, rule in TRANSITIONS.items() if current in rule.sources]


def _require_text(payload: dict, key: str) -> str:
    value = payload.get(key)
    if not isinstance(value, str) or not value.strip():
        raise ValidationError(f"'{key}' is required", field=key)
    return value.strip()


def apply_event(job, event: JobEvent | str, now: datetime, payload: dict | None = None) -> tuple[JobStatus, JobStatus]:
    """
    Apply ``event`` to ``job`` in place and return ``(from_status, to_status)``.

    Raises InvalidTransition when the event is not legal from the current
    status and ValidationError when the event's payload is incomplete. In
    both cases the job is left untouched.
    """
    event = JobEvent(event)
    payload = payload or {}
    current = JobStatus(job.status)
    rule = TRANSITIONS[event]

    if current not in rule.sources:
        raise InvalidTransition(current.value, event.value)

    # Validate everything before touching the job.
    if event is JobEvent.ACCEPT_QUOTATION:
        professional_id = payload.get("professional_id")
        final_price = payload.get("final_price")
        if not professional_id:
            raise ValidationError("'professional_id' is required", field="professional_id")
        if final_price is None or final_price < 0:
            raise ValidationError("'final_price' must be a non-negative amount", field="final_price")
    elif event is JobEvent.CANCEL:
        reason = _require_text(payload, "reason")
    elif event is JobEvent.DISPUTE:
        reason = _require_text(payload, "reason")
        disputed_by = payload.get("actor_id")

    stamp = to_iso(now)
    if rule.timestamp_field and getattr(job, rule.timestamp_field) is None:
        setattr(job, rule.timestamp_field, stamp)

    if event is JobEvent.ACCEPT_QUOTATION:
        job.professional_id = professional_id
        job.final_price = final_price
    elif event is JobEvent.CANCEL:
        job.cancellation_reason = reason
        job.professional_id = None
        job.final_price = None
    elif event is JobEvent.DISPUTE:
        # professional_id and final_price stay set: the dispute is about that assignment.
        job.dispute_reason = reason
        job.disputed_by = disputed_by

    job.status = rule.target.value
    job.updated_at = stamp
    return current, rule.target
