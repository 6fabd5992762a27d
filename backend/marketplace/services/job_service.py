"""
Job orchestration: loads jobs and quotations, checks who is acting, drives
the two state machines, persists the outcome in a single transaction and
emits the domain events that feed notifications.
"""
import logging
import uuid
from datetime import timezone

from sqlalchemy import func
from sqlalchemy.orm import Session
from sqlalchemy.orm.attributes import flag_modified

from marketplace.config import settings
from marketplace.context import MarketplaceContext
from marketplace.database import next_number
from marketplace.errors import Conflict, Forbidden, InvalidQuotationState, InvalidTransition, NotFound, ValidationError
from marketplace.models.catalog import Service
from marketplace.models.job import Job, JobStatusChange
from marketplace.models.quotation import Quotation
from marketplace.models.user import User
from marketplace.schemas.job import JobCreate, JobUpdate
from marketplace.schemas.quotation import QuotationCreate
from marketplace.services import payment_service, quotation_machine
from marketplace.services.geo import distance_km
from marketplace.services.job_machine import OPEN_FOR_QUOTATIONS, TRANSITIONS, JobEvent, JobStatus, apply_event
from marketplace.services.notification_service import DomainEvent
from marketplace.services.quotation_machine import QuotationStatus
from marketplace.utils.timeutil import to_iso

logger = logging.getLogger("marketplace.jobs")

CLIENT = "client"
PROFESSIONAL = "professional"

# Which party may trigger each event through transition_job.
EVENT_ACTORS: dict[JobEvent, frozenset[str]] = {
    JobEvent.PUBLISH: frozenset({CLIENT}),
    JobEvent.CONFIRM: frozenset({PROFESSIONAL}),
    JobEvent.START_WORK: frozenset({PROFESSIONAL}),
    JobEvent.COMPLETE_WORK: frozenset({PROFESSIONAL}),
    JobEvent.DELIVER: frozenset({CLIENT}),
    JobEvent.CANCEL: frozenset({CLIENT, PROFESSIONAL}),
    JobEvent.DISPUTE: frozenset({CLIENT, PROFESSIONAL}),
}
# Only reachable through submit_quotation / respond_to_quotation.
QUOTATION_DRIVEN = frozenset({JobEvent.RECEIVE_QUOTATION, JobEvent.ACCEPT_QUOTATION})

_unassigned = set(JobEvent) - set(EVENT_ACTORS) - QUOTATION_DRIVEN
if _unassigned:
    raise RuntimeError(f"Job events without an actor rule: {sorted(e.value for e in _unassigned)}")

_EVENT_NAMES = {
    JobEvent.PUBLISH: ("job.published", "Job published"),
    JobEvent.CONFIRM: ("job.confirmed", "Job confirmed"),
    JobEvent.START_WORK: ("job.started", "Work started"),
    JobEvent.COMPLETE_WORK: ("job.completed", "Work completed"),
    JobEvent.DELIVER: ("job.delivered", "Job delivered"),
    JobEvent.CANCEL: ("job.cancelled", "Job cancelled"),
    JobEvent.DISPUTE: ("job.disputed", "Job disputed"),
}


# ---------------------------------------------------------------------------
# loading helpers
# ---------------------------------------------------------------------------

def _load_job(db: Session, job_id: str, for_update: bool = False) -> Job:
    query = db.query(Job).filter(Job.id == job_id)
    if for_update:
        query = query.with_for_update()
    job = query.first()
    if not job:
        raise NotFound("Job", job_id)
    return job


def _load_quotation(db: Session, quotation_id: str, for_update: bool = False) -> Quotation:
    query = db.query(Quotation).filter(Quotation.id == quotation_id)
    if for_update:
        query = query.with_for_update()
    quotation = query.first()
    if not quotation:
        raise NotFound("Quotation", quotation_id)
    return quotation


def _load_user(db: Session, user_id: str) -> User:
    user = db.query(User).filter(User.id == user_id).first()
    if not user or not user.is_active:
        raise NotFound("User", user_id)
    return user


def _party(job: Job, actor_id: str) -> str | None:
    if actor_id == job.client_id:
        return CLIENT
    if job.professional_id and actor_id == job.professional_id:
        return PROFESSIONAL
    return None


def _next_job_number(db: Session) -> str:
    return next_number(db, Job.job_number, "TJ-")


def _record_change(db: Session, job: Job, event: JobEvent, from_status: JobStatus,
                   to_status: JobStatus, actor_id: str | None, notes: str | None = None):
    seq = db.query(func.count(JobStatusChange.id)).filter(JobStatusChange.job_id == job.id).scalar() or 0
    db.add(JobStatusChange(
        id=str(uuid.uuid4()),
        job_id=job.id,
        seq=seq + 1,
        event=event.value,
        from_status=from_status.value,
        to_status=to_status.value,
        actor_id=actor_id,
        notes=notes,
        occurred_at=job.updated_at,
    ))
    logger.info(
        "job %s: %s %s -> %s (actor=%s)",
        job.job_number, event.value, from_status.value, to_status.value, actor_id,
    )


def _touch(job: Job, ctx: MarketplaceContext) -> None:
    # Always issues an UPDATE so the version bumps and concurrent writers conflict.
    job.updated_at = to_iso(ctx.now())
    flag_modified(job, "updated_at")


# ---------------------------------------------------------------------------
# jobs
# ---------------------------------------------------------------------------

def create_job(ctx: MarketplaceContext, client_id: str, data: JobCreate) -> Job:
    client = _load_user(ctx.db, client_id)
    if client.user_type != CLIENT:
        raise Forbidden("Only clients can post jobs")
    if data.service_id:
        service = ctx.db.query(Service).filter(Service.id == data.service_id).first()
        if not service or not service.is_active:
            raise NotFound("Service", data.service_id)

    now = to_iso(ctx.now())
    job = Job(
        id=str(uuid.uuid4()),
        job_number=_next_job_number(ctx.db),
        client_id=client_id,
        service_id=data.service_id,
        title=data.title,
        description=data.description,
        work_address=data.work_address,
        work_latitude=data.work_latitude,
        work_longitude=data.work_longitude,
        work_city=data.work_city or client.city or settings.default_city,
        urgency=data.urgency,
        preferred_date=data.preferred_date,
        preferred_time=data.preferred_time,
        flexible_schedule=data.flexible_schedule,
        status=JobStatus.DRAFT.value,
        budget_min=data.budget_min,
        budget_max=data.budget_max,
        price_currency=settings.default_currency,
        client_notes=data.client_notes,
        created_at=now,
        updated_at=now,
    )
    with ctx.atomic("Job", job.id):
        ctx.db.add(job)
    logger.info("job %s created by %s", job.job_number, client_id)
    return job


def update_job(ctx: MarketplaceContext, job_id: str, actor_id: str, data: JobUpdate) -> Job:
    with ctx.atomic("Job", job_id):
        job = _load_job(ctx.db, job_id, for_update=True)
        if actor_id != job.client_id:
            raise Forbidden("Only the job owner can edit it")
        if job.status != JobStatus.DRAFT.value:
            raise ValidationError("Only draft jobs can be edited", field="status")

        changes = data.model_dump(exclude_unset=True)
        budget_min = changes.get("budget_min", job.budget_min)
        budget_max = changes.get("budget_max", job.budget_max)
        if budget_min is not None and budget_max is not None and budget_min > budget_max:
            raise ValidationError("budget_min must not exceed budget_max", field="budget_min")
        for key, value in changes.items():
            setattr(job, key, value)
        _touch(job, ctx)
    return job


def get_job(ctx: MarketplaceContext, job_id: str, actor_id: str) -> Job:
    job = _load_job(ctx.db, job_id)
    if _party(job, actor_id):
        return job
    # Open jobs are visible to professionals so they can quote on them.
    actor = ctx.db.query(User).filter(User.id == actor_id).first()
    if actor and actor.user_type == PROFESSIONAL and job.status in {s.value for s in OPEN_FOR_QUOTATIONS}:
        return job
    raise Forbidden("You are not a party to this job")


def list_jobs(ctx: MarketplaceContext, actor_id: str, status: str | None = None,
              page: int = 1, per_page: int = 20) -> tuple[list[Job], int]:
    query = ctx.db.query(Job).filter((Job.client_id == actor_id) | (Job.professional_id == actor_id))
    if status:
        try:
            query = query.filter(Job.status == JobStatus(status).value)
        except ValueError:
            raise ValidationError(f"Unknown job status '{status}'", field="status") from None
    total = query.count()
    jobs = query.order_by(Job.updated_at.desc()).offset((page - 1) * per_page).limit(per_page).all()
    return jobs, total


def list_open_jobs(ctx: MarketplaceContext, professional_id: str) -> list[tuple[Job, float | None]]:
    """Jobs accepting quotations within the professional's work radius, nearest first."""
    professional = _load_user(ctx.db, professional_id)
    if professional.user_type != PROFESSIONAL:
        raise Forbidden("Only professionals can browse open jobs")
    radius = professional.profile.work_radius_km if professional.profile else None

    jobs = (
        ctx.db.query(Job)
        .filter(Job.status.in_([s.value for s in OPEN_FOR_QUOTATIONS]))
        .filter(Job.client_id != professional_id)
        .order_by(Job.published_at.desc())
        .all()
    )
    located = professional.latitude is not None and professional.longitude is not None
    results = []
    for job in jobs:
        distance = None
        if located and job.work_latitude is not None and job.work_longitude is not None:
            distance = distance_km(
                professional.latitude, professional.longitude, job.work_latitude, job.work_longitude
            )
            if radius is not None and distance > radius:
                continue
        results.append((job, distance))
    results.sort(key=lambda pair: (pair[1] is None, pair[1] or 0))
    return results


def job_history(ctx: MarketplaceContext, job_id: str, actor_id: str) -> list[JobStatusChange]:
    job = get_job(ctx, job_id, actor_id)
    return list(job.events)


def transition_job(ctx: MarketplaceContext, job_id: str, event: JobEvent | str, actor_id: str,
                   payload: dict | None = None) -> Job:
    try:
        event = JobEvent(event)
    except ValueError:
        raise ValidationError(f"Unknown job event '{event}'", field="event") from None
    if event in QUOTATION_DRIVEN:
        raise ValidationError(f"'{event.value}' is driven by quotations", field="event")

    payload = dict(payload or {})
    payload["actor_id"] = actor_id

    with ctx.atomic("Job", job_id):
        job = _load_job(ctx.db, job_id, for_update=True)
        party = _party(job, actor_id)
        if party is None:
            raise Forbidden("You are not a party to this job")
        if JobStatus(job.status) not in TRANSITIONS[event].sources:
            raise InvalidTransition(job.status, event.value)
        if party not in EVENT_ACTORS[event]:
            raise Forbidden(f"The {party} cannot {event.value.replace('_', ' ')} this job")

        recipients = tuple(
            user_id for user_id in (job.client_id, job.professional_id)
            if user_id and user_id != actor_id
        )
        from_status, to_status = apply_event(job, event, ctx.now(), payload)
        _record_change(ctx.db, job, event, from_status, to_status, actor_id, payload.get("notes"))

        if event is JobEvent.CANCEL:
            _reject_open_quotations(ctx, job, feedback="job cancelled")
        elif event is JobEvent.DELIVER:
            payment_service.create_held_payment(ctx, job, payload.get("payment_method"))
        elif event is JobEvent.DISPUTE:
            payment_service.mark_disputed(ctx.db, job.id, job.dispute_reason)

        name, title = _EVENT_NAMES[event]
        ctx.emit(DomainEvent(
            name=name,
            title=title,
            message=f"{job.job_number} '{job.title}' is now {to_status.value.replace('_', ' ')}",
            recipient_ids=recipients,
            job_id=job.id,
            payload={"from": from_status.value, "to": to_status.value, "actor_id": actor_id},
        ))
    return job


def advance_job_status(ctx: MarketplaceContext, job_id: str, event: JobEvent | str, actor_id: str,
                       payload: dict | None = None) -> Job:
    return transition_job(ctx, job_id, event, actor_id, payload)


def publish_job(ctx: MarketplaceContext, job_id: str, actor_id: str) -> Job:
    return transition_job(ctx, job_id, JobEvent.PUBLISH, actor_id)


def cancel_job(ctx: MarketplaceContext, job_id: str, actor_id: str, reason: str) -> Job:
    return transition_job(ctx, job_id, JobEvent.CANCEL, actor_id, {"reason": reason})


def dispute_job(ctx: MarketplaceContext, job_id: str, actor_id: str, reason: str) -> Job:
    return transition_job(ctx, job_id, JobEvent.DISPUTE, actor_id, {"reason": reason})


# ---------------------------------------------------------------------------
# quotations
# ---------------------------------------------------------------------------

def _reject_open_quotations(ctx: MarketplaceContext, job: Job, feedback: str,
                            keep: Quotation | None = None) -> list[Quotation]:
    now = ctx.now()
    siblings = (
        ctx.db.query(Quotation)
        .filter(Quotation.job_id == job.id)
        .filter(Quotation.status == QuotationStatus.PENDING.value)
        .with_for_update()
        .all()
    )
    rejected = []
    for quotation in siblings:
        if keep is not None and quotation.id == keep.id:
            continue
        if quotation_machine.expire_if_stale(quotation, now):
            continue
        quotation_machine.reject(quotation, now, feedback=feedback)
        rejected.append(quotation)
        ctx.emit(DomainEvent(
            name="quotation.rejected",
            title="Quotation rejected",
            message=f"Your quotation for {job.job_number} was not selected",
            recipient_ids=(quotation.professional_id,),
            job_id=job.id,
            quotation_id=quotation.id,
        ))
    return rejected


def _expire_and_raise(ctx: MarketplaceContext, quotation: Quotation, action: str) -> None:
    if quotation_machine.expire_if_stale(quotation, ctx.now()):
        logger.info("quotation %s expired on read", quotation.id)
        ctx.commit("Quotation", quotation.id)
        raise InvalidQuotationState(QuotationStatus.EXPIRED.value, action)


def submit_quotation(ctx: MarketplaceContext, job_id: str, professional_id: str,
                     data: QuotationCreate) -> Quotation:
    now = ctx.now()
    valid_until = data.valid_until
    if valid_until.tzinfo is None:
        valid_until = valid_until.replace(tzinfo=timezone.utc)
    if valid_until <= now:
        raise ValidationError("valid_until must be in the future", field="valid_until")

    with ctx.atomic("Job", job_id):
        professional = _load_user(ctx.db, professional_id)
        if professional.user_type != PROFESSIONAL:
            raise Forbidden("Only professionals can submit quotations")
        job = _load_job(ctx.db, job_id, for_update=True)
        if job.client_id == professional_id:
            raise Forbidden("You cannot quote on your own job")
        if JobStatus(job.status) not in OPEN_FOR_QUOTATIONS:
            raise InvalidTransition(job.status, JobEvent.RECEIVE_QUOTATION.value)

        existing = (
            ctx.db.query(Quotation)
            .filter(Quotation.job_id == job.id)
            .filter(Quotation.professional_id == professional_id)
            .filter(Quotation.status == QuotationStatus.PENDING.value)
            .all()
        )
        if any(quotation_machine.effective_status(q, now) is QuotationStatus.PENDING for q in existing):
            raise Conflict("You already have a pending quotation for this job")

        stamp = to_iso(now)
        quotation = Quotation(
            id=str(uuid.uuid4()),
            job_id=job.id,
            professional_id=professional_id,
            total_price=data.total_price,
            price_currency=job.price_currency,
            description=data.description,
            estimated_hours=data.estimated_hours,
            estimated_start_date=data.estimated_start_date,
            estimated_completion_date=data.estimated_completion_date,
            status=QuotationStatus.PENDING.value,
            valid_until=to_iso(valid_until),
            terms_and_conditions=data.terms_and_conditions,
            includes_materials=data.includes_materials,
            materials_description=data.materials_description,
            materials_cost=data.materials_cost,
            professional_notes=data.professional_notes,
            created_at=stamp,
            updated_at=stamp,
        )
        ctx.db.add(quotation)

        if job.status == JobStatus.PENDING.value:
            from_status, to_status = apply_event(job, JobEvent.RECEIVE_QUOTATION, now)
            _record_change(ctx.db, job, JobEvent.RECEIVE_QUOTATION, from_status, to_status, professional_id)
        else:
            _touch(job, ctx)

        ctx.emit(DomainEvent(
            name="quotation.received",
            title="New quotation",
            message=f"{professional.full_name} quoted {data.total_price:.2f} {job.price_currency} for {job.job_number}",
            recipient_ids=(job.client_id,),
            job_id=job.id,
            quotation_id=quotation.id,
        ))
    return quotation


def respond_to_quotation(ctx: MarketplaceContext, quotation_id: str, decision: str, actor_id: str,
                         feedback: str | None = None) -> tuple[Job, Quotation]:
    if decision not in ("accept", "reject"):
        raise ValidationError("decision must be 'accept' or 'reject'", field="decision")

    quotation = _load_quotation(ctx.db, quotation_id, for_update=True)
    job = _load_job(ctx.db, quotation.job_id, for_update=True)
    if actor_id != job.client_id:
        raise Forbidden("Only the job owner can respond to quotations")
    _expire_and_raise(ctx, quotation, decision)

    with ctx.atomic("Quotation", quotation_id):
        now = ctx.now()
        if decision == "accept":
            quotation_machine.accept(quotation, job.status, now)
            _reject_open_quotations(ctx, job, feedback="Another quotation was accepted", keep=quotation)
            from_status, to_status = apply_event(job, JobEvent.ACCEPT_QUOTATION, now, {
                "professional_id": quotation.professional_id,
                "final_price": quotation.total_price,
            })
            _record_change(ctx.db, job, JobEvent.ACCEPT_QUOTATION, from_status, to_status, actor_id)
            ctx.emit(DomainEvent(
                name="quotation.accepted",
                title="Quotation accepted",
                message=f"Your quotation for {job.job_number} was accepted",
                recipient_ids=(quotation.professional_id,),
                job_id=job.id,
                quotation_id=quotation.id,
            ))
            ctx.emit(DomainEvent(
                name="job.assigned",
                title="Job assigned",
                message=f"{job.job_number} '{job.title}' is assigned for {job.final_price:.2f} {job.price_currency}",
                recipient_ids=(job.client_id, quotation.professional_id),
                job_id=job.id,
                quotation_id=quotation.id,
            ))
        else:
            quotation_machine.reject(quotation, now, feedback=feedback)
            _touch(job, ctx)
            ctx.emit(DomainEvent(
                name="quotation.rejected",
                title="Quotation rejected",
                message=f"Your quotation for {job.job_number} was rejected",
                recipient_ids=(quotation.professional_id,),
                job_id=job.id,
                quotation_id=quotation.id,
            ))
    return job, quotation


def withdraw_quotation(ctx: MarketplaceContext, quotation_id: str, actor_id: str) -> Quotation:
    quotation = _load_quotation(ctx.db, quotation_id, for_update=True)
    if actor_id != quotation.professional_id:
        raise Forbidden("Only the author can withdraw a quotation")
    job = _load_job(ctx.db, quotation.job_id, for_update=True)
    _expire_and_raise(ctx, quotation, "withdraw")

    with ctx.atomic("Quotation", quotation_id):
        quotation_machine.withdraw(quotation, job.status, ctx.now())
        _touch(job, ctx)
        ctx.emit(DomainEvent(
            name="quotation.withdrawn",
            title="Quotation withdrawn",
            message=f"A quotation for {job.job_number} was withdrawn",
            recipient_ids=(job.client_id,),
            job_id=job.id,
            quotation_id=quotation.id,
        ))
    return quotation


def _expire_stale(ctx: MarketplaceContext, quotations: list[Quotation]) -> None:
    now = ctx.now()
    expired = [q for q in quotations if quotation_machine.expire_if_stale(q, now)]
    if expired:
        logger.info("expired %d stale quotations on read", len(expired))
        ctx.commit("Quotation")


def get_quotation(ctx: MarketplaceContext, quotation_id: str, actor_id: str) -> Quotation:
    quotation = _load_quotation(ctx.db, quotation_id)
    job = _load_job(ctx.db, quotation.job_id)
    if actor_id not in (job.client_id, quotation.professional_id):
        raise Forbidden("You cannot view this quotation")
    _expire_stale(ctx, [quotation])
    return quotation


def list_job_quotations(ctx: MarketplaceContext, job_id: str, actor_id: str) -> list[Quotation]:
    job = _load_job(ctx.db, job_id)
    query = ctx.db.query(Quotation).filter(Quotation.job_id == job_id)
    if actor_id != job.client_id:
        actor = ctx.db.query(User).filter(User.id == actor_id).first()
        if not actor or actor.user_type != PROFESSIONAL:
            raise Forbidden("You cannot view quotations for this job")
        query = query.filter(Quotation.professional_id == actor_id)
    quotations = query.order_by(Quotation.created_at.asc()).all()
    _expire_stale(ctx, quotations)
    return quotations


def quotation_count(db: Session, job_id: str) -> int:
    return db.query(func.count(Quotation.id)).filter(Quotation.job_id == job_id).scalar() or 0


def delete_job(ctx: MarketplaceContext, job_id: str, actor_id: str) -> None:
    with ctx.atomic("Job", job_id):
        job = _load_job(ctx.db, job_id, for_update=True)
        if actor_id != job.client_id:
            raise Forbidden("Only the job owner can delete it")
        if job.status != JobStatus.DRAFT.value:
            raise ValidationError("Only draft jobs can be deleted; cancel it instead", field="status")
        job_number = job.job_number
        ctx.db.delete(job)
    logger.info("job %s deleted by %s", job_number, actor_id)
