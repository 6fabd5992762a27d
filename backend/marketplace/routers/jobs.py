from typing import Literal

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response

from marketplace.context import MarketplaceContext
from marketplace.dependencies import get_context, require_user
from marketplace.models.job import Job
from marketplace.models.user import User
from marketplace.schemas.job import (
    JobCreate,
    JobListResponse,
    JobResponse,
    JobUpdate,
    ReasonRequest,
    StatusChangeResponse,
    TransitionRequest,
)
from marketplace.services import job_service
from marketplace.services.calendar_service import generate_visit_ics
from marketplace.services.job_machine import allowed_events

router = APIRouter(prefix="/jobs", tags=["jobs"])


def _job_to_response(job: Job, ctx: MarketplaceContext) -> JobResponse:
    return JobResponse(
        id=job.id,
        job_number=job.job_number,
        client_id=job.client_id,
        professional_id=job.professional_id,
        service_id=job.service_id,
        title=job.title,
        description=job.description,
        work_address=job.work_address,
        work_latitude=job.work_latitude,
        work_longitude=job.work_longitude,
        work_city=job.work_city,
        urgency=job.urgency,
        preferred_date=job.preferred_date,
        preferred_time=job.preferred_time,
        flexible_schedule=bool(job.flexible_schedule),
        status=job.status,
        budget_min=job.budget_min,
        budget_max=job.budget_max,
        final_price=job.final_price,
        price_currency=job.price_currency,
        published_at=job.published_at,
        assigned_at=job.assigned_at,
        started_at=job.started_at,
        completed_at=job.completed_at,
        delivered_at=job.delivered_at,
        cancelled_at=job.cancelled_at,
        cancellation_reason=job.cancellation_reason,
        disputed_at=job.disputed_at,
        dispute_reason=job.dispute_reason,
        created_at=job.created_at,
        updated_at=job.updated_at,
        quotation_count=job_service.quotation_count(ctx.db, job.id),
        allowed_events=[
            e.value for e in allowed_events(job.status) if e not in job_service.QUOTATION_DRIVEN
        ],
    )


@router.post("", response_model=JobResponse, status_code=201)
async def create_job(
    req: JobCreate, user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    job = job_service.create_job(ctx, user.id, req)
    return _job_to_response(job, ctx)


@router.get("", response_model=JobListResponse)
async def list_jobs(
    scope: Literal["mine", "open"] = "mine",
    status: str | None = None,
    page: int = Query(1, ge=1),
    per_page: int = Query(20, ge=1, le=100),
    user: User = Depends(require_user),
    ctx: MarketplaceContext = Depends(get_context),
):
    if scope == "open":
        pairs = job_service.list_open_jobs(ctx, user.id)
        total = len(pairs)
        jobs = [job for job, _ in pairs[(page - 1) * per_page:page * per_page]]
    else:
        jobs, total = job_service.list_jobs(ctx, user.id, status=status, page=page, per_page=per_page)
    return JobListResponse(
        jobs=[_job_to_response(j, ctx) for j in jobs],
        total=total,
        page=page,
        per_page=per_page,
    )


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(job_id: str, user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context)):
    return _job_to_response(job_service.get_job(ctx, job_id, user.id), ctx)


@router.put("/{job_id}", response_model=JobResponse)
async def update_job(
    job_id: str, req: JobUpdate,
    user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    return _job_to_response(job_service.update_job(ctx, job_id, user.id, req), ctx)


@router.delete("/{job_id}")
async def delete_job(job_id: str, user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context)):
    job_service.delete_job(ctx, job_id, user.id)
    return {"message": "Job deleted"}


@router.post("/{job_id}/publish", response_model=JobResponse)
async def publish_job(job_id: str, user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context)):
    return _job_to_response(job_service.publish_job(ctx, job_id, user.id), ctx)


@router.post("/{job_id}/transitions", response_model=JobResponse)
async def transition_job(
    job_id: str, req: TransitionRequest,
    user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    payload = req.model_dump(exclude={"event"}, exclude_none=True)
    job = job_service.transition_job(ctx, job_id, req.event, user.id, payload)
    return _job_to_response(job, ctx)


@router.post("/{job_id}/cancel", response_model=JobResponse)
async def cancel_job(
    job_id: str, req: ReasonRequest,
    user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    return _job_to_response(job_service.cancel_job(ctx, job_id, user.id, req.reason), ctx)


@router.post("/{job_id}/dispute", response_model=JobResponse)
async def dispute_job(
    job_id: str, req: ReasonRequest,
    user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context),
):
    return _job_to_response(job_service.dispute_job(ctx, job_id, user.id, req.reason), ctx)


@router.get("/{job_id}/events", response_model=list[StatusChangeResponse])
async def job_history(job_id: str, user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context)):
    return [
        StatusChangeResponse(
            id=change.id,
            job_id=change.job_id,
            event=change.event,
            from_status=change.from_status,
            to_status=change.to_status,
            actor_id=change.actor_id,
            notes=change.notes,
            occurred_at=change.occurred_at,
        )
        for change in job_service.job_history(ctx, job_id, user.id)
    ]


@router.get("/{job_id}/calendar")
async def job_calendar(job_id: str, user: User = Depends(require_user), ctx: MarketplaceContext = Depends(get_context)):
    job = job_service.get_job(ctx, job_id, user.id)
    ics_data = generate_visit_ics(
        job,
        professional_name=job.professional.full_name if job.professional else None,
        client_name=job.client.full_name,
    )
    return Response(
        content=ics_data,
        media_type="text/calendar",
        headers={"Content-Disposition": f'attachment; filename="{job.job_number}.ics"'},
    )
