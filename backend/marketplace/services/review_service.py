import logging
import uuid

from sqlalchemy import func

from marketplace.context import MarketplaceContext
from marketplace.errors import Conflict, Forbidden, NotFound, ValidationError
from marketplace.models.job import Job
from marketplace.models.review import Review
from marketplace.models.user import User
from marketplace.schemas.review import ReviewCreate
from marketplace.services.job_machine import JobStatus
from marketplace.services.notification_service import DomainEvent
from marketplace.utils.timeutil import to_iso

logger = logging.getLogger("marketplace.reviews")


def _recompute_rating(ctx: MarketplaceContext, user: User) -> None:
    avg, count = (
        ctx.db.query(func.avg(Review.rating), func.count(Review.id))
        .filter(Review.reviewee_id == user.id)
        .one()
    )
    user.rating_avg = round(avg, 2) if avg is not None else 0
    user.rating_count = count
    user.updated_at = to_iso(ctx.now())


def create_review(ctx: MarketplaceContext, job_id: str, reviewer_id: str, data: ReviewCreate) -> Review:
    """Each party of a delivered job may rate the other once."""
    job = ctx.db.query(Job).filter(Job.id == job_id).first()
    if not job:
        raise NotFound("Job", job_id)
    if reviewer_id == job.client_id:
        reviewer_type, reviewee_id = "client", job.professional_id
    elif reviewer_id == job.professional_id:
        reviewer_type, reviewee_id = "professional", job.client_id
    else:
        raise Forbidden("Only the parties of a job can review it")
    if job.status != JobStatus.DELIVERED.value:
        raise ValidationError("Jobs can only be reviewed after delivery", field="status")

    duplicate = (
        ctx.db.query(Review)
        .filter(Review.job_id == job_id)
        .filter(Review.reviewer_id == reviewer_id)
        .first()
    )
    if duplicate:
        raise Conflict("You already reviewed this job")

    with ctx.atomic("Review", job_id):
        review = Review(
            id=str(uuid.uuid4()),
            job_id=job_id,
            reviewer_id=reviewer_id,
            reviewee_id=reviewee_id,
            reviewer_type=reviewer_type,
            rating=data.rating,
            comment=data.comment,
            created_at=to_iso(ctx.now()),
        )
        ctx.db.add(review)
        ctx.db.flush()
        _recompute_rating(ctx, ctx.db.query(User).filter(User.id == reviewee_id).one())
        ctx.emit(DomainEvent(
            name="review.received",
            title="New review",
            message=f"You received a {data.rating}-star review for {job.job_number}",
            recipient_ids=(reviewee_id,),
            job_id=job_id,
        ))
    logger.info("review of %s by %s for job %s: %d", reviewee_id, reviewer_type, job.job_number, data.rating)
    return review


def list_reviews(ctx: MarketplaceContext, user_id: str) -> list[Review]:
    return (
        ctx.db.query(Review)
        .filter(Review.reviewee_id == user_id)
        .order_by(Review.created_at.desc())
        .all()
    )
