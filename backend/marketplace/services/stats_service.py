from datetime import datetime, timedelta

from sqlalchemy import func, text
from sqlalchemy.orm import Session

from marketplace.models.catalog import Service
from marketplace.models.job import Job
from marketplace.models.quotation import Quotation
from marketplace.models.user import User
from marketplace.schemas.professional import ProfessionalStats, RecentJob
from marketplace.services.job_machine import JobStatus
from marketplace.services.profile_service import get_profile
from marketplace.utils.timeutil import to_iso, utc_now

EARNINGS_WINDOW_DAYS = 30


def _pct(num: int, denom: int) -> int:
    return round(num / denom * 100) if denom > 0 else 0


def professional_stats(db: Session, user_id: str, now: datetime | None = None) -> ProfessionalStats:
    user = get_profile(db, user_id).user
    now = now or utc_now()

    status_rows = (
        db.query(Job.status, func.count(Job.id))
        .filter(Job.professional_id == user_id)
        .group_by(Job.status)
        .all()
    )
    by_status = {status: n for status, n in status_rows}
    total_jobs = sum(by_status.values())
    delivered = by_status.get(JobStatus.DELIVERED.value, 0)

    active_quotations = (
        db.query(func.count(Quotation.id))
        .filter(Quotation.professional_id == user_id)
        .filter(Quotation.status == "pending")
        .filter(Quotation.valid_until >= to_iso(now))
        .scalar()
    ) or 0

    # Released payments only; held money is not yet earned.
    cutoff = to_iso(now - timedelta(days=EARNINGS_WINDOW_DAYS))
    earnings_row = db.execute(
        text("""
            SELECT COALESCE(SUM(professional_amount), 0) AS total
            FROM payments
            WHERE professional_id = :user_id
            AND status = 'completed'
            AND released_at >= :cutoff
        """),
        {"user_id": user_id, "cutoff": cutoff},
    ).fetchone()

    recent_rows = (
        db.query(Job, Service.name, User.first_name, User.last_name)
        .outerjoin(Service, Service.id == Job.service_id)
        .join(User, User.id == Job.client_id)
        .filter(Job.professional_id == user_id)
        .order_by(Job.created_at.desc())
        .limit(5)
        .all()
    )
    recent_jobs = [
        RecentJob(
            id=job.id,
            job_number=job.job_number,
            title=job.title,
            status=job.status,
            price=job.final_price,
            service_name=service_name,
            client_name=f"{first} {last}",
            created_at=job.created_at,
        )
        for job, service_name, first, last in recent_rows
    ]

    return ProfessionalStats(
        total_jobs=total_jobs,
        completed_jobs=delivered,
        active_quotations=active_quotations,
        total_earnings=round(earnings_row.total, 2) if earnings_row else 0,
        avg_rating=user.rating_avg or 0,
        success_rate=_pct(delivered, total_jobs),
        recent_jobs=recent_jobs,
    )
