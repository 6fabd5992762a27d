import logging
import uuid
from datetime import timedelta

from sqlalchemy import or_
from sqlalchemy.orm import Session

from marketplace.config import settings
from marketplace.context import MarketplaceContext
from marketplace.database import next_number
from marketplace.errors import ValidationError
from marketplace.models.job import Job
from marketplace.models.payment import Payment
from marketplace.services.notification_service import DomainEvent
from marketplace.utils.timeutil import parse_iso, to_iso

logger = logging.getLogger("marketplace.payments")

PAYMENT_METHODS = {"mercadopago", "transferencia", "efectivo", "tarjeta_credito", "tarjeta_debito"}


def _next_payment_number(db: Session) -> str:
    return next_number(db, Payment.payment_number, "PAY-")


def split_amount(total: float, fee_rate: float) -> tuple[float, float]:
    """Return ``(platform_fee, professional_amount)`` rounded to cents."""
    fee = round(total * fee_rate, 2)
    return fee, round(total - fee, 2)


def create_held_payment(ctx: MarketplaceContext, job: Job, method: str | None = None) -> Payment:
    """Record the payment for a delivered job, held until the release window passes."""
    method = method or settings.default_payment_method
    if method not in PAYMENT_METHODS:
        raise ValidationError(f"Unsupported payment method '{method}'", field="payment_method")

    now = ctx.now()
    fee, professional_amount = split_amount(job.final_price, settings.platform_fee_rate)
    payment = Payment(
        id=str(uuid.uuid4()),
        payment_number=_next_payment_number(ctx.db),
        job_id=job.id,
        client_id=job.client_id,
        professional_id=job.professional_id,
        total_amount=job.final_price,
        professional_amount=professional_amount,
        platform_fee=fee,
        currency=job.price_currency,
        status="held",
        payment_method=method,
        release_after=to_iso(now + timedelta(hours=settings.payment_hold_hours)),
        created_at=to_iso(now),
    )
    ctx.db.add(payment)
    ctx.emit(DomainEvent(
        name="payment.release_scheduled",
        title="Payment scheduled",
        message=f"{professional_amount:.2f} {job.price_currency} will be released after {payment.release_after}",
        recipient_ids=(job.professional_id,),
        job_id=job.id,
        payload={"payment_id": payment.id, "release_after": payment.release_after},
    ))
    return payment


def mark_disputed(db: Session, job_id: str, reason: str) -> list[Payment]:
    payments = (
        db.query(Payment)
        .filter(Payment.job_id == job_id)
        .filter(Payment.status.in_(["pending", "processing", "held"]))
        .all()
    )
    for payment in payments:
        payment.status = "disputed"
        payment.dispute_reason = reason
    return payments


def release_due_payments(ctx: MarketplaceContext) -> list[Payment]:
    """Complete held payments whose release window has passed. Called by an external scheduler."""
    now = ctx.now()
    released = []
    held = ctx.db.query(Payment).filter(Payment.status == "held").all()
    for payment in held:
        if payment.release_after and parse_iso(payment.release_after) <= now:
            payment.status = "completed"
            payment.released_at = to_iso(now)
            released.append(payment)
            ctx.emit(DomainEvent(
                name="payment.released",
                title="Payment released",
                message=f"{payment.professional_amount:.2f} {payment.currency} released for {payment.payment_number}",
                recipient_ids=(payment.professional_id,),
                job_id=payment.job_id,
                payload={"payment_id": payment.id},
            ))
    if released:
        ctx.commit(entity="Payment")
        logger.info("Released %d held payments", len(released))
    return released


def list_payments(db: Session, user_id: str, job_id: str | None = None) -> list[Payment]:
    query = db.query(Payment).filter(
        or_(Payment.client_id == user_id, Payment.professional_id == user_id)
    )
    if job_id:
        query = query.filter(Payment.job_id == job_id)
    return query.order_by(Payment.created_at.desc()).all()
