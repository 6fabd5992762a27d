from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.dependencies import require_user
from marketplace.models.user import User
from marketplace.schemas.payment import PaymentResponse
from marketplace.services import payment_service

router = APIRouter(prefix="/payments", tags=["payments"])


@router.get("", response_model=list[PaymentResponse])
async def list_payments(
    job_id: str | None = None, user: User = Depends(require_user), db: Session = Depends(get_db),
):
    return [
        PaymentResponse(
            id=p.id,
            payment_number=p.payment_number,
            job_id=p.job_id,
            client_id=p.client_id,
            professional_id=p.professional_id,
            total_amount=p.total_amount,
            professional_amount=p.professional_amount,
            platform_fee=p.platform_fee,
            currency=p.currency,
            status=p.status,
            payment_method=p.payment_method,
            release_after=p.release_after,
            released_at=p.released_at,
            created_at=p.created_at,
        )
        for p in payment_service.list_payments(db, user.id, job_id)
    ]
