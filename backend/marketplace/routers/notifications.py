from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from marketplace.database import get_db
from marketplace.dependencies import require_user
from marketplace.models.notification import Notification
from marketplace.models.user import User
from marketplace.schemas.notification import NotificationResponse
from marketplace.services import notification_service
from marketplace.utils.timeutil import utc_now

router = APIRouter(prefix="/notifications", tags=["notifications"])


def _notification_to_response(n: Notification) -> NotificationResponse:
    return NotificationResponse(
        id=n.id,
        type=n.type,
        title=n.title,
        message=n.message,
        job_id=n.job_id,
        quotation_id=n.quotation_id,
        is_read=bool(n.is_read),
        read_at=n.read_at,
        created_at=n.created_at,
    )


@router.get("", response_model=list[NotificationResponse])
async def list_notifications(
    unread_only: bool = False, user: User = Depends(require_user), db: Session = Depends(get_db),
):
    return [
        _notification_to_response(n)
        for n in notification_service.list_notifications(db, user.id, unread_only)
    ]


@router.post("/{notification_id}/read", response_model=NotificationResponse)
async def mark_read(notification_id: str, user: User = Depends(require_user), db: Session = Depends(get_db)):
    return _notification_to_response(notification_service.mark_read(db, notification_id, user.id, utc_now()))
