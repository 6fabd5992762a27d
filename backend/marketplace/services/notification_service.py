import logging
import uuid
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from sqlalchemy.orm import Session

from marketplace.errors import Forbidden, NotFound
from marketplace.models.notification import Notification
from marketplace.utils.timeutil import to_iso

logger = logging.getLogger("marketplace.notifications")


@dataclass(frozen=True)
class DomainEvent:
    name: str
    title: str
    message: str
    recipient_ids: tuple[str, ...] = ()
    job_id: str | None = None
    quotation_id: str | None = None
    payload: dict = field(default_factory=dict)


EventHandler = Callable[[DomainEvent], None]


class EventDispatcher:
    """Hands committed domain events to external delivery hooks (push, email, ...)."""

    def __init__(self):
        self._handlers: list[EventHandler] = []

    def subscribe(self, handler: EventHandler) -> None:
        self._handlers.append(handler)

    def publish(self, events: list[DomainEvent]) -> None:
        for event in events:
            for handler in self._handlers:
                try:
                    handler(event)
                except Exception:
                    # Delivery is best effort; the state change is already committed.
                    logger.exception("Handler %r failed for event %s", handler, event.name)


def log_event(event: DomainEvent) -> None:
    logger.info(
        "event=%s job=%s quotation=%s recipients=%s",
        event.name, event.job_id, event.quotation_id, ",".join(event.recipient_ids),
    )


def record_notifications(db: Session, event: DomainEvent, now: datetime) -> list[Notification]:
    created = []
    for user_id in event.recipient_ids:
        notification = Notification(
            id=str(uuid.uuid4()),
            user_id=user_id,
            type=event.name,
            title=event.title,
            message=event.message,
            job_id=event.job_id,
            quotation_id=event.quotation_id,
            is_read=False,
            created_at=to_iso(now),
        )
        db.add(notification)
        created.append(notification)
    return created


def list_notifications(db: Session, user_id: str, unread_only: bool = False) -> list[Notification]:
    query = db.query(Notification).filter(Notification.user_id == user_id)
    if unread_only:
        query = query.filter(Notification.is_read.is_(False))
    return query.order_by(Notification.created_at.desc()).all()


def mark_read(db: Session, notification_id: str, user_id: str, now: datetime) -> Notification:
    notification = db.query(Notification).filter(Notification.id == notification_id).first()
    if not notification:
        raise NotFound("Notification", notification_id)
    if notification.user_id != user_id:
        raise Forbidden("Notification belongs to another user")
    if not notification.is_read:
        notification.is_read = True
        notification.read_at = to_iso(now)
        db.commit()
    return notification
