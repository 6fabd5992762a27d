import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session
from sqlalchemy.orm.exc import StaleDataError

from marketplace.errors import ConcurrencyConflict
from marketplace.services.notification_service import DomainEvent, EventDispatcher, record_notifications
from marketplace.utils.timeutil import utc_now

logger = logging.getLogger("marketplace.context")


@dataclass
class MarketplaceContext:
    """Per-request handle passed into every core operation."""

    db: Session
    dispatcher: EventDispatcher = field(default_factory=EventDispatcher)
    clock: Callable[[], datetime] = utc_now
    _outbox: list[DomainEvent] = field(default_factory=list)

    def now(self) -> datetime:
        return self.clock()

    def emit(self, event: DomainEvent) -> None:
        self._outbox.append(event)

    def commit(self, entity: str = "Job", entity_id: str | None = None) -> None:
        try:
            self.db.flush()
            # In-app notifications share the transaction of the state change;
            # external delivery happens only after commit.
            for event in self._outbox:
                record_notifications(self.db, event, self.now())
            self.db.commit()
        except StaleDataError as exc:
            self.rollback()
            logger.warning("Concurrent modification of %s %s", entity, entity_id)
            raise ConcurrencyConflict(entity, entity_id) from exc
        except IntegrityError as exc:
            self.rollback()
            if "UNIQUE" not in str(exc.orig):
                raise
            # Two writers picked the same job or payment number.
            logger.warning("Unique key race on %s %s: %s", entity, entity_id, exc.orig)
            raise ConcurrencyConflict(entity, entity_id) from exc
        except Exception:
            self.rollback()
            raise
        events, self._outbox = self._outbox, []
        self.dispatcher.publish(events)

    @contextmanager
    def atomic(self, entity: str = "Job", entity_id: str | None = None):
        """Commit the block as one transaction, or roll all of it back."""
        try:
            yield self
        except Exception:
            self.rollback()
            raise
        self.commit(entity, entity_id)

    def rollback(self) -> None:
        self.db.rollback()
        self._outbox = []
