"""
Quotation state machine.

Only ``pending`` quotations can change state. Expiry is lazy: a pending
quotation whose ``valid_until`` has passed reports ``expired`` from
:func:`effective_status` and is flipped by :func:`expire_if_stale` when the
caller decides to persist it.
"""
from datetime import datetime
from enum import Enum

from marketplace.errors import InvalidQuotationState
from marketplace.services.job_machine import OPEN_FOR_QUOTATIONS, JobStatus
from marketplace.utils.timeutil import parse_iso, to_iso


class QuotationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"
    WITHDRAWN = "withdrawn"
    EXPIRED = "expired"


class QuotationAction(str, Enum):
    ACCEPT = "accept"
    REJECT = "reject"
    WITHDRAW = "withdraw"
    EXPIRE = "expire"


RESULTING_STATUS: dict[QuotationAction, QuotationStatus] = {
    QuotationAction.ACCEPT: QuotationStatus.ACCEPTED,
    QuotationAction.REJECT: QuotationStatus.REJECTED,
    QuotationAction.WITHDRAW: QuotationStatus.WITHDRAWN,
    QuotationAction.EXPIRE: QuotationStatus.EXPIRED,
}

_unmapped = set(QuotationAction) - set(RESULTING_STATUS)
if _unmapped:
    raise RuntimeError(f"Quotation actions without a result: {sorted(a.value for a in _unmapped)}")


def is_stale(quotation, now: datetime) -> bool:
    return (
        quotation.status == QuotationStatus.PENDING.value
        and now > parse_iso(quotation.valid_until)
    )


def effective_status(quotation, now: datetime) -> QuotationStatus:
    if is_stale(quotation, now):
        return QuotationStatus.EXPIRED
    return QuotationStatus(quotation.status)


def _transition(quotation, action: QuotationAction, now: datetime) -> None:
    quotation.status = RESULTING_STATUS[action].value
    quotation.updated_at = to_iso(now)


def _ensure_pending(quotation, action: QuotationAction, now: datetime) -> None:
    current = effective_status(quotation, now)
    if current is not QuotationStatus.PENDING:
        raise InvalidQuotationState(current.value, action.value)


def expire_if_stale(quotation, now: datetime) -> bool:
    if not is_stale(quotation, now):
        return False
    _transition(quotation, QuotationAction.EXPIRE, now)
    return True


def accept(quotation, job_status: str | JobStatus, now: datetime) -> None:
    _ensure_pending(quotation, QuotationAction.ACCEPT, now)
    status = JobStatus(job_status)
    if status not in OPEN_FOR_QUOTATIONS:
        raise InvalidQuotationState(
            quotation.status, QuotationAction.ACCEPT.value, reason=f"job is '{status.value}'"
        )
    _transition(quotation, QuotationAction.ACCEPT, now)
    quotation.responded_at = to_iso(now)


def reject(quotation, now: datetime, feedback: str | None = None) -> None:
    _ensure_pending(quotation, QuotationAction.REJECT, now)
    _transition(quotation, QuotationAction.REJECT, now)
    quotation.responded_at = to_iso(now)
    if feedback:
        quotation.client_feedback = feedback


def withdraw(quotation, job_status: str | JobStatus, now: datetime) -> None:
    _ensure_pending(quotation, QuotationAction.WITHDRAW, now)
    status = JobStatus(job_status)
    if status not in OPEN_FOR_QUOTATIONS:
        raise InvalidQuotationState(
            quotation.status, QuotationAction.WITHDRAW.value, reason=f"job is already '{status.value}'"
        )
    _transition(quotation, QuotationAction.WITHDRAW, now)
