from datetime import datetime, timedelta, timezone
from types import SimpleNamespace

import pytest

from marketplace.errors import InvalidQuotationState
from marketplace.services import quotation_machine
from marketplace.services.quotation_machine import QuotationStatus
from marketplace.utils.timeutil import to_iso

NOW = datetime(2025, 3, 10, 15, 0, tzinfo=timezone.utc)


def _quotation(status="pending", valid_for=timedelta(days=3)):
    return SimpleNamespace(
        status=status, valid_until=to_iso(NOW + valid_for),
        responded_at=None, client_feedback=None, updated_at=None,
    )


class TestQuotationMachine:
    def test_accept_pending(self):
        q = _quotation()
        quotation_machine.accept(q, "quoted", NOW)
        assert q.status == "accepted"
        assert q.responded_at == to_iso(NOW)

    def test_reject_stores_feedback(self):
        q = _quotation()
        quotation_machine.reject(q, NOW, feedback="too expensive")
        assert q.status == "rejected"
        assert q.client_feedback == "too expensive"

    def test_withdraw_while_job_open(self):
        q = _quotation()
        quotation_machine.withdraw(q, "pending", NOW)
        assert q.status == "withdrawn"

    def test_withdraw_after_assignment_fails(self):
        q = _quotation()
        with pytest.raises(InvalidQuotationState):
            quotation_machine.withdraw(q, "assigned", NOW)
        assert q.status == "pending"

    def test_accept_on_closed_job_fails(self):
        q = _quotation()
        with pytest.raises(InvalidQuotationState):
            quotation_machine.accept(q, "cancelled", NOW)
        assert q.status == "pending"

    @pytest.mark.parametrize("status", ["accepted", "rejected", "withdrawn", "expired"])
    def test_only_pending_can_change(self, status):
        q = _quotation(status)
        with pytest.raises(InvalidQuotationState) as exc:
            quotation_machine.reject(q, NOW)
        assert exc.value.current_state == status

    def test_past_valid_until_reads_as_expired(self):
        q = _quotation(valid_for=timedelta(minutes=-1))
        assert quotation_machine.effective_status(q, NOW) is QuotationStatus.EXPIRED
        assert q.status == "pending"

    def test_stale_quotation_cannot_be_accepted(self):
        q = _quotation(valid_for=timedelta(seconds=-1))
        with pytest.raises(InvalidQuotationState) as exc:
            quotation_machine.accept(q, "quoted", NOW)
        assert exc.value.current_state == "expired"

    def test_expire_if_stale(self):
        fresh, stale = _quotation(), _quotation(valid_for=timedelta(hours=-1))
        assert not quotation_machine.expire_if_stale(fresh, NOW)
        assert quotation_machine.expire_if_stale(stale, NOW)
        assert stale.status == "expired"

    def test_valid_until_boundary_is_still_valid(self):
        q = _quotation(valid_for=timedelta(0))
        assert quotation_machine.effective_status(q, NOW) is QuotationStatus.PENDING
