"""Integration tests for recording payments and reconciling stored plans."""

import logging
from datetime import date
from decimal import Decimal

import pytest

from src.models import AuditLog, PaymentMode, PaymentRecord
from src.services.errors import InvalidAmountError, WriteConflictError
from src.services.membership_store import MembershipRecordStore
from src.services.payment_service import LedgerStatus, PaymentService
from src.services.plan_analytics import PlanAnalytics
from src.services.reconciliation_service import VarianceOutcome


@pytest.fixture
def store(db_session):
    return MembershipRecordStore(db_session)


@pytest.fixture
def service(db_session):
    return PaymentService(db_session)


@pytest.fixture
def member_with_plan(store, db_session, make_plan):
    """Subscriber sub-1 with a 3 x 1000 monthly plan starting 2024-01-01."""
    store.replace_plan("sub-1", make_plan([1000, 1000, 1000], total=3000))
    db_session.commit()
    return "sub-1"


def _stale_reads(store, times):
    """Make read_plan_versioned report an outdated version for the first N calls."""
    original = store.read_plan_versioned
    calls = {"count": 0}

    def read(subscriber_id):
        plan, version = original(subscriber_id)
        calls["count"] += 1
        if calls["count"] <= times:
            return plan, version - 1
        return plan, version

    store.read_plan_versioned = read
    return calls


class TestRecordPayment:
    """Payment recording with ledger reconciliation."""

    def test_payment_is_applied_to_plan(self, service, store, member_with_plan):
        outcome = service.record_payment(
            member_with_plan, Decimal("1200"), date(2024, 1, 1), PaymentMode.UPI, "first"
        )

        assert outcome.ledger_status == LedgerStatus.APPLIED
        assert outcome.payment.id is not None
        assert outcome.payment.payment_mode == PaymentMode.UPI
        assert outcome.reconciliation.outcome == VarianceOutcome.CARRIED

        stored = store.read_plan(member_with_plan)
        first = stored.installment(1)
        assert first.paid is True
        assert first.payment_id == str(outcome.payment.id)
        assert first.paid_amount == Decimal("1200")
        assert stored.installment(2).amount == Decimal("800")
        assert stored.installment(3).amount == Decimal("1000")

        analytics = PlanAnalytics(stored)
        assert analytics.paid_amount() == Decimal("1200")
        assert analytics.remaining_amount() == Decimal("1800")
        assert analytics.progress_percentage() == 33

    def test_payment_writes_audit_entry(self, service, db_session, member_with_plan):
        outcome = service.record_payment(member_with_plan, Decimal("1000"), date(2024, 1, 1))

        entries = db_session.query(AuditLog).filter_by(entity_id=member_with_plan).all()

        assert [e.action for e in entries] == ["reconcile"]
        assert entries[0].changes["payment_id"] == str(outcome.payment.id)
        assert entries[0].changes["outcome"] == "none"

    def test_dropped_variance_is_audited(self, service, db_session, store, make_plan):
        store.replace_plan("sub-2", make_plan([100]))
        db_session.commit()

        outcome = service.record_payment("sub-2", Decimal("130"), date(2024, 1, 1))

        assert outcome.reconciliation.outcome == VarianceOutcome.DROPPED
        actions = [e.action for e in db_session.query(AuditLog).filter_by(entity_id="sub-2")]
        assert actions == ["reconcile", "variance_dropped"]

    def test_member_without_plan_still_records_payment(self, service, db_session):
        outcome = service.record_payment("walk-in", Decimal("50"), date(2024, 1, 1))

        assert outcome.ledger_status == LedgerStatus.NO_PLAN
        assert db_session.query(PaymentRecord).count() == 1

    def test_fully_paid_plan_still_records_payment(self, service, store, db_session, make_plan):
        store.replace_plan("sub-3", make_plan([100]))
        db_session.commit()
        service.record_payment("sub-3", Decimal("100"), date(2024, 1, 1))
        before = store.read_plan_versioned("sub-3")

        outcome = service.record_payment("sub-3", Decimal("100"), date(2024, 2, 1))

        assert outcome.ledger_status == LedgerStatus.FULLY_PAID
        assert store.read_plan_versioned("sub-3") == before
        assert len(service.get_payments("sub-3")) == 2

    def test_disabled_plan_is_left_alone(self, service, store, db_session, make_plan):
        plan = make_plan([100, 100], enabled=False)
        store.replace_plan("sub-4", plan)
        db_session.commit()

        outcome = service.record_payment("sub-4", Decimal("100"), date(2024, 1, 1))

        assert outcome.ledger_status == LedgerStatus.PLAN_DISABLED
        assert store.read_plan("sub-4") == plan

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-5")])
    def test_invalid_amount_stores_nothing(self, service, db_session, member_with_plan, amount):
        with pytest.raises(InvalidAmountError):
            service.record_payment(member_with_plan, amount, date(2024, 1, 1))

        assert db_session.query(PaymentRecord).count() == 0

    def test_sequential_payments_settle_plan(self, service, store, member_with_plan):
        for month in (1, 2, 3):
            service.record_payment(member_with_plan, Decimal("1000"), date(2024, month, 1))

        analytics = PlanAnalytics(store.read_plan(member_with_plan))
        assert analytics.is_fully_paid is True
        assert analytics.remaining_amount() == Decimal("0")

    def test_get_payments_ordered_by_date(self, service, member_with_plan):
        service.record_payment(member_with_plan, Decimal("10"), date(2024, 3, 1))
        service.record_payment(member_with_plan, Decimal("20"), date(2024, 1, 1))

        payments = service.get_payments(member_with_plan)

        assert [p.payment_date for p in payments] == [date(2024, 1, 1), date(2024, 3, 1)]
        assert service.get_payments("someone-else") == []


class TestWriteConflicts:
    """Optimistic concurrency on plan writes."""

    def test_conflict_is_retried(self, db_session, store, member_with_plan):
        service = PaymentService(db_session, max_write_retries=2)
        calls = _stale_reads(service.store, times=1)

        outcome = service.record_payment(member_with_plan, Decimal("1000"), date(2024, 1, 1))

        assert calls["count"] == 2
        assert outcome.ledger_status == LedgerStatus.APPLIED
        # The rolled-back first attempt leaves no payment behind
        assert db_session.query(PaymentRecord).count() == 1
        assert store.read_plan(member_with_plan).installment(1).payment_id == str(
            outcome.payment.id
        )

    def test_conflict_retry_is_logged(self, db_session, member_with_plan, caplog):
        service = PaymentService(db_session, max_write_retries=2)
        _stale_reads(service.store, times=1)

        with caplog.at_level(logging.WARNING, logger="src.services.payment_service"):
            service.record_payment(member_with_plan, Decimal("1000"), date(2024, 1, 1))

        records = [r for r in caplog.records if r.name == "src.services.payment_service"]
        assert [r.getMessage() for r in records] == [
            "Write conflict recording payment for sub-1, retrying (1/2)"
        ]
        assert records[0].args == ("sub-1", 1, 2)

    def test_conflict_raised_after_retries_exhausted(self, db_session, store, member_with_plan):
        service = PaymentService(db_session, max_write_retries=1)
        calls = _stale_reads(service.store, times=5)

        with pytest.raises(WriteConflictError):
            service.record_payment(member_with_plan, Decimal("1000"), date(2024, 1, 1))

        assert calls["count"] == 2
        assert db_session.query(PaymentRecord).count() == 0
        assert store.read_plan(member_with_plan).installment(1).paid is False

    def test_retry_count_from_config(self, db_session, monkeypatch, member_with_plan):
        monkeypatch.setenv("MAX_WRITE_RETRIES", "0")

        service = PaymentService(db_session)
        calls = _stale_reads(service.store, times=1)

        with pytest.raises(WriteConflictError):
            service.record_payment(member_with_plan, Decimal("1000"), date(2024, 1, 1))
        assert calls["count"] == 1
