"""Payment service for recording member payments against installment plans.

Provides methods for:
- Recording a collected payment and reconciling the member's plan in one
  database transaction
- Listing a member's payment records

A payment is always recorded, even when it cannot be applied to the ledger
(no plan, plan disabled, plan already fully paid); the outcome reports which
of these happened. Plan writes are version-checked and the whole unit is
retried on a write conflict.
"""

import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import List, NamedTuple, Optional

from sqlalchemy.orm import Session

from src.models.payment_record import PaymentMode, PaymentRecord
from src.schemas.installment_plan import InstallmentPlan
from src.services.audit_service import AuditService
from src.services.config import get_ledger_config
from src.services.errors import (
    InvalidAmountError,
    PlanDisabledError,
    PlanFullyPaidError,
    PlanNotFoundError,
    WriteConflictError,
)
from src.services.membership_store import MembershipRecordStore
from src.services.reconciliation_service import PlanReconciler, ReconciliationResult

logger = logging.getLogger(__name__)


class LedgerStatus(str, Enum):
    """Effect of a recorded payment on the installment ledger."""

    APPLIED = "applied"
    FULLY_PAID = "fully_paid"
    PLAN_DISABLED = "plan_disabled"
    NO_PLAN = "no_plan"


class PaymentOutcome(NamedTuple):
    """Result of recording one payment."""

    payment: PaymentRecord
    ledger_status: LedgerStatus
    plan: Optional[InstallmentPlan] = None
    reconciliation: Optional[ReconciliationResult] = None


class PaymentService:
    """Record payments and keep installment plans reconciled."""

    def __init__(
        self,
        db: Session,
        reconciler: Optional[PlanReconciler] = None,
        max_write_retries: Optional[int] = None,
    ):
        """Initialize payment service.

        Args:
            db: SQLAlchemy database session
            reconciler: Plan reconciler (default: configured variance tolerance)
            max_write_retries: Retries after a write conflict (default: from config)
        """
        config = get_ledger_config()
        self.db = db
        self.store = MembershipRecordStore(db)
        self.reconciler = reconciler or PlanReconciler(config.variance_tolerance)
        self.max_write_retries = (
            config.max_write_retries if max_write_retries is None else max_write_retries
        )

    def record_payment(
        self,
        subscriber_id: str,
        amount: Decimal,
        payment_date: date,
        payment_mode: PaymentMode = PaymentMode.CASH,
        comment: Optional[str] = None,
    ) -> PaymentOutcome:
        """Record a payment and apply it to the subscriber's plan.

        The payment record, the plan write and the audit entries are
        committed together or not at all.

        Args:
            subscriber_id: Member who paid
            amount: Collected amount
            payment_date: Date of payment
            payment_mode: Collection method
            comment: Optional notes

        Returns:
            PaymentOutcome with the stored payment and ledger status

        Raises:
            InvalidAmountError: If amount <= 0 (nothing is stored)
            WriteConflictError: If the plan kept changing after all retries
            InvalidPlanError: If the stored plan document is malformed
        """
        amount = Decimal(str(amount))
        if amount <= Decimal(0):
            logger.error("Invalid payment amount: %s", amount)
            raise InvalidAmountError(f"Payment amount must be positive, got {amount}")

        attempts = self.max_write_retries + 1
        for attempt in range(1, attempts + 1):
            try:
                outcome = self._record_once(subscriber_id, amount, payment_date, payment_mode, comment)
                self.db.commit()
            except WriteConflictError:
                self.db.rollback()
                if attempt == attempts:
                    logger.error(
                        "Giving up on payment for %s after %d write conflicts",
                        subscriber_id,
                        attempts,
                    )
                    raise
                logger.warning(
                    "Write conflict recording payment for %s, retrying (%d/%d)",
                    subscriber_id,
                    attempt,
                    self.max_write_retries,
                )
                continue
            except Exception:
                self.db.rollback()
                raise

            self.db.refresh(outcome.payment)
            logger.info(
                "Recorded payment: subscriber_id=%s, amount=%s, payment_id=%s, ledger=%s",
                subscriber_id,
                amount,
                outcome.payment.id,
                outcome.ledger_status.value,
            )
            return outcome

    def _record_once(
        self,
        subscriber_id: str,
        amount: Decimal,
        payment_date: date,
        payment_mode: PaymentMode,
        comment: Optional[str],
    ) -> PaymentOutcome:
        payment = PaymentRecord(
            subscriber_id=subscriber_id,
            amount=amount,
            payment_date=payment_date,
            payment_mode=payment_mode,
            comment=comment,
        )
        self.db.add(payment)
        self.db.flush()

        try:
            plan, version = self.store.read_plan_versioned(subscriber_id)
        except PlanNotFoundError:
            return PaymentOutcome(payment, LedgerStatus.NO_PLAN)
        if plan is None:
            return PaymentOutcome(payment, LedgerStatus.NO_PLAN)

        try:
            result = self.reconciler.apply_payment(plan, amount, payment_date, str(payment.id))
        except PlanDisabledError:
            return PaymentOutcome(payment, LedgerStatus.PLAN_DISABLED, plan)
        except PlanFullyPaidError:
            return PaymentOutcome(payment, LedgerStatus.FULLY_PAID, plan)

        self.store.write_plan(subscriber_id, result.plan, expected_version=version)
        AuditService.log_reconciliation(self.db, subscriber_id, str(payment.id), result)
        return PaymentOutcome(payment, LedgerStatus.APPLIED, result.plan, result)

    def get_payments(self, subscriber_id: str) -> List[PaymentRecord]:
        """List payments for a subscriber.

        Returns:
            List of PaymentRecord objects sorted by payment date, then id
        """
        return (
            self.db.query(PaymentRecord)
            .filter_by(subscriber_id=subscriber_id)
            .order_by(PaymentRecord.payment_date, PaymentRecord.id)
            .all()
        )


__all__ = ["LedgerStatus", "PaymentOutcome", "PaymentService"]
