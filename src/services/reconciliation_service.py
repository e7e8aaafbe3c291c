"""Reconciliation of collected payments against an installment plan.

A payment is always applied to the first unpaid installment (by number). The
difference between the collected and the planned amount (the variance) is
carried to the next unpaid installment only:

- overpayment reduces the next installment, never below zero; whatever the
  next installment cannot absorb is dropped
- underpayment increases the next installment
- when the reconciled installment was the last unpaid one the variance is
  dropped and the collected total diverges from total_amount

Dropped amounts are logged at WARNING and reported on the result so callers
can audit them.
"""

import logging
from datetime import date
from decimal import Decimal
from enum import Enum
from typing import NamedTuple

from src.schemas.installment_plan import Installment, InstallmentPlan
from src.services.errors import InvalidAmountError, PlanDisabledError, PlanFullyPaidError

logger = logging.getLogger(__name__)

DEFAULT_VARIANCE_TOLERANCE = Decimal("0.5")


class VarianceOutcome(str, Enum):
    """What happened to the variance of a reconciled payment."""

    NONE = "none"
    """Within tolerance, nothing carried"""

    CARRIED = "carried"
    """Fully absorbed by the next unpaid installment"""

    CLAMPED = "clamped"
    """Next installment hit zero; the excess was dropped"""

    DROPPED = "dropped"
    """No later unpaid installment; the whole variance was dropped"""


class ReconciliationResult(NamedTuple):
    """Updated plan plus a description of the variance handling."""

    plan: InstallmentPlan
    installment_number: int
    variance: Decimal
    outcome: VarianceOutcome
    adjusted_installment: int | None = None
    dropped_amount: Decimal = Decimal(0)


class PlanReconciler:
    """Apply collected payments to installment plans (pure, no I/O)."""

    def __init__(self, variance_tolerance: Decimal = DEFAULT_VARIANCE_TOLERANCE):
        """Initialize reconciler.

        Args:
            variance_tolerance: Variances with absolute value at or below this
                are treated as exact payments
        """
        self.variance_tolerance = Decimal(str(variance_tolerance))

    def reconcile(
        self,
        plan: InstallmentPlan,
        payment_amount: Decimal,
        payment_date: date,
        payment_id: str,
    ) -> InstallmentPlan:
        """Apply one payment and return the updated plan.

        Raises:
            PlanDisabledError: If the plan is disabled
            InvalidAmountError: If payment_amount <= 0
            PlanFullyPaidError: If no unpaid installment remains
        """
        return self.apply_payment(plan, payment_amount, payment_date, payment_id).plan

    def apply_payment(
        self,
        plan: InstallmentPlan,
        payment_amount: Decimal,
        payment_date: date,
        payment_id: str,
    ) -> ReconciliationResult:
        """Apply one payment and describe how its variance was handled.

        The input plan is never modified; all checks run before any new
        state is built.

        Args:
            plan: Current plan snapshot
            payment_amount: Amount actually collected
            payment_date: Date the payment was collected
            payment_id: Reference of the stored payment record

        Returns:
            ReconciliationResult with the new plan

        Raises:
            PlanDisabledError: If the plan is disabled
            InvalidAmountError: If payment_amount <= 0
            PlanFullyPaidError: If no unpaid installment remains
        """
        if not plan.enabled:
            logger.error("Cannot reconcile payment %s: plan is disabled", payment_id)
            raise PlanDisabledError()

        amount = Decimal(str(payment_amount))
        if amount <= Decimal(0):
            logger.error("Invalid payment amount: %s", amount)
            raise InvalidAmountError(f"Payment amount must be positive, got {amount}")

        target = next((inst for inst in plan.installments if not inst.paid), None)
        if target is None:
            logger.info("Plan already fully paid; payment %s not applied", payment_id)
            raise PlanFullyPaidError()

        variance = amount - target.amount
        installments: dict[int, Installment] = {inst.number: inst for inst in plan.installments}
        installments[target.number] = target.model_copy(
            update={
                "paid": True,
                "paid_date": payment_date,
                "payment_id": str(payment_id),
                "paid_amount": amount,
            }
        )

        outcome = VarianceOutcome.NONE
        adjusted_number = None
        dropped = Decimal(0)

        if abs(variance) > self.variance_tolerance:
            following = next(
                (
                    inst
                    for inst in plan.installments
                    if inst.number > target.number and not inst.paid
                ),
                None,
            )
            if following is None:
                outcome = VarianceOutcome.DROPPED
                dropped = variance
                logger.warning(
                    "Variance %s on final installment #%s dropped; collected total "
                    "now differs from plan total %s",
                    variance,
                    target.number,
                    plan.total_amount,
                )
            else:
                new_amount = following.amount - variance
                adjusted_number = following.number
                if new_amount < 0:
                    outcome = VarianceOutcome.CLAMPED
                    dropped = -new_amount
                    new_amount = Decimal(0)
                    logger.warning(
                        "Overpayment on installment #%s exceeds installment #%s; "
                        "clamped to 0 and dropped %s",
                        target.number,
                        following.number,
                        dropped,
                    )
                else:
                    outcome = VarianceOutcome.CARRIED
                installments[following.number] = following.model_copy(
                    update={"amount": new_amount}
                )

        updated = plan.model_copy(
            update={"installments": tuple(installments[n] for n in sorted(installments))}
        )
        logger.info(
            "Applied payment %s (%s) to installment #%s: variance=%s outcome=%s",
            payment_id,
            amount,
            target.number,
            variance,
            outcome.value,
        )
        return ReconciliationResult(
            plan=updated,
            installment_number=target.number,
            variance=variance,
            outcome=outcome,
            adjusted_installment=adjusted_number,
            dropped_amount=dropped,
        )


def reconcile(
    plan: InstallmentPlan,
    payment_amount: Decimal,
    payment_date: date,
    payment_id: str,
) -> InstallmentPlan:
    """Apply one payment with the default tolerance and return the updated plan."""
    return PlanReconciler().reconcile(plan, payment_amount, payment_date, payment_id)


__all__ = [
    "DEFAULT_VARIANCE_TOLERANCE",
    "PlanReconciler",
    "ReconciliationResult",
    "VarianceOutcome",
    "reconcile",
]
