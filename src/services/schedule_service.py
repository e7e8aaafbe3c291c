"""Generation of evenly split installment schedules.

Amounts are split in whole currency units: every installment gets
floor(total / n) and the last one also takes the remainder, so the schedule
always sums exactly to the amount being split.
"""

import logging
from calendar import monthrange
from datetime import date
from decimal import ROUND_FLOOR, Decimal
from typing import Optional

from src.schemas.installment_plan import Installment, InstallmentPlan
from src.services.errors import InvalidPlanError

logger = logging.getLogger(__name__)

# Allowed gap between the installment sum and the plan total
SCHEDULE_TOTAL_TOLERANCE = Decimal("1")


def add_months(start: date, months: int) -> date:
    """Shift a date by whole months, clamping the day to the month length."""
    month_index = start.month - 1 + months
    year = start.year + month_index // 12
    month = month_index % 12 + 1
    last_day = monthrange(year, month)[1]
    return date(year, month, min(start.day, last_day))


def split_evenly(amount: Decimal, parts: int) -> list[Decimal]:
    """Split amount into parts whole units, remainder on the last part."""
    base = (amount / parts).to_integral_value(rounding=ROUND_FLOOR)
    remainder = amount - base * parts
    return [base] * (parts - 1) + [base + remainder]


def build_installment_plan(
    total_amount: Decimal,
    num_installments: int,
    start_date: date,
    down_payment: Optional[Decimal] = None,
) -> InstallmentPlan:
    """Build a monthly schedule, optionally led by a down payment.

    With a usable down payment (0 < down_payment < total and at least two
    installments) installment #1 is the down payment due on start_date and the
    rest is split across the remaining installments, one month apart. Any
    other down payment is ignored and recorded as 0.

    Args:
        total_amount: Amount the plan must collect
        num_installments: Number of installments (>= 1)
        start_date: Due date of the first installment
        down_payment: Optional upfront amount

    Returns:
        New enabled InstallmentPlan

    Raises:
        InvalidPlanError: If total_amount <= 0 or num_installments < 1
    """
    total = Decimal(str(total_amount))
    if total <= 0:
        raise InvalidPlanError(f"Plan total must be positive, got {total}")
    if num_installments < 1:
        raise InvalidPlanError(f"Plan needs at least one installment, got {num_installments}")

    dp = Decimal(str(down_payment)) if down_payment is not None else Decimal(0)
    use_down_payment = Decimal(0) < dp < total and num_installments > 1
    if dp and not use_down_payment:
        logger.warning(
            "Ignoring down payment %s for total %s over %s installments",
            dp,
            total,
            num_installments,
        )

    installments = []
    if use_down_payment:
        installments.append(Installment(number=1, amount=dp, due_date=start_date))
        for i, amount in enumerate(split_evenly(total - dp, num_installments - 1)):
            installments.append(
                Installment(number=i + 2, amount=amount, due_date=add_months(start_date, i + 1))
            )
    else:
        for i, amount in enumerate(split_evenly(total, num_installments)):
            installments.append(
                Installment(number=i + 1, amount=amount, due_date=add_months(start_date, i))
            )

    return InstallmentPlan(
        enabled=True,
        total_amount=total,
        num_installments=num_installments,
        down_payment=dp if use_down_payment else Decimal(0),
        installments=tuple(installments),
    )


def validate_schedule_total(plan: InstallmentPlan) -> None:
    """Check a hand-edited schedule still adds up to the plan total.

    Raises:
        InvalidPlanError: If the installments differ from total_amount by 1 or more
    """
    planned = sum((inst.amount for inst in plan.installments), Decimal(0))
    if abs(planned - plan.total_amount) >= SCHEDULE_TOTAL_TOLERANCE:
        raise InvalidPlanError(
            f"Installments sum to {planned} but plan total is {plan.total_amount}"
        )


__all__ = [
    "add_months",
    "split_evenly",
    "build_installment_plan",
    "validate_schedule_total",
]
