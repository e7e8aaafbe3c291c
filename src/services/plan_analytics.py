"""Read-only derivations over an installment plan.

Used both for the member-facing summary and by the due-date scanner so the
two always agree on what is paid, due and overdue.

Progress is count-based (paid installments / all installments), not weighted
by amount. Remaining amount is derived from the plan's original total_amount,
so after carry-forward adjustments it can differ from the sum of the unpaid
installments, and it can go negative when the last installment was overpaid.
"""

from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import NamedTuple

from src.schemas.installment_plan import Installment, InstallmentPlan


class PlanSummary(NamedTuple):
    """Display aggregates for one plan at one evaluation date."""

    paid_count: int
    total_count: int
    progress_percentage: int
    paid_amount: Decimal
    remaining_amount: Decimal
    next_due: Installment | None
    overdue: list[Installment]
    is_fully_paid: bool


class PlanAnalytics:
    """Derivations computed from one immutable plan snapshot."""

    def __init__(self, plan: InstallmentPlan):
        self.plan = plan

    @property
    def paid_installments(self) -> list[Installment]:
        return [inst for inst in self.plan.installments if inst.paid]

    @property
    def unpaid_installments(self) -> list[Installment]:
        return [inst for inst in self.plan.installments if not inst.paid]

    @property
    def paid_count(self) -> int:
        return len(self.paid_installments)

    @property
    def total_count(self) -> int:
        return len(self.plan.installments)

    @property
    def is_fully_paid(self) -> bool:
        return self.paid_count == self.total_count

    def progress_percentage(self) -> int:
        """Percentage of installments paid, rounded half-up to an integer."""
        ratio = Decimal(self.paid_count) / Decimal(self.total_count) * 100
        return int(ratio.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def paid_amount(self) -> Decimal:
        """Sum of collected amounts, falling back to the planned amount."""
        return sum(
            (inst.paid_amount if inst.paid_amount is not None else inst.amount
             for inst in self.paid_installments),
            Decimal(0),
        )

    def remaining_amount(self) -> Decimal:
        """Original plan total minus collected amount (may be negative)."""
        return self.plan.total_amount - self.paid_amount()

    def planned_total(self) -> Decimal:
        """Current sum of planned installment amounts."""
        return sum((inst.amount for inst in self.plan.installments), Decimal(0))

    def next_due(self) -> Installment | None:
        """Unpaid installment with the earliest due date (lowest number on ties)."""
        unpaid = self.unpaid_installments
        if not unpaid:
            return None
        return min(unpaid, key=lambda inst: (inst.due_date, inst.number))

    def overdue(self, as_of: date) -> list[Installment]:
        """Unpaid installments due strictly before as_of, earliest first."""
        return sorted(
            (inst for inst in self.unpaid_installments if inst.due_date < as_of),
            key=lambda inst: (inst.due_date, inst.number),
        )

    def upcoming(self, as_of: date, within_days: int) -> list[Installment]:
        """Unpaid installments due between as_of and as_of + within_days inclusive."""
        return sorted(
            (
                inst
                for inst in self.unpaid_installments
                if 0 <= days_until(inst, as_of) <= within_days
            ),
            key=lambda inst: (inst.due_date, inst.number),
        )

    def summary(self, as_of: date) -> PlanSummary:
        return PlanSummary(
            paid_count=self.paid_count,
            total_count=self.total_count,
            progress_percentage=self.progress_percentage(),
            paid_amount=self.paid_amount(),
            remaining_amount=self.remaining_amount(),
            next_due=self.next_due(),
            overdue=self.overdue(as_of),
            is_fully_paid=self.is_fully_paid,
        )


def days_until(installment: Installment, as_of: date) -> int:
    """Whole days from as_of to the due date (negative when overdue)."""
    return (installment.due_date - as_of).days


__all__ = ["PlanAnalytics", "PlanSummary", "days_until"]
