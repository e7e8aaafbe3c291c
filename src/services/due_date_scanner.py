"""Due-date scanner producing installment alerts for the notification pipeline.

Stateless and idempotent: scanning the same plans for the same date always
yields the same alerts. Deduplication and acknowledgement belong to the
notification store downstream.
"""

import logging
from datetime import date
from typing import Iterable, Optional

from src.schemas.alerts import AlertPriority, AlertType, InstallmentAlert
from src.schemas.installment_plan import InstallmentPlan
from src.services.config import LedgerConfig, get_ledger_config
from src.services.plan_analytics import PlanAnalytics, days_until

logger = logging.getLogger(__name__)


class DueDateScanner:
    """Emit one alert per overdue or soon-due unpaid installment."""

    def __init__(self, due_soon_days: int = 3, high_priority_days: int = 2):
        """Initialize scanner.

        Args:
            due_soon_days: Installments due within this many days raise an alert
            high_priority_days: Soon-due alerts at or below this many days are high priority
        """
        self.due_soon_days = due_soon_days
        self.high_priority_days = high_priority_days

    def scan_plan(
        self, subscriber_id: str, plan: InstallmentPlan, as_of: date
    ) -> list[InstallmentAlert]:
        """Alerts for a single plan; disabled plans produce none."""
        if not plan.enabled:
            return []

        analytics = PlanAnalytics(plan)
        alerts = []

        for inst in analytics.overdue(as_of):
            alerts.append(
                InstallmentAlert(
                    type=AlertType.INSTALLMENT_OVERDUE,
                    priority=AlertPriority.HIGH,
                    subscriber_id=subscriber_id,
                    installment_number=inst.number,
                    amount=inst.amount,
                    due_date=inst.due_date,
                    days_until_due=days_until(inst, as_of),
                )
            )

        for inst in analytics.upcoming(as_of, self.due_soon_days):
            days = days_until(inst, as_of)
            priority = (
                AlertPriority.HIGH if days <= self.high_priority_days else AlertPriority.MEDIUM
            )
            alerts.append(
                InstallmentAlert(
                    type=AlertType.INSTALLMENT_DUE,
                    priority=priority,
                    subscriber_id=subscriber_id,
                    installment_number=inst.number,
                    amount=inst.amount,
                    due_date=inst.due_date,
                    days_until_due=days,
                )
            )

        return alerts

    def scan(
        self,
        plans: Iterable[tuple[str, InstallmentPlan]],
        as_of: date,
    ) -> list[InstallmentAlert]:
        """Alerts for every (subscriber_id, plan) pair.

        Args:
            plans: Pairs of subscriber id and plan snapshot
            as_of: Evaluation date

        Returns:
            Alerts in input order, overdue before due-soon within each plan
        """
        alerts: list[InstallmentAlert] = []
        plan_count = 0
        for subscriber_id, plan in plans:
            plan_count += 1
            alerts.extend(self.scan_plan(subscriber_id, plan, as_of))
        logger.info("Scanned %d plans as of %s: %d alerts", plan_count, as_of, len(alerts))
        return alerts

    def scan_store(self, store, as_of: date) -> list[InstallmentAlert]:
        """Alerts for every plan persisted in a MembershipRecordStore.

        Malformed plan documents are logged by the store and skipped.
        """
        return self.scan(store.iter_plans(skip_invalid=True), as_of)


def scanner_from_config(config: Optional[LedgerConfig] = None) -> DueDateScanner:
    """Build a scanner with the configured alert windows."""
    if config is None:
        config = get_ledger_config()
    return DueDateScanner(
        due_soon_days=config.due_soon_days,
        high_priority_days=config.high_priority_days,
    )


__all__ = ["DueDateScanner", "scanner_from_config"]
