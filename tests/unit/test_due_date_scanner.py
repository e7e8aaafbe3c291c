"""Unit tests for the due-date scanner."""

from datetime import date
from decimal import Decimal

import pytest

from src.schemas.alerts import AlertPriority, AlertType
from src.services.config import LedgerConfig
from src.services.due_date_scanner import DueDateScanner, scanner_from_config
from src.services.reconciliation_service import reconcile

DUE = date(2024, 1, 10)


class TestDueDateScanner:
    """Alert selection and priorities."""

    @pytest.fixture
    def scanner(self):
        return DueDateScanner()

    def test_overdue_installment_is_high_priority(self, scanner, make_plan):
        plan = make_plan([100, 100], start=DUE)

        alerts = scanner.scan_plan("sub-1", plan, date(2024, 1, 15))

        assert len(alerts) == 1
        alert = alerts[0]
        assert alert.type == AlertType.INSTALLMENT_OVERDUE
        assert alert.priority == AlertPriority.HIGH
        assert alert.subscriber_id == "sub-1"
        assert alert.installment_number == 1
        assert alert.amount == Decimal("100")
        assert alert.due_date == DUE
        assert alert.days_until_due == -5

    @pytest.mark.parametrize(
        "as_of,expected_priority",
        [
            (date(2024, 1, 10), AlertPriority.HIGH),
            (date(2024, 1, 9), AlertPriority.HIGH),
            (date(2024, 1, 8), AlertPriority.HIGH),
            (date(2024, 1, 7), AlertPriority.MEDIUM),
        ],
    )
    def test_due_soon_priority(self, scanner, make_plan, as_of, expected_priority):
        plan = make_plan([100, 100], start=DUE)

        alerts = scanner.scan_plan("sub-1", plan, as_of)

        assert len(alerts) == 1
        assert alerts[0].type == AlertType.INSTALLMENT_DUE
        assert alerts[0].priority == expected_priority
        assert alerts[0].days_until_due == (DUE - as_of).days

    def test_nothing_due_four_days_out(self, scanner, make_plan):
        plan = make_plan([100, 100], start=DUE)
        assert scanner.scan_plan("sub-1", plan, date(2024, 1, 6)) == []

    def test_paid_installments_raise_no_alerts(self, scanner, make_plan):
        plan = reconcile(make_plan([100, 100], start=DUE), Decimal("100"), DUE, "p1")

        assert scanner.scan_plan("sub-1", plan, date(2024, 1, 20)) == []

    def test_disabled_plan_is_skipped(self, scanner, make_plan):
        plan = make_plan([100, 100], start=DUE, enabled=False)
        assert scanner.scan_plan("sub-1", plan, date(2024, 3, 1)) == []

    def test_overdue_alerts_come_first(self, scanner, make_plan):
        plan = make_plan([100, 100, 100], start=date(2024, 1, 1))

        alerts = scanner.scan_plan("sub-1", plan, date(2024, 2, 28))

        assert [(a.type, a.installment_number) for a in alerts] == [
            (AlertType.INSTALLMENT_OVERDUE, 1),
            (AlertType.INSTALLMENT_OVERDUE, 2),
            (AlertType.INSTALLMENT_DUE, 3),
        ]

    def test_scan_is_idempotent(self, scanner, make_plan):
        plans = [
            ("sub-1", make_plan([100, 100], start=DUE)),
            ("sub-2", make_plan([50, 50], start=date(2024, 1, 1))),
        ]

        first = scanner.scan(plans, date(2024, 1, 9))
        second = scanner.scan(plans, date(2024, 1, 9))

        assert first == second
        assert [a.subscriber_id for a in first] == ["sub-1", "sub-2"]

    def test_custom_windows(self, make_plan):
        scanner = DueDateScanner(due_soon_days=7, high_priority_days=1)
        plan = make_plan([100], start=DUE)

        alerts = scanner.scan_plan("sub-1", plan, date(2024, 1, 4))

        assert alerts[0].priority == AlertPriority.MEDIUM

    def test_scanner_from_config(self):
        scanner = scanner_from_config(LedgerConfig(due_soon_days=5, high_priority_days=1))

        assert scanner.due_soon_days == 5
        assert scanner.high_priority_days == 1
