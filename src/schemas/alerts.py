"""Pydantic schemas for installment due/overdue alerts."""

from datetime import date
from decimal import Decimal
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class AlertType(str, Enum):
    """Kinds of installment alerts."""

    INSTALLMENT_OVERDUE = "installment_overdue"
    INSTALLMENT_DUE = "installment_due"


class AlertPriority(str, Enum):
    """Alert urgency as understood by the notification pipeline."""

    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


class InstallmentAlert(BaseModel):
    """Plain alert record handed to the notification pipeline."""

    model_config = ConfigDict(frozen=True)

    type: AlertType
    priority: AlertPriority
    subscriber_id: str
    installment_number: int
    amount: Decimal = Field(..., description="Planned amount of the installment")
    due_date: date
    days_until_due: int = Field(..., description="Negative when overdue")


__all__ = ["AlertType", "AlertPriority", "InstallmentAlert"]
