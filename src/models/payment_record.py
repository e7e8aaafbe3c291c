"""Payment record ORM model for collected member payments."""

from datetime import date
from decimal import Decimal
from enum import Enum

from sqlalchemy import Date, Index, Numeric, String, Text
from sqlalchemy import Enum as SQLEnum
from sqlalchemy.orm import Mapped, mapped_column

from src.models import Base, BaseModel


class PaymentMode(str, Enum):
    """How the payment was collected."""

    CASH = "cash"
    CARD = "card"
    UPI = "upi"
    BANK_TRANSFER = "bank_transfer"
    OTHER = "other"


class PaymentRecord(Base, BaseModel):
    """Model representing one collected payment.

    Installment plans reference these rows by id; the plan does not own them.
    """

    __tablename__ = "payment_records"

    subscriber_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        index=True,
        comment="Subscriber who made the payment",
    )
    amount: Mapped[Decimal] = mapped_column(
        Numeric(12, 2),
        nullable=False,
        comment="Collected amount",
    )
    payment_date: Mapped[date] = mapped_column(
        Date,
        nullable=False,
        index=True,
        comment="Date of payment",
    )
    payment_mode: Mapped[PaymentMode] = mapped_column(
        SQLEnum(PaymentMode),
        nullable=False,
        default=PaymentMode.CASH,
        comment="Collection method",
    )
    comment: Mapped[str | None] = mapped_column(
        Text,
        nullable=True,
        comment="Optional payment comment",
    )

    __table_args__ = (Index("idx_payment_subscriber_date", "subscriber_id", "payment_date"),)

    def __repr__(self) -> str:
        return (
            f"<PaymentRecord(id={self.id}, subscriber_id={self.subscriber_id}, "
            f"amount={self.amount}, payment_date={self.payment_date})>"
        )


__all__ = ["PaymentRecord", "PaymentMode"]
