"""Membership record ORM model holding the installment plan document."""

from typing import Any

from sqlalchemy import JSON, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models import Base, BaseModel


class MembershipRecord(Base, BaseModel):
    """Subscription record owning at most one installment plan.

    The plan is kept as a nested JSON document and is read and written as a
    whole. ``version`` is bumped on every plan write and is compared at write
    time so concurrent read-modify-write cycles cannot silently overwrite
    each other.
    """

    __tablename__ = "membership_records"

    subscriber_id: Mapped[str] = mapped_column(
        String(64),
        nullable=False,
        unique=True,
        index=True,
        comment="External subscriber (member) identifier",
    )
    installment_plan: Mapped[dict[str, Any] | None] = mapped_column(
        JSON(none_as_null=True),
        nullable=True,
        comment="Installment plan document (null when member pays in full)",
    )
    version: Mapped[int] = mapped_column(
        Integer,
        nullable=False,
        default=1,
        comment="Optimistic concurrency counter for plan writes",
    )

    def __repr__(self) -> str:
        return (
            f"<MembershipRecord(id={self.id}, subscriber_id={self.subscriber_id}, "
            f"version={self.version})>"
        )


__all__ = ["MembershipRecord"]
