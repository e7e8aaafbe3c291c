"""Audit log model for tracking ledger adjustments."""

from typing import Any

from sqlalchemy import JSON, String
from sqlalchemy.orm import Mapped, mapped_column

from src.models import Base, BaseModel


class AuditLog(Base, BaseModel):
    """Audit log entry for reconciliation events.

    Records what happened (action) to which entity (entity_type, entity_id)
    with an optional snapshot of the relevant figures (changes).
    """

    __tablename__ = "audit_logs"

    entity_type: Mapped[str] = mapped_column(String(64), index=False)
    """Entity type being audited: "installment_plan", "payment"."""

    entity_id: Mapped[str] = mapped_column(String(64), index=True)
    """Identifier of the audited entity (subscriber id for plans)."""

    action: Mapped[str] = mapped_column(String(64), index=False)
    """Action performed: "reconcile", "variance_clamped", "variance_dropped", "replace"."""

    changes: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True, index=False)
    """Optional JSON snapshot: {"installment": 2, "variance": "-40"}."""

    def __repr__(self) -> str:
        return (
            f"<AuditLog(id={self.id}, entity_type={self.entity_type}, entity_id={self.entity_id}, "
            f"action={self.action}, created_at={self.created_at})>"
        )


__all__ = ["AuditLog"]
