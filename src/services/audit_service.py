"""Audit service for logging ledger adjustments."""

from sqlalchemy.orm import Session

from src.models.audit_log import AuditLog
from src.services.reconciliation_service import ReconciliationResult, VarianceOutcome


class AuditService:
    """Service for audit log operations.

    Provides static methods to create minimal audit log entries.
    """

    @staticmethod
    def log(
        db: Session,
        entity_type: str,
        entity_id: str,
        action: str,
        changes: dict | None = None,
    ) -> AuditLog:
        """Create audit log entry (one-liner).

        Args:
            db: Database session
            entity_type: Type of entity ("installment_plan", "payment")
            entity_id: Identifier of the entity
            action: Action performed ("reconcile", "variance_clamped", etc.)
            changes: Optional JSON snapshot of changed fields

        Returns:
            Created AuditLog object
        """
        audit = AuditLog(
            entity_type=entity_type,
            entity_id=str(entity_id),
            action=action,
            changes=changes,
        )
        db.add(audit)
        return audit

    @staticmethod
    def log_reconciliation(
        db: Session, subscriber_id: str, payment_id: str, result: ReconciliationResult
    ) -> list[AuditLog]:
        """Record a reconciliation and, separately, any dropped variance."""
        entries = [
            AuditService.log(
                db,
                "installment_plan",
                subscriber_id,
                "reconcile",
                {
                    "payment_id": str(payment_id),
                    "installment": result.installment_number,
                    "variance": str(result.variance),
                    "outcome": result.outcome.value,
                    "adjusted_installment": result.adjusted_installment,
                },
            )
        ]
        if result.outcome in (VarianceOutcome.CLAMPED, VarianceOutcome.DROPPED):
            entries.append(
                AuditService.log(
                    db,
                    "installment_plan",
                    subscriber_id,
                    f"variance_{result.outcome.value}",
                    {
                        "payment_id": str(payment_id),
                        "installment": result.installment_number,
                        "dropped_amount": str(result.dropped_amount),
                    },
                )
            )
        return entries


__all__ = ["AuditService"]
