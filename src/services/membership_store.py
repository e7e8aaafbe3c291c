"""Persistence of installment plan documents keyed by subscriber id.

Writes use an optimistic version check: the caller passes the version it read
and the UPDATE only matches when nobody else has written in between. The
store never commits; the caller owns the transaction so a payment record and
the plan write can be committed together.
"""

import logging
from datetime import datetime, timezone
from typing import Iterator, Optional

from sqlalchemy import select, update
from sqlalchemy.orm import Session

from src.models.membership_record import MembershipRecord
from src.schemas.installment_plan import InstallmentPlan
from src.services.errors import InvalidPlanError, PlanNotFoundError, WriteConflictError

logger = logging.getLogger(__name__)


class MembershipRecordStore:
    """Read and write the installment plan stored on a membership record."""

    def __init__(self, db: Session):
        """Initialize store.

        Args:
            db: SQLAlchemy database session
        """
        self.db = db

    def _get_record(self, subscriber_id: str) -> Optional[MembershipRecord]:
        return self.db.query(MembershipRecord).filter_by(subscriber_id=subscriber_id).first()

    def read_plan(self, subscriber_id: str) -> Optional[InstallmentPlan]:
        """Get plan for subscriber.

        Returns:
            InstallmentPlan or None when there is no record or no plan

        Raises:
            InvalidPlanError: If the stored document is malformed
        """
        record = self._get_record(subscriber_id)
        if record is None or record.installment_plan is None:
            return None
        return InstallmentPlan.from_document(record.installment_plan)

    def read_plan_versioned(self, subscriber_id: str) -> tuple[Optional[InstallmentPlan], int]:
        """Get plan together with the record version for a later checked write.

        Raises:
            PlanNotFoundError: If the subscriber has no membership record
            InvalidPlanError: If the stored document is malformed
        """
        record = self._get_record(subscriber_id)
        if record is None:
            raise PlanNotFoundError(f"No membership record for subscriber {subscriber_id}")
        plan = (
            InstallmentPlan.from_document(record.installment_plan)
            if record.installment_plan is not None
            else None
        )
        return plan, record.version

    def write_plan(
        self,
        subscriber_id: str,
        plan: InstallmentPlan,
        expected_version: Optional[int] = None,
    ) -> int:
        """Write plan document, checking the version when one is given.

        Args:
            subscriber_id: Subscriber owning the record
            plan: New plan snapshot
            expected_version: Version returned by read_plan_versioned; None
                writes unconditionally (last write wins)

        Returns:
            New record version

        Raises:
            PlanNotFoundError: If the subscriber has no membership record
            WriteConflictError: If the record version no longer matches
        """
        stmt = (
            update(MembershipRecord)
            .where(MembershipRecord.subscriber_id == subscriber_id)
            .values(
                installment_plan=plan.to_document(),
                version=MembershipRecord.version + 1,
                updated_at=datetime.now(timezone.utc),
            )
        )
        if expected_version is not None:
            stmt = stmt.where(MembershipRecord.version == expected_version)

        result = self.db.execute(stmt.execution_options(synchronize_session=False))
        if result.rowcount == 0:
            if self._get_record(subscriber_id) is None:
                logger.error("Cannot write plan: no membership record for %s", subscriber_id)
                raise PlanNotFoundError(f"No membership record for subscriber {subscriber_id}")
            logger.warning(
                "Write conflict on plan for %s: expected version %s", subscriber_id, expected_version
            )
            raise WriteConflictError(
                f"Installment plan for subscriber {subscriber_id} was modified concurrently "
                f"(expected version {expected_version})"
            )

        # Reload so a record already in the session sees the new document and version
        record = self.db.execute(
            select(MembershipRecord)
            .where(MembershipRecord.subscriber_id == subscriber_id)
            .execution_options(populate_existing=True)
        ).scalar_one()
        logger.debug("Wrote plan for %s at version %s", subscriber_id, record.version)
        return record.version

    def replace_plan(self, subscriber_id: str, plan: Optional[InstallmentPlan]) -> int:
        """Replace the whole plan (or clear it), creating the record if needed.

        Returns:
            New record version
        """
        record = self._get_record(subscriber_id)
        document = plan.to_document() if plan is not None else None
        if record is None:
            record = MembershipRecord(subscriber_id=subscriber_id, installment_plan=document, version=1)
            self.db.add(record)
        else:
            record.installment_plan = document
            record.version = record.version + 1
        self.db.flush()
        logger.info("Replaced plan for %s (version %s)", subscriber_id, record.version)
        return record.version

    def iter_plans(self, skip_invalid: bool = False) -> Iterator[tuple[str, InstallmentPlan]]:
        """Yield (subscriber_id, plan) for every record holding a plan.

        Args:
            skip_invalid: Log and skip malformed documents instead of raising

        Raises:
            InvalidPlanError: On a malformed document when skip_invalid is False
        """
        records = (
            self.db.query(MembershipRecord)
            .filter(MembershipRecord.installment_plan.isnot(None))
            .order_by(MembershipRecord.subscriber_id)
            .all()
        )
        for record in records:
            try:
                plan = InstallmentPlan.from_document(record.installment_plan)
            except InvalidPlanError as e:
                if not skip_invalid:
                    raise
                logger.error("Skipping malformed plan for %s: %s", record.subscriber_id, e)
                continue
            yield record.subscriber_id, plan


__all__ = ["MembershipRecordStore"]
