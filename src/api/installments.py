"""Installment plan API endpoints.

Thin HTTP layer over the ledger services: read a plan with its summary,
replace a plan, record a payment and list due/overdue alerts.
"""

import logging
from datetime import date
from decimal import Decimal
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from pydantic import BaseModel, ConfigDict, Field
from sqlalchemy.orm import Session

from src.models.payment_record import PaymentMode, PaymentRecord
from src.schemas.alerts import InstallmentAlert
from src.schemas.installment_plan import Installment, InstallmentPlan
from src.services import get_db
from src.services.audit_service import AuditService
from src.services.due_date_scanner import scanner_from_config
from src.services.errors import InvalidPlanError, PlanNotFoundError
from src.services.membership_store import MembershipRecordStore
from src.services.payment_service import PaymentService
from src.services.plan_analytics import PlanAnalytics
from src.services.schedule_service import build_installment_plan, validate_schedule_total

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["installments"])


class PlanSummaryResponse(BaseModel):
    """Display aggregates for a plan."""

    paid_count: int
    total_count: int
    progress_percentage: int
    paid_amount: Decimal
    remaining_amount: Decimal
    next_due: Optional[Installment] = None
    overdue: list[Installment]
    is_fully_paid: bool


class PlanResponse(BaseModel):
    """Plan document together with its summary."""

    subscriber_id: str
    version: int
    plan: InstallmentPlan
    summary: PlanSummaryResponse


class ReplacePlanRequest(BaseModel):
    """Either a full plan document or parameters to generate one."""

    plan: Optional[InstallmentPlan] = None
    total_amount: Optional[Decimal] = Field(None, gt=0)
    num_installments: Optional[int] = Field(None, ge=1)
    start_date: Optional[date] = None
    down_payment: Optional[Decimal] = Field(None, ge=0)


class RecordPaymentRequest(BaseModel):
    """Payload for POST /members/{subscriber_id}/payments."""

    amount: Decimal
    payment_date: date = Field(default_factory=date.today)
    payment_mode: PaymentMode = PaymentMode.CASH
    comment: Optional[str] = None


class PaymentRecordResponse(BaseModel):
    """Stored payment record."""

    id: int
    subscriber_id: str
    amount: Decimal
    payment_date: date
    payment_mode: PaymentMode
    comment: Optional[str] = None

    model_config = ConfigDict(from_attributes=True)


class RecordPaymentResponse(BaseModel):
    """Stored payment plus its effect on the ledger."""

    payment: PaymentRecordResponse
    ledger_status: str
    installment_number: Optional[int] = None
    variance: Optional[Decimal] = None
    variance_outcome: Optional[str] = None
    summary: Optional[PlanSummaryResponse] = None


def _summary(plan: InstallmentPlan, as_of: date) -> PlanSummaryResponse:
    return PlanSummaryResponse(**PlanAnalytics(plan).summary(as_of)._asdict())


@router.get("/members/{subscriber_id}/installment-plan", response_model=PlanResponse)
def get_installment_plan(
    subscriber_id: str,
    as_of: Optional[date] = Query(None, description="Evaluation date (default: today)"),
    db: Session = Depends(get_db),
) -> PlanResponse:
    """Return the member's plan with progress, totals, next due and overdue list."""
    plan, version = MembershipRecordStore(db).read_plan_versioned(subscriber_id)
    if plan is None:
        raise PlanNotFoundError(f"Subscriber {subscriber_id} has no installment plan")
    return PlanResponse(
        subscriber_id=subscriber_id,
        version=version,
        plan=plan,
        summary=_summary(plan, as_of or date.today()),
    )


@router.put("/members/{subscriber_id}/installment-plan", response_model=PlanResponse)
def replace_installment_plan(
    subscriber_id: str,
    payload: ReplacePlanRequest,
    db: Session = Depends(get_db),
) -> PlanResponse:
    """Replace the member's plan with a given or generated schedule."""
    if payload.plan is not None:
        plan = payload.plan
        validate_schedule_total(plan)
    elif payload.total_amount is not None and payload.num_installments is not None:
        plan = build_installment_plan(
            payload.total_amount,
            payload.num_installments,
            payload.start_date or date.today(),
            payload.down_payment,
        )
    else:
        raise InvalidPlanError("Provide either a plan document or total_amount and num_installments")

    try:
        version = MembershipRecordStore(db).replace_plan(subscriber_id, plan)
        AuditService.log(
            db,
            "installment_plan",
            subscriber_id,
            "replace",
            {"total_amount": str(plan.total_amount), "num_installments": plan.num_installments},
        )
        db.commit()
    except Exception:
        db.rollback()
        raise

    return PlanResponse(
        subscriber_id=subscriber_id,
        version=version,
        plan=plan,
        summary=_summary(plan, date.today()),
    )


@router.post(
    "/members/{subscriber_id}/payments",
    response_model=RecordPaymentResponse,
    status_code=status.HTTP_201_CREATED,
)
def record_payment(
    subscriber_id: str,
    payload: RecordPaymentRequest,
    db: Session = Depends(get_db),
) -> RecordPaymentResponse:
    """Record a collected payment and reconcile the member's plan."""
    outcome = PaymentService(db).record_payment(
        subscriber_id,
        payload.amount,
        payload.payment_date,
        payment_mode=payload.payment_mode,
        comment=payload.comment,
    )
    result = outcome.reconciliation
    return RecordPaymentResponse(
        payment=PaymentRecordResponse.model_validate(outcome.payment),
        ledger_status=outcome.ledger_status.value,
        installment_number=result.installment_number if result else None,
        variance=result.variance if result else None,
        variance_outcome=result.outcome.value if result else None,
        summary=_summary(outcome.plan, payload.payment_date) if outcome.plan else None,
    )


@router.get("/members/{subscriber_id}/payments", response_model=list[PaymentRecordResponse])
def list_payments(subscriber_id: str, db: Session = Depends(get_db)) -> list[PaymentRecord]:
    """List the member's payment records, oldest first."""
    return PaymentService(db).get_payments(subscriber_id)


@router.get("/installment-alerts", response_model=list[InstallmentAlert])
def list_installment_alerts(
    as_of: Optional[date] = Query(None, description="Evaluation date (default: today)"),
    db: Session = Depends(get_db),
) -> list[InstallmentAlert]:
    """Due-soon and overdue alerts across all stored plans."""
    store = MembershipRecordStore(db)
    return scanner_from_config().scan_store(store, as_of or date.today())
