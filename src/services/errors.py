"""Installment ledger error taxonomy.

Each error carries a machine-readable code and the HTTP status the API layer
maps it to.
"""

from typing import Any, Dict

from fastapi import status

# Literal 422: the starlette constant name changed between releases
UNPROCESSABLE_CONTENT = 422


class InstallmentLedgerError(Exception):
    """Base installment ledger error."""

    code = "ledger_error"
    http_status = status.HTTP_400_BAD_REQUEST

    def __init__(self, message: str):
        """Initialize error."""
        self.message = message
        super().__init__(message)


class InvalidPlanError(InstallmentLedgerError, ValueError):
    """Plan document is malformed or violates a schedule invariant."""

    code = "invalid_plan"
    http_status = UNPROCESSABLE_CONTENT


class PlanDisabledError(InstallmentLedgerError):
    """Plan exists but installment billing is switched off."""

    code = "plan_disabled"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "Installment plan is disabled"):
        super().__init__(message)


class PlanFullyPaidError(InstallmentLedgerError):
    """Every installment in the plan is already paid."""

    code = "plan_fully_paid"
    http_status = status.HTTP_409_CONFLICT

    def __init__(self, message: str = "All installments are already paid"):
        super().__init__(message)


class InvalidAmountError(InstallmentLedgerError, ValueError):
    """Payment amount is zero or negative."""

    code = "invalid_amount"
    http_status = UNPROCESSABLE_CONTENT


class InvalidRequestError(InstallmentLedgerError, ValueError):
    """Request body failed validation."""

    code = "invalid_request"
    http_status = UNPROCESSABLE_CONTENT


class PlanNotFoundError(InstallmentLedgerError):
    """No membership record (or no plan) for the subscriber."""

    code = "plan_not_found"
    http_status = status.HTTP_404_NOT_FOUND


class WriteConflictError(InstallmentLedgerError):
    """Plan was modified by another writer since it was read."""

    code = "write_conflict"
    http_status = status.HTTP_409_CONFLICT


def error_response(error: InstallmentLedgerError) -> Dict[str, Any]:
    """Create a standardized error response."""
    return {
        "error": {
            "code": error.code,
            "message": error.message,
        }
    }


__all__ = [
    "InstallmentLedgerError",
    "InvalidPlanError",
    "PlanDisabledError",
    "PlanFullyPaidError",
    "InvalidAmountError",
    "InvalidRequestError",
    "PlanNotFoundError",
    "WriteConflictError",
    "error_response",
]
