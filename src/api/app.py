"""FastAPI application for the installment ledger."""

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from src.api.installments import router as installments_router
from src.services.errors import (
    InstallmentLedgerError,
    InvalidPlanError,
    InvalidRequestError,
    error_response,
)

logger = logging.getLogger(__name__)

app = FastAPI(
    title="Installment Ledger",
    description="Installment plan ledger and payment reconciliation",
    version="0.1.0",
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(installments_router)


@app.exception_handler(InstallmentLedgerError)
async def ledger_error_handler(request: Request, exc: InstallmentLedgerError) -> JSONResponse:
    """Render ledger errors as {"error": {"code", "message"}}."""
    logger.info("%s %s -> %s: %s", request.method, request.url.path, exc.code, exc.message)
    return JSONResponse(status_code=exc.http_status, content=error_response(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Render body validation failures in the ledger error shape.

    Failures inside an explicit plan document are reported as invalid_plan.
    """
    errors = exc.errors()
    message = "; ".join(
        f"{'.'.join(str(part) for part in error['loc'])}: {error['msg']}" for error in errors
    )
    if any("plan" in error["loc"] for error in errors):
        ledger_error = InvalidPlanError(message)
    else:
        ledger_error = InvalidRequestError(message)
    return await ledger_error_handler(request, ledger_error)


@app.get("/health")
async def health_check() -> dict:
    """Health check endpoint for monitoring."""
    return {"status": "ok"}
