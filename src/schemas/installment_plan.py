"""Pydantic value objects for the installment plan document.

The plan is stored as a JSON document on the membership record. These models
are the only way the rest of the code sees it: documents are validated on
read, legacy float amounts are upgraded to Decimal and installments are
sorted by number once at construction.
"""

from datetime import date
from decimal import Decimal
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator, model_validator

from src.services.errors import InvalidPlanError


def _upgrade_legacy_number(value: Any) -> Any:
    """Convert float amounts from legacy documents without binary noise."""
    if isinstance(value, float):
        return Decimal(str(value))
    return value


class Installment(BaseModel):
    """One scheduled payment within a plan."""

    model_config = ConfigDict(frozen=True)

    number: int = Field(..., ge=1, description="1-based sequence number")
    amount: Decimal = Field(..., ge=0, description="Planned amount")
    due_date: date
    paid: bool = False
    paid_date: date | None = None
    payment_id: str | None = Field(None, description="Back-reference to the payment record")
    paid_amount: Decimal | None = Field(None, ge=0, description="Amount actually collected")

    @field_validator("amount", "paid_amount", mode="before")
    @classmethod
    def _normalize_amounts(cls, value: Any) -> Any:
        return _upgrade_legacy_number(value)

    @field_validator("payment_id", mode="before")
    @classmethod
    def _stringify_payment_id(cls, value: Any) -> Any:
        if isinstance(value, int) and not isinstance(value, bool):
            return str(value)
        return value

    @model_validator(mode="after")
    def _check_payment_fields(self) -> "Installment":
        if self.paid:
            if self.paid_date is None or self.payment_id is None:
                raise ValueError(
                    f"Installment #{self.number} is paid but has no paid_date or payment_id"
                )
        elif any(v is not None for v in (self.paid_amount, self.paid_date, self.payment_id)):
            raise ValueError(f"Installment #{self.number} is unpaid but carries payment data")
        return self


class InstallmentPlan(BaseModel):
    """Payment schedule owned by exactly one membership record."""

    model_config = ConfigDict(frozen=True)

    enabled: bool = True
    total_amount: Decimal = Field(..., ge=0)
    num_installments: int = Field(..., ge=1)
    down_payment: Decimal | None = Field(None, ge=0, description="Informational only")
    installments: tuple[Installment, ...]

    @field_validator("total_amount", "down_payment", mode="before")
    @classmethod
    def _normalize_amounts(cls, value: Any) -> Any:
        return _upgrade_legacy_number(value)

    @field_validator("installments", mode="after")
    @classmethod
    def _sort_by_number(cls, value: tuple[Installment, ...]) -> tuple[Installment, ...]:
        return tuple(sorted(value, key=lambda inst: inst.number))

    @model_validator(mode="after")
    def _check_schedule(self) -> "InstallmentPlan":
        if self.num_installments != len(self.installments):
            raise ValueError(
                f"num_installments={self.num_installments} but plan has "
                f"{len(self.installments)} installments"
            )

        numbers = [inst.number for inst in self.installments]
        if numbers != list(range(1, len(numbers) + 1)):
            raise ValueError(f"Installment numbers must be unique and contiguous from 1: {numbers}")

        for prev, curr in zip(self.installments, self.installments[1:]):
            if curr.due_date < prev.due_date:
                raise ValueError(
                    f"Installment #{curr.number} is due {curr.due_date}, "
                    f"before installment #{prev.number} ({prev.due_date})"
                )
        return self

    def installment(self, number: int) -> Installment:
        """Return installment by its 1-based number."""
        return self.installments[number - 1]

    def to_document(self) -> dict[str, Any]:
        """Serialize to the persisted JSON document (Decimals as strings)."""
        return self.model_dump(mode="json")

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "InstallmentPlan":
        """Validate a persisted document.

        Raises:
            InvalidPlanError: If the document is malformed
        """
        try:
            return cls.model_validate(document)
        except ValidationError as e:
            raise InvalidPlanError(f"Malformed installment plan document: {e}") from e


__all__ = ["Installment", "InstallmentPlan"]
