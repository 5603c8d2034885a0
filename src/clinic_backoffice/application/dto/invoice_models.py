"""Pydantic models for invoice issuance and update endpoints."""

from __future__ import annotations

from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class StrictModel(BaseModel):
    """Base model with unknown-field rejection and camelCase wire names."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class InvoiceLinePayload(StrictModel):
    concept: str | None = None
    description: str | None = None
    quantity: int = Field(default=1, gt=0)
    price: Decimal = Field(ge=0, max_digits=12, decimal_places=2)


class InvoiceCreatePayload(StrictModel):
    """Request body for issuing a new invoice."""

    full_name: str = Field(min_length=1, max_length=255)
    date: datetime | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    phone: str | None = None
    address: str | None = None
    email: str | None = None
    tax_id: str | None = None
    lines: list[InvoiceLinePayload] = Field(default_factory=list)


class InvoiceUpdatePayload(StrictModel):
    """Request body for changing invoice header fields; number and amount are fixed."""

    full_name: str | None = Field(default=None, min_length=1, max_length=255)
    date: datetime | None = None
    currency: str | None = Field(default=None, min_length=3, max_length=3)
    phone: str | None = None
    address: str | None = None
    email: str | None = None
    tax_id: str | None = None


class InvoiceResponse(StrictModel):
    """Invoice header as returned by the API."""

    id: int
    number: str
    date: datetime
    amount: Decimal
    currency: str
    full_name: str
    phone: str | None
    address: str | None
    email: str | None
    tax_id: str | None
    customer_id: int | None
    created_at: datetime
