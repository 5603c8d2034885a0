"""Ports for invoice persistence and issued-number queries."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field
from datetime import datetime
from decimal import Decimal
from typing import Any, Protocol


class DuplicateInvoiceNumberError(ValueError):
    """Raised when an invoice number is already taken."""

    def __init__(self, *, number: str) -> None:
        super().__init__(f"invoice number already issued: {number}")
        self.number = number


@dataclass(frozen=True)
class InvoiceLineInput:
    """One billable line of a new invoice."""

    quantity: int
    price: Decimal
    concept: str | None = None
    description: str | None = None

    @property
    def amount(self) -> Decimal:
        return self.price * self.quantity


@dataclass(frozen=True)
class InvoiceCreateInput:
    """Input payload for inserting an invoice and its lines."""

    number: str
    date: datetime
    currency: str
    full_name: str
    lines: list[InvoiceLineInput] = field(default_factory=list)
    phone: str | None = None
    address: str | None = None
    email: str | None = None
    tax_id: str | None = None
    customer_id: int | None = None

    @property
    def amount(self) -> Decimal:
        return sum((line.amount for line in self.lines), Decimal("0"))


@dataclass(frozen=True)
class InvoiceRecord:
    """Invoice persistence model."""

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


class InvoiceRepositoryPort(Protocol):
    """Invoice repository contract."""

    async def create(self, payload: InvoiceCreateInput) -> InvoiceRecord:
        """Insert an invoice with its lines and return the invoice row."""

    async def get(self, *, invoice_id: int) -> InvoiceRecord | None:
        """Return one invoice by id, or None."""

    async def update(
        self,
        *,
        invoice_id: int,
        changes: Mapping[str, Any],
    ) -> InvoiceRecord | None:
        """Apply header changes and return the updated row, or None when missing."""


class InvoiceNumberQueryPort(Protocol):
    """Read committed invoice numbers without taking locks."""

    async def list_numbers_for_year(self, *, year: int) -> list[str]:
        """Return every issued number whose prefix is the given year."""
