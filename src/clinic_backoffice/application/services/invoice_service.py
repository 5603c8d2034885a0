"""Application service for invoice issuance and header updates."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from datetime import UTC, datetime
from decimal import Decimal
from typing import Any

from clinic_backoffice.application.ports.customer_repository_port import CustomerCreateInput
from clinic_backoffice.application.ports.invoice_repository_port import (
    InvoiceCreateInput,
    InvoiceLineInput,
    InvoiceRecord,
)
from clinic_backoffice.application.ports.unit_of_work_port import (
    UnitOfWorkFactory,
    UnitOfWorkPort,
)
from clinic_backoffice.application.services.invoice_numbering_service import (
    InvoiceNumberingService,
)

logger = logging.getLogger(__name__)


class InvoiceValidationError(ValueError):
    """Raised when an invoice request is semantically invalid."""


class InvoiceNotFoundError(LookupError):
    """Raised when a target invoice does not exist."""

    def __init__(self, *, invoice_id: int) -> None:
        super().__init__(f"invoice not found: {invoice_id}")
        self.invoice_id = invoice_id


@dataclass(frozen=True)
class InvoiceCreateRequest:
    """Invoice issuance request as received from the API boundary."""

    full_name: str
    lines: list[InvoiceLineInput] = field(default_factory=list)
    date: datetime | None = None
    currency: str | None = None
    phone: str | None = None
    address: str | None = None
    email: str | None = None
    tax_id: str | None = None


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


def _split_full_name(full_name: str) -> tuple[str, str | None]:
    first, _, rest = full_name.strip().partition(" ")
    return first, rest.strip() or None


class InvoiceService:
    """Issue invoices with sequence numbers and audited persistence."""

    def __init__(
        self,
        *,
        unit_of_work_factory: UnitOfWorkFactory,
        numbering: InvoiceNumberingService,
        default_currency: str = "EUR",
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._numbering = numbering
        self._default_currency = default_currency
        self._clock = clock

    async def create_invoice(self, request: InvoiceCreateRequest) -> InvoiceRecord:
        """Issue a number, then persist the invoice, its lines and customer link.

        The number is taken in its own committed transaction. If persisting
        the invoice fails afterwards, that number stays unused and shows up
        in the gap report.
        """

        full_name = request.full_name.strip()
        if not full_name:
            raise InvoiceValidationError("customer name is required")
        for line in request.lines:
            if line.quantity <= 0:
                raise InvoiceValidationError("line quantity must be positive")
            if line.price < Decimal("0"):
                raise InvoiceValidationError("line price cannot be negative")

        issued_at = request.date or self._clock()
        number = await self._numbering.issue_number(issued_on=issued_at.date())

        try:
            async with self._unit_of_work_factory() as uow:
                customer_id = await self._resolve_customer_id(uow, request, full_name)
                invoice = await uow.invoices.create(
                    InvoiceCreateInput(
                        number=number,
                        date=issued_at,
                        currency=request.currency or self._default_currency,
                        full_name=full_name,
                        lines=list(request.lines),
                        phone=request.phone,
                        address=request.address,
                        email=request.email,
                        tax_id=request.tax_id,
                        customer_id=customer_id,
                    )
                )
                await uow.commit()
        except Exception:
            logger.warning("invoice_number_left_unused number=%s", number)
            raise

        logger.info(
            "invoice_created invoice_id=%s number=%s amount=%s",
            invoice.id,
            invoice.number,
            invoice.amount,
        )
        return invoice

    async def update_invoice(
        self,
        *,
        invoice_id: int,
        changes: Mapping[str, Any],
    ) -> InvoiceRecord:
        """Apply header changes; the audit entry commits with the update."""

        if "full_name" in changes and not str(changes["full_name"] or "").strip():
            raise InvoiceValidationError("customer name is required")

        async with self._unit_of_work_factory() as uow:
            try:
                updated = await uow.invoices.update(invoice_id=invoice_id, changes=changes)
            except ValueError as exc:
                raise InvoiceValidationError(str(exc)) from exc
            if updated is None:
                raise InvoiceNotFoundError(invoice_id=invoice_id)
            await uow.commit()

        logger.info(
            "invoice_updated invoice_id=%s fields=%s",
            invoice_id,
            ",".join(sorted(changes)),
        )
        return updated

    async def _resolve_customer_id(
        self,
        uow: UnitOfWorkPort,
        request: InvoiceCreateRequest,
        full_name: str,
    ) -> int | None:
        """Link the invoice to the customer with its tax id, creating one if needed."""

        tax_id = (request.tax_id or "").strip()
        if not tax_id:
            return None

        existing = await uow.customers.get_by_tax_id(tax_id=tax_id)
        if existing is not None:
            return existing.id

        first_name, last_name = _split_full_name(full_name)
        created = await uow.customers.create(
            CustomerCreateInput(
                first_name=first_name,
                last_name=last_name,
                tax_id=tax_id,
                email=request.email,
                phone=request.phone,
                billing_address=request.address,
            )
        )
        logger.info("invoice_customer_created customer_id=%s tax_id=%s", created.id, tax_id)
        return created.id
