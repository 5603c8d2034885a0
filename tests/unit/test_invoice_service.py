from __future__ import annotations

from collections.abc import Mapping
from dataclasses import replace
from datetime import UTC, datetime
from decimal import Decimal
from types import TracebackType
from typing import Any

import pytest

from clinic_backoffice.application.ports.counter_repository_port import CounterUnavailableError
from clinic_backoffice.application.ports.customer_repository_port import (
    CustomerCreateInput,
    CustomerRecord,
)
from clinic_backoffice.application.ports.invoice_repository_port import (
    InvoiceCreateInput,
    InvoiceLineInput,
    InvoiceRecord,
)
from clinic_backoffice.application.services.invoice_numbering_service import (
    InvoiceNumberingService,
)
from clinic_backoffice.application.services.invoice_service import (
    InvoiceCreateRequest,
    InvoiceNotFoundError,
    InvoiceService,
    InvoiceValidationError,
)

FIXED_NOW = datetime(2026, 2, 10, 8, 0, tzinfo=UTC)


class FakeCounters:
    def __init__(self, *, unavailable: bool = False) -> None:
        self.values: dict[str, str] = {}
        self.unavailable = unavailable

    async def next_value(self, *, name: str, initial_value: str) -> str:
        if self.unavailable:
            raise CounterUnavailableError(name=name)
        current = self.values.get(name)
        self.values[name] = initial_value if current is None else str(int(current) + 1)
        return self.values[name]

    async def get_value(self, *, name: str) -> str | None:
        return self.values.get(name)


class FakeCustomers:
    def __init__(self) -> None:
        self.rows: dict[int, CustomerRecord] = {}

    async def create(self, payload: CustomerCreateInput) -> CustomerRecord:
        record = CustomerRecord(
            id=len(self.rows) + 1,
            first_name=payload.first_name,
            last_name=payload.last_name,
            full_name=" ".join(filter(None, [payload.first_name, payload.last_name])),
            tax_id=payload.tax_id,
            email=payload.email,
            phone=payload.phone,
            billing_address=payload.billing_address,
            created_at=FIXED_NOW,
            updated_at=None,
        )
        self.rows[record.id] = record
        return record

    async def get_by_tax_id(self, *, tax_id: str) -> CustomerRecord | None:
        return next((row for row in self.rows.values() if row.tax_id == tax_id), None)


class FakeInvoices:
    def __init__(self, *, fail_on_create: bool = False) -> None:
        self.rows: dict[int, InvoiceRecord] = {}
        self.created_inputs: list[InvoiceCreateInput] = []
        self.fail_on_create = fail_on_create

    async def create(self, payload: InvoiceCreateInput) -> InvoiceRecord:
        if self.fail_on_create:
            raise RuntimeError("insert failed")
        self.created_inputs.append(payload)
        record = InvoiceRecord(
            id=len(self.rows) + 1,
            number=payload.number,
            date=payload.date,
            amount=payload.amount,
            currency=payload.currency,
            full_name=payload.full_name,
            phone=payload.phone,
            address=payload.address,
            email=payload.email,
            tax_id=payload.tax_id,
            customer_id=payload.customer_id,
            created_at=FIXED_NOW,
        )
        self.rows[record.id] = record
        return record

    async def update(
        self,
        *,
        invoice_id: int,
        changes: Mapping[str, Any],
    ) -> InvoiceRecord | None:
        if "number" in changes:
            raise ValueError("invoice columns cannot be updated: number")
        current = self.rows.get(invoice_id)
        if current is None:
            return None
        updated = replace(current, **dict(changes))
        self.rows[invoice_id] = updated
        return updated


class FakeUnitOfWork:
    def __init__(self, customers: FakeCustomers, invoices: FakeInvoices) -> None:
        self.customers = customers
        self.invoices = invoices
        self.patients = None
        self.commits = 0

    async def __aenter__(self) -> FakeUnitOfWork:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        return None

    async def commit(self) -> None:
        self.commits += 1

    async def rollback(self) -> None:
        return None


def _service(
    *,
    counters: FakeCounters | None = None,
    invoices: FakeInvoices | None = None,
) -> tuple[InvoiceService, FakeUnitOfWork, FakeCounters]:
    counters = counters or FakeCounters()
    uow = FakeUnitOfWork(FakeCustomers(), invoices or FakeInvoices())
    service = InvoiceService(
        unit_of_work_factory=lambda: uow,  # type: ignore[arg-type,return-value]
        numbering=InvoiceNumberingService(counters=counters),
        default_currency="EUR",
        clock=lambda: FIXED_NOW,
    )
    return service, uow, counters


@pytest.mark.asyncio
async def test_create_invoice_issues_sequential_numbers_and_sums_lines() -> None:
    service, uow, _ = _service()
    request = InvoiceCreateRequest(
        full_name="Jane Roe",
        lines=[
            InvoiceLineInput(quantity=2, price=Decimal("30.00"), concept="consultation"),
            InvoiceLineInput(quantity=1, price=Decimal("15.50"), concept="x-ray"),
        ],
    )

    first = await service.create_invoice(request)
    second = await service.create_invoice(request)

    assert first.number == "2026000001"
    assert second.number == "2026000002"
    assert first.amount == Decimal("75.50")
    assert first.currency == "EUR"
    assert first.date == FIXED_NOW
    assert uow.commits == 2


@pytest.mark.asyncio
async def test_create_invoice_rejects_blank_name_without_consuming_a_number() -> None:
    service, uow, counters = _service()

    with pytest.raises(InvoiceValidationError):
        await service.create_invoice(InvoiceCreateRequest(full_name="   "))

    assert counters.values == {}
    assert uow.commits == 0


@pytest.mark.asyncio
async def test_create_invoice_rejects_non_positive_quantity() -> None:
    service, _, counters = _service()

    with pytest.raises(InvoiceValidationError):
        await service.create_invoice(
            InvoiceCreateRequest(
                full_name="Jane Roe",
                lines=[InvoiceLineInput(quantity=0, price=Decimal("1.00"))],
            )
        )

    assert counters.values == {}


@pytest.mark.asyncio
async def test_create_invoice_links_existing_customer_by_tax_id() -> None:
    service, uow, _ = _service()
    existing = await uow.customers.create(
        CustomerCreateInput(first_name="Jane", last_name="Roe", tax_id="B123")
    )

    invoice = await service.create_invoice(
        InvoiceCreateRequest(full_name="Jane Roe", tax_id="B123")
    )

    assert invoice.customer_id == existing.id
    assert len(uow.customers.rows) == 1


@pytest.mark.asyncio
async def test_create_invoice_creates_customer_for_unknown_tax_id() -> None:
    service, uow, _ = _service()

    invoice = await service.create_invoice(
        InvoiceCreateRequest(full_name="Jane Mary Roe", tax_id="C999", email="jane@x.com")
    )

    customer = uow.customers.rows[invoice.customer_id or 0]
    assert customer.first_name == "Jane"
    assert customer.last_name == "Mary Roe"
    assert customer.email == "jane@x.com"


@pytest.mark.asyncio
async def test_counter_unavailable_propagates_as_retriable_error() -> None:
    service, uow, _ = _service(counters=FakeCounters(unavailable=True))

    with pytest.raises(CounterUnavailableError):
        await service.create_invoice(InvoiceCreateRequest(full_name="Jane Roe"))

    assert uow.commits == 0


@pytest.mark.asyncio
async def test_failed_persist_leaves_issued_number_unused() -> None:
    service, uow, counters = _service(invoices=FakeInvoices(fail_on_create=True))

    with pytest.raises(RuntimeError):
        await service.create_invoice(InvoiceCreateRequest(full_name="Jane Roe"))

    assert counters.values == {"invoices_2026": "2026000001"}
    assert uow.commits == 0


@pytest.mark.asyncio
async def test_update_invoice_applies_changes() -> None:
    service, _, _ = _service()
    created = await service.create_invoice(InvoiceCreateRequest(full_name="Jane Roe"))

    updated = await service.update_invoice(
        invoice_id=created.id,
        changes={"email": "jane@x.com"},
    )

    assert updated.email == "jane@x.com"
    assert updated.number == created.number


@pytest.mark.asyncio
async def test_update_missing_invoice_raises_not_found() -> None:
    service, _, _ = _service()

    with pytest.raises(InvoiceNotFoundError):
        await service.update_invoice(invoice_id=404, changes={"email": "x@y.com"})


@pytest.mark.asyncio
async def test_update_invoice_rejects_fixed_columns_and_blank_name() -> None:
    service, _, _ = _service()
    created = await service.create_invoice(InvoiceCreateRequest(full_name="Jane Roe"))

    with pytest.raises(InvoiceValidationError):
        await service.update_invoice(invoice_id=created.id, changes={"number": "2026999999"})
    with pytest.raises(InvoiceValidationError):
        await service.update_invoice(invoice_id=created.id, changes={"full_name": " "})
