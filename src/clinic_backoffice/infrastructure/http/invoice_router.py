"""FastAPI router for invoice issuance, updates and the gap report."""

from __future__ import annotations

import logging
from datetime import UTC, datetime

from fastapi import APIRouter, HTTPException, Query

from clinic_backoffice.application.dto.audit_models import InvoiceGapsResponse
from clinic_backoffice.application.dto.invoice_models import (
    InvoiceCreatePayload,
    InvoiceResponse,
    InvoiceUpdatePayload,
)
from clinic_backoffice.application.ports.counter_repository_port import (
    CounterUnavailableError,
)
from clinic_backoffice.application.ports.invoice_repository_port import (
    DuplicateInvoiceNumberError,
    InvoiceLineInput,
    InvoiceRecord,
)
from clinic_backoffice.application.services.invoice_gap_service import InvoiceGapService
from clinic_backoffice.application.services.invoice_service import (
    InvoiceCreateRequest,
    InvoiceNotFoundError,
    InvoiceService,
    InvoiceValidationError,
)

logger = logging.getLogger(__name__)

COUNTER_UNAVAILABLE_DETAIL = "could not issue invoice number, please retry"


def _to_response(invoice: InvoiceRecord) -> InvoiceResponse:
    return InvoiceResponse(
        id=invoice.id,
        number=invoice.number,
        date=invoice.date,
        amount=invoice.amount,
        currency=invoice.currency,
        full_name=invoice.full_name,
        phone=invoice.phone,
        address=invoice.address,
        email=invoice.email,
        tax_id=invoice.tax_id,
        customer_id=invoice.customer_id,
        created_at=invoice.created_at,
    )


def build_invoice_router(
    *,
    invoice_service: InvoiceService,
    gap_service: InvoiceGapService,
) -> APIRouter:
    """Build router exposing invoice endpoints."""

    router = APIRouter(tags=["invoices"])

    @router.get("/api/invoice-gaps", response_model=InvoiceGapsResponse)
    async def get_invoice_gaps(year: int | None = Query(default=None)) -> InvoiceGapsResponse:
        if year is None or year <= 0:
            year = datetime.now(tz=UTC).year
        report = await gap_service.find_gaps(year=year)
        return InvoiceGapsResponse(
            year=report.year,
            total_invoices=report.total_invoices,
            total_gaps=report.total_gaps,
            gaps=report.gaps,
        )

    @router.post("/api/invoices", response_model=InvoiceResponse, status_code=201)
    async def create_invoice(payload: InvoiceCreatePayload) -> InvoiceResponse:
        try:
            invoice = await invoice_service.create_invoice(
                InvoiceCreateRequest(
                    full_name=payload.full_name,
                    date=payload.date,
                    currency=payload.currency,
                    phone=payload.phone,
                    address=payload.address,
                    email=payload.email,
                    tax_id=payload.tax_id,
                    lines=[
                        InvoiceLineInput(
                            quantity=line.quantity,
                            price=line.price,
                            concept=line.concept,
                            description=line.description,
                        )
                        for line in payload.lines
                    ],
                )
            )
        except CounterUnavailableError as exc:
            logger.warning("invoice_create_counter_unavailable counter=%s", exc.name)
            raise HTTPException(status_code=503, detail=COUNTER_UNAVAILABLE_DETAIL) from exc
        except DuplicateInvoiceNumberError as exc:
            raise HTTPException(status_code=409, detail=str(exc)) from exc
        except InvoiceValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _to_response(invoice)

    @router.put("/api/invoices/{invoice_id}", response_model=InvoiceResponse)
    async def update_invoice(invoice_id: int, payload: InvoiceUpdatePayload) -> InvoiceResponse:
        try:
            invoice = await invoice_service.update_invoice(
                invoice_id=invoice_id,
                changes=payload.model_dump(exclude_unset=True),
            )
        except InvoiceNotFoundError as exc:
            raise HTTPException(status_code=404, detail="invoice not found") from exc
        except InvoiceValidationError as exc:
            raise HTTPException(status_code=422, detail=str(exc)) from exc
        return _to_response(invoice)

    return router
