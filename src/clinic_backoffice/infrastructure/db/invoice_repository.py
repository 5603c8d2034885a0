"""SQLAlchemy adapters for invoice writes and issued-number reads."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import datetime
from decimal import Decimal
from typing import TYPE_CHECKING, Any, cast

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_backoffice.application.ports.invoice_repository_port import (
    DuplicateInvoiceNumberError,
    InvoiceCreateInput,
    InvoiceNumberQueryPort,
    InvoiceRecord,
    InvoiceRepositoryPort,
)
from clinic_backoffice.domain.invoice_number import YEAR_WIDTH
from clinic_backoffice.infrastructure.db.metadata import invoice_lines, invoices

if TYPE_CHECKING:
    from clinic_backoffice.infrastructure.db.unit_of_work import SqlAlchemyUnitOfWork

_UPDATABLE_COLUMNS = frozenset(
    {"date", "currency", "full_name", "phone", "address", "email", "tax_id", "customer_id"}
)


def _is_duplicate_number_error(error: IntegrityError) -> bool:
    message = str(error.orig).lower()
    return "number" in message and ("unique" in message or "duplicate" in message)


def _to_invoice_record(row: RowMapping) -> InvoiceRecord:
    return InvoiceRecord(
        id=cast(int, row["id"]),
        number=cast(str, row["number"]),
        date=cast(datetime, row["date"]),
        amount=Decimal(str(row["amount"])),
        currency=cast(str, row["currency"]),
        full_name=cast(str, row["full_name"]),
        phone=cast(str | None, row["phone"]),
        address=cast(str | None, row["address"]),
        email=cast(str | None, row["email"]),
        tax_id=cast(str | None, row["tax_id"]),
        customer_id=cast(int | None, row["customer_id"]),
        created_at=cast(datetime, row["created_at"]),
    )


class SqlAlchemyInvoiceRepository(InvoiceRepositoryPort):
    """Invoice repository bound to one unit of work."""

    def __init__(self, unit_of_work: SqlAlchemyUnitOfWork) -> None:
        self._uow = unit_of_work

    async def create(self, payload: InvoiceCreateInput) -> InvoiceRecord:
        """Insert the invoice header (audited) and its lines (not audited)."""

        try:
            row = await self._uow.insert(
                invoices,
                {
                    "number": payload.number,
                    "date": payload.date,
                    "amount": payload.amount,
                    "currency": payload.currency,
                    "full_name": payload.full_name,
                    "phone": payload.phone,
                    "address": payload.address,
                    "email": payload.email,
                    "tax_id": payload.tax_id,
                    "customer_id": payload.customer_id,
                },
            )
        except IntegrityError as error:
            if _is_duplicate_number_error(error):
                raise DuplicateInvoiceNumberError(number=payload.number) from error
            raise

        if payload.lines:
            await self._uow.execute(
                sa.insert(invoice_lines),
                [
                    {
                        "invoice_id": row["id"],
                        "concept": line.concept,
                        "description": line.description,
                        "quantity": line.quantity,
                        "price": line.price,
                        "amount": line.amount,
                    }
                    for line in payload.lines
                ],
            )
        return _to_invoice_record(row)

    async def get(self, *, invoice_id: int) -> InvoiceRecord | None:
        statement = sa.select(invoices).where(invoices.c.id == invoice_id)
        result = await self._uow.execute(statement)
        row = result.mappings().one_or_none()
        return None if row is None else _to_invoice_record(row)

    async def update(
        self,
        *,
        invoice_id: int,
        changes: Mapping[str, Any],
    ) -> InvoiceRecord | None:
        """Update header columns; number and amount are fixed once issued.

        The date may only move within the year its number was issued for.
        """

        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"invoice columns cannot be updated: {', '.join(sorted(unknown))}")
        if "date" in changes:
            if changes["date"] is None:
                raise ValueError("invoice date cannot be cleared")
            current = await self.get(invoice_id=invoice_id)
            if current is None:
                return None
            number_year = current.number[:YEAR_WIDTH]
            if str(changes["date"].year) != number_year:
                raise ValueError(f"invoice date must stay within {number_year}")
        row = await self._uow.update(invoices, entity_id=invoice_id, values=changes)
        return None if row is None else _to_invoice_record(row)


class SqlAlchemyInvoiceNumberQueries(InvoiceNumberQueryPort):
    """Committed-read queries over issued invoice numbers."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def list_numbers_for_year(self, *, year: int) -> list[str]:
        """Return issued numbers with the year prefix, in ascending order."""

        statement = (
            sa.select(invoices.c.number)
            .where(invoices.c.number.like(f"{year}%"))
            .order_by(invoices.c.number)
        )

        async with self._session_factory() as session:
            result = await session.execute(statement)

        return [str(number) for number in result.scalars().all()]
