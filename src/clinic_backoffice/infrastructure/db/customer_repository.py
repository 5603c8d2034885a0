"""SQLAlchemy adapter for customer writes inside an audited unit of work."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import UTC, datetime
from typing import TYPE_CHECKING, Any, cast

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping

from clinic_backoffice.application.ports.customer_repository_port import (
    CustomerCreateInput,
    CustomerRecord,
    CustomerRepositoryPort,
)
from clinic_backoffice.domain.person_name import compose_full_name
from clinic_backoffice.infrastructure.db.metadata import customers

if TYPE_CHECKING:
    from clinic_backoffice.infrastructure.db.unit_of_work import SqlAlchemyUnitOfWork

_UPDATABLE_COLUMNS = frozenset(
    {
        "first_name",
        "last_name",
        "full_name",
        "tax_id",
        "email",
        "phone",
        "billing_address",
    }
)
_NAME_COLUMNS = frozenset({"first_name", "last_name"})


def _to_customer_record(row: RowMapping) -> CustomerRecord:
    return CustomerRecord(
        id=cast(int, row["id"]),
        first_name=cast(str, row["first_name"]),
        last_name=cast(str | None, row["last_name"]),
        full_name=cast(str | None, row["full_name"]),
        tax_id=cast(str | None, row["tax_id"]),
        email=cast(str | None, row["email"]),
        phone=cast(str | None, row["phone"]),
        billing_address=cast(str | None, row["billing_address"]),
        created_at=cast(datetime, row["created_at"]),
        updated_at=cast(datetime | None, row["updated_at"]),
    )


def _require_updatable(changes: Mapping[str, Any]) -> None:
    unknown = set(changes) - _UPDATABLE_COLUMNS
    if unknown:
        raise ValueError(f"customer columns cannot be updated: {', '.join(sorted(unknown))}")


class SqlAlchemyCustomerRepository(CustomerRepositoryPort):
    """Customer repository bound to one unit of work."""

    def __init__(self, unit_of_work: SqlAlchemyUnitOfWork) -> None:
        self._uow = unit_of_work

    async def create(self, payload: CustomerCreateInput) -> CustomerRecord:
        """Insert a customer, deriving its full name from first and last name."""

        row = await self._uow.insert(
            customers,
            {
                "first_name": payload.first_name,
                "last_name": payload.last_name,
                "full_name": compose_full_name(payload.first_name, payload.last_name),
                "tax_id": payload.tax_id,
                "email": payload.email,
                "phone": payload.phone,
                "billing_address": payload.billing_address,
            },
        )
        return _to_customer_record(row)

    async def get(self, *, customer_id: int) -> CustomerRecord | None:
        statement = sa.select(customers).where(customers.c.id == customer_id)
        result = await self._uow.execute(statement)
        row = result.mappings().one_or_none()
        return None if row is None else _to_customer_record(row)

    async def get_by_tax_id(self, *, tax_id: str) -> CustomerRecord | None:
        statement = sa.select(customers).where(customers.c.tax_id == tax_id).limit(1)
        result = await self._uow.execute(statement)
        row = result.mappings().one_or_none()
        return None if row is None else _to_customer_record(row)

    async def update(
        self,
        *,
        customer_id: int,
        changes: Mapping[str, Any],
    ) -> CustomerRecord | None:
        """Apply changes, keeping ``full_name`` in step with the name columns.

        ``updated_at`` only moves when something was changed.
        """

        _require_updatable(changes)
        values = dict(changes)
        if _NAME_COLUMNS & set(values):
            current = await self.get(customer_id=customer_id)
            if current is None:
                return None
            values["full_name"] = compose_full_name(
                values.get("first_name", current.first_name),
                values.get("last_name", current.last_name),
            )
        if values:
            values["updated_at"] = datetime.now(tz=UTC)
        row = await self._uow.update(customers, entity_id=customer_id, values=values)
        return None if row is None else _to_customer_record(row)

    async def delete(self, *, customer_id: int) -> bool:
        return await self._uow.delete(customers, entity_id=customer_id) is not None

    async def list_after(self, *, after_id: int, limit: int) -> list[CustomerRecord]:
        statement = (
            sa.select(customers)
            .where(customers.c.id > after_id)
            .order_by(customers.c.id)
            .limit(limit)
        )
        result = await self._uow.execute(statement)
        return [_to_customer_record(row) for row in result.mappings().all()]
