"""SQLAlchemy adapter for patient writes inside an audited unit of work."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date, datetime
from typing import TYPE_CHECKING, Any, cast

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping

from clinic_backoffice.application.ports.patient_repository_port import (
    PatientCreateInput,
    PatientRecord,
    PatientRepositoryPort,
)
from clinic_backoffice.domain.patient_status import PatientStatus
from clinic_backoffice.domain.person_name import compose_full_name
from clinic_backoffice.infrastructure.db.metadata import patients

if TYPE_CHECKING:
    from clinic_backoffice.infrastructure.db.unit_of_work import SqlAlchemyUnitOfWork

_NAME_COLUMNS = frozenset({"first_name", "last_name"})
_UPDATABLE_COLUMNS = frozenset(
    {
        "first_name",
        "last_name",
        "date_of_birth",
        "tax_id",
        "phone",
        "email",
        "address",
        "notes",
        "allergies",
        "medication",
        "status",
        "customer_id",
    }
)


def _to_patient_record(row: RowMapping) -> PatientRecord:
    return PatientRecord(
        id=cast(int, row["id"]),
        first_name=cast(str, row["first_name"]),
        last_name=cast(str | None, row["last_name"]),
        full_name=cast(str, row["full_name"]),
        date_of_birth=cast(date | None, row["date_of_birth"]),
        tax_id=cast(str | None, row["tax_id"]),
        phone=cast(str | None, row["phone"]),
        email=cast(str | None, row["email"]),
        address=cast(str | None, row["address"]),
        notes=cast(str | None, row["notes"]),
        allergies=cast(str | None, row["allergies"]),
        medication=cast(str | None, row["medication"]),
        status=PatientStatus(cast(str, row["status"])),
        customer_id=cast(int | None, row["customer_id"]),
        created_at=cast(datetime, row["created_at"]),
    )


class SqlAlchemyPatientRepository(PatientRepositoryPort):
    """Patient repository bound to one unit of work."""

    def __init__(self, unit_of_work: SqlAlchemyUnitOfWork) -> None:
        self._uow = unit_of_work

    async def create(self, payload: PatientCreateInput) -> PatientRecord:
        row = await self._uow.insert(
            patients,
            {
                "first_name": payload.first_name,
                "last_name": payload.last_name,
                "full_name": compose_full_name(payload.first_name, payload.last_name),
                "date_of_birth": payload.date_of_birth,
                "tax_id": payload.tax_id,
                "phone": payload.phone,
                "email": payload.email,
                "address": payload.address,
                "notes": payload.notes,
                "allergies": payload.allergies,
                "medication": payload.medication,
                "status": payload.status.value,
                "customer_id": payload.customer_id,
            },
        )
        return _to_patient_record(row)

    async def get(self, *, patient_id: int) -> PatientRecord | None:
        statement = sa.select(patients).where(patients.c.id == patient_id)
        result = await self._uow.execute(statement)
        row = result.mappings().one_or_none()
        return None if row is None else _to_patient_record(row)

    async def update(
        self,
        *,
        patient_id: int,
        changes: Mapping[str, Any],
    ) -> PatientRecord | None:
        """Apply changes, keeping ``full_name`` in step with the name columns."""

        unknown = set(changes) - _UPDATABLE_COLUMNS
        if unknown:
            raise ValueError(f"patient columns cannot be updated: {', '.join(sorted(unknown))}")

        values = dict(changes)
        if isinstance(values.get("status"), PatientStatus):
            values["status"] = values["status"].value
        if _NAME_COLUMNS & set(values):
            current = await self.get(patient_id=patient_id)
            if current is None:
                return None
            values["full_name"] = compose_full_name(
                values.get("first_name", current.first_name),
                values.get("last_name", current.last_name),
            )

        row = await self._uow.update(patients, entity_id=patient_id, values=values)
        return None if row is None else _to_patient_record(row)

    async def delete(self, *, patient_id: int) -> bool:
        return await self._uow.delete(patients, entity_id=patient_id) is not None
