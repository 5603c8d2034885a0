"""Port for patient persistence inside an audited unit of work."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Protocol

from clinic_backoffice.domain.patient_status import PatientStatus


@dataclass(frozen=True)
class PatientRecord:
    """Patient persistence model."""

    id: int
    first_name: str
    last_name: str | None
    full_name: str
    date_of_birth: date | None
    tax_id: str | None
    phone: str | None
    email: str | None
    address: str | None
    notes: str | None
    allergies: str | None
    medication: str | None
    status: PatientStatus
    customer_id: int | None
    created_at: datetime


@dataclass(frozen=True)
class PatientCreateInput:
    """Input payload for inserting a patient."""

    first_name: str
    last_name: str | None = None
    date_of_birth: date | None = None
    tax_id: str | None = None
    phone: str | None = None
    email: str | None = None
    address: str | None = None
    notes: str | None = None
    allergies: str | None = None
    medication: str | None = None
    status: PatientStatus = PatientStatus.ACTIVE
    customer_id: int | None = None


class PatientRepositoryPort(Protocol):
    """Patient repository contract."""

    async def create(self, payload: PatientCreateInput) -> PatientRecord:
        """Insert a patient and return the persisted row."""

    async def get(self, *, patient_id: int) -> PatientRecord | None:
        """Return one patient by id, or None."""

    async def update(
        self,
        *,
        patient_id: int,
        changes: Mapping[str, Any],
    ) -> PatientRecord | None:
        """Apply column changes and return the updated row, or None when missing."""

    async def delete(self, *, patient_id: int) -> bool:
        """Delete one patient and return whether a row was removed."""
