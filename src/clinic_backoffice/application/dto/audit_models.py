"""Pydantic models for audit trail and invoice gap endpoints."""

from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from clinic_backoffice.domain.audit_operation import AuditOperation


class StrictModel(BaseModel):
    """Base model with unknown-field rejection and camelCase wire names."""

    model_config = ConfigDict(extra="forbid", alias_generator=to_camel, populate_by_name=True)


class AuditTrailEntryResponse(StrictModel):
    """One audit entry as returned by the API."""

    id: int
    entity_type: str
    entity_id: str
    operation: AuditOperation
    changes: dict[str, dict[str, Any]]
    changed_at: datetime
    changed_by: UUID | None
    ip_address: str | None
    user_agent: str | None


class AuditTrailListResponse(StrictModel):
    """Paginated audit trail response model."""

    items: list[AuditTrailEntryResponse]
    page: int = Field(ge=1)
    page_size: int = Field(ge=1)
    total: int = Field(ge=0)


class InvoiceGapsResponse(StrictModel):
    """Missing invoice numbers for one year."""

    year: int
    total_invoices: int = Field(ge=0)
    total_gaps: int = Field(ge=0)
    gaps: list[str]
