"""Port for the append-only audit trail."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Protocol
from uuid import UUID

from clinic_backoffice.domain.audit_operation import AuditOperation


@dataclass(frozen=True)
class AuditEntryCreateInput:
    """One captured change set staged for insertion."""

    entity_type: str
    entity_id: str
    operation: AuditOperation
    changes: dict[str, dict[str, Any]]
    changed_at: datetime
    changed_by: UUID | None = None
    ip_address: str | None = None
    user_agent: str | None = None


@dataclass(frozen=True)
class AuditEntryRecord:
    """Audit trail persistence model."""

    id: int
    entity_type: str
    entity_id: str
    operation: AuditOperation
    changes: dict[str, dict[str, Any]]
    changed_at: datetime
    changed_by: UUID | None
    ip_address: str | None
    user_agent: str | None


@dataclass(frozen=True)
class AuditTrailListFilter:
    """Exact-match filters and pagination for audit trail listing."""

    page: int
    page_size: int
    entity_type: str | None = None
    entity_id: str | None = None
    operation: AuditOperation | None = None


@dataclass(frozen=True)
class AuditTrailPage:
    """One page of audit entries, newest first."""

    page: int
    page_size: int
    total: int
    items: list[AuditEntryRecord] = field(default_factory=list)


class AuditTrailReaderPort(Protocol):
    """Read-only audit trail contract."""

    async def list_entries(self, *, filters: AuditTrailListFilter) -> AuditTrailPage:
        """Return entries matching the filters ordered newest first."""

    async def get_entry(self, *, entry_id: int) -> AuditEntryRecord | None:
        """Return one entry by id, or None."""
