"""Application service for filtered, paginated audit trail reads."""

from __future__ import annotations

from dataclasses import dataclass

from clinic_backoffice.application.ports.audit_trail_repository_port import (
    AuditEntryRecord,
    AuditTrailListFilter,
    AuditTrailPage,
    AuditTrailReaderPort,
)
from clinic_backoffice.domain.audit_operation import AuditOperation

MAX_AUDIT_PAGE_SIZE = 100


@dataclass(frozen=True)
class AuditTrailQuery:
    """Query object for audit trail listing."""

    page: int = 1
    page_size: int | None = None
    entity_type: str | None = None
    entity_id: str | None = None
    operation: AuditOperation | None = None


def _blank_to_none(value: str | None) -> str | None:
    if value is None:
        return None
    stripped = value.strip()
    return stripped or None


class AuditQueryService:
    """Read access to the audit trail; exact-match filters only."""

    def __init__(
        self,
        *,
        audit_trail: AuditTrailReaderPort,
        default_page_size: int = 30,
        max_page_size: int = MAX_AUDIT_PAGE_SIZE,
    ) -> None:
        self._audit_trail = audit_trail
        self._default_page_size = default_page_size
        self._max_page_size = max_page_size

    async def list_entries(self, query: AuditTrailQuery) -> AuditTrailPage:
        """Return entries newest first, clamping pagination to sane bounds."""

        page_size = query.page_size or self._default_page_size
        return await self._audit_trail.list_entries(
            filters=AuditTrailListFilter(
                page=max(query.page, 1),
                page_size=min(max(page_size, 1), self._max_page_size),
                entity_type=_blank_to_none(query.entity_type),
                entity_id=_blank_to_none(query.entity_id),
                operation=query.operation,
            )
        )

    async def get_entry(self, *, entry_id: int) -> AuditEntryRecord | None:
        return await self._audit_trail.get_entry(entry_id=entry_id)
