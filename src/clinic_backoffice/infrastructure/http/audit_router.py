"""FastAPI router for audit trail read endpoints."""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, Query

from clinic_backoffice.application.dto.audit_models import (
    AuditTrailEntryResponse,
    AuditTrailListResponse,
)
from clinic_backoffice.application.ports.audit_trail_repository_port import AuditEntryRecord
from clinic_backoffice.application.services.audit_query_service import (
    MAX_AUDIT_PAGE_SIZE,
    AuditQueryService,
    AuditTrailQuery,
)
from clinic_backoffice.domain.audit_operation import AuditOperation


def _to_response(entry: AuditEntryRecord) -> AuditTrailEntryResponse:
    return AuditTrailEntryResponse(
        id=entry.id,
        entity_type=entry.entity_type,
        entity_id=entry.entity_id,
        operation=entry.operation,
        changes=entry.changes,
        changed_at=entry.changed_at,
        changed_by=entry.changed_by,
        ip_address=entry.ip_address,
        user_agent=entry.user_agent,
    )


def build_audit_router(*, audit_query_service: AuditQueryService) -> APIRouter:
    """Build router exposing the read-only audit trail collection."""

    router = APIRouter(tags=["audit"])

    @router.get("/api/audit-trails", response_model=AuditTrailListResponse)
    async def list_audit_trails(
        entity_type: str | None = Query(default=None, alias="entityType"),
        entity_id: str | None = Query(default=None, alias="entityId"),
        operation: AuditOperation | None = None,
        page: int = Query(default=1, ge=1),
        page_size: int | None = Query(
            default=None,
            alias="pageSize",
            ge=1,
            le=MAX_AUDIT_PAGE_SIZE,
        ),
    ) -> AuditTrailListResponse:
        result = await audit_query_service.list_entries(
            AuditTrailQuery(
                page=page,
                page_size=page_size,
                entity_type=entity_type,
                entity_id=entity_id,
                operation=operation,
            )
        )
        return AuditTrailListResponse(
            items=[_to_response(item) for item in result.items],
            page=result.page,
            page_size=result.page_size,
            total=result.total,
        )

    @router.get("/api/audit-trails/{entry_id}", response_model=AuditTrailEntryResponse)
    async def get_audit_trail(entry_id: int) -> AuditTrailEntryResponse:
        entry = await audit_query_service.get_entry(entry_id=entry_id)
        if entry is None:
            raise HTTPException(status_code=404, detail="audit entry not found")
        return _to_response(entry)

    return router
