from __future__ import annotations

from datetime import UTC, datetime

import pytest

from clinic_backoffice.application.ports.audit_trail_repository_port import (
    AuditEntryRecord,
    AuditTrailListFilter,
    AuditTrailPage,
)
from clinic_backoffice.application.services.audit_query_service import (
    AuditQueryService,
    AuditTrailQuery,
)
from clinic_backoffice.domain.audit_operation import AuditOperation


class FakeAuditTrailReader:
    def __init__(self) -> None:
        self.filters: list[AuditTrailListFilter] = []
        self.entry = AuditEntryRecord(
            id=1,
            entity_type="Customer",
            entity_id="7",
            operation=AuditOperation.CREATED,
            changes={"firstName": {"before": None, "after": "John"}},
            changed_at=datetime(2026, 1, 1, tzinfo=UTC),
            changed_by=None,
            ip_address=None,
            user_agent=None,
        )

    async def list_entries(self, *, filters: AuditTrailListFilter) -> AuditTrailPage:
        self.filters.append(filters)
        return AuditTrailPage(
            page=filters.page,
            page_size=filters.page_size,
            total=1,
            items=[self.entry],
        )

    async def get_entry(self, *, entry_id: int) -> AuditEntryRecord | None:
        return self.entry if entry_id == self.entry.id else None


@pytest.mark.asyncio
async def test_default_page_size_comes_from_configuration() -> None:
    reader = FakeAuditTrailReader()
    service = AuditQueryService(audit_trail=reader, default_page_size=30)

    page = await service.list_entries(AuditTrailQuery())

    assert page.page_size == 30
    assert reader.filters[0].page == 1


@pytest.mark.asyncio
async def test_page_size_is_capped_and_page_is_clamped() -> None:
    reader = FakeAuditTrailReader()
    service = AuditQueryService(audit_trail=reader)

    await service.list_entries(AuditTrailQuery(page=0, page_size=5_000))

    assert reader.filters[0].page == 1
    assert reader.filters[0].page_size == 100


@pytest.mark.asyncio
async def test_blank_filters_are_treated_as_absent() -> None:
    reader = FakeAuditTrailReader()
    service = AuditQueryService(audit_trail=reader)

    await service.list_entries(
        AuditTrailQuery(
            entity_type=" Customer ",
            entity_id="",
            operation=AuditOperation.UPDATED,
        )
    )

    assert reader.filters[0].entity_type == "Customer"
    assert reader.filters[0].entity_id is None
    assert reader.filters[0].operation is AuditOperation.UPDATED


@pytest.mark.asyncio
async def test_get_entry_returns_none_for_unknown_id() -> None:
    service = AuditQueryService(audit_trail=FakeAuditTrailReader())

    assert (await service.get_entry(entry_id=1)) is not None
    assert await service.get_entry(entry_id=2) is None
