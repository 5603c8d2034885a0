"""SQLAlchemy adapter for the append-only audit trail."""

from __future__ import annotations

import json
from collections.abc import Sequence
from datetime import datetime
from typing import Any, cast
from uuid import UUID

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_backoffice.application.ports.audit_trail_repository_port import (
    AuditEntryCreateInput,
    AuditEntryRecord,
    AuditTrailListFilter,
    AuditTrailPage,
    AuditTrailReaderPort,
)
from clinic_backoffice.domain.audit_operation import AuditOperation
from clinic_backoffice.infrastructure.db.metadata import audit_trail


class SqlAlchemyAuditTrailRepository(AuditTrailReaderPort):
    """Audit trail store: appends ride the caller's transaction, reads use their own."""

    def __init__(self, session_factory: async_sessionmaker[AsyncSession]) -> None:
        self._session_factory = session_factory

    async def append_entries(
        self,
        session: AsyncSession,
        entries: Sequence[AuditEntryCreateInput],
    ) -> list[int]:
        """Insert staged entries on the given session without committing."""

        inserted_ids: list[int] = []
        for entry in entries:
            statement = sa.insert(audit_trail).values(
                entity_type=entry.entity_type,
                entity_id=entry.entity_id,
                operation=entry.operation.value,
                changes=entry.changes,
                changed_at=entry.changed_at,
                changed_by=entry.changed_by,
                ip_address=entry.ip_address,
                user_agent=entry.user_agent,
            ).returning(audit_trail.c.id)
            result = await session.execute(statement)
            inserted_ids.append(int(result.scalar_one()))
        return inserted_ids

    async def list_entries(self, *, filters: AuditTrailListFilter) -> AuditTrailPage:
        """Return one page of entries matching exact filters, newest first."""

        conditions: list[sa.ColumnElement[bool]] = []
        if filters.entity_type is not None:
            conditions.append(audit_trail.c.entity_type == filters.entity_type)
        if filters.entity_id is not None:
            conditions.append(audit_trail.c.entity_id == filters.entity_id)
        if filters.operation is not None:
            conditions.append(audit_trail.c.operation == filters.operation.value)

        count_statement = sa.select(sa.func.count()).select_from(audit_trail).where(*conditions)
        page_statement = (
            sa.select(audit_trail)
            .where(*conditions)
            .order_by(audit_trail.c.changed_at.desc(), audit_trail.c.id.desc())
            .limit(filters.page_size)
            .offset((filters.page - 1) * filters.page_size)
        )

        async with self._session_factory() as session:
            total = (await session.execute(count_statement)).scalar_one()
            rows = (await session.execute(page_statement)).mappings().all()

        return AuditTrailPage(
            page=filters.page,
            page_size=filters.page_size,
            total=int(total),
            items=[_to_audit_entry_record(row) for row in rows],
        )

    async def get_entry(self, *, entry_id: int) -> AuditEntryRecord | None:
        """Return one audit entry by id, or None."""

        statement = sa.select(audit_trail).where(audit_trail.c.id == entry_id)

        async with self._session_factory() as session:
            result = await session.execute(statement)

        row = result.mappings().one_or_none()
        return None if row is None else _to_audit_entry_record(row)


def _to_audit_entry_record(row: RowMapping) -> AuditEntryRecord:
    raw_changes = row["changes"]
    if isinstance(raw_changes, str):
        changes = cast(dict[str, dict[str, Any]], json.loads(raw_changes))
    else:
        changes = cast(dict[str, dict[str, Any]], raw_changes)
    raw_changed_by = row["changed_by"]
    changed_by = None
    if raw_changed_by is not None:
        changed_by = (
            raw_changed_by if isinstance(raw_changed_by, UUID) else UUID(str(raw_changed_by))
        )

    return AuditEntryRecord(
        id=cast(int, row["id"]),
        entity_type=cast(str, row["entity_type"]),
        entity_id=cast(str, row["entity_id"]),
        operation=AuditOperation(cast(str, row["operation"])),
        changes=changes,
        changed_at=cast(datetime, row["changed_at"]),
        changed_by=changed_by,
        ip_address=cast(str | None, row["ip_address"]),
        user_agent=cast(str | None, row["user_agent"]),
    )
