"""Audited unit of work over one SQLAlchemy async session.

Writes to business tables go through ``insert``/``update``/``delete`` here,
which register the mutation with the change-set extractor. Captured entries
are staged and written on the same session right before commit, so a
business mutation and its audit entry always succeed or fail together.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping, Sequence
from types import TracebackType
from typing import Any

import sqlalchemy as sa
from sqlalchemy.engine import RowMapping
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_backoffice.application.audit.change_set_extractor import ChangeSetExtractor
from clinic_backoffice.application.ports.audit_trail_repository_port import (
    AuditEntryCreateInput,
)
from clinic_backoffice.infrastructure.db.audit_trail_repository import (
    SqlAlchemyAuditTrailRepository,
)
from clinic_backoffice.infrastructure.db.customer_repository import SqlAlchemyCustomerRepository
from clinic_backoffice.infrastructure.db.invoice_repository import SqlAlchemyInvoiceRepository
from clinic_backoffice.infrastructure.db.patient_repository import SqlAlchemyPatientRepository

logger = logging.getLogger(__name__)


class UnitOfWorkNotStartedError(RuntimeError):
    """Raised when the unit of work is used outside ``async with``."""

    def __init__(self) -> None:
        super().__init__("unit of work used outside of its async context")


class SqlAlchemyUnitOfWork:
    """Transaction scope whose writes to audited tables are captured."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        change_sets: ChangeSetExtractor,
        audit_trail: SqlAlchemyAuditTrailRepository,
    ) -> None:
        self._session_factory = session_factory
        self._change_sets = change_sets
        self._audit_trail = audit_trail
        self._session: AsyncSession | None = None
        self._pending: list[AuditEntryCreateInput] = []
        self.customers = SqlAlchemyCustomerRepository(self)
        self.patients = SqlAlchemyPatientRepository(self)
        self.invoices = SqlAlchemyInvoiceRepository(self)

    async def __aenter__(self) -> SqlAlchemyUnitOfWork:
        self._session = self._session_factory()
        self._pending = []
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        session = self._require_session()
        try:
            await self.rollback()
        finally:
            await session.close()
            self._session = None

    @property
    def session(self) -> AsyncSession:
        return self._require_session()

    @property
    def pending_audit_entries(self) -> tuple[AuditEntryCreateInput, ...]:
        return tuple(self._pending)

    async def commit(self) -> None:
        """Write staged audit entries on this session, then commit everything."""

        session = self._require_session()
        pending = list(self._pending)
        if pending:
            await self._audit_trail.append_entries(session, pending)
        await session.commit()
        self._pending = []
        for entry in pending:
            logger.info(
                "audit_entry_committed entity_type=%s entity_id=%s operation=%s fields=%s",
                entry.entity_type,
                entry.entity_id,
                entry.operation.value,
                ",".join(sorted(entry.changes)),
            )

    async def rollback(self) -> None:
        """Discard uncommitted writes together with their staged audit entries."""

        session = self._require_session()
        if self._pending:
            logger.debug("audit_entries_discarded count=%s", len(self._pending))
        self._pending = []
        await session.rollback()

    async def execute(
        self,
        statement: sa.Executable,
        parameters: Sequence[Mapping[str, Any]] | Mapping[str, Any] | None = None,
    ) -> Any:
        """Run a statement that needs no audit capture (reads, child rows)."""

        return await self._require_session().execute(statement, parameters)

    async def insert(self, table: sa.Table, values: Mapping[str, Any]) -> RowMapping:
        """Insert one row, capture it, and return the persisted row."""

        statement = sa.insert(table).values(**dict(values)).returning(*table.c)
        result = await self._require_session().execute(statement)
        row = result.mappings().one()

        entity_type = self._audited_entity_type(table)
        if entity_type is not None:
            self.record_insert(
                entity_type=entity_type,
                entity_id=row[self._identifier(table)],
                values=row,
            )
        return row

    async def update(
        self,
        table: sa.Table,
        *,
        entity_id: Any,
        values: Mapping[str, Any],
    ) -> RowMapping | None:
        """Update one row by id, capture the diff, and return the new row."""

        id_column = table.c[self._identifier(table)]
        previous = await self._select_for_update(table, entity_id=entity_id)
        if previous is None:
            return None
        if not values:
            return previous

        statement = (
            sa.update(table)
            .where(id_column == entity_id)
            .values(**dict(values))
            .returning(*table.c)
        )
        result = await self._require_session().execute(statement)
        current = result.mappings().one()

        entity_type = self._audited_entity_type(table)
        if entity_type is not None:
            self.record_update(
                entity_type=entity_type,
                entity_id=entity_id,
                old_values=previous,
                new_values=current,
            )
        return current

    async def delete(self, table: sa.Table, *, entity_id: Any) -> RowMapping | None:
        """Delete one row by id, capture its final values, and return them."""

        id_column = table.c[self._identifier(table)]
        previous = await self._select_for_update(table, entity_id=entity_id)
        if previous is None:
            return None

        await self._require_session().execute(sa.delete(table).where(id_column == entity_id))

        entity_type = self._audited_entity_type(table)
        if entity_type is not None:
            self.record_delete(entity_type=entity_type, entity_id=entity_id, final_values=previous)
        return previous

    def record_insert(self, *, entity_type: str, entity_id: Any, values: Mapping[str, Any]) -> None:
        self._stage(
            self._change_sets.record_insert(
                entity_type=entity_type,
                entity_id=entity_id,
                values=values,
            )
        )

    def record_update(
        self,
        *,
        entity_type: str,
        entity_id: Any,
        old_values: Mapping[str, Any],
        new_values: Mapping[str, Any],
    ) -> None:
        self._stage(
            self._change_sets.record_update(
                entity_type=entity_type,
                entity_id=entity_id,
                old_values=old_values,
                new_values=new_values,
            )
        )

    def record_delete(
        self,
        *,
        entity_type: str,
        entity_id: Any,
        final_values: Mapping[str, Any],
    ) -> None:
        self._stage(
            self._change_sets.record_delete(
                entity_type=entity_type,
                entity_id=entity_id,
                final_values=final_values,
            )
        )

    def _stage(self, entry: AuditEntryCreateInput | None) -> None:
        if entry is not None:
            self._pending.append(entry)

    def _audited_entity_type(self, table: sa.Table) -> str | None:
        aggregate = self._change_sets.registry.for_table(table.name)
        if aggregate is None or not self._change_sets.is_audited(aggregate.entity_type):
            return None
        return aggregate.entity_type

    def _identifier(self, table: sa.Table) -> str:
        aggregate = self._change_sets.registry.for_table(table.name)
        return aggregate.identifier if aggregate is not None else "id"

    async def _select_for_update(self, table: sa.Table, *, entity_id: Any) -> RowMapping | None:
        id_column = table.c[self._identifier(table)]
        statement = sa.select(table).where(id_column == entity_id).with_for_update()
        result = await self._require_session().execute(statement)
        return result.mappings().one_or_none()

    def _require_session(self) -> AsyncSession:
        if self._session is None:
            raise UnitOfWorkNotStartedError()
        return self._session


class SqlAlchemyUnitOfWorkFactory:
    """Build fresh audited units of work sharing one extractor and audit store."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        change_sets: ChangeSetExtractor,
    ) -> None:
        self._session_factory = session_factory
        self._change_sets = change_sets
        self._audit_trail = SqlAlchemyAuditTrailRepository(session_factory)

    def __call__(self) -> SqlAlchemyUnitOfWork:
        return SqlAlchemyUnitOfWork(
            self._session_factory,
            change_sets=self._change_sets,
            audit_trail=self._audit_trail,
        )
