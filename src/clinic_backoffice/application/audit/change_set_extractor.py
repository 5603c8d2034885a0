"""Derive field-level audit change sets from recorded entity mutations."""

from __future__ import annotations

import logging
from collections.abc import Callable, Mapping
from datetime import UTC, datetime
from typing import Any

from clinic_backoffice.application.audit.aggregates import (
    AuditedAggregate,
    AuditedAggregateRegistry,
)
from clinic_backoffice.application.audit.audit_context import (
    AuditContextProvider,
    ContextVarAuditContextProvider,
)
from clinic_backoffice.application.audit.audit_switch import AuditSwitch
from clinic_backoffice.application.ports.audit_trail_repository_port import (
    AuditEntryCreateInput,
)
from clinic_backoffice.domain.audit_operation import AuditOperation

logger = logging.getLogger(__name__)

ChangeSet = dict[str, dict[str, Any]]


def _utc_now() -> datetime:
    return datetime.now(tz=UTC)


class ChangeSetExtractor:
    """Turn insert/update/delete intents into staged audit entries.

    The extractor is stateless: each ``record_*`` call returns the entry to
    persist, or None when nothing should be written (aggregate not audited,
    capture disabled, or an update that changed no audited field).
    """

    def __init__(
        self,
        *,
        registry: AuditedAggregateRegistry | None = None,
        switch: AuditSwitch | None = None,
        context_provider: AuditContextProvider | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        self._registry = registry or AuditedAggregateRegistry()
        self._switch = switch or AuditSwitch()
        self._context_provider = context_provider or ContextVarAuditContextProvider()
        self._clock = clock

    @property
    def registry(self) -> AuditedAggregateRegistry:
        return self._registry

    def is_audited(self, entity_type: str) -> bool:
        """Return whether mutations of this aggregate type are captured right now."""

        return (
            self._registry.for_type(entity_type) is not None
            and self._switch.is_enabled(entity_type)
        )

    def record_insert(
        self,
        *,
        entity_type: str,
        entity_id: Any,
        values: Mapping[str, Any],
    ) -> AuditEntryCreateInput | None:
        """Capture a newly inserted entity; null fields are left out."""

        aggregate = self._resolve(entity_type)
        if aggregate is None:
            return None

        changes: ChangeSet = {}
        for audited_field in aggregate.fields:
            value = values.get(audited_field.name)
            if value is None:
                continue
            changes[audited_field.key] = {
                "before": None,
                "after": audited_field.serializer(value),
            }
        return self._build_entry(aggregate, entity_id, AuditOperation.CREATED, changes)

    def record_update(
        self,
        *,
        entity_type: str,
        entity_id: Any,
        old_values: Mapping[str, Any],
        new_values: Mapping[str, Any],
    ) -> AuditEntryCreateInput | None:
        """Capture the audited fields whose serialized value changed."""

        aggregate = self._resolve(entity_type)
        if aggregate is None:
            return None

        changes: ChangeSet = {}
        for audited_field in aggregate.fields:
            if audited_field.name not in new_values:
                continue
            before = audited_field.serializer(old_values.get(audited_field.name))
            after = audited_field.serializer(new_values[audited_field.name])
            if before == after:
                continue
            changes[audited_field.key] = {"before": before, "after": after}

        if not changes:
            logger.debug(
                "audit_update_skipped_no_changes entity_type=%s entity_id=%s",
                entity_type,
                entity_id,
            )
            return None
        return self._build_entry(aggregate, entity_id, AuditOperation.UPDATED, changes)

    def record_delete(
        self,
        *,
        entity_type: str,
        entity_id: Any,
        final_values: Mapping[str, Any],
    ) -> AuditEntryCreateInput | None:
        """Capture the last known values of a removed entity."""

        aggregate = self._resolve(entity_type)
        if aggregate is None:
            return None

        changes: ChangeSet = {
            audited_field.key: {
                "before": audited_field.serializer(final_values.get(audited_field.name)),
                "after": None,
            }
            for audited_field in aggregate.fields
        }
        return self._build_entry(aggregate, entity_id, AuditOperation.DELETED, changes)

    def _resolve(self, entity_type: str) -> AuditedAggregate | None:
        aggregate = self._registry.for_type(entity_type)
        if aggregate is None or not self._switch.is_enabled(entity_type):
            return None
        return aggregate

    def _build_entry(
        self,
        aggregate: AuditedAggregate,
        entity_id: Any,
        operation: AuditOperation,
        changes: ChangeSet,
    ) -> AuditEntryCreateInput:
        context = self._context_provider.current()
        return AuditEntryCreateInput(
            entity_type=aggregate.entity_type,
            entity_id=str(entity_id),
            operation=operation,
            changes=changes,
            changed_at=self._clock(),
            changed_by=context.actor_user_id,
            ip_address=context.ip_address,
            user_agent=context.user_agent,
        )
