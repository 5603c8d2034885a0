"""Batch maintenance: recompute customer full names from first and last names."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from clinic_backoffice.application.audit.audit_switch import AuditSwitch
from clinic_backoffice.application.ports.unit_of_work_port import UnitOfWorkFactory
from clinic_backoffice.domain.person_name import compose_full_name

logger = logging.getLogger(__name__)

DEFAULT_BATCH_SIZE = 100


@dataclass(frozen=True)
class FullNameRecomputeResult:
    """Counts reported by one recompute run."""

    scanned: int
    updated: int


class CustomerFullNameService:
    """Walk every customer in id order and fix stale ``full_name`` values."""

    def __init__(
        self,
        *,
        unit_of_work_factory: UnitOfWorkFactory,
        audit_switch: AuditSwitch,
    ) -> None:
        self._unit_of_work_factory = unit_of_work_factory
        self._audit_switch = audit_switch

    async def recompute_all(
        self,
        *,
        batch_size: int = DEFAULT_BATCH_SIZE,
        audited: bool = False,
    ) -> FullNameRecomputeResult:
        """Recompute names in committed batches; audit capture is off unless requested."""

        if batch_size < 1:
            raise ValueError("batch_size must be positive")
        if audited:
            return await self._recompute(batch_size=batch_size)
        with self._audit_switch.suspended():
            return await self._recompute(batch_size=batch_size)

    async def _recompute(self, *, batch_size: int) -> FullNameRecomputeResult:
        scanned = 0
        updated = 0
        last_id = 0

        while True:
            async with self._unit_of_work_factory() as uow:
                batch = await uow.customers.list_after(after_id=last_id, limit=batch_size)
                if not batch:
                    break
                for customer in batch:
                    expected = compose_full_name(customer.first_name, customer.last_name)
                    if customer.full_name != expected:
                        await uow.customers.update(
                            customer_id=customer.id,
                            changes={"full_name": expected},
                        )
                        updated += 1
                await uow.commit()

            scanned += len(batch)
            last_id = batch[-1].id
            logger.info(
                "customer_full_names_batch_committed scanned=%s updated=%s last_id=%s",
                scanned,
                updated,
                last_id,
            )

        return FullNameRecomputeResult(scanned=scanned, updated=updated)
