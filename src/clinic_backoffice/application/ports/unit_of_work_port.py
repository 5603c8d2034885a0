"""Port for the audited unit of work that scopes business writes."""

from __future__ import annotations

from collections.abc import Callable
from types import TracebackType
from typing import Protocol

from clinic_backoffice.application.ports.customer_repository_port import CustomerRepositoryPort
from clinic_backoffice.application.ports.invoice_repository_port import InvoiceRepositoryPort
from clinic_backoffice.application.ports.patient_repository_port import PatientRepositoryPort


class UnitOfWorkPort(Protocol):
    """One transaction; audit entries for its writes commit with it."""

    customers: CustomerRepositoryPort
    patients: PatientRepositoryPort
    invoices: InvoiceRepositoryPort

    async def __aenter__(self) -> UnitOfWorkPort:
        """Open the transaction."""

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        traceback: TracebackType | None,
    ) -> None:
        """Roll back anything not committed and release the connection."""

    async def commit(self) -> None:
        """Persist staged audit entries and commit the transaction."""

    async def rollback(self) -> None:
        """Discard the transaction and staged audit entries."""


UnitOfWorkFactory = Callable[[], UnitOfWorkPort]
