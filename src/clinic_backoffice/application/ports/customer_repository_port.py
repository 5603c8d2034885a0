"""Port for customer persistence inside an audited unit of work."""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Protocol


@dataclass(frozen=True)
class CustomerRecord:
    """Customer persistence model."""

    id: int
    first_name: str
    last_name: str | None
    full_name: str | None
    tax_id: str | None
    email: str | None
    phone: str | None
    billing_address: str | None
    created_at: datetime
    updated_at: datetime | None


@dataclass(frozen=True)
class CustomerCreateInput:
    """Input payload for inserting a customer."""

    first_name: str
    last_name: str | None = None
    tax_id: str | None = None
    email: str | None = None
    phone: str | None = None
    billing_address: str | None = None


class CustomerRepositoryPort(Protocol):
    """Customer repository contract."""

    async def create(self, payload: CustomerCreateInput) -> CustomerRecord:
        """Insert a customer and return the persisted row."""

    async def get(self, *, customer_id: int) -> CustomerRecord | None:
        """Return one customer by id, or None."""

    async def get_by_tax_id(self, *, tax_id: str) -> CustomerRecord | None:
        """Return the customer registered under a tax id, or None."""

    async def update(
        self,
        *,
        customer_id: int,
        changes: Mapping[str, Any],
    ) -> CustomerRecord | None:
        """Apply column changes and return the updated row, or None when missing."""

    async def delete(self, *, customer_id: int) -> bool:
        """Delete one customer and return whether a row was removed."""

    async def list_after(self, *, after_id: int, limit: int) -> list[CustomerRecord]:
        """Return up to ``limit`` customers with id greater than ``after_id``."""
