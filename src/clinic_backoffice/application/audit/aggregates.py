"""Audited aggregate declarations.

Each audited aggregate lists the fields it exposes to the audit trail and
the serializer used for each one. Fields that are not declared (primary
keys, bookkeeping timestamps) never appear in a change set.
"""

from __future__ import annotations

from collections.abc import Callable, Iterable
from dataclasses import dataclass
from functools import partial
from typing import Any

from clinic_backoffice.application.audit.serialization import (
    serialize_reference,
    serialize_value,
)

FieldSerializer = Callable[[Any], Any]


@dataclass(frozen=True)
class AuditedField:
    """One audited column, the change-set key it is reported under and its serializer."""

    name: str
    serializer: FieldSerializer = serialize_value
    key: str = ""

    def __post_init__(self) -> None:
        if not self.key:
            object.__setattr__(self, "key", _camel_case(self.name))


def _camel_case(name: str) -> str:
    head, *rest = name.split("_")
    return head + "".join(part.capitalize() for part in rest)


def plain_fields(*names: str) -> tuple[AuditedField, ...]:
    return tuple(AuditedField(name) for name in names)


def reference_field(name: str, *, entity_type: str) -> AuditedField:
    """Declare a foreign key audited as an ``{id, type}`` reference."""

    return AuditedField(name, partial(serialize_reference, entity_type=entity_type))


@dataclass(frozen=True)
class AuditedAggregate:
    """Audit contract for one business aggregate type."""

    entity_type: str
    table_name: str
    fields: tuple[AuditedField, ...]
    identifier: str = "id"


CUSTOMER = AuditedAggregate(
    entity_type="Customer",
    table_name="customers",
    fields=plain_fields(
        "first_name",
        "last_name",
        "full_name",
        "tax_id",
        "email",
        "phone",
        "billing_address",
    ),
)

PATIENT = AuditedAggregate(
    entity_type="Patient",
    table_name="patients",
    fields=(
        *plain_fields(
            "first_name",
            "last_name",
            "full_name",
            "date_of_birth",
            "tax_id",
            "phone",
            "email",
            "address",
            "notes",
            "allergies",
            "medication",
            "status",
        ),
        reference_field("customer_id", entity_type="Customer"),
    ),
)

INVOICE = AuditedAggregate(
    entity_type="Invoice",
    table_name="invoices",
    fields=(
        *plain_fields(
            "number",
            "date",
            "amount",
            "currency",
            "full_name",
            "phone",
            "address",
            "email",
            "tax_id",
        ),
        reference_field("customer_id", entity_type="Customer"),
    ),
)

DEFAULT_AUDITED_AGGREGATES: tuple[AuditedAggregate, ...] = (PATIENT, CUSTOMER, INVOICE)


class AuditedAggregateRegistry:
    """Allow-list of aggregates that take part in audit capture."""

    def __init__(self, aggregates: Iterable[AuditedAggregate] = DEFAULT_AUDITED_AGGREGATES) -> None:
        self._by_type: dict[str, AuditedAggregate] = {}
        self._by_table: dict[str, AuditedAggregate] = {}
        for aggregate in aggregates:
            if aggregate.entity_type in self._by_type or aggregate.table_name in self._by_table:
                raise ValueError(f"aggregate declared twice: {aggregate.entity_type}")
            self._by_type[aggregate.entity_type] = aggregate
            self._by_table[aggregate.table_name] = aggregate

    def for_type(self, entity_type: str) -> AuditedAggregate | None:
        return self._by_type.get(entity_type)

    def for_table(self, table_name: str) -> AuditedAggregate | None:
        return self._by_table.get(table_name)

    @property
    def entity_types(self) -> frozenset[str]:
        return frozenset(self._by_type)
