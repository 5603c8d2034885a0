from __future__ import annotations

from datetime import UTC, date, datetime
from decimal import Decimal
from uuid import UUID

from clinic_backoffice.application.audit.serialization import (
    serialize_reference,
    serialize_value,
)
from clinic_backoffice.domain.patient_status import PatientStatus


class _Opaque:
    pass


def test_scalars_pass_through_unchanged() -> None:
    assert serialize_value(None) is None
    assert serialize_value("John") == "John"
    assert serialize_value(3) == 3
    assert serialize_value(1.5) == 1.5
    assert serialize_value(True) is True


def test_datetimes_and_dates_use_audit_format() -> None:
    assert serialize_value(datetime(2026, 3, 4, 5, 6, 7, tzinfo=UTC)) == "2026-03-04 05:06:07"
    assert serialize_value(date(2026, 3, 4)) == "2026-03-04 00:00:00"


def test_decimal_uuid_and_enum_are_stringified() -> None:
    actor = UUID("12345678-1234-5678-1234-567812345678")

    assert serialize_value(Decimal("12.50")) == "12.50"
    assert serialize_value(actor) == "12345678-1234-5678-1234-567812345678"
    assert serialize_value(PatientStatus.DISCHARGED) == "discharged"


def test_collections_are_serialized_recursively() -> None:
    value = {"tags": ("a", Decimal("1.0")), "seen": {date(2026, 1, 1)}}

    assert serialize_value(value) == {
        "tags": ["a", "1.0"],
        "seen": ["2026-01-01 00:00:00"],
    }


def test_unknown_objects_degrade_to_type_name() -> None:
    assert serialize_value(_Opaque()) == "_Opaque"


def test_reference_serialization() -> None:
    assert serialize_reference(7, entity_type="Customer") == {"id": 7, "type": "Customer"}
    assert serialize_reference(None, entity_type="Customer") is None
