from __future__ import annotations

import pytest

from clinic_backoffice.domain.invoice_number import (
    InvoiceNumberRejection,
    counter_name_for_year,
    extract_ordinal,
    first_invoice_number,
    format_invoice_number,
    validate_invoice_number,
)


def test_counter_name_and_seed_are_derived_from_year() -> None:
    assert counter_name_for_year(2026) == "invoices_2026"
    assert first_invoice_number(2026) == "2026000001"


def test_format_invoice_number_zero_pads_ordinal() -> None:
    assert format_invoice_number(2026, 42) == "2026000042"
    assert format_invoice_number(2026, 1_000_000) == "20261000000"


@pytest.mark.parametrize(
    ("number", "expected"),
    [
        ("2026000042", 42),
        ("2026000001", 1),
        ("17", 17),
        ("2026000000", None),
        ("", None),
        ("abc", None),
        ("2026abcdef", None),
    ],
)
def test_extract_ordinal(number: str, expected: int | None) -> None:
    assert extract_ordinal(number) == expected


def test_validate_accepts_next_number_in_sequence() -> None:
    result = validate_invoice_number("2026000003", ["2026000001", "2026000002"])

    assert result.is_valid is True
    assert result.reason is None


def test_validate_accepts_number_filling_a_hole() -> None:
    result = validate_invoice_number("2026000002", ["2026000001", "2026000003"])

    assert result.is_valid is True


def test_validate_accepts_first_number_of_empty_year() -> None:
    assert validate_invoice_number("2026000001", []).is_valid is True


@pytest.mark.parametrize(
    ("number", "existing", "reason"),
    [
        ("", [], InvoiceNumberRejection.REQUIRED),
        ("   ", [], InvoiceNumberRejection.REQUIRED),
        ("2026-00001", [], InvoiceNumberRejection.INVALID_FORMAT),
        ("202600001", [], InvoiceNumberRejection.INVALID_FORMAT),
        ("2026000000", [], InvoiceNumberRejection.INVALID_FORMAT),
        ("2026000001", ["2026000001"], InvoiceNumberRejection.DUPLICATE),
        ("2026000005", ["2026000001", "2026000002"], InvoiceNumberRejection.OUT_OF_SEQUENCE),
    ],
)
def test_validate_rejections(
    number: str,
    existing: list[str],
    reason: InvoiceNumberRejection,
) -> None:
    result = validate_invoice_number(number, existing)

    assert result.is_valid is False
    assert result.reason is reason
    assert result.reason.value.startswith("invoice_number_")
