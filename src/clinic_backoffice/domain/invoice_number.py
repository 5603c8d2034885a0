"""Invoice number format helpers and issuance validation rules.

Invoice numbers are ``{year}{ordinal}`` with a four-digit year and a
zero-padded six-digit ordinal, e.g. ``2026000042``. The per-year counter
value is the full number, so the counter for 2026 is seeded with
``2026000001``.
"""

from __future__ import annotations

import re
from collections.abc import Iterable
from dataclasses import dataclass
from enum import StrEnum

ORDINAL_WIDTH = 6
YEAR_WIDTH = 4
_NUMBER_PATTERN = re.compile(rf"^\d{{{YEAR_WIDTH + ORDINAL_WIDTH}}}$")


def is_invoice_year(year: int) -> bool:
    """Return whether a year fits the four-digit prefix of invoice numbers."""

    return 10 ** (YEAR_WIDTH - 1) <= year < 10**YEAR_WIDTH


def counter_name_for_year(year: int) -> str:
    """Return the sequence counter name backing one invoice year."""

    return f"invoices_{year}"


def format_invoice_number(year: int, ordinal: int) -> str:
    """Format a year and ordinal using the canonical zero-padded layout."""

    return f"{year}{ordinal:0{ORDINAL_WIDTH}d}"


def first_invoice_number(year: int) -> str:
    """Return the seed value for a year's invoice counter."""

    return format_invoice_number(year, 1)


def extract_ordinal(number: str) -> int | None:
    """Return the positive ordinal encoded in an invoice number, if any.

    Legacy rows may hold a bare ordinal instead of the full number, so values
    too short to carry a year prefix are read as the ordinal itself.
    """

    normalized = number.strip()
    if not normalized:
        return None
    digits = normalized[YEAR_WIDTH:] if len(normalized) >= YEAR_WIDTH + 2 else normalized
    if digits.isdigit() and int(digits) > 0:
        return int(digits)
    return None


class InvoiceNumberRejection(StrEnum):
    """Reasons a manually supplied invoice number is rejected."""

    REQUIRED = "invoice_number_required"
    INVALID_FORMAT = "invoice_number_invalid_format"
    DUPLICATE = "invoice_number_duplicate"
    OUT_OF_SEQUENCE = "invoice_number_out_of_sequence"


@dataclass(frozen=True)
class InvoiceNumberValidation:
    """Outcome of validating one invoice number against issued numbers."""

    is_valid: bool
    reason: InvoiceNumberRejection | None = None


def validate_invoice_number(
    number: str,
    existing_numbers: Iterable[str],
) -> InvoiceNumberValidation:
    """Validate a number against the already issued numbers of its year.

    A number is accepted when it continues the sequence (``max + 1``) or
    fills a hole below the current maximum; anything further ahead would
    open a gap.
    """

    if not number.strip():
        return InvoiceNumberValidation(False, InvoiceNumberRejection.REQUIRED)
    if not _NUMBER_PATTERN.match(number):
        return InvoiceNumberValidation(False, InvoiceNumberRejection.INVALID_FORMAT)

    ordinal = int(number[YEAR_WIDTH:])
    if ordinal <= 0:
        return InvoiceNumberValidation(False, InvoiceNumberRejection.INVALID_FORMAT)

    issued = {
        int(existing[YEAR_WIDTH:])
        for existing in (value.strip() for value in existing_numbers)
        if _NUMBER_PATTERN.match(existing) and int(existing[YEAR_WIDTH:]) > 0
    }
    if ordinal in issued:
        return InvoiceNumberValidation(False, InvoiceNumberRejection.DUPLICATE)

    if ordinal <= max(issued, default=0) + 1:
        return InvoiceNumberValidation(True)
    return InvoiceNumberValidation(False, InvoiceNumberRejection.OUT_OF_SEQUENCE)
