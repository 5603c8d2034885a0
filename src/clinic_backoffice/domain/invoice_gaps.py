"""Pure gap computation over a year's issued invoice numbers."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from clinic_backoffice.domain.invoice_number import (
    extract_ordinal,
    format_invoice_number,
    is_invoice_year,
)


@dataclass(frozen=True)
class InvoiceNumberGaps:
    """Gap report for one invoice year."""

    year: int
    total_invoices: int
    total_gaps: int
    gaps: list[str] = field(default_factory=list)


def find_invoice_number_gaps(year: int, numbers: Iterable[str]) -> InvoiceNumberGaps:
    """Return the ordinals missing between 1 and the highest issued ordinal.

    Years that cannot prefix an invoice number yield an empty report.
    """

    if not is_invoice_year(year):
        return InvoiceNumberGaps(year=year, total_invoices=0, total_gaps=0)

    ordinals = {
        ordinal
        for ordinal in (extract_ordinal(number) for number in numbers)
        if ordinal is not None
    }
    if not ordinals:
        return InvoiceNumberGaps(year=year, total_invoices=0, total_gaps=0)

    missing = [ordinal for ordinal in range(1, max(ordinals) + 1) if ordinal not in ordinals]
    return InvoiceNumberGaps(
        year=year,
        total_invoices=len(ordinals),
        total_gaps=len(missing),
        gaps=[format_invoice_number(year, ordinal) for ordinal in missing],
    )
