"""Application service for the invoice number gap report."""

from __future__ import annotations

import logging

from clinic_backoffice.application.ports.invoice_repository_port import InvoiceNumberQueryPort
from clinic_backoffice.domain.invoice_gaps import InvoiceNumberGaps, find_invoice_number_gaps
from clinic_backoffice.domain.invoice_number import is_invoice_year

logger = logging.getLogger(__name__)


class InvoiceGapService:
    """Audit one year's invoice sequence for missing numbers."""

    def __init__(self, *, invoice_numbers: InvoiceNumberQueryPort) -> None:
        self._invoice_numbers = invoice_numbers

    async def find_gaps(self, *, year: int) -> InvoiceNumberGaps:
        """Return the gap report; years outside 1000-9999 yield an empty report."""

        if not is_invoice_year(year):
            return InvoiceNumberGaps(year=year, total_invoices=0, total_gaps=0)

        numbers = await self._invoice_numbers.list_numbers_for_year(year=year)
        report = find_invoice_number_gaps(year, numbers)
        logger.info(
            "invoice_gaps_computed year=%s total_invoices=%s total_gaps=%s",
            year,
            report.total_invoices,
            report.total_gaps,
        )
        return report
