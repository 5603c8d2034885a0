"""Application service that issues invoice numbers from per-year counters."""

from __future__ import annotations

import logging
from datetime import date

from clinic_backoffice.application.ports.counter_repository_port import CounterRepositoryPort
from clinic_backoffice.domain.invoice_number import counter_name_for_year, first_invoice_number

logger = logging.getLogger(__name__)


class InvoiceNumberingService:
    """Issue gapless invoice numbers, one counter per calendar year."""

    def __init__(self, *, counters: CounterRepositoryPort) -> None:
        self._counters = counters

    async def issue_number(self, *, issued_on: date) -> str:
        """Return the next invoice number for the year of ``issued_on``.

        Raises ``CounterUnavailableError`` when the counter lock could not be
        obtained; no number is consumed in that case and the caller may retry.
        """

        year = issued_on.year
        number = await self._counters.next_value(
            name=counter_name_for_year(year),
            initial_value=first_invoice_number(year),
        )
        logger.info("invoice_number_issued year=%s number=%s", year, number)
        return number

    async def current_number(self, *, year: int) -> str | None:
        """Return the last issued number for a year without locking."""

        return await self._counters.get_value(name=counter_name_for_year(year))
