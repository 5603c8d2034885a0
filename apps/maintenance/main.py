"""maintenance entrypoint for batch jobs run outside the API process."""

from __future__ import annotations

import argparse
import asyncio
import logging
from collections.abc import Sequence

from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_backoffice.application.audit.audit_switch import AuditSwitch
from clinic_backoffice.application.audit.change_set_extractor import ChangeSetExtractor
from clinic_backoffice.application.services.customer_full_name_service import (
    DEFAULT_BATCH_SIZE,
    CustomerFullNameService,
)
from clinic_backoffice.application.services.invoice_gap_service import InvoiceGapService
from clinic_backoffice.config.settings import Settings, load_settings
from clinic_backoffice.infrastructure.db.invoice_repository import SqlAlchemyInvoiceNumberQueries
from clinic_backoffice.infrastructure.db.session import create_session_factory
from clinic_backoffice.infrastructure.db.unit_of_work import SqlAlchemyUnitOfWorkFactory
from clinic_backoffice.infrastructure.logging import configure_logging

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="maintenance")
    commands = parser.add_subparsers(dest="command", required=True)

    recompute = commands.add_parser(
        "recompute-customer-full-names",
        help="rebuild customers.full_name from first and last names",
    )
    recompute.add_argument("--batch-size", type=int, default=DEFAULT_BATCH_SIZE)
    recompute.add_argument(
        "--audit",
        action="store_true",
        help="record audit entries for the rewritten names (off by default)",
    )

    gaps = commands.add_parser("invoice-gaps", help="print missing invoice numbers for a year")
    gaps.add_argument("--year", type=int, required=True)
    return parser


def build_full_name_service(
    *,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
) -> CustomerFullNameService:
    """Compose the full-name recompute job with an audited unit of work."""

    audit_switch = AuditSwitch.from_settings(settings)
    return CustomerFullNameService(
        unit_of_work_factory=SqlAlchemyUnitOfWorkFactory(
            session_factory,
            change_sets=ChangeSetExtractor(switch=audit_switch),
        ),
        audit_switch=audit_switch,
    )


async def run_command(args: argparse.Namespace, *, settings: Settings) -> int:
    """Execute one parsed maintenance command and return its exit code."""

    session_factory = create_session_factory(settings.database_url)

    if args.command == "recompute-customer-full-names":
        result = await build_full_name_service(
            settings=settings,
            session_factory=session_factory,
        ).recompute_all(batch_size=args.batch_size, audited=args.audit)
        print(f"scanned={result.scanned} updated={result.updated}")
        return 0

    if args.command == "invoice-gaps":
        report = await InvoiceGapService(
            invoice_numbers=SqlAlchemyInvoiceNumberQueries(session_factory),
        ).find_gaps(year=args.year)
        print(
            f"year={report.year} total_invoices={report.total_invoices} "
            f"total_gaps={report.total_gaps}"
        )
        for number in report.gaps:
            print(number)
        return 0

    raise ValueError(f"unknown command: {args.command}")


def main(argv: Sequence[str] | None = None) -> int:
    """Run one maintenance command."""

    args = build_parser().parse_args(argv)
    settings = load_settings()
    configure_logging(level=settings.log_level)
    logger.info("maintenance_command_starting command=%s", args.command)
    return asyncio.run(run_command(args, settings=settings))


if __name__ == "__main__":
    raise SystemExit(main())
