"""clinic-api entrypoint and HTTP route wiring."""

from __future__ import annotations

import logging
from dataclasses import dataclass

import uvicorn
from fastapi import FastAPI
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from clinic_backoffice.application.audit.audit_switch import AuditSwitch
from clinic_backoffice.application.audit.change_set_extractor import ChangeSetExtractor
from clinic_backoffice.application.services.audit_query_service import AuditQueryService
from clinic_backoffice.application.services.invoice_gap_service import InvoiceGapService
from clinic_backoffice.application.services.invoice_numbering_service import (
    InvoiceNumberingService,
)
from clinic_backoffice.application.services.invoice_service import InvoiceService
from clinic_backoffice.config.settings import Settings, load_settings
from clinic_backoffice.infrastructure.db.audit_trail_repository import (
    SqlAlchemyAuditTrailRepository,
)
from clinic_backoffice.infrastructure.db.counter_repository import SqlAlchemyCounterRepository
from clinic_backoffice.infrastructure.db.invoice_repository import SqlAlchemyInvoiceNumberQueries
from clinic_backoffice.infrastructure.db.session import create_session_factory
from clinic_backoffice.infrastructure.db.unit_of_work import SqlAlchemyUnitOfWorkFactory
from clinic_backoffice.infrastructure.http.audit_context_middleware import AuditContextMiddleware
from clinic_backoffice.infrastructure.http.audit_router import build_audit_router
from clinic_backoffice.infrastructure.http.invoice_router import build_invoice_router
from clinic_backoffice.infrastructure.logging import configure_logging

CLINIC_API_HOST = "0.0.0.0"
CLINIC_API_PORT = 8000
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClinicApiServices:
    """Composed application services served by the HTTP API."""

    audit_switch: AuditSwitch
    invoice_service: InvoiceService
    gap_service: InvoiceGapService
    audit_query_service: AuditQueryService


def build_api_services(
    *,
    settings: Settings,
    session_factory: async_sessionmaker[AsyncSession],
    audit_switch: AuditSwitch | None = None,
) -> ClinicApiServices:
    """Compose API services using SQLAlchemy repositories."""

    if audit_switch is None:
        audit_switch = AuditSwitch.from_settings(settings)
    unit_of_work_factory = SqlAlchemyUnitOfWorkFactory(
        session_factory,
        change_sets=ChangeSetExtractor(switch=audit_switch),
    )
    numbering = InvoiceNumberingService(
        counters=SqlAlchemyCounterRepository(
            session_factory,
            lock_timeout_ms=settings.counter_lock_timeout_ms,
        )
    )
    return ClinicApiServices(
        audit_switch=audit_switch,
        invoice_service=InvoiceService(
            unit_of_work_factory=unit_of_work_factory,
            numbering=numbering,
            default_currency=settings.default_currency,
        ),
        gap_service=InvoiceGapService(
            invoice_numbers=SqlAlchemyInvoiceNumberQueries(session_factory),
        ),
        audit_query_service=AuditQueryService(
            audit_trail=SqlAlchemyAuditTrailRepository(session_factory),
            default_page_size=settings.audit_page_size,
        ),
    )


def create_app(
    *,
    settings: Settings | None = None,
    services: ClinicApiServices | None = None,
) -> FastAPI:
    """Create FastAPI app for invoice issuance and audit trail routes."""

    if settings is None:
        settings = load_settings()
        configure_logging(level=settings.log_level)
    if services is None:
        services = build_api_services(
            settings=settings,
            session_factory=create_session_factory(settings.database_url),
        )

    app = FastAPI(title="clinic-backoffice")
    app.state.audit_switch = services.audit_switch
    app.add_middleware(AuditContextMiddleware, actor_header=settings.audit_actor_header)
    app.include_router(
        build_invoice_router(
            invoice_service=services.invoice_service,
            gap_service=services.gap_service,
        )
    )
    app.include_router(build_audit_router(audit_query_service=services.audit_query_service))

    logger.info(
        "clinic_api_configured audit_enabled=%s actor_header=%s",
        services.audit_switch.is_enabled(),
        settings.audit_actor_header or "-",
    )
    return app


def run_asgi_server(*, host: str = CLINIC_API_HOST, port: int = CLINIC_API_PORT) -> None:
    """Run clinic-api as a long-lived ASGI process using application factory mode."""

    uvicorn.run(
        "apps.clinic_api.main:create_app",
        host=host,
        port=port,
        factory=True,
    )


def main() -> None:
    """Run clinic-api runtime process."""

    run_asgi_server()


if __name__ == "__main__":
    main()
