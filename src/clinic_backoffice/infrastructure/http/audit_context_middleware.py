"""ASGI middleware binding request attribution for audit capture."""

from __future__ import annotations

import logging
from uuid import UUID

from starlette.datastructures import Headers
from starlette.types import ASGIApp, Receive, Scope, Send

from clinic_backoffice.application.audit.audit_context import bind_audit_context

logger = logging.getLogger(__name__)


def _parse_actor(raw_value: str | None) -> UUID | None:
    if not raw_value:
        return None
    try:
        return UUID(raw_value.strip())
    except ValueError:
        logger.warning("audit_actor_header_invalid value=%s", raw_value)
        return None


class AuditContextMiddleware:
    """Bind client IP, User-Agent and optional actor id for each HTTP request.

    The actor header is only read when configured; it is expected to be set
    by an authenticating proxy in front of the API.
    """

    def __init__(self, app: ASGIApp, *, actor_header: str | None = None) -> None:
        self._app = app
        self._actor_header = actor_header.lower() if actor_header else None

    async def __call__(self, scope: Scope, receive: Receive, send: Send) -> None:
        if scope["type"] != "http":
            await self._app(scope, receive, send)
            return

        headers = Headers(scope=scope)
        client = scope.get("client")
        actor_user_id = (
            _parse_actor(headers.get(self._actor_header)) if self._actor_header else None
        )
        with bind_audit_context(
            actor_user_id=actor_user_id,
            ip_address=client[0] if client else None,
            user_agent=headers.get("user-agent"),
        ):
            await self._app(scope, receive, send)
