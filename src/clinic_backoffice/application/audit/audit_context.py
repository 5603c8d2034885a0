"""Actor and request context attributed to captured audit entries."""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID


@dataclass(frozen=True)
class AuditContext:
    """Who made a change and from where; every part is optional."""

    actor_user_id: UUID | None = None
    ip_address: str | None = None
    user_agent: str | None = None


class AuditContextProvider(Protocol):
    """Source of the audit context at the moment of capture."""

    def current(self) -> AuditContext:
        """Return the context for the running request or job."""


_current_audit_context: ContextVar[AuditContext] = ContextVar(
    "current_audit_context",
    default=AuditContext(),
)


class ContextVarAuditContextProvider:
    """Read the context bound by ``bind_audit_context`` for the running task."""

    def current(self) -> AuditContext:
        return _current_audit_context.get()


@contextmanager
def bind_audit_context(
    *,
    actor_user_id: UUID | None = None,
    ip_address: str | None = None,
    user_agent: str | None = None,
) -> Iterator[AuditContext]:
    """Bind request attribution for the duration of the block."""

    context = AuditContext(
        actor_user_id=actor_user_id,
        ip_address=ip_address,
        user_agent=user_agent,
    )
    token = _current_audit_context.set(context)
    try:
        yield context
    finally:
        _current_audit_context.reset(token)
