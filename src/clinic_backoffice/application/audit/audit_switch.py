"""Global and scoped enable/disable control for audit capture."""

from __future__ import annotations

from collections.abc import Iterator, Mapping
from contextlib import contextmanager
from contextvars import ContextVar

from clinic_backoffice.config.settings import Settings


class AuditSwitch:
    """Decide whether audit capture runs for an aggregate type.

    ``enable``/``disable`` flip the process-wide state. ``suspended`` turns
    capture off only for the current task, which lets batch and migration
    tooling opt out without silencing concurrent requests.
    """

    def __init__(
        self,
        *,
        enabled: bool = True,
        aggregate_flags: Mapping[str, bool] | None = None,
    ) -> None:
        self._enabled = enabled
        self._aggregate_flags = dict(aggregate_flags or {})
        self._suspended: ContextVar[bool] = ContextVar(
            f"audit_suspended_{id(self)}",
            default=False,
        )

    @classmethod
    def from_settings(cls, settings: Settings) -> AuditSwitch:
        return cls(
            enabled=settings.audit_trail_enabled,
            aggregate_flags=settings.audited_aggregate_flags(),
        )

    def enable(self) -> None:
        self._enabled = True

    def disable(self) -> None:
        self._enabled = False

    def is_enabled(self, entity_type: str | None = None) -> bool:
        """Return whether capture is active, optionally for one aggregate type."""

        if not self._enabled or self._suspended.get():
            return False
        if entity_type is None:
            return True
        return self._aggregate_flags.get(entity_type, True)

    @contextmanager
    def suspended(self) -> Iterator[None]:
        """Disable capture for the current task until the block exits."""

        token = self._suspended.set(True)
        try:
            yield
        finally:
            self._suspended.reset(token)
