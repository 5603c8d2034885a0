"""Port for named, durable sequence counters."""

from __future__ import annotations

from typing import Protocol


class CounterUnavailableError(RuntimeError):
    """Raised when a counter increment could not be applied and may be retried.

    Covers lock-wait timeouts, deadlocks and busy databases. The increment is
    never partially applied: no value was issued by the failed attempt.
    """

    def __init__(self, *, name: str) -> None:
        super().__init__(f"counter temporarily unavailable: {name}")
        self.name = name


class CounterValueError(ValueError):
    """Raised when a counter holds or is seeded with a non-integer value."""

    def __init__(self, *, name: str, value: str) -> None:
        super().__init__(f"counter {name!r} has non-integer value {value!r}")
        self.name = name
        self.value = value


class CounterRepositoryPort(Protocol):
    """Sequence counter contract."""

    async def next_value(self, *, name: str, initial_value: str) -> str:
        """Atomically advance the named counter and return the issued value.

        The first call for an unknown name creates the counter seeded with
        ``initial_value`` and returns the seed unchanged.
        """

    async def get_value(self, *, name: str) -> str | None:
        """Return the committed counter value without locking, or None."""
