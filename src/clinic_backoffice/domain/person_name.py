"""Display-name helpers shared by customers and patients."""

from __future__ import annotations


def compose_full_name(first_name: str, last_name: str | None) -> str:
    """Join first and last name, ignoring blank parts."""

    parts = [part.strip() for part in (first_name, last_name) if part and part.strip()]
    return " ".join(parts)
