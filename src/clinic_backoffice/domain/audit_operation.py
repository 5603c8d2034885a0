"""Audit operation enum for captured entity mutations."""

from __future__ import annotations

from enum import StrEnum


class AuditOperation(StrEnum):
    """Mutation kinds recorded in the audit trail."""

    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"
