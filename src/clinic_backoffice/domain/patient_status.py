"""Patient lifecycle status enum."""

from __future__ import annotations

from enum import StrEnum


class PatientStatus(StrEnum):
    """Statuses a patient file can be in."""

    ACTIVE = "active"
    DISCHARGED = "discharged"
    DISABLED = "disabled"
