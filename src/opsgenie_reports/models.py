"""Domain models for Opsgenie alert and schedule reporting.

These dataclasses intentionally model only the subset of API payload fields that
are required for classification, aggregation and billing computation. Every
``datetime`` held here is timezone-aware UTC.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import FrozenSet, Optional, Tuple


def as_utc(value: datetime) -> datetime:
    """Return ``value`` in UTC, reading naive datetimes as UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


@dataclass(frozen=True, slots=True)
class Alert:
    """Represents an alert returned by the Opsgenie alerts API."""

    id: str
    tiny_id: str
    created_at: datetime
    acknowledged: bool
    acknowledged_by: Optional[str]
    message: str
    tags: FrozenSet[str] = field(default_factory=frozenset)
    owner: Optional[str] = None


@dataclass(frozen=True, slots=True)
class ClassificationResult:
    """Business unit, time-of-day tags and client labels derived from alert tags."""

    business_unit: Optional[str]
    time_tags: Tuple[str, ...] = ()
    clients: Tuple[str, ...] = ()


@dataclass(frozen=True, slots=True)
class Rotation:
    """Represents a rotation inside a schedule."""

    id: str
    name: str


@dataclass(frozen=True, slots=True)
class Schedule:
    """Represents a schedule and, when fetched individually, its rotations."""

    id: str
    name: str
    rotations: Tuple[Rotation, ...] = ()


@dataclass(frozen=True, slots=True)
class RotationPeriod:
    """One on-call assignment from a schedule timeline.

    ``user`` is ``None`` for periods without a user recipient, such as gaps.
    """

    rotation_id: str
    user: Optional[str]
    start: datetime
    end: datetime


@dataclass(frozen=True, slots=True)
class BillingPeriod:
    """Half-open payment interval ``[start, end)``."""

    start: datetime
    end: datetime
