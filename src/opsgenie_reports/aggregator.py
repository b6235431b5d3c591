"""Alert aggregation for the toil and stats reports.

This module provides:
- ``ToilAggregator``: per-actor, per-category acknowledgement counts with a
  quiet window that stops bursts of acknowledgements from multiplying credit.
- ``summarize_alerts``: business-unit, time-tag and client counts for the
  stats report.
"""

from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Dict, Iterable, List, Tuple

from .classifier import TagVocabulary, classify
from .config import DEFAULT_QUIET_WINDOW_SECONDS
from .models import Alert, as_utc

logger = logging.getLogger(__name__)

EARLIEST = datetime.min.replace(tzinfo=timezone.utc)


@dataclass(frozen=True)
class _Event:
    actor: str
    category: str
    timestamp: datetime
    unit_value: float


class ToilAggregator:
    """Counts acknowledgements per actor and category, suppressing rapid repeats.

    An event is counted only when more than ``quiet_window`` has elapsed since
    the last counted event for the same actor and category. The first event for
    a pair is always counted. Counted events accrue their unit value to the
    actor's total.

    Events may be recorded in any order; they are replayed in timestamp order
    when results are read. Reads are meant for after the last ``record`` call.
    Unseen actors and categories read as zero and are never inserted.
    """

    def __init__(self, quiet_window_seconds: float = DEFAULT_QUIET_WINDOW_SECONDS) -> None:
        self.quiet_window = timedelta(seconds=quiet_window_seconds)
        self._events: List[_Event] = []
        self._counts: Dict[Tuple[str, str], int] = {}
        self._totals: Dict[str, float] = {}
        self._dirty = False

    def record(self, actor: str, category: str, timestamp: datetime, unit_value: float) -> None:
        self._events.append(_Event(actor, category, as_utc(timestamp), unit_value))
        self._dirty = True

    def _settle(self) -> None:
        if not self._dirty:
            return

        counts: Dict[Tuple[str, str], int] = {}
        totals: Dict[str, float] = {}
        last_counted: Dict[Tuple[str, str], datetime] = {}
        suppressed = 0

        for event in sorted(self._events, key=lambda item: item.timestamp):
            key = (event.actor, event.category)
            if event.timestamp - last_counted.get(key, EARLIEST) > self.quiet_window:
                counts[key] = counts.get(key, 0) + 1
                totals[event.actor] = totals.get(event.actor, 0.0) + event.unit_value
                last_counted[key] = event.timestamp
            else:
                suppressed += 1

        self._counts = counts
        self._totals = totals
        self._dirty = False
        logger.debug(
            "Aggregated toil events",
            extra={"events": len(self._events), "suppressed": suppressed},
        )

    def count(self, actor: str, category: str) -> int:
        """Return the counted events for an actor and category, 0 when unseen."""
        self._settle()
        return self._counts.get((actor, category), 0)

    def total(self, actor: str) -> float:
        """Return the accrued value for an actor, 0.0 when unseen."""
        self._settle()
        return self._totals.get(actor, 0.0)

    def totals(self) -> Dict[str, float]:
        """Return accrued values for every actor with at least one counted event."""
        self._settle()
        return dict(self._totals)

    def actors(self) -> List[str]:
        self._settle()
        return sorted(self._totals)


@dataclass
class UnitSummary:
    """Time-tag totals for one business unit, with a per-client breakdown."""

    totals: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    clients: Dict[str, Dict[str, int]] = field(default_factory=dict)


@dataclass
class AlertSummary:
    """Stats report data: company totals plus one ``UnitSummary`` per business unit."""

    vocabulary: TagVocabulary
    processed: int = 0
    company: Dict[str, int] = field(default_factory=lambda: defaultdict(int))
    units: Dict[str, UnitSummary] = field(default_factory=dict)


def summarize_alerts(alerts: Iterable[Alert], vocabulary: TagVocabulary) -> AlertSummary:
    """Count alerts by business unit, time tag and client.

    Alerts without a business unit or without any time tag are counted as
    processed but left out of every breakdown. An alert carrying several time
    tags counts once under each.
    """
    summary = AlertSummary(
        vocabulary=vocabulary,
        units={unit: UnitSummary() for unit in vocabulary.business_units},
    )

    for alert in alerts:
        summary.processed += 1
        result = classify(alert.tags, vocabulary)
        if result.business_unit is None or not result.time_tags:
            continue

        unit = summary.units[result.business_unit]
        for time_tag in result.time_tags:
            unit.totals[time_tag] += 1
            summary.company[time_tag] += 1

        for client in result.clients:
            client_counts = unit.clients.setdefault(client, defaultdict(int))
            for time_tag in result.time_tags:
                client_counts[time_tag] += 1

    return summary
