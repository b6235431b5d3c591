"""Text rendering for every report.

Each ``generate_*`` function builds a complete multi-line report from already
computed data and performs no I/O.
"""

from __future__ import annotations

from datetime import datetime
from typing import Dict, FrozenSet, List, Optional, Sequence, Tuple

from .aggregator import AlertSummary, ToilAggregator
from .models import Alert, BillingPeriod, RotationPeriod, Schedule

NOBODY_ON_CALL = "Nobody"


def format_timestamp(value: datetime) -> str:
    """Format an instant as ``YYYY-MM-DD HH:MM:SS UTC``."""
    return value.strftime("%Y-%m-%d %H:%M:%S %Z")


def format_hours(hours: float) -> str:
    """Format hours or TOIL with two decimals; aggregation keeps full precision."""
    return f"{hours:.2f}"


def format_acknowledgement(alert: Alert) -> str:
    """Describe one acknowledged alert for the toil activity log."""
    return (
        f"Message: {alert.message}\n"
        f"Alert {alert.tiny_id} was acknowledged by {alert.acknowledged_by}. "
        f"Created at: {format_timestamp(alert.created_at)}."
    )


def generate_toil_report(aggregator: ToilAggregator, categories: Sequence[str]) -> str:
    """Summarize counted acknowledgements and accrued TOIL per user."""
    lines = ["", "Summary of the number of alerts acknowledged by each user:"]
    actors = aggregator.actors()
    if not actors:
        lines.append("No qualifying acknowledgements found.")

    for actor in actors:
        breakdown = " and ".join(
            f"{aggregator.count(actor, category)} alerts during {category}" for category in categories
        )
        lines.append(
            f"{actor} acknowledged {breakdown}. "
            f"This corresponds to {format_hours(aggregator.total(actor))} TOIL."
        )

    return "\n".join(lines)


def generate_stats_report(summary: AlertSummary) -> str:
    """Render company, business-unit and client alert counts by time tag."""
    time_tags = summary.vocabulary.time_tags
    lines = [f"Total alerts processed: {summary.processed}", "", "=== Company Totals ==="]
    lines.extend(f"  {tag}: {summary.company.get(tag, 0)}" for tag in time_tags)

    for unit_name in summary.vocabulary.business_units:
        unit = summary.units[unit_name]
        lines.extend(["", f"=== Business Unit: {unit_name} ===", "  Overall Totals:"])
        lines.extend(f"    {tag}: {unit.totals.get(tag, 0)}" for tag in time_tags)

        if not unit.clients:
            lines.append("  No client-specific alerts found.")
            continue

        lines.append("  By Client:")
        for client in sorted(unit.clients):
            counts = unit.clients[client]
            lines.append(f"    Client: {client}")
            lines.extend(f"      {tag}: {counts.get(tag, 0)}" for tag in time_tags)

    return "\n".join(lines)


def generate_payment_report(
    hours_by_user: Dict[str, float],
    rate: float,
    billing: BillingPeriod,
    currency: str = "£",
) -> str:
    """Render on-call hours and payment due per user for a billing period."""
    lines = [
        f"Billing period: {format_timestamp(billing.start)} to {format_timestamp(billing.end)}",
    ]
    if not hours_by_user:
        lines.append("Nobody was on call in this billing period.")

    for user in sorted(hours_by_user):
        hours = hours_by_user[user]
        lines.append(
            f"{user} was on call for {format_hours(hours)} hours "
            f"and should be paid {currency}{hours * rate:.2f}."
        )

    return "\n".join(lines)


def generate_oncall_report(slots: Sequence[Tuple[datetime, FrozenSet[str]]]) -> str:
    """Render who is on call at each instant, with an explicit line for nobody."""
    lines: List[str] = []
    for instant, users in slots:
        lines.append(f"On call for week starting {instant.strftime('%Y-%m-%d')}:")
        if users:
            lines.extend(sorted(users))
        else:
            lines.append(NOBODY_ON_CALL)
    return "\n".join(lines)


def format_next_oncall(user: str, period: Optional[RotationPeriod], look_ahead_months: int) -> str:
    """Describe when ``user`` is next on call, or that they are not within the look-ahead."""
    if period is None:
        return f"{user} is not on call in the next {look_ahead_months} months for the specified rotation."
    return f"{user} is next on call on {period.start.strftime('%B %d, %Y')}"


def generate_schedules_report(schedules: Sequence[Schedule]) -> str:
    """List every schedule with its id."""
    lines = ["All Schedules:"]
    lines.extend(f"  {schedule.name} (ID: {schedule.id})" for schedule in schedules)
    return "\n".join(lines)


def generate_rotations_report(schedule: Schedule) -> str:
    """List the rotations of one schedule with their ids."""
    lines = [f"Schedule ID for '{schedule.name}' is '{schedule.id}'", "Rotations:"]
    lines.extend(f"  {rotation.name} (ID: {rotation.id})" for rotation in schedule.rotations)
    return "\n".join(lines)
