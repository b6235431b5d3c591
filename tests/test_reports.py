"""Tests for report rendering."""

import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from opsgenie_reports.aggregator import ToilAggregator, summarize_alerts
from opsgenie_reports.classifier import TagVocabulary
from opsgenie_reports.models import Alert, BillingPeriod, Rotation, RotationPeriod, Schedule
from opsgenie_reports.reports import (
    NOBODY_ON_CALL,
    format_acknowledgement,
    format_next_oncall,
    generate_oncall_report,
    generate_payment_report,
    generate_rotations_report,
    generate_stats_report,
    generate_toil_report,
)

T0 = datetime(2026, 1, 7, 2, 0, tzinfo=timezone.utc)


def test_generate_toil_report_lists_counts_and_total_per_user():
    """Verify the toil summary shows per-category counts and accrued TOIL."""
    aggregator = ToilAggregator()
    aggregator.record("alice@example.com", "sleepinghours", T0, 0.5)
    aggregator.record("alice@example.com", "sleepinghours", T0 + timedelta(minutes=40), 0.5)
    aggregator.record("alice@example.com", "wakinghours", T0, 0.25)

    report = generate_toil_report(aggregator, ("sleepinghours", "wakinghours"))

    assert "Summary of the number of alerts acknowledged by each user:" in report
    assert (
        "alice@example.com acknowledged 2 alerts during sleepinghours and 1 alerts during wakinghours. "
        "This corresponds to 1.25 TOIL."
    ) in report


def test_generate_toil_report_large_total_keeps_every_digit():
    """Verify large TOIL totals print in fixed two-decimal notation."""
    aggregator = ToilAggregator()
    aggregator.record("alice@example.com", "sleepinghours", T0, 1234567.5)

    report = generate_toil_report(aggregator, ("sleepinghours",))

    assert "This corresponds to 1234567.50 TOIL." in report
    assert "e+" not in report


def test_generate_toil_report_without_acknowledgements():
    """Verify an empty aggregation renders an explicit message."""
    report = generate_toil_report(ToilAggregator(), ("sleepinghours",))

    assert "No qualifying acknowledgements found." in report


def test_format_acknowledgement_includes_message_actor_and_time():
    """Verify the activity line describes who acknowledged which alert and when."""
    alert = Alert(
        id="a1",
        tiny_id="42",
        created_at=T0,
        acknowledged=True,
        acknowledged_by="alice@example.com",
        message="disk full",
    )

    line = format_acknowledgement(alert)

    assert "Message: disk full" in line
    assert "Alert 42 was acknowledged by alice@example.com." in line
    assert "2026-01-07 02:00:00 UTC" in line


def test_generate_stats_report_sections():
    """Verify stats output has company totals, unit sections and client breakdowns."""
    vocabulary = TagVocabulary(business_units=("deliveryplus", "govpress"), time_tags=("OOH", "inhours"))
    alerts = [
        Alert(
            id="a1",
            tiny_id="1",
            created_at=T0,
            acknowledged=False,
            acknowledged_by=None,
            message="m",
            tags=frozenset({"deliveryplus", "OOH", "client_acme"}),
        )
    ]

    report = generate_stats_report(summarize_alerts(alerts, vocabulary))

    assert "Total alerts processed: 1" in report
    assert "=== Company Totals ===\n  OOH: 1\n  inhours: 0" in report
    assert "=== Business Unit: deliveryplus ===" in report
    assert "    Client: acme\n      OOH: 1\n      inhours: 0" in report
    assert "=== Business Unit: govpress ===" in report
    assert "No client-specific alerts found." in report


def test_generate_payment_report_formats_hours_and_payment():
    """Verify payment lines show hours and the payment due in pounds."""
    billing = BillingPeriod(
        start=datetime(2026, 1, 7, 10, tzinfo=timezone.utc),
        end=datetime(2026, 2, 4, 10, tzinfo=timezone.utc),
    )

    report = generate_payment_report({"alice": 110.0, "bob": 168.0}, 10.0, billing)

    assert "alice was on call for 110.00 hours and should be paid £1100.00." in report
    assert "bob was on call for 168.00 hours and should be paid £1680.00." in report
    assert "Nobody was on call" in generate_payment_report({}, 10.0, billing)


def test_generate_oncall_report_signals_nobody_explicitly():
    """Verify an empty on-call set renders as an explicit nobody line."""
    first = datetime(2026, 10, 21, 19, tzinfo=timezone.utc)
    second = first + timedelta(weeks=1)

    report = generate_oncall_report([(first, frozenset({"bob", "alice"})), (second, frozenset())])

    assert report.splitlines() == [
        "On call for week starting 2026-10-21:",
        "alice",
        "bob",
        "On call for week starting 2026-10-28:",
        NOBODY_ON_CALL,
    ]


def test_format_next_oncall_found_and_missing():
    """Verify next on-call output for found and missing periods."""
    period = RotationPeriod(
        rotation_id="r1",
        user="alice",
        start=datetime(2026, 11, 2, tzinfo=timezone.utc),
        end=datetime(2026, 11, 9, tzinfo=timezone.utc),
    )

    assert format_next_oncall("alice", period, 6) == "alice is next on call on November 02, 2026"
    assert "is not on call in the next 6 months" in format_next_oncall("alice", None, 6)


def test_generate_rotations_report_lists_rotations():
    """Verify the rotations listing names the schedule and each rotation."""
    schedule = Schedule(id="s1", name="Primary", rotations=(Rotation(id="r1", name="Weekly"),))

    report = generate_rotations_report(schedule)

    assert "Schedule ID for 'Primary' is 's1'" in report
    assert "  Weekly (ID: r1)" in report
