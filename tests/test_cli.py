"""Tests for command-line argument parsing."""

import sys
from datetime import date
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from opsgenie_reports.cli import parse_args


def test_parse_args_toil_with_overrides(monkeypatch):
    """Verify toil options parse from sys.argv when no argv is passed."""
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "opsgenie-reports",
            "toil",
            "--days",
            "14",
            "--unit-value",
            "sleepinghours=0.5",
            "--unit-value",
            "wakinghours=0.25",
            "--quiet-window",
            "900",
        ],
    )

    args = parse_args()

    assert args.command == "toil"
    assert args.days == 14
    assert args.unit_value == ["sleepinghours=0.5", "wakinghours=0.25"]
    assert args.quiet_window == 900
    assert args.skip_errors is False


def test_parse_args_stats_with_explicit_dates():
    """Verify stats date bounds parse as dates."""
    args = parse_args(["stats", "--start", "2026-01-01", "--end", "2026-01-31", "--skip-errors"])

    assert args.start == date(2026, 1, 1)
    assert args.end == date(2026, 1, 31)
    assert args.skip_errors is True
    assert args.last_week is False


def test_parse_args_rejects_last_week_with_last_month():
    """Verify range presets are mutually exclusive."""
    with pytest.raises(SystemExit):
        parse_args(["stats", "--last-week", "--last-month"])


def test_parse_args_rejects_malformed_date():
    """Verify malformed dates fail validation."""
    with pytest.raises(SystemExit):
        parse_args(["stats", "--start", "01/02/2026"])


def test_parse_args_with_negative_days_fails_validation():
    """Verify --days must be positive."""
    with pytest.raises(SystemExit):
        parse_args(["toil", "--days", "-1"])


def test_parse_args_next_oncall_requires_email():
    """Verify next-oncall needs an email."""
    with pytest.raises(SystemExit):
        parse_args(["next-oncall"])

    args = parse_args(["next-oncall", "-e", "alice@example.com", "--months", "3"])
    assert args.email == "alice@example.com"
    assert args.months == 3


def test_parse_args_requires_a_command():
    """Verify a report command must be chosen."""
    with pytest.raises(SystemExit):
        parse_args([])


@pytest.mark.parametrize(
    "extra",
    [
        ["--last-week"],
        ["--last-month"],
        ["--start", "2026-01-01"],
        ["--end", "2026-01-31"],
    ],
)
def test_parse_args_toil_rejects_days_with_range_selector(extra):
    """Verify --days cannot be combined with another range selector."""
    with pytest.raises(SystemExit):
        parse_args(["toil", "--days", "14", *extra])


def test_parse_args_toil_accepts_zero_quiet_window():
    """Verify a zero quiet window is a valid toil option."""
    args = parse_args(["toil", "--last-week", "--quiet-window", "0"])

    assert args.quiet_window == 0
    assert args.days is None
