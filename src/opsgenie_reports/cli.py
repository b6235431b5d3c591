"""Command-line argument parsing for the Opsgenie reports."""

from __future__ import annotations

import argparse
from datetime import date
from typing import Optional, Sequence


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Args:
        value: Raw command-line argument value.

    Returns:
        The validated positive integer.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def _non_negative_int(value: str) -> int:
    """Parse and validate a CLI integer that may be zero."""
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed < 0:
        raise argparse.ArgumentTypeError("must be 0 or greater")

    return parsed


def _iso_date(value: str) -> date:
    """Parse a ``YYYY-MM-DD`` CLI value into a date."""
    try:
        return date.fromisoformat(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be a date in YYYY-MM-DD format") from exc


def _add_range_arguments(parser: argparse.ArgumentParser) -> argparse._MutuallyExclusiveGroup:
    """Add the date range selectors shared by the alert reports.

    Returns:
        The group holding the mutually exclusive range presets, so a report can
        add its own alternative selector to it.
    """
    selectors = parser.add_mutually_exclusive_group()
    selectors.add_argument("--last-week", action="store_true", help="Report on the last 7 days.")
    selectors.add_argument("--last-month", action="store_true", help="Report on the last full calendar month.")
    parser.add_argument("--start", type=_iso_date, help="Start date (YYYY-MM-DD).")
    parser.add_argument("--end", type=_iso_date, help="End date, inclusive (YYYY-MM-DD).")
    parser.add_argument(
        "--skip-errors",
        action="store_true",
        help="Log alert fetch failures and report on the alerts fetched so far instead of failing.",
    )
    return selectors


def _add_schedule_arguments(parser: argparse.ArgumentParser) -> None:
    """Add the schedule and rotation overrides shared by the on-call reports."""
    parser.add_argument("--schedule-id", help="Schedule id (default: OPSGENIE_SCHEDULE_ID).")
    parser.add_argument(
        "--rotation-id",
        help="Comma-separated rotation ids (default: OPSGENIE_ROTATION_ID).",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build the top-level parser with one sub-command per report."""
    parser = argparse.ArgumentParser(
        prog="opsgenie-reports",
        description="On-call, payment, toil and alert statistics reports from Opsgenie.",
    )
    parser.add_argument(
        "--log-level",
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="Logging level (default: WARNING).",
    )
    subparsers = parser.add_subparsers(dest="command", required=True)

    toil = subparsers.add_parser("toil", help="TOIL accrued per user for out-of-hours acknowledgements.")
    toil_selectors = _add_range_arguments(toil)
    toil_selectors.add_argument(
        "--days",
        type=_positive_int,
        help="Days of history to analyze (default: NUM_DAYS or 7).",
    )
    toil.add_argument(
        "--unit-value",
        action="append",
        default=[],
        metavar="CATEGORY=VALUE",
        help="TOIL per counted acknowledgement for a tag (repeatable, first listed wins).",
    )
    toil.add_argument(
        "--quiet-window",
        type=_non_negative_int,
        help="Seconds before a repeat acknowledgement counts again (default: 1800).",
    )

    stats = subparsers.add_parser("stats", help="Alert counts by business unit, time tag and client.")
    _add_range_arguments(stats)
    stats.add_argument("--business-units", help="Comma-separated business unit tags (default: BUSINESS_UNIT_TAGS).")
    stats.add_argument("--time-tags", help="Comma-separated time tags (default: TIME_TAGS).")

    payment = subparsers.add_parser("payment", help="On-call hours and payment for a billing month.")
    _add_schedule_arguments(payment)
    payment.add_argument("--date", help="A date in the billing month, YYYY-MM-DD (default: OPSGENIE_DATE or today).")
    payment.add_argument("--rate", type=float, help="Hourly payment rate (default: PAYMENT_RATE).")

    oncall = subparsers.add_parser("oncall", help="Who is on call for each of the coming weeks.")
    _add_schedule_arguments(oncall)
    oncall.add_argument("--weeks", type=_positive_int, default=4, help="Number of weeks to show (default: 4).")

    next_oncall = subparsers.add_parser("next-oncall", help="When a user is next on call.")
    _add_schedule_arguments(next_oncall)
    next_oncall.add_argument("-e", "--email", required=True, help="Opsgenie username (email) to look up.")
    next_oncall.add_argument(
        "--months",
        type=_positive_int,
        help="Months to look ahead (default: LOOK_AHEAD_MONTHS or 6).",
    )

    schedules = subparsers.add_parser("schedules", help="List schedules, or rotations of a named schedule.")
    schedules.add_argument("-n", "--name", help="Schedule name to list rotations for.")

    tag = subparsers.add_parser("tag", help="Interactively tag alerts missing a business unit tag.")
    tag.add_argument("--tags", help="Comma-separated tags to look for (default: TAGS_TO_EXCLUDE).")
    tag.add_argument("--days", type=_positive_int, default=30, help="Days of history to search (default: 30).")

    return parser


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for a report run.

    Returns:
        Parsed CLI arguments; ``command`` names the selected report.
    """
    parser = build_parser()
    args = parser.parse_args(argv)
    if args.command == "toil" and args.days is not None and (args.start or args.end):
        parser.error("argument --days: not allowed with argument --start or --end")
    return args
