"""Entry point and per-report orchestration for the Opsgenie reports."""

from __future__ import annotations

import argparse
import logging
import sys
from datetime import datetime, timedelta, timezone
from typing import Iterable, List, Optional, Sequence, Tuple

from dotenv import load_dotenv

from .aggregator import ToilAggregator, summarize_alerts
from .billing import next_on_call, on_call_at, overlaps, period_containing, upcoming_weekdays
from .classifier import TagVocabulary, classify
from .cli import parse_args
from .config import (
    load_config,
    load_excluded_tags,
    load_look_ahead_months,
    load_payment_rate,
    load_reference_date,
    load_schedule_config,
    load_tag_vocabulary_values,
    load_toil_config,
)
from .errors import ConfigurationError, NotFoundError, RemoteServiceError
from .models import Alert
from .opsgenie_client import OpsgenieClient
from .reports import (
    format_acknowledgement,
    format_next_oncall,
    generate_oncall_report,
    generate_payment_report,
    generate_rotations_report,
    generate_schedules_report,
    generate_stats_report,
    generate_toil_report,
)
from .tagging import prompt_for_tag, tag_untagged_alerts
from .timeranges import resolve_range

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_UNEXPECTED_ERROR = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_REMOTE_SERVICE_ERROR = 4


def _now() -> datetime:
    return datetime.now(timezone.utc)


def _has_range_selector(args: argparse.Namespace) -> bool:
    return bool(args.last_week or args.last_month or args.start or args.end)


def _collect_alerts(
    alerts: Iterable[Alert],
    skip_errors: bool,
) -> Tuple[List[Alert], Optional[RemoteServiceError]]:
    """Drain an alert iterator, keeping whatever was fetched before a failure.

    With ``skip_errors`` the failure is logged and dropped; otherwise it is
    returned so the caller can report the partial result before failing.
    """
    collected: List[Alert] = []
    try:
        for alert in alerts:
            collected.append(alert)
    except RemoteServiceError as exc:
        if not skip_errors:
            return collected, exc
        logger.warning(
            "Alert fetch failed; continuing with partial results",
            extra={"fetched": len(collected), "status": exc.status},
        )
    return collected, None


def _raise_if_partial(error: Optional[RemoteServiceError], fetched: int) -> None:
    """Flag a report printed from a truncated fetch, then re-raise the fetch error.

    ``fetched`` is the number of alerts the printed report was built from.
    """
    if error is None:
        return
    print(f"\nWARNING: alert fetch failed after {fetched} alerts; the report above is partial.")
    raise error


def run_toil(args: argparse.Namespace, client: OpsgenieClient) -> int:
    """Credit TOIL for acknowledged out-of-hours alerts, one credit per quiet window."""
    toil_config = load_toil_config(
        num_days=args.days,
        unit_values=args.unit_value,
        quiet_window_seconds=args.quiet_window,
    )
    if _has_range_selector(args):
        start, end = resolve_range(
            _now().date(),
            last_week=args.last_week,
            last_month=args.last_month,
            start=args.start,
            end=args.end,
        )
    else:
        start, end = _now() - timedelta(days=toil_config.num_days), None

    unit_values = dict(toil_config.unit_values)
    categories = tuple(unit_values)
    vocabulary = TagVocabulary(business_units=(), time_tags=categories)
    aggregator = ToilAggregator(quiet_window_seconds=toil_config.quiet_window_seconds)

    alerts, error = _collect_alerts(
        client.iter_alerts(start, end, tags=toil_config.required_tags),
        skip_errors=args.skip_errors,
    )
    for alert in alerts:
        if not alert.acknowledged or not alert.acknowledged_by:
            continue

        result = classify(alert.tags, vocabulary)
        if result.time_tags:
            category = result.time_tags[0]
            aggregator.record(alert.acknowledged_by, category, alert.created_at, unit_values[category])

        print(format_acknowledgement(alert))

    print(generate_toil_report(aggregator, categories))
    _raise_if_partial(error, len(alerts))
    return EXIT_SUCCESS


def run_stats(args: argparse.Namespace, client: OpsgenieClient) -> int:
    """Count alerts per business unit, time tag and client over a date range."""
    business_units, time_tags = load_tag_vocabulary_values(args.business_units, args.time_tags)
    vocabulary = TagVocabulary(business_units=business_units, time_tags=time_tags)
    start, end = resolve_range(
        _now().date(),
        last_week=args.last_week,
        last_month=args.last_month,
        start=args.start,
        end=args.end,
    )

    print(f"Fetching alerts from {start.isoformat()} to {end.isoformat()}...")
    alerts, error = _collect_alerts(client.iter_alerts(start, end), skip_errors=args.skip_errors)

    print(generate_stats_report(summarize_alerts(alerts, vocabulary)))
    _raise_if_partial(error, len(alerts))
    return EXIT_SUCCESS


def run_payment(args: argparse.Namespace, client: OpsgenieClient) -> int:
    """Report on-call hours and payment per user for the billing month."""
    schedule_config = load_schedule_config(args.schedule_id, args.rotation_id)
    rate = load_payment_rate(args.rate)
    reference = load_reference_date(args.date) or _now().date()

    billing = period_containing(reference)
    periods = client.get_timeline(schedule_config.schedule_id, billing.start, interval=2, interval_unit="months")
    hours = overlaps(periods, billing, set(schedule_config.rotation_ids))

    print(generate_payment_report(hours, rate, billing))
    return EXIT_SUCCESS


def run_oncall(args: argparse.Namespace, client: OpsgenieClient) -> int:
    """Show who is on call at 19:00 UTC on each of the coming Wednesdays."""
    schedule_config = load_schedule_config(args.schedule_id, args.rotation_id, require_rotation=False)
    slots = upcoming_weekdays(_now().date(), args.weeks)

    timeline_start = slots[0].replace(hour=0)
    periods = client.get_timeline(
        schedule_config.schedule_id,
        timeline_start,
        interval=args.weeks,
        interval_unit="weeks",
    )
    rotation_ids = set(schedule_config.rotation_ids) or None

    print(generate_oncall_report([(instant, on_call_at(periods, instant, rotation_ids)) for instant in slots]))
    return EXIT_SUCCESS


def run_next_oncall(args: argparse.Namespace, client: OpsgenieClient) -> int:
    """Show the next on-call start for a user within the look-ahead window."""
    schedule_config = load_schedule_config(args.schedule_id, args.rotation_id)
    months = load_look_ahead_months(args.months)
    now = _now()

    periods = client.get_timeline(schedule_config.schedule_id, now, interval=months, interval_unit="months")
    period = next_on_call(periods, args.email, now, rotation_id=schedule_config.rotation_ids[0])

    print(format_next_oncall(args.email, period, months))
    return EXIT_SUCCESS


def run_schedules(args: argparse.Namespace, client: OpsgenieClient) -> int:
    """List schedules, or the rotations of the schedule named by ``--name``."""
    if not args.name:
        print(generate_schedules_report(client.list_schedules()))
        return EXIT_SUCCESS

    try:
        found = client.find_schedule_by_name(args.name)
    except NotFoundError as exc:
        print(str(exc))
        return EXIT_SUCCESS

    print(generate_rotations_report(client.get_schedule(found.id)))
    return EXIT_SUCCESS


def run_tag(args: argparse.Namespace, client: OpsgenieClient) -> int:
    """Prompt for a tag for each recent alert missing all of the configured tags."""
    tags = load_excluded_tags(args.tags)
    outcome = tag_untagged_alerts(client, tags, _now() - timedelta(days=args.days), prompt_for_tag)

    if not (outcome.tagged or outcome.skipped or outcome.failed):
        print("No alerts found without the specified tags.")
    else:
        print(
            f"Tagged {len(outcome.tagged)} alerts, skipped {len(outcome.skipped)}, "
            f"failed {len(outcome.failed)}."
        )
    return EXIT_SUCCESS


COMMANDS = {
    "toil": run_toil,
    "stats": run_stats,
    "payment": run_payment,
    "oncall": run_oncall,
    "next-oncall": run_next_oncall,
    "schedules": run_schedules,
    "tag": run_tag,
}


def orchestrate_report(argv: Optional[Sequence[str]] = None) -> int:
    """Run the selected report and map failures to exit codes.

    Exit codes:
        0: success, including a named resource that was not found
        1: unexpected error
        2: configuration error, reported before any network call
        4: Opsgenie API error
    """
    try:
        args = parse_args(argv)
        logging.basicConfig(stream=sys.stderr, level=args.log_level, format="%(levelname)s %(name)s %(message)s")
        load_dotenv()

        config = load_config()
        client = OpsgenieClient(config=config)
        return COMMANDS[args.command](args, client)
    except ConfigurationError as exc:
        print(f"ERROR: Invalid configuration: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    except RemoteServiceError as exc:
        print(f"ERROR: Opsgenie request failed: {exc}", file=sys.stderr)
        return EXIT_REMOTE_SERVICE_ERROR
    except Exception as exc:
        logger.exception("Unexpected error while generating report")
        print(f"ERROR: Unexpected failure: {exc}", file=sys.stderr)
        return EXIT_UNEXPECTED_ERROR


def main() -> None:
    raise SystemExit(orchestrate_report())


if __name__ == "__main__":
    main()
