"""Configuration parsing and validation for the Opsgenie reports.

Values are read from the process environment. ``load_dotenv`` is called by the
entry point so a ``.env`` file in the working directory is honored as well.
Command-line flags take precedence over environment values; callers pass them
in as keyword arguments and ``None`` means "not given on the command line".
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from datetime import date
from typing import Dict, List, Optional, Sequence, Tuple

from .errors import ConfigurationError

DEFAULT_API_URL = "https://api.opsgenie.com"
DEFAULT_BUSINESS_UNIT_TAGS = ("deliveryplus", "govpress")
DEFAULT_TIME_TAGS = ("OOH", "inhours", "wakinghours", "sleepinghours")
DEFAULT_QUIET_WINDOW_SECONDS = 1800
DEFAULT_NUM_DAYS = 7
DEFAULT_LOOK_AHEAD_MONTHS = 6


@dataclass(frozen=True)
class Config:
    """Validated connection settings shared by every report."""

    api_key: str
    api_url: str = DEFAULT_API_URL


@dataclass(frozen=True)
class ToilConfig:
    """Settings for the toil report.

    ``unit_values`` is ordered: when an alert carries several toil categories the
    first one in this order is credited.
    """

    num_days: int
    required_tags: Tuple[str, ...]
    unit_values: Tuple[Tuple[str, float], ...]
    quiet_window_seconds: int


@dataclass(frozen=True)
class ScheduleConfig:
    """Settings for schedule-based reports."""

    schedule_id: str
    rotation_ids: Tuple[str, ...]


def _env(name: str) -> str:
    return os.getenv(name, "").strip()


def split_csv(value: Optional[str]) -> List[str]:
    """Split a comma-separated value into stripped, non-empty items."""
    if not value:
        return []
    return [item.strip() for item in value.split(",") if item.strip()]


def _parse_float(name: str, raw: str) -> float:
    try:
        return float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for '{name}': expected a number, got '{raw}'.") from exc


def _parse_positive_int(name: str, raw: str) -> int:
    try:
        parsed = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for '{name}': expected an integer, got '{raw}'.") from exc

    if parsed <= 0:
        raise ConfigurationError(f"Invalid value for '{name}': expected an integer greater than 0.")
    return parsed


def _parse_non_negative_int(name: str, raw: str) -> int:
    try:
        parsed = int(raw)
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for '{name}': expected an integer, got '{raw}'.") from exc

    if parsed < 0:
        raise ConfigurationError(f"Invalid value for '{name}': expected 0 or more seconds.")
    return parsed


def parse_date(name: str, raw: str) -> date:
    """Parse a ``YYYY-MM-DD`` date, raising ``ConfigurationError`` when malformed."""
    try:
        return date.fromisoformat(raw.strip())
    except ValueError as exc:
        raise ConfigurationError(f"Invalid value for '{name}': expected YYYY-MM-DD, got '{raw}'.") from exc


def load_config() -> Config:
    """Build and validate the API connection configuration.

    Raises:
        ConfigurationError: If ``OPSGENIE_API_KEY`` is not configured.
    """
    api_key = _env("OPSGENIE_API_KEY")
    if not api_key:
        raise ConfigurationError(
            "Missing required Opsgenie API key. "
            "Set the 'OPSGENIE_API_KEY' environment variable before running a report."
        )

    api_url = _env("OPSGENIE_API_URL") or DEFAULT_API_URL
    return Config(api_key=api_key, api_url=api_url.rstrip("/"))


def parse_unit_values(entries: Sequence[str]) -> Tuple[Tuple[str, float], ...]:
    """Parse ``CATEGORY=VALUE`` entries into an ordered unit-value table."""
    table: Dict[str, float] = {}
    for entry in entries:
        category, separator, raw_value = entry.partition("=")
        category = category.strip()
        if not separator or not category:
            raise ConfigurationError(f"Invalid unit value '{entry}': expected CATEGORY=VALUE.")
        table[category] = _parse_float(category, raw_value.strip())
    return tuple(table.items())


def load_toil_config(
    num_days: Optional[int] = None,
    unit_values: Optional[Sequence[str]] = None,
    quiet_window_seconds: Optional[int] = None,
) -> ToilConfig:
    """Build the toil report configuration.

    Without ``unit_values`` the table is ``sleepinghours`` then ``wakinghours``
    valued from ``TOIL_SLEEPING_HOURS`` and ``TOIL_WAKING_HOURS`` (default 0).
    """
    if num_days is None:
        raw_days = _env("NUM_DAYS")
        num_days = _parse_positive_int("NUM_DAYS", raw_days) if raw_days else DEFAULT_NUM_DAYS

    if unit_values:
        table = parse_unit_values(unit_values)
    else:
        table = (
            ("sleepinghours", _parse_float("TOIL_SLEEPING_HOURS", _env("TOIL_SLEEPING_HOURS") or "0")),
            ("wakinghours", _parse_float("TOIL_WAKING_HOURS", _env("TOIL_WAKING_HOURS") or "0")),
        )

    if quiet_window_seconds is None:
        raw_window = _env("QUIET_WINDOW_SECONDS")
        quiet_window_seconds = (
            _parse_non_negative_int("QUIET_WINDOW_SECONDS", raw_window)
            if raw_window
            else DEFAULT_QUIET_WINDOW_SECONDS
        )
    elif quiet_window_seconds < 0:
        raise ConfigurationError("Invalid value for 'quiet window': expected 0 or more seconds.")

    return ToilConfig(
        num_days=num_days,
        required_tags=tuple(split_csv(os.getenv("TAGS"))),
        unit_values=table,
        quiet_window_seconds=quiet_window_seconds,
    )


def load_tag_vocabulary_values(
    business_units: Optional[str] = None,
    time_tags: Optional[str] = None,
) -> Tuple[Tuple[str, ...], Tuple[str, ...]]:
    """Return the configured business-unit and time-tag vocabularies, in order."""
    units = split_csv(business_units or os.getenv("BUSINESS_UNIT_TAGS"))
    times = split_csv(time_tags or os.getenv("TIME_TAGS"))
    return tuple(units) or DEFAULT_BUSINESS_UNIT_TAGS, tuple(times) or DEFAULT_TIME_TAGS


def load_schedule_config(
    schedule_id: Optional[str] = None,
    rotation_ids: Optional[str] = None,
    require_rotation: bool = True,
) -> ScheduleConfig:
    """Build schedule settings from flags or ``OPSGENIE_SCHEDULE_ID``/``OPSGENIE_ROTATION_ID``.

    Raises:
        ConfigurationError: If the schedule id, or a required rotation id, is missing.
    """
    resolved_schedule = (schedule_id or _env("OPSGENIE_SCHEDULE_ID")).strip()
    if not resolved_schedule:
        raise ConfigurationError(
            "Missing schedule id. Pass --schedule-id or set 'OPSGENIE_SCHEDULE_ID'."
        )

    resolved_rotations = tuple(split_csv(rotation_ids or os.getenv("OPSGENIE_ROTATION_ID")))
    if require_rotation and not resolved_rotations:
        raise ConfigurationError(
            "Missing rotation id. Pass --rotation-id or set 'OPSGENIE_ROTATION_ID'."
        )

    return ScheduleConfig(schedule_id=resolved_schedule, rotation_ids=resolved_rotations)


def load_payment_rate(rate: Optional[float] = None) -> float:
    """Return the hourly payment rate from the flag or ``PAYMENT_RATE``."""
    if rate is not None:
        return rate
    raw = _env("PAYMENT_RATE")
    if not raw:
        raise ConfigurationError("Missing payment rate. Pass --rate or set 'PAYMENT_RATE'.")
    return _parse_float("PAYMENT_RATE", raw)


def load_reference_date(value: Optional[str] = None) -> Optional[date]:
    """Return the payment reference date from the flag or ``OPSGENIE_DATE``, if any."""
    raw = value or _env("OPSGENIE_DATE")
    if not raw:
        return None
    return parse_date("OPSGENIE_DATE", raw)


def load_look_ahead_months(months: Optional[int] = None) -> int:
    """Return how many months the next on-call lookup scans (default 6)."""
    if months is not None:
        return months
    raw = _env("LOOK_AHEAD_MONTHS")
    return _parse_positive_int("LOOK_AHEAD_MONTHS", raw) if raw else DEFAULT_LOOK_AHEAD_MONTHS


def load_excluded_tags(tags: Optional[str] = None) -> Tuple[str, ...]:
    """Return the tags whose absence marks an alert as untagged."""
    excluded = tuple(split_csv(tags or os.getenv("TAGS_TO_EXCLUDE")))
    if not excluded:
        raise ConfigurationError("Missing tag list. Pass --tags or set 'TAGS_TO_EXCLUDE'.")
    return excluded
