"""Tagging of alerts that carry none of a set of business-unit tags.

The choice of tag for each alert is delegated to a decision function so the
command can run interactively or be driven programmatically.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable, List, Optional, Sequence

from .errors import RemoteServiceError
from .models import Alert
from .opsgenie_client import OpsgenieClient

logger = logging.getLogger(__name__)

# Returns the tag to add, or ``None`` to skip the alert.
TagDecision = Callable[[Alert, Sequence[str]], Optional[str]]


@dataclass
class TaggingOutcome:
    """Per-alert results of a tagging run."""

    tagged: List[str] = field(default_factory=list)
    skipped: List[Alert] = field(default_factory=list)
    failed: List[str] = field(default_factory=list)


def prompt_for_tag(alert: Alert, choices: Sequence[str], input_func: Callable[[str], str] = input) -> Optional[str]:
    """Ask on the terminal which tag to add; an empty or invalid answer picks the first choice."""
    print(f"Alert ID: {alert.id}, Message: {alert.message}")
    print("Which tag would you like to add?")
    options = list(choices) + ["skip"]
    for index, option in enumerate(options, start=1):
        print(f"{index}. {option}")

    answer = input_func(
        f"Enter the number corresponding to the desired tag or action (Default is {options[0]}): "
    ).strip()
    try:
        number = int(answer)
    except ValueError:
        number = 0

    choice = options[number - 1] if 1 <= number <= len(options) else options[0]
    return None if choice == "skip" else choice


def tag_untagged_alerts(
    client: OpsgenieClient,
    tags: Sequence[str],
    created_after: datetime,
    decide: TagDecision,
) -> TaggingOutcome:
    """Offer each alert created after ``created_after`` without any of ``tags`` for tagging.

    A failure to tag one alert is logged and recorded; the run continues with
    the next alert. Failures fetching the alerts propagate.
    """
    outcome = TaggingOutcome()
    alerts = list(client.iter_alerts(created_after, excluded_tags=tags))
    logger.info("Found untagged alerts", extra={"count": len(alerts)})

    for alert in alerts:
        new_tag = decide(alert, tags)
        if new_tag is None:
            outcome.skipped.append(alert)
            continue

        try:
            client.add_tags(alert.id, [new_tag])
        except RemoteServiceError as exc:
            logger.warning(
                "Unable to tag alert",
                extra={"alert_id": alert.id, "tag": new_tag, "status": exc.status},
            )
            print(f"Error: Unable to add tag '{new_tag}' to alert '{alert.id}' (status code: {exc.status})")
            outcome.failed.append(alert.id)
            continue

        print(f"Added tag '{new_tag}' to alert '{alert.id}'.")
        outcome.tagged.append(alert.id)

    return outcome
