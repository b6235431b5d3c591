"""Opsgenie REST API client for alert and schedule data retrieval."""

from __future__ import annotations

import logging
import re
import time
from datetime import datetime, timezone
from typing import Any, Dict, Iterator, List, Optional, Sequence

import requests

from .config import Config
from .errors import NotFoundError, RemoteServiceError
from .models import Alert, Rotation, RotationPeriod, Schedule

logger = logging.getLogger(__name__)

_FRACTION_RE = re.compile(r"\.(\d+)")


def parse_datetime(value: Optional[str]) -> Optional[datetime]:
    """Parse Opsgenie ISO8601 timestamps into timezone-aware UTC datetimes.

    Opsgenie trims trailing zeros from fractional seconds (``16:47:14.58Z``), so
    the fraction is padded to microseconds before parsing.
    """
    if not value:
        return None

    normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
    normalized = _FRACTION_RE.sub(lambda match: "." + match.group(1)[:6].ljust(6, "0"), normalized, count=1)
    parsed = datetime.fromisoformat(normalized)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def format_datetime(value: datetime) -> str:
    """Format a datetime as UTC ISO8601 suitable for Opsgenie query params."""
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


def _epoch_millis(value: datetime) -> int:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return int(value.timestamp() * 1000)


def build_alert_query(
    created_after: datetime,
    created_before: Optional[datetime] = None,
    tags: Sequence[str] = (),
    excluded_tags: Sequence[str] = (),
) -> str:
    """Compose an Opsgenie alert search expression.

    Time bounds are expressed in epoch milliseconds so they are unambiguous UTC.
    The lower bound is inclusive and the upper bound exclusive. Required tags are
    joined with ``AND``; excluded tags become ``NOT (tag:A OR tag:B)``.
    """
    clauses = [f"createdAt >= {_epoch_millis(created_after)}"]
    if created_before is not None:
        clauses.append(f"createdAt < {_epoch_millis(created_before)}")
    if tags:
        clauses.append(" AND ".join(f"tag:{tag}" for tag in tags))
    if excluded_tags:
        clauses.append("NOT (" + " OR ".join(f"tag:{tag}" for tag in excluded_tags) + ")")
    return " AND ".join(clauses)


class OpsgenieClient:
    """Small, typed client for the Opsgenie alert and schedule APIs."""

    PAGE_SIZE = 100
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, config: Config, timeout_seconds: int = 30) -> None:
        """Initialize an authenticated Opsgenie API client.

        Args:
            config: Validated runtime configuration including the API key.
            timeout_seconds: Per-request timeout in seconds.
        """
        self._config = config
        self._timeout_seconds = timeout_seconds
        self._base_url = f"{config.api_url}/v2"

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"GenieKey {config.api_key}",
                "Accept": "application/json",
            }
        )

    def _build_url(self, path: str) -> str:
        """Build a fully qualified API URL from a path below ``/v2``."""
        return f"{self._base_url}/{path.lstrip('/')}"

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _request_json(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, Any]] = None,
        json_body: Optional[Dict[str, Any]] = None,
    ) -> Dict[str, Any]:
        """Execute a request with retry logic for 429/5xx responses and transport errors.

        Raises:
            RemoteServiceError: If the request repeatedly fails, returns HTTP >= 400,
                or does not return a valid JSON object.
        """
        url = self._build_url(path)
        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.request(
                    method,
                    url,
                    params=params,
                    json=json_body,
                    timeout=self._timeout_seconds,
                )
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise RemoteServiceError(f"Opsgenie request failed after retries: {method} {url}") from exc
                logger.debug("Retrying after transport error", extra={"url": url, "attempt": attempt})
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                logger.debug(
                    "Retrying after retryable status",
                    extra={"url": url, "status": status_code, "attempt": attempt},
                )
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code >= 400:
                raise RemoteServiceError(
                    f"Opsgenie API request failed: {method} {url} returned {status_code} - {response.text}",
                    status=status_code,
                    body=response.text,
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise RemoteServiceError(
                    f"Opsgenie API returned invalid JSON: {method} {url}",
                    status=status_code,
                    body=response.text,
                ) from exc

            if not isinstance(payload, dict):
                raise RemoteServiceError(
                    f"Opsgenie API returned unexpected payload shape: {method} {url}",
                    status=status_code,
                    body=response.text,
                )

            return payload

        raise RemoteServiceError(f"Opsgenie request failed after retries: {method} {url}") from last_error

    def _parse_alert(self, item: Dict[str, Any]) -> Alert:
        """Build an ``Alert`` from one list item.

        Raises:
            RemoteServiceError: If the item is not an object or a field is malformed.
        """
        try:
            return self._build_alert(item)
        except (ValueError, TypeError, AttributeError) as exc:
            raise RemoteServiceError(
                f"Opsgenie alert payload is malformed: {exc}: payload={item}",
                body=str(item),
            ) from exc

    def _build_alert(self, item: Dict[str, Any]) -> Alert:
        alert_id = item.get("id")
        created_at = parse_datetime(item.get("createdAt"))
        if not alert_id or created_at is None:
            raise RemoteServiceError(f"Opsgenie alert payload is missing required fields: payload={item}")

        acknowledged = bool(item.get("acknowledged"))
        acknowledged_by = (item.get("report") or {}).get("acknowledgedBy") if acknowledged else None

        return Alert(
            id=str(alert_id),
            tiny_id=str(item.get("tinyId", "")),
            created_at=created_at,
            acknowledged=acknowledged,
            acknowledged_by=acknowledged_by,
            message=str(item.get("message", "")),
            tags=frozenset(item.get("tags") or ()),
            owner=item.get("owner") or None,
        )

    def iter_alerts(
        self,
        created_after: datetime,
        created_before: Optional[datetime] = None,
        tags: Sequence[str] = (),
        excluded_tags: Sequence[str] = (),
    ) -> Iterator[Alert]:
        """Yield every alert matching a creation-time range and tag filter.

        Each call performs a fresh pagination pass using ``limit``/``offset``,
        ordered by ascending creation time. Pagination stops at the first empty
        page or the first page shorter than ``PAGE_SIZE``. Opsgenie returns
        non-overlapping pages, so alerts are not de-duplicated across pages.

        Raises:
            RemoteServiceError: If any page request fails; alerts from earlier
                pages have already been yielded.
        """
        query = build_alert_query(created_after, created_before, tags, excluded_tags)
        offset = 0

        while True:
            params: Dict[str, Any] = {
                "query": query,
                "limit": self.PAGE_SIZE,
                "offset": offset,
                "sort": "createdAt",
                "order": "asc",
            }
            payload = self._request_json("GET", "alerts", params=params)

            page_items = payload.get("data") or []
            if not isinstance(page_items, list):
                raise RemoteServiceError(
                    f"Opsgenie alert page has unexpected shape: offset={offset}",
                    body=str(payload),
                )
            logger.debug("Fetched alert page", extra={"offset": offset, "count": len(page_items)})
            for item in page_items:
                yield self._parse_alert(item)

            if len(page_items) < self.PAGE_SIZE:
                break

            offset += self.PAGE_SIZE

    def add_tags(self, alert_id: str, tags: Sequence[str]) -> None:
        """Add tags to an alert. Opsgenie processes the request asynchronously."""
        self._request_json(
            "POST",
            f"alerts/{alert_id}/tags",
            params={"identifierType": "id"},
            json_body={"tags": list(tags)},
        )

    def list_schedules(self) -> List[Schedule]:
        """List all schedules, following ``paging.next`` links."""
        schedules: List[Schedule] = []
        offset = 0

        while True:
            payload = self._request_json(
                "GET",
                "schedules",
                params={"limit": self.PAGE_SIZE, "offset": offset},
            )
            for item in payload.get("data") or []:
                schedule_id = item.get("id")
                name = item.get("name")
                if schedule_id and name:
                    schedules.append(Schedule(id=str(schedule_id), name=str(name)))

            if not (payload.get("paging") or {}).get("next"):
                break

            offset += self.PAGE_SIZE

        return schedules

    def get_schedule(self, schedule_id: str) -> Schedule:
        """Fetch a schedule by id, including its rotations."""
        payload = self._request_json("GET", f"schedules/{schedule_id}", params={"identifierType": "id"})
        data = payload.get("data") or {}
        rotations = tuple(
            Rotation(id=str(item["id"]), name=str(item.get("name", "")))
            for item in data.get("rotations") or []
            if item.get("id")
        )
        return Schedule(id=str(data.get("id", schedule_id)), name=str(data.get("name", "")), rotations=rotations)

    def find_schedule_by_name(self, name: str) -> Schedule:
        """Resolve a schedule by exact name.

        Raises:
            NotFoundError: If no schedule has the given name.
        """
        for schedule in self.list_schedules():
            if schedule.name == name:
                return schedule

        raise NotFoundError(f"Schedule '{name}' not found")

    def get_timeline(
        self,
        schedule_id: str,
        start: datetime,
        interval: int,
        interval_unit: str = "months",
    ) -> List[RotationPeriod]:
        """Fetch the final schedule timeline as a flat list of rotation periods.

        Args:
            schedule_id: Schedule identifier.
            start: Timeline start instant.
            interval: Length of the timeline window in ``interval_unit``.
            interval_unit: One of ``days``, ``weeks`` or ``months``.
        """
        payload = self._request_json(
            "GET",
            f"schedules/{schedule_id}/timeline",
            params={
                "identifierType": "id",
                "date": format_datetime(start),
                "interval": interval,
                "intervalUnit": interval_unit,
            },
        )
        final_timeline = (payload.get("data") or {}).get("finalTimeline") or {}
        periods: List[RotationPeriod] = []

        for rotation in final_timeline.get("rotations") or []:
            rotation_id = str(rotation.get("id", ""))
            for item in rotation.get("periods") or []:
                try:
                    period_start = parse_datetime(item.get("startDate"))
                    period_end = parse_datetime(item.get("endDate"))
                except (ValueError, TypeError, AttributeError) as exc:
                    raise RemoteServiceError(
                        f"Opsgenie timeline period is malformed: schedule_id={schedule_id}, payload={item}",
                        body=str(item),
                    ) from exc
                if period_start is None or period_end is None:
                    raise RemoteServiceError(
                        "Opsgenie timeline period is missing required fields: "
                        f"schedule_id={schedule_id}, payload={item}"
                    )

                recipient = item.get("recipient") or {}
                user = recipient.get("name") if recipient.get("type") == "user" else None
                periods.append(RotationPeriod(rotation_id=rotation_id, user=user, start=period_start, end=period_end))

        logger.info(
            "Fetched schedule timeline",
            extra={"schedule_id": schedule_id, "periods": len(periods)},
        )
        return periods
