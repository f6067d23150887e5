"""Conversion of client timestamps into canonical UTC instants."""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Final
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from workpunch_relay.core.settings import settings
from workpunch_relay.db.time import utcnow
from workpunch_relay.services.errors import InvalidInstantError, OrderingViolationError

logger = logging.getLogger(__name__)

# Abbreviations are ambiguous (IST is India, Ireland and Israel); this table is
# only used to pick a zone for display, never to interpret an instant.
TIMEZONE_ABBREVIATIONS: Final[dict[str, str]] = {
    "UTC": "UTC",
    "GMT": "Europe/London",
    "BST": "Europe/London",
    "EST": "America/New_York",
    "EDT": "America/New_York",
    "CST": "America/Chicago",
    "CDT": "America/Chicago",
    "MST": "America/Denver",
    "MDT": "America/Denver",
    "PST": "America/Los_Angeles",
    "PDT": "America/Los_Angeles",
    "AKST": "America/Anchorage",
    "AKDT": "America/Anchorage",
    "HST": "Pacific/Honolulu",
    "CET": "Europe/Paris",
    "CEST": "Europe/Paris",
    "EET": "Europe/Athens",
    "IST": "Asia/Kolkata",
    "JST": "Asia/Tokyo",
    "AEST": "Australia/Sydney",
    "AEDT": "Australia/Sydney",
}

_BASIC_OFFSET = re.compile(r"([+-]\d{2})(\d{2})$")


@dataclass(frozen=True)
class NormalizedTimes:
    """Clock-in/clock-out pair as aware UTC datetimes."""

    clock_in: datetime
    clock_out: datetime | None


def parse_instant(raw: str, *, time_zone: str | None = None) -> datetime:
    """Parse an ISO-8601 timestamp into an aware UTC datetime.

    The string must carry its own offset (``Z``, ``+05:30`` or ``+0530``)
    unless ``time_zone`` names an IANA zone to localize a naive value.

    Raises:
        InvalidInstantError: If the value is empty, malformed or ambiguous.
    """
    if not isinstance(raw, str) or not raw.strip():
        raise InvalidInstantError("Timestamp is missing")

    text = raw.strip()
    if text[-1] in "zZ":
        text = text[:-1] + "+00:00"
    text = _BASIC_OFFSET.sub(r"\1:\2", text) if "T" in text else text

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError as exc:
        raise InvalidInstantError(f"Unparseable timestamp: {raw!r}") from exc

    if parsed.tzinfo is None:
        if not time_zone:
            raise InvalidInstantError(
                f"Timestamp {raw!r} has no UTC offset; send an offset or an IANA timeZone"
            )
        try:
            parsed = parsed.replace(tzinfo=ZoneInfo(time_zone))
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise InvalidInstantError(f"Unknown IANA time zone: {time_zone!r}") from exc

    return parsed.astimezone(UTC)


def resolve_display_zone(timezone_hint: str | None) -> ZoneInfo:
    """Return the zone used to display instants for a client hint.

    Accepts an abbreviation from :data:`TIMEZONE_ABBREVIATIONS` or an IANA
    name. Anything else falls back to the configured default zone.
    """
    if timezone_hint:
        hint = timezone_hint.strip()
        candidate = TIMEZONE_ABBREVIATIONS.get(hint.upper(), hint)
        try:
            return ZoneInfo(candidate)
        except (ZoneInfoNotFoundError, ValueError):
            logger.debug("Unknown timezone hint %r; using default display zone", hint)
    return ZoneInfo(settings.default_display_timezone)


def normalize(
    raw_clock_in: str,
    raw_clock_out: str | None,
    timezone_hint: str | None = None,
    *,
    time_zone: str | None = None,
    now: datetime | None = None,
) -> NormalizedTimes:
    """Validate and canonicalize one clock event's timestamps.

    ``timezone_hint`` is accepted for symmetry with the request payload but
    deliberately plays no part in the result.

    Raises:
        InvalidInstantError: If either value does not parse, or lies too far
            in the future.
        OrderingViolationError: If clock-out is not strictly after clock-in.
    """
    _ = timezone_hint  # display only
    clock_in = parse_instant(raw_clock_in, time_zone=time_zone)
    clock_out = (
        parse_instant(raw_clock_out, time_zone=time_zone) if raw_clock_out else None
    )

    horizon = (now or utcnow()) + timedelta(seconds=settings.clock_max_future_skew_seconds)
    for label, value in (("clockIn", clock_in), ("clockOut", clock_out)):
        if value is not None and value > horizon:
            raise InvalidInstantError(f"{label} {value.isoformat()} is too far in the future")

    if clock_out is not None and clock_out <= clock_in:
        raise OrderingViolationError(
            f"clockOut {clock_out.isoformat()} must be after clockIn {clock_in.isoformat()}"
        )

    return NormalizedTimes(clock_in=clock_in, clock_out=clock_out)
