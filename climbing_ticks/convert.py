"""Conversion of Mountain Project Data API records into stored documents."""
from __future__ import annotations

import dataclasses
import re
from datetime import datetime
from typing import Any, Dict, Mapping, Optional, Tuple

from .models import Route, RouteId, RouteType, Tick, TickId, TickStyle

_API_DATE_RE = re.compile(r"^[0-9]{4}-[0-9]{2}-[0-9]{2}$")

_TICK_STYLES: Dict[str, Any] = {
    "Solo": TickStyle.SOLO,
    "TR": TickStyle.TOP_ROPE,
    "Follow": TickStyle.FOLLOW,
    "Lead": {
        "Onsight": TickStyle.LEAD_ONSIGHT,
        "Flash": TickStyle.LEAD_FLASH,
        "Redpoint": TickStyle.LEAD_REDPOINT,
        "Pinkpoint": TickStyle.LEAD_PINKPOINT,
        "Fell/Hung": TickStyle.LEAD_FELL_HUNG,
        "": TickStyle.LEAD,
    },
    "Send": TickStyle.SEND,
    "Flash": TickStyle.FLASH,
    "Attempt": TickStyle.ATTEMPT,
}

# Order matters: a route listed as 'Trad, TR, Sport' is a sport route.
_ROUTE_TYPE_PRIORITY: Tuple[Tuple[str, RouteType], ...] = (
    ("Sport", RouteType.SPORT),
    ("Trad", RouteType.TRAD),
    ("Boulder", RouteType.BOULDER),
    ("Ice", RouteType.ICE),
    ("Alpine", RouteType.ALPINE),
    ("Mixed", RouteType.MIXED),
    ("Snow", RouteType.SNOW),
    ("Aid", RouteType.AID),
    ("TR", RouteType.TOP_ROPE),
)

# Escape sequences that the API leaves in tick notes.
_NOTES_REPLACEMENTS: Tuple[Tuple[str, str], ...] = (
    ("\\r\\n", "\n"),
    ("\\n", "\n"),
    ('\\"', '"'),
    ("\\'", "'"),
)


class ValidationError(ValueError):
    """Raised when an API record is missing required data."""


def get_tick_style(style: str, lead_style: str) -> TickStyle:
    """Converts an API tick's ``style`` and ``leadStyle`` values to a TickStyle."""

    value = _TICK_STYLES.get(style or "", TickStyle.UNKNOWN)
    if isinstance(value, dict):
        return value.get(lead_style or "", value[""])
    return value


def get_route_type(api_type: str) -> RouteType:
    """Converts an API route's comma-separated ``type`` value to a RouteType."""

    words = set(re.split(r",\s*", api_type or ""))
    for word, route_type in _ROUTE_TYPE_PRIORITY:
        if word in words:
            return route_type
    return RouteType.OTHER


def clean_notes(notes: str) -> str:
    for old, new in _NOTES_REPLACEMENTS:
        notes = notes.replace(old, new)
    return notes


def _positive_int(value: Any) -> Optional[int]:
    # The API sends an empty string when a route's pitch count is unknown.
    if isinstance(value, bool) or not isinstance(value, (int, float, str)):
        return None
    try:
        number = int(value)
    except ValueError:
        return None
    return number if number > 0 else None


def _is_id(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool) and value > 0


def create_tick(api_tick: Mapping[str, Any]) -> Tuple[TickId, RouteId, Tick]:
    """Creates a Tick from a record returned by the get-ticks endpoint.

    Returns the tick's ID, its route's ID, and the tick itself. Raises
    ValidationError if key information is missing.
    """

    tick_id = api_tick.get("tickId")
    if not _is_id(tick_id):
        raise ValidationError("Missing tick ID")
    route_id = api_tick.get("routeId")
    if not _is_id(route_id):
        raise ValidationError(f"Missing route ID for tick {tick_id}")

    raw_date = api_tick.get("date")
    if not isinstance(raw_date, str) or not _API_DATE_RE.match(raw_date):
        raise ValidationError(f"Invalid date {raw_date!r} for tick {tick_id}")
    try:
        tick_date = datetime.strptime(raw_date, "%Y-%m-%d").date()
    except ValueError as err:
        raise ValidationError(f"Invalid date {raw_date!r} for tick {tick_id}") from err

    stars = api_tick.get("userStars")
    tick = Tick(
        date=tick_date,
        style=get_tick_style(api_tick.get("style", ""), api_tick.get("leadStyle", "")),
        pitches=_positive_int(api_tick.get("pitches")) or 1,
        notes=clean_notes(api_tick["notes"]) if api_tick.get("notes") else None,
        stars=stars if isinstance(stars, int) and stars > -1 else None,
        grade=api_tick.get("userRating") or None,
    )
    return int(tick_id), int(route_id), tick


def create_route(api_route: Mapping[str, Any]) -> Tuple[RouteId, Route]:
    """Creates a Route (without ticks) from a get-routes record.

    Raises ValidationError if key information is missing.
    """

    route_id = api_route.get("id")
    if not route_id:
        raise ValidationError("Missing route ID")
    if not api_route.get("name"):
        raise ValidationError(f"Missing name for route {route_id}")
    location = api_route.get("location")
    if not location:
        raise ValidationError(f"Missing location for route {route_id}")

    route = Route(
        name=api_route["name"],
        type=get_route_type(api_route.get("type", "")),
        location=list(location),
        lat=float(api_route.get("latitude") or 0.0),
        long=float(api_route.get("longitude") or 0.0),
        grade=api_route.get("rating") or "",
        pitches=_positive_int(api_route.get("pitches")),
    )
    return int(route_id), route


def adjust_tick_for_route(tick: Tick, route: Route) -> Tick:
    """Caps the tick's pitch count to the route's.

    Some people record repeated laps of a single-pitch route by bumping the
    tick's pitch count, which would otherwise skew pitch-based stats.
    """

    if route.pitches is not None and tick.pitches > route.pitches:
        return dataclasses.replace(tick, pitches=route.pitches)
    return tick


__all__ = [
    "ValidationError",
    "adjust_tick_for_route",
    "clean_notes",
    "create_route",
    "create_tick",
    "get_route_type",
    "get_tick_style",
]
