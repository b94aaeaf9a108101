"""Incremental maintenance of the per-user Counts document."""
from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Hashable, Mapping, Optional

from . import config
from .areas import get_region
from .models import DATE_FORMAT, Counts, Route, RouteId, Tick, TickId, is_clean_tick_style, tick_sort_key

logger = logging.getLogger(__name__)

RouteTicks = Mapping[RouteId, Mapping[TickId, Tick]]


def new_counts() -> Counts:
    return Counts(version=config.COUNTS_VERSION)


def is_stale(counts: Optional[Mapping[str, Any]]) -> bool:
    """True if a stored counts doc must be rebuilt rather than updated."""

    if counts is None:
        return True
    version = counts.get("version")
    return version is None or version < config.COUNTS_VERSION


def truncate_lat_long(lat: float, long: float) -> str:
    """Returns a string like '39.9,-105.0' for bucketing nearby routes together."""

    precision = config.LAT_LONG_PRECISION
    return f"{lat:.{precision}f},{long:.{precision}f}"


def route_key(route_id: RouteId, route: Route) -> str:
    return f"{route_id}|{route.name}"


def month_grade_key(tick: Tick, grade: str) -> str:
    return f"{tick.date:%Y%m}|{grade}"


def find_first_tick_date(ticks: Mapping[TickId, Tick]) -> Optional[date]:
    """Returns the date of the best tick in ``ticks``, or None if there are none."""

    if not ticks:
        return None
    first_id = min(ticks, key=lambda tick_id: tick_sort_key(tick_id, ticks[tick_id]))
    return ticks[first_id].date


def _add(counter: Dict[Any, int], key: Hashable, amount: int) -> None:
    # Entries that drop to zero (or below) are removed rather than stored.
    value = counter.get(key, 0) + amount
    if value > 0:
        counter[key] = value
    else:
        counter.pop(key, None)


def add_ticks_to_counts(
    counts: Counts,
    route_ticks: RouteTicks,
    routes: Mapping[RouteId, Route],
    remove: bool = False,
) -> Counts:
    """Updates ``counts`` in place to include the ticks in ``route_ticks``.

    ``routes`` must already reflect the change: added ticks are present in
    each route's ``ticks``, removed ones are absent. When ``remove`` is true the
    ticks are subtracted instead of added. The caller is responsible for not
    applying the same ticks twice.
    """

    for route_id, ticks in route_ticks.items():
        route = routes.get(route_id)
        if route is None:
            logger.warning("Skipping %s tick(s) for unknown route %s", len(ticks), route_id)
            continue

        old_ticks: Dict[TickId, Tick] = dict(route.ticks)
        if remove:
            old_ticks.update(ticks)
        else:
            for tick_id in ticks:
                old_ticks.pop(tick_id, None)

        # The per-route count is cheap to compute, so overwrite it.
        counts.route_ticks[route_key(route_id, route)] = len(route.ticks)

        old_first_date = find_first_tick_date(old_ticks)
        new_first_date = find_first_tick_date(route.ticks)
        if new_first_date != old_first_date:
            if new_first_date is not None:
                _add(counts.date_first_ticks, new_first_date.strftime(DATE_FORMAT), 1)
            if old_first_date is not None:
                _add(counts.date_first_ticks, old_first_date.strftime(DATE_FORMAT), -1)

        lat_long = truncate_lat_long(route.lat, route.long)
        region = get_region(route.location)
        tick_amount = -1 if remove else 1
        for tick in ticks.values():
            pitch_amount = tick_amount * tick.pitches
            day_of_week = tick.date.isoweekday()

            _add(counts.date_pitches, tick.date_key, pitch_amount)
            _add(counts.date_ticks, tick.date_key, tick_amount)
            _add(counts.day_of_week_pitches, day_of_week, pitch_amount)
            _add(counts.day_of_week_ticks, day_of_week, tick_amount)
            if is_clean_tick_style(tick.style):
                _add(counts.grade_clean_ticks, route.grade, tick_amount)
            _add(counts.grade_ticks, route.grade, tick_amount)
            _add(counts.lat_long_ticks, lat_long, tick_amount)
            _add(counts.month_grade_ticks, month_grade_key(tick, route.grade), tick_amount)
            _add(counts.pitches_ticks, tick.pitches, tick_amount)
            _add(counts.region_ticks, region, tick_amount)
            _add(counts.route_type_ticks, int(route.type), tick_amount)
            _add(counts.tick_style_ticks, int(tick.style), tick_amount)

    # Only the top routes are kept. Every route with changed ticks was given an
    # up-to-date count above, so the ranking stays right for additions. After
    # removals a route that should be in the top list may be missing since
    # counts for routes outside of it aren't retained.
    counts.route_ticks = dict(
        sorted(
            ((key, value) for key, value in counts.route_ticks.items() if value > 0),
            key=lambda item: item[1],
            reverse=True,
        )[: config.NUM_TOP_ROUTES]
    )
    return counts


__all__ = [
    "add_ticks_to_counts",
    "find_first_tick_date",
    "is_stale",
    "new_counts",
    "route_key",
    "truncate_lat_long",
]
