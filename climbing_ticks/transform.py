"""Full recomputation of Counts and tabular exports of a user's ticks."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Callable, Dict, Mapping, Optional

import pandas as pd

from . import config
from .areas import get_region
from .models import Counts, Route, RouteId, TickStyle, is_clean_tick_style, tick_sort_key
from .stats import month_grade_key, new_counts, route_key, truncate_lat_long

logger = logging.getLogger(__name__)

TICK_COLUMNS = [
    "route_id",
    "route",
    "route_name",
    "tick_id",
    "date",
    "month_grade",
    "day_of_week",
    "pitches",
    "style",
    "style_name",
    "clean",
    "first_tick",
    "grade",
    "user_grade",
    "stars",
    "lat_long",
    "region",
    "route_type",
    "location",
    "notes",
]


def build_tick_frame(routes: Mapping[RouteId, Route]) -> pd.DataFrame:
    """Returns a DataFrame with one row per live tick in ``routes``."""

    rows = []
    for route_id, route in routes.items():
        if not route.ticks:
            continue
        first_id = min(route.ticks, key=lambda tick_id: tick_sort_key(tick_id, route.ticks[tick_id]))
        lat_long = truncate_lat_long(route.lat, route.long)
        region = get_region(route.location)
        for tick_id, tick in route.ticks.items():
            rows.append(
                {
                    "route_id": route_id,
                    "route": route_key(route_id, route),
                    "route_name": route.name,
                    "tick_id": tick_id,
                    "date": tick.date_key,
                    "month_grade": month_grade_key(tick, route.grade),
                    "day_of_week": tick.date.isoweekday(),
                    "pitches": tick.pitches,
                    "style": int(tick.style),
                    "style_name": TickStyle(tick.style).label,
                    "clean": is_clean_tick_style(tick.style),
                    "first_tick": tick_id == first_id,
                    "grade": route.grade,
                    "user_grade": tick.grade or "",
                    "stars": tick.stars,
                    "lat_long": lat_long,
                    "region": region,
                    "route_type": int(route.type),
                    "location": " > ".join(route.location),
                    "notes": tick.notes or "",
                }
            )
    return pd.DataFrame(rows, columns=TICK_COLUMNS)


def _to_dict(series: pd.Series, key_type: Callable = str) -> Dict:
    # Convert numpy scalars so the result compares equal to incremental counts.
    return {key_type(key): int(value) for key, value in series.items() if value > 0}


def aggregate_counts(routes: Mapping[RouteId, Route]) -> Counts:
    """Computes Counts from scratch for all of the ticks in ``routes``."""

    df = build_tick_frame(routes)
    counts = new_counts()
    if df.empty:
        logger.warning("No ticks found. Returning empty counts.")
        return counts

    counts.date_first_ticks = _to_dict(df.loc[df["first_tick"], "date"].value_counts())
    counts.date_pitches = _to_dict(df.groupby("date")["pitches"].sum())
    counts.date_ticks = _to_dict(df["date"].value_counts())
    counts.day_of_week_pitches = _to_dict(df.groupby("day_of_week")["pitches"].sum(), int)
    counts.day_of_week_ticks = _to_dict(df["day_of_week"].value_counts(), int)
    counts.grade_clean_ticks = _to_dict(df.loc[df["clean"], "grade"].value_counts())
    counts.grade_ticks = _to_dict(df["grade"].value_counts())
    counts.lat_long_ticks = _to_dict(df["lat_long"].value_counts())
    counts.month_grade_ticks = _to_dict(df["month_grade"].value_counts())
    counts.pitches_ticks = _to_dict(df["pitches"].value_counts(), int)
    counts.region_ticks = _to_dict(df["region"].value_counts())
    counts.route_type_ticks = _to_dict(df["route_type"].value_counts(), int)
    counts.tick_style_ticks = _to_dict(df["style"].value_counts(), int)

    route_counts = _to_dict(df["route"].value_counts())
    counts.route_ticks = dict(
        sorted(route_counts.items(), key=lambda item: item[1], reverse=True)[: config.NUM_TOP_ROUTES]
    )

    logger.info("Rebuilt counts from %s ticks across %s routes", len(df), df["route_id"].nunique())
    return counts


def export_ticks(
    routes: Mapping[RouteId, Route],
    output_path: Optional[Path | str] = None,
) -> Path:
    """Writes all ticks to a CSV file, newest first."""

    output_path = Path(output_path) if output_path else config.EXPORT_DATA_DIR / "ticks.csv"
    output_path.parent.mkdir(parents=True, exist_ok=True)

    df = build_tick_frame(routes)
    if not df.empty:
        df = df.sort_values(by=["date", "tick_id"], ascending=[False, False])
    df.to_csv(output_path, index=False)
    logger.info("Wrote %s ticks to %s", len(df), output_path)
    return output_path


__all__ = ["TICK_COLUMNS", "aggregate_counts", "build_tick_frame", "export_ticks"]
