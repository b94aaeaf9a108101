"""Documents stored for each user, plus the canonical tick ordering."""
from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime
from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Tuple

from . import config

RouteId = int
TickId = int
AreaId = str

# Dates are stored and used as breakdown keys in this compact form.
DATE_FORMAT = "%Y%m%d"


class TickStyle(IntEnum):
    """Combination of the ``style`` and ``leadStyle`` fields of an API tick."""

    UNKNOWN = 0
    SOLO = 1
    TOP_ROPE = 2
    FOLLOW = 3
    LEAD = 4
    LEAD_ONSIGHT = 5
    LEAD_FLASH = 6
    LEAD_REDPOINT = 7
    LEAD_PINKPOINT = 8
    LEAD_FELL_HUNG = 9
    # Boulder-specific styles.
    SEND = 10
    FLASH = 11
    ATTEMPT = 12

    @property
    def label(self) -> str:
        return TICK_STYLE_LABELS[self]


TICK_STYLE_LABELS: Dict[TickStyle, str] = {
    TickStyle.UNKNOWN: "Unknown",
    TickStyle.SOLO: "Solo",
    TickStyle.TOP_ROPE: "Top-rope",
    TickStyle.FOLLOW: "Follow",
    TickStyle.LEAD: "Lead",
    TickStyle.LEAD_ONSIGHT: "Lead-Onsight",
    TickStyle.LEAD_FLASH: "Lead-Flash",
    TickStyle.LEAD_REDPOINT: "Lead-Redpoint",
    TickStyle.LEAD_PINKPOINT: "Lead-Pinkpoint",
    TickStyle.LEAD_FELL_HUNG: "Lead-Fell/Hung",
    TickStyle.SEND: "Send",
    TickStyle.FLASH: "Flash",
    TickStyle.ATTEMPT: "Attempt",
}

CLEAN_TICK_STYLES = frozenset(
    {
        TickStyle.SOLO,
        TickStyle.LEAD_ONSIGHT,
        TickStyle.LEAD_FLASH,
        TickStyle.LEAD_REDPOINT,
        TickStyle.LEAD_PINKPOINT,
        TickStyle.SEND,
        TickStyle.FLASH,
    }
)


def is_clean_tick_style(style: TickStyle) -> bool:
    """True if ``style`` implies that the route was climbed without a fall."""

    return style in CLEAN_TICK_STYLES


class RouteType(IntEnum):
    """Single type chosen for a route from the API's comma-separated list."""

    OTHER = 0
    SPORT = 1
    TRAD = 2
    BOULDER = 3
    ICE = 4
    ALPINE = 5
    MIXED = 6
    SNOW = 7
    AID = 8
    TOP_ROPE = 9


@dataclass(frozen=True)
class Tick:
    """A single recorded ascent of a route."""

    date: date
    style: TickStyle
    pitches: int = 1
    notes: Optional[str] = None
    stars: Optional[int] = None
    grade: Optional[str] = None

    @property
    def date_key(self) -> str:
        return self.date.strftime(DATE_FORMAT)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "date": self.date_key,
            "style": int(self.style),
            "pitches": self.pitches,
        }
        if self.notes:
            data["notes"] = self.notes
        if self.stars is not None:
            data["stars"] = self.stars
        if self.grade:
            data["grade"] = self.grade
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Tick":
        return cls(
            date=parse_date_key(data["date"]),
            style=TickStyle(data.get("style", TickStyle.UNKNOWN)),
            pitches=int(data.get("pitches", 1)),
            notes=data.get("notes"),
            stars=data.get("stars"),
            grade=data.get("grade"),
        )


def parse_date_key(value: str) -> date:
    return datetime.strptime(value, DATE_FORMAT).date()


@dataclass
class Route:
    """A climbing route along with all of the user's ticks of it."""

    name: str
    type: RouteType
    location: List[str]
    lat: float
    long: float
    grade: str
    pitches: Optional[int] = None
    ticks: Dict[TickId, Tick] = field(default_factory=dict)
    deleted_ticks: Dict[TickId, Tick] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "name": self.name,
            "type": int(self.type),
            "location": list(self.location),
            "lat": self.lat,
            "long": self.long,
            "grade": self.grade,
            "ticks": {str(tick_id): tick.to_dict() for tick_id, tick in self.ticks.items()},
        }
        if self.pitches is not None:
            data["pitches"] = self.pitches
        if self.deleted_ticks:
            data["deleted_ticks"] = {
                str(tick_id): tick.to_dict() for tick_id, tick in self.deleted_ticks.items()
            }
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Route":
        return cls(
            name=data["name"],
            type=RouteType(data.get("type", RouteType.OTHER)),
            location=list(data.get("location", [])),
            lat=float(data.get("lat", 0.0)),
            long=float(data.get("long", 0.0)),
            grade=data.get("grade", ""),
            pitches=data.get("pitches"),
            ticks={int(k): Tick.from_dict(v) for k, v in data.get("ticks", {}).items()},
            deleted_ticks={
                int(k): Tick.from_dict(v) for k, v in data.get("deleted_ticks", {}).items()
            },
        )


@dataclass
class RouteSummary:
    name: str
    grade: str

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "grade": self.grade}


@dataclass
class Area:
    """Routes located directly within a single area (not in its subareas)."""

    routes: Dict[RouteId, RouteSummary] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {"routes": {str(route_id): s.to_dict() for route_id, s in self.routes.items()}}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Area":
        return cls(
            routes={
                int(k): RouteSummary(name=v["name"], grade=v["grade"])
                for k, v in data.get("routes", {}).items()
            }
        )


@dataclass
class AreaMap:
    """Recursive tree of areas keyed by location component.

    ``children`` is None when the area has no subareas, and ``area_id`` is None
    when the area doesn't directly contain routes.
    """

    children: Optional[Dict[str, "AreaMap"]] = None
    area_id: Optional[AreaId] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        if self.children is not None:
            data["children"] = {name: child.to_dict() for name, child in self.children.items()}
        if self.area_id is not None:
            data["area_id"] = self.area_id
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "AreaMap":
        children = data.get("children")
        return cls(
            children=None
            if children is None
            else {name: cls.from_dict(child) for name, child in children.items()},
            area_id=data.get("area_id"),
        )


# Breakdowns whose keys are integers; JSON turns them into strings.
INT_KEYED_BREAKDOWNS = frozenset(
    {
        "day_of_week_pitches",
        "day_of_week_ticks",
        "pitches_ticks",
        "route_type_ticks",
        "tick_style_ticks",
    }
)


@dataclass
class Counts:
    """Tick and pitch counts keyed by various values.

    Every value is positive; entries that drop to zero are removed.
    """

    version: int = config.COUNTS_VERSION
    date_first_ticks: Dict[str, int] = field(default_factory=dict)  # 'YYYYMMDD'
    date_pitches: Dict[str, int] = field(default_factory=dict)
    date_ticks: Dict[str, int] = field(default_factory=dict)
    day_of_week_pitches: Dict[int, int] = field(default_factory=dict)  # ISO 8601, 1 is Monday
    day_of_week_ticks: Dict[int, int] = field(default_factory=dict)
    grade_clean_ticks: Dict[str, int] = field(default_factory=dict)
    grade_ticks: Dict[str, int] = field(default_factory=dict)
    lat_long_ticks: Dict[str, int] = field(default_factory=dict)  # '39.9,-105.0'
    month_grade_ticks: Dict[str, int] = field(default_factory=dict)  # 'YYYYMM|5.10a'
    pitches_ticks: Dict[int, int] = field(default_factory=dict)
    region_ticks: Dict[str, int] = field(default_factory=dict)
    route_ticks: Dict[str, int] = field(default_factory=dict)  # '123|Route Name', top routes only
    route_type_ticks: Dict[int, int] = field(default_factory=dict)  # RouteType
    tick_style_ticks: Dict[int, int] = field(default_factory=dict)  # TickStyle

    @staticmethod
    def breakdown_names() -> List[str]:
        return [f.name for f in fields(Counts) if f.name != "version"]

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"version": self.version}
        for name in self.breakdown_names():
            data[name] = {str(k): v for k, v in getattr(self, name).items()}
        return data

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "Counts":
        # A doc written before versioning was introduced has no version field.
        counts = cls(version=data.get("version", 0))
        for name in cls.breakdown_names():
            convert = int if name in INT_KEYED_BREAKDOWNS else str
            setattr(counts, name, {convert(k): int(v) for k, v in data.get(name, {}).items()})
        return counts


@dataclass
class User:
    """Import bookkeeping stored in the user's top-level document."""

    max_tick_id: TickId = 0
    num_routes: int = 0
    num_imports: int = 0
    num_reimports: int = 0
    last_import_time: Optional[str] = None
    last_reimport_time: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "User":
        known = {f.name for f in fields(cls)}
        return cls(**{k: v for k, v in data.items() if k in known})


# Ranks used when ordering ticks; lower is better. Lead ticks share a rank and
# are further ordered by how they were led.
_STYLE_RANKS: Dict[TickStyle, int] = {
    TickStyle.SOLO: 1,
    TickStyle.FLASH: 2,
    TickStyle.SEND: 3,
    TickStyle.LEAD: 4,
    TickStyle.LEAD_ONSIGHT: 4,
    TickStyle.LEAD_FLASH: 4,
    TickStyle.LEAD_REDPOINT: 4,
    TickStyle.LEAD_PINKPOINT: 4,
    TickStyle.LEAD_FELL_HUNG: 4,
    TickStyle.FOLLOW: 5,
    TickStyle.TOP_ROPE: 6,
    TickStyle.ATTEMPT: 7,
}
_LEAD_STYLE_RANKS: Dict[TickStyle, int] = {
    TickStyle.LEAD_ONSIGHT: 1,
    TickStyle.LEAD_FLASH: 2,
    TickStyle.LEAD_REDPOINT: 3,
    TickStyle.LEAD_PINKPOINT: 4,
    TickStyle.LEAD_FELL_HUNG: 5,
    TickStyle.LEAD: 9,
}


def tick_sort_key(tick_id: TickId, tick: Tick) -> Tuple[int, int, int, date, TickId]:
    """Returns a key that sorts ticks from best to worst.

    More pitches come first, then cleaner styles, then earlier dates. The tick
    ID breaks any remaining ties.
    """

    return (
        -tick.pitches,
        _STYLE_RANKS.get(tick.style, 9),
        _LEAD_STYLE_RANKS.get(tick.style, 0),
        tick.date,
        tick_id,
    )


def compare_ticks(id_a: TickId, tick_a: Tick, id_b: TickId, tick_b: Tick) -> int:
    """Negative if tick A is better than tick B, positive if worse, 0 if same."""

    key_a = tick_sort_key(id_a, tick_a)
    key_b = tick_sort_key(id_b, tick_b)
    return (key_a > key_b) - (key_a < key_b)


__all__ = [
    "Area",
    "AreaId",
    "AreaMap",
    "Counts",
    "Route",
    "RouteId",
    "RouteSummary",
    "RouteType",
    "Tick",
    "TickId",
    "TickStyle",
    "User",
    "compare_ticks",
    "is_clean_tick_style",
    "parse_date_key",
    "tick_sort_key",
]
