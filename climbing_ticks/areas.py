"""Area identifiers, the area tree, and region derivation."""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Mapping, Optional, Sequence

from . import docs
from .models import Area, AreaId, AreaMap, Route, RouteId, RouteSummary
from .storage import DocumentStore, WriteBatch, require_fresh

logger = logging.getLogger(__name__)

# Forward slashes can't appear in document keys, pipes separate components,
# and percent signs are used for escaping.
_UNSAFE_CHARS_RE = re.compile(r"[/|%]")

# Placeholder for weird or missing regions.
UNKNOWN_REGION = "Unknown"

# Top-level area holding routes that aren't awaiting categorization.
IN_PROGRESS_AREA = "In Progress"

INTERNATIONAL_AREA = "International"

# Areas directly under 'International' that aren't split into countries.
FLAT_CONTINENTS = frozenset({"Antarctica", "Australia"})


def _escape_char(match: re.Match) -> str:
    return "%" + format(ord(match.group(0)), "x").zfill(2)


def make_area_id(location: Sequence[str]) -> AreaId:
    """Generates an AreaId from location components.

    The components are percent-escaped and joined with pipes, e.g.
    'Colorado|Boulder|Flatirons'. Names that aren't allowed as document IDs
    ('.', '..', and '__foo__') are escaped as well.
    """

    area_id = "|".join(_UNSAFE_CHARS_RE.sub(_escape_char, part) for part in location)
    if area_id == ".":
        return "%2e"
    if area_id == "..":
        return "%2e%2e"
    if len(area_id) >= 4 and area_id.startswith("__") and area_id.endswith("__"):
        return "%5f%5f" + area_id[2:-2] + "%5f%5f"
    return area_id


def add_area_to_area_map(area_id: AreaId, location: Sequence[str], area_map: AreaMap) -> None:
    """Adds the area identified by ``area_id`` to ``area_map`` in place.

    Intermediate nodes are created as needed. Existing children and area IDs
    are left alone.
    """

    node = area_map
    for name in location:
        if node.children is None:
            node.children = {}
        node = node.children.setdefault(name, AreaMap())
    node.area_id = area_id


def find_area_id(area_map: AreaMap, location: Sequence[str]) -> Optional[AreaId]:
    node: Optional[AreaMap] = area_map
    for name in location:
        if node is None or node.children is None:
            return None
        node = node.children.get(name)
    return node.area_id if node is not None else None


def get_region(location: Sequence[str]) -> str:
    """Returns a region (generally a U.S. state or a country) for ``location``.

    Every U.S. state is its own top-level area. Everything else lives under
    'International', which mostly contains continents that contain countries.
    """

    if not location or location[0] == IN_PROGRESS_AREA:
        return UNKNOWN_REGION
    if location[0] != INTERNATIONAL_AREA:
        return location[0]
    if len(location) < 2:
        return UNKNOWN_REGION
    if location[1] in FLAT_CONTINENTS:
        return location[1]
    return location[2] if len(location) >= 3 else location[1]


def save_routes_to_areas(
    store: DocumentStore,
    user_id: str,
    routes: Mapping[RouteId, Route],
    overwrite: bool,
    batch: WriteBatch,
) -> AreaMap:
    """Adds each route in ``routes`` to its area and queues the writes in ``batch``.

    Existing areas and the area map are loaded from ``store`` and updated
    unless ``overwrite`` is true, in which case they're created from scratch.
    Returns the updated area map.
    """

    area_map = AreaMap()
    if not routes:
        return area_map

    area_locations: Dict[AreaId, List[str]] = {}
    for route in routes.values():
        area_locations[make_area_id(route.location)] = route.location

    if not overwrite:
        snapshot = require_fresh(store.read(docs.area_map_key(user_id)), "area map")
        if snapshot.exists:
            area_map = AreaMap.from_dict(snapshot.data)

    areas: Dict[AreaId, Area] = {}
    for area_id, location in area_locations.items():
        area: Optional[Area] = None
        if not overwrite:
            snapshot = require_fresh(store.read(docs.area_key(user_id, area_id)), "areas")
            if snapshot.exists:
                area = Area.from_dict(snapshot.data)
        if area is None:
            logger.debug("Adding new area %s", area_id)
            area = Area()
        # Also called for known areas in case the map is missing them.
        add_area_to_area_map(area_id, location, area_map)
        areas[area_id] = area

    for route_id, route in routes.items():
        areas[make_area_id(route.location)].routes[route_id] = RouteSummary(name=route.name, grade=route.grade)

    batch.set(docs.area_map_key(user_id), area_map.to_dict())
    for area_id, area in areas.items():
        batch.set(docs.area_key(user_id, area_id), area.to_dict())
    logger.info("Updated %s areas", len(areas))
    return area_map


__all__ = [
    "UNKNOWN_REGION",
    "add_area_to_area_map",
    "find_area_id",
    "get_region",
    "make_area_id",
    "save_routes_to_areas",
]
