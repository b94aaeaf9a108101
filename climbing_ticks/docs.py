"""Keys of the documents stored for a user."""
from __future__ import annotations

from .models import AreaId, RouteId


def user_key(user_id: str) -> str:
    if not user_id:
        raise ValueError("Missing user ID")
    return f"users/{user_id}"


def routes_path(user_id: str) -> str:
    return f"{user_key(user_id)}/routes"


def route_key(user_id: str, route_id: RouteId) -> str:
    return f"{routes_path(user_id)}/{route_id}"


def areas_path(user_id: str) -> str:
    return f"{user_key(user_id)}/areas"


def area_key(user_id: str, area_id: AreaId) -> str:
    return f"{areas_path(user_id)}/{area_id}"


# The area map lives alongside the counts rather than in the 'areas'
# collection so that it can't collide with an area named 'map'.
def area_map_key(user_id: str) -> str:
    return f"{user_key(user_id)}/stats/areaMap"


def counts_key(user_id: str) -> str:
    return f"{user_key(user_id)}/stats/counts"


def imports_path(user_id: str) -> str:
    return f"{user_key(user_id)}/imports"


def import_key(user_id: str, timestamp: str, kind: str, index: int) -> str:
    """Key of a raw import snapshot, e.g. 'users/abc/imports/20240102T030405000000.ticks.0'."""

    return f"{imports_path(user_id)}/{timestamp}.{kind}.{index}"
