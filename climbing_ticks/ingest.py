"""Imports ticks from the Mountain Project Data API into the document store."""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, List, Optional

from . import config, docs
from .api import ApiError, MountainProjectClient
from .areas import save_routes_to_areas
from .convert import adjust_tick_for_route, create_route, create_tick
from .models import Counts, Route, RouteId, Tick, TickId, User
from .stats import add_ticks_to_counts, is_stale, new_counts
from .storage import DocumentStore, WriteBatch, require_fresh
from .transform import aggregate_counts

logger = logging.getLogger(__name__)


@dataclass
class ImportStats:
    """Capture summary statistics for an import run."""

    ticks_fetched: int = 0
    routes_fetched: int = 0
    routes_updated: int = 0
    documents_written: int = 0
    counts_rebuilt: bool = False
    start_time: datetime = field(default_factory=lambda: datetime.now(timezone.utc))

    def as_dict(self) -> Dict[str, int]:
        return {
            "ticks_fetched": self.ticks_fetched,
            "routes_fetched": self.routes_fetched,
            "routes_updated": self.routes_updated,
            "documents_written": self.documents_written,
            "counts_rebuilt": int(self.counts_rebuilt),
            "duration_seconds": int((datetime.now(timezone.utc) - self.start_time).total_seconds()),
        }


def _chunks(items: List[dict], size: int) -> List[List[dict]]:
    return [items[i : i + size] for i in range(0, len(items), size)]


class TickImporter:
    """Keeps one user's routes, areas, and counts in sync with the Data API."""

    def __init__(
        self,
        store: DocumentStore,
        user_id: str,
        *,
        client: Optional[MountainProjectClient] = None,
    ) -> None:
        self.store = store
        self.user_id = user_id
        self.client = client or MountainProjectClient()

    def load_user(self) -> User:
        snapshot = require_fresh(self.store.read(docs.user_key(self.user_id)), "user")
        return User.from_dict(snapshot.data) if snapshot.exists else User()

    def load_routes(self, route_ids: List[RouteId]) -> Dict[RouteId, Route]:
        """Loads the stored routes among ``route_ids``; missing ones are omitted."""

        routes: Dict[RouteId, Route] = {}
        for route_id in route_ids:
            snapshot = require_fresh(self.store.read(docs.route_key(self.user_id, route_id)), "routes")
            if snapshot.exists:
                routes[route_id] = Route.from_dict(snapshot.data)
        return routes

    def load_all_routes(self) -> Dict[RouteId, Route]:
        """Loads every stored route. This is expensive and should be used sparingly."""

        routes: Dict[RouteId, Route] = {}
        for snapshot in self.store.list_collection(docs.routes_path(self.user_id)):
            require_fresh(snapshot, "routes")
            routes[int(snapshot.id)] = Route.from_dict(snapshot.data)
        return routes

    def _load_counts_for_update(self) -> Optional[Counts]:
        """Returns the stored counts, or None if they need to be rebuilt."""

        snapshot = require_fresh(self.store.read(docs.counts_key(self.user_id)), "stats")
        if is_stale(snapshot.data):
            logger.info("Stored counts are missing or outdated; rebuilding")
            return None
        return Counts.from_dict(snapshot.data)

    def _update_counts(
        self,
        route_ticks: Dict[RouteId, Dict[TickId, Tick]],
        routes: Dict[RouteId, Route],
        overwrite: bool,
        batch: WriteBatch,
        remove: bool = False,
    ) -> bool:
        """Queues an updated counts doc in ``batch``. Returns true if it was rebuilt."""

        counts = None if overwrite else self._load_counts_for_update()
        if counts is None:
            all_routes = {} if overwrite else self.load_all_routes()
            all_routes.update(routes)
            counts = aggregate_counts(all_routes)
            rebuilt = True
        else:
            add_ticks_to_counts(counts, route_ticks, routes, remove=remove)
            rebuilt = False
        batch.set(docs.counts_key(self.user_id), counts.to_dict())
        return rebuilt

    def _save_imported_items(self, batch: WriteBatch, timestamp: str, kind: str, items: List[dict]) -> None:
        # Raw API responses are kept so exports can return exactly what was imported.
        for index, chunk in enumerate(_chunks(items, config.MAX_IMPORTED_ITEMS_PER_DOC)):
            batch.set(docs.import_key(self.user_id, timestamp, kind, index), {kind: chunk})

    def _fetch_routes(self, route_ids: List[RouteId], key: str) -> List[dict]:
        api_routes = self.client.fetch_routes(route_ids, key) if route_ids else []
        returned = {api_route.get("id") for api_route in api_routes}
        missing = [route_id for route_id in route_ids if route_id not in returned]
        if missing:
            raise ApiError(f"Didn't get route(s) {', '.join(map(str, missing))}")
        return api_routes

    def _clear_collection(self, path: str, batch: WriteBatch) -> Dict[str, dict]:
        cleared = {}
        for snapshot in self.store.list_collection(path):
            require_fresh(snapshot, path.rsplit("/", 1)[-1])
            batch.delete(snapshot.key)
            cleared[snapshot.id] = snapshot.data
        return cleared

    def import_ticks(self, email: str, key: str, *, reimport: bool = False) -> ImportStats:
        """Fetches new ticks (or all ticks if ``reimport``) and saves them.

        Every document write is committed in a single batch at the end, so a
        failure partway through leaves the stored data untouched.
        """

        stats = ImportStats()
        user = self.load_user()
        min_tick_id = 0 if reimport else user.max_tick_id
        batch = WriteBatch(self.store)

        # A reimport replaces all routes and areas, but ticks that were deleted
        # earlier stay deleted.
        deleted_ticks: Dict[RouteId, Dict[TickId, Tick]] = {}
        old_routes: Dict[RouteId, Route] = {}
        if reimport:
            for route_id, data in self._clear_collection(docs.routes_path(self.user_id), batch).items():
                old_route = Route.from_dict(data)
                if old_route.deleted_ticks:
                    deleted_ticks[int(route_id)] = old_route.deleted_ticks
                    old_routes[int(route_id)] = old_route
            self._clear_collection(docs.areas_path(self.user_id), batch)
            batch.delete(docs.area_map_key(self.user_id))

        api_ticks = self.client.fetch_ticks(email, key, min_tick_id=min_tick_id)
        stats.ticks_fetched = len(api_ticks)
        logger.info("Got %s new tick(s) after tick %s", len(api_ticks), min_tick_id)

        # Every tick is validated before anything is written.
        route_ticks: Dict[RouteId, Dict[TickId, Tick]] = {}
        max_tick_id = min_tick_id
        for api_tick in api_ticks:
            tick_id, route_id, tick = create_tick(api_tick)
            max_tick_id = max(max_tick_id, tick_id)
            if tick_id in deleted_ticks.get(route_id, {}):
                continue
            route_ticks.setdefault(route_id, {})[tick_id] = tick

        route_ids = sorted(route_ticks)
        routes = {} if reimport else self.load_routes(route_ids)
        new_route_ids = [route_id for route_id in route_ids if route_id not in routes]
        # Stored routes whose ticks were all deleted count as new once ticked again.
        num_new_routes = len(new_route_ids) + sum(1 for route in routes.values() if not route.ticks)
        api_routes = self._fetch_routes(new_route_ids, key)
        stats.routes_fetched = len(api_routes)
        for api_route in api_routes:
            route_id, route = create_route(api_route)
            if route_id not in route_ticks:
                continue
            route.deleted_ticks = deleted_ticks.get(route_id, {})
            routes[route_id] = route

        for route_id, ticks in route_ticks.items():
            route = routes[route_id]
            for tick_id, tick in ticks.items():
                tick = adjust_tick_for_route(tick, route)
                ticks[tick_id] = tick
                route.ticks[tick_id] = tick
            batch.set(docs.route_key(self.user_id, route_id), route.to_dict())
        stats.routes_updated = len(routes)

        # Routes with only deleted ticks are kept out of areas and counts, but
        # their docs are needed to remember the deletions.
        for route_id, old_route in old_routes.items():
            if route_id not in routes:
                old_route.ticks = {}
                batch.set(docs.route_key(self.user_id, route_id), old_route.to_dict())

        now = datetime.now(timezone.utc)
        if routes or reimport:
            save_routes_to_areas(self.store, self.user_id, routes, reimport, batch)
            stats.counts_rebuilt = self._update_counts(route_ticks, routes, reimport, batch)

        timestamp = now.strftime("%Y%m%dT%H%M%S%f")
        self._save_imported_items(batch, timestamp, "ticks", api_ticks)
        self._save_imported_items(batch, timestamp, "routes", api_routes)

        user.max_tick_id = max_tick_id
        if reimport:
            user.num_routes = len(routes)
            user.num_reimports += 1
            user.last_reimport_time = now.isoformat()
        else:
            user.num_routes += num_new_routes
            user.num_imports += 1
            user.last_import_time = now.isoformat()
        batch.set(docs.user_key(self.user_id), user.to_dict(), merge=True)

        stats.documents_written = batch.commit()
        logger.info("Import completed: %s", stats.as_dict())
        return stats

    def delete_tick(self, route_id: RouteId, tick_id: TickId) -> None:
        """Moves a tick into its route's deleted ticks and updates the counts."""

        snapshot = require_fresh(self.store.read(docs.route_key(self.user_id, route_id)), "route")
        if not snapshot.exists:
            raise KeyError(f"Can't find route {route_id}")
        route = Route.from_dict(snapshot.data)
        tick = route.ticks.pop(tick_id, None)
        if tick is None:
            raise KeyError(f"Can't find tick {tick_id} in route {route_id}")
        route.deleted_ticks[tick_id] = tick

        batch = WriteBatch(self.store)
        batch.set(docs.route_key(self.user_id, route_id), route.to_dict())
        self._update_counts({route_id: {tick_id: tick}}, {route_id: route}, False, batch, remove=True)
        batch.commit()
        logger.info("Deleted tick %s from route %s", tick_id, route_id)

    def load_counts(self, *, rebuild_if_stale: bool = True) -> Counts:
        """Returns the user's counts, rebuilding and saving them if outdated."""

        snapshot = self.store.read(docs.counts_key(self.user_id))
        if not is_stale(snapshot.data):
            return Counts.from_dict(snapshot.data)
        if not rebuild_if_stale:
            return new_counts()
        return self.rebuild_counts()

    def rebuild_counts(self) -> Counts:
        counts = aggregate_counts(self.load_all_routes())
        batch = WriteBatch(self.store)
        batch.set(docs.counts_key(self.user_id), counts.to_dict())
        batch.commit()
        return counts

    def load_imported_items(self, kind: str) -> List[dict]:
        """Returns all raw ``kind`` ('ticks' or 'routes') items from past imports, oldest first."""

        snapshots = self.store.list_collection(docs.imports_path(self.user_id))

        def sort_key(snapshot):
            timestamp, _, index = snapshot.id.split(".")
            return timestamp, int(index)

        items: List[dict] = []
        for snapshot in sorted((s for s in snapshots if s.id.split(".")[1] == kind), key=sort_key):
            items.extend(snapshot.data.get(kind, []))
        return items


__all__ = ["ImportStats", "TickImporter"]
