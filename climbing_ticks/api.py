"""Client for the Mountain Project Data API (https://www.mountainproject.com/data)."""
from __future__ import annotations

import logging
import time
from typing import Any, Dict, Iterator, List, Optional, Sequence

import requests

from . import config

logger = logging.getLogger(__name__)


class ApiError(RuntimeError):
    """Raised when the Data API reports or causes a failure."""


class MountainProjectClient:
    """Fetches a user's ticks and the routes they refer to."""

    def __init__(
        self,
        *,
        session: Optional[requests.Session] = None,
        sleep_seconds: float = config.DEFAULT_SLEEP_SECONDS,
    ) -> None:
        self.session = session or requests.Session()
        self.sleep_seconds = sleep_seconds

    def _get(self, url: str, params: Dict[str, Any]) -> Dict[str, Any]:
        try:
            response = self.session.get(url, params=params, timeout=config.HTTP_TIMEOUT)
            response.raise_for_status()
            data = response.json()
        except requests.ConnectionError as err:
            # The API doesn't return a useful error for bad credentials; the
            # request just fails at the network level.
            raise ApiError("Network error or bad credentials") from err
        except ValueError as err:
            # requests' JSONDecodeError is also a RequestException.
            raise ApiError(f"Invalid JSON from {url}") from err
        except requests.RequestException as err:
            raise ApiError(f"Request to {url} failed: {err}") from err

        if not isinstance(data, dict):
            raise ApiError(f"Unexpected payload from {url}")
        if not data.get("success"):
            raise ApiError("API reported failure")
        return data

    def fetch_ticks_page(self, email: str, key: str, start_pos: int) -> List[dict]:
        data = self._get(
            config.GET_TICKS_URL,
            {"email": email, "key": key, "startPos": start_pos},
        )
        ticks = data.get("ticks")
        if not isinstance(ticks, list):
            raise ApiError("Unexpected ticks payload")
        return ticks

    def iter_tick_pages(self, email: str, key: str) -> Iterator[List[dict]]:
        start_pos = 0
        while True:
            page = self.fetch_ticks_page(email, key, start_pos)
            if not page:
                break
            yield page
            start_pos += len(page)
            if self.sleep_seconds:
                time.sleep(self.sleep_seconds)

    def fetch_ticks(self, email: str, key: str, min_tick_id: int = 0) -> List[dict]:
        """Returns the user's ticks with IDs greater than ``min_tick_id``.

        The API returns ticks in decreasing ID order, so fetching stops as soon
        as an already-imported tick is seen.
        """

        ticks: List[dict] = []
        for page_num, page in enumerate(self.iter_tick_pages(email, key), start=1):
            logger.info("Fetched %s ticks (page %s)", len(page), page_num)
            new_ticks = []
            reached_old = False
            for tick in page:
                # Records without a numeric ID are kept so that validation rejects them.
                tick_id = tick.get("tickId")
                if isinstance(tick_id, int) and tick_id <= min_tick_id:
                    reached_old = True
                    break
                new_ticks.append(tick)
            ticks = ticks + new_ticks
            if reached_old:
                logger.debug("Reached previously-imported tick; stopping at %s ticks", len(ticks))
                break
        return ticks

    def fetch_routes(self, route_ids: Sequence[int], key: str) -> List[dict]:
        """Returns information about the supplied routes.

        Requests are split into batches of at most MAX_ROUTES_PER_REQUEST IDs.
        """

        routes: List[dict] = []
        batch_size = config.MAX_ROUTES_PER_REQUEST
        for start in range(0, len(route_ids), batch_size):
            batch = route_ids[start : start + batch_size]
            data = self._get(
                config.GET_ROUTES_URL,
                {"key": key, "routeIds": ",".join(str(route_id) for route_id in batch)},
            )
            page = data.get("routes")
            if not isinstance(page, list):
                raise ApiError("Unexpected routes payload")
            logger.info("Fetched %s routes", len(page))
            routes = routes + page
            if self.sleep_seconds and start + batch_size < len(route_ids):
                time.sleep(self.sleep_seconds)
        return routes


__all__ = ["ApiError", "MountainProjectClient"]
