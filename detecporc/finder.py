"""
Client-side controller for the "find a point near me" view.

All view state (loaded points, user position, filters, status line) lives on a
`Finder` instance; rendering code receives the instance instead of reading
module globals. Network and geolocation failures never raise out of here, they
become a status line the user can act on.
"""
import logging
from typing import List, Optional

import requests

from detecporc.geo import GeoPoint
from detecporc.locator import GeolocationError, Locator
from detecporc.messages import get_message
from detecporc.ranking import Filters, annotate, nearest, rank
from detecporc.schemas import Point, RankedPoint

logger = logging.getLogger(__name__)


class Finder:
    def __init__(
        self,
        base_url: str,
        session: Optional[requests.Session] = None,
        timeout: float = 10.0,
        locale: str = "fr",
    ):
        self.base_url = base_url.rstrip("/")
        self.session = session or requests.Session()
        self.timeout = timeout
        self.locale = locale
        self.points: List[Point] = []
        self.position: Optional[GeoPoint] = None
        self.filters = Filters()
        self.status = get_message("no_position", locale)
        self.loaded = False

    def load(self) -> bool:
        """Fetch the published points. Returns False (and sets status) on failure."""
        self.status = get_message("loading", self.locale)
        try:
            response = self.session.get(f"{self.base_url}/api/points", timeout=self.timeout)
            response.raise_for_status()
            payload = response.json()
            if not isinstance(payload, dict):
                raise ValueError(f"unexpected payload: {type(payload).__name__}")
            if not payload.get("ok"):
                raise ValueError(payload.get("error") or "unknown error")
            self.points = [Point.model_validate(p) for p in payload.get("points") or []]
        except (requests.RequestException, ValueError) as exc:
            logger.warning("Could not load points from %s: %s", self.base_url, exc)
            self.status = get_message("load_failed", self.locale)
            return False
        self.loaded = True
        self.status = self._position_status()
        return True

    async def locate(self, locator: Locator) -> bool:
        self.status = get_message("locating", self.locale)
        try:
            self.position = await locator.locate()
        except GeolocationError as exc:
            logger.info("Geolocation failed: %s", exc)
            self.status = get_message(exc.message_key, self.locale)
            return False
        self.status = self._position_status()
        return True

    def set_position(self, lat: float, lng: float) -> None:
        self.position = GeoPoint(lat, lng)
        self.status = self._position_status()

    def set_filters(self, query: str = "", max_distance_km: Optional[float] = None, limit: Optional[int] = None) -> None:
        self.filters = Filters(query=query, max_distance_km=max_distance_km, limit=limit)

    def results(self) -> List[RankedPoint]:
        return rank(self.points, self.position, self.filters)

    def nearest(self) -> Optional[RankedPoint]:
        """Closest point regardless of filters, None without a position."""
        if self.position is None:
            return None
        return nearest(annotate(self.points, self.position))

    def _position_status(self) -> str:
        return get_message("located" if self.position else "no_position", self.locale)
