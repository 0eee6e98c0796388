"""
Position acquisition for clients.

A position source answers one awaitable call with a coordinate pair or a typed
failure. `Locator` adds the caller's timeout and a maximum cache age on top.
"""
import asyncio
import time
from typing import Callable, Optional, Protocol

from detecporc.geo import GeoPoint


class GeolocationError(Exception):
    message_key = "geo_error"


class PermissionDenied(GeolocationError):
    message_key = "geo_denied"


class PositionUnavailable(GeolocationError):
    message_key = "geo_unavailable"


class PositionTimeout(GeolocationError):
    message_key = "geo_error"


class PositionSource(Protocol):
    async def current_position(self) -> GeoPoint:
        ...


class StaticPositionSource:
    """Coordinates typed in by the user."""

    def __init__(self, lat: Optional[float] = None, lng: Optional[float] = None):
        self.position = GeoPoint(lat, lng) if lat is not None and lng is not None else None

    async def current_position(self) -> GeoPoint:
        if self.position is None:
            raise PositionUnavailable("no coordinates given")
        return self.position


class Locator:
    def __init__(
        self,
        source: PositionSource,
        timeout: float = 10.0,
        maximum_age: float = 30.0,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.source = source
        self.timeout = timeout
        self.maximum_age = maximum_age
        self.clock = clock
        self._cached: Optional[GeoPoint] = None
        self._cached_at = 0.0

    async def locate(self) -> GeoPoint:
        if self._cached is not None and self.clock() - self._cached_at <= self.maximum_age:
            return self._cached
        try:
            position = await asyncio.wait_for(self.source.current_position(), self.timeout)
        except asyncio.TimeoutError as exc:
            raise PositionTimeout(f"no position within {self.timeout}s") from exc
        self._cached = position
        self._cached_at = self.clock()
        return position
