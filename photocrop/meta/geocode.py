"""Best-effort reverse geocoding of GPS coordinates.

Lookups never raise: any geocoder or network failure is reported as "no
address". Background requests are superseded by newer ones, so a slow reply
for an old coordinate never replaces the address of the current one.
"""
from __future__ import annotations

import logging
import threading
from concurrent.futures import Future, ThreadPoolExecutor
from typing import Any, Callable

from geopy.exc import GeopyError
from geopy.geocoders import Nominatim

LOGGER = logging.getLogger(__name__)

DEFAULT_TIMEOUT_S = 5.0
DEFAULT_USER_AGENT = "photocrop"


def build_geocoder(user_agent: str = DEFAULT_USER_AGENT, timeout: float = DEFAULT_TIMEOUT_S) -> Nominatim:
    return Nominatim(user_agent=user_agent, timeout=timeout)


def resolve_address(lat: float, lon: float, geocoder: Any | None = None, timeout: float = DEFAULT_TIMEOUT_S) -> str | None:
    geocoder = geocoder or build_geocoder(timeout=timeout)
    try:
        location = geocoder.reverse(f"{lat}, {lon}", timeout=timeout)
    except (GeopyError, OSError, ValueError) as exc:
        LOGGER.info("reverse geocoding failed for %.5f, %.5f: %s", lat, lon, exc)
        return None
    if location is None:
        return None
    address = getattr(location, "address", None)
    text = str(address).strip() if address else ""
    return text or None


class AddressResolver:
    def __init__(self, geocoder: Any | None = None, timeout: float = DEFAULT_TIMEOUT_S) -> None:
        self._geocoder = geocoder
        self._timeout = timeout
        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="geocode")
        self._lock = threading.Lock()
        self._generation = 0
        self._latest_address: str | None = None

    @property
    def latest_address(self) -> str | None:
        with self._lock:
            return self._latest_address

    def _geocoder_instance(self) -> Any:
        if self._geocoder is None:
            self._geocoder = build_geocoder(timeout=self._timeout)
        return self._geocoder

    def request(
        self,
        lat: float,
        lon: float,
        callback: Callable[[str | None], None] | None = None,
    ) -> Future:
        with self._lock:
            self._generation += 1
            generation = self._generation
            self._latest_address = None

        def _work() -> str | None:
            address = resolve_address(lat, lon, geocoder=self._geocoder_instance(), timeout=self._timeout)
            with self._lock:
                if generation != self._generation:
                    LOGGER.debug("discarding superseded address for %.5f, %.5f", lat, lon)
                    return address
                self._latest_address = address
            if callback is not None:
                callback(address)
            return address

        return self._executor.submit(_work)

    def cancel_pending(self) -> None:
        with self._lock:
            self._generation += 1
            self._latest_address = None

    def shutdown(self) -> None:
        self.cancel_pending()
        self._executor.shutdown(wait=False, cancel_futures=True)
