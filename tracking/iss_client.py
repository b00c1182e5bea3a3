"""
ISS position client (open-notify, retry + payload validation).

The engine never calls this directly: FetchChannel runs fetch() on a worker
thread and hands the outcome (GeoFix or failure) to TrackedObjectState.

Expected payload:
    {"message": "success",
     "timestamp": 1700000000,
     "iss_position": {"latitude": "12.3456", "longitude": "-45.6789"}}
"""

from __future__ import annotations

import logging
import math
import time
from typing import Callable, Optional

import requests

from core.errors import ExternalDataUnavailable
from core.settings import (
    ISS_URL, ISS_ORBIT_ALTITUDE_KM, FETCH_TIMEOUT_S, FETCH_RETRIES, FETCH_BACKOFF_S,
)
from .tracked_object import GeoFix

logger = logging.getLogger(__name__)


# -----------------------
# Payload parser
# -----------------------
def _coordinate(raw, name: str, limit: float) -> float:
    try:
        value = float(raw)
    except (TypeError, ValueError):
        raise ExternalDataUnavailable(f"ISS payload: {name} not numeric ({raw!r})") from None
    if not math.isfinite(value) or not -limit <= value <= limit:
        raise ExternalDataUnavailable(f"ISS payload: {name} out of range ({value})")
    return value


def parse_iss_payload(data) -> GeoFix:
    """
    Validate an open-notify response and turn it into a GeoFix.
    Raises ExternalDataUnavailable on anything unexpected.
    """
    if not isinstance(data, dict):
        raise ExternalDataUnavailable("ISS payload is not a JSON object")
    if data.get("message") != "success":
        raise ExternalDataUnavailable(f"ISS API reported {data.get('message')!r}")

    position = data.get("iss_position")
    if not isinstance(position, dict):
        raise ExternalDataUnavailable("ISS payload without 'iss_position'")
    lat = _coordinate(position.get("latitude"), "latitude", 90.0)
    lon = _coordinate(position.get("longitude"), "longitude", 180.0)

    ts = data.get("timestamp")
    if isinstance(ts, bool) or not isinstance(ts, (int, float)) or not math.isfinite(ts):
        raise ExternalDataUnavailable(f"ISS payload: invalid timestamp {ts!r}")

    return GeoFix(latitude=lat, longitude=lon,
                  altitude_km=ISS_ORBIT_ALTITUDE_KM, timestamp=float(ts))


# -----------------------
# HTTP client
# -----------------------
class IssClient:
    """Blocking fetch of the current ISS position with bounded retries."""

    def __init__(self,
                 url: str = ISS_URL,
                 timeout: float = FETCH_TIMEOUT_S,
                 retries: int = FETCH_RETRIES,
                 backoff: float = FETCH_BACKOFF_S,
                 session: Optional[requests.Session] = None,
                 sleep: Callable[[float], None] = time.sleep):
        self.url = url
        self.timeout = timeout
        self.retries = max(0, int(retries))
        self.backoff = backoff
        self._sleep = sleep
        self.session = session or requests.Session()
        self.session.headers.update({
            "User-Agent": "AstroOrrery/1.0",
            "Accept": "application/json",
        })

    def fetch(self) -> GeoFix:
        last_exc: Optional[Exception] = None
        for attempt in range(1, self.retries + 2):
            try:
                resp = self.session.get(self.url, timeout=self.timeout)
                resp.raise_for_status()
                return parse_iss_payload(resp.json())
            except requests.RequestException as e:
                last_exc = e
            except ValueError as e:
                # body non JSON
                last_exc = e
            except ExternalDataUnavailable as e:
                last_exc = e

            logger.debug("ISS fetch attempt %d failed: %s", attempt, last_exc)
            if attempt <= self.retries:
                self._sleep(self.backoff * attempt)

        raise ExternalDataUnavailable(
            f"ISS position unavailable after {self.retries + 1} attempts: {last_exc}"
        ) from last_exc

    def close(self) -> None:
        self.session.close()
