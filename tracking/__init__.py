"""Live satellite tracking: state machine, network client, fetch channel."""

from .tracked_object import (
    TrackedObjectState,
    TrackingMode,
    GeoFix,
    Advisory,
    simulated_fix,
)
from .iss_client import IssClient, parse_iss_payload
from .fetch_channel import FetchChannel, FetchResult

__all__ = [
    "TrackedObjectState",
    "TrackingMode",
    "GeoFix",
    "Advisory",
    "simulated_fix",
    "IssClient",
    "parse_iss_payload",
    "FetchChannel",
    "FetchResult",
]
