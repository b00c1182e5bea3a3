"""
Error taxonomy for the state engine.

    EngineError
      ├── InvalidArgument          bad caller input (time scale, negative dt)
      ├── InvalidConfiguration     malformed orbital elements / scale factors
      └── ExternalDataUnavailable  live-tracking fetch failed (never fatal)
"""

from __future__ import annotations


class EngineError(Exception):
    """Base class for all engine errors."""


class InvalidArgument(EngineError, ValueError):
    """Rejected synchronously; the caller must not apply the change."""


class InvalidConfiguration(EngineError, ValueError):
    """Static configuration that cannot be used (offending body is excluded)."""

    def __init__(self, message: str, body_key: str = ""):
        super().__init__(message)
        self.body_key = body_key


class ExternalDataUnavailable(EngineError, RuntimeError):
    """Network fetch failed, timed out or returned unusable data."""
