"""Display-side helpers: unit scaling and trails."""

from .scale import ScaleConverter
from .trail import TrailBuffer

__all__ = ["ScaleConverter", "TrailBuffer"]
