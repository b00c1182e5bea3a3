"""Engine composition: per-frame state for renderer and UI."""

from .context import EngineContext, BodyState, SatelliteState, FrameSnapshot

__all__ = ["EngineContext", "BodyState", "SatelliteState", "FrameSnapshot"]
