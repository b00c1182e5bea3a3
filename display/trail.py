"""Fixed-capacity trail of recent display positions."""

from __future__ import annotations
from collections import deque
from typing import Tuple

import numpy as np

from core.errors import InvalidArgument


class TrailBuffer:
    """
    Ring buffer of the last `capacity` positions, oldest evicted first.
    Positions are stored raw: no smoothing, no interpolation.
    """

    def __init__(self, capacity: int = 50):
        if not isinstance(capacity, int) or capacity <= 0:
            raise InvalidArgument(f"trail capacity must be a positive int, got {capacity!r}")
        self._points = deque(maxlen=capacity)

    @property
    def capacity(self) -> int:
        return self._points.maxlen

    def push(self, position) -> None:
        p = np.array(position, dtype=float)
        p.setflags(write=False)
        self._points.append(p)

    def snapshot(self) -> Tuple[np.ndarray, ...]:
        """Oldest → newest, read-only."""
        return tuple(self._points)

    def clear(self) -> None:
        self._points.clear()

    def __len__(self) -> int:
        return len(self._points)
