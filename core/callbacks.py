"""
CallbackRegistry — lista di callback con isolamento degli errori.

Ogni callback ha un contatore di fallimenti consecutivi; quando raggiunge
la soglia viene rimosso. La rimozione avviene dopo il giro di dispatch
(copia → chiamata → filtro), mai durante l'iterazione.
"""

from __future__ import annotations
import logging
from typing import Callable, List

from .errors import InvalidArgument

logger = logging.getLogger(__name__)


class _Entry:
    __slots__ = ("callback", "failures")

    def __init__(self, callback: Callable):
        self.callback = callback
        self.failures = 0


class CallbackRegistry:

    def __init__(self, eviction_threshold: int = 3, name: str = "callback"):
        if eviction_threshold <= 0:
            raise InvalidArgument("eviction_threshold must be > 0")
        self._threshold = eviction_threshold
        self._name = name
        self._entries: List[_Entry] = []

    def add(self, callback: Callable) -> Callable:
        if not callable(callback):
            raise InvalidArgument(f"{self._name} must be callable, got {callback!r}")
        self._entries = self._entries + [_Entry(callback)]
        return callback

    def remove(self, callback: Callable) -> bool:
        before = len(self._entries)
        self._entries = [e for e in self._entries if e.callback != callback]
        return len(self._entries) != before

    def dispatch(self, *args) -> None:
        """Call every registered callback; failures are counted, never raised."""
        for entry in tuple(self._entries):
            try:
                entry.callback(*args)
            except Exception:
                entry.failures += 1
                logger.exception("%s %r failed (%d/%d)", self._name, entry.callback,
                                 entry.failures, self._threshold)
            else:
                entry.failures = 0

        survivors = [e for e in self._entries if e.failures < self._threshold]
        if len(survivors) != len(self._entries):
            for e in self._entries:
                if e.failures >= self._threshold:
                    logger.warning("Evicting %s %r after %d failures",
                                   self._name, e.callback, e.failures)
            self._entries = survivors

    def __len__(self) -> int:
        return len(self._entries)

    def __contains__(self, callback) -> bool:
        return any(e.callback == callback for e in self._entries)
