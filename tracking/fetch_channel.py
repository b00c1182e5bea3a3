"""
FetchChannel — confine asincrono tra il client di rete e il frame loop.

I fetch girano su un worker thread; i risultati finiscono in una coda
thread-safe e vengono applicati SOLO all'inizio del frame successivo
(drain). Ogni richiesta ha un numero di sequenza monotono: un risultato
arrivato dopo quello di una richiesta più recente viene scartato
(last-fetch-wins). Le richieste superate ancora in attesa vengono
cancellate e maybe_request non ne emette finché una è in corso.
"""

from __future__ import annotations
import logging
import queue
from concurrent.futures import Executor, Future, ThreadPoolExecutor
from dataclasses import dataclass
from typing import Callable, Dict, List, Optional

from core.errors import InvalidArgument
from .tracked_object import GeoFix

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FetchResult:
    seq: int
    fix: Optional[GeoFix] = None
    error: str = ""

    @property
    def ok(self) -> bool:
        return self.fix is not None


class FetchChannel:

    def __init__(self, fetch: Callable[[], GeoFix], interval_s: float = 5.0,
                 executor: Optional[Executor] = None):
        if interval_s <= 0:
            raise InvalidArgument(f"fetch interval must be > 0, got {interval_s!r}")
        self._fetch = fetch
        self.interval_s = interval_s
        self._owns_executor = executor is None
        self._executor = executor or ThreadPoolExecutor(max_workers=2,
                                                        thread_name_prefix="iss-fetch")
        self._results: "queue.SimpleQueue[FetchResult]" = queue.SimpleQueue()
        self._seq = 0
        self._last_applied = 0
        self._next_due: Optional[float] = None
        self._in_flight: Dict[int, Future] = {}

    @property
    def last_issued(self) -> int:
        return self._seq

    @property
    def busy(self) -> bool:
        """True while an issued fetch has not completed."""
        return any(not f.done() for f in self._in_flight.values())

    @property
    def last_applied(self) -> int:
        return self._last_applied

    # ── Richieste ──────────────────────────────────────────────────────────

    def request(self) -> int:
        """
        Issue a fetch now; returns its sequence number.
        Older requests still waiting for a worker are cancelled.
        """
        for old, future in self._in_flight.items():
            if future.cancel():
                logger.debug("Cancelled superseded fetch #%d", old)
        self._in_flight = {s: f for s, f in self._in_flight.items() if not f.done()}

        self._seq += 1
        seq = self._seq
        self._in_flight[seq] = self._executor.submit(self._run, seq)
        return seq

    def maybe_request(self, now: float) -> Optional[int]:
        """
        Issue a fetch if the interval has elapsed (called once per frame).
        Nothing is issued while a previous fetch is still running.
        """
        if self._next_due is not None and now < self._next_due:
            return None
        if self.busy:
            return None
        self._next_due = now + self.interval_s
        return self.request()

    def _run(self, seq: int) -> None:
        # worker thread: tutto finisce in coda, nessuna eccezione risale
        try:
            fix = self._fetch()
        except Exception as e:
            self._results.put(FetchResult(seq, error=str(e) or type(e).__name__))
        else:
            self._results.put(FetchResult(seq, fix=fix))

    # ── Frame loop ─────────────────────────────────────────────────────────

    def drain(self) -> List[FetchResult]:
        """
        Collect completed results in sequence order, dropping any result
        older than one already applied.
        """
        pending = []
        while True:
            try:
                pending.append(self._results.get_nowait())
            except queue.Empty:
                break

        fresh = []
        for result in sorted(pending, key=lambda r: r.seq):
            if result.seq <= self._last_applied:
                logger.debug("Discarding superseded fetch result #%d", result.seq)
                continue
            fresh.append(result)
            self._last_applied = result.seq
        return fresh

    def close(self) -> None:
        if self._owns_executor:
            self._executor.shutdown(wait=False, cancel_futures=True)
