"""
SimulationClock — tempo simulato indipendente dall'orologio di sistema.

Il tempo simulato è espresso in secondi da J2000.0 e avanza solo tramite
advance(dt_wall): nessun accumulo a soglia, nessun salto. Il propagatore
orbitale legge SOLO questo valore, mai l'orologio di sistema, così un cambio
di velocità non produce "teletrasporti" dei pianeti.

Controllo:
    clock.advance(dt_wall)       — chiamato ogni frame
    clock.set_time_scale(500)    — moltiplicatore (>0, nel range configurato)
    clock.set_paused(True)
    clock.reset(0.0)             — unico modo per saltare nel tempo
    clock.reset_to_datetime(dt)  — posiziona il tempo su una data UTC
"""

from __future__ import annotations
import math
import numbers
from datetime import datetime, timezone, timedelta
from typing import Optional

from .errors import InvalidArgument
from .settings import ClockCfg, SECONDS_PER_DAY


J2000_JD = 2451545.0
J2000_UTC = datetime(2000, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


# ── Conversioni tempo ─────────────────────────────────────────────────────

def seconds_since_j2000(dt: datetime) -> float:
    """datetime (UTC, naive = UTC) → seconds since J2000.0."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return (dt - J2000_UTC).total_seconds()


def datetime_to_jd(dt: datetime) -> float:
    """Convert datetime (UTC) to Julian Date."""
    return J2000_JD + seconds_since_j2000(dt) / SECONDS_PER_DAY


def jd_to_datetime(jd: float) -> datetime:
    return J2000_UTC + timedelta(seconds=(jd - J2000_JD) * SECONDS_PER_DAY)


class SimulationClock:
    """
    Tempo simulato con avanzamento fluido per frame.

    Parametri
    ----------
    cfg : ClockCfg con scala iniziale, range ammesso e tempo di partenza
    """

    def __init__(self, cfg: Optional[ClockCfg] = None):
        cfg = cfg or ClockCfg()
        self._min_scale = cfg.min_time_scale
        self._max_scale = cfg.max_time_scale
        self._time      = float(cfg.start_time)
        self._scale     = self._checked_scale(cfg.time_scale)
        self._paused    = False

    # ── Proprietà ────────────────────────────────────────────────────────────

    @property
    def simulated_time(self) -> float:
        return self._time

    @property
    def time_scale(self) -> float:
        return self._scale

    @property
    def paused(self) -> bool:
        return self._paused

    @property
    def simulated_days(self) -> float:
        return self._time / SECONDS_PER_DAY

    @property
    def utc(self) -> datetime:
        return J2000_UTC + timedelta(seconds=self._time)

    @property
    def jd(self) -> float:
        return J2000_JD + self.simulated_days

    def get_simulated_time(self) -> float:
        return self._time

    # ── Controlli ────────────────────────────────────────────────────────────

    def set_time_scale(self, factor: float) -> None:
        """Change the multiplier; simulated time is left untouched."""
        self._scale = self._checked_scale(factor)

    def set_paused(self, paused: bool) -> None:
        self._paused = bool(paused)

    def toggle_pause(self) -> None:
        self._paused = not self._paused

    def reset(self, to_time: float = 0.0) -> None:
        """Explicit re-initialisation: the only allowed discontinuity."""
        if not math.isfinite(to_time):
            raise InvalidArgument(f"reset time must be finite, got {to_time!r}")
        self._time = float(to_time)

    def reset_to_datetime(self, dt: Optional[datetime] = None) -> None:
        """Vista in tempo reale: porta il tempo simulato alla data indicata (default: adesso)."""
        if dt is None:
            dt = datetime.now(timezone.utc)
        self.reset(seconds_since_j2000(dt))

    # ── Aggiornamento frame ───────────────────────────────────────────────────

    def advance(self, real_dt: float) -> float:
        """
        Avanza di real_dt secondi reali (tipicamente 1/60).
        Ritorna il tempo simulato aggiornato.
        """
        if not math.isfinite(real_dt) or real_dt < 0:
            raise InvalidArgument(f"real_dt must be a finite value >= 0, got {real_dt!r}")
        if not self._paused:
            self._time += real_dt * self._scale
        return self._time

    # ── Etichette UI ─────────────────────────────────────────────────────────

    def format_simulated_time(self) -> str:
        days = self.simulated_days
        if abs(days) < 1:
            hours = days * 24.0
            if abs(hours) < 1:
                return f"{hours * 60.0:.1f} minutes"
            return f"{hours:.1f} hours"
        if abs(days) < 365:
            return f"{days:.1f} days"
        return f"{days / 365.25:.2f} years"

    def format_time_scale(self) -> str:
        if self._paused:
            return "PAUSED"
        if self._scale >= 1000:
            return f"{self._scale / 1000.0:.1f}kx"
        return f"{self._scale:g}x"

    # ------------------------------------------------------------------

    def _checked_scale(self, factor: float) -> float:
        if not isinstance(factor, numbers.Real) or isinstance(factor, bool):
            raise InvalidArgument(f"time scale must be a number, got {factor!r}")
        if not math.isfinite(factor) or factor <= 0:
            raise InvalidArgument(f"time scale must be > 0, got {factor!r}")
        if not self._min_scale <= factor <= self._max_scale:
            raise InvalidArgument(
                f"time scale {factor:g} outside [{self._min_scale:g}, {self._max_scale:g}]"
            )
        return float(factor)
