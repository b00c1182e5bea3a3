import argparse
import logging
import math
from dataclasses import dataclass
from typing import Optional

import pygame

from core.errors import EngineError
from core.log import configure_logging
from core.settings import MAX_TIME_SCALE, MIN_TIME_SCALE, ScaleRegime
from engine.context import EngineContext, FrameSnapshot
from tracking.fetch_channel import FetchChannel
from tracking.iss_client import IssClient
from tracking.tracked_object import Advisory, TrackingMode
from universe.catalogue_loader import load_catalogue

W, H = 1200, 720

BODY_COLORS = {
    "sun": (255, 210, 90), "mercury": (170, 160, 150), "venus": (230, 200, 140),
    "earth": (80, 140, 255), "mars": (220, 100, 60), "jupiter": (210, 170, 120),
    "saturn": (230, 210, 150), "uranus": (150, 220, 230), "neptune": (90, 120, 240),
}
MODE_COLORS = {
    TrackingMode.LIVE: (90, 230, 120),
    TrackingMode.CACHED: (240, 200, 80),
    TrackingMode.SIMULATED: (240, 110, 90),
}

logger = logging.getLogger("orrery")


@dataclass
class ViewState:
    zoom: float = 0.04                 # pixel per unità scena
    focus: Optional[str] = None        # None = Sole al centro
    advisory: str = ""


def to_screen(pos, center, view: ViewState):
    x = (pos[0] - center[0]) * view.zoom + W / 2
    y = (pos[1] - center[1]) * -view.zoom + H / 2
    return int(x), int(y)


def draw(screen, snap: FrameSnapshot, lines, view: ViewState, fonts):
    font, small = fonts
    screen.fill((4, 6, 14))

    center = (0.0, 0.0)
    if view.focus and view.focus in snap.bodies:
        center = snap.bodies[view.focus].display_position

    for key, path in lines.items():
        pts = [to_screen(p, center, view) for p in path]
        pygame.draw.lines(screen, (40, 48, 70), True, pts, 1)

    for state in snap.bodies.values():
        x, y = to_screen(state.display_position, center, view)
        r = max(2, int(state.display_radius * view.zoom))
        if r > 4 * W:
            continue
        pygame.draw.circle(screen, BODY_COLORS.get(state.key, (200, 200, 200)), (x, y), r)
        # meridiano di riferimento per lo spin
        a = state.rotation_angle
        pygame.draw.line(screen, (0, 0, 0), (x, y),
                         (x + int(r * math.cos(a)), y - int(r * math.sin(a))), 1)
        if r > 3 or state.parent in (None, "sun"):
            screen.blit(small.render(state.name, True, (180, 190, 210)), (x + r + 3, y - 7))

    sat = snap.satellite
    if sat is not None:
        color = MODE_COLORS[sat.mode]
        trail = [to_screen(p, center, view) for p in sat.trail]
        if len(trail) >= 2:
            pygame.draw.lines(screen, color, False, trail, 1)
        pygame.draw.circle(screen, color, to_screen(sat.display_position, center, view), 3)

    hud = [
        f"t = {snap.simulated_time / 86400.0:+.2f} d  speed {'PAUSED' if snap.paused else f'{snap.time_scale:g}x'}",
        f"regime {snap.regime.name}   focus {view.focus or 'sun'}",
    ]
    if sat is not None:
        hud.append(f"{sat.name} {sat.mode.name}  lat {sat.fix.latitude:+.2f}  lon {sat.fix.longitude:+.2f}")
    for i, line in enumerate(hud):
        screen.blit(font.render(line, True, (220, 225, 235)), (12, 10 + i * 24))
    if view.advisory:
        screen.blit(small.render(view.advisory, True, (240, 200, 120)), (12, H - 26))
    screen.blit(small.render("SPACE pause  +/- speed  R regime  TAB focus  wheel zoom",
                             True, (120, 130, 150)), (W - 430, H - 26))


def handle_key(ev, engine: EngineContext, view: ViewState):
    if ev.key == pygame.K_SPACE:
        engine.toggle_pause()
    elif ev.key in (pygame.K_PLUS, pygame.K_EQUALS, pygame.K_KP_PLUS):
        engine.set_time_scale(min(MAX_TIME_SCALE, engine.clock.time_scale * 2))
    elif ev.key in (pygame.K_MINUS, pygame.K_KP_MINUS):
        engine.set_time_scale(max(MIN_TIME_SCALE, engine.clock.time_scale / 2))
    elif ev.key == pygame.K_r:
        other = ScaleRegime.REAL if engine.regime is ScaleRegime.ENLARGED else ScaleRegime.ENLARGED
        engine.set_scale_regime(other)
    elif ev.key == pygame.K_TAB:
        keys = [None] + [k for k, b in engine.bodies.items() if b.elements is not None]
        idx = keys.index(view.focus) if view.focus in keys else 0
        view.focus = keys[(idx + 1) % len(keys)]


def main():
    parser = argparse.ArgumentParser(description="Solar System orrery with live ISS tracking")
    parser.add_argument("--offline", action="store_true", help="never fetch live ISS data")
    parser.add_argument("--catalogue", help="JSON body catalogue (default: built-in)")
    parser.add_argument("--now", action="store_true", help="start at the current UTC date")
    parser.add_argument("--log-level", default="INFO")
    args = parser.parse_args()

    configure_logging(getattr(logging, args.log_level.upper(), logging.INFO))

    channel = None
    if not args.offline:
        channel = FetchChannel(IssClient().fetch)

    engine = EngineContext(bodies=load_catalogue(args.catalogue), fetch_channel=channel)
    if args.now:
        engine.clock.reset_to_datetime()

    view = ViewState()

    def on_advisory(adv: Advisory):
        view.advisory = adv.message

    engine.subscribe_advisory(on_advisory)

    pygame.init()
    screen = pygame.display.set_mode((W, H))
    pygame.display.set_caption("Astro Orrery")
    clock = pygame.time.Clock()
    font = pygame.font.SysFont("Tahoma", 18)
    small = pygame.font.SysFont("Verdana", 13)

    lines = engine.orbit_lines()
    lines_regime = engine.regime

    running = True
    try:
        while running:
            dt = clock.tick(60) / 1000.0
            for ev in pygame.event.get():
                if ev.type == pygame.QUIT:
                    running = False
                elif ev.type == pygame.KEYDOWN:
                    try:
                        handle_key(ev, engine, view)
                    except EngineError as e:
                        view.advisory = str(e)
                        logger.warning("%s", e)
                elif ev.type == pygame.MOUSEWHEEL:
                    view.zoom *= 1.2 ** ev.y

            if engine.regime is not lines_regime:
                lines, lines_regime = engine.orbit_lines(), engine.regime

            snap = engine.step(dt)
            draw(screen, snap, lines, view, (font, small))
            pygame.display.flip()
    finally:
        engine.close()
        pygame.quit()


if __name__ == "__main__":
    main()
