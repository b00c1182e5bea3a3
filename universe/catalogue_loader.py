"""
Catalogue Loader

Converts orbital-element tables (built-in or JSON) into validated
OrbitalBody instances. A malformed entry never aborts the load: it is
logged and excluded, together with any moon whose parent is missing.

JSON layout:
    {"bodies": [
        {"key": "earth", "name": "Earth", "class": "rocky",
         "radius_km": 6371.0, "parent": "sun", "unit": "au",
         "elements": {"a": 1.0, "e": 0.0167, "i": 0.0,
                      "L": 100.46, "w_bar": 102.94, "Om": 0.0,
                      "period_days": 365.256363,
                      "axial_tilt_deg": 23.44, "rotation_period_days": 0.99727}},
        ...
    ]}

Elements may be given either in JPL form (L, w_bar, Om) or directly as
(node, peri, mean_anomaly).
"""

from __future__ import annotations
import json
import logging
from pathlib import Path
from typing import Iterable, List, Optional, Union

from core.errors import InvalidConfiguration
from core.settings import BodyClass
from .orbital_body import OrbitalBody, OrbitalElements, OrbitUnit
from .solar_system import build_solar_system

logger = logging.getLogger(__name__)


_ELEMENT_FIELDS = ("a", "e", "i", "node", "peri", "mean_anomaly", "period_days")
_JPL_FIELDS = ("L", "w_bar", "Om")
_SPIN_FIELDS = ("axial_tilt_deg", "rotation_period_days", "tidally_locked",
                "rotation_offset_deg")


def _number(raw: dict, name: str, key: str) -> float:
    value = raw.get(name)
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        raise InvalidConfiguration(f"{key}: field '{name}' must be a number, got {value!r}", key)
    return float(value)


def _parse_elements(raw, key: str) -> OrbitalElements:
    if not isinstance(raw, dict):
        raise InvalidConfiguration(f"{key}: 'elements' must be an object", key)

    spin = {}
    for name in _SPIN_FIELDS:
        if raw.get(name) is None:
            continue
        if name == "tidally_locked":
            spin[name] = bool(raw[name])
        else:
            spin[name] = _number(raw, name, key)

    if all(name in raw for name in _JPL_FIELDS):
        return OrbitalElements.from_mean_longitude(
            a=_number(raw, "a", key), e=_number(raw, "e", key),
            i=_number(raw, "i", key),
            L=_number(raw, "L", key), w_bar=_number(raw, "w_bar", key),
            Om=_number(raw, "Om", key),
            period_days=_number(raw, "period_days", key),
            **spin,
        )

    values = {}
    for name in _ELEMENT_FIELDS:
        if name in ("node", "peri", "mean_anomaly") and name not in raw:
            values[name] = 0.0
        else:
            values[name] = _number(raw, name, key)
    return OrbitalElements(**values, **spin)


def parse_body(raw) -> OrbitalBody:
    """One JSON entry → validated OrbitalBody (InvalidConfiguration on error)."""
    if not isinstance(raw, dict):
        raise InvalidConfiguration(f"body entry must be an object, got {type(raw).__name__}")
    key = raw.get("key")
    if not isinstance(key, str) or not key:
        raise InvalidConfiguration("body entry without a 'key'")

    try:
        body_class = BodyClass(raw.get("class", ""))
    except ValueError:
        raise InvalidConfiguration(f"{key}: unknown body class {raw.get('class')!r}", key)
    try:
        unit = OrbitUnit(raw.get("unit", "au"))
    except ValueError:
        raise InvalidConfiguration(f"{key}: unknown orbit unit {raw.get('unit')!r}", key)

    elements = None
    if raw.get("elements") is not None:
        elements = _parse_elements(raw["elements"], key)

    parent = raw.get("parent")
    if parent is not None and (not isinstance(parent, str) or not parent):
        raise InvalidConfiguration(f"{key}: 'parent' must be a body key, got {parent!r}", key)

    spin_period = raw.get("spin_period_days")
    spin_tilt = raw.get("spin_tilt_deg")
    body = OrbitalBody(
        key=key,
        name=str(raw.get("name", key)),
        body_class=body_class,
        radius_km=_number(raw, "radius_km", key),
        elements=elements,
        parent=parent,
        orbit_unit=unit,
        description=str(raw.get("description", "")),
        spin_period_days=None if spin_period is None else _number(raw, "spin_period_days", key),
        spin_tilt_deg=0.0 if spin_tilt is None else _number(raw, "spin_tilt_deg", key),
    )
    return body.validate()


def validate_catalogue(bodies: Iterable[OrbitalBody]) -> List[OrbitalBody]:
    """
    Keep the bodies that validate and whose parent chain is present.
    Order is preserved; parents must precede their children.
    """
    accepted: List[OrbitalBody] = []
    known = set()
    for body in bodies:
        try:
            body.validate()
        except InvalidConfiguration as exc:
            logger.error("Excluding body '%s': %s", body.key, exc)
            continue
        if body.key in known:
            logger.error("Excluding duplicate body '%s'", body.key)
            continue
        if body.parent is not None and body.parent not in known:
            logger.error("Excluding body '%s': parent '%s' not loaded", body.key, body.parent)
            continue
        accepted.append(body)
        known.add(body.key)
    return accepted


def load_bodies(entries: Iterable) -> List[OrbitalBody]:
    parsed: List[OrbitalBody] = []
    for raw in entries:
        try:
            parsed.append(parse_body(raw))
        except InvalidConfiguration as exc:
            logger.error("Excluding malformed catalogue entry: %s", exc)
    return validate_catalogue(parsed)


def load_catalogue(path: Optional[Union[str, Path]] = None) -> List[OrbitalBody]:
    """
    Load the body catalogue.

    path=None returns the built-in Solar System tables. A file that cannot
    be read or is not a JSON object with a 'bodies' list raises
    InvalidConfiguration.
    """
    if path is None:
        bodies = validate_catalogue(build_solar_system())
        logger.info("Loaded %d built-in bodies", len(bodies))
        return bodies

    path = Path(path)
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = json.load(f)
    except (OSError, json.JSONDecodeError) as exc:
        raise InvalidConfiguration(f"cannot read catalogue {path}: {exc}") from exc

    entries = data.get("bodies") if isinstance(data, dict) else None
    if not isinstance(entries, list):
        raise InvalidConfiguration(f"catalogue {path} has no 'bodies' list")

    bodies = load_bodies(entries)
    logger.info("Loaded %d/%d bodies from %s", len(bodies), len(entries), path)
    return bodies
