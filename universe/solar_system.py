"""
Catalogo del Sistema Solare: Sole, 8 pianeti, Luna e 7 lune maggiori.

Gli elementi planetari sono quelli JPL (Standish 1992, epoca J2000) nel
formato (a, e, i, L, ϖ, Ω); le lune sono espresse nel frame equatoriale
del genitore, in km, con angolo iniziale come anomalia media all'epoca.
"""

from __future__ import annotations

from core.settings import BodyClass
from .orbital_body import OrbitalBody, OrbitalElements, OrbitUnit


SUN_KEY = "sun"
EARTH_KEY = "earth"


def _planet(key, name, body_class, r_km, period_days, tilt, rot_days,
            description, elems_data) -> OrbitalBody:
    a, e, i, L, w_bar, Om = elems_data
    return OrbitalBody(
        key=key, name=name,
        body_class=body_class,
        radius_km=r_km,
        parent=SUN_KEY,
        orbit_unit=OrbitUnit.AU,
        description=description,
        elements=OrbitalElements.from_mean_longitude(
            a=a, e=e, i=i, L=L, w_bar=w_bar, Om=Om,
            period_days=period_days,
            axial_tilt_deg=tilt,
            rotation_period_days=rot_days,
        ),
    )


def _moon(key, name, parent, r_km, a_km, e, i, period_days, start_deg,
          description="") -> OrbitalBody:
    return OrbitalBody(
        key=key, name=name,
        body_class=BodyClass.MOON,
        radius_km=r_km,
        parent=parent,
        orbit_unit=OrbitUnit.KM,
        description=description,
        elements=OrbitalElements(
            a=a_km, e=e, i=i,
            mean_anomaly=start_deg,
            period_days=period_days,
            tidally_locked=True,
        ),
    )


def build_solar_system() -> list[OrbitalBody]:
    """
    Return the default Solar System bodies, parents before moons.
    """

    # ── Sun ────────────────────────────────────────────────────────────────
    # Il Sole non ha orbita: resta nell'origine ma ruota (25.38 d all'equatore)
    sun = OrbitalBody(
        key=SUN_KEY, name="Sun",
        body_class=BodyClass.STAR,
        radius_km=695700.0,
        description="The Sun — G2V main sequence star, age ~4.6 Gyr",
        spin_period_days=25.38,
        spin_tilt_deg=7.25,
    )

    # ── Planets ────────────────────────────────────────────────────────────
    # Elements from JPL Planetary Fact Sheet / Standish 1992 (J2000 epoch)
    # Format: (a, e, i, L, w_bar, Om)

    mercury = _planet("mercury", "Mercury", BodyClass.ROCKY, 2439.7, 87.97, 0.034, 58.646,
        "Mercury — innermost rocky planet, extreme temperature swings",
        (0.38709927, 0.20563593, 7.00497902,
         252.25032350, 77.45779628, 48.33076593))

    venus = _planet("venus", "Venus", BodyClass.ROCKY, 6051.8, 224.70, 177.4, -243.025,
        "Venus — thick CO₂ atmosphere, retrograde rotation",
        (0.72333566, 0.00677672, 3.39467605,
         181.97909950, 131.60246718, 76.67984255))

    # Terra: piano di riferimento dell'eclittica (i = 0, Ω = 0)
    earth = _planet(EARTH_KEY, "Earth", BodyClass.ROCKY, 6371.0, 365.256363, 23.44, 0.99727,
        "Earth — the only known inhabited world",
        (1.00000261, 0.01671123, 0.0,
         100.46457166, 102.93768193, 0.0))

    mars = _planet("mars", "Mars", BodyClass.ROCKY, 3389.5, 686.98, 25.19, 1.025957,
        "Mars — thin CO₂ atmosphere, polar ice caps, Olympus Mons",
        (1.52371034, 0.09339410, 1.84969142,
         -4.55343205, -23.94362959, 49.55953891))

    jupiter = _planet("jupiter", "Jupiter", BodyClass.GAS_GIANT, 69911.0, 4333.0, 3.13, 0.41354,
        "Jupiter — largest planet, Great Red Spot, 95 known moons",
        (5.20288700, 0.04838624, 1.30439695,
         34.39644051, 14.72847983, 100.47390909))

    saturn = _planet("saturn", "Saturn", BodyClass.GAS_GIANT, 58232.0, 10759.0, 26.73, 0.44401,
        "Saturn — ring system, 146 known moons, lowest density of any planet",
        (9.53667594, 0.05386179, 2.48599187,
         49.95424423, 92.59887831, 113.66242448))

    uranus = _planet("uranus", "Uranus", BodyClass.ICE_GIANT, 25362.0, 30687.0, 97.77, -0.71833,
        "Uranus — ice giant, rotates on its side (97.8° axial tilt)",
        (19.18916464, 0.04725744, 0.77263783,
         313.23810451, 170.95427630, 74.01692503))

    neptune = _planet("neptune", "Neptune", BodyClass.ICE_GIANT, 24622.0, 60190.0, 28.32, 0.67125,
        "Neptune — ice giant, strongest winds in Solar System, 16 moons",
        (30.06992276, 0.00859048, 1.77004347,
         -55.12002969, 44.96476227, 131.78422574))

    # ── Moons ──────────────────────────────────────────────────────────────
    # (a km, e, i deg, periodo giorni, angolo iniziale deg)
    moon = _moon("moon", "Moon", EARTH_KEY, 1737.4, 384400.0, 0.0549, 5.145, 27.321661, 0.0,
        "Earth's Moon — rocky satellite, synchronous rotation")

    io       = _moon("io", "Io", "jupiter", 1821.6, 421700.0, 0.0041, 0.05, 1.769138, 0.0)
    europa   = _moon("europa", "Europa", "jupiter", 1560.8, 671034.0, 0.009, 0.47, 3.551181, 90.0)
    ganymede = _moon("ganymede", "Ganymede", "jupiter", 2634.1, 1070412.0, 0.0013, 0.2, 7.154553, 180.0)
    callisto = _moon("callisto", "Callisto", "jupiter", 2410.3, 1882709.0, 0.0074, 0.192, 16.689018, 270.0)

    titan   = _moon("titan", "Titan", "saturn", 2574.7, 1221870.0, 0.0288, 0.34854, 15.945, 0.0)
    rhea    = _moon("rhea", "Rhea", "saturn", 763.8, 527108.0, 0.001, 0.345, 4.518212, 60.0)
    iapetus = _moon("iapetus", "Iapetus", "saturn", 734.5, 3560820.0, 0.0286, 15.47, 79.3215, 120.0)

    return [sun, mercury, venus, earth, mars, jupiter, saturn, uranus, neptune,
            moon, io, europa, ganymede, callisto, titan, rhea, iapetus]

