import logging
import math
from dataclasses import replace
from typing import Optional, Tuple

from .errors import NumericalInstability
from .models import BlackHole, RayState, RayStatus

logger = logging.getLogger(__name__)

Phase = Tuple[float, float, float, float]


def effective_potential(r: float, L: float, rs: float) -> float:
    return (1.0 - rs / r) * L * L / (r * r)


def radial_acceleration(r: float, L: float, rs: float) -> float:
    # -1/2 dV_eff/dr
    L2 = L * L
    r3 = r * r * r
    return L2 / r3 - 1.5 * rs * L2 / (r3 * r)


def geodesic_rhs(y: Phase, L: float, rs: float) -> Phase:
    r, phi, dr, dphi = y
    rhs0 = dr
    rhs1 = dphi
    rhs2 = radial_acceleration(r, L, rs)
    rhs3 = -2.0 * dr * dphi / r
    return rhs0, rhs1, rhs2, rhs3


def rk4_step(ray: RayState, dlam: float, rs: float) -> Phase:
    """Classic RK4 step of ``(r, phi, dr, dphi)``; raises NumericalInstability
    instead of returning a non-finite phase."""
    y0 = (ray.r, ray.phi, ray.dr, ray.dphi)

    def add(a, b, f): return tuple(a[i] + f*b[i] for i in range(4))
    try:
        k1 = geodesic_rhs(y0, ray.L, rs)
        k2 = geodesic_rhs(add(y0, k1, dlam/2.0), ray.L, rs)
        k3 = geodesic_rhs(add(y0, k2, dlam/2.0), ray.L, rs)
        k4 = geodesic_rhs(add(y0, k3, dlam), ray.L, rs)
    except (ZeroDivisionError, OverflowError) as exc:
        raise NumericalInstability(ray.index, y0) from exc

    y1 = tuple(y0[i] + (dlam / 6.0) * (k1[i] + 2*k2[i] + 2*k3[i] + k4[i]) for i in range(4))
    if not all(math.isfinite(v) for v in y1):
        raise NumericalInstability(ray.index, y1)
    return y1


def advance(ray: RayState, dlam: float, rs: float, r_max: float = math.inf) -> RayState:
    """Return the state of ``ray`` one affine step later.

    Frozen rays come back unchanged. Crossing the horizon clamps ``r`` to
    ``rs`` and captures the ray, passing ``r_max`` marks it escaped, and a
    non-finite step captures it where it stood.
    """
    if not ray.active:
        return ray
    if ray.r <= rs:
        return replace(ray, status=RayStatus.CAPTURED)

    try:
        r, phi, dr, dphi = rk4_step(ray, dlam, rs)
    except NumericalInstability as exc:
        logger.debug("%s; captured at r=%g", exc, ray.r)
        return replace(ray, status=RayStatus.CAPTURED)

    if r <= rs:
        return replace(ray, r=rs, phi=phi, dr=dr, dphi=dphi, status=RayStatus.CAPTURED)
    status = RayStatus.ESCAPED if r > r_max else RayStatus.ACTIVE
    return replace(ray, r=r, phi=phi, dr=dr, dphi=dphi, status=status)


def launch_ray(index: int, x: float, y: float, vx: float, vy: float, rs: float) -> RayState:
    """Null ray at ``(x, y)`` metres from the hole, heading along ``(vx, vy)``.

    Affine parameter is normalised so that ``E = 1`` and the ray moves one
    metre per unit of lambda far from the hole. ``dr`` is fixed by the null
    condition ``dr^2 = E^2 - V_eff(r)``, signed like the flat-space radial
    velocity.
    """
    speed = math.hypot(vx, vy)
    if not speed > 0.0 or not math.isfinite(speed):
        raise ValueError(f"launch direction must be a finite non-zero vector, got ({vx!r}, {vy!r})")
    ux, uy = vx / speed, vy / speed

    r = math.hypot(x, y)
    phi = math.atan2(y, x)
    E = 1.0
    L = x * uy - y * ux
    if r <= rs:
        return RayState(index, r, phi, 0.0, 0.0, E, L, RayStatus.CAPTURED)

    radial = ux * math.cos(phi) + uy * math.sin(phi)
    dr = math.copysign(math.sqrt(max(0.0, E * E - effective_potential(r, L, rs))), radial)
    dphi = L / (r * r)
    return RayState(index, r, phi, dr, dphi, E, L)


def integrate_trajectory(bh: BlackHole, x: float, y: float, vx: float, vy: float,
                        steps: int = 1000, dlam: float = 1.0, r_max: Optional[float] = None):
    rs = bh.rs
    if r_max is None:
        r_max = math.inf
    ray = launch_ray(0, x, y, vx, vy, rs)
    trail = [ray.cartesian()]
    taken = 0
    while taken < steps and ray.active:
        ray = advance(ray, dlam, rs, r_max)
        trail.append(ray.cartesian())
        taken += 1
    return {
        "trail": trail,
        "hit_horizon": ray.status is RayStatus.CAPTURED,
        "status": ray.status.value,
        "rs": rs,
        "impact_parameter": ray.impact_parameter,
        "steps": taken,
    }
