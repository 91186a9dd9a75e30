import enum
import math
import numbers
from dataclasses import dataclass, field
from typing import Tuple

from .constants import DEFAULT_MASS, schwarzschild_radius
from .errors import InvalidMass


def _checked_mass(mass) -> float:
    if isinstance(mass, bool) or not isinstance(mass, numbers.Real):
        raise InvalidMass(mass)
    mass = float(mass)
    if not math.isfinite(mass) or mass <= 0.0:
        raise InvalidMass(mass)
    rs = schwarzschild_radius(mass)
    # denormal masses underflow to a zero radius
    if not math.isfinite(rs) or rs <= 0.0:
        raise InvalidMass(mass)
    return mass


@dataclass
class BlackHole:
    mass: float = DEFAULT_MASS  # kg
    position: Tuple[float, float] = (0.0, 0.0)  # screen px
    rs: float = field(init=False)  # m

    def __post_init__(self):
        self.mass = _checked_mass(self.mass)
        self.rs = schwarzschild_radius(self.mass)

    def set_mass(self, mass: float) -> None:
        checked = _checked_mass(mass)
        self.mass = checked
        self.rs = schwarzschild_radius(checked)

    def schwarzschild_radius(self) -> float:
        return self.rs


class RayStatus(str, enum.Enum):
    ACTIVE = "active"
    CAPTURED = "captured"
    ESCAPED = "escaped"


@dataclass(frozen=True)
class RayState:
    index: int
    r: float; phi: float
    dr: float; dphi: float
    E: float; L: float
    status: RayStatus = RayStatus.ACTIVE

    @property
    def active(self) -> bool:
        return self.status is RayStatus.ACTIVE

    @property
    def impact_parameter(self) -> float:
        return abs(self.L) / self.E

    def cartesian(self) -> Tuple[float, float]:
        return self.r * math.cos(self.phi), self.r * math.sin(self.phi)


@dataclass(frozen=True)
class SpawnPoint:
    index: int
    x: float; y: float    # screen px
    vx: float; vy: float  # launch direction, unit length
