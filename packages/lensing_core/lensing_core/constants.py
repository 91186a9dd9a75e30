import math
c = 299_792_458.0
G = 6.6743e-11

# default hole: 6e28 kg, r_s ~ 89 m
DEFAULT_MASS = 6.0e28
DEFAULT_RAY_COUNT = 50
MIN_RAY_COUNT = 1
MAX_RAY_COUNT = 1000

# fraction of the short viewport side covered by the default horizon radius
HORIZON_SCREEN_FRACTION = 0.075

def schwarzschild_radius(mass: float) -> float:
    return 2.0 * G * mass / (c * c)

def critical_impact_parameter(rs: float) -> float:
    """Photon-sphere impact parameter b_crit = (3*sqrt(3)/2) * r_s."""
    return 1.5 * math.sqrt(3.0) * rs
