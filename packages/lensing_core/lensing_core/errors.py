class SimulationError(Exception):
    """Base class for every error raised by the lensing core."""


class InvalidMass(SimulationError, ValueError):
    def __init__(self, mass):
        super().__init__(f"black hole mass must be positive and finite, got {mass!r}")
        self.mass = mass


class InvalidRayCount(SimulationError, ValueError):
    def __init__(self, count, lower, upper):
        super().__init__(f"ray count must be an integer in [{lower}, {upper}], got {count!r}")
        self.count = count
        self.lower = lower
        self.upper = upper


class InvalidViewport(SimulationError, ValueError):
    def __init__(self, width, height):
        super().__init__(f"viewport must have positive finite size, got {width!r}x{height!r}")
        self.width = width
        self.height = height


class NumericalInstability(SimulationError, ArithmeticError):
    """A step produced a non-finite value for one ray.

    Raised inside the integrator and recovered there; the ray is frozen as
    captured at its last finite radius.
    """

    def __init__(self, index, values):
        super().__init__(f"non-finite state for ray {index}: {values!r}")
        self.index = index
        self.values = values


class SimulationClosed(SimulationError, RuntimeError):
    def __init__(self):
        super().__init__("simulation has been closed")
