import logging
import numbers
from functools import partial
from typing import Dict, List, Optional, Tuple

from .config import SimulationConfig
from .constants import (DEFAULT_MASS, DEFAULT_RAY_COUNT, MAX_RAY_COUNT, MIN_RAY_COUNT,
                        schwarzschild_radius)
from .errors import InvalidRayCount, SimulationClosed, SimulationError
from .integrators import advance
from .models import BlackHole, RayStatus
from .parallel import FrameExecutor
from .population import RayPopulation, Viewport

logger = logging.getLogger(__name__)

VERSION = "0.1.0"


def _checked_count(count) -> int:
    if isinstance(count, bool) or not isinstance(count, numbers.Integral):
        raise InvalidRayCount(count, MIN_RAY_COUNT, MAX_RAY_COUNT)
    if not MIN_RAY_COUNT <= count <= MAX_RAY_COUNT:
        raise InvalidRayCount(count, MIN_RAY_COUNT, MAX_RAY_COUNT)
    return int(count)


class Simulation:
    """One lensing session: a black hole, its rays and the frame loop over them.

    The caller owns the instance and must not call into it from several
    threads at once; ``close()`` releases the worker pool.

    >>> with Simulation(800, 600, 50) as sim:
    ...     sim.update()
    ...     xy = sim.get_ray_positions()
    """

    def __init__(self, width, height, ray_count: int = DEFAULT_RAY_COUNT,
                 config: Optional[SimulationConfig] = None):
        self.config = config or SimulationConfig()
        self._executor = FrameExecutor(self.config.workers, self.config.parallel_threshold)
        self._closed = False
        try:
            self.init(width, height, ray_count)
        except SimulationError:
            self.close()
            raise

    def init(self, width, height, ray_count: int = DEFAULT_RAY_COUNT) -> None:
        self._check_open()
        count = _checked_count(ray_count)
        viewport = Viewport.fit(width, height, schwarzschild_radius(DEFAULT_MASS))
        black_hole = BlackHole(DEFAULT_MASS, viewport.center)

        self.viewport = viewport
        self.black_hole = black_hole
        self.population = RayPopulation(viewport, count, black_hole.rs,
                                        trail_length=self.config.trail_length)
        self.dlam = self.config.step_pixels * viewport.metres_per_pixel
        self.r_max = self.config.escape_factor * viewport.half_diagonal
        self.frame = 0
        logger.info("Initialized simulation %gx%g with %d rays (%.4g m/px)",
                    viewport.width, viewport.height, count, viewport.metres_per_pixel)

    def _check_open(self) -> None:
        if self._closed:
            raise SimulationClosed()

    @property
    def closed(self) -> bool:
        return self._closed

    @property
    def width(self) -> float:
        return self.viewport.width

    @property
    def height(self) -> float:
        return self.viewport.height

    @property
    def metres_per_pixel(self) -> float:
        return self.viewport.metres_per_pixel

    # -- frame loop --------------------------------------------------------

    def update(self) -> None:
        self._check_open()
        indices = self.population.active_indices()
        if indices:
            step = partial(advance, dlam=self.dlam, rs=self.black_hole.rs, r_max=self.r_max)
            states = self._executor.map(step, [self.population[i] for i in indices])
            self.population.store(indices, states)
        self.frame += 1
        logger.debug("frame %d: %d rays integrated", self.frame, len(indices))

    def reset(self) -> None:
        self._check_open()
        logger.info("Resetting simulation at frame %d", self.frame)
        self.population.reset(self.black_hole.rs)
        self.frame = 0

    # -- mutation ----------------------------------------------------------

    def update_black_hole_mass(self, mass: float) -> None:
        self._check_open()
        self.black_hole.set_mass(mass)
        logger.info("Updated black hole mass to %g kg (r_s = %g m)", self.black_hole.mass, self.black_hole.rs)

    def update_ray_count(self, count: int) -> None:
        self._check_open()
        count = _checked_count(count)
        previous = len(self.population)
        self.population.resize(count, self.black_hole.rs)
        logger.info("Updated ray count %d -> %d", previous, count)

    # -- queries -----------------------------------------------------------

    def get_ray_positions(self) -> List[float]:
        return self.population.positions()

    def get_initial_ray_positions(self) -> List[float]:
        return self.population.initial_positions()

    def get_ray_statuses(self) -> List[str]:
        return self.population.statuses()

    def get_trail_data(self) -> List[List[Tuple[float, float]]]:
        """Recent screen positions per ray, oldest first, at most
        ``config.trail_length`` each. Emptied by reset."""
        return self.population.trail_data()

    def get_black_hole_position(self) -> Tuple[float, float]:
        return self.black_hole.position

    def get_horizon_radius(self) -> float:
        """Event horizon radius in screen pixels."""
        return self.black_hole.rs / self.viewport.metres_per_pixel

    def get_ray_count(self) -> int:
        return len(self.population)

    def status_counts(self) -> Dict[RayStatus, int]:
        return self.population.counts()

    def get_simulation_info(self) -> str:
        counts = self.status_counts()
        return (
            f"Gargantua Black Hole Simulation v{VERSION}\n"
            f"Mass: {self.black_hole.mass:.6g} kg\n"
            f"Schwarzschild Radius: {self.black_hole.rs:.6g} meters ({self.get_horizon_radius():.1f} px)\n"
            f"Rays: {len(self.population)} "
            f"(active {counts[RayStatus.ACTIVE]}, captured {counts[RayStatus.CAPTURED]}, "
            f"escaped {counts[RayStatus.ESCAPED]})\n"
            f"Frame: {self.frame}"
        )

    # -- lifecycle ---------------------------------------------------------

    def close(self) -> None:
        if not self._closed:
            self._executor.close()
            self._closed = True
            logger.info("Closed simulation")

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
