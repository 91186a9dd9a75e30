import math
import numbers
from collections import Counter, deque
from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, List, Sequence, Tuple

from .constants import HORIZON_SCREEN_FRACTION
from .errors import InvalidViewport
from .integrators import launch_ray
from .models import RayState, RayStatus, SpawnPoint


@dataclass(frozen=True)
class Viewport:
    """Screen rectangle and the fixed pixel-to-metre scale chosen for it."""
    width: float
    height: float
    metres_per_pixel: float

    @classmethod
    def fit(cls, width, height, reference_rs: float) -> "Viewport":
        """Scale so that a horizon of ``reference_rs`` metres covers
        HORIZON_SCREEN_FRACTION of the short side."""
        for v in (width, height):
            if isinstance(v, bool) or not isinstance(v, numbers.Real) or not math.isfinite(v) or v <= 0:
                raise InvalidViewport(width, height)
        width, height = float(width), float(height)
        # denormal sizes underflow to a zero short side
        short = HORIZON_SCREEN_FRACTION * min(width, height)
        if short <= 0.0:
            raise InvalidViewport(width, height)
        scale = reference_rs / short
        if not math.isfinite(scale) or scale <= 0.0:
            raise InvalidViewport(width, height)
        return cls(width, height, scale)

    @property
    def center(self) -> Tuple[float, float]:
        return self.width / 2.0, self.height / 2.0

    @property
    def half_diagonal(self) -> float:
        return math.hypot(self.width, self.height) / 2.0 * self.metres_per_pixel

    def to_physical(self, px: float, py: float) -> Tuple[float, float]:
        cx, cy = self.center
        return (px - cx) * self.metres_per_pixel, (py - cy) * self.metres_per_pixel

    def to_screen(self, x: float, y: float) -> Tuple[float, float]:
        cx, cy = self.center
        return cx + x / self.metres_per_pixel, cy + y / self.metres_per_pixel


def spawn_points(count: int, viewport: Viewport) -> List[SpawnPoint]:
    """Ray ``i`` of ``count`` starts on the left edge at row ``(i + 1/2) * height / count``
    and travels in +x, so its impact parameter is its vertical offset from the
    centre in metres."""
    step = viewport.height / count
    return [SpawnPoint(i, 0.0, (i + 0.5) * step, 1.0, 0.0) for i in range(count)]


class RayPopulation:
    """Rays in index order with their spawn snapshot and a bounded screen-space
    trail per ray. Trails grow only through ``store`` and start empty."""

    def __init__(self, viewport: Viewport, count: int, rs: float, trail_length: int = 64):
        self.viewport = viewport
        self.trail_length = max(0, int(trail_length))
        self.spawns: List[SpawnPoint] = []
        self.initial: List[RayState] = []
        self._record(count, rs)
        self.rays: List[RayState] = list(self.initial)
        self.trails: List[deque] = [self._trail() for _ in self.rays]

    def _launch(self, spawn: SpawnPoint, rs: float) -> RayState:
        x, y = self.viewport.to_physical(spawn.x, spawn.y)
        return launch_ray(spawn.index, x, y, spawn.vx, spawn.vy, rs)

    def _trail(self) -> deque:
        return deque(maxlen=self.trail_length)

    def _record(self, count: int, rs: float) -> None:
        self.spawns = spawn_points(count, self.viewport)
        self.initial = [self._launch(s, rs) for s in self.spawns]

    def __len__(self) -> int:
        return len(self.rays)

    def __iter__(self) -> Iterator[RayState]:
        return iter(self.rays)

    def __getitem__(self, index: int) -> RayState:
        return self.rays[index]

    def active_indices(self) -> List[int]:
        return [i for i, ray in enumerate(self.rays) if ray.active]

    def store(self, indices: Sequence[int], states: Iterable[RayState]) -> None:
        for i, state in zip(indices, states):
            self.rays[i] = state
            self.trails[i].append(self.viewport.to_screen(*state.cartesian()))

    def reset(self, rs: float) -> None:
        self.rays = [self._launch(s, rs) for s in self.spawns]
        self.trails = [self._trail() for _ in self.rays]

    def resize(self, count: int, rs: float) -> None:
        """Regenerate the spawn snapshot for ``count`` rays, keep the current
        state of surviving rays and launch any new tail rays."""
        self._record(count, rs)
        kept = self.rays[:count]
        self.rays = kept + self.initial[len(kept):]
        self.trails = self.trails[:count] + [self._trail() for _ in range(len(kept), count)]

    def _flatten(self, rays: Iterable[RayState]) -> List[float]:
        out: List[float] = []
        for ray in rays:
            out.extend(self.viewport.to_screen(*ray.cartesian()))
        return out

    def positions(self) -> List[float]:
        return self._flatten(self.rays)

    def initial_positions(self) -> List[float]:
        return self._flatten(self.initial)

    def trail_data(self) -> List[List[Tuple[float, float]]]:
        return [list(trail) for trail in self.trails]

    def statuses(self) -> List[str]:
        return [ray.status.value for ray in self.rays]

    def counts(self) -> Dict[RayStatus, int]:
        tally = Counter(ray.status for ray in self.rays)
        return {status: tally.get(status, 0) for status in RayStatus}
