import os
from dataclasses import dataclass, field

def _default_workers() -> int:
    return min(4, os.cpu_count() or 1)

@dataclass(frozen=True)
class SimulationConfig:
    workers: int = field(default_factory=_default_workers)
    step_pixels: float = 2.0         # screen distance a far-field ray covers per frame
    escape_factor: float = 4.0       # escape radius in viewport half-diagonals
    parallel_threshold: int = 64     # fewer active rays than this run inline
    trail_length: int = 64           # screen points kept per ray

    @classmethod
    def from_env(cls) -> "SimulationConfig":
        return cls(
            workers=int(os.getenv("LENSING_WORKERS", _default_workers())),
            step_pixels=float(os.getenv("LENSING_STEP_PIXELS", 2.0)),
            escape_factor=float(os.getenv("LENSING_ESCAPE_FACTOR", 4.0)),
            parallel_threshold=int(os.getenv("LENSING_PARALLEL_THRESHOLD", 64)),
            trail_length=int(os.getenv("LENSING_TRAIL_LENGTH", 64)),
        )
