from .constants import c, G, schwarzschild_radius, critical_impact_parameter
from .errors import (SimulationError, InvalidMass, InvalidRayCount, InvalidViewport,
                     NumericalInstability, SimulationClosed)
from .models import BlackHole, RayState, RayStatus, SpawnPoint
from .integrators import advance, launch_ray, integrate_trajectory
from .config import SimulationConfig
from .simulation import Simulation
__all__ = ["c","G","schwarzschild_radius","critical_impact_parameter",
           "SimulationError","InvalidMass","InvalidRayCount","InvalidViewport",
           "NumericalInstability","SimulationClosed",
           "BlackHole","RayState","RayStatus","SpawnPoint",
           "advance","launch_ray","integrate_trajectory",
           "SimulationConfig","Simulation"]
