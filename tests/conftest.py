import pytest

from lensing_core import Simulation, SimulationConfig


@pytest.fixture
def sim():
    """800x600 viewport with 50 rays, integrated on the calling thread."""
    with Simulation(800, 600, 50, SimulationConfig(workers=1)) as s:
        yield s


@pytest.fixture
def threaded_config():
    return SimulationConfig(workers=4, parallel_threshold=1)
