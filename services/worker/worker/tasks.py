import logging
import os
from celery import Celery
from lensing_core.integrators import integrate_trajectory
from lensing_core.models import BlackHole

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://redis:6379/0")
CELERY_BACKEND_URL = os.getenv("CELERY_BACKEND_URL", "redis://redis:6379/1")

logger = logging.getLogger(__name__)

celery = Celery("lensing", broker=CELERY_BROKER_URL, backend=CELERY_BACKEND_URL)

@celery.task
def trace_ray_task(mass, x, y, vx, vy, steps=50000, dlam=1.0, r_max=None):
    """Trace one ray from ``(x, y)`` metres along ``(vx, vy)`` until it is
    captured, escapes past ``r_max`` or runs out of steps."""
    bh = BlackHole(mass=mass)
    result = integrate_trajectory(bh, x, y, vx, vy, steps, dlam, r_max)
    logger.info("Traced ray b=%g m: %s after %d steps", result["impact_parameter"], result["status"], result["steps"])
    return result
