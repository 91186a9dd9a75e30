import logging
import os
import threading
import uuid
from contextlib import asynccontextmanager
from typing import Dict, Optional

from fastapi import FastAPI, HTTPException, Request, Response
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from lensing_core.config import SimulationConfig
from lensing_core.constants import DEFAULT_RAY_COUNT
from lensing_core.errors import SimulationError
from lensing_core.integrators import integrate_trajectory
from lensing_core.models import BlackHole
from lensing_core.simulation import Simulation

LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")
MAX_SESSIONS = int(os.getenv("LENSING_MAX_SESSIONS", "16"))

logging.basicConfig(level=LOG_LEVEL, format='%(asctime)s %(levelname)s: %(message)s')
logger = logging.getLogger(__name__)


class Session:
    def __init__(self, sim: Simulation):
        self.sim = sim
        self.lock = threading.Lock()


class SessionRegistry:
    """Live simulations by id; each one is driven under its own lock."""

    def __init__(self, limit: int):
        self.limit = limit
        self._sessions: Dict[str, Session] = {}
        self._lock = threading.Lock()

    def create(self, width: float, height: float, ray_count: int) -> str:
        with self._lock:
            if len(self._sessions) >= self.limit:
                raise HTTPException(status_code=503, detail=f"session limit ({self.limit}) reached")
        sim = Simulation(width, height, ray_count, SimulationConfig.from_env())
        sid = uuid.uuid4().hex
        with self._lock:
            if len(self._sessions) >= self.limit:
                sim.close()
                raise HTTPException(status_code=503, detail=f"session limit ({self.limit}) reached")
            self._sessions[sid] = Session(sim)
        logger.info("Opened session %s", sid)
        return sid

    def get(self, sid: str) -> Session:
        with self._lock:
            session = self._sessions.get(sid)
        if session is None:
            raise HTTPException(status_code=404, detail=f"unknown session {sid}")
        return session

    def close(self, sid: str) -> None:
        with self._lock:
            session = self._sessions.pop(sid, None)
        if session is None:
            raise HTTPException(status_code=404, detail=f"unknown session {sid}")
        with session.lock:
            session.sim.close()
        logger.info("Closed session %s", sid)

    def close_all(self) -> None:
        with self._lock:
            sessions, self._sessions = self._sessions, {}
        for session in sessions.values():
            with session.lock:
                session.sim.close()

    def __len__(self) -> int:
        with self._lock:
            return len(self._sessions)


sessions = SessionRegistry(MAX_SESSIONS)


@asynccontextmanager
async def lifespan(app: FastAPI):
    yield
    sessions.close_all()


app = FastAPI(title="Lensing Simulation API", lifespan=lifespan)
app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_methods=["*"],
    allow_headers=["*"],
)


@app.exception_handler(SimulationError)
async def simulation_error(request: Request, exc: SimulationError):
    return JSONResponse(status_code=422, content={"detail": str(exc), "error": type(exc).__name__})


class BHReq(BaseModel):
    mass: float

class SessionReq(BaseModel):
    width: float
    height: float
    ray_count: int = DEFAULT_RAY_COUNT

class UpdateReq(BaseModel):
    frames: int = Field(1, ge=1, le=10_000)

class RayCountReq(BaseModel):
    count: int

class IntegrateReq(BaseModel):
    mass: float
    x: float; y: float
    vx: float; vy: float
    steps: int = Field(1000, ge=1, le=200_000)
    dlam: float = Field(1.0, gt=0)
    r_max: Optional[float] = Field(None, gt=0)


@app.post("/derived")
def derived(req: BHReq):
    bh = BlackHole(mass=req.mass)
    return {"mass": bh.mass, "schwarzschild_radius": bh.rs}

@app.post("/integrate")
def integrate(req: IntegrateReq):
    bh = BlackHole(mass=req.mass)
    try:
        return integrate_trajectory(bh, req.x, req.y, req.vx, req.vy, req.steps, req.dlam, req.r_max)
    except ValueError as exc:
        raise HTTPException(status_code=422, detail=str(exc))


@app.post("/sessions", status_code=201)
def create_session(req: SessionReq):
    sid = sessions.create(req.width, req.height, req.ray_count)
    session = sessions.get(sid)
    return {"session_id": sid, "ray_count": session.sim.get_ray_count()}

@app.delete("/sessions/{sid}", status_code=204)
def delete_session(sid: str):
    sessions.close(sid)
    return Response(status_code=204)

@app.post("/sessions/{sid}/update")
def update(sid: str, req: UpdateReq = UpdateReq()):
    session = sessions.get(sid)
    with session.lock:
        for _ in range(req.frames):
            session.sim.update()
        return {"frame": session.sim.frame}

@app.post("/sessions/{sid}/reset")
def reset(sid: str):
    session = sessions.get(sid)
    with session.lock:
        session.sim.reset()
        return {"frame": session.sim.frame}

@app.post("/sessions/{sid}/mass")
def update_mass(sid: str, req: BHReq):
    session = sessions.get(sid)
    with session.lock:
        session.sim.update_black_hole_mass(req.mass)
        bh = session.sim.black_hole
        return {"mass": bh.mass, "schwarzschild_radius": bh.rs}

@app.post("/sessions/{sid}/ray-count")
def update_ray_count(sid: str, req: RayCountReq):
    session = sessions.get(sid)
    with session.lock:
        session.sim.update_ray_count(req.count)
        return {"ray_count": session.sim.get_ray_count()}

@app.get("/sessions/{sid}/rays")
def rays(sid: str):
    session = sessions.get(sid)
    with session.lock:
        sim = session.sim
        return {"positions": sim.get_ray_positions(), "statuses": sim.get_ray_statuses(),
                "trails": sim.get_trail_data(), "frame": sim.frame}

@app.get("/sessions/{sid}/rays/initial")
def initial_rays(sid: str):
    session = sessions.get(sid)
    with session.lock:
        return {"positions": session.sim.get_initial_ray_positions()}

@app.get("/sessions/{sid}/black-hole")
def black_hole(sid: str):
    session = sessions.get(sid)
    with session.lock:
        sim = session.sim
        return {
            "position": list(sim.get_black_hole_position()),
            "horizon_radius": sim.get_horizon_radius(),
            "mass": sim.black_hole.mass,
            "schwarzschild_radius": sim.black_hole.rs,
        }

@app.get("/sessions/{sid}/info")
def info(sid: str):
    session = sessions.get(sid)
    with session.lock:
        sim = session.sim
        return {"info": sim.get_simulation_info(), "ray_count": sim.get_ray_count(), "frame": sim.frame}
