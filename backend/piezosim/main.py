"""Piezo Harvest Simulator — backend for the browser circuit builder.

Backend responsibilities:
  1. Component catalog
  2. Circuit graph editing and spatial queries
  3. Staged harvesting simulation (piezo → rectifier → storage → regulator → load)
  4. Piezo pulse scheduling and auto-stepping
  5. Frame stream (WebSocket) for the renderer

Drawing, charts and export stay in the frontend.
"""

import logging
from contextlib import asynccontextmanager

import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from piezosim.config import get_settings
from piezosim.errors import (
    CircuitError,
    DuplicateWire,
    MissingReference,
    NotAGenerator,
    SelfConnection,
    SimulationNotRunning,
    UnknownKind,
)
from piezosim.routers import catalog, circuit, frames, simulation
from piezosim.services.session import get_session

logger = logging.getLogger(__name__)

ERROR_STATUS = {
    UnknownKind: 404,
    MissingReference: 404,
    SelfConnection: 409,
    DuplicateWire: 409,
    SimulationNotRunning: 409,
    NotAGenerator: 409,
}


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Shutdown: cancel every simulation timer."""
    yield
    get_session().stop_simulation()


async def circuit_error_handler(request: Request, exc: CircuitError) -> JSONResponse:
    status_code = ERROR_STATUS.get(type(exc), 400)
    logger.warning("%s %s rejected: %s", request.method, request.url.path, exc.message)
    return JSONResponse(status_code=status_code, content=exc.to_dict())


def create_app() -> FastAPI:
    settings = get_settings()
    logging.basicConfig(level=settings.log_level)

    application = FastAPI(
        title=settings.app_name,
        version="0.1.0",
        description=(
            "Piezoelectric energy-harvesting circuit simulator.\n\n"
            "Backend owns the circuit graph and the staged simulation; "
            "the frontend renders frames and sends pointer actions."
        ),
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    application.add_middleware(
        CORSMiddleware,
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    application.add_exception_handler(CircuitError, circuit_error_handler)

    # ─── Component catalog ───
    application.include_router(
        catalog.router, prefix="/api/catalog", tags=["Catalog"]
    )

    # ─── Circuit editing + queries ───
    application.include_router(
        circuit.router, prefix="/api/circuit", tags=["Circuit"]
    )

    # ─── Simulation control ───
    application.include_router(
        simulation.router, prefix="/api/simulation", tags=["Simulation"]
    )

    # ─── Frame stream (WebSocket) ───
    application.include_router(frames.router, prefix="/api/frames", tags=["Frames"])

    return application


app = create_app()


@app.get("/health")
async def health_check():
    return {"status": "ok", "service": "piezo-harvest-sim", "version": "0.1.0"}


def run() -> None:
    settings = get_settings()
    uvicorn.run(
        "piezosim.main:app",
        host=settings.backend_host,
        port=settings.backend_port,
        reload=settings.reload,
    )
