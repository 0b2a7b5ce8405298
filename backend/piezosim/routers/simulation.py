"""Simulation router — start/stop, generator activation, stepping, templates."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from piezosim.schemas.circuit import CircuitState, ComponentInstance
from piezosim.schemas.requests import (
    ActivateRequest,
    AutoStepRequest,
    PressureRequest,
    TemplateSummary,
)
from piezosim.services.session import SimulationSession, get_session
from piezosim.services.templates import TEMPLATES

router = APIRouter()


@router.post("/start", response_model=CircuitState)
async def start_simulation(session: SimulationSession = Depends(get_session)):
    session.start_simulation()
    return session.snapshot()


@router.post("/stop", response_model=CircuitState)
async def stop_simulation(session: SimulationSession = Depends(get_session)):
    """Cancel every timer and reset transient electrical state."""
    session.stop_simulation()
    return session.snapshot()


@router.post("/generators/{component_id}/activate", response_model=ComponentInstance)
async def activate_generator(
    component_id: str,
    data: ActivateRequest | None = None,
    session: SimulationSession = Depends(get_session),
):
    pressure = data.pressure if data is not None else None
    return session.activate_generator(component_id, pressure)


@router.post("/step", response_model=CircuitState)
async def manual_step(session: SimulationSession = Depends(get_session)):
    """Press every generator once."""
    session.manual_step()
    return session.snapshot()


@router.post("/auto-step", response_model=CircuitState)
async def start_auto_step(
    data: AutoStepRequest | None = None,
    session: SimulationSession = Depends(get_session),
):
    session.start_auto_step(data.frequency_hz if data is not None else None)
    return session.snapshot()


@router.delete("/auto-step", response_model=CircuitState)
async def stop_auto_step(session: SimulationSession = Depends(get_session)):
    session.stop_auto_step()
    return session.snapshot()


@router.put("/pressure", response_model=CircuitState)
async def set_pressure(
    data: PressureRequest,
    session: SimulationSession = Depends(get_session),
):
    session.set_pressure(data.pressure)
    return session.snapshot()


@router.get("/templates", response_model=list[TemplateSummary])
async def list_templates():
    return [
        TemplateSummary(
            name=t.name,
            component_count=len(t.components),
            wire_count=len(t.wires),
        )
        for t in TEMPLATES.values()
    ]


@router.post("/templates/{name}", response_model=CircuitState)
async def load_template(
    name: str,
    session: SimulationSession = Depends(get_session),
):
    """Replace the circuit with a named template."""
    session.load_template(name)
    return session.snapshot()
