"""Circuit router — graph mutations, pointer interaction and queries."""

from __future__ import annotations

from fastapi import APIRouter, Depends

from piezosim.schemas.circuit import (
    CircuitState,
    ComponentInstance,
    ConnectionPointRef,
    Wire,
)
from piezosim.schemas.requests import (
    AddComponentRequest,
    ConnectRequest,
    MoveComponentRequest,
    PointerRequest,
    RemovedResponse,
    SelectRequest,
)
from piezosim.services.session import SimulationSession, get_session

router = APIRouter()


@router.get("/state", response_model=CircuitState)
async def get_state(session: SimulationSession = Depends(get_session)):
    """Full read model for the renderer."""
    return session.snapshot()


# ─── Components ───


@router.post("/components", response_model=ComponentInstance, status_code=201)
async def add_component(
    data: AddComponentRequest,
    session: SimulationSession = Depends(get_session),
):
    return session.add_component(data.kind, data.x, data.y)


@router.put("/components/{component_id}/position", response_model=ComponentInstance)
async def move_component(
    component_id: str,
    data: MoveComponentRequest,
    session: SimulationSession = Depends(get_session),
):
    return session.move_component(component_id, data.x, data.y)


@router.delete("/components/{component_id}", status_code=204)
async def remove_component(
    component_id: str,
    session: SimulationSession = Depends(get_session),
):
    """Remove a component and every wire attached to it."""
    session.remove_component(component_id)


@router.post("/select", response_model=CircuitState)
async def select_component(
    data: SelectRequest,
    session: SimulationSession = Depends(get_session),
):
    session.select(data.component_id)
    return session.snapshot()


@router.post("/clear", response_model=CircuitState)
async def clear_circuit(session: SimulationSession = Depends(get_session)):
    session.clear_circuit()
    return session.snapshot()


# ─── Wires ───


@router.post("/wires", response_model=Wire, status_code=201)
async def connect(
    data: ConnectRequest,
    session: SimulationSession = Depends(get_session),
):
    return session.connect(data.start, data.end)


@router.delete("/wires/{wire_id}", status_code=204)
async def disconnect(
    wire_id: str,
    session: SimulationSession = Depends(get_session),
):
    """Remove a wire. Unknown ids are ignored."""
    session.disconnect(wire_id)


@router.post("/wire-mode", response_model=CircuitState)
async def toggle_wire_mode(session: SimulationSession = Depends(get_session)):
    session.toggle_wire_mode()
    return session.snapshot()


# ─── Pointer ───


@router.post("/click", response_model=CircuitState)
async def click(
    data: PointerRequest,
    session: SimulationSession = Depends(get_session),
):
    session.click(data.x, data.y)
    return session.snapshot()


@router.post("/pointer", response_model=CircuitState)
async def pointer_move(
    data: PointerRequest,
    session: SimulationSession = Depends(get_session),
):
    session.pointer_move(data.x, data.y)
    return session.snapshot()


@router.post("/remove-at", response_model=RemovedResponse)
async def remove_at(
    data: PointerRequest,
    session: SimulationSession = Depends(get_session),
):
    wire, component = session.remove_at(data.x, data.y)
    return RemovedResponse(wire=wire, component=component)


# ─── Queries ───


@router.get("/query/point", response_model=ConnectionPointRef | None)
async def query_point(
    x: float,
    y: float,
    session: SimulationSession = Depends(get_session),
):
    return session.graph.connection_point_at(x, y)


@router.get("/query/component", response_model=ComponentInstance | None)
async def query_component(
    x: float,
    y: float,
    session: SimulationSession = Depends(get_session),
):
    return session.graph.component_at(x, y)


@router.get("/query/wire", response_model=Wire | None)
async def query_wire(
    x: float,
    y: float,
    session: SimulationSession = Depends(get_session),
):
    return session.graph.wire_at(x, y)
