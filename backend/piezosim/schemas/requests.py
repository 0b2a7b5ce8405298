"""Request bodies for the circuit and simulation routers."""

from __future__ import annotations

from pydantic import BaseModel, Field

from piezosim.schemas.circuit import ComponentInstance, ConnectionPointRef, Wire


# ─── Request Schemas ───


class AddComponentRequest(BaseModel):
    kind: str = Field(..., min_length=1)
    x: float
    y: float


class MoveComponentRequest(BaseModel):
    x: float
    y: float


class ConnectRequest(BaseModel):
    start: ConnectionPointRef
    end: ConnectionPointRef


class SelectRequest(BaseModel):
    component_id: str | None = None


class PointerRequest(BaseModel):
    x: float
    y: float


class ActivateRequest(BaseModel):
    pressure: float | None = Field(
        default=None,
        ge=0.0,
        le=1.0,
        description="Fraction of peak voltage; session pressure when omitted",
    )


class PressureRequest(BaseModel):
    pressure: float = Field(..., ge=0.0, le=1.0)


class AutoStepRequest(BaseModel):
    frequency_hz: float | None = Field(default=None, gt=0.0, le=50.0)


# ─── Response Schemas ───


class RemovedResponse(BaseModel):
    wire: Wire | None = None
    component: ComponentInstance | None = None


class TemplateSummary(BaseModel):
    name: str
    component_count: int
    wire_count: int
