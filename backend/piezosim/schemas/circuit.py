from __future__ import annotations

from enum import Enum
from pydantic import BaseModel, Field

from piezosim.schemas.catalog import Polarity, StageRole


class PulseState(str, Enum):
    IDLE = "idle"
    ACTIVATED = "activated"
    DECAYING = "decaying"


class ElectricalState(BaseModel):
    voltage: float = 0.0
    current: float = 0.0  # mA
    active: bool = False
    stored_energy: float = 0.0  # J
    activated_at: float | None = None
    pulse: PulseState = PulseState.IDLE


class ConnectionPoint(BaseModel):
    id: str
    offset_x: float
    offset_y: float
    polarity: Polarity
    x: float  # absolute canvas coordinates
    y: float


class ComponentInstance(BaseModel):
    id: str
    kind: str
    role: StageRole | None = None
    x: float
    y: float
    width: float
    height: float
    label: str = ""
    properties: dict[str, float] = Field(default_factory=dict)
    connection_points: list[ConnectionPoint] = Field(default_factory=list)
    state: ElectricalState = Field(default_factory=ElectricalState)

    def point(self, point_id: str) -> ConnectionPoint | None:
        for point in self.connection_points:
            if point.id == point_id:
                return point
        return None

    def contains(self, x: float, y: float) -> bool:
        return (
            self.x <= x <= self.x + self.width
            and self.y <= y <= self.y + self.height
        )


class ConnectionPointRef(BaseModel):
    """A (component, point) pair, optionally carrying resolved geometry."""

    component_id: str
    point_id: str
    polarity: Polarity | None = None
    x: float | None = None
    y: float | None = None

    def key(self) -> tuple[str, str]:
        return (self.component_id, self.point_id)


class WireEndpoint(BaseModel):
    component_id: str
    point_id: str
    polarity: Polarity
    x: float
    y: float

    def key(self) -> tuple[str, str]:
        return (self.component_id, self.point_id)


class Wire(BaseModel):
    id: str
    start: WireEndpoint
    end: WireEndpoint
    polarity: Polarity
    active: bool = False

    def touches(self, component_id: str) -> bool:
        return (
            self.start.component_id == component_id
            or self.end.component_id == component_id
        )

    def joins(self, a: tuple[str, str], b: tuple[str, str]) -> bool:
        """True when this wire connects the unordered endpoint pair {a, b}."""
        ends = (self.start.key(), self.end.key())
        return ends == (a, b) or ends == (b, a)


class PreviewLine(BaseModel):
    start_x: float
    start_y: float
    end_x: float
    end_y: float


class Measurements(BaseModel):
    piezo_voltage: float = 0.0
    rectifier_voltage: float = 0.0
    storage_voltage: float = 0.0
    regulator_voltage: float = 0.0
    load_current: float = 0.0  # mA
    power_generated: float = 0.0  # W
    energy_stored: float = 0.0  # stored joules x 1e6
    unmodeled_component_ids: list[str] = Field(default_factory=list)


class CircuitState(BaseModel):
    """Everything the renderer needs to draw one frame."""

    components: list[ComponentInstance] = Field(default_factory=list)
    wires: list[Wire] = Field(default_factory=list)
    selected_id: str | None = None
    wire_mode: bool = False
    wire_start: ConnectionPointRef | None = None
    preview_wire: PreviewLine | None = None
    hovered_point: ConnectionPointRef | None = None
    running: bool = False
    pressure: float = 1.0
    auto_step_hz: float = 1.0
    auto_stepping: bool = False
    measurements: Measurements = Field(default_factory=Measurements)
