"""Circuit graph — placed components, wires and the current selection.

Owns id assignment and grid placement. Wire endpoints are typed
(component id, point id) references with cached coordinates, so removing
or moving a component is resolved by id rather than object identity.
"""

from __future__ import annotations

import itertools
import logging

from piezosim.catalog.registry import spec_for
from piezosim.config import get_settings
from piezosim.errors import DuplicateWire, MissingReference, SelfConnection
from piezosim.graph import geometry
from piezosim.schemas.catalog import Polarity
from piezosim.schemas.circuit import (
    ComponentInstance,
    ConnectionPoint,
    ConnectionPointRef,
    Wire,
    WireEndpoint,
)

logger = logging.getLogger(__name__)


def wire_polarity(a: Polarity, b: Polarity) -> Polarity:
    """AC if either end is AC, else negative if either end is, else positive."""
    if Polarity.AC in (a, b):
        return Polarity.AC
    if Polarity.NEGATIVE in (a, b):
        return Polarity.NEGATIVE
    return Polarity.POSITIVE


class CircuitGraph:
    def __init__(
        self,
        grid_unit: float | None = None,
        point_hit_radius: float | None = None,
        wire_hit_tolerance: float | None = None,
    ):
        settings = get_settings()
        self.grid_unit = settings.grid_unit if grid_unit is None else grid_unit
        self.point_hit_radius = (
            settings.point_hit_radius if point_hit_radius is None else point_hit_radius
        )
        self.wire_hit_tolerance = (
            settings.wire_hit_tolerance if wire_hit_tolerance is None else wire_hit_tolerance
        )

        self.components: list[ComponentInstance] = []
        self.wires: list[Wire] = []
        self.selected_id: str | None = None

        self._component_ids = itertools.count(1)
        self._wire_ids = itertools.count(1)

    # ─── Lookup ───

    def get_component(self, component_id: str) -> ComponentInstance | None:
        for component in self.components:
            if component.id == component_id:
                return component
        return None

    def require_component(self, component_id: str) -> ComponentInstance:
        component = self.get_component(component_id)
        if component is None:
            raise MissingReference(f"Component '{component_id}' not found")
        return component

    def get_wire(self, wire_id: str) -> Wire | None:
        for wire in self.wires:
            if wire.id == wire_id:
                return wire
        return None

    def wires_touching(self, component_id: str) -> list[Wire]:
        return [w for w in self.wires if w.touches(component_id)]

    # ─── Mutation ───

    def add_component(self, kind: str, x: float, y: float) -> ComponentInstance:
        spec = spec_for(kind)
        x = geometry.snap(x, self.grid_unit)
        y = geometry.snap(y, self.grid_unit)

        component = ComponentInstance(
            id=f"comp_{next(self._component_ids)}",
            kind=spec.kind,
            role=spec.role,
            x=x,
            y=y,
            width=spec.width,
            height=spec.height,
            label=spec.label,
            properties=dict(spec.parameters),
            connection_points=[
                ConnectionPoint(
                    id=p.id,
                    offset_x=p.x,
                    offset_y=p.y,
                    polarity=p.polarity,
                    x=x + p.x,
                    y=y + p.y,
                )
                for p in spec.connection_points
            ],
        )
        self.components.append(component)
        logger.info("Added %s as %s at (%s, %s)", kind, component.id, x, y)
        return component

    def move_component(self, component_id: str, x: float, y: float) -> ComponentInstance:
        component = self.require_component(component_id)
        component.x = geometry.snap(x, self.grid_unit)
        component.y = geometry.snap(y, self.grid_unit)

        for point in component.connection_points:
            point.x = component.x + point.offset_x
            point.y = component.y + point.offset_y

        for wire in self.wires:
            for end in (wire.start, wire.end):
                if end.component_id != component.id:
                    continue
                point = component.point(end.point_id)
                end.x = point.x
                end.y = point.y

        return component

    def remove_component(self, component_id: str) -> ComponentInstance:
        component = self.require_component(component_id)
        self.wires = [w for w in self.wires if not w.touches(component_id)]
        self.components = [c for c in self.components if c.id != component_id]

        if self.selected_id == component_id:
            self.selected_id = None

        logger.info("Removed %s (%s)", component_id, component.kind)
        return component

    def _resolve(self, ref: ConnectionPointRef) -> WireEndpoint:
        component = self.require_component(ref.component_id)
        point = component.point(ref.point_id)
        if point is None:
            raise MissingReference(
                f"{component.id} ({component.kind}) has no connection "
                f"point '{ref.point_id}'"
            )
        return WireEndpoint(
            component_id=component.id,
            point_id=point.id,
            polarity=point.polarity,
            x=point.x,
            y=point.y,
        )

    def connect(self, a: ConnectionPointRef, b: ConnectionPointRef) -> Wire:
        start = self._resolve(a)
        end = self._resolve(b)

        if start.component_id == end.component_id:
            raise SelfConnection(start.component_id)

        for wire in self.wires:
            if wire.joins(start.key(), end.key()):
                raise DuplicateWire(wire.id)

        wire = Wire(
            id=f"wire_{next(self._wire_ids)}",
            start=start,
            end=end,
            polarity=wire_polarity(start.polarity, end.polarity),
        )
        self.wires.append(wire)
        logger.info(
            "Created %s wire %s: %s.%s → %s.%s",
            wire.polarity.value,
            wire.id,
            start.component_id,
            start.point_id,
            end.component_id,
            end.point_id,
        )
        return wire

    def disconnect(self, wire_id: str) -> Wire | None:
        wire = self.get_wire(wire_id)
        if wire is not None:
            self.wires = [w for w in self.wires if w.id != wire_id]
        return wire

    def select(self, component_id: str | None) -> ComponentInstance | None:
        if component_id is None:
            self.selected_id = None
            return None
        component = self.require_component(component_id)
        self.selected_id = component.id
        return component

    def clear(self) -> None:
        self.components = []
        self.wires = []
        self.selected_id = None

    # ─── Queries ───

    def connection_point_at(self, x: float, y: float) -> ConnectionPointRef | None:
        return geometry.connection_point_at(
            self.components, x, y, self.point_hit_radius
        )

    def component_at(self, x: float, y: float) -> ComponentInstance | None:
        return geometry.component_at(self.components, x, y)

    def wire_at(self, x: float, y: float) -> Wire | None:
        return geometry.wire_at(self.wires, x, y, self.wire_hit_tolerance)
