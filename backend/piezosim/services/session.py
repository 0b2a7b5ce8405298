"""Simulation session — one circuit, its snapshot and its scheduled work.

Three kinds of scheduled work mutate the graph, each an asyncio task whose
handle is kept next to ``running``:
  1. the render loop, publishing a frame per frame period while running
  2. the auto-step timer, re-activating every generator at a fixed rate
  3. one decay task per pulsing generator

Every mutation and every engine pass is synchronous, so on the single
event loop thread a pass always finishes before the next mutation starts.
"""

from __future__ import annotations

import asyncio
import logging
import time
from functools import lru_cache
from typing import Awaitable, Callable

from piezosim.config import Settings, get_settings
from piezosim.errors import NotAGenerator, SelfConnection, SimulationNotRunning
from piezosim.graph.circuit_graph import CircuitGraph
from piezosim.schemas.catalog import StageRole
from piezosim.schemas.circuit import (
    CircuitState,
    ComponentInstance,
    ConnectionPointRef,
    ElectricalState,
    Measurements,
    PreviewLine,
    PulseState,
    Wire,
)
from piezosim.services.templates import apply_template, get_template
from piezosim.simulation import engine, piezo, roles

logger = logging.getLogger(__name__)

FrameListener = Callable[[CircuitState], Awaitable[None]]


class SimulationSession:
    def __init__(self, settings: Settings | None = None):
        self.settings = settings or get_settings()
        self.graph = CircuitGraph(
            grid_unit=self.settings.grid_unit,
            point_hit_radius=self.settings.point_hit_radius,
            wire_hit_tolerance=self.settings.wire_hit_tolerance,
        )
        self.measurements = Measurements()
        self.running = False
        self.pressure = self.settings.default_pressure
        self.auto_step_hz = self.settings.default_auto_step_hz

        # Wire-mode interaction state, read by the renderer
        self.wire_mode = False
        self.wire_start: ConnectionPointRef | None = None
        self.preview_wire: PreviewLine | None = None
        self.hovered_point: ConnectionPointRef | None = None

        self._render_task: asyncio.Task | None = None
        self._auto_step_task: asyncio.Task | None = None
        self._decay_tasks: dict[str, asyncio.Task] = {}
        self._frame_listeners: list[FrameListener] = []

    # ─── Read Model ───

    @property
    def auto_stepping(self) -> bool:
        return self._auto_step_task is not None and not self._auto_step_task.done()

    def decaying_ids(self) -> list[str]:
        return [cid for cid, task in self._decay_tasks.items() if not task.done()]

    def snapshot(self) -> CircuitState:
        return CircuitState(
            components=[c.model_copy(deep=True) for c in self.graph.components],
            wires=[w.model_copy(deep=True) for w in self.graph.wires],
            selected_id=self.graph.selected_id,
            wire_mode=self.wire_mode,
            wire_start=self.wire_start,
            preview_wire=self.preview_wire,
            hovered_point=self.hovered_point,
            running=self.running,
            pressure=self.pressure,
            auto_step_hz=self.auto_step_hz,
            auto_stepping=self.auto_stepping,
            measurements=self.measurements.model_copy(deep=True),
        )

    def simulate(self) -> Measurements:
        self.measurements = engine.simulate(self.graph, self.settings)
        return self.measurements

    # ─── Graph Mutations ───

    def add_component(self, kind: str, x: float, y: float) -> ComponentInstance:
        component = self.graph.add_component(kind, x, y)
        self.simulate()
        return component

    def move_component(self, component_id: str, x: float, y: float) -> ComponentInstance:
        component = self.graph.move_component(component_id, x, y)
        if self.wire_start is not None and self.wire_start.component_id == component_id:
            point = component.point(self.wire_start.point_id)
            self.wire_start = self.wire_start.model_copy(update={"x": point.x, "y": point.y})
            if self.preview_wire is not None:
                self.preview_wire = self.preview_wire.model_copy(
                    update={"start_x": point.x, "start_y": point.y}
                )
        if self.hovered_point is not None and self.hovered_point.component_id == component_id:
            point = component.point(self.hovered_point.point_id)
            self.hovered_point = self.hovered_point.model_copy(
                update={"x": point.x, "y": point.y}
            )
        return component

    def remove_component(self, component_id: str) -> ComponentInstance:
        component = self.graph.remove_component(component_id)
        self._cancel_decay(component_id)
        if self.wire_start is not None and self.wire_start.component_id == component_id:
            self.wire_start = None
            self.preview_wire = None
        if self.hovered_point is not None and self.hovered_point.component_id == component_id:
            self.hovered_point = None
        self.simulate()
        return component

    def connect(self, a: ConnectionPointRef, b: ConnectionPointRef) -> Wire:
        wire = self.graph.connect(a, b)
        self.simulate()
        return wire

    def disconnect(self, wire_id: str) -> Wire | None:
        wire = self.graph.disconnect(wire_id)
        if wire is not None:
            logger.info("Wire %s removed", wire_id)
            self.simulate()
        return wire

    def select(self, component_id: str | None) -> ComponentInstance | None:
        return self.graph.select(component_id)

    def clear_circuit(self) -> None:
        self.graph.clear()
        self.exit_wire_mode()
        self.hovered_point = None
        self.stop_simulation()
        logger.info("Circuit cleared")

    def load_template(self, name: str) -> list[str]:
        """Replace the circuit with a template; returns skipped-wire notes."""
        template = get_template(name)
        self.clear_circuit()
        skipped = apply_template(self.graph, template)
        self.simulate()
        logger.info(
            "Template loaded: %s (%d components, %d wires)",
            name,
            len(self.graph.components),
            len(self.graph.wires),
        )
        return skipped

    # ─── Pointer Interaction ───

    def toggle_wire_mode(self) -> bool:
        if self.wire_mode:
            self.exit_wire_mode()
        else:
            self.wire_mode = True
            logger.info("Wire mode active")
        return self.wire_mode

    def exit_wire_mode(self) -> None:
        self.wire_mode = False
        self.wire_start = None
        self.preview_wire = None

    def click(self, x: float, y: float) -> ComponentInstance | Wire | None:
        """Primary click on the canvas."""
        if self.wire_mode:
            return self.click_wire_point(x, y)

        component = self.graph.component_at(x, y)
        self.graph.select(component.id if component else None)

        if self.running and component is not None and component.role == StageRole.GENERATOR:
            self.activate_generator(component.id)
        return component

    def click_wire_point(self, x: float, y: float) -> Wire | None:
        """Two clicks on connection points of different components make a wire."""
        point = self.graph.connection_point_at(x, y)

        if point is None:
            if self.wire_start is not None:
                self.wire_start = None
                self.preview_wire = None
                logger.info("Wire selection cleared")
            return None

        if self.wire_start is None:
            self.wire_start = point
            return None

        if point.component_id == self.wire_start.component_id:
            raise SelfConnection(point.component_id)

        start = self.wire_start
        self.wire_start = None
        self.preview_wire = None
        return self.connect(start, point)

    def pointer_move(self, x: float, y: float) -> ConnectionPointRef | None:
        self.hovered_point = self.graph.connection_point_at(x, y)
        if self.wire_mode and self.wire_start is not None:
            self.preview_wire = PreviewLine(
                start_x=self.wire_start.x,
                start_y=self.wire_start.y,
                end_x=x,
                end_y=y,
            )
        return self.hovered_point

    def remove_at(self, x: float, y: float) -> tuple[Wire | None, ComponentInstance | None]:
        """Secondary click: a wire under the pointer wins over a component."""
        wire = self.graph.wire_at(x, y)
        if wire is not None:
            self.disconnect(wire.id)
            return wire, None

        component = self.graph.component_at(x, y)
        if component is not None:
            self.remove_component(component.id)
        return None, component

    # ─── Simulation Control ───

    def add_frame_listener(self, listener: FrameListener) -> None:
        self._frame_listeners.append(listener)

    def remove_frame_listener(self, listener: FrameListener) -> None:
        if listener in self._frame_listeners:
            self._frame_listeners.remove(listener)

    def start_simulation(self) -> None:
        if self.running:
            return
        self.running = True
        self._render_task = asyncio.get_running_loop().create_task(self._render_loop())
        logger.info("Simulation started")

    def stop_simulation(self) -> None:
        """Cancel all scheduled work and reset transient electrical state."""
        self.running = False
        if self._render_task is not None:
            self._render_task.cancel()
            self._render_task = None
        self.stop_auto_step()
        for task in self._decay_tasks.values():
            task.cancel()
        self._decay_tasks.clear()

        for component in self.graph.components:
            component.state = ElectricalState()
        for wire in self.graph.wires:
            wire.active = False
        self.measurements = Measurements()
        logger.info("Simulation stopped")

    def set_pressure(self, pressure: float) -> None:
        if not 0.0 <= pressure <= 1.0:
            raise ValueError(f"pressure must be within [0, 1], got {pressure}")
        self.pressure = pressure

    def activate_generator(
        self, component_id: str, pressure: float | None = None
    ) -> ComponentInstance:
        if not self.running:
            raise SimulationNotRunning("activating a generator")
        loop = asyncio.get_running_loop()

        component = self.graph.require_component(component_id)
        if component.role != StageRole.GENERATOR:
            raise NotAGenerator(component.id, component.kind)

        voltage = piezo.activate(
            component,
            self.pressure if pressure is None else pressure,
            time.time(),
        )
        self.simulate()
        logger.info("Piezo %s activated: %.1fV", component.id, voltage)

        # Re-triggering restarts the pulse; never run two decays at once.
        self._cancel_decay(component.id)
        self._decay_tasks[component.id] = loop.create_task(self._run_decay(component.id))
        return component

    def manual_step(self) -> list[ComponentInstance]:
        """Press every generator once."""
        if not self.running:
            raise SimulationNotRunning("stepping")
        generators = roles.instances_of(self.graph.components, StageRole.GENERATOR)
        if not generators:
            logger.warning("Manual step with no piezo components placed")
        return [self.activate_generator(g.id) for g in generators]

    def start_auto_step(self, frequency_hz: float | None = None) -> None:
        if not self.running:
            raise SimulationNotRunning("auto-stepping")
        if frequency_hz is not None:
            self.set_auto_step_frequency(frequency_hz)
        self.stop_auto_step()
        self._auto_step_task = asyncio.get_running_loop().create_task(
            self._auto_step_loop(1.0 / self.auto_step_hz)
        )
        logger.info("Auto-stepping at %sHz", self.auto_step_hz)

    def stop_auto_step(self) -> None:
        if self._auto_step_task is not None:
            self._auto_step_task.cancel()
            self._auto_step_task = None

    def set_auto_step_frequency(self, frequency_hz: float) -> None:
        if frequency_hz <= 0:
            raise ValueError(f"frequency must be positive, got {frequency_hz}")
        self.auto_step_hz = frequency_hz
        if self.auto_stepping:
            self.start_auto_step()

    async def wait_for_decay(self) -> None:
        """Block until every running decay has returned its generator to idle."""
        while self._decay_tasks:
            await asyncio.gather(*self._decay_tasks.values(), return_exceptions=True)

    # ─── Scheduled Work ───

    def _cancel_decay(self, component_id: str) -> None:
        task = self._decay_tasks.pop(component_id, None)
        if task is not None:
            task.cancel()

    async def _run_decay(self, component_id: str) -> None:
        try:
            await asyncio.sleep(self.settings.decay_start_delay)
            while True:
                component = self.graph.get_component(component_id)
                if component is None:
                    return
                state = piezo.decay_step(
                    component,
                    self.settings.decay_factor,
                    self.settings.decay_threshold,
                )
                self.simulate()
                if state == PulseState.IDLE:
                    return
                await asyncio.sleep(self.settings.decay_tick_period)
        finally:
            if self._decay_tasks.get(component_id) is asyncio.current_task():
                del self._decay_tasks[component_id]

    async def _auto_step_loop(self, interval: float) -> None:
        while True:
            await asyncio.sleep(interval)
            self.manual_step()

    async def _render_loop(self) -> None:
        while self.running:
            await self._publish(self.snapshot())
            await asyncio.sleep(self.settings.frame_period)

    async def _publish(self, state: CircuitState) -> None:
        for listener in list(self._frame_listeners):
            try:
                await listener(state)
            except Exception as exc:
                logger.warning("Dropping frame listener after send failure: %s", exc)
                self.remove_frame_listener(listener)


@lru_cache()
def get_session() -> SimulationSession:
    """Process-wide session used by the API routers."""
    return SimulationSession(get_settings())
