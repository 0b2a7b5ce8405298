"""Simulation Engine — staged DC propagation through the harvesting chain.

Pure Python, single pass, no solver. Runs after any topology or activation
change and recomputes every derived quantity:
  1. Generators   — sum the voltage of every active piezo
  2. Rectifier    — subtract the forward drop
  3. Storage      — first-order charge toward the input, ½·C·V²
  4. Regulator    — fixed output once storage reaches its minimum input
  5. Load         — draw rated current from regulator or storage

Input:  CircuitGraph (mutated in place: instance state, wire flags)
Output: Measurements snapshot for display
"""

from __future__ import annotations

import time
from dataclasses import dataclass, field
from typing import Callable

from piezosim.config import Settings
from piezosim.graph.circuit_graph import CircuitGraph
from piezosim.schemas.catalog import StageRole
from piezosim.schemas.circuit import ComponentInstance, Measurements
from piezosim.simulation import roles


# ─── Pass Context ───


@dataclass
class StagePass:
    graph: CircuitGraph
    settings: Settings
    now: float
    measurements: Measurements = field(default_factory=Measurements)
    generator_voltage: float = 0.0
    rectifier: ComponentInstance | None = None
    storage: ComponentInstance | None = None
    regulator: ComponentInstance | None = None
    load: ComponentInstance | None = None

    def activate_wires(self, component: ComponentInstance) -> None:
        for wire in self.graph.wires:
            if wire.touches(component.id):
                wire.active = True


def active_generators(graph: CircuitGraph) -> list[ComponentInstance]:
    return [
        c
        for c in roles.instances_of(graph.components, StageRole.GENERATOR)
        if c.state.voltage > 0
    ]


# ═══════════════════════════════════════════════════════════
# Stage 1: Generators
# ═══════════════════════════════════════════════════════════


def run_generator_stage(ctx: StagePass) -> None:
    total = 0.0
    for piezo in active_generators(ctx.graph):
        total += piezo.state.voltage
        ctx.activate_wires(piezo)
    ctx.generator_voltage = total
    ctx.measurements.piezo_voltage = total


# ═══════════════════════════════════════════════════════════
# Stage 2: Rectification
# ═══════════════════════════════════════════════════════════


def run_rectifier_stage(ctx: StagePass) -> None:
    rectifier = ctx.rectifier
    if rectifier is None:
        return

    drop = rectifier.properties.get("voltage_drop", 0.0)
    rectifier.state.voltage = max(0.0, ctx.generator_voltage - drop)
    rectifier.state.active = rectifier.state.voltage > 0
    ctx.measurements.rectifier_voltage = rectifier.state.voltage

    if rectifier.state.active:
        ctx.activate_wires(rectifier)


# ═══════════════════════════════════════════════════════════
# Stage 3: Energy Storage
# ═══════════════════════════════════════════════════════════


def run_storage_stage(ctx: StagePass) -> None:
    """Charge toward the available input by a fixed fraction per pass."""
    storage = ctx.storage
    if storage is None:
        return

    if ctx.rectifier is not None:
        input_voltage = ctx.rectifier.state.voltage
    else:
        input_voltage = ctx.generator_voltage

    if input_voltage > storage.state.voltage:
        storage.state.voltage += (
            input_voltage - storage.state.voltage
        ) * ctx.settings.charging_rate
        storage.state.active = True
        ctx.activate_wires(storage)

    capacitance = storage.properties.get("capacitance", 0.0)
    storage.state.stored_energy = 0.5 * capacitance * storage.state.voltage ** 2
    ctx.measurements.energy_stored = storage.state.stored_energy * 1_000_000
    ctx.measurements.storage_voltage = storage.state.voltage


# ═══════════════════════════════════════════════════════════
# Stage 4: Regulation
# ═══════════════════════════════════════════════════════════


def run_regulator_stage(ctx: StagePass) -> None:
    regulator = ctx.regulator
    if regulator is None:
        return

    if ctx.storage is None:
        regulator.state.voltage = 0.0
        regulator.state.active = False
        return

    if ctx.storage.state.voltage >= regulator.properties.get("input_min", 0.0):
        regulator.state.voltage = regulator.properties.get("output", 0.0)
        regulator.state.active = True
        ctx.activate_wires(regulator)
    else:
        regulator.state.voltage = 0.0
        regulator.state.active = False

    ctx.measurements.regulator_voltage = regulator.state.voltage


# ═══════════════════════════════════════════════════════════
# Stage 5: Load
# ═══════════════════════════════════════════════════════════


def run_load_stage(ctx: StagePass) -> None:
    """Draw rated current once the supply reaches the forward voltage.

    The storage discharge per pass is (I / 1000) / (C · scale) · dt with I
    in mA; the constants reproduce the per-tick approximation the display
    was tuned against rather than a dimensioned model.
    """
    load = ctx.load
    if load is None:
        return

    supply = 0.0
    if ctx.regulator is not None and ctx.regulator.state.active:
        supply = ctx.regulator.state.voltage
    elif ctx.storage is not None:
        supply = ctx.storage.state.voltage

    if supply < load.properties.get("voltage", 0.0):
        load.state.current = 0.0
        load.state.active = False
        load.state.activated_at = None
        return

    load.state.current = load.properties.get("current", 0.0)
    load.state.active = True
    load.state.activated_at = ctx.now
    ctx.activate_wires(load)
    ctx.measurements.load_current = load.state.current
    ctx.measurements.power_generated = supply * (load.state.current / 1000)

    storage = ctx.storage
    if storage is not None:
        discharge_current = load.state.current / 1000
        capacitance = storage.properties.get("capacitance", 0.0)
        scaled = capacitance * ctx.settings.discharge_capacitance_scale
        if scaled > 0:
            rate = discharge_current / scaled
            storage.state.voltage = max(
                0.0,
                storage.state.voltage - rate * ctx.settings.discharge_time_step,
            )


# ═══════════════════════════════════════════════════════════
# Main Pass
# ═══════════════════════════════════════════════════════════

# Run in order; each stage reads what the previous ones wrote.
ALL_STAGES: list[Callable[[StagePass], None]] = [
    run_generator_stage,
    run_rectifier_stage,
    run_storage_stage,
    run_regulator_stage,
    run_load_stage,
]


def simulate(
    graph: CircuitGraph,
    settings: Settings,
    now: float | None = None,
) -> Measurements:
    """Run one propagation pass and return the measurement snapshot.

    With no active generator the snapshot is all zeros and no instance
    state is touched, so stored charge survives idle passes.
    """
    for wire in graph.wires:
        wire.active = False

    ctx = StagePass(
        graph=graph,
        settings=settings,
        now=time.time() if now is None else now,
    )
    ctx.measurements.unmodeled_component_ids = roles.unmodeled(graph.components)

    if not active_generators(graph):
        return ctx.measurements

    ctx.rectifier = roles.representative(graph.components, StageRole.RECTIFIER)
    ctx.storage = roles.representative(graph.components, StageRole.STORAGE)
    ctx.regulator = roles.representative(graph.components, StageRole.REGULATOR)
    ctx.load = roles.representative(graph.components, StageRole.LOAD)

    for stage in ALL_STAGES:
        stage(ctx)

    return ctx.measurements
