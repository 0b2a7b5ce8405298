"""Circuit templates — literal placements plus auto-wiring.

Templates go through the public graph operations, so a template can never
build something the user could not build by hand.
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field

from piezosim.errors import CircuitError, MissingReference
from piezosim.graph.circuit_graph import CircuitGraph
from piezosim.schemas.circuit import ConnectionPointRef

logger = logging.getLogger(__name__)


class TemplatePlacement(BaseModel):
    kind: str
    x: float
    y: float


class TemplateWire(BaseModel):
    # Indices into the template's placements; left optional so malformed
    # entries can be skipped instead of failing the whole template.
    from_index: int | None = None
    from_point: str | None = None
    to_index: int | None = None
    to_point: str | None = None


class CircuitTemplate(BaseModel):
    name: str
    components: list[TemplatePlacement] = Field(default_factory=list)
    wires: list[TemplateWire] = Field(default_factory=list)


def _wire(a: int, a_point: str, b: int, b_point: str) -> TemplateWire:
    return TemplateWire(from_index=a, from_point=a_point, to_index=b, to_point=b_point)


TEMPLATES: dict[str, CircuitTemplate] = {
    "basic_harvester": CircuitTemplate(
        name="basic_harvester",
        components=[
            TemplatePlacement(kind="piezo_single", x=80, y=100),
            TemplatePlacement(kind="bridge_rectifier", x=260, y=100),
            TemplatePlacement(kind="capacitor_1mf", x=440, y=110),
            TemplatePlacement(kind="led_red", x=600, y=110),
        ],
        wires=[
            _wire(0, "ac1", 1, "ac1"),
            _wire(0, "ac2", 1, "ac2"),
            _wire(1, "dc_pos", 2, "positive"),
            _wire(1, "dc_neg", 2, "negative"),
            _wire(2, "positive", 3, "anode"),
            _wire(2, "negative", 3, "cathode"),
        ],
    ),
    "regulated_system": CircuitTemplate(
        name="regulated_system",
        components=[
            TemplatePlacement(kind="piezo_series", x=60, y=80),
            TemplatePlacement(kind="bridge_rectifier", x=280, y=80),
            TemplatePlacement(kind="capacitor_10mf", x=460, y=90),
            TemplatePlacement(kind="ltc3588", x=640, y=80),
            TemplatePlacement(kind="usb_port", x=820, y=90),
        ],
        wires=[
            _wire(0, "ac1", 1, "ac1"),
            _wire(0, "ac2", 1, "ac2"),
            _wire(1, "dc_pos", 2, "positive"),
            _wire(1, "dc_neg", 2, "negative"),
            _wire(2, "positive", 3, "vin"),
            _wire(2, "negative", 3, "gnd"),
            _wire(3, "vout", 4, "vbus"),
            _wire(3, "gnd", 4, "gnd"),
        ],
    ),
}


def get_template(name: str) -> CircuitTemplate:
    template = TEMPLATES.get(name)
    if template is None:
        raise MissingReference(f"Template '{name}' not found")
    return template


def apply_template(graph: CircuitGraph, template: CircuitTemplate) -> list[str]:
    """Place and wire a template onto ``graph``.

    Returns a note for every wire entry that was skipped.
    """
    placed = [graph.add_component(p.kind, p.x, p.y) for p in template.components]
    skipped: list[str] = []

    for i, entry in enumerate(template.wires):
        if (
            entry.from_index is None
            or entry.to_index is None
            or not entry.from_point
            or not entry.to_point
            or not 0 <= entry.from_index < len(placed)
            or not 0 <= entry.to_index < len(placed)
        ):
            skipped.append(f"wire {i}: incomplete or out-of-range reference")
            continue

        try:
            graph.connect(
                ConnectionPointRef(
                    component_id=placed[entry.from_index].id,
                    point_id=entry.from_point,
                ),
                ConnectionPointRef(
                    component_id=placed[entry.to_index].id,
                    point_id=entry.to_point,
                ),
            )
        except CircuitError as exc:
            skipped.append(f"wire {i}: {exc.message}")

    for note in skipped:
        logger.warning("Template %s: skipped %s", template.name, note)

    return skipped
