"""Spatial queries over placed components and wires.

Wires are drawn as three orthogonal segments: horizontal from the start to
the midpoint column, vertical to the end's row, horizontal to the end.
"""

from __future__ import annotations

import math
from typing import Iterable, Optional, Tuple

from piezosim.schemas.circuit import ComponentInstance, ConnectionPointRef, Wire

Point = Tuple[float, float]


def snap(value: float, unit: float) -> float:
    """Round to the nearest multiple of ``unit``, halves rounding up."""
    return math.floor(value / unit + 0.5) * unit


def point_segment_distance(
    px: float, py: float,
    x1: float, y1: float,
    x2: float, y2: float,
) -> float:
    """Distance from (px, py) to the segment (x1, y1)–(x2, y2)."""
    dx = x2 - x1
    dy = y2 - y1
    length_sq = dx * dx + dy * dy

    if length_sq == 0:
        # Zero-length segment, just return distance to endpoint
        return math.hypot(px - x1, py - y1)

    t = ((px - x1) * dx + (py - y1) * dy) / length_sq
    t = max(0.0, min(1.0, t))

    return math.hypot(px - (x1 + t * dx), py - (y1 + t * dy))


def wire_route(wire: Wire) -> list[Point]:
    """Polyline vertices of a wire: start, two elbows, end."""
    sx, sy = wire.start.x, wire.start.y
    ex, ey = wire.end.x, wire.end.y
    mid_x = (sx + ex) / 2
    return [(sx, sy), (mid_x, sy), (mid_x, ey), (ex, ey)]


def wire_segments(wire: Wire) -> list[tuple[Point, Point]]:
    route = wire_route(wire)
    return list(zip(route[:-1], route[1:]))


def connection_point_at(
    components: Iterable[ComponentInstance],
    x: float, y: float,
    radius: float,
) -> Optional[ConnectionPointRef]:
    """First connection point within ``radius``.

    Scans components in insertion order and, within each, points in
    catalog order; the first hit wins.
    """
    for component in components:
        for point in component.connection_points:
            if math.hypot(x - point.x, y - point.y) <= radius:
                return ConnectionPointRef(
                    component_id=component.id,
                    point_id=point.id,
                    polarity=point.polarity,
                    x=point.x,
                    y=point.y,
                )
    return None


def component_at(
    components: list[ComponentInstance],
    x: float, y: float,
) -> Optional[ComponentInstance]:
    """Topmost component whose bounding box contains (x, y)."""
    for component in reversed(components):
        if component.contains(x, y):
            return component
    return None


def wire_at(
    wires: Iterable[Wire],
    x: float, y: float,
    tolerance: float,
) -> Optional[Wire]:
    for wire in wires:
        for (x1, y1), (x2, y2) in wire_segments(wire):
            if point_segment_distance(x, y, x1, y1, x2, y2) <= tolerance:
                return wire
    return None
