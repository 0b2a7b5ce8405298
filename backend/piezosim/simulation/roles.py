"""Stage-role selection for the simulation engine.

The engine is not a circuit solver. Generators are summed, but every other
stage is modelled by a single representative: the earliest-placed instance
of that role. Further instances are drawn but carry no electrical state,
and are reported back so the UI can flag them.
"""

from __future__ import annotations

from typing import Iterable

from piezosim.schemas.catalog import StageRole
from piezosim.schemas.circuit import ComponentInstance

MODELED_INSTANCES_PER_ROLE = 1

SUMMED_ROLES = frozenset({StageRole.GENERATOR})

STAGE_ORDER = (
    StageRole.GENERATOR,
    StageRole.RECTIFIER,
    StageRole.STORAGE,
    StageRole.REGULATOR,
    StageRole.LOAD,
)


def instances_of(
    components: Iterable[ComponentInstance], role: StageRole
) -> list[ComponentInstance]:
    return [c for c in components if c.role == role]


def representative(
    components: Iterable[ComponentInstance], role: StageRole
) -> ComponentInstance | None:
    """The instance that stands for ``role`` in the calculation, if any."""
    if role in SUMMED_ROLES:
        raise ValueError(f"{role.value} instances are summed, not represented")
    found = instances_of(components, role)
    return found[0] if found else None


def unmodeled(components: list[ComponentInstance]) -> list[str]:
    """Ids of stage-role instances beyond the modelled representative."""
    ids: list[str] = []
    for role in STAGE_ORDER:
        if role in SUMMED_ROLES:
            continue
        extra = instances_of(components, role)[MODELED_INSTANCES_PER_ROLE:]
        ids.extend(c.id for c in extra)
    return ids
