from piezosim.schemas.catalog import ComponentSpec, ConnectionPointSpec, Polarity, StageRole
from piezosim.schemas.circuit import (
    CircuitState,
    ComponentInstance,
    ConnectionPointRef,
    Measurements,
    PulseState,
    Wire,
)

__all__ = [
    "ComponentSpec",
    "ConnectionPointSpec",
    "Polarity",
    "StageRole",
    "CircuitState",
    "ComponentInstance",
    "ConnectionPointRef",
    "Measurements",
    "PulseState",
    "Wire",
]
