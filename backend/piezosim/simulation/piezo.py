"""Piezo pulse state machine.

    IDLE ──activate──▶ ACTIVATED ──decay_step──▶ DECAYING ──(< threshold)──▶ IDLE
      ▲                    │                        │
      └────────────────────┴──── activate restarts from peak ◀────┘

Scheduling lives in the session; these functions only move one generator
instance between states.
"""

from __future__ import annotations

from piezosim.schemas.circuit import ComponentInstance, PulseState


def activate(
    piezo: ComponentInstance,
    pressure: float,
    now: float,
) -> float:
    """Start (or restart) a pulse at ``voltage_peak × pressure``."""
    pressure = max(0.0, min(1.0, pressure))
    piezo.state.voltage = piezo.properties.get("voltage_peak", 0.0) * pressure
    piezo.state.active = True
    piezo.state.activated_at = now
    piezo.state.pulse = PulseState.ACTIVATED
    return piezo.state.voltage


def decay_step(
    piezo: ComponentInstance,
    factor: float = 0.92,
    threshold: float = 0.1,
) -> PulseState:
    """Apply one decay tick and return the resulting state."""
    if piezo.state.pulse == PulseState.IDLE:
        return PulseState.IDLE

    piezo.state.voltage *= factor
    if piezo.state.voltage < threshold:
        reset(piezo)
    else:
        piezo.state.pulse = PulseState.DECAYING
    return piezo.state.pulse


def reset(piezo: ComponentInstance) -> None:
    piezo.state.voltage = 0.0
    piezo.state.active = False
    piezo.state.activated_at = None
    piezo.state.pulse = PulseState.IDLE
