"""Domain errors raised by the circuit graph, engine and session.

Every error is recoverable: the requested mutation is rejected and the
graph is left as it was. The API layer maps ``code`` to an HTTP status.
"""

from __future__ import annotations


class CircuitError(Exception):
    code = "E_CIRCUIT"

    def __init__(self, message: str):
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict:
        return {"code": self.code, "message": self.message}


class UnknownKind(CircuitError):
    code = "E_UNKNOWN_KIND"

    def __init__(self, kind: str):
        super().__init__(f"Unknown component kind '{kind}'")
        self.kind = kind


class SelfConnection(CircuitError):
    code = "E_SELF_CONNECTION"

    def __init__(self, component_id: str):
        super().__init__(f"Cannot connect {component_id} to itself")
        self.component_id = component_id


class DuplicateWire(CircuitError):
    code = "E_DUPLICATE_WIRE"

    def __init__(self, wire_id: str):
        super().__init__(f"Wire already exists between these points ({wire_id})")
        self.wire_id = wire_id


class MissingReference(CircuitError):
    code = "E_MISSING_REFERENCE"


class SimulationNotRunning(CircuitError):
    code = "E_SIMULATION_STOPPED"

    def __init__(self, action: str = "this action"):
        super().__init__(f"Start the simulation before {action}")


class NotAGenerator(CircuitError):
    code = "E_NOT_A_GENERATOR"

    def __init__(self, component_id: str, kind: str):
        super().__init__(f"{component_id} ({kind}) is not a piezo generator")
        self.component_id = component_id
