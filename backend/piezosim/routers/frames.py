"""Frame stream — WebSocket feed of circuit state for the renderer.

A viewer receives the full state on connect and whenever it asks for it,
then one SIM_FRAME per render-loop tick while the simulation runs.
Viewers only read; mutations go through the HTTP routers.
"""

from __future__ import annotations

import json
import logging
import time
import uuid
from dataclasses import dataclass, field

from fastapi import APIRouter, Depends, WebSocket, WebSocketDisconnect

from piezosim.schemas.circuit import CircuitState
from piezosim.services.session import SimulationSession, get_session

logger = logging.getLogger(__name__)

router = APIRouter()


# ─── Viewer ───


@dataclass
class Viewer:
    viewer_id: str
    websocket: WebSocket
    joined_at: float = field(default_factory=time.time)
    frames_sent: int = 0

    async def send_state(self, msg_type: str, state: CircuitState) -> None:
        await self.websocket.send_text(
            json.dumps({"type": msg_type, "state": state.model_dump(mode="json")})
        )
        self.frames_sent += 1

    async def on_frame(self, state: CircuitState) -> None:
        await self.send_state("SIM_FRAME", state)


# ─── WebSocket Endpoint ───


@router.websocket("/ws")
async def frames_websocket(
    websocket: WebSocket,
    session: SimulationSession = Depends(get_session),
):
    await websocket.accept()

    viewer = Viewer(viewer_id=uuid.uuid4().hex[:8], websocket=websocket)
    await viewer.send_state("SIM_FULL_STATE", session.snapshot())
    session.add_frame_listener(viewer.on_frame)
    logger.info("Viewer %s connected", viewer.viewer_id)

    try:
        while True:
            raw = await websocket.receive_text()
            try:
                msg = json.loads(raw)
            except json.JSONDecodeError:
                logger.debug("Viewer %s sent non-JSON message", viewer.viewer_id)
                continue

            if msg.get("type") == "STATE_REQUEST_FULL":
                await viewer.send_state("SIM_FULL_STATE", session.snapshot())

    except WebSocketDisconnect:
        pass
    finally:
        session.remove_frame_listener(viewer.on_frame)
        logger.info(
            "Viewer %s disconnected after %d frames",
            viewer.viewer_id,
            viewer.frames_sent,
        )
