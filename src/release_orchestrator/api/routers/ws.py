"""
release_orchestrator.api.routers.ws

Live deploy event stream.
"""

from __future__ import annotations

from fastapi import APIRouter, WebSocket, WebSocketDisconnect

from release_orchestrator.api.broadcast import DeployBroadcaster

router = APIRouter(tags=["ws"])


@router.websocket("/ws/deploy/{deploy_id}")
async def deploy_events(websocket: WebSocket, deploy_id: int) -> None:
    broadcaster: DeployBroadcaster = websocket.app.state.broadcaster
    await broadcaster.connect(deploy_id, websocket)
    try:
        # Events are server-pushed; inbound frames only keep the socket alive.
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_json({"type": "pong", "deploy_id": deploy_id})
    except WebSocketDisconnect:
        pass
    finally:
        await broadcaster.disconnect(deploy_id, websocket)
