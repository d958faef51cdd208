"""
release_orchestrator.api.broadcast

WebSocket fan-out of deploy events.

Responsibilities:
- Track live WebSocket subscribers per deploy id.
- Implement the engine's `Notifier` by pushing each event to that deploy's subscribers.
- Drop subscribers whose socket has gone away or stalls past the send timeout.
"""

from __future__ import annotations

import asyncio
from collections import defaultdict
from typing import Any

from fastapi import WebSocket
from starlette.websockets import WebSocketState

from release_orchestrator.engine.events import DeployEvent
from release_orchestrator.observability.logging import get_logger

log = get_logger(__name__)


class DeployBroadcaster:
    def __init__(self, *, send_timeout_seconds: float = 2.0) -> None:
        self._send_timeout = send_timeout_seconds
        self._subscribers: dict[int, set[WebSocket]] = defaultdict(set)
        self._lock = asyncio.Lock()

    async def connect(self, deploy_id: int, websocket: WebSocket) -> None:
        await websocket.accept()
        async with self._lock:
            self._subscribers[deploy_id].add(websocket)
        log.info("ws_subscribed", deploy_id=deploy_id, subscribers=self.count(deploy_id))

    async def disconnect(self, deploy_id: int, websocket: WebSocket) -> None:
        async with self._lock:
            subscribers = self._subscribers.get(deploy_id)
            if subscribers is not None:
                subscribers.discard(websocket)
                if not subscribers:
                    del self._subscribers[deploy_id]
        log.info("ws_unsubscribed", deploy_id=deploy_id)

    def count(self, deploy_id: int) -> int:
        return len(self._subscribers.get(deploy_id, ()))

    async def notify(self, deploy_id: int, event: DeployEvent) -> None:
        async with self._lock:
            targets = list(self._subscribers.get(deploy_id, ()))
        if not targets:
            return

        payload = event.to_dict()
        # Sends run side by side, so one slow subscriber costs at most one timeout.
        delivered = await asyncio.gather(*(self._send(deploy_id, ws, payload) for ws in targets))
        for websocket, ok in zip(targets, delivered):
            if not ok:
                await self.disconnect(deploy_id, websocket)

    async def _send(self, deploy_id: int, websocket: WebSocket, payload: dict[str, Any]) -> bool:
        if websocket.client_state != WebSocketState.CONNECTED:
            return False
        try:
            await asyncio.wait_for(websocket.send_json(payload), timeout=self._send_timeout)
        except TimeoutError:
            log.warning("ws_send_timeout", deploy_id=deploy_id, timeout=self._send_timeout)
            return False
        except Exception as e:
            log.warning("ws_send_failed", deploy_id=deploy_id, error=str(e))
            return False
        return True
