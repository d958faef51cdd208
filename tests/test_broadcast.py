"""
tests.test_broadcast

WebSocket fan-out: delivery, and dropping subscribers that fail or stall.
"""

from __future__ import annotations

import asyncio
from typing import Any

import pytest
from starlette.websockets import WebSocketState

from release_orchestrator.api.broadcast import DeployBroadcaster
from release_orchestrator.engine.events import DeployEvent, DeployEventType, publish


class FakeSocket:
    def __init__(self, *, fail: bool = False, stall: bool = False) -> None:
        self.client_state = WebSocketState.CONNECTING
        self.sent: list[dict[str, Any]] = []
        self._fail = fail
        self._stall = stall

    async def accept(self) -> None:
        self.client_state = WebSocketState.CONNECTED

    async def send_json(self, payload: dict[str, Any]) -> None:
        if self._fail:
            raise RuntimeError("broken pipe")
        if self._stall:
            await asyncio.sleep(60)
        self.sent.append(payload)


def _event(deploy_id: int) -> DeployEvent:
    return DeployEvent(type=DeployEventType.deploy_started, deploy_id=deploy_id, details={})


@pytest.mark.asyncio
async def test_events_reach_only_that_deploys_subscribers() -> None:
    hub = DeployBroadcaster()
    mine, other = FakeSocket(), FakeSocket()
    await hub.connect(1, mine)
    await hub.connect(2, other)

    await hub.notify(1, _event(1))

    assert [p["type"] for p in mine.sent] == ["deploy_started"]
    assert other.sent == []


@pytest.mark.asyncio
async def test_failing_and_stalled_sockets_are_dropped() -> None:
    hub = DeployBroadcaster(send_timeout_seconds=0.05)
    healthy, broken, stalled = FakeSocket(), FakeSocket(fail=True), FakeSocket(stall=True)
    for ws in (healthy, broken, stalled):
        await hub.connect(7, ws)

    await asyncio.wait_for(hub.notify(7, _event(7)), timeout=5)

    assert len(healthy.sent) == 1
    assert hub.count(7) == 1


@pytest.mark.asyncio
async def test_publish_never_raises_from_a_broken_notifier() -> None:
    class Exploding:
        async def notify(self, deploy_id: int, event: DeployEvent) -> None:
            raise RuntimeError("socket closed")

    await publish(Exploding(), 3, DeployEventType.polling_update, round=1, outcome="next")
