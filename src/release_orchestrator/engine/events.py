"""
release_orchestrator.engine.events

Deploy event catalogue and the Notifier boundary.

Responsibilities:
- Enumerate the events the orchestrator emits on status transitions.
- Define the injected `Notifier` capability and a no-op default.
- Publish events fire-and-forget (a failing notifier never fails a deploy).
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any, Protocol

from release_orchestrator.observability.logging import get_logger

log = get_logger(__name__)


class DeployEventType(enum.StrEnum):
    deploy_started = "deploy_started"
    deploy_success = "deploy_success"
    deploy_failed = "deploy_failed"
    deploy_canceled = "deploy_canceled"
    group_started = "group_started"
    project_started = "project_started"
    project_completed = "project_completed"
    project_failed = "project_failed"
    polling_update = "polling_update"


@dataclass(frozen=True, slots=True)
class DeployEvent:
    type: DeployEventType
    deploy_id: int
    details: dict[str, Any] = field(default_factory=dict)
    at: str = field(default_factory=lambda: datetime.now(UTC).isoformat())

    def to_dict(self) -> dict[str, Any]:
        return {
            "type": self.type.value,
            "deploy_id": self.deploy_id,
            "details": self.details,
            "at": self.at,
        }


class Notifier(Protocol):
    async def notify(self, deploy_id: int, event: DeployEvent) -> None: ...


class NullNotifier:
    async def notify(self, deploy_id: int, event: DeployEvent) -> None:
        return None


async def publish(
    notifier: Notifier, deploy_id: int, event_type: DeployEventType, **details: Any
) -> None:
    event = DeployEvent(type=event_type, deploy_id=deploy_id, details=details)
    try:
        await notifier.notify(deploy_id, event)
    except Exception as e:
        # No delivery guarantee: log and carry on with the deploy.
        log.warning(
            "notify_failed", deploy_id=deploy_id, event_type=event_type.value, error=str(e)
        )


# --- Module Notes -----------------------------------------------------------
# The WebSocket implementation lives in `api.broadcast`; tests use a recording fake.
