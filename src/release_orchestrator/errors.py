"""
release_orchestrator.errors

Domain exceptions shared by the engine, services and API layer.

Responsibilities:
- Name the failure classes callers are expected to handle.
- Carry enough structured context for logging and HTTP mapping.
"""

from __future__ import annotations


class DeployError(Exception):
    """Base class for all orchestration errors."""


class ValidationError(DeployError):
    """Malformed submission; raised before anything is written."""


class ConflictError(DeployError):
    """Write would duplicate an existing row (or start an already running deploy)."""


class NotFoundError(DeployError):
    def __init__(self, entity: str, entity_id: int) -> None:
        super().__init__(f"{entity} {entity_id} not found")
        self.entity = entity
        self.entity_id = entity_id


class RemoteError(DeployError):
    """
    Non-2xx, transport failure or unparseable body from the release client.
    """

    def __init__(self, message: str, *, status_code: int | None = None) -> None:
        super().__init__(message if status_code is None else f"{status_code} {message}")
        self.status_code = status_code


class RetryExhausted(DeployError):
    def __init__(self, operation: str, attempts: int) -> None:
        super().__init__(f"{operation} failed after {attempts} attempts")
        self.operation = operation
        self.attempts = attempts


# --- Module Notes -----------------------------------------------------------
# `api.errors` maps these onto HTTP status codes; the engine converts RemoteError and
# RetryExhausted raised while running a project into a failed deploy instead.
