"""
release_orchestrator.api

API package for the release orchestrator service.

Responsibilities:
- FastAPI app factory and router modules.
- API-layer dependency wiring, error mapping and request/response models.
"""

# Package marker.
