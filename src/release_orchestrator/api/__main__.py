"""
release_orchestrator.api.__main__

Process entrypoint: `python -m release_orchestrator.api` or the `release-orchestrator` script.
"""

from __future__ import annotations

import uvicorn

from release_orchestrator.api.app import create_app
from release_orchestrator.settings import get_settings


def main() -> None:
    settings = get_settings()
    uvicorn.run(
        create_app(settings=settings),
        host=settings.api_host,
        port=settings.api_port,
        # Logging is owned by structlog (see observability.logging).
        log_config=None,
    )


if __name__ == "__main__":
    main()
