"""
release_orchestrator.settings

Central configuration model (Pydantic Settings).

Responsibilities:
- Provide strongly-typed, env-driven settings for all layers.
- Hide secrets from repr/logging (e.g., the GitLab token).
- Hold the engine's polling/retry budgets in one place.
- Offer a cached settings instance for dependency injection.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """
    Single settings object injected across layers.

    Every budget below is consumed by `release_orchestrator.engine`; tests shrink the
    intervals to keep polling loops fast.
    """

    model_config = SettingsConfigDict(env_prefix="DEPLOY_", case_sensitive=False)

    # Environment controls toggle behavior like auto-init DB tables.
    env: Literal["dev", "test", "prod"] = "dev"
    service_name: str = "release-orchestrator"
    log_level: str = "INFO"

    api_host: str = "0.0.0.0"
    api_port: int = 3000

    # Persistence
    database_url: str = "sqlite+aiosqlite:///./deploys.db"

    # Default GitLab target (requests may override host/token/scheme per deploy run)
    gitlab_scheme: str = "https"
    gitlab_host: str = ""
    gitlab_token: str = Field(default="", repr=False)
    gitlab_timeout_seconds: float = 30.0
    tag_timezone: str = "Asia/Shanghai"

    # Status poller: 120 rounds * 5s ~= 10 minutes before a deploy times out.
    poll_interval_seconds: float = 5.0
    max_poll_rounds: int = 120

    # Dependency waiter
    depend_wait_interval_seconds: float = 3.0
    max_depend_rounds: int = 120

    # Project runner: pipeline lookup right after tag creation is often not indexed yet.
    pipeline_retry_attempts: int = 5
    pipeline_retry_delay_seconds: float = 2.0

    # WebSocket fan-out: a subscriber slower than this is dropped.
    ws_send_timeout_seconds: float = 2.0


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    # Cache avoids re-parsing env vars for each request dependency.
    return Settings()


# --- Module Notes -----------------------------------------------------------
# Defaults mirror the production budgets; override via DEPLOY_* environment variables.
