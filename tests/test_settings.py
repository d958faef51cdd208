"""
tests.test_settings

Default engine budgets and DEPLOY_* environment overrides.
"""

from __future__ import annotations

import pytest

from release_orchestrator.settings import Settings


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in (
        "DEPLOY_POLL_INTERVAL_SECONDS",
        "DEPLOY_MAX_POLL_ROUNDS",
        "DEPLOY_DEPEND_WAIT_INTERVAL_SECONDS",
        "DEPLOY_MAX_DEPEND_ROUNDS",
        "DEPLOY_PIPELINE_RETRY_ATTEMPTS",
        "DEPLOY_PIPELINE_RETRY_DELAY_SECONDS",
        "DEPLOY_TAG_TIMEZONE",
    ):
        monkeypatch.delenv(name, raising=False)


def test_engine_budget_defaults() -> None:
    s = Settings()

    assert (s.pipeline_retry_attempts, s.pipeline_retry_delay_seconds) == (5, 2.0)
    assert (s.max_poll_rounds, s.poll_interval_seconds) == (120, 5.0)
    assert s.depend_wait_interval_seconds == 3.0
    assert s.tag_timezone == "Asia/Shanghai"


def test_environment_overrides_defaults(monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("DEPLOY_MAX_POLL_ROUNDS", "7")
    monkeypatch.setenv("DEPLOY_PIPELINE_RETRY_DELAY_SECONDS", "0.5")

    s = Settings()

    assert s.max_poll_rounds == 7
    assert s.pipeline_retry_delay_seconds == 0.5
