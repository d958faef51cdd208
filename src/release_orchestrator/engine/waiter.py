"""
release_orchestrator.engine.waiter

Dependency gating between groups.

Responsibilities:
- Map a depend type onto its gating stage substring.
- Poll the prerequisite group's cached jobs until the gating stage is uniformly
  successful, any of it failed, or the round budget runs out.
"""

from __future__ import annotations

import asyncio
import enum
from collections.abc import Iterable

from release_orchestrator.db.models import DependType, DeployProject, Job
from release_orchestrator.db.store import DeployStore, StoreSession
from release_orchestrator.engine.tasks import sleep_or_stop
from release_orchestrator.observability.logging import get_logger

log = get_logger(__name__)

GATING_STAGES: dict[DependType, str] = {
    DependType.pre_build_all: "build",
    DependType.pre_deploy_all: "deploy",
}

_FAILED_JOB_STATES = frozenset({"failed", "canceled"})


class GateVerdict(enum.StrEnum):
    satisfied = "satisfied"
    waiting = "waiting"
    failed = "failed"


def latest_jobs_by_name(jobs: Iterable[Job]) -> dict[str, Job]:
    # Remote retries create new jobs with the same name; only the newest counts.
    latest: dict[str, Job] = {}
    for job in jobs:
        current = latest.get(job.name)
        if current is None or job.id > current.id:
            latest[job.name] = job
    return latest


class DependencyWaiter:
    def __init__(
        self, *, store: DeployStore, interval_seconds: float = 3.0, max_rounds: int = 120
    ) -> None:
        self._store = store
        self._interval = interval_seconds
        self._max_rounds = max_rounds

    async def wait_depend_group_ok(
        self,
        deploy_id: int,
        group_index: int,
        depend_type: DependType,
        *,
        stop: asyncio.Event | None = None,
    ) -> bool:
        stage = GATING_STAGES[depend_type]
        wlog = log.bind(deploy_id=deploy_id, depend_group_index=group_index, stage=stage)

        for round_no in range(self._max_rounds):
            if stop is not None and stop.is_set():
                wlog.info("dependency_wait_stopped", round=round_no)
                return False

            verdict = await self.check_once(deploy_id, group_index, stage)
            if verdict is GateVerdict.satisfied:
                wlog.info("dependency_satisfied", round=round_no)
                return True
            if verdict is GateVerdict.failed:
                wlog.error("dependency_failed", round=round_no)
                return False

            wlog.debug("dependency_waiting", round=round_no)
            if await sleep_or_stop(self._interval, stop):
                wlog.info("dependency_wait_stopped", round=round_no)
                return False

        wlog.error("dependency_wait_exhausted", rounds=self._max_rounds)
        return False

    async def check_once(self, deploy_id: int, group_index: int, stage: str) -> GateVerdict:
        async with self._store.reader() as rd:
            projects = await rd.projects.list_for_group(deploy_id, group_index)
            if not projects:
                return GateVerdict.satisfied

            verdict = GateVerdict.satisfied
            for project in projects:
                project_verdict = await self._check_project(rd, deploy_id, project, stage)
                if project_verdict is GateVerdict.failed:
                    return GateVerdict.failed
                if project_verdict is GateVerdict.waiting:
                    # Keep scanning: a later project may already have failed.
                    verdict = GateVerdict.waiting
            return verdict

    async def _check_project(
        self, rd: StoreSession, deploy_id: int, project: DeployProject, stage: str
    ) -> GateVerdict:
        if project.pipeline_id is None:
            return GateVerdict.waiting

        jobs = await rd.jobs.list_for_stage(
            deploy_id=deploy_id, pipeline_id=project.pipeline_id, stage_like=stage
        )
        latest = latest_jobs_by_name(jobs)
        if not latest:
            return GateVerdict.waiting

        statuses = [job.status.lower() for job in latest.values()]
        if any(s in _FAILED_JOB_STATES for s in statuses):
            return GateVerdict.failed
        if any(s != "success" for s in statuses):
            return GateVerdict.waiting
        return GateVerdict.satisfied


# --- Module Notes -----------------------------------------------------------
# The waiter reads only the local job cache; the status poller running alongside it is
# what refreshes those rows from GitLab.
