"""
release_orchestrator.engine.orchestrator

Top-level deploy state machine.

Responsibilities:
- Sequence groups in group_index order, gating each on its dependency.
- Run each group's projects in insertion order and fail fast on the first error.
- Own the background status-poll loop and its stop token.
- Write terminal deploy states and publish events for every transition.
"""

from __future__ import annotations

import asyncio
from functools import partial
from typing import Any

from release_orchestrator.db.models import DeployGroup, DeployStatus, ProjectStatus
from release_orchestrator.db.store import DeployStore
from release_orchestrator.engine.events import DeployEventType, Notifier, NullNotifier, publish
from release_orchestrator.engine.poller import PollOutcome, StatusPoller
from release_orchestrator.engine.runner import ProjectRunner
from release_orchestrator.engine.tasks import DeployTaskRegistry, sleep_or_stop
from release_orchestrator.engine.waiter import DependencyWaiter
from release_orchestrator.gitlab.base import ClientFactory, GitLabTarget, ReleaseClient
from release_orchestrator.gitlab.client import connect
from release_orchestrator.observability.logging import get_logger
from release_orchestrator.settings import Settings

log = get_logger(__name__)


class DeployOrchestrator:
    def __init__(
        self,
        *,
        store: DeployStore,
        settings: Settings,
        notifier: Notifier | None = None,
        tasks: DeployTaskRegistry | None = None,
        client_factory: ClientFactory | None = None,
        runner: ProjectRunner | None = None,
        waiter: DependencyWaiter | None = None,
        poller: StatusPoller | None = None,
    ) -> None:
        self._store = store
        self._settings = settings
        self._notifier = notifier or NullNotifier()
        self._tasks = tasks or DeployTaskRegistry()
        self._client_factory: ClientFactory = client_factory or partial(
            connect,
            timeout=settings.gitlab_timeout_seconds,
            tag_timezone=settings.tag_timezone,
        )
        self._runner = runner or ProjectRunner(
            store=store,
            attempts=settings.pipeline_retry_attempts,
            delay_seconds=settings.pipeline_retry_delay_seconds,
        )
        self._waiter = waiter or DependencyWaiter(
            store=store,
            interval_seconds=settings.depend_wait_interval_seconds,
            max_rounds=settings.max_depend_rounds,
        )
        self._poller = poller or StatusPoller(store=store)

    # -- public operations -------------------------------------------------

    async def start_deploy(self, deploy_id: int, *, target: GitLabTarget) -> asyncio.Task[Any]:
        """
        Validate the deploy exists, then run it as a tracked background task.
        """

        async with self._store.reader() as rd:
            await rd.deploys.require(deploy_id)
        return self._tasks.spawn(deploy_id, self.run_deploy(deploy_id, target=target))

    async def run_deploy(self, deploy_id: int, *, target: GitLabTarget) -> DeployStatus | None:
        """
        Drive a deploy to a terminal state. Returns that state, or None when the poll loop
        was stopped without settling it.
        """

        async with self._client_factory(target) as client:
            return await self._run(deploy_id, client)

    async def retry_fetch(self, deploy_id: int, *, target: GitLabTarget) -> PollOutcome:
        """
        One synchronous poll pass; maps success/fail straight onto the deploy status.
        """

        async with self._store.reader() as rd:
            await rd.deploys.require(deploy_id)

        async with self._client_factory(target) as client:
            outcome = await self._poller.poll_and_update_projects(client, deploy_id)

        if outcome is PollOutcome.fail:
            await self._mark_terminal(deploy_id, DeployStatus.failed, reason="retry_fetch")
            log.error("retry_fetch_failed", deploy_id=deploy_id)
        elif outcome is PollOutcome.success:
            await self._mark_terminal(deploy_id, DeployStatus.success, reason="retry_fetch")
            log.info("retry_fetch_succeeded", deploy_id=deploy_id)
        return outcome

    # -- state machine -----------------------------------------------------

    async def _run(self, deploy_id: int, client: ReleaseClient) -> DeployStatus | None:
        dlog = log.bind(deploy_id=deploy_id)

        async with self._store.transaction() as tx:
            await tx.deploys.set_status(deploy_id, DeployStatus.running)
            groups = await tx.groups.list_for_deploy(deploy_id)
        dlog.info("deploy_started", groups=len(groups))
        await publish(self._notifier, deploy_id, DeployEventType.deploy_started)

        stop = asyncio.Event()
        poll_task: asyncio.Task[DeployStatus | None] | None = None
        try:
            for group in groups:
                if stop.is_set():
                    break
                if not await self._gate(deploy_id, group, stop):
                    if stop.is_set():
                        # The poll loop already settled the deploy.
                        break
                    await self._abort(poll_task, stop)
                    await self._mark_terminal(
                        deploy_id,
                        DeployStatus.failed,
                        reason="dependency_failed",
                        group_index=group.group_index,
                    )
                    return DeployStatus.failed

                async with self._store.reader() as rd:
                    projects = await rd.projects.list_for_group(deploy_id, group.group_index)

                for project in projects:
                    if stop.is_set():
                        break
                    plog = dlog.bind(group_index=group.group_index, project_id=project.project_id)
                    await publish(
                        self._notifier,
                        deploy_id,
                        DeployEventType.project_started,
                        project_id=project.project_id,
                    )
                    try:
                        pipeline_id = await self._runner.run_one_project(client, project)
                    except Exception as e:
                        plog.error("project_deploy_failed", error=str(e), exc_info=True)
                        await self._abort(poll_task, stop)
                        async with self._store.transaction() as tx:
                            await tx.projects.set_status(project.id, ProjectStatus.failed)
                        await publish(
                            self._notifier,
                            deploy_id,
                            DeployEventType.project_failed,
                            project_id=project.project_id,
                            error=str(e),
                        )
                        await self._mark_terminal(
                            deploy_id,
                            DeployStatus.failed,
                            reason="project_failed",
                            project_id=project.project_id,
                        )
                        return DeployStatus.failed

                    await publish(
                        self._notifier,
                        deploy_id,
                        DeployEventType.project_completed,
                        project_id=project.project_id,
                        pipeline_id=pipeline_id,
                    )
                    if poll_task is None:
                        # Start surfacing live progress as soon as one pipeline exists.
                        poll_task = self._spawn_poll_loop(deploy_id, client, stop)

            if poll_task is None:
                poll_task = self._spawn_poll_loop(deploy_id, client, stop)
            return await poll_task
        finally:
            if poll_task is not None and not poll_task.done():
                stop.set()
                await asyncio.gather(poll_task, return_exceptions=True)

    async def _gate(self, deploy_id: int, group: DeployGroup, stop: asyncio.Event) -> bool:
        log.info(
            "group_started",
            deploy_id=deploy_id,
            group_index=group.group_index,
            depend_type=group.depend_type,
            depend_group_index=group.depend_group_index,
        )
        await publish(
            self._notifier, deploy_id, DeployEventType.group_started, group_index=group.group_index
        )
        if group.depend_type is None or group.depend_group_index is None:
            return True
        return await self._waiter.wait_depend_group_ok(
            deploy_id, group.depend_group_index, group.depend_type, stop=stop
        )

    def _spawn_poll_loop(
        self, deploy_id: int, client: ReleaseClient, stop: asyncio.Event
    ) -> asyncio.Task[DeployStatus | None]:
        log.info("deploy_polling_started", deploy_id=deploy_id)
        return asyncio.create_task(
            self._poll_until_terminal(deploy_id, client, stop), name=f"deploy-{deploy_id}-poll"
        )

    async def _poll_until_terminal(
        self, deploy_id: int, client: ReleaseClient, stop: asyncio.Event
    ) -> DeployStatus | None:
        rounds = self._settings.max_poll_rounds
        for round_no in range(rounds):
            if stop.is_set():
                return None
            try:
                outcome = await self._poller.poll_and_update_projects(client, deploy_id)
            except Exception as e:
                # A remote hiccup spends one round; the budget still bounds the loop.
                log.warning("poll_round_failed", deploy_id=deploy_id, round=round_no, error=str(e))
                outcome = PollOutcome.next
            if stop.is_set():
                return None

            log.debug("deploy_polling_round", deploy_id=deploy_id, round=round_no, outcome=outcome)
            await publish(
                self._notifier,
                deploy_id,
                DeployEventType.polling_update,
                round=round_no,
                outcome=outcome.value,
            )
            if outcome is PollOutcome.fail:
                stop.set()
                await self._mark_terminal(deploy_id, DeployStatus.failed, reason="pipeline_failed")
                return DeployStatus.failed
            if outcome is PollOutcome.success:
                stop.set()
                await self._mark_terminal(deploy_id, DeployStatus.success)
                return DeployStatus.success
            if await sleep_or_stop(self._settings.poll_interval_seconds, stop):
                return None

        stop.set()
        log.error("deploy_polling_exhausted", deploy_id=deploy_id, rounds=rounds)
        await self._mark_terminal(deploy_id, DeployStatus.failed, reason="timeout")
        return DeployStatus.failed

    async def _abort(
        self, poll_task: asyncio.Task[DeployStatus | None] | None, stop: asyncio.Event
    ) -> None:
        # Stop the poll loop before writing a failure so a late round cannot overwrite it.
        stop.set()
        if poll_task is not None:
            await asyncio.gather(poll_task, return_exceptions=True)

    async def _mark_terminal(self, deploy_id: int, status: DeployStatus, **details: Any) -> None:
        async with self._store.transaction() as tx:
            await tx.deploys.set_status(deploy_id, status)
        event_type = (
            DeployEventType.deploy_success
            if status is DeployStatus.success
            else DeployEventType.deploy_failed
        )
        if status is DeployStatus.success:
            log.info("deploy_succeeded", deploy_id=deploy_id, **details)
        else:
            log.error("deploy_failed", deploy_id=deploy_id, **details)
        await publish(self._notifier, deploy_id, event_type, **details)


# --- Module Notes -----------------------------------------------------------
# Cancellation is advisory: `DeployService.cancel_deploy` only rewrites statuses, so a run
# already in flight keeps going and may overwrite a canceled deploy with its outcome.
