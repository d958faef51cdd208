"""
tests.test_api

HTTP surface: routing, error envelopes and the background run path.
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from pathlib import Path

import httpx
import pytest
import pytest_asyncio
from conftest import FakeReleaseClient, client_factory_for, job, make_settings
from fastapi import FastAPI
from fastapi.testclient import TestClient

from release_orchestrator.api.app import create_app
from release_orchestrator.settings import Settings

DEPLOY = {
    "description": "release 7",
    "groups": [
        {"group_index": 0},
        {"group_index": 1, "depend_group_index": 0, "depend_type": "pre_build_all"},
    ],
    "projects": [
        {"group_index": 0, "project_id": 10, "branch": "main", "tag_prefix": "api"},
        {"group_index": 1, "project_id": 20, "branch": "main", "tag_prefix": "web"},
    ],
}


@pytest_asyncio.fixture
async def app(settings: Settings, fake_client: FakeReleaseClient) -> AsyncIterator[FastAPI]:
    app = create_app(settings=settings, client_factory=client_factory_for(fake_client))
    async with app.router.lifespan_context(app):
        yield app


@pytest_asyncio.fixture
async def client(app: FastAPI) -> AsyncIterator[httpx.AsyncClient]:
    transport = httpx.ASGITransport(app=app)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as http:
        yield http


async def _create(client: httpx.AsyncClient, body: dict = DEPLOY) -> int:
    r = await client.post("/deploy/create", json=body)
    assert r.status_code == 200, r.text
    return r.json()["id"]


@pytest.mark.asyncio
async def test_create_and_read_back(client: httpx.AsyncClient) -> None:
    deploy_id = await _create(client)

    r = await client.get(f"/deploy/{deploy_id}")
    assert r.status_code == 200
    body = r.json()
    assert body["deploy"]["status"] == "pending"
    assert body["deploy"]["description"] == "release 7"
    assert [g["group_index"] for g in body["groups"]] == [0, 1]
    assert [[p["project_id"] for p in g["projects"]] for g in body["groups"]] == [[10], [20]]
    assert [p["project_id"] for p in body["projects"]] == [10, 20]
    assert body["body"]["groups"][1]["depend_type"] == "pre_build_all"

    r = await client.get("/deploys")
    assert [d["id"] for d in r.json()] == [deploy_id]


@pytest.mark.asyncio
async def test_error_envelopes(client: httpx.AsyncClient) -> None:
    r = await client.get("/deploy/404")
    assert r.status_code == 404
    assert r.json() == {"ok": False, "error": "deploy 404 not found"}

    bad = {**DEPLOY, "projects": [{**DEPLOY["projects"][0], "branch": ""}]}
    r = await client.post("/deploy/create", json=bad)
    assert r.status_code == 400
    assert r.json()["ok"] is False

    forward = {
        "groups": [{"group_index": 0, "depend_group_index": 0, "depend_type": "pre_build_all"}]
    }
    r = await client.post("/deploy/create", json=forward)
    assert r.status_code == 400
    assert "earlier group" in r.json()["error"]


@pytest.mark.asyncio
async def test_run_in_background_until_success(
    app: FastAPI, client: httpx.AsyncClient, fake_client: FakeReleaseClient
) -> None:
    fake_client.add_pipeline(10, 100, "success", [job(1, "build", "build", "success")])
    fake_client.add_pipeline(20, 200, "success")
    deploy_id = await _create(client)

    r = await client.post("/deploy/run", json={"id": deploy_id})
    assert r.status_code == 202
    assert r.json() == {"ok": True, "id": deploy_id}
    await app.state.tasks.wait(deploy_id)

    body = (await client.get(f"/deploy/{deploy_id}")).json()
    assert body["deploy"]["status"] == "success"
    assert {p["status"] for p in body["projects"]} == {"success"}
    assert [p["id"] for p in body["pipelines"]] == [100, 200]
    assert [j["id"] for j in body["jobs"]] == [1]
    (used,) = fake_client.targets
    assert (used.host, used.token, used.scheme) == ("gitlab.test", "test-token", "https")


@pytest.mark.asyncio
async def test_run_with_explicit_target(
    app: FastAPI, client: httpx.AsyncClient, fake_client: FakeReleaseClient
) -> None:
    deploy_id = await _create(client, {"groups": [{"group_index": 0}]})

    r = await client.post(
        "/deploy/run",
        json={"id": deploy_id, "host": "git.internal", "token": "other", "scheme": "http"},
    )
    assert r.status_code == 202
    await app.state.tasks.wait(deploy_id)

    (used,) = fake_client.targets
    assert used.base_url == "http://git.internal/api/v4"
    assert used.token == "other"


@pytest.mark.asyncio
async def test_run_unknown_deploy(client: httpx.AsyncClient) -> None:
    r = await client.post("/deploy/run", json={"id": 77})
    assert r.status_code == 404


@pytest.mark.asyncio
async def test_run_without_any_host(tmp_path: Path, fake_client: FakeReleaseClient) -> None:
    app = create_app(
        settings=make_settings(tmp_path, gitlab_host=""),
        client_factory=client_factory_for(fake_client),
    )
    async with app.router.lifespan_context(app):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            deploy_id = await _create(client)
            r = await client.post("/deploy/run", json={"id": deploy_id})

    assert r.status_code == 400
    assert fake_client.targets == []


@pytest.mark.asyncio
async def test_retry_reports_outcome(client: httpx.AsyncClient, fake_client: FakeReleaseClient) -> None:
    deploy_id = await _create(client, {"groups": [{"group_index": 0}]})

    r = await client.post("/deploy/retry", json={"id": deploy_id})

    assert r.status_code == 200
    assert r.json() == {"ok": True, "id": deploy_id, "outcome": "success"}
    assert (await client.get(f"/deploy/{deploy_id}")).json()["deploy"]["status"] == "success"


@pytest.mark.asyncio
async def test_copy_cancel_and_group_change(client: httpx.AsyncClient) -> None:
    deploy_id = await _create(client)

    r = await client.post("/deploy/copy", json={"from_id": deploy_id, "description": "again"})
    copy_id = r.json()["id"]
    assert copy_id != deploy_id

    r = await client.post("/deploy/cancel", json={"id": deploy_id})
    assert r.json() == {"ok": True}
    assert (await client.get(f"/deploy/{deploy_id}")).json()["deploy"]["status"] == "canceled"
    assert (await client.get(f"/deploy/{copy_id}")).json()["deploy"]["status"] == "pending"

    r = await client.post(
        "/deploy/group/change", json={"deploy_id": copy_id, "group_index": 1, "projects": []}
    )
    assert r.status_code == 409

    r = await client.post(
        "/deploy/group/change",
        json={
            "deploy_id": copy_id,
            "group_index": 2,
            "projects": [{"project_id": 30, "branch": "main", "tag_prefix": "docs"}],
        },
    )
    assert r.json() == {"ok": True}
    detail = (await client.get(f"/deploy/{copy_id}")).json()
    assert [g["group_index"] for g in detail["groups"]] == [0, 1, 2]


@pytest.mark.asyncio
async def test_project_registry_endpoints(
    client: httpx.AsyncClient, fake_client: FakeReleaseClient
) -> None:
    r = await client.post("/projects", json={"id": 10, "name": "billing-api", "group_id": 3})
    assert r.status_code == 201
    r = await client.post("/projects", json={"id": 10, "name": "again"})
    assert r.status_code == 409

    r = await client.post("/projects/10/alias", json={"alias": "billing"})
    assert r.json() == {"ok": True}
    r = await client.get("/projects", params={"group_id": 3})
    assert [(p["id"], p["alias"]) for p in r.json()] == [(10, "billing")]

    fake_client.branches[10] = ["main", "release/1.0", "release/1.1"]
    r = await client.get("/projects/10/branches", params={"branch": "release"})
    assert r.json() == {"project_id": 10, "branches": ["release/1.0", "release/1.1"]}

    deploy_id = await _create(client)
    projects = (await client.get(f"/deploy/{deploy_id}")).json()["projects"]
    names = {p["project_id"]: p["project_name"] for p in projects}
    assert names[10] == "billing-api"

    assert (await client.delete("/projects/10")).json() == {"ok": True}
    assert (await client.delete("/projects/10")).status_code == 404
    assert (await client.post("/projects/10/alias", json={"alias": "x"})).status_code == 404


@pytest.mark.asyncio
async def test_search_projects_by_branch(
    client: httpx.AsyncClient, fake_client: FakeReleaseClient
) -> None:
    fake_client.branches.update({10: ["main", "release/1.0"], 20: ["release/1.0.1"], 30: ["main"]})

    r = await client.post(
        "/projects/search", json={"project_ids": [30, 20, 10], "branch": "release/1.0"}
    )
    assert r.status_code == 200
    # 20 only has a longer branch that merely contains the name.
    assert r.json() == [10]

    r = await client.post("/projects/search", json={"project_ids": [30, 10]})
    assert r.json() == [30, 10]

    r = await client.post("/projects/search", json={"branch": "main"})
    assert r.status_code == 400


def test_websocket_receives_deploy_events(tmp_path: Path) -> None:
    app = create_app(
        settings=make_settings(tmp_path),
        client_factory=client_factory_for(FakeReleaseClient()),
    )
    with TestClient(app) as http:
        deploy_id = http.post("/deploy/create", json=DEPLOY).json()["id"]
        with http.websocket_connect(f"/ws/deploy/{deploy_id}") as ws:
            ws.send_text("ping")
            assert ws.receive_json() == {"type": "pong", "deploy_id": deploy_id}

            assert http.post("/deploy/cancel", json={"id": deploy_id}).json() == {"ok": True}
            event = ws.receive_json()

    assert event["type"] == "deploy_canceled"
    assert event["deploy_id"] == deploy_id
