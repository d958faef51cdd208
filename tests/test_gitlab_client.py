"""
tests.test_gitlab_client

GitLab v4 client against `httpx.MockTransport`.
"""

from __future__ import annotations

import json
from datetime import UTC, datetime
from zoneinfo import ZoneInfo

import httpx
import pytest

from release_orchestrator.errors import RemoteError
from release_orchestrator.gitlab.base import GitLabTarget
from release_orchestrator.gitlab.client import GitLabClient, build_tag_name

FIXED_NOW = datetime(2026, 1, 1, 0, 30, tzinfo=UTC)


def _client(handler) -> GitLabClient:
    http = httpx.AsyncClient(
        transport=httpx.MockTransport(handler), base_url="https://gitlab.test/api/v4"
    )
    return GitLabClient(http=http, tag_timezone="Asia/Shanghai", clock=lambda: FIXED_NOW)


def test_tag_name_uses_release_timezone() -> None:
    assert build_tag_name("api", FIXED_NOW, ZoneInfo("Asia/Shanghai")) == "api-202601010830"
    assert build_tag_name("api", FIXED_NOW, ZoneInfo("UTC")) == "api-202601010030"


def test_target_base_url() -> None:
    target = GitLabTarget(host="gitlab.example.com", token="secret")
    assert target.base_url == "https://gitlab.example.com/api/v4"
    assert "secret" not in repr(target)


@pytest.mark.asyncio
async def test_create_tag_posts_name_and_ref() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(201, json={"name": "api-202601010830"})

    tag = await _client(handler).create_tag(42, "main", "api")

    assert tag == "api-202601010830"
    (request,) = seen
    assert request.method == "POST"
    assert request.url.path == "/api/v4/projects/42/repository/tags"
    assert json.loads(request.content) == {"tag_name": "api-202601010830", "ref": "main"}


@pytest.mark.asyncio
async def test_pipeline_lookup_takes_first_match() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["ref"] == "api-1"
        return httpx.Response(200, json=[{"id": 9001, "status": "running"}, {"id": 8000}])

    assert await _client(handler).get_pipeline_id_by_tag(42, "api-1") == 9001


@pytest.mark.asyncio
async def test_pipeline_lookup_without_match_is_remote_error() -> None:
    client = _client(lambda request: httpx.Response(200, json=[]))

    with pytest.raises(RemoteError, match="no pipeline found"):
        await client.get_pipeline_id_by_tag(42, "api-1")


@pytest.mark.asyncio
async def test_non_2xx_is_remote_error_with_status() -> None:
    client = _client(lambda request: httpx.Response(400, json={"message": "Tag already exists"}))

    with pytest.raises(RemoteError) as excinfo:
        await client.create_tag(42, "main", "api")

    assert excinfo.value.status_code == 400
    assert "Tag already exists" in str(excinfo.value)


@pytest.mark.asyncio
async def test_transport_failure_is_remote_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    with pytest.raises(RemoteError):
        await _client(handler).get_pipeline_detail(42, 1)


@pytest.mark.asyncio
async def test_unparseable_payloads_are_remote_errors() -> None:
    text_client = _client(lambda request: httpx.Response(200, text="<html>"))
    with pytest.raises(RemoteError, match="non-JSON"):
        await text_client.get_pipeline_detail(42, 1)

    shape_client = _client(lambda request: httpx.Response(200, json={"not": "a list"}))
    with pytest.raises(RemoteError, match="unexpected GitLab jobs payload"):
        await shape_client.get_jobs_by_pipeline(42, 1)


@pytest.mark.asyncio
async def test_pipeline_detail_and_jobs_are_normalized() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path.endswith("/jobs"):
            assert request.url.params["include_retried"] == "true"
            return httpx.Response(
                200,
                json=[
                    {
                        "id": 7,
                        "name": "build",
                        "stage": "build",
                        "status": "success",
                        "created_at": "2026-01-01T00:00:00Z",
                        "updated_at": "2026-01-01T00:02:00Z",
                        "finished_at": "2026-01-01T00:01:30Z",
                        "web_url": "https://gitlab.test/jobs/7",
                        "runner": {"id": 3},
                    },
                    {"id": 8, "name": "deploy", "stage": "deploy", "status": "created"},
                ],
            )
        return httpx.Response(200, json={"id": 1, "status": "Running", "user": None})

    client = _client(handler)
    detail = await client.get_pipeline_detail(42, 1)
    jobs = await client.get_jobs_by_pipeline(42, 1)

    assert detail.normalized_status == "running"
    assert detail.user_name == ""
    assert [j.last_update for j in jobs] == ["2026-01-01T00:01:30Z", ""]


@pytest.mark.asyncio
async def test_branch_search() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.params["search"] == "release"
        return httpx.Response(200, json=[{"name": "release/1.0"}, {"name": "release/1.1"}])

    assert await _client(handler).list_branches(42, "release") == ["release/1.0", "release/1.1"]
