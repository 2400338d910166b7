"""Unit tests for GitLab client behavior."""

from __future__ import annotations

import json

import httpx
import pytest
from gitlab_mcp import gitlab_client
from gitlab_mcp.config import Settings
from gitlab_mcp.errors import RemoteAPIError, RemoteTransportError, ResponseShapeError
from gitlab_mcp.gitlab_client import (
    build_gitlab_client,
    fetch_commit_diff,
    fetch_merge_request,
    fetch_merge_request_diffs,
    fetch_repository_commits,
    project_endpoint,
    search_projects,
    update_merge_request,
)
from gitlab_mcp.schema import dump_payload
from payloads import (
    make_client,
    make_commit_payload,
    make_diff_row,
    make_merge_request_payload,
    make_repository_payload,
)


def request_path(request: httpx.Request) -> str:
    """Return the request path exactly as sent, percent-escapes included."""
    return request.url.raw_path.decode("ascii").split("?", 1)[0]


@pytest.mark.unit
def test_build_gitlab_client_sets_static_headers() -> None:
    client = build_gitlab_client(
        Settings(token="glpat-secret", api_url="https://gitlab.example.com/api/v4")
    )

    assert client.headers["Authorization"] == "Bearer glpat-secret"
    assert client.headers["Accept"] == "application/json"
    assert client.headers["Content-Type"] == "application/json"
    assert str(client.base_url).startswith("https://gitlab.example.com/api/v4")


@pytest.mark.unit
def test_project_endpoint_encodes_path_separators() -> None:
    assert project_endpoint("42") == "/projects/42"
    assert project_endpoint("acme/tools/rocket") == "/projects/acme%2Ftools%2Frocket"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_search_projects_sends_fixed_ordering_and_reads_headers() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            status_code=200,
            json=[make_repository_payload(2, "rocket"), make_repository_payload(1, "engine")],
            headers={"X-Total": "45", "X-Total-Pages": "3"},
        )

    async with make_client(handler) as client:
        result = await search_projects(client=client, search="rocket", page=2, per_page=20)

    assert len(requests) == 1
    assert requests[0].method == "GET"
    assert request_path(requests[0]) == "/api/v4/projects"
    assert dict(requests[0].url.params) == {
        "search": "rocket",
        "page": "2",
        "per_page": "20",
        "order_by": "id",
        "sort": "desc",
    }
    assert result.count == 45
    assert result.total_pages == 3
    assert result.current_page == 2
    assert [item.name for item in result.items] == ["rocket", "engine"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_search_projects_derives_totals_when_headers_missing() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(
            status_code=200,
            json=[make_repository_payload(index) for index in range(1, 6)],
        )

    async with make_client(handler) as client:
        result = await search_projects(client=client, search="rocket", per_page=2)

    assert result.count == 5
    assert result.total_pages == 3
    assert result.current_page == 1


@pytest.mark.unit
@pytest.mark.asyncio
async def test_search_projects_rejects_non_array_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json={"message": "unexpected"})

    async with make_client(handler) as client:
        with pytest.raises(ResponseShapeError):
            await search_projects(client=client, search="rocket")


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fetch_merge_request_encodes_project_path() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request_path(request) == "/api/v4/projects/acme%2Frocket/merge_requests/3"
        return httpx.Response(status_code=200, json=make_merge_request_payload())

    async with make_client(handler) as client:
        merge_request = await fetch_merge_request(
            client=client,
            project_id="acme/rocket",
            merge_request_iid=3,
        )

    assert merge_request.iid == 3
    assert merge_request.author.username == "octocat"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_non_success_status_is_raised_before_json_validation(
    monkeypatch: pytest.MonkeyPatch,
) -> None:
    def fail_validation(*args: object, **kwargs: object) -> None:
        raise AssertionError("validation must not run for error responses")

    monkeypatch.setattr(gitlab_client, "validate", fail_validation)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=404, text="404 Project Not Found")

    async with make_client(handler) as client:
        with pytest.raises(RemoteAPIError) as error:
            await fetch_merge_request(client=client, project_id="42", merge_request_iid=3)

    assert error.value.status_code == 404
    assert error.value.body == "404 Project Not Found"
    assert error.value.endpoint == "/projects/42/merge_requests/3"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_error_message_carries_status_reason_and_body() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=404, text='{"message":"404 Project Not Found"}')

    async with make_client(handler) as client:
        with pytest.raises(RemoteAPIError) as error:
            await fetch_merge_request(client=client, project_id="42", merge_request_iid=3)

    assert error.value.reason == "Not Found"
    assert str(error.value) == (
        'GitLab API error: 404 Not Found\n{"message":"404 Project Not Found"}'
    )


@pytest.mark.unit
@pytest.mark.asyncio
async def test_error_body_is_kept_verbatim() -> None:
    body = '{"message":{"title":["is too long"]}}'

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=400, text=body)

    async with make_client(handler) as client:
        with pytest.raises(RemoteAPIError) as error:
            await update_merge_request(
                client=client,
                project_id="7",
                merge_request_iid=3,
                changes={"title": "x" * 300},
            )

    assert error.value.status_code == 400
    assert error.value.body == body


@pytest.mark.unit
@pytest.mark.asyncio
async def test_invalid_payload_shape_raises_response_shape_error() -> None:
    payload = make_merge_request_payload(title=100)

    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, json=payload)

    async with make_client(handler) as client:
        with pytest.raises(ResponseShapeError) as error:
            await fetch_merge_request(client=client, project_id="7", merge_request_iid=3)

    assert "title" in str(error.value)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_non_json_success_body_raises_response_shape_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(status_code=200, text="<html>maintenance</html>")

    async with make_client(handler) as client:
        with pytest.raises(ResponseShapeError):
            await fetch_merge_request(client=client, project_id="7", merge_request_iid=3)


@pytest.mark.unit
@pytest.mark.asyncio
async def test_network_failure_raises_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    async with make_client(handler) as client:
        with pytest.raises(RemoteTransportError) as error:
            await fetch_merge_request(client=client, project_id="7", merge_request_iid=3)

    assert error.value.endpoint == "/projects/7/merge_requests/3"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fetch_merge_request_diffs_returns_changes_array() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        payload = make_merge_request_payload(changes=[make_diff_row("a.py"), make_diff_row("b.py")])
        return httpx.Response(status_code=200, json=payload)

    async with make_client(handler) as client:
        diffs = await fetch_merge_request_diffs(
            client=client,
            project_id="7",
            merge_request_iid=3,
            view="parallel",
        )

    assert request_path(requests[0]) == "/api/v4/projects/7/merge_requests/3/changes"
    assert requests[0].url.params.get("view") == "parallel"
    assert [row.new_path for row in diffs.root] == ["a.py", "b.py"]


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fetch_merge_request_diffs_omits_view_when_not_supplied() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert "view" not in request.url.params
        return httpx.Response(status_code=200, json={"changes": []})

    async with make_client(handler) as client:
        diffs = await fetch_merge_request_diffs(client=client, project_id="7", merge_request_iid=3)

    assert diffs.root == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_update_merge_request_sends_put_with_changes_only() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code=200, json=make_merge_request_payload(title="New"))

    async with make_client(handler) as client:
        merge_request = await update_merge_request(
            client=client,
            project_id="7",
            merge_request_iid=3,
            changes={"title": "New"},
        )

    assert requests[0].method == "PUT"
    assert request_path(requests[0]) == "/api/v4/projects/7/merge_requests/3"
    assert json.loads(requests[0].content) == {"title": "New"}
    assert merge_request.title == "New"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fetch_repository_commits_sends_only_supplied_filters() -> None:
    requests: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(status_code=200, json=[make_commit_payload()])

    async with make_client(handler) as client:
        commits = await fetch_repository_commits(
            client=client,
            project_id="7",
            since="2024-05-01T00:00:00Z",
            author="octocat",
            all_branches=True,
        )

    assert request_path(requests[0]) == "/api/v4/projects/7/repository/commits"
    assert dict(requests[0].url.params) == {
        "since": "2024-05-01T00:00:00Z",
        "author": "octocat",
        "all": "true",
    }
    assert commits.root[0].short_id == "abcd1234"


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fetch_repository_commits_without_filters_sends_no_query() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.query == b""
        return httpx.Response(status_code=200, json=[])

    async with make_client(handler) as client:
        commits = await fetch_repository_commits(client=client, project_id="7")

    assert commits.root == []


@pytest.mark.unit
@pytest.mark.asyncio
async def test_fetch_commit_diff_validates_rows() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request_path(request) == "/api/v4/projects/42/repository/commits/abcd123/diff"
        return httpx.Response(status_code=200, json=[make_diff_row()])

    async with make_client(handler) as client:
        diffs = await fetch_commit_diff(client=client, project_id="42", commit_sha="abcd123")

    assert dump_payload(diffs) == [make_diff_row()]
