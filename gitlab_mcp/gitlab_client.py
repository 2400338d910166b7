"""GitLab API wrapper used by the tool handlers."""

from __future__ import annotations

import logging
import math
from typing import Any, TypeVar
from urllib.parse import quote

import httpx
from pydantic import BaseModel, ValidationError

from gitlab_mcp.config import Settings
from gitlab_mcp.errors import RemoteAPIError, RemoteTransportError, ResponseShapeError
from gitlab_mcp.schema import (
    GitLabCommitDiffList,
    GitLabCommitList,
    GitLabMergeRequest,
    GitLabMergeRequestDiffList,
    GitLabSearchResponse,
    format_validation_error,
    validate,
)

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=BaseModel)

TOTAL_COUNT_HEADER = "X-Total"
TOTAL_PAGES_HEADER = "X-Total-Pages"
DEFAULT_SEARCH_PAGE = 1
DEFAULT_SEARCH_PER_PAGE = 20


def build_gitlab_client(
    settings: Settings,
    *,
    timeout_seconds: float = 20,
    trust_env: bool = True,
) -> httpx.AsyncClient:
    """Build an authenticated GitLab HTTP client rooted at the API base URL."""
    headers = {
        "Accept": "application/json",
        "Content-Type": "application/json",
        "Authorization": f"Bearer {settings.token}",
    }
    return httpx.AsyncClient(
        base_url=settings.api_url,
        headers=headers,
        timeout=timeout_seconds,
        trust_env=trust_env,
    )


def project_endpoint(project_id: str) -> str:
    """Return the project path with the ID encoded as a single path segment."""
    return f"/projects/{quote(project_id, safe='')}"


async def _request(
    client: httpx.AsyncClient,
    method: str,
    endpoint: str,
    *,
    params: dict[str, str] | None = None,
    json_body: dict[str, Any] | None = None,
) -> httpx.Response:
    """Send one request and raise a typed error for any non-success status."""
    logger.debug("GitLab %s %s params=%s", method, endpoint, params)
    try:
        response = await client.request(method, endpoint, params=params, json=json_body)
    except httpx.HTTPError as error:
        raise RemoteTransportError(
            f"GitLab API request failed for '{endpoint}': network error ({error}).",
            endpoint=endpoint,
        ) from error

    if not response.is_success:
        raise RemoteAPIError(
            status_code=response.status_code,
            reason=response.reason_phrase,
            body=response.text,
            endpoint=endpoint,
        )
    return response


def _parse_json(response: httpx.Response, *, endpoint: str) -> Any:
    """Decode a successful response body as JSON."""
    try:
        return response.json()
    except ValueError as error:
        raise ResponseShapeError(
            f"Expected a JSON body in GitLab response for '{endpoint}'.",
            endpoint=endpoint,
        ) from error


def _validate_payload(schema: type[ModelT], payload: object, *, endpoint: str) -> ModelT:
    """Validate a decoded payload and report shape mismatches as response errors."""
    try:
        return validate(schema, payload)
    except ValidationError as error:
        raise ResponseShapeError(
            f"Unexpected GitLab response shape for '{endpoint}': "
            f"{format_validation_error(error)}",
            endpoint=endpoint,
        ) from error


def _header_int(response: httpx.Response, name: str) -> int | None:
    """Read an integer pagination header, if present and valid."""
    value = response.headers.get(name)
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


async def search_projects(
    *,
    client: httpx.AsyncClient,
    search: str,
    page: int = DEFAULT_SEARCH_PAGE,
    per_page: int = DEFAULT_SEARCH_PER_PAGE,
) -> GitLabSearchResponse:
    """Search projects and return one page with pagination totals."""
    endpoint = "/projects"
    params = {
        "search": search,
        "page": str(page),
        "per_page": str(per_page),
        "order_by": "id",
        "sort": "desc",
    }
    response = await _request(client, "GET", endpoint, params=params)
    projects = _parse_json(response, endpoint=endpoint)
    if not isinstance(projects, list):
        raise ResponseShapeError(
            f"Expected JSON array in GitLab response for '{endpoint}'.",
            endpoint=endpoint,
        )

    # GitLab omits the totals headers once a result set exceeds 10,000 rows.
    total_count = _header_int(response, TOTAL_COUNT_HEADER)
    count = total_count if total_count is not None else len(projects)
    total_pages = _header_int(response, TOTAL_PAGES_HEADER)
    if total_pages is None:
        total_pages = math.ceil(count / per_page)

    return _validate_payload(
        GitLabSearchResponse,
        {
            "count": count,
            "total_pages": total_pages,
            "current_page": page,
            "items": projects,
        },
        endpoint=endpoint,
    )


async def fetch_merge_request(
    *,
    client: httpx.AsyncClient,
    project_id: str,
    merge_request_iid: int,
) -> GitLabMergeRequest:
    """Fetch merge request details."""
    endpoint = f"{project_endpoint(project_id)}/merge_requests/{merge_request_iid}"
    response = await _request(client, "GET", endpoint)
    return _validate_payload(
        GitLabMergeRequest, _parse_json(response, endpoint=endpoint), endpoint=endpoint
    )


async def fetch_merge_request_diffs(
    *,
    client: httpx.AsyncClient,
    project_id: str,
    merge_request_iid: int,
    view: str | None = None,
) -> GitLabMergeRequestDiffList:
    """Fetch the per-file changes of a merge request."""
    endpoint = f"{project_endpoint(project_id)}/merge_requests/{merge_request_iid}/changes"
    params = {"view": view} if view else None
    response = await _request(client, "GET", endpoint, params=params)
    payload = _parse_json(response, endpoint=endpoint)
    if not isinstance(payload, dict):
        raise ResponseShapeError(
            f"Expected JSON object in GitLab response for '{endpoint}'.",
            endpoint=endpoint,
        )
    return _validate_payload(
        GitLabMergeRequestDiffList, payload.get("changes"), endpoint=endpoint
    )


async def update_merge_request(
    *,
    client: httpx.AsyncClient,
    project_id: str,
    merge_request_iid: int,
    changes: dict[str, Any],
) -> GitLabMergeRequest:
    """Update a merge request with the supplied fields and return the new state."""
    endpoint = f"{project_endpoint(project_id)}/merge_requests/{merge_request_iid}"
    response = await _request(client, "PUT", endpoint, json_body=changes)
    return _validate_payload(
        GitLabMergeRequest, _parse_json(response, endpoint=endpoint), endpoint=endpoint
    )


async def fetch_repository_commits(
    *,
    client: httpx.AsyncClient,
    project_id: str,
    ref_name: str | None = None,
    since: str | None = None,
    until: str | None = None,
    author: str | None = None,
    all_branches: bool | None = None,
) -> GitLabCommitList:
    """List repository commits, sending only the filters that were supplied."""
    endpoint = f"{project_endpoint(project_id)}/repository/commits"
    params: dict[str, str] = {}
    if ref_name is not None:
        params["ref_name"] = ref_name
    if since is not None:
        params["since"] = since
    if until is not None:
        params["until"] = until
    if author is not None:
        params["author"] = author
    if all_branches is not None:
        params["all"] = "true" if all_branches else "false"

    response = await _request(client, "GET", endpoint, params=params or None)
    return _validate_payload(
        GitLabCommitList, _parse_json(response, endpoint=endpoint), endpoint=endpoint
    )


async def fetch_commit_diff(
    *,
    client: httpx.AsyncClient,
    project_id: str,
    commit_sha: str,
) -> GitLabCommitDiffList:
    """Fetch the per-file diff of one commit."""
    endpoint = (
        f"{project_endpoint(project_id)}/repository/commits/{quote(commit_sha, safe='')}/diff"
    )
    response = await _request(client, "GET", endpoint)
    return _validate_payload(
        GitLabCommitDiffList, _parse_json(response, endpoint=endpoint), endpoint=endpoint
    )
