"""Tool registry, tool contracts, and call dispatch."""

from __future__ import annotations

import json
import logging
from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass, field
from typing import Any, Literal

import httpx
from pydantic import BaseModel, ValidationError

from gitlab_mcp import gitlab_client
from gitlab_mcp.errors import InvalidArgumentsError, ToolCallError, UnknownToolError
from gitlab_mcp.output import write_report
from gitlab_mcp.schema import (
    GetCommitDiffArguments,
    GetMergeRequestArguments,
    GetMergeRequestDiffsArguments,
    ListRepositoryCommitsArguments,
    ReportCodeReviewResultsArguments,
    SearchRepositoriesArguments,
    ToolArguments,
    UpdateMergeRequestArguments,
    describe_validation_errors,
    dump_payload,
    validate,
)

logger = logging.getLogger(__name__)

ToolHandler = Callable[[Any], Awaitable[BaseModel | str]]


@dataclass(frozen=True, slots=True)
class ToolDefinition:
    """One entry of the tool catalog."""

    name: str
    description: str
    argument_schema: type[ToolArguments]
    handler: ToolHandler

    def input_schema(self) -> dict[str, Any]:
        """Return the JSON Schema document advertised for this tool's arguments."""
        return self.argument_schema.model_json_schema()


@dataclass(frozen=True, slots=True)
class TextContentBlock:
    """One text item of a tool result."""

    text: str
    type: Literal["text"] = "text"


@dataclass(frozen=True, slots=True)
class ToolCallResult:
    """Uniform envelope returned to the host for every tool call."""

    content: tuple[TextContentBlock, ...] = field(default_factory=tuple)
    is_error: bool = False

    @classmethod
    def text(cls, text: str, *, is_error: bool = False) -> ToolCallResult:
        """Wrap a single text block."""
        return cls(content=(TextContentBlock(text=text),), is_error=is_error)


class ToolRegistry:
    """Read-only mapping from tool name to its definition, in catalog order."""

    def __init__(self, definitions: Iterable[ToolDefinition]) -> None:
        tools: dict[str, ToolDefinition] = {}
        for definition in definitions:
            if definition.name in tools:
                raise ValueError(f"Duplicate tool name '{definition.name}'.")
            tools[definition.name] = definition
        self._tools = tools

    def list(self) -> tuple[ToolDefinition, ...]:
        """Return every tool definition in registration order."""
        return tuple(self._tools.values())

    def lookup(self, name: str) -> ToolDefinition | None:
        """Return the definition registered under ``name``, if any."""
        return self._tools.get(name)

    def __len__(self) -> int:
        return len(self._tools)


def serialize_result(value: BaseModel) -> str:
    """Render a validated payload as indented JSON with stable key order."""
    return json.dumps(dump_payload(value), indent=2, sort_keys=True)


def build_tool_definitions(client: httpx.AsyncClient) -> tuple[ToolDefinition, ...]:
    """Build the fixed tool catalog bound to one GitLab client."""

    async def search_repositories(args: SearchRepositoriesArguments) -> BaseModel:
        return await gitlab_client.search_projects(
            client=client,
            search=args.search,
            page=args.page,
            per_page=args.per_page,
        )

    async def get_merge_request(args: GetMergeRequestArguments) -> BaseModel:
        return await gitlab_client.fetch_merge_request(
            client=client,
            project_id=args.project_id,
            merge_request_iid=args.merge_request_iid,
        )

    async def get_merge_request_diffs(args: GetMergeRequestDiffsArguments) -> BaseModel:
        return await gitlab_client.fetch_merge_request_diffs(
            client=client,
            project_id=args.project_id,
            merge_request_iid=args.merge_request_iid,
            view=args.view,
        )

    async def update_merge_request(args: UpdateMergeRequestArguments) -> BaseModel:
        return await gitlab_client.update_merge_request(
            client=client,
            project_id=args.project_id,
            merge_request_iid=args.merge_request_iid,
            changes=args.changes(),
        )

    async def list_repository_commits(args: ListRepositoryCommitsArguments) -> BaseModel:
        return await gitlab_client.fetch_repository_commits(
            client=client,
            project_id=args.project_id,
            ref_name=args.ref_name,
            since=args.since,
            until=args.until,
            author=args.author,
            all_branches=args.all,
        )

    async def get_commit_diff(args: GetCommitDiffArguments) -> BaseModel:
        return await gitlab_client.fetch_commit_diff(
            client=client,
            project_id=args.project_id,
            commit_sha=args.commit_sha,
        )

    async def report_code_review_results(args: ReportCodeReviewResultsArguments) -> str:
        await write_report(args.output_file, args.report_content)
        return f"Code review report saved to {args.output_file}"

    return (
        ToolDefinition(
            name="search_repositories",
            description="Search for GitLab projects",
            argument_schema=SearchRepositoriesArguments,
            handler=search_repositories,
        ),
        ToolDefinition(
            name="get_merge_request",
            description="Get details of a merge request",
            argument_schema=GetMergeRequestArguments,
            handler=get_merge_request,
        ),
        ToolDefinition(
            name="get_merge_request_diffs",
            description="Get the changes/diffs of a merge request",
            argument_schema=GetMergeRequestDiffsArguments,
            handler=get_merge_request_diffs,
        ),
        ToolDefinition(
            name="update_merge_request",
            description="Update a merge request",
            argument_schema=UpdateMergeRequestArguments,
            handler=update_merge_request,
        ),
        ToolDefinition(
            name="list_repository_commits",
            description="List commits in a project repository, optionally filtered",
            argument_schema=ListRepositoryCommitsArguments,
            handler=list_repository_commits,
        ),
        ToolDefinition(
            name="get_commit_diff",
            description="Get the diff of a single commit",
            argument_schema=GetCommitDiffArguments,
            handler=get_commit_diff,
        ),
        ToolDefinition(
            name="report_code_review_results",
            description="Save a code review report for a merge request to a local file",
            argument_schema=ReportCodeReviewResultsArguments,
            handler=report_code_review_results,
        ),
    )


def build_tool_registry(client: httpx.AsyncClient) -> ToolRegistry:
    """Build the registry of every tool exposed to the host."""
    return ToolRegistry(build_tool_definitions(client))


class Dispatcher:
    """Route one tool call through lookup, validation, handler, and result wrapping."""

    def __init__(self, registry: ToolRegistry) -> None:
        self._registry = registry

    async def dispatch(self, name: str, arguments: Mapping[str, Any] | None) -> ToolCallResult:
        """Run one tool call; call-scoped failures become an error result."""
        logger.debug("Tool call '%s'", name)
        try:
            text = await self._invoke(name, arguments)
        except ToolCallError as error:
            logger.warning("Tool call '%s' failed: %s", name, error)
            return ToolCallResult.text(str(error), is_error=True)
        return ToolCallResult.text(text)

    async def _invoke(self, name: str, arguments: Mapping[str, Any] | None) -> str:
        if arguments is None:
            raise InvalidArgumentsError(["Arguments are required"])

        definition = self._registry.lookup(name)
        if definition is None:
            raise UnknownToolError(name)

        try:
            validated = validate(definition.argument_schema, arguments)
        except ValidationError as error:
            raise InvalidArgumentsError(describe_validation_errors(error)) from error

        result = await definition.handler(validated)
        if isinstance(result, str):
            return result
        return serialize_result(result)
