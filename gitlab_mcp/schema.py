"""Schema contract for tool arguments and GitLab API payloads."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Annotated, Any, Literal, TypeVar

from pydantic import (
    BaseModel,
    BeforeValidator,
    ConfigDict,
    Field,
    RootModel,
    ValidationError,
)
from pydantic.json_schema import SkipJsonSchema

T = TypeVar("T")
ModelT = TypeVar("ModelT", bound=BaseModel)


def _reject_null(value: Any) -> Any:
    """Reject explicit nulls for fields that may only be omitted."""
    if value is None:
        raise ValueError("field may be omitted but must not be null")
    return value


# Optional but not nullable: an absent key is fine, an explicit null is not.
# The None branch is kept out of the advertised JSON Schema.
Omittable = Annotated[T | SkipJsonSchema[None], BeforeValidator(_reject_null)]


def _drop_null_defaults(schema: dict[str, Any]) -> None:
    """Remove the implicit ``default: null`` of omittable arguments from a schema."""
    for prop in schema.get("properties", {}).values():
        if "default" in prop and prop["default"] is None:
            del prop["default"]


class GitLabModel(BaseModel):
    """Base for GitLab payloads; unknown fields are stripped."""

    model_config = ConfigDict(extra="ignore", strict=True)


class ToolArguments(BaseModel):
    """Base for tool argument sets; unknown fields are stripped."""

    model_config = ConfigDict(extra="ignore", strict=True, json_schema_extra=_drop_null_defaults)


# --- GitLab payloads -------------------------------------------------------


class GitLabAuthor(GitLabModel):
    """Commit author signature."""

    name: str
    email: str
    date: str


class GitLabNamespace(GitLabModel):
    """Namespace (user or group) as returned by the namespaces API."""

    id: int
    name: str
    path: str
    kind: Literal["user", "group"]
    full_path: str
    parent_id: int | None
    avatar_url: str | None
    web_url: str
    members_count_with_descendants: Omittable[int] = None
    billable_members_count: Omittable[int] = None
    max_seats_used: Omittable[int] = None
    seats_in_use: Omittable[int] = None
    plan: Omittable[str] = None
    end_date: str | None = None
    trial_ends_on: str | None = None
    trial: Omittable[bool] = None
    root_repository_size: Omittable[int] = None
    projects_count: Omittable[int] = None


class GitLabNamespaceExistsResponse(GitLabModel):
    """Answer of the namespace existence check."""

    exists: bool
    suggests: Omittable[list[str]] = None


class GitLabOwner(GitLabModel):
    """Project owner summary."""

    username: str
    id: int
    avatar_url: str
    web_url: str
    name: str
    state: str


class GitLabRepositoryNamespace(GitLabModel):
    """Namespace summary embedded in a project payload."""

    id: int
    name: str
    path: str
    kind: str
    full_path: str
    avatar_url: str | None = None
    web_url: Omittable[str] = None


class GitLabAccess(GitLabModel):
    """Access level granted to the current user."""

    access_level: int
    notification_level: Omittable[int] = None


class GitLabPermissions(GitLabModel):
    """Project and group access of the current user."""

    project_access: GitLabAccess | None = None
    group_access: GitLabAccess | None = None


class GitLabSharedGroup(GitLabModel):
    """Group a project is shared with."""

    group_id: int
    group_name: str
    group_full_path: str
    group_access_level: int


class GitLabRepository(GitLabModel):
    """Project payload as returned by the projects API."""

    id: int
    name: str
    path_with_namespace: str
    visibility: Omittable[str] = None
    owner: Omittable[GitLabOwner] = None
    web_url: Omittable[str] = None
    description: str | None
    fork: Omittable[bool] = None
    ssh_url_to_repo: Omittable[str] = None
    http_url_to_repo: Omittable[str] = None
    created_at: Omittable[str] = None
    last_activity_at: Omittable[str] = None
    default_branch: Omittable[str] = None
    namespace: Omittable[GitLabRepositoryNamespace] = None
    readme_url: str | None = None
    topics: Omittable[list[str]] = None
    tag_list: Omittable[list[str]] = None
    open_issues_count: Omittable[int] = None
    archived: Omittable[bool] = None
    forks_count: Omittable[int] = None
    star_count: Omittable[int] = None
    permissions: Omittable[GitLabPermissions] = None
    container_registry_enabled: Omittable[bool] = None
    container_registry_access_level: Omittable[str] = None
    issues_enabled: Omittable[bool] = None
    merge_requests_enabled: Omittable[bool] = None
    wiki_enabled: Omittable[bool] = None
    jobs_enabled: Omittable[bool] = None
    snippets_enabled: Omittable[bool] = None
    can_create_merge_request_in: Omittable[bool] = None
    resolve_outdated_diff_discussions: Omittable[bool] = None
    shared_runners_enabled: Omittable[bool] = None
    shared_with_groups: Omittable[list[GitLabSharedGroup]] = None


class GitLabFileContent(GitLabModel):
    """Single file returned by the repository files API."""

    file_name: str
    file_path: str
    size: int
    encoding: str
    content: str
    content_sha256: str
    ref: str
    blob_id: str
    commit_id: str
    last_commit_id: str
    execute_filemode: Omittable[bool] = None


class GitLabDirectoryContent(GitLabModel):
    """One entry of a directory listing."""

    name: str
    path: str
    type: str
    mode: str
    id: str
    web_url: str


class GitLabContent(RootModel[GitLabFileContent | list[GitLabDirectoryContent]]):
    """Either a single file or the entries of a directory."""


class GitLabTreeEntry(GitLabModel):
    """One entry of a repository tree listing."""

    id: str
    name: str
    type: Literal["blob", "tree"]
    path: str
    mode: str


class GitLabTree(GitLabModel):
    """Repository tree with its entries."""

    id: str
    tree: list[GitLabTreeEntry]


class GitLabReferenceCommit(GitLabModel):
    """Commit a branch or tag points at."""

    id: str
    web_url: str


class GitLabReference(GitLabModel):
    """Branch or tag reference."""

    name: str
    commit: GitLabReferenceCommit


class GitLabSearchResponse(GitLabModel):
    """One page of project search results with pagination totals."""

    count: Omittable[int] = None
    total_pages: Omittable[int] = None
    current_page: Omittable[int] = None
    items: list[GitLabRepository]


class GitLabUser(GitLabModel):
    """User summary embedded in merge request payloads."""

    username: str
    id: int
    name: str
    avatar_url: str
    web_url: str


class GitLabMergeRequestDiffRef(GitLabModel):
    """Base, head, and start SHAs of a merge request diff."""

    base_sha: str
    head_sha: str
    start_sha: str


class GitLabMergeRequest(GitLabModel):
    """Merge request payload as returned by the merge requests API."""

    id: int
    iid: int
    project_id: int
    title: str
    description: str | None
    state: str
    merged: Omittable[bool] = None
    draft: Omittable[bool] = None
    author: GitLabUser
    assignees: Omittable[list[GitLabUser]] = None
    source_branch: str
    target_branch: str
    diff_refs: GitLabMergeRequestDiffRef | None = None
    web_url: str
    created_at: str
    updated_at: str
    merged_at: str | None
    closed_at: str | None
    merge_commit_sha: str | None
    detailed_merge_status: Omittable[str] = None
    merge_status: Omittable[str] = None
    merge_error: str | None = None
    work_in_progress: Omittable[bool] = None
    blocking_discussions_resolved: Omittable[bool] = None
    should_remove_source_branch: bool | None = None
    force_remove_source_branch: bool | None = None
    allow_collaboration: Omittable[bool] = None
    allow_maintainer_to_push: Omittable[bool] = None
    changes_count: str | None = None
    merge_when_pipeline_succeeds: Omittable[bool] = None
    squash: Omittable[bool] = None
    labels: Omittable[list[str]] = None


class GitLabMergeRequestDiff(GitLabModel):
    """One changed file in a merge request diff."""

    old_path: str
    new_path: str
    a_mode: str
    b_mode: str
    diff: str
    new_file: bool
    renamed_file: bool
    deleted_file: bool
    generated_file: bool | None = None


class GitLabMergeRequestDiffList(RootModel[list[GitLabMergeRequestDiff]]):
    """Changed files of a merge request."""


class GitLabCommitStats(GitLabModel):
    """Line counts added and removed by a commit."""

    additions: int
    deletions: int
    total: int


class GitLabCommit(GitLabModel):
    """Commit payload as returned by the repository commits API."""

    id: str
    short_id: str
    title: str
    message: str
    author_name: str
    author_email: str
    authored_date: str
    committer_name: str
    committer_email: str
    committed_date: str
    created_at: str
    parent_ids: Omittable[list[str]] = None
    web_url: str
    stats: Omittable[GitLabCommitStats] = None
    trailers: Omittable[dict[str, str]] = None
    status: str | None = None


class GitLabCommitList(RootModel[list[GitLabCommit]]):
    """Page of repository commits."""


class GitLabCommitDiff(GitLabMergeRequestDiff):
    """One changed file in a commit diff; same shape as a merge request diff."""


class GitLabCommitDiffList(RootModel[list[GitLabCommitDiff]]):
    """Changed files of a commit."""


# --- Tool arguments --------------------------------------------------------


class ProjectArguments(ToolArguments):
    """Arguments addressing one project."""

    project_id: str = Field(description="Project ID or URL-encoded path")


class MergeRequestArguments(ProjectArguments):
    """Arguments addressing one merge request."""

    merge_request_iid: int = Field(description="The internal ID of the merge request")


class SearchRepositoriesArguments(ToolArguments):
    """Arguments for a paged project search."""

    search: str = Field(description="Search query")
    page: int = Field(default=1, gt=0, description="Page number for pagination (default: 1)")
    per_page: int = Field(
        default=20, gt=0, description="Number of results per page (default: 20)"
    )


class GetMergeRequestArguments(MergeRequestArguments):
    """Arguments for fetching one merge request."""


class GetMergeRequestDiffsArguments(MergeRequestArguments):
    """Arguments for fetching merge request changes."""

    view: Omittable[Literal["inline", "parallel"]] = Field(
        default=None, description="Diff view type"
    )


class UpdateMergeRequestArguments(MergeRequestArguments):
    """Merge request update; only supplied fields are sent to GitLab."""

    title: Omittable[str] = Field(default=None, description="New title of the merge request")
    description: Omittable[str] = Field(default=None, description="New description")
    target_branch: Omittable[str] = Field(default=None, description="New target branch")
    assignee_id: Omittable[int] = Field(default=None, description="Assignee user ID")
    assignee_ids: Omittable[list[int]] = Field(default=None, description="Assignee user IDs")
    reviewer_ids: Omittable[list[int]] = Field(default=None, description="Reviewer user IDs")
    milestone_id: Omittable[int] = Field(default=None, description="Milestone ID")
    labels: Omittable[list[str]] = Field(
        default=None, description="Labels replacing the current set"
    )
    add_labels: Omittable[list[str]] = Field(default=None, description="Labels to add")
    remove_labels: Omittable[list[str]] = Field(default=None, description="Labels to remove")
    state_event: Omittable[Literal["close", "reopen"]] = Field(
        default=None, description="New state (close/reopen)"
    )
    remove_source_branch: Omittable[bool] = Field(
        default=None, description="Remove the source branch after merge"
    )
    squash: Omittable[bool] = Field(default=None, description="Squash commits on merge")
    discussion_locked: Omittable[bool] = Field(
        default=None, description="Lock discussions on the merge request"
    )
    allow_collaboration: Omittable[bool] = Field(
        default=None, description="Allow commits from members who can merge to the target branch"
    )

    def changes(self) -> dict[str, Any]:
        """Return the supplied mutable fields, without the addressing fields."""
        return self.model_dump(
            mode="json",
            exclude_unset=True,
            exclude={"project_id", "merge_request_iid"},
        )


class ListRepositoryCommitsArguments(ProjectArguments):
    """Commit listing filters; each one is sent only when supplied."""

    ref_name: Omittable[str] = Field(
        default=None, description="Branch, tag, or revision range to list commits from"
    )
    since: Omittable[str] = Field(
        default=None, description="Only commits after or on this date (ISO 8601)"
    )
    until: Omittable[str] = Field(
        default=None, description="Only commits before or on this date (ISO 8601)"
    )
    author: Omittable[str] = Field(default=None, description="Search commits by commit author")
    all: Omittable[bool] = Field(
        default=None, description="Retrieve every commit from the repository"
    )


class GetCommitDiffArguments(ProjectArguments):
    """Arguments for fetching one commit diff."""

    commit_sha: str = Field(description="Commit SHA, branch, or tag name")


class ReportCodeReviewResultsArguments(MergeRequestArguments):
    """Arguments for saving a review report to disk."""

    report_content: str = Field(description="Markdown content of the code review report")
    output_file: str = Field(description="Path of the file the report is written to")


# --- Validation entry points -----------------------------------------------


def validate(schema: type[ModelT], value: object) -> ModelT:
    """Validate a value against a schema and return the normalized model.

    Raises ``pydantic.ValidationError`` listing every offending location.
    """
    return schema.model_validate(value)


def _format_location(location: Sequence[int | str]) -> str:
    """Render an error location as a dotted path."""
    if not location:
        return "(root)"
    return ".".join(str(part) for part in location)


def describe_validation_errors(error: ValidationError) -> list[str]:
    """Return one ``path: message`` line per validation failure."""
    return [f"{_format_location(item['loc'])}: {item['msg']}" for item in error.errors()]


def format_validation_error(error: ValidationError) -> str:
    """Join every validation failure into one caller-facing message."""
    return ", ".join(describe_validation_errors(error))


def dump_payload(value: BaseModel) -> Any:
    """Return the JSON-ready form of a validated model, keeping absent fields absent."""
    return value.model_dump(mode="json", exclude_unset=True)
