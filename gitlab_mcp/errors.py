"""Error taxonomy shared by the dispatcher, GitLab client, and report writer."""

from __future__ import annotations


class BridgeError(RuntimeError):
    """Base class for every error raised by the bridge."""


class ConfigurationError(BridgeError):
    """Raised when required startup configuration is missing."""


class ToolCallError(BridgeError):
    """Raised when a single tool call fails; the server keeps running."""


class UnknownToolError(ToolCallError):
    """Raised when a tool call names a tool that is not registered."""

    def __init__(self, tool_name: str) -> None:
        super().__init__(f"Unknown tool: {tool_name}")
        self.tool_name = tool_name


class InvalidArgumentsError(ToolCallError):
    """Raised when tool arguments fail their schema."""

    def __init__(self, errors: list[str]) -> None:
        super().__init__(f"Invalid arguments: {', '.join(errors)}")
        self.errors = errors


class RemoteAPIError(ToolCallError):
    """Raised when the GitLab API answers with a non-success status."""

    def __init__(self, *, status_code: int, reason: str, body: str, endpoint: str) -> None:
        super().__init__(f"GitLab API error: {status_code} {reason}\n{body}")
        self.status_code = status_code
        self.reason = reason
        self.body = body
        self.endpoint = endpoint


class RemoteTransportError(ToolCallError):
    """Raised when the GitLab API could not be reached."""

    def __init__(self, message: str, *, endpoint: str) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class ResponseShapeError(ToolCallError):
    """Raised when a successful GitLab response does not match its schema."""

    def __init__(self, message: str, *, endpoint: str) -> None:
        super().__init__(message)
        self.endpoint = endpoint


class LocalIOError(ToolCallError):
    """Raised when a report cannot be written to disk."""

    def __init__(self, message: str, *, path: str) -> None:
        super().__init__(message)
        self.path = path
