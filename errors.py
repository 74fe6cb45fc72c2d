"""
Error types for the Bluesky MCP server.

Two separate families: ``ConfigurationError`` is fatal and only raised while
the process starts up; ``ToolError`` and its subclasses fail a single tool
call and are turned into error results by the dispatcher.
"""

from typing import Any, Dict, Optional


class ConfigurationError(Exception):
    """Missing or unusable startup configuration (credentials, login)."""


class ToolError(Exception):
    """A single tool call failed; the server keeps running."""

    def __init__(self, message: str, *, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.details = details


class ToolInputError(ToolError):
    """Arguments violate the tool's schema or a handler precondition."""


class UpstreamError(ToolError):
    """The Bluesky service (or the network in front of it) rejected a request."""

    def __init__(self, message: str, *, status: Optional[int] = None):
        super().__init__(message)
        self.status = status


class ThreadCreationError(ToolError):
    """A thread stopped part way; ``created`` holds the posts already published."""

    def __init__(self, message: str, created: list):
        super().__init__(
            message,
            details={"created": created, "count": len(created)},
        )
        self.created = created
