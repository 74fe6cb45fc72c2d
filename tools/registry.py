"""
Tool descriptors and the registry builder.
"""

from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Dict, Iterable, Optional, Type

from mcp.types import Tool, ToolAnnotations
from pydantic import BaseModel

Handler = Callable[[Any, Any], Awaitable[Dict[str, Any]]]


def read_only(title: str) -> ToolAnnotations:
    return ToolAnnotations(
        title=title,
        readOnlyHint=True,
        destructiveHint=False,
        idempotentHint=True,
        openWorldHint=True,
    )


def write(title: str, *, destructive: bool = False, idempotent: bool = False) -> ToolAnnotations:
    return ToolAnnotations(
        title=title,
        readOnlyHint=False,
        destructiveHint=destructive,
        idempotentHint=idempotent,
        openWorldHint=True,
    )


@dataclass(frozen=True)
class ToolDescriptor:
    """
    One callable tool: its name, the pydantic model describing (and
    validating) its arguments, and the coroutine that runs it.

    Handlers are called as ``await handler(params, client)`` where ``params``
    is an instance of ``input_model`` and ``client`` the shared BlueskyClient.
    """

    name: str
    description: str
    input_model: Type[BaseModel]
    handler: Handler
    annotations: Optional[ToolAnnotations] = field(default=None, compare=False)

    @property
    def input_schema(self) -> Dict[str, Any]:
        return self.input_model.model_json_schema()

    def to_tool(self) -> Tool:
        return Tool(
            name=self.name,
            description=self.description,
            inputSchema=self.input_schema,
            annotations=self.annotations,
        )


def build_registry(*groups: Iterable[ToolDescriptor]) -> Dict[str, ToolDescriptor]:
    """Merge descriptor groups into a name -> descriptor map, rejecting duplicates."""
    registry: Dict[str, ToolDescriptor] = {}
    for group in groups:
        for descriptor in group:
            if descriptor.name in registry:
                raise ValueError(f"Duplicate tool name: {descriptor.name}")
            registry[descriptor.name] = descriptor
    return registry
