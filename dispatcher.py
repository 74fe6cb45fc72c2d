"""
Request dispatcher: route a tool call to its handler and wrap the outcome.

Every call ends in a ``CallToolResult``. Tool failures become results with
``isError=True`` so the host model can read them; only ``ConfigurationError``
escapes, since it means the process itself is unusable.
"""

import json
import logging
from typing import Any, Dict, List, Optional

from mcp import types
from pydantic import ValidationError

from errors import ConfigurationError, ToolError, ToolInputError
from tools import REGISTRY
from tools.registry import ToolDescriptor

logger = logging.getLogger("bluesky_mcp.dispatcher")


def _text_result(text: str, *, is_error: bool) -> types.CallToolResult:
    return types.CallToolResult(
        content=[types.TextContent(type="text", text=text)],
        isError=is_error,
    )


def _validation_message(exc: ValidationError) -> str:
    problems = []
    for error in exc.errors():
        location = ".".join(str(part) for part in error["loc"]) or "arguments"
        problems.append(f"{location}: {error['msg']}")
    return "Invalid arguments - " + "; ".join(problems)


class Dispatcher:
    def __init__(self, client, registry: Optional[Dict[str, ToolDescriptor]] = None):
        self.client = client
        self.registry = REGISTRY if registry is None else registry

    def list_tools(self) -> List[types.Tool]:
        return [descriptor.to_tool() for descriptor in self.registry.values()]

    async def dispatch(self, name: str, arguments: Optional[Dict[str, Any]] = None) -> types.CallToolResult:
        descriptor = self.registry.get(name)
        if descriptor is None:
            logger.warning(f"Call to unknown tool '{name}'")
            return _text_result(f"Unknown tool: {name}", is_error=True)

        logger.info(f"Calling tool {name}")
        try:
            try:
                params = descriptor.input_model.model_validate(arguments or {})
            except ValidationError as e:
                raise ToolInputError(_validation_message(e)) from e
            result = await descriptor.handler(params, self.client)
        except ConfigurationError:
            raise
        except ToolError as e:
            logger.warning(f"Tool {name} failed: {e}")
            return self._error_result(name, e)
        except Exception as e:
            logger.exception(f"Unexpected error in tool {name}")
            return self._error_result(name, e)

        return _text_result(json.dumps(result, indent=2, default=str), is_error=False)

    @staticmethod
    def _error_result(name: str, exc: Exception) -> types.CallToolResult:
        message = f"Error executing {name}: {exc}"
        details = getattr(exc, "details", None)
        if details:
            message += "\n" + json.dumps(details, indent=2, default=str)
        return _text_result(message, is_error=True)
