"""
Tool registry for managing available tools.
"""

from typing import Iterable

import structlog

from ..config import Settings
from ..llm.base import ToolDefinition
from .base import Tool

logger = structlog.get_logger()


class ToolRegistry:
    """Registry for managing tools.

    Tools are kept in registration order. Registering a name that already
    exists replaces the earlier tool in place.
    """

    def __init__(self, tools: Iterable[Tool] = ()):
        self._tools: dict[str, Tool] = {}
        for tool in tools:
            self.register(tool)

    def __len__(self) -> int:
        return len(self._tools)

    def __contains__(self, name: object) -> bool:
        return name in self._tools

    def register(self, tool: Tool) -> None:
        """Register a tool."""
        replaced = tool.name in self._tools
        self._tools[tool.name] = tool
        logger.debug("Tool registered", tool_name=tool.name, replaced=replaced)

    def unregister(self, name: str) -> None:
        """Unregister a tool."""
        if name in self._tools:
            del self._tools[name]
            logger.debug("Tool unregistered", tool_name=name)

    def get(self, name: str) -> Tool | None:
        """Get a tool by name."""
        return self._tools.get(name)

    def list_tools(self) -> list[str]:
        """List all registered tool names."""
        return list(self._tools.keys())

    def get_definitions(self) -> list[ToolDefinition]:
        """Get all tool definitions for LLM."""
        return [
            ToolDefinition(
                name=tool.name,
                description=tool.description,
                parameters=tool.get_parameters_schema(),
            )
            for tool in self._tools.values()
        ]

    def subset(self, names: Iterable[str]) -> "ToolRegistry":
        """Narrowed registry holding only the named tools that exist here.

        Tools appear in the order given; unknown names are skipped.
        """
        return ToolRegistry(self._tools[n] for n in names if n in self._tools)


def create_default_registry(settings: Settings) -> ToolRegistry:
    """Build the built-in tool set.

    The `agent` tool is not included here: it needs a model transport and is
    added by the caller.
    """
    from .file_tool import create_file_tools
    from .search_tool import create_search_tools
    from .shell_tool import create_shell_tools

    registry = ToolRegistry()
    for tool in create_shell_tools(
        timeout=settings.shell_timeout_seconds,
        max_output_chars=settings.max_tool_output_chars,
    ):
        registry.register(tool)
    for tool in create_file_tools(max_output_chars=settings.max_tool_output_chars):
        registry.register(tool)
    for tool in create_search_tools(max_output_chars=settings.max_tool_output_chars):
        registry.register(tool)
    return registry
