"""
Base classes for tools.
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable, Coroutine

if TYPE_CHECKING:
    from ..agent.cancellation import CancellationToken


@dataclass
class ToolResult:
    """Result from a tool execution."""

    success: bool
    output: str = ""
    data: Any = None
    error: str | None = None


@dataclass
class ExplainResult:
    """Human-readable description of a pending tool call."""

    title: str
    detail: str = ""


@dataclass
class ToolParameter:
    """Definition of a tool parameter."""

    name: str
    param_type: str  # string, integer, number, boolean, array, object
    description: str
    required: bool = True
    default: Any = None
    enum: list[str] | None = None
    items: dict[str, Any] | None = None  # JSON Schema for array items
    properties: list["ToolParameter"] | None = None  # nested object fields

    def to_schema(self) -> dict[str, Any]:
        prop: dict[str, Any] = {
            "type": self.param_type,
            "description": self.description,
        }
        if self.enum:
            prop["enum"] = self.enum
        if self.default is not None:
            prop["default"] = self.default
        if self.items is not None:
            prop["items"] = self.items
        if self.properties is not None:
            prop["properties"] = {p.name: p.to_schema() for p in self.properties}
            prop["required"] = [p.name for p in self.properties if p.required]
        return prop


def _default_explain(name: str) -> Callable[[dict[str, Any]], ExplainResult]:
    def explain(arguments: dict[str, Any]) -> ExplainResult:
        summary = ", ".join(f"{k}={str(v)[:60]}" for k, v in arguments.items())
        return ExplainResult(
            title=f"{name.capitalize()}({summary})",
            detail=f"Will run the {name} tool",
        )
    return explain


@dataclass
class Tool:
    """
    Tool wrapper created from an async handler function.

    The handler receives the validated arguments as keyword arguments. When
    `pass_cancellation` is set it also receives `cancellation=<token>`.
    """

    name: str
    description: str
    parameters: list[ToolParameter]
    handler: Callable[..., Coroutine[Any, Any, ToolResult]]
    explain_fn: Callable[[dict[str, Any]], ExplainResult] | None = None
    pass_cancellation: bool = False

    def get_parameters_schema(self) -> dict[str, Any]:
        """Convert parameters to JSON Schema format."""
        return {
            "type": "object",
            "properties": {param.name: param.to_schema() for param in self.parameters},
            "required": [param.name for param in self.parameters if param.required],
        }

    def explain(self, arguments: dict[str, Any]) -> ExplainResult:
        if self.explain_fn is not None:
            return self.explain_fn(arguments)
        return _default_explain(self.name)(arguments)

    async def execute(
        self,
        arguments: dict[str, Any],
        cancellation: "CancellationToken | None" = None,
    ) -> ToolResult:
        """Execute the tool handler."""
        if self.pass_cancellation:
            return await self.handler(cancellation=cancellation, **arguments)
        return await self.handler(**arguments)
