"""
Tool dispatch: lookup, validation, permission and invocation of one tool call.

The Agent hands every parsed tool call to a dispatcher and appends whatever
text comes back as the tool-role message. Nothing the model can fix is raised
from here; only Interrupted escapes.
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable

import structlog

from ..errors import Interrupted, ToolExecutionError, ValidationError
from ..llm.base import ToolCall
from ..tools.base import ExplainResult
from ..tools.permissions import PermissionGateway, PermissionRequest
from ..tools.registry import ToolRegistry
from ..tools.validation import validate_arguments
from .cancellation import CancellationToken

logger = structlog.get_logger()

DENIAL_NOTICE = (
    "The user doesn't want to proceed with this tool use. The tool use was rejected "
    "(eg. if it was a file edit, the new_string was NOT written to the file). "
    "STOP what you are doing and do this instead\n"
)


def denial_message(alternate_instruction: str) -> str:
    return DENIAL_NOTICE + alternate_instruction


class ToolStatus(str, Enum):
    """How a dispatched tool call ended."""
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    DENIED = "denied"
    FAILED = "failed"
    SUCCEEDED = "succeeded"


@dataclass
class ToolOutcome:
    """Result of dispatching one call. `content` becomes the tool message."""

    status: ToolStatus
    content: str


@dataclass
class ToolEvent:
    """Progress notification emitted while a call is dispatched.

    kind is one of "call" (permission about to be asked), "denied" or
    "result".
    """

    kind: str
    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    content: str = ""
    success: bool = True


ToolObserver = Callable[[ToolEvent], None]


class ToolDispatcher:
    """Runs tool calls against a catalog, gated by a permission gateway."""

    def __init__(
        self,
        registry: ToolRegistry,
        gateway: PermissionGateway,
        observers: list[ToolObserver] | None = None,
    ):
        self.registry = registry
        self.gateway = gateway
        self._observers: list[ToolObserver] = list(observers or [])

    def add_observer(self, observer: ToolObserver) -> None:
        self._observers.append(observer)

    def _emit(self, event: ToolEvent) -> None:
        for observer in self._observers:
            observer(event)

    async def __call__(
        self,
        call: ToolCall,
        arguments: dict[str, Any],
        cancellation: CancellationToken | None = None,
    ) -> ToolOutcome:
        return await self.dispatch(call, arguments, cancellation)

    async def dispatch(
        self,
        call: ToolCall,
        arguments: dict[str, Any],
        cancellation: CancellationToken | None = None,
    ) -> ToolOutcome:
        tool = self.registry.get(call.name)
        if tool is None:
            logger.warning("Tool not found", tool_name=call.name)
            content = f"Tool not found: {call.name}"
            self._emit(ToolEvent("result", call.name, arguments, content, success=False))
            return ToolOutcome(ToolStatus.NOT_FOUND, content)

        try:
            validate_arguments(tool.get_parameters_schema(), arguments)
        except ValidationError as e:
            logger.info("Tool arguments rejected", tool_name=call.name, kind=e.kind.value, field=e.field)
            content = f"Invalid arguments for {call.name}: {e}"
            self._emit(ToolEvent("result", call.name, arguments, content, success=False))
            return ToolOutcome(ToolStatus.INVALID, content)

        try:
            explanation = tool.explain(arguments)
        except Exception as e:
            logger.warning("Tool explain failed", tool_name=call.name, error=str(e))
            explanation = ExplainResult(title=call.name, detail=f"Will run the {call.name} tool")

        request = PermissionRequest(
            tool_name=call.name,
            arguments=arguments,
            title=explanation.title,
            detail=explanation.detail,
        )
        self._emit(ToolEvent("call", call.name, arguments))

        response = await self.gateway.request_permission(request, cancellation)
        if not response.granted:
            self._emit(ToolEvent("denied", call.name, arguments, response.alternate_instruction))
            return ToolOutcome(ToolStatus.DENIED, denial_message(response.alternate_instruction))

        logger.info("Executing tool", tool_name=call.name)
        try:
            result = await tool.execute(arguments, cancellation)
        except Interrupted:
            raise
        except Exception as e:
            logger.error("Tool execution error", tool_name=call.name, error=str(e))
            content = str(ToolExecutionError(call.name, str(e)))
            self._emit(ToolEvent("result", call.name, arguments, content, success=False))
            return ToolOutcome(ToolStatus.FAILED, content)

        logger.info("Tool executed", tool_name=call.name, success=result.success)
        if not result.success:
            content = str(ToolExecutionError(call.name, result.error or "unknown error"))
            self._emit(ToolEvent("result", call.name, arguments, content, success=False))
            return ToolOutcome(ToolStatus.FAILED, content)

        self._emit(ToolEvent("result", call.name, arguments, result.output))
        return ToolOutcome(ToolStatus.SUCCEEDED, result.output)
