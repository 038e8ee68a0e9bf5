"""
Agent execution loop.

One call to `Agent.run` drives a conversation turn to completion:

1. Build a chat request from the session history and the tool catalog
2. Send it to the model transport
3. Dispatch any requested tool calls, one at a time, through the permission
   gateway, appending one tool message per call
4. Repeat until the model stops asking for tools

Errors the model can react to become tool messages. Transport failures,
empty responses and interruption end the turn and propagate.
"""

import json
from enum import Enum
from typing import Any, Awaitable, Callable, Protocol

import structlog

from ..errors import EmptyResponse, Interrupted, TransportError
from ..llm.base import (
    FINISH_LENGTH,
    FINISH_TOOL_CALLS,
    BaseLLM,
    ChatRequest,
    LLMMessage,
    ModelConfig,
    ToolCall,
)
from ..tools.permissions import PermissionGateway
from ..tools.registry import ToolRegistry
from ..tools.validation import parse_arguments
from .cancellation import CancellationToken
from .dispatch import ToolDispatcher, ToolOutcome
from .session import Session

logger = structlog.get_logger()

CONTINUE_MESSAGE = "Please continue exactly from where you left off."
TRUNCATED_TOOL_RESULT = "Tool call was not executed because the response was cut off."


class AgentState(str, Enum):
    IDLE = "idle"
    BUILDING_REQUEST = "building_request"
    AWAITING_MODEL = "awaiting_model"
    DISPATCHING_TOOLS = "dispatching_tools"
    DONE = "done"
    FAILED = "failed"


class ToolDispatch(Protocol):
    """Callback that turns one parsed tool call into tool-message content."""

    def __call__(
        self,
        call: ToolCall,
        arguments: dict[str, Any],
        cancellation: CancellationToken | None = None,
    ) -> Awaitable[ToolOutcome]: ...


MessageObserver = Callable[[LLMMessage], None]


class Agent:
    """Binds a session to a tool catalog, a model and a transport."""

    def __init__(
        self,
        llm: BaseLLM,
        session: Session,
        registry: ToolRegistry,
        model_config: ModelConfig,
        tool_dispatch: ToolDispatch | None = None,
        on_message: MessageObserver | None = None,
        name: str = "agent",
    ):
        self.llm = llm
        self.session = session
        self.registry = registry
        self.model_config = model_config
        # Without a dispatcher every call goes through a deny-by-default gateway
        self.tool_dispatch = tool_dispatch or ToolDispatcher(registry, PermissionGateway())
        self.on_message = on_message
        self.name = name
        self.state = AgentState.IDLE

    def _build_request(self) -> ChatRequest:
        return ChatRequest(
            model=self.model_config.model,
            messages=list(self.session.messages),
            tools=self.registry.get_definitions(),
            temperature=self.model_config.temperature,
        )

    async def _send(self, request: ChatRequest, cancellation: CancellationToken):
        try:
            return await self.llm.send(request, cancellation)
        except Interrupted:
            raise
        except Exception as e:
            if cancellation.cancelled:
                raise Interrupted() from e
            logger.error("LLM request failed", agent=self.name, error=str(e))
            raise TransportError(f"failed to get response from model: {e}") from e

    async def _dispatch_calls(self, calls: list[ToolCall], cancellation: CancellationToken) -> None:
        for call in calls:
            cancellation.raise_if_cancelled()

            try:
                arguments = parse_arguments(call.arguments)
            except ValueError as e:
                logger.info("Tool arguments unparseable", agent=self.name, tool_name=call.name)
                self.session.add_tool_result(
                    call.id, f"Error parsing arguments for {call.name}: {e}", call.name
                )
                continue

            outcome = await self.tool_dispatch(call, arguments, cancellation)
            self.session.add_tool_result(call.id, outcome.content, call.name)

    async def run(self, cancellation: CancellationToken | None = None) -> LLMMessage:
        """Drive the loop until the model finishes. Returns the final assistant message.

        Raises:
            Interrupted: the token was signalled
            TransportError: the transport call failed
            EmptyResponse: the provider returned no choices
        """
        cancellation = cancellation or CancellationToken()
        try:
            while True:
                cancellation.raise_if_cancelled()

                self.state = AgentState.BUILDING_REQUEST
                request = self._build_request()

                self.state = AgentState.AWAITING_MODEL
                response = await self._send(request, cancellation)
                if not response.choices:
                    raise EmptyResponse()

                choice = response.choices[0]
                message = choice.message
                self.session.add_message(message)
                if self.on_message is not None:
                    self.on_message(message)

                if choice.finish_reason == FINISH_TOOL_CALLS and message.tool_calls:
                    self.state = AgentState.DISPATCHING_TOOLS
                    await self._dispatch_calls(message.tool_calls, cancellation)
                    continue

                if choice.finish_reason == FINISH_LENGTH:
                    logger.info("Response truncated, asking to continue", agent=self.name)
                    self.session.close_pending_tool_calls(TRUNCATED_TOOL_RESULT)
                    self.session.add_user_message(CONTINUE_MESSAGE)
                    continue

                self.state = AgentState.DONE
                return message
        except BaseException:
            self.state = AgentState.FAILED
            raise

    async def run_turn(self) -> LLMMessage:
        """Run with a cancellation handle held by the session for `interrupt()`."""
        token = self.session.begin_turn()
        try:
            return await self.run(token)
        finally:
            self.session.end_turn()

    def interrupt(self) -> bool:
        return self.session.interrupt()


def describe_tool_calls(calls: list[ToolCall]) -> str:
    """Plain-text rendering of tool calls, for contexts that cannot carry them."""
    lines = []
    for call in calls:
        try:
            arguments = json.dumps(json.loads(call.arguments or "{}"), ensure_ascii=False)
        except ValueError:
            arguments = call.arguments
        lines.append(f"[called tool {call.name} with {arguments}]")
    return "\n".join(lines)
