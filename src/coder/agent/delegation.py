"""
Sub-agent delegation.

The `agent` tool runs a nested Agent over a read-only view of the catalog.
The nested agent shares the parent's transport, permission gateway and
cancellation token but has its own session. Only a markdown report of what it
did comes back to the parent.
"""

from typing import Any, Callable

import structlog

from ..errors import CoderError, Interrupted
from ..llm.base import BaseLLM, LLMMessage, ModelConfig
from ..prompts import SUBAGENT_PROMPT
from ..tools.base import ExplainResult, Tool, ToolParameter, ToolResult
from ..tools.permissions import PermissionGateway
from ..tools.registry import ToolRegistry
from .cancellation import CancellationToken
from .core import Agent
from .dispatch import ToolDispatcher, ToolEvent
from .session import Session

logger = structlog.get_logger()

READ_ONLY_TOOLS = ("read", "ls", "glob", "grep", "tree")

MAX_RESULT_CHARS = 2000


def _truncate(text: str, limit: int = MAX_RESULT_CHARS) -> str:
    if len(text) > limit:
        return text[:limit - 3] + "..."
    return text


class TranscriptRecorder:
    """Builds the markdown report of a sub-agent run from dispatch events."""

    def __init__(self, description: str):
        self._parts = [f"## Agent Task: {description}\n\n"]

    def on_tool_event(self, event: ToolEvent) -> None:
        if event.kind == "call":
            args = "".join(f"{k}: {v}\n" for k, v in event.arguments.items())
            self._parts.append(f"### Tool Call: {event.tool_name}\n```\n{args}```\n\n")
        elif event.kind == "denied":
            self._parts.append("Error: Permission denied by user\n\n")
        elif event.kind == "result":
            if event.success:
                self._parts.append(f"### Tool Result\n```\n{_truncate(event.content)}\n```\n\n")
            else:
                self._parts.append(f"### Tool Result\nError: {event.content}\n\n")

    def on_message(self, message: LLMMessage) -> None:
        if message.content:
            self._parts.append(f"### Agent Message\n{message.content}\n\n")

    def finish(self, final_content: str) -> str:
        self._parts.append(f"## Final Analysis\n\n{final_content}")
        return "".join(self._parts)


async def spawn_subagent(
    llm: BaseLLM,
    registry: ToolRegistry,
    gateway: PermissionGateway,
    model_config: ModelConfig,
    task: str,
    description: str,
    cancellation: CancellationToken | None = None,
    tool_names: tuple[str, ...] = READ_ONLY_TOOLS,
    observers: list[Callable[[ToolEvent], None]] | None = None,
    on_message: Callable[[LLMMessage], None] | None = None,
) -> str:
    """Run a delegated task to completion and return its report.

    Raises Interrupted when the token fires; any other error ends the run and
    is raised to the caller.
    """
    narrowed = registry.subset(tool_names)
    recorder = TranscriptRecorder(description)

    dispatcher = ToolDispatcher(narrowed, gateway, observers=[recorder.on_tool_event, *(observers or [])])

    def observe(message: LLMMessage) -> None:
        recorder.on_message(message)
        if on_message is not None:
            on_message(message)

    session = Session.create(SUBAGENT_PROMPT)
    session.add_user_message(task)

    agent = Agent(
        llm,
        session,
        narrowed,
        model_config,
        tool_dispatch=dispatcher,
        on_message=observe,
        name="subagent",
    )

    logger.info("Sub-agent started", description=description, tools=narrowed.list_tools())
    final = await agent.run(cancellation)
    logger.info("Sub-agent finished", description=description, messages=session.message_count)
    return recorder.finish(final.content)


def create_agent_tool(
    llm: BaseLLM,
    registry: ToolRegistry,
    gateway: PermissionGateway,
    model_config: ModelConfig,
    observers: list[Callable[[ToolEvent], None]] | None = None,
    on_message: Callable[[LLMMessage], None] | None = None,
) -> Tool:
    """The `agent` tool. `registry` is the parent catalog to narrow from."""

    async def agent_handler(
        description: str,
        prompt: str,
        cancellation: CancellationToken | None = None,
    ) -> ToolResult:
        try:
            report = await spawn_subagent(
                llm,
                registry,
                gateway,
                model_config,
                task=prompt,
                description=description,
                cancellation=cancellation,
                observers=observers,
                on_message=on_message,
            )
        except Interrupted:
            raise
        except CoderError as e:
            logger.warning("Sub-agent failed", description=description, error=str(e))
            return ToolResult(success=True, output=f"Error running agent: {e}")
        return ToolResult(success=True, output=report)

    def explain(arguments: dict[str, Any]) -> ExplainResult:
        description = arguments.get("description", "")
        return ExplainResult(
            title=f"Agent({description})",
            detail=f"Launch an agent to perform task: {description}",
        )

    return Tool(
        name="agent",
        description=(
            "Launch a new agent that can analyze code by using read-only tools."
            " Agent cannot use any write tools or receive input from the user."
            " It can only send a response back to the caller."
        ),
        parameters=[
            ToolParameter(
                name="description",
                param_type="string",
                description="A short (3-5 word) description of the task",
            ),
            ToolParameter(
                name="prompt",
                param_type="string",
                description="The task for the agent to perform",
            ),
        ],
        handler=agent_handler,
        explain_fn=explain,
        pass_cancellation=True,
    )
