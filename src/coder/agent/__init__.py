"""
Agent module - the execution core.

Includes:
- Agent: the model/tool loop for one turn
- Session: in-memory conversation state
- ToolDispatcher: lookup, validation and permission for each tool call
- Delegation: read-only sub-agents behind the `agent` tool
- Compaction: summarize and replace long histories
"""

from .cancellation import CancellationToken
from .core import Agent, AgentState, CONTINUE_MESSAGE
from .session import Session
from .dispatch import ToolDispatcher, ToolEvent, ToolOutcome, ToolStatus
from .delegation import READ_ONLY_TOOLS, create_agent_tool, spawn_subagent
from .compaction import (
    CompactionConfig,
    CompactionResult,
    compact_session,
    estimate_tokens,
    should_compact,
)

__all__ = [
    "Agent",
    "AgentState",
    "CONTINUE_MESSAGE",
    "CancellationToken",
    "Session",
    "ToolDispatcher",
    "ToolEvent",
    "ToolOutcome",
    "ToolStatus",
    "READ_ONLY_TOOLS",
    "create_agent_tool",
    "spawn_subagent",
    "CompactionConfig",
    "CompactionResult",
    "compact_session",
    "estimate_tokens",
    "should_compact",
]
