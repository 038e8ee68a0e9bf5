"""
Conversation session: ordered message history plus the in-flight turn handle.
"""

from dataclasses import dataclass, field

import structlog

from ..llm.base import LLMMessage, ToolCall
from .cancellation import CancellationToken

logger = structlog.get_logger()


@dataclass
class Session:
    """In-memory conversation state for one chat.

    `messages[0]` is always the system message. Only compaction and
    `clear_context` replace history; everything else appends.
    """

    system_prompt: str
    messages: list[LLMMessage] = field(default_factory=list)
    compaction_count: int = 0
    _cancellation: CancellationToken | None = field(default=None, init=False, repr=False)

    @classmethod
    def create(cls, system_prompt: str) -> "Session":
        """New session seeded with a single system message."""
        return cls(
            system_prompt=system_prompt,
            messages=[LLMMessage(role="system", content=system_prompt)],
        )

    def add_user_message(self, content: str) -> None:
        """Add a user message."""
        self.messages.append(LLMMessage(role="user", content=content))

    def add_assistant_message(
        self, content: str, tool_calls: list[ToolCall] | None = None
    ) -> None:
        """Add an assistant message."""
        self.messages.append(LLMMessage(
            role="assistant",
            content=content,
            tool_calls=tool_calls or None,
        ))

    def add_message(self, message: LLMMessage) -> None:
        self.messages.append(message)

    def add_tool_result(self, tool_call_id: str, result: str, tool_name: str = "") -> None:
        """Add a tool result."""
        self.messages.append(LLMMessage(
            role="tool",
            content=result,
            tool_call_id=tool_call_id,
            name=tool_name,
        ))

    def pending_tool_calls(self) -> list[ToolCall]:
        """Calls from the last assistant message that have no tool result yet."""
        answered: set[str] = set()
        for msg in reversed(self.messages):
            if msg.role == "tool" and msg.tool_call_id:
                answered.add(msg.tool_call_id)
                continue
            if msg.role == "assistant" and msg.tool_calls:
                return [c for c in msg.tool_calls if c.id not in answered]
            break
        return []

    def close_pending_tool_calls(self, content: str) -> int:
        """Answer unanswered tool calls with `content` so the history stays well-formed."""
        pending = self.pending_tool_calls()
        for call in pending:
            self.add_tool_result(call.id, content, call.name)
        return len(pending)

    def clear_context(self) -> None:
        """Drop everything but the system message."""
        self.messages = [LLMMessage(role="system", content=self.system_prompt)]
        logger.info("Session context cleared")

    def replace_history(self, messages: list[LLMMessage]) -> None:
        self.messages = list(messages)

    def is_minimal(self) -> bool:
        """True when the history holds nothing beyond the system message."""
        return all(m.role == "system" for m in self.messages)

    @property
    def message_count(self) -> int:
        """Get the number of messages."""
        return len(self.messages)

    @property
    def last_message(self) -> LLMMessage | None:
        return self.messages[-1] if self.messages else None

    # Turn handle

    @property
    def current_cancellation(self) -> CancellationToken | None:
        return self._cancellation

    @property
    def turn_in_progress(self) -> bool:
        return self._cancellation is not None

    def begin_turn(self) -> CancellationToken:
        """Open the cancellation handle for a new turn."""
        if self._cancellation is not None:
            raise RuntimeError("a turn is already in progress for this session")
        self._cancellation = CancellationToken()
        return self._cancellation

    def end_turn(self) -> None:
        self._cancellation = None

    def interrupt(self) -> bool:
        """Signal the in-flight turn. Returns False when there is none."""
        if self._cancellation is None:
            return False
        self._cancellation.cancel()
        logger.info("Turn interrupt requested")
        return True
