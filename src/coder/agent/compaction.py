"""
Conversation Compaction - replace a long history with a summary.

The summary is produced by a short-lived Agent with its own scratch session
and no tools. On success the live session is reset to its system message
followed by one user message carrying the summary. On any failure the live
session is left exactly as it was.
"""

from dataclasses import dataclass

import structlog

from ..config import CompactionSettings
from ..errors import CompactionError, EmptyResponse, Interrupted, TransportError
from ..llm.base import BaseLLM, LLMMessage, ModelConfig
from ..prompts import SUMMARY_PROMPT, SUMMARY_REQUEST, render_continuation
from ..tools.registry import ToolRegistry
from .cancellation import CancellationToken
from .core import Agent, describe_tool_calls
from .session import Session

logger = structlog.get_logger()

# Approximate tokens per character (conservative estimate)
CHARS_PER_TOKEN = 4

DEFAULT_MAX_CONTEXT_TOKENS = 100_000
DEFAULT_COMPACTION_THRESHOLD = 0.7  # Compact when 70% of budget used


@dataclass
class CompactionConfig:
    """Configuration for automatic compaction."""

    max_context_tokens: int = DEFAULT_MAX_CONTEXT_TOKENS
    compaction_threshold: float = DEFAULT_COMPACTION_THRESHOLD
    enabled: bool = True

    @classmethod
    def from_settings(cls, settings: CompactionSettings) -> "CompactionConfig":
        return cls(
            max_context_tokens=settings.max_context_tokens,
            compaction_threshold=settings.compaction_threshold,
            enabled=settings.auto_compact,
        )

    @property
    def threshold_tokens(self) -> int:
        return int(self.max_context_tokens * self.compaction_threshold)


@dataclass
class CompactionResult:
    """Result of a compaction operation."""

    original_message_count: int
    compacted_message_count: int
    summary: str
    tokens_saved_estimate: int
    skipped: bool = False


def estimate_tokens(messages: list[LLMMessage]) -> int:
    """Estimate token count for a list of messages."""
    total_chars = sum(len(m.content) for m in messages)
    for m in messages:
        for call in m.tool_calls or []:
            total_chars += len(call.name) + len(call.arguments)
    # Add overhead for role markers and formatting
    overhead = len(messages) * 20
    return (total_chars + overhead) // CHARS_PER_TOKEN


def should_compact(session: Session, config: CompactionConfig) -> bool:
    """Whether the session has outgrown the configured budget."""
    if not config.enabled or session.is_minimal():
        return False
    return estimate_tokens(session.messages) >= config.threshold_tokens


def _transcript_messages(session: Session) -> list[LLMMessage]:
    """History as plain messages the summarizer can read.

    Tool results are dropped. Tool calls are folded into the assistant text
    so no tool_call id is left without its result.
    """
    transcript = []
    for msg in session.messages:
        if msg.role == "tool":
            continue
        if msg.role == "assistant" and msg.tool_calls:
            text = "\n".join(p for p in (msg.content, describe_tool_calls(msg.tool_calls)) if p)
            transcript.append(LLMMessage(role="assistant", content=text))
            continue
        if not msg.content.strip():
            continue
        transcript.append(LLMMessage(role=msg.role, content=msg.content))
    return transcript


async def compact_session(
    llm: BaseLLM,
    session: Session,
    model_config: ModelConfig,
    cancellation: CancellationToken | None = None,
) -> CompactionResult:
    """Summarize the session and replace its history with the summary.

    Raises:
        Interrupted: the token was signalled; the session is unchanged
        CompactionError: summarization failed; the session is unchanged
    """
    original_count = session.message_count
    if session.is_minimal():
        return CompactionResult(
            original_message_count=original_count,
            compacted_message_count=original_count,
            summary="",
            tokens_saved_estimate=0,
            skipped=True,
        )

    before_tokens = estimate_tokens(session.messages)
    logger.info(
        "Starting conversation compaction",
        message_count=original_count,
        estimated_tokens=before_tokens,
        model=model_config.model,
    )

    scratch = Session.create(SUMMARY_PROMPT)
    for msg in _transcript_messages(session):
        scratch.add_message(msg)
    scratch.add_user_message(SUMMARY_REQUEST)

    summarizer = Agent(llm, scratch, ToolRegistry(), model_config, name="summarizer")
    try:
        final = await summarizer.run(cancellation)
    except Interrupted:
        logger.info("Compaction interrupted")
        raise
    except (TransportError, EmptyResponse) as e:
        logger.error("Compaction summarization failed", error=str(e))
        raise CompactionError(f"failed to generate summary: {e}") from e

    summary = final.content.strip()
    if not summary:
        raise CompactionError("no summary generated")

    session.replace_history([
        LLMMessage(role="system", content=session.system_prompt),
        LLMMessage(role="user", content=render_continuation(summary)),
    ])
    session.compaction_count += 1

    result = CompactionResult(
        original_message_count=original_count,
        compacted_message_count=session.message_count,
        summary=summary,
        tokens_saved_estimate=max(0, before_tokens - estimate_tokens(session.messages)),
    )

    logger.info(
        "Compaction complete",
        original=result.original_message_count,
        compacted=result.compacted_message_count,
        tokens_saved=result.tokens_saved_estimate,
    )
    return result
