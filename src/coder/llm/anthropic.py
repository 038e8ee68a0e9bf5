"""
Anthropic Messages API transport.
"""

import json
from typing import TYPE_CHECKING, Any

import anthropic
import structlog

from .base import (
    FINISH_LENGTH,
    FINISH_STOP,
    FINISH_TOOL_CALLS,
    BaseLLM,
    ChatRequest,
    ChatResponse,
    Choice,
    LLMMessage,
    ToolCall,
    ToolDefinition,
)

if TYPE_CHECKING:
    from .logger import APILogger

logger = structlog.get_logger()

STOP_REASON_MAP = {
    "tool_use": FINISH_TOOL_CALLS,
    "end_turn": FINISH_STOP,
    "stop_sequence": FINISH_STOP,
    "max_tokens": FINISH_LENGTH,
}


def _decode_arguments(raw: str) -> dict[str, Any]:
    try:
        value = json.loads(raw) if raw else {}
    except json.JSONDecodeError:
        return {}
    return value if isinstance(value, dict) else {}


class AnthropicLLM(BaseLLM):
    """Anthropic Claude transport."""

    def __init__(
        self,
        api_key: str,
        model: str = "claude-sonnet-4-20250514",
        base_url: str | None = None,
        max_tokens: int = 4096,
        api_logger: "APILogger | None" = None,
        timeout: float = 120.0,
    ):
        super().__init__(api_key, model, base_url, max_tokens, api_logger)
        self.client = anthropic.AsyncAnthropic(
            api_key=api_key or "not-set",
            base_url=base_url,
            timeout=timeout,
        )

    @property
    def provider_name(self) -> str:
        return "anthropic"

    def _convert_messages(self, messages: list[LLMMessage]) -> list[dict[str, Any]]:
        """Convert LLMMessages to Anthropic format.

        Consecutive tool results are merged into one user turn, which the
        Messages API requires after a multi-tool assistant turn.
        """
        converted: list[dict[str, Any]] = []

        for msg in messages:
            if msg.role == "system":
                continue

            if msg.role == "tool":
                block = {
                    "type": "tool_result",
                    "tool_use_id": msg.tool_call_id,
                    "content": msg.content,
                }
                previous = converted[-1] if converted else None
                if (
                    previous is not None
                    and previous["role"] == "user"
                    and isinstance(previous["content"], list)
                    and previous["content"]
                    and previous["content"][0].get("type") == "tool_result"
                ):
                    previous["content"].append(block)
                else:
                    converted.append({"role": "user", "content": [block]})
            elif msg.role == "assistant" and msg.tool_calls:
                content: list[dict[str, Any]] = []
                if msg.content:
                    content.append({"type": "text", "text": msg.content})
                for tc in msg.tool_calls:
                    content.append({
                        "type": "tool_use",
                        "id": tc.id,
                        "name": tc.name,
                        "input": _decode_arguments(tc.arguments),
                    })
                converted.append({"role": "assistant", "content": content})
            else:
                converted.append({
                    "role": msg.role,
                    "content": msg.content,
                })

        return converted

    def _convert_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        """Convert ToolDefinitions to Anthropic format."""
        return [
            {
                "name": tool.name,
                "description": tool.description,
                "input_schema": tool.parameters,
            }
            for tool in tools
        ]

    def _extract_system_prompt(self, messages: list[LLMMessage]) -> str | None:
        """Join all system messages into the single system parameter."""
        parts = [msg.content for msg in messages if msg.role == "system" and msg.content]
        return "\n\n".join(parts) if parts else None

    async def _create_completion(self, request: ChatRequest) -> ChatResponse:
        kwargs: dict[str, Any] = {
            "model": request.model or self.model,
            "max_tokens": request.max_tokens or self.max_tokens,
            "temperature": request.temperature,
            "messages": self._convert_messages(request.messages),
        }

        system = self._extract_system_prompt(request.messages)
        if system:
            kwargs["system"] = system

        if request.tools:
            kwargs["tools"] = self._convert_tools(request.tools)

        try:
            response = await self.client.messages.create(**kwargs)
        except anthropic.APIError as e:
            logger.error("Anthropic API error", error=str(e))
            raise

        content = ""
        tool_calls = []

        for block in response.content:
            if block.type == "text":
                content += block.text
            elif block.type == "tool_use":
                tool_calls.append(ToolCall(
                    id=block.id,
                    name=block.name,
                    arguments=json.dumps(block.input if isinstance(block.input, dict) else {}),
                ))

        finish_reason = STOP_REASON_MAP.get(response.stop_reason or "", FINISH_STOP)

        return ChatResponse(
            choices=[Choice(
                message=LLMMessage(
                    role="assistant",
                    content=content,
                    tool_calls=tool_calls or None,
                ),
                finish_reason=finish_reason,
            )],
            input_tokens=response.usage.input_tokens,
            output_tokens=response.usage.output_tokens,
            model=response.model,
            raw_response=response,
        )
