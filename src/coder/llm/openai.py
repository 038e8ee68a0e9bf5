"""
OpenAI-compatible chat completions transport.

Works with OpenAI, OpenRouter and any server exposing `/v1/chat/completions`.
"""

from typing import TYPE_CHECKING, Any

import openai
import structlog

from .base import (
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


class OpenAILLM(BaseLLM):
    """OpenAI chat completions transport."""

    def __init__(
        self,
        api_key: str,
        model: str = "gpt-4o",
        base_url: str | None = None,
        max_tokens: int = 4096,
        api_logger: "APILogger | None" = None,
        timeout: float = 120.0,
    ):
        super().__init__(api_key, model, base_url, max_tokens, api_logger)
        self.client = openai.AsyncOpenAI(
            api_key=api_key or "not-set",
            base_url=base_url,
            timeout=timeout,
        )

    @property
    def provider_name(self) -> str:
        return "openai"

    def _convert_messages(self, messages: list[LLMMessage]) -> list[dict[str, Any]]:
        """Convert LLMMessages to OpenAI format."""
        converted = []

        for msg in messages:
            if msg.role == "tool":
                converted.append({
                    "role": "tool",
                    "tool_call_id": msg.tool_call_id,
                    "content": msg.content,
                })
            elif msg.role == "assistant" and msg.tool_calls:
                tool_calls = [
                    {
                        "id": tc.id,
                        "type": "function",
                        "function": {
                            "name": tc.name,
                            "arguments": tc.arguments,
                        },
                    }
                    for tc in msg.tool_calls
                ]
                converted.append({
                    "role": "assistant",
                    "content": msg.content or None,
                    "tool_calls": tool_calls,
                })
            else:
                converted.append({
                    "role": msg.role,
                    "content": msg.content,
                })

        return converted

    def _convert_tools(self, tools: list[ToolDefinition]) -> list[dict[str, Any]]:
        """Convert ToolDefinitions to OpenAI format."""
        return [
            {
                "type": "function",
                "function": {
                    "name": tool.name,
                    "description": tool.description,
                    "parameters": tool.parameters,
                },
            }
            for tool in tools
        ]

    async def _create_completion(self, request: ChatRequest) -> ChatResponse:
        kwargs: dict[str, Any] = {
            "model": request.model or self.model,
            "temperature": request.temperature,
            "messages": self._convert_messages(request.messages),
        }

        max_tokens = request.max_tokens or self.max_tokens
        if max_tokens:
            kwargs["max_tokens"] = max_tokens

        if request.tools:
            kwargs["tools"] = self._convert_tools(request.tools)

        try:
            response = await self.client.chat.completions.create(**kwargs)
        except openai.APIError as e:
            logger.error("OpenAI API error", error=str(e))
            raise

        choices = []
        for choice in response.choices or []:
            message = choice.message
            tool_calls = [
                ToolCall(
                    id=tc.id,
                    name=tc.function.name,
                    arguments=tc.function.arguments or "{}",
                )
                for tc in message.tool_calls or []
            ]
            choices.append(Choice(
                message=LLMMessage(
                    role="assistant",
                    content=message.content or "",
                    tool_calls=tool_calls or None,
                ),
                finish_reason=choice.finish_reason or "stop",
            ))

        return ChatResponse(
            choices=choices,
            input_tokens=response.usage.prompt_tokens if response.usage else 0,
            output_tokens=response.usage.completion_tokens if response.usage else 0,
            model=response.model,
            raw_response=response,
        )
