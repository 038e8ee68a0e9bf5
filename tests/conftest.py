"""
Shared fixtures: a scripted model transport and isolated settings.
"""

import asyncio
import os
from unittest.mock import patch

import pytest

from coder.llm.base import (
    BaseLLM,
    ChatRequest,
    ChatResponse,
    Choice,
    LLMMessage,
    ToolCall,
)


class ScriptedLLM(BaseLLM):
    """Transport that replays queued responses and records every request.

    A queued Exception is raised instead of returned. A queued asyncio.Event
    makes the call hang until the event is set.
    """

    def __init__(self, responses=None):
        super().__init__(api_key="test", model="test-model")
        self.responses = list(responses or [])
        self.requests: list[ChatRequest] = []

    @property
    def provider_name(self) -> str:
        return "scripted"

    async def _create_completion(self, request: ChatRequest) -> ChatResponse:
        self.requests.append(request)
        if not self.responses:
            raise AssertionError("unexpected model call")
        item = self.responses.pop(0)
        if isinstance(item, asyncio.Event):
            await item.wait()
            raise AssertionError("hanging call was not cancelled")
        if isinstance(item, Exception):
            raise item
        return item


def text_response(content: str, finish_reason: str = "stop") -> ChatResponse:
    return ChatResponse(choices=[Choice(
        message=LLMMessage(role="assistant", content=content),
        finish_reason=finish_reason,
    )])


def tool_response(*calls: tuple[str, str, str], content: str = "") -> ChatResponse:
    """Assistant message requesting (id, name, raw_arguments) calls."""
    return ChatResponse(choices=[Choice(
        message=LLMMessage(
            role="assistant",
            content=content,
            tool_calls=[ToolCall(id=i, name=n, arguments=a) for i, n, a in calls],
        ),
        finish_reason="tool_calls",
    )])


@pytest.fixture
def scripted_llm():
    """Factory: scripted_llm(response, ...) -> ScriptedLLM."""
    def make(*responses):
        return ScriptedLLM(responses)
    return make


@pytest.fixture
def isolated_config(tmp_path):
    """Point the config file at a temp dir and clear CODER_* / provider env vars."""
    config_file = tmp_path / "coder" / "config.json"
    env = {
        k: v for k, v in os.environ.items()
        if not k.startswith("CODER_") and not k.endswith("_API_KEY")
    }
    env["CODER_CONFIG_FILE"] = str(config_file)
    with patch.dict(os.environ, env, clear=True):
        yield config_file
