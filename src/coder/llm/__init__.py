"""
LLM module: model transports.

Providers:
- OpenAI-compatible chat completions (OpenAI, OpenRouter, local servers)
- Anthropic Claude (native SDK)
"""

from .base import (
    BaseLLM,
    ChatRequest,
    ChatResponse,
    Choice,
    LLMMessage,
    ModelConfig,
    ToolCall,
    ToolDefinition,
)
from .anthropic import AnthropicLLM
from .openai import OpenAILLM
from .logger import APILogger
from .factory import create_llm, select_model

__all__ = [
    "BaseLLM",
    "ChatRequest",
    "ChatResponse",
    "Choice",
    "LLMMessage",
    "ModelConfig",
    "ToolCall",
    "ToolDefinition",
    "AnthropicLLM",
    "OpenAILLM",
    "APILogger",
    "create_llm",
    "select_model",
]
