"""
LLM factory for creating transport instances and picking model settings.

Supports: any OpenAI-compatible endpoint, Anthropic Claude, OpenRouter.
"""

from ..config import Settings
from .anthropic import AnthropicLLM
from .base import BaseLLM, ModelConfig
from .logger import APILogger
from .openai import OpenAILLM

CHAT_TEMPERATURE = 0.6
SUMMARY_TEMPERATURE = 0.3
SUBAGENT_TEMPERATURE = 0.1


def create_llm(settings: Settings | None = None, api_logger: APILogger | None = None) -> BaseLLM:
    """Create a transport based on configuration.

    Provider routing:
    - openai -> OpenAILLM against `provider.endpoint`
    - anthropic -> AnthropicLLM (native Anthropic SDK)
    - openrouter -> OpenAILLM (OpenAI-compatible endpoint)
    """
    if settings is None:
        from ..config import get_settings
        settings = get_settings()

    config = settings.provider
    api_key = settings.resolve_api_key()

    if config.provider == "openai":
        return OpenAILLM(
            api_key=api_key,
            model=config.model,
            base_url=config.endpoint or None,
            max_tokens=config.max_tokens,
            api_logger=api_logger,
            timeout=config.timeout_seconds,
        )
    elif config.provider == "anthropic":
        endpoint = config.endpoint
        if endpoint == "https://api.openai.com/v1":
            endpoint = ""
        return AnthropicLLM(
            api_key=api_key,
            model=config.model,
            base_url=endpoint or None,
            max_tokens=config.max_tokens,
            api_logger=api_logger,
            timeout=config.timeout_seconds,
        )
    elif config.provider == "openrouter":
        endpoint = config.endpoint
        if not endpoint or endpoint == "https://api.openai.com/v1":
            endpoint = "https://openrouter.ai/api/v1"
        return OpenAILLM(
            api_key=api_key,
            model=config.model,
            base_url=endpoint,
            max_tokens=config.max_tokens,
            api_logger=api_logger,
            timeout=config.timeout_seconds,
        )
    else:
        raise ValueError(f"Unknown LLM provider: {config.provider}")


def select_model(usage: str, settings: Settings) -> ModelConfig:
    """Pick the model for a purpose.

    Summaries use the lite model when one is configured.
    """
    default = ModelConfig(model=settings.provider.model, temperature=CHAT_TEMPERATURE)

    if usage == "summary" and settings.provider.lite_model:
        return ModelConfig(model=settings.provider.lite_model, temperature=SUMMARY_TEMPERATURE)
    if usage == "subagent":
        return ModelConfig(model=settings.provider.model, temperature=SUBAGENT_TEMPERATURE)
    return default
