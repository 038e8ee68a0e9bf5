"""
Base classes for model transports.
"""

from abc import ABC, abstractmethod
from dataclasses import asdict, dataclass, field
from typing import TYPE_CHECKING, Any, Literal

if TYPE_CHECKING:
    from ..agent.cancellation import CancellationToken
    from .logger import APILogger

FinishReason = str

FINISH_TOOL_CALLS = "tool_calls"
FINISH_STOP = "stop"
FINISH_LENGTH = "length"


@dataclass
class ModelConfig:
    """Model id and sampling temperature used for one agent."""

    model: str
    temperature: float = 0.6


@dataclass
class ToolDefinition:
    """Definition of a tool that the LLM can use."""

    name: str
    description: str
    parameters: dict[str, Any]


@dataclass
class ToolCall:
    """A tool call made by the LLM.

    `arguments` is the raw serialized JSON text exactly as the model sent it;
    parsing happens in the agent loop.
    """

    id: str
    name: str
    arguments: str = "{}"


@dataclass
class LLMMessage:
    """A message in the conversation."""

    role: Literal["user", "assistant", "system", "tool"]
    content: str
    tool_calls: list[ToolCall] | None = None
    tool_call_id: str | None = None
    name: str | None = None


@dataclass
class ChatRequest:
    """Everything needed for one model round-trip."""

    model: str
    messages: list[LLMMessage]
    tools: list[ToolDefinition] = field(default_factory=list)
    temperature: float = 0.6
    max_tokens: int | None = None


@dataclass
class Choice:
    """One candidate completion."""

    message: LLMMessage
    finish_reason: FinishReason = FINISH_STOP


@dataclass
class ChatResponse:
    """Response from an LLM."""

    choices: list[Choice] = field(default_factory=list)
    input_tokens: int = 0
    output_tokens: int = 0
    model: str = ""
    raw_response: Any = None

    def to_dict(self) -> dict[str, Any]:
        data = asdict(self)
        data.pop("raw_response", None)
        return data


class BaseLLM(ABC):
    """Base class for model transports.

    Subclasses implement `_create_completion`. `send` adds cancellation and
    mirrors every exchange to the API logger.
    """

    def __init__(
        self,
        api_key: str,
        model: str,
        base_url: str | None = None,
        max_tokens: int = 4096,
        api_logger: "APILogger | None" = None,
    ):
        self.api_key = api_key
        self.model = model
        self.base_url = base_url
        self.max_tokens = max_tokens
        self.api_logger = api_logger

    async def send(
        self,
        request: ChatRequest,
        cancellation: "CancellationToken | None" = None,
    ) -> ChatResponse:
        """Send one chat request, honouring the cancellation token."""
        try:
            if cancellation is not None:
                response = await cancellation.guard(self._create_completion(request))
            else:
                response = await self._create_completion(request)
        except Exception as e:
            if self.api_logger is not None:
                self.api_logger.log_interaction(request, None, e)
            raise

        if self.api_logger is not None:
            self.api_logger.log_interaction(request, response, None)
        return response

    @abstractmethod
    async def _create_completion(self, request: ChatRequest) -> ChatResponse:
        """Perform the provider call."""
        pass

    @property
    @abstractmethod
    def provider_name(self) -> str:
        """Get the provider name."""
        pass
