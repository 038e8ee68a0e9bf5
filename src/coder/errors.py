"""
Error taxonomy for the agent core.

Errors the model can act on (bad arguments, tool failures) are caught inside
the loop and turned into tool messages. Errors that end a turn (Interrupted,
TransportError, EmptyResponse) propagate to the caller.
"""

from enum import Enum


class CoderError(Exception):
    """Base class for all coder errors."""


class Interrupted(CoderError):
    """Raised when the cancellation token for a turn was signalled."""

    def __init__(self, message: str = "operation interrupted"):
        super().__init__(message)


class TransportError(CoderError):
    """The model provider could not be reached or returned an error."""


class EmptyResponse(CoderError):
    """The provider answered without any choices."""

    def __init__(self, message: str = "no response choices"):
        super().__init__(message)


class ValidationFailure(str, Enum):
    """Why a set of tool arguments was rejected."""
    MISSING_FIELD = "missing_field"
    UNEXPECTED_FIELD = "unexpected_field"
    TYPE_MISMATCH = "type_mismatch"


class ValidationError(CoderError):
    """Tool arguments did not match the tool's declared input schema."""

    def __init__(self, kind: ValidationFailure, field: str, message: str):
        super().__init__(message)
        self.kind = kind
        self.field = field


class ToolExecutionError(CoderError):
    """A tool body raised or reported failure."""

    def __init__(self, tool_name: str, message: str):
        super().__init__(f"Error executing {tool_name}: {message}")
        self.tool_name = tool_name


class CompactionError(CoderError):
    """Summarizing the conversation failed; history was left intact."""
