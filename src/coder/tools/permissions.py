"""
Permission gateway - decides whether a tool call may run.

Policy, in order:
- Tools on the auto-approve list run without asking
- Otherwise the interactive handler (if any) is asked and may attach an
  alternate instruction to a denial
- With no handler the call is denied
"""

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Protocol

import structlog

if TYPE_CHECKING:
    from ..agent.cancellation import CancellationToken

logger = structlog.get_logger()

DEFAULT_DENIAL = "Permission denied by default policy"


@dataclass
class PermissionRequest:
    """A tool call waiting for a decision."""

    tool_name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    title: str = ""
    detail: str = ""

    def format_for_display(self) -> str:
        """Format this request for a terminal prompt."""
        args_display = "\n".join(
            f"  {k}: {str(v)[:100]}" for k, v in self.arguments.items()
        )
        lines = [self.title or self.tool_name]
        if self.detail:
            lines.append(self.detail)
        if args_display:
            lines.append(args_display)
        return "\n".join(lines)


@dataclass
class PermissionResponse:
    """Outcome of a permission request."""

    granted: bool
    alternate_instruction: str = ""


class PermissionHandler(Protocol):
    """Interactive decision maker, usually a human at a terminal."""

    async def __call__(self, request: PermissionRequest) -> PermissionResponse: ...


class PermissionGateway:
    """Applies the auto-approve list, then defers to the handler."""

    def __init__(
        self,
        auto_approve: dict[str, bool] | None = None,
        handler: PermissionHandler | None = None,
    ):
        self._auto_approve = dict(auto_approve or {})
        self.handler = handler

    def is_auto_approved(self, tool_name: str) -> bool:
        return self._auto_approve.get(tool_name, False)

    def set_auto_approve(self, tool_name: str, approved: bool = True) -> None:
        self._auto_approve[tool_name] = approved

    async def request_permission(
        self,
        request: PermissionRequest,
        cancellation: "CancellationToken | None" = None,
    ) -> PermissionResponse:
        """Decide on a tool call.

        Raises Interrupted if the token fires while the handler is waiting.
        """
        if self.is_auto_approved(request.tool_name):
            logger.debug("Permission auto-approved", tool=request.tool_name)
            return PermissionResponse(granted=True)

        if self.handler is None:
            logger.info("Permission denied, no handler", tool=request.tool_name)
            return PermissionResponse(granted=False, alternate_instruction=DEFAULT_DENIAL)

        if cancellation is not None:
            response = await cancellation.guard(self.handler(request))
        else:
            response = await self.handler(request)

        logger.info(
            "Permission decided",
            tool=request.tool_name,
            granted=response.granted,
        )
        return response
