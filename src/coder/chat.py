"""
Interactive chat session - the composition root.

Wires settings, transport, tool catalog, permission gateway, session and
agent together, then runs the REPL.
"""

import asyncio
import json
import signal
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

import structlog

from .agent.compaction import CompactionConfig, compact_session, should_compact
from .agent.core import Agent
from .agent.delegation import create_agent_tool
from .agent.dispatch import ToolDispatcher
from .agent.session import Session
from .config import Settings, save_settings
from .errors import CompactionError, EmptyResponse, Interrupted, TransportError
from .llm.base import BaseLLM, LLMMessage
from .llm.factory import create_llm, select_model
from .llm.logger import APILogger
from .prompts import PromptData, render_system_prompt
from .tools.permissions import PermissionGateway
from .tools.registry import ToolRegistry, create_default_registry
from .ui.console import ConsolePermissionHandler, ConsoleUI

logger = structlog.get_logger()

INTERRUPTED_TOOL_RESULT = "Tool call was interrupted by the user before it ran."


class ChatSession:
    """One interactive conversation in the terminal."""

    def __init__(
        self,
        settings: Settings,
        ui: ConsoleUI | None = None,
        llm: BaseLLM | None = None,
        approve_all: bool = False,
        working_directory: Path | None = None,
    ):
        self.settings = settings
        self.ui = ui or ConsoleUI(
            color_enabled=settings.ui.color_enabled,
            show_spinner=settings.ui.show_spinner,
            history_file=settings.history_file,
        )

        api_logger = APILogger(settings.logs_dir) if settings.api_logging else None
        self.llm = llm or create_llm(settings, api_logger=api_logger)

        self.gateway = PermissionGateway(
            auto_approve=settings.permissions.auto_approve,
            handler=ConsolePermissionHandler(self.ui),
        )
        self.registry = self._build_registry()
        if approve_all:
            for name in self.registry.list_tools():
                self.gateway.set_auto_approve(name)

        prompt_data = PromptData.collect(self.registry.get_definitions(), working_directory)
        self.session = Session.create(render_system_prompt(prompt_data))
        self.dispatcher = ToolDispatcher(self.registry, self.gateway, observers=[self.ui.print_tool_event])
        self.agent = Agent(
            self.llm,
            self.session,
            self.registry,
            select_model("chat", settings),
            tool_dispatch=self.dispatcher,
            on_message=self.ui.print_assistant_message,
        )
        self.compaction_config = CompactionConfig.from_settings(settings.compaction)

    def _build_registry(self) -> ToolRegistry:
        registry = create_default_registry(self.settings)
        registry.register(
            create_agent_tool(
                self.llm,
                registry,
                self.gateway,
                select_model("subagent", self.settings),
                observers=[self.ui.print_tool_event],
            )
        )
        return registry

    # Turn handling

    @contextmanager
    def _interrupt_on_sigint(self) -> Iterator[None]:
        """Route Ctrl+C to `session.interrupt()` while a turn runs."""
        loop = asyncio.get_running_loop()
        try:
            loop.add_signal_handler(signal.SIGINT, self.session.interrupt)
        except (NotImplementedError, RuntimeError):
            # Not supported on this platform; KeyboardInterrupt still ends the turn
            yield
            return
        try:
            yield
        finally:
            loop.remove_signal_handler(signal.SIGINT)

    async def maybe_compact(self) -> None:
        if not should_compact(self.session, self.compaction_config):
            return
        self.ui.print_notice("Conversation is getting long, summarizing...")
        try:
            await self.summarize()
        except (CompactionError, Interrupted) as e:
            logger.warning("Automatic compaction failed", error=str(e))
            self.ui.print_notice("Could not summarize the conversation, continuing with full history")

    async def summarize(self) -> str:
        """Compact the session now. Raises CompactionError or Interrupted."""
        token = self.session.begin_turn()
        try:
            with self._interrupt_on_sigint(), self.ui.status("Generating conversation summary..."):
                result = await compact_session(
                    self.llm,
                    self.session,
                    select_model("summary", self.settings),
                    token,
                )
        finally:
            self.session.end_turn()
        return result.summary

    async def send_message(self, content: str) -> LLMMessage | None:
        """Run one turn for a user message. Errors are reported, not raised."""
        await self.maybe_compact()
        self.session.add_user_message(content)

        try:
            with self._interrupt_on_sigint(), self.ui.status("Thinking..."):
                return await self.agent.run_turn()
        except Interrupted:
            closed = self.session.close_pending_tool_calls(INTERRUPTED_TOOL_RESULT)
            logger.info("Turn interrupted", unanswered_tool_calls=closed)
            self.ui.print_notice("Interrupted")
        except (TransportError, EmptyResponse) as e:
            self.session.close_pending_tool_calls(INTERRUPTED_TOOL_RESULT)
            self.ui.print_error(str(e))
        return None

    # Commands

    async def handle_command(self, line: str) -> bool:
        """Run a slash command. Returns False when the chat should end."""
        command, _, argument = line.partition(" ")
        argument = argument.strip()

        if command == "/help":
            self.ui.print_help()
        elif command == "/exit":
            self.ui.print_success("Goodbye!")
            return False
        elif command == "/clear":
            self.ui.clear_screen()
            self.session.clear_context()
        elif command == "/summarize":
            if self.session.is_minimal():
                self.ui.print_notice("Nothing to summarize yet")
                return True
            try:
                await self.summarize()
            except Interrupted:
                self.ui.print_notice("Interrupted")
            except CompactionError as e:
                self.ui.print_error(f"summarizing messages: {e}")
            else:
                self.ui.print_success("Conversation summarized and added to context")
        elif command == "/config":
            self._handle_config(argument)
        elif command == "/tools":
            self.ui.print_tools(self.registry.get_definitions())
        elif command == "/version":
            self.ui.print_text(f"{self.settings.app_name} v{self.settings.version}")
        else:
            self.ui.print_error(f"unknown command: {command}")
        return True

    def _handle_config(self, argument: str) -> None:
        if not argument:
            data = self.settings.model_dump(
                mode="json",
                include={"provider", "ui", "permissions", "compaction"},
            )
            if data["provider"].get("api_key"):
                data["provider"]["api_key"] = "****"
            self.ui.print_text(json.dumps(data, indent=2))
            return

        key, sep, value = argument.partition("=")
        if not sep:
            self.ui.print_error("invalid config command format, use: /config key=value")
            return

        try:
            self.settings.set_value(key.strip(), value.strip())
        except (KeyError, ValueError) as e:
            self.ui.print_error(str(e).strip("'\""))
            return

        try:
            path = save_settings(self.settings)
        except OSError as e:
            self.ui.print_error(f"saving config: {e}")
            return

        logger.info("Config updated", key=key.strip(), path=str(path))
        self.ui.print_success(f"Config updated: {key.strip()} = {value.strip()}")
        if key.strip().startswith("provider."):
            self.ui.print_notice("Provider changes take effect in the next chat session")

    # REPL

    async def run(self) -> None:
        self.ui.show_header(self.settings.app_name, self.settings.version, self.agent.model_config.model)

        while True:
            try:
                line = (await self.ui.ask_input("> ")).strip()
            except (EOFError, KeyboardInterrupt):
                self.ui.print_success("Goodbye!")
                break

            if not line:
                continue

            if line.startswith("/"):
                if not await self.handle_command(line):
                    break
                continue

            await self.send_message(line)

    async def run_once(self, prompt: str) -> int:
        """Non-interactive single turn. Returns a process exit code."""
        result = await self.send_message(prompt)
        return 0 if result is not None else 1
