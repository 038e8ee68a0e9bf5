"""
Terminal presentation for the chat REPL.

All printing goes through ConsoleUI so the chat loop never formats output
itself. Colour language:
    cyan    - tool calls
    green   - success and confirmations
    yellow  - notices such as interruption
    red     - errors and denials
"""

from contextlib import contextmanager
from pathlib import Path
from typing import Any, Iterator

from prompt_toolkit import PromptSession
from prompt_toolkit.history import FileHistory, History, InMemoryHistory
from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.status import Status
from rich.table import Table

from ..agent.dispatch import ToolEvent
from ..errors import Interrupted
from ..llm.base import LLMMessage, ToolDefinition
from ..tools.permissions import PermissionRequest, PermissionResponse

HELP_TEXT = [
    ("/help", "Show this help"),
    ("/exit", "Exit the chat"),
    ("/clear", "Clear the screen and start a fresh conversation"),
    ("/summarize", "Summarize the conversation to free up context"),
    ("/config", "Show configuration, or set a value with /config key=value"),
    ("/tools", "List available tools"),
    ("/version", "Show the version"),
    ("Ctrl+C", "Interrupt the running turn or permission prompt"),
]


def _preview(value: str, max_len: int = 200) -> str:
    value = value.strip()
    if len(value) > max_len:
        return value[:max_len] + "…"
    return value


class ConsoleUI:
    """Rich-based terminal front end.

    Output goes through rich; input goes through prompt_toolkit so that every
    prompt is awaitable and can be cancelled. `prompt_options` is passed to
    each PromptSession (tests supply `input` and `output` here).
    """

    def __init__(
        self,
        color_enabled: bool = True,
        show_spinner: bool = True,
        console: Console | None = None,
        history_file: Path | None = None,
        prompt_options: dict[str, Any] | None = None,
    ):
        self.console = console or Console(no_color=not color_enabled, highlight=False)
        self.show_spinner = show_spinner
        self.history_file = history_file
        self._prompt_options = dict(prompt_options or {})
        self._status: Status | None = None
        self._input_session: PromptSession | None = None
        self._question_session: PromptSession | None = None

    # Messages

    def show_header(self, app_name: str, version: str, model: str) -> None:
        self.console.print(
            Panel.fit(
                f"[bold cyan]{app_name}[/bold cyan] [dim]v{version}[/dim]\n"
                f"[dim]Model:[/dim] {model}\n"
                f"[dim]Type your request, or /help for commands.[/dim]",
                border_style="cyan",
                padding=(0, 2),
            )
        )

    def print_success(self, message: str) -> None:
        self.console.print(f"[green]✓[/green] {message}")

    def print_error(self, message: str) -> None:
        self.console.print(f"[bold red]Error:[/bold red] {message}")

    def print_notice(self, message: str) -> None:
        self.console.print(f"[yellow]{message}[/yellow]")

    def print_text(self, text: str) -> None:
        self.console.print(text, markup=False)

    def print_assistant_message(self, message: LLMMessage) -> None:
        if not message.content.strip():
            return
        with self._paused_status():
            self.console.print()
            self.console.print(Markdown(message.content))
            self.console.print()

    def print_tool_event(self, event: ToolEvent) -> None:
        with self._paused_status():
            if event.kind == "denied":
                self.console.print(f"  [red]✗ {event.tool_name} denied[/red]")
            elif event.kind == "result":
                color = "cyan" if event.success else "red"
                self.console.print(f"[{color}]● {event.tool_name}[/{color}]")
                preview = _preview(event.content)
                if preview:
                    self.console.print(f"  [dim]{escape(preview)}[/dim]")

    def print_help(self) -> None:
        table = Table(show_header=False, box=None, padding=(0, 2))
        for command, description in HELP_TEXT:
            table.add_row(f"[cyan]{command}[/cyan]", description)
        self.console.print(table)

    def print_tools(self, definitions: list[ToolDefinition]) -> None:
        self.console.print("Available tools:")
        for d in definitions:
            self.console.print(f"- [cyan]{d.name}[/cyan]: {d.description}")

    def clear_screen(self) -> None:
        self.console.clear()

    # Spinner

    @contextmanager
    def status(self, message: str) -> Iterator[None]:
        if not self.show_spinner:
            yield
            return
        with self.console.status(message) as status:
            self._status = status
            try:
                yield
            finally:
                self._status = None

    @contextmanager
    def _paused_status(self) -> Iterator[None]:
        status = self._status
        if status is None:
            yield
            return
        status.stop()
        try:
            yield
        finally:
            status.start()

    # Input

    def _history(self) -> History:
        if self.history_file is None:
            return InMemoryHistory()
        self.history_file.parent.mkdir(parents=True, exist_ok=True)
        return FileHistory(str(self.history_file))

    def _get_input_session(self) -> PromptSession:
        if self._input_session is None:
            self._input_session = PromptSession(history=self._history(), **self._prompt_options)
        return self._input_session

    def _get_question_session(self) -> PromptSession:
        # Answers to permission questions stay out of the input history
        if self._question_session is None:
            self._question_session = PromptSession(history=InMemoryHistory(), **self._prompt_options)
        return self._question_session

    async def ask_input(self, prompt: str = "> ") -> str:
        """Read one line of user input, with history recall.

        Raises EOFError on Ctrl+D and KeyboardInterrupt on Ctrl+C.
        """
        return await self._get_input_session().prompt_async(prompt)

    async def _ask(self, question: str) -> str:
        # The chat installs its own SIGINT handler while a turn runs
        return await self._get_question_session().prompt_async(question, handle_sigint=False)

    async def ask_permission(self, request: PermissionRequest) -> PermissionResponse:
        """Yes/no prompt; a denial asks what to do instead.

        Cancelling the awaiting task closes the prompt. Ctrl+C at the prompt
        raises KeyboardInterrupt.
        """
        with self._paused_status():
            body = f"[bold]Tool:[/bold] {request.tool_name}\n\n[bold]{escape(request.title)}[/bold]"
            if request.detail:
                body += f"\n\n{escape(request.detail)}"
            self.console.print(Panel(body, title="Permission Request", border_style="yellow"))

            while True:
                answer = (await self._ask("Allow this action? [Y/n] ")).strip().lower()
                if answer in ("", "y", "yes"):
                    return PermissionResponse(granted=True)
                if answer in ("n", "no"):
                    break
                self.console.print("[yellow]Please answer y or n[/yellow]")

            alternate = await self._ask("What should I do instead? ")
            return PermissionResponse(granted=False, alternate_instruction=alternate.strip())


class ConsolePermissionHandler:
    """Asks the human at the terminal without blocking the event loop."""

    def __init__(self, ui: ConsoleUI):
        self.ui = ui

    async def __call__(self, request: PermissionRequest) -> PermissionResponse:
        try:
            return await self.ui.ask_permission(request)
        except KeyboardInterrupt:
            raise Interrupted("permission prompt interrupted") from None
