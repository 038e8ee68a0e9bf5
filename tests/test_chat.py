"""
Tests for the chat front end and CLI commands.
"""

import json

import pytest
from unittest.mock import MagicMock

from conftest import text_response, tool_response

from coder.chat import INTERRUPTED_TOOL_RESULT, ChatSession
from coder.cli import init_config, show_config
from coder.config import Settings
from coder.ui.console import ConsoleUI


@pytest.fixture
def make_chat(isolated_config, tmp_path, scripted_llm):
    def make(*responses, **settings_overrides):
        settings = Settings(api_logging=False, **settings_overrides)
        ui = MagicMock(spec=ConsoleUI)
        llm = scripted_llm(*responses)
        chat = ChatSession(settings, ui=ui, llm=llm, working_directory=tmp_path)
        return chat
    return make


def test_chat_wiring(make_chat):
    """Test that the chat registers every tool, including the agent tool."""
    chat = make_chat()

    assert "agent" in chat.registry
    assert chat.registry.list_tools()[-1] == "agent"
    assert chat.session.message_count == 1
    assert "## Available Tools" in chat.session.system_prompt
    assert chat.gateway.is_auto_approved("read")
    assert not chat.gateway.is_auto_approved("shell")


def test_approve_all(isolated_config, tmp_path, scripted_llm):
    """Test that --yes auto-approves every registered tool."""
    chat = ChatSession(
        Settings(api_logging=False),
        ui=MagicMock(spec=ConsoleUI),
        llm=scripted_llm(),
        approve_all=True,
        working_directory=tmp_path,
    )

    assert all(chat.gateway.is_auto_approved(name) for name in chat.registry.list_tools())


@pytest.mark.asyncio
async def test_send_message(make_chat):
    """Test a successful turn."""
    chat = make_chat(text_response("Hello!"))

    reply = await chat.send_message("hi")

    assert reply.content == "Hello!"
    chat.ui.print_assistant_message.assert_called_once()
    assert [m.role for m in chat.session.messages] == ["system", "user", "assistant"]
    assert not chat.session.turn_in_progress


@pytest.mark.asyncio
async def test_send_message_reports_transport_error(make_chat):
    """Test that transport failures are shown instead of raised."""
    chat = make_chat(ConnectionError("offline"))

    reply = await chat.send_message("hi")

    assert reply is None
    chat.ui.print_error.assert_called_once()
    assert "offline" in chat.ui.print_error.call_args.args[0]


@pytest.mark.asyncio
async def test_interrupted_turn_closes_tool_calls(make_chat):
    """Test that unanswered tool calls get placeholder results after an interrupt."""
    chat = make_chat(
        tool_response(("c1", "read", '{"path": "a"}'), ("c2", "read", '{"path": "b"}')),
    )

    def interrupt_on_event(event):
        if event.kind == "result":
            chat.session.interrupt()

    chat.dispatcher.add_observer(interrupt_on_event)

    reply = await chat.send_message("read files")

    assert reply is None
    tool_msgs = [m for m in chat.session.messages if m.role == "tool"]
    assert [m.tool_call_id for m in tool_msgs] == ["c1", "c2"]
    assert tool_msgs[1].content == INTERRUPTED_TOOL_RESULT
    chat.ui.print_notice.assert_called_with("Interrupted")


@pytest.mark.asyncio
async def test_run_once_exit_codes(make_chat):
    """Test the single-prompt exit codes."""
    assert await make_chat(text_response("ok")).run_once("go") == 0
    assert await make_chat(ConnectionError("down")).run_once("go") == 1


@pytest.mark.asyncio
async def test_auto_compaction_before_turn(make_chat):
    """Test that a long session is summarized before the next message."""
    chat = make_chat(
        text_response("first reply"),
        text_response("the summary"),
        text_response("second reply"),
    )
    await chat.send_message("x" * 400)
    chat.compaction_config.max_context_tokens = 10

    await chat.send_message("next")

    assert chat.session.compaction_count == 1
    assert "the summary" in chat.session.messages[1].content
    assert chat.session.messages[2].content == "next"


@pytest.mark.asyncio
async def test_commands(make_chat):
    """Test the basic slash commands."""
    chat = make_chat()

    assert await chat.handle_command("/help") is True
    chat.ui.print_help.assert_called_once()

    assert await chat.handle_command("/tools") is True
    chat.ui.print_tools.assert_called_once()

    assert await chat.handle_command("/version") is True
    chat.ui.print_text.assert_called_with("Coder v0.1.0")

    assert await chat.handle_command("/interrupt") is True
    chat.ui.print_error.assert_called_with("unknown command: /interrupt")

    assert await chat.handle_command("/bogus") is True
    chat.ui.print_error.assert_called_with("unknown command: /bogus")

    assert await chat.handle_command("/exit") is False


@pytest.mark.asyncio
async def test_clear_command(make_chat):
    """Test that /clear resets the conversation."""
    chat = make_chat(text_response("hi"))
    await chat.send_message("hello")

    await chat.handle_command("/clear")

    chat.ui.clear_screen.assert_called_once()
    assert chat.session.is_minimal()


@pytest.mark.asyncio
async def test_summarize_command(make_chat):
    """Test /summarize on empty and non-empty sessions."""
    chat = make_chat(text_response("hi"), text_response("summary text"))

    await chat.handle_command("/summarize")
    chat.ui.print_notice.assert_called_with("Nothing to summarize yet")

    await chat.send_message("hello")
    await chat.handle_command("/summarize")

    chat.ui.print_success.assert_called_with("Conversation summarized and added to context")
    assert chat.session.message_count == 2


@pytest.mark.asyncio
async def test_summarize_command_failure(make_chat):
    """Test that a failed /summarize keeps the history."""
    chat = make_chat(text_response("hi"), ConnectionError("offline"))
    await chat.send_message("hello")

    await chat.handle_command("/summarize")

    assert chat.ui.print_error.call_args.args[0].startswith("summarizing messages: ")
    assert chat.session.message_count == 3


@pytest.mark.asyncio
async def test_config_command(make_chat, isolated_config):
    """Test showing and updating configuration."""
    chat = make_chat()
    chat.settings.set_value("provider.api_key", "secret-key")

    await chat.handle_command("/config")
    shown = json.loads(chat.ui.print_text.call_args.args[0])
    assert shown["provider"]["api_key"] == "****"

    await chat.handle_command("/config ui.show_spinner=false")
    assert chat.settings.ui.show_spinner is False
    assert json.loads(isolated_config.read_text())["ui"]["show_spinner"] is False

    await chat.handle_command("/config nope")
    chat.ui.print_error.assert_called_with("invalid config command format, use: /config key=value")

    await chat.handle_command("/config ui.color_enabled=maybe")
    assert "invalid boolean value" in chat.ui.print_error.call_args.args[0]


# CLI


def test_show_config_check(isolated_config, capsys):
    """Test the configuration check exit codes."""
    settings = Settings()

    assert show_config(settings, check=False) == 0
    assert show_config(settings, check=True) == 1
    assert "An API key is required" in capsys.readouterr().out

    settings.set_value("provider.api_key", "sk-test-1234567890")
    assert show_config(settings, check=True) == 0
    assert "sk-t...7890" in capsys.readouterr().out


def test_init_config(isolated_config, capsys):
    """Test writing the default config file."""
    settings = Settings()

    init_config(settings)

    assert isolated_config.exists()
    assert settings.logs_dir.is_dir()
    assert "Created" in capsys.readouterr().out

    init_config(settings)
    assert "already exists" in capsys.readouterr().out


@pytest.mark.asyncio
async def test_run_reads_input_until_eof(make_chat):
    """Test the REPL loop: blank lines are skipped and Ctrl+D ends the chat."""
    chat = make_chat(text_response("Hello!"))
    chat.ui.ask_input.side_effect = ["", "  hi  ", EOFError()]

    await chat.run()

    assert chat.ui.ask_input.await_count == 3
    assert len(chat.llm.requests) == 1
    assert chat.session.messages[1].content == "hi"
    chat.ui.print_success.assert_called_with("Goodbye!")
