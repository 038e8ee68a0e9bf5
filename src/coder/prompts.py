"""
Prompt text for the main chat, delegated sub-agents and summarization.
"""

import platform
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path

import structlog

from .llm.base import ToolDefinition

logger = structlog.get_logger()

AGENT_INSTRUCTION_FILES = ("AGENT.md", "AGENTS.md")

SUBAGENT_PROMPT = """You are a code analysis agent. You can only use read-only tools to analyze code.
You CANNOT use any write tools or tools that modify the filesystem.
You must complete the task assigned to you and return a concise response.

Format your response in markdown. Include relevant code snippets and explanations.
Show your work by explaining how you arrived at your conclusions."""

SUMMARY_PROMPT = """You are summarizing a conversation between a user and a coding assistant so \
that the assistant can continue the work in a fresh context.

Write a concise, factual summary that preserves:
- The user's requests and the task currently in progress
- Files that were read, created or modified, and what changed in them
- Commands that were run and their important results
- Decisions made, constraints stated by the user and open problems
- The exact next step the assistant was about to take

Do not invent details. Do not address the user. Output only the summary."""

SUMMARY_REQUEST = "Please summarize our conversation so far into a concise, factual summary"

CONTINUATION_TEMPLATE = (
    "This session is being continued from a previous conversation. "
    "The conversation is summarized below:\n"
    "{summary}\n"
    "Please continue the conversation from where we left it off without asking the any "
    "further questions. Continue with the last task that you were asked to work on."
)


@dataclass
class PromptData:
    """Values injected into the main system prompt."""

    tools: list[ToolDefinition] = field(default_factory=list)
    working_directory: str = ""
    platform: str = ""
    date: str = ""
    agent_instructions: str = ""

    @classmethod
    def collect(cls, tools: list[ToolDefinition], working_directory: Path | None = None) -> "PromptData":
        """Gather the runtime environment for `working_directory` (default: cwd)."""
        cwd = working_directory or Path.cwd()
        return cls(
            tools=tools,
            working_directory=str(cwd),
            platform=f"{platform.system()} {platform.release()}".strip(),
            date=datetime.now().strftime("%Y-%m-%d"),
            agent_instructions=get_agent_instructions(cwd),
        )


def get_agent_instructions(working_directory: Path) -> str:
    """Project instructions from AGENT.md, else AGENTS.md, else empty."""
    for name in AGENT_INSTRUCTION_FILES:
        path = working_directory / name
        try:
            return path.read_text(encoding="utf-8")
        except FileNotFoundError:
            continue
        except OSError as e:
            logger.warning("Could not read agent instructions", path=str(path), error=str(e))
    return ""


def render_system_prompt(data: PromptData) -> str:
    """Build the main system prompt."""
    parts = ["""You are Coder, an interactive coding assistant running in the user's terminal.

You help with software engineering tasks: reading and explaining code, fixing bugs, \
adding features, refactoring and running commands. Work in small verifiable steps.

## Guidelines
1. Be concise. Your output is shown in a terminal and rendered as Markdown
2. Read the relevant code before changing it, and follow the conventions you find
3. Prefer search_replace for small edits and write only for new files or full rewrites
4. Some tools ask the user for permission first. If a call is rejected, follow the \
user's instruction instead of retrying the same call
5. Use the agent tool to delegate broad read-only investigations
6. Never invent file contents or command output"""]

    if data.tools:
        tool_lines = "\n".join(f"- **{t.name}**: {t.description}" for t in data.tools)
        parts.append(f"## Available Tools\n{tool_lines}")

    env_lines = []
    if data.working_directory:
        env_lines.append(f"Working directory: {data.working_directory}")
    if data.platform:
        env_lines.append(f"Platform: {data.platform}")
    if data.date:
        env_lines.append(f"Today's date: {data.date}")
    if env_lines:
        parts.append("## Environment\n" + "\n".join(env_lines))

    if data.agent_instructions.strip():
        parts.append(f"## Project Instructions\n{data.agent_instructions.strip()}")

    return "\n\n".join(parts)


def render_continuation(summary: str) -> str:
    return CONTINUATION_TEMPLATE.format(summary=summary)
