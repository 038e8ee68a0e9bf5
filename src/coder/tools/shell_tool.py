"""
Shell Command Tool - runs a command through `sh -c` in the working directory.

A non-zero exit status is not a tool failure: the exit code and both output
streams are reported back to the model so it can react to them.
"""

import asyncio
import os

import structlog

from .base import ExplainResult, Tool, ToolParameter, ToolResult

logger = structlog.get_logger()


def truncate_output(output: str, max_chars: int) -> str:
    """Truncate output to `max_chars`, noting how much was dropped."""
    if max_chars <= 0 or len(output) <= max_chars:
        return output
    dropped = len(output) - max_chars
    return output[:max_chars] + f"\n\n... (truncated, {dropped} more characters)"


def format_command_result(command: str, exit_code: int, stdout: str, stderr: str) -> str:
    """Render a finished command the way the model sees it."""
    result = f"Command: {command}\n"
    result += f"Exit Code: {exit_code}\n"
    if exit_code == 0:
        if stdout:
            result += f"\nOutput:\n{stdout}\n"
        return result

    if stdout:
        result += f"\nStandard Output:\n{stdout}\n"
    if stderr:
        result += f"\nStandard Error:\n{stderr}\n"
    return result


class ShellExecutor:
    """Executes shell commands with a timeout and output limits."""

    def __init__(self, timeout_seconds: float = 120, max_output_chars: int = 30_000):
        self.timeout_seconds = timeout_seconds
        self.max_output_chars = max_output_chars

    async def execute(self, command: str) -> tuple[int, str, str]:
        """
        Execute a shell command.

        Returns:
            Tuple of (return_code, stdout, stderr)

        Raises:
            TimeoutError: if the command outlives `timeout_seconds`
        """
        process = await asyncio.create_subprocess_exec(
            "sh", "-c", command,
            stdin=asyncio.subprocess.DEVNULL,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=os.environ.copy(),
        )

        try:
            stdout, stderr = await asyncio.wait_for(
                process.communicate(),
                timeout=self.timeout_seconds,
            )
        except asyncio.TimeoutError:
            process.kill()
            await process.wait()
            raise TimeoutError(f"Command timed out after {self.timeout_seconds} seconds") from None

        stdout_str = truncate_output(stdout.decode("utf-8", errors="replace"), self.max_output_chars)
        stderr_str = truncate_output(stderr.decode("utf-8", errors="replace"), self.max_output_chars)

        logger.debug("Command finished", command=command, exit_code=process.returncode)
        return process.returncode, stdout_str, stderr_str


def _explain_shell(arguments: dict) -> ExplainResult:
    return ExplainResult(
        title=f"Shell({arguments.get('command', '')})",
        detail=arguments.get("why", ""),
    )


def create_shell_tools(timeout: float = 120, max_output_chars: int = 30_000) -> list[Tool]:
    """Create shell-related tools."""
    executor = ShellExecutor(timeout_seconds=timeout, max_output_chars=max_output_chars)

    async def shell_handler(command: str, why: str = "") -> ToolResult:
        try:
            exit_code, stdout, stderr = await executor.execute(command)
        except (OSError, TimeoutError) as e:
            return ToolResult(success=False, error=str(e))

        return ToolResult(
            success=True,
            output=format_command_result(command, exit_code, stdout, stderr),
            data={"exit_code": exit_code},
        )

    shell = Tool(
        name="shell",
        description="Execute shell commands",
        parameters=[
            ToolParameter(
                name="command",
                param_type="string",
                description="The shell command to execute",
            ),
            ToolParameter(
                name="why",
                param_type="string",
                description="A very short reason for executing this command",
                required=False,
            ),
        ],
        handler=shell_handler,
        explain_fn=_explain_shell,
    )

    return [shell]
