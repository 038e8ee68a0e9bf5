"""
File Operations Tool - read, write and edit files.

Paths are taken as given, relative to the current working directory.
"""

import difflib
import re
from pathlib import Path

import structlog

from .base import ExplainResult, Tool, ToolParameter, ToolResult

logger = structlog.get_logger()


def _describe_size(content: str) -> str:
    size = len(content.encode("utf-8"))
    if size == 0:
        return "an empty file"
    if size == 1:
        return "1 byte"
    return f"{size} bytes"


def unified_diff(old: str, new: str, path: str) -> str:
    """Unified diff between two versions of a file."""
    diff = difflib.unified_diff(
        old.splitlines(keepends=True),
        new.splitlines(keepends=True),
        fromfile=f"a/{path}",
        tofile=f"b/{path}",
    )
    return "".join(diff)


class FileManager:
    """File operations backing the read, write, search_replace and sed tools."""

    def __init__(self, max_output_chars: int = 30_000):
        self.max_output_chars = max_output_chars

    def read_file(self, path: str, start: int | None = None, end: int | None = None) -> str:
        """Read a file, optionally restricted to a 1-based inclusive line range."""
        first = 1 if start is None else start
        if first < 1:
            raise ValueError("start line must be at least 1")

        file_path = Path(path)
        if not file_path.exists():
            raise FileNotFoundError(f"File not found: {path}")
        if file_path.is_dir():
            raise IsADirectoryError("path is a directory, not a file")

        lines = file_path.read_text(encoding="utf-8", errors="replace").splitlines(keepends=True)
        if not lines:
            return ""

        last = len(lines) if end is None else min(end, len(lines))
        first = min(first, len(lines))
        if first > last:
            raise ValueError(f"start line ({first}) is after end line ({last})")

        content = "".join(lines[first - 1:last])
        if len(content) > self.max_output_chars:
            content = content[:self.max_output_chars] + "\n... (truncated, use start/end to read further)\n"
        return content

    def write_file(self, path: str, content: str) -> str:
        """Write content to a file, creating parent directories."""
        file_path = Path(path)
        file_path.parent.mkdir(parents=True, exist_ok=True)
        file_path.write_text(content, encoding="utf-8")
        return f"File written to {path} ({len(content.encode('utf-8'))} bytes)"

    def search_replace(self, path: str, search: str, replacement: str) -> str:
        """Replace exactly one occurrence of `search`."""
        file_path = Path(path)
        content = file_path.read_text(encoding="utf-8")

        count = content.count(search)
        if count > 1:
            raise ValueError("found multiple matches for the search string")
        if count == 0:
            return "No matches found. File unchanged."

        file_path.write_text(content.replace(search, replacement, 1), encoding="utf-8")
        return f"Replaced 1 occurrence in {path}"

    def sed(self, path: str, pattern: str, replacement: str, use_regex: bool = False) -> str:
        """Replace every occurrence of a literal string or regex."""
        file_path = Path(path)
        content = file_path.read_text(encoding="utf-8")

        if use_regex:
            new_content, count = re.subn(pattern, replacement, content)
        else:
            count = content.count(pattern)
            new_content = content.replace(pattern, replacement)

        file_path.write_text(new_content, encoding="utf-8")
        return f"Made {count} replacements in {path}"


def _explain_read(arguments: dict) -> ExplainResult:
    path = arguments.get("path", "")
    start = arguments.get("start")
    end = arguments.get("end")

    if start is not None and end is not None:
        return ExplainResult(
            title=f"Read({path}, {start}-{end})",
            detail=f"Will read lines {start} to {end} from '{path}'",
        )
    if start is not None:
        return ExplainResult(
            title=f"Read({path}, {start}+)",
            detail=f"Will read from line {start} to the end of '{path}'",
        )
    if end is not None:
        return ExplainResult(
            title=f"Read({path}, 1-{end})",
            detail=f"Will read from the beginning to line {end} of '{path}'",
        )
    return ExplainResult(title=f"Read({path})", detail=f"Will read the entire contents of '{path}'")


def _explain_write(arguments: dict) -> ExplainResult:
    path = arguments.get("path", "")
    content = arguments.get("content", "")
    size = _describe_size(content)

    try:
        existing = Path(path).read_text(encoding="utf-8")
    except (OSError, ValueError):
        detail = f"Will write {size} to '{path}'\n\nNew content:\n```\n{content}\n```"
    else:
        diff = unified_diff(existing, content, path)
        detail = f"Will write {size} to '{path}'\n\nDiff:\n```diff\n{diff}\n```"

    return ExplainResult(title=f"Write({path})", detail=detail)


def _explain_search_replace(arguments: dict) -> ExplainResult:
    path = arguments.get("file", "")
    search = arguments.get("search", "")
    replacement = arguments.get("replacement", "")
    diff = "".join(
        difflib.unified_diff(
            search.splitlines(keepends=True),
            replacement.splitlines(keepends=True),
        )
    )
    return ExplainResult(
        title=f"SearchReplace({path})",
        detail=f"Will replace one occurrence in '{path}'\n\n```diff\n{diff}\n```",
    )


def _explain_sed(arguments: dict) -> ExplainResult:
    path = arguments.get("file", "")
    kind = "regex" if arguments.get("useRegex") else "text"
    return ExplainResult(
        title=f"Sed({path})",
        detail=(
            f"Will replace every {kind} match of '{arguments.get('pattern', '')}' "
            f"with '{arguments.get('replacement', '')}' in '{path}'"
        ),
    )


def create_file_tools(max_output_chars: int = 30_000) -> list[Tool]:
    """Create file operation tools."""
    manager = FileManager(max_output_chars=max_output_chars)

    async def read_handler(path: str, start: int | None = None, end: int | None = None) -> ToolResult:
        try:
            content = manager.read_file(
                path,
                int(start) if start is not None else None,
                int(end) if end is not None else None,
            )
            return ToolResult(success=True, output=content)
        except (OSError, ValueError) as e:
            return ToolResult(success=False, error=str(e))

    async def write_handler(path: str, content: str) -> ToolResult:
        try:
            result = manager.write_file(path, content)
            logger.info("File written", path=path, chars=len(content))
            return ToolResult(success=True, output=result)
        except OSError as e:
            return ToolResult(success=False, error=str(e))

    async def search_replace_handler(file: str, search: str, replacement: str) -> ToolResult:
        try:
            return ToolResult(success=True, output=manager.search_replace(file, search, replacement))
        except (OSError, ValueError) as e:
            return ToolResult(success=False, error=str(e))

    async def sed_handler(file: str, pattern: str, replacement: str, useRegex: bool = False) -> ToolResult:
        try:
            return ToolResult(success=True, output=manager.sed(file, pattern, replacement, useRegex))
        except (OSError, re.error) as e:
            return ToolResult(success=False, error=str(e))

    read = Tool(
        name="read",
        description="Read content from a file",
        parameters=[
            ToolParameter(
                name="path",
                param_type="string",
                description="The path to the file to read",
            ),
            ToolParameter(
                name="start",
                param_type="integer",
                description="The line number to start reading from (1-based, optional)",
                required=False,
            ),
            ToolParameter(
                name="end",
                param_type="integer",
                description="The line number to end reading at (1-based, inclusive, optional)",
                required=False,
            ),
        ],
        handler=read_handler,
        explain_fn=_explain_read,
    )

    write = Tool(
        name="write",
        description="Write content to a file",
        parameters=[
            ToolParameter(
                name="path",
                param_type="string",
                description="The path to the file to write",
            ),
            ToolParameter(
                name="content",
                param_type="string",
                description="The content to write to the file",
            ),
        ],
        handler=write_handler,
        explain_fn=_explain_write,
    )

    search_replace = Tool(
        name="search_replace",
        description="Search for exact match of a given string and replace it with the given replacement",
        parameters=[
            ToolParameter(name="file", param_type="string", description="The file to modify"),
            ToolParameter(name="search", param_type="string", description="The exact string to search for"),
            ToolParameter(name="replacement", param_type="string", description="The replacement text"),
        ],
        handler=search_replace_handler,
        explain_fn=_explain_search_replace,
    )

    sed = Tool(
        name="sed",
        description="Replace text in files",
        parameters=[
            ToolParameter(name="file", param_type="string", description="The file to modify"),
            ToolParameter(name="pattern", param_type="string", description="The pattern to search for"),
            ToolParameter(name="replacement", param_type="string", description="The replacement text"),
            ToolParameter(
                name="useRegex",
                param_type="boolean",
                description="Whether to use regex for pattern matching",
                required=False,
            ),
        ],
        handler=sed_handler,
        explain_fn=_explain_sed,
    )

    return [read, write, search_replace, sed]
