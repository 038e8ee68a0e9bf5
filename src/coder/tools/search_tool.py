"""
Search Tools - read-only exploration of the working tree: ls, glob, grep, tree.
"""

import os
import re
from pathlib import Path

from .base import ExplainResult, Tool, ToolParameter, ToolResult
from .shell_tool import truncate_output


def list_directory(path: str, recursive: bool = False) -> list[str]:
    """Entries under `path`, joined with it. Recursive listings include `path` itself."""
    if not recursive:
        return [os.path.join(path, name) for name in sorted(os.listdir(path))]

    if not os.path.exists(path):
        raise FileNotFoundError(f"Directory not found: {path}")

    entries = [path]
    for root, dirs, files in os.walk(path):
        dirs.sort()
        for name in sorted(dirs + files):
            entries.append(os.path.join(root, name))
    return entries


def glob_files(pattern: str, root: str = ".") -> list[str]:
    """Files matching a glob pattern relative to `root`. `**` spans directories."""
    base = Path(root)
    if not base.is_dir():
        raise NotADirectoryError(f"Directory not found: {root}")
    return sorted(str(p) for p in base.glob(pattern))


def _search_file(file_path: str, regex: re.Pattern) -> list[tuple[str, int, str]]:
    try:
        with open(file_path, encoding="utf-8", errors="replace") as f:
            content = f.read()
    except OSError:
        return []

    return [
        (file_path, number, line)
        for number, line in enumerate(content.split("\n"), start=1)
        if regex.search(line)
    ]


def grep_files(pattern: str, paths: list[str], recursive: bool = False) -> list[tuple[str, int, str]]:
    """Lines matching a regex as (file, line number, content).

    Missing paths are skipped. Directories are only searched when `recursive`.
    """
    regex = re.compile(pattern)
    matches: list[tuple[str, int, str]] = []

    for path in paths:
        if not os.path.exists(path):
            continue
        if os.path.isdir(path):
            if not recursive:
                continue
            for root, dirs, files in os.walk(path):
                dirs.sort()
                for name in sorted(files):
                    matches.extend(_search_file(os.path.join(root, name), regex))
        else:
            matches.extend(_search_file(path, regex))

    return matches


def build_tree(path: str, prefix: str = "", depth: int = 0, max_depth: int = 1000) -> str:
    """Box-drawing tree of the directory below `path`."""
    if depth >= max_depth:
        return ""

    entries = sorted(os.scandir(path), key=lambda e: e.name)
    lines = []
    for i, entry in enumerate(entries):
        is_last = i == len(entries) - 1
        connector = "└── " if is_last else "├── "
        next_prefix = prefix + ("    " if is_last else "│   ")

        lines.append(prefix + connector + entry.name + "\n")
        if entry.is_dir(follow_symlinks=False):
            lines.append(build_tree(entry.path, next_prefix, depth + 1, max_depth))

    return "".join(lines)


def _explain_ls(arguments: dict) -> ExplainResult:
    path = arguments.get("path", "")
    if arguments.get("recursive"):
        return ExplainResult(
            title=f"LS({path}, recursive)",
            detail=f"Will list all files and directories recursively in '{path}'",
        )
    return ExplainResult(title=f"LS({path})", detail=f"Will list files and directories in '{path}'")


def _explain_glob(arguments: dict) -> ExplainResult:
    pattern = arguments.get("pattern", "")
    root = arguments.get("root", ".")
    return ExplainResult(
        title=f"Glob({pattern})",
        detail=f"Will search for files matching pattern '{pattern}' in directory '{root}'",
    )


def _explain_grep(arguments: dict) -> ExplainResult:
    pattern = arguments.get("pattern", "")
    paths = ", ".join(str(p) for p in arguments.get("paths", []))
    return ExplainResult(
        title=f"Grep({pattern})",
        detail=f"Will search for '{pattern}' in {paths}",
    )


def _explain_tree(arguments: dict) -> ExplainResult:
    path = arguments.get("path", "")
    depth = arguments.get("depth")
    if depth is None:
        return ExplainResult(title=f"Tree({path})", detail=f"Will display a tree view of '{path}'")
    return ExplainResult(
        title=f"Tree({path}, {depth})",
        detail=f"Will display a tree view of the directory structure for '{path}' {depth} levels deep",
    )


def create_search_tools(max_output_chars: int = 30_000) -> list[Tool]:
    """Create the read-only search tools."""

    async def ls_handler(path: str, recursive: bool = False) -> ToolResult:
        try:
            files = list_directory(path, recursive)
        except OSError as e:
            return ToolResult(success=False, error=str(e))

        output = f"Found {len(files)} files in {path}:\n\n" + "".join(f + "\n" for f in files)
        return ToolResult(success=True, output=truncate_output(output, max_output_chars), data=files)

    async def glob_handler(pattern: str, root: str = ".") -> ToolResult:
        try:
            matches = glob_files(pattern, root)
        except (OSError, ValueError) as e:
            return ToolResult(success=False, error=str(e))

        if not matches:
            return ToolResult(success=True, output=f"No files found matching pattern '{pattern}'")

        output = f"Found {len(matches)} files matching pattern '{pattern}':\n\n"
        output += "".join(m + "\n" for m in matches)
        return ToolResult(success=True, output=truncate_output(output, max_output_chars), data=matches)

    async def grep_handler(pattern: str, paths: list[str], recursive: bool = False) -> ToolResult:
        try:
            matches = grep_files(pattern, paths, recursive)
        except re.error as e:
            return ToolResult(success=False, error=str(e))

        output = f"Found {len(matches)} matches for pattern '{pattern}':\n\n"
        output += "".join(f"{file}:{line}: {content}\n" for file, line, content in matches)
        return ToolResult(success=True, output=truncate_output(output, max_output_chars))

    async def tree_handler(path: str, depth: int | None = None) -> ToolResult:
        max_depth = 1000 if depth is None else int(depth)
        try:
            content = build_tree(path, max_depth=max_depth)
        except OSError as e:
            return ToolResult(success=False, error=str(e))

        tree = os.path.basename(os.path.normpath(path))
        if content:
            tree += "\n" + content
        return ToolResult(success=True, output=truncate_output(tree, max_output_chars))

    ls = Tool(
        name="ls",
        description="List files and directories",
        parameters=[
            ToolParameter(name="path", param_type="string", description="The directory path to list"),
            ToolParameter(
                name="recursive",
                param_type="boolean",
                description="Whether to list directories recursively",
                required=False,
            ),
        ],
        handler=ls_handler,
        explain_fn=_explain_ls,
    )

    glob = Tool(
        name="glob",
        description="Find files matching a glob pattern",
        parameters=[
            ToolParameter(name="pattern", param_type="string", description="The glob pattern to match"),
            ToolParameter(
                name="root",
                param_type="string",
                description="Root directory to start searching from",
                required=False,
            ),
        ],
        handler=glob_handler,
        explain_fn=_explain_glob,
    )

    grep = Tool(
        name="grep",
        description="Search for patterns in files",
        parameters=[
            ToolParameter(name="pattern", param_type="string", description="The regex pattern to search for"),
            ToolParameter(
                name="paths",
                param_type="array",
                description="Paths to search in",
                items={"type": "string"},
            ),
            ToolParameter(
                name="recursive",
                param_type="boolean",
                description="Whether to search directories recursively",
                required=False,
            ),
        ],
        handler=grep_handler,
        explain_fn=_explain_grep,
    )

    tree = Tool(
        name="tree",
        description="Display directory structure in a tree format",
        parameters=[
            ToolParameter(name="path", param_type="string", description="The directory path to display"),
            ToolParameter(
                name="depth",
                param_type="integer",
                description="Maximum depth of directory tree to display (default: unlimited)",
                required=False,
            ),
        ],
        handler=tree_handler,
        explain_fn=_explain_tree,
    )

    return [ls, glob, grep, tree]
