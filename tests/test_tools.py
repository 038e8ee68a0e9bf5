"""
Tests for the built-in tools and the tool registry.
"""

import asyncio
from unittest.mock import patch

import pytest

from coder.config import Settings
from coder.tools.base import Tool, ToolParameter, ToolResult
from coder.tools.file_tool import FileManager, create_file_tools
from coder.tools.registry import ToolRegistry, create_default_registry
from coder.tools.search_tool import build_tree, create_search_tools, grep_files
from coder.tools.shell_tool import create_shell_tools, format_command_result, truncate_output


def tools_by_name(tools):
    return {tool.name: tool for tool in tools}


async def noop(**kwargs):
    return ToolResult(success=True)


# Registry


def test_registry_keeps_registration_order():
    """Test that tools are listed in registration order."""
    registry = ToolRegistry()
    for name in ("b", "a", "c"):
        registry.register(Tool(name=name, description=name, parameters=[], handler=noop))

    assert registry.list_tools() == ["b", "a", "c"]
    assert [d.name for d in registry.get_definitions()] == ["b", "a", "c"]
    assert len(registry) == 3
    assert "a" in registry


def test_registry_overwrites_by_name():
    """Test that re-registering a name replaces the tool in place."""
    registry = ToolRegistry([
        Tool(name="x", description="old", parameters=[], handler=noop),
        Tool(name="y", description="y", parameters=[], handler=noop),
    ])
    registry.register(Tool(name="x", description="new", parameters=[], handler=noop))

    assert registry.list_tools() == ["x", "y"]
    assert registry.get("x").description == "new"


def test_registry_subset_and_unregister():
    """Test narrowing a registry and removing tools."""
    registry = ToolRegistry(
        Tool(name=n, description=n, parameters=[], handler=noop) for n in ("read", "write", "ls")
    )

    narrowed = registry.subset(["ls", "read", "missing"])
    assert narrowed.list_tools() == ["ls", "read"]

    registry.unregister("write")
    registry.unregister("missing")
    assert registry.get("write") is None
    assert registry.list_tools() == ["read", "ls"]


def test_parameters_schema():
    """Test JSON Schema generation from tool parameters."""
    tool = Tool(
        name="t",
        description="t",
        parameters=[
            ToolParameter(name="path", param_type="string", description="Path"),
            ToolParameter(name="limit", param_type="integer", description="Limit", required=False, default=10),
            ToolParameter(name="paths", param_type="array", description="Paths", items={"type": "string"}),
        ],
        handler=noop,
    )

    schema = tool.get_parameters_schema()

    assert schema["type"] == "object"
    assert schema["required"] == ["path", "paths"]
    assert schema["properties"]["limit"]["default"] == 10
    assert schema["properties"]["paths"]["items"] == {"type": "string"}


def test_default_registry(isolated_config):
    """Test the built-in tool catalog."""
    registry = create_default_registry(Settings())

    assert registry.list_tools() == [
        "shell", "read", "write", "search_replace", "sed", "ls", "glob", "grep", "tree",
    ]


# Shell


def test_format_command_result():
    """Test rendering of successful and failed commands."""
    ok = format_command_result("echo hi", 0, "hi\n", "")
    assert ok == "Command: echo hi\nExit Code: 0\n\nOutput:\nhi\n\n"

    failed = format_command_result("false", 1, "out", "err")
    assert "Exit Code: 1" in failed
    assert "Standard Output:\nout" in failed
    assert "Standard Error:\nerr" in failed


def test_truncate_output():
    """Test output truncation."""
    assert truncate_output("short", 100) == "short"
    truncated = truncate_output("x" * 50, 10)
    assert truncated.startswith("x" * 10)
    assert "40 more characters" in truncated


@pytest.mark.asyncio
async def test_shell_tool_runs_command():
    """Test running a shell command."""
    shell = create_shell_tools()[0]

    result = await shell.execute({"command": "echo hello"})

    assert result.success
    assert result.data == {"exit_code": 0}
    assert "hello" in result.output


@pytest.mark.asyncio
async def test_shell_tool_reports_exit_code():
    """Test that a failing command is reported, not treated as a tool failure."""
    shell = create_shell_tools()[0]

    result = await shell.execute({"command": "echo oops >&2; exit 3"})

    assert result.success
    assert "Exit Code: 3" in result.output
    assert "oops" in result.output


@pytest.mark.asyncio
async def test_shell_tool_timeout():
    """Test that slow commands are killed."""
    shell = create_shell_tools(timeout=0.2)[0]

    result = await shell.execute({"command": "sleep 5"})

    assert not result.success
    assert "timed out" in result.error


@pytest.mark.asyncio
async def test_shell_tool_does_not_read_terminal_input():
    """Test that commands get an empty stdin instead of the chat's terminal."""
    shell = create_shell_tools(timeout=5)[0]

    with patch("asyncio.create_subprocess_exec", wraps=asyncio.create_subprocess_exec) as spawn:
        result = await shell.execute({"command": "cat"})

    assert result.success
    assert result.data == {"exit_code": 0}
    assert spawn.call_args.kwargs["stdin"] == asyncio.subprocess.DEVNULL


def test_shell_explain():
    """Test the permission prompt text for shell."""
    shell = create_shell_tools()[0]
    explanation = shell.explain({"command": "rm -rf build", "why": "clean"})

    assert explanation.title == "Shell(rm -rf build)"
    assert explanation.detail == "clean"


# Files


@pytest.mark.asyncio
async def test_read_line_range(tmp_path):
    """Test reading a 1-based inclusive line range."""
    path = tmp_path / "a.txt"
    path.write_text("one\ntwo\nthree\nfour")
    read = tools_by_name(create_file_tools())["read"]

    result = await read.execute({"path": str(path), "start": 2, "end": 3})

    assert result.success
    assert result.output == "two\nthree\n"


@pytest.mark.asyncio
async def test_read_keeps_line_endings(tmp_path):
    """Test that a file reads back exactly, with no newline added."""
    read = tools_by_name(create_file_tools())["read"]
    for name, text in [("a.txt", "a\nb\n"), ("b.txt", "a\nb"), ("empty.txt", "")]:
        path = tmp_path / name
        path.write_text(text)

        result = await read.execute({"path": str(path)})

        assert result.success
        assert result.output == text


@pytest.mark.asyncio
async def test_read_errors(tmp_path):
    """Test reading missing files and directories."""
    read = tools_by_name(create_file_tools())["read"]

    missing = await read.execute({"path": str(tmp_path / "nope.txt")})
    assert not missing.success
    assert "File not found" in missing.error

    directory = await read.execute({"path": str(tmp_path)})
    assert not directory.success

    path = tmp_path / "a.txt"
    path.write_text("one\ntwo\nthree")
    backwards = await read.execute({"path": str(path), "start": 3, "end": 1})
    assert not backwards.success


@pytest.mark.asyncio
async def test_write_creates_parents(tmp_path):
    """Test writing a file into a new directory."""
    write = tools_by_name(create_file_tools())["write"]
    path = tmp_path / "sub" / "out.txt"

    result = await write.execute({"path": str(path), "content": "hello"})

    assert result.success
    assert result.output == f"File written to {path} (5 bytes)"
    assert path.read_text() == "hello"


def test_write_explain_shows_diff(tmp_path):
    """Test that overwriting a file shows a unified diff."""
    path = tmp_path / "a.py"
    path.write_text("x = 1\n")
    write = tools_by_name(create_file_tools())["write"]

    explanation = write.explain({"path": str(path), "content": "x = 2\n"})

    assert explanation.title == f"Write({path})"
    assert "-x = 1" in explanation.detail
    assert "+x = 2" in explanation.detail


@pytest.mark.asyncio
async def test_search_replace(tmp_path):
    """Test single-occurrence replacement."""
    path = tmp_path / "a.py"
    path.write_text("def foo():\n    return 1\n")
    tool = tools_by_name(create_file_tools())["search_replace"]

    result = await tool.execute({"file": str(path), "search": "return 1", "replacement": "return 2"})

    assert result.success
    assert result.output == f"Replaced 1 occurrence in {path}"
    assert "return 2" in path.read_text()

    none = await tool.execute({"file": str(path), "search": "missing", "replacement": "x"})
    assert none.output == "No matches found. File unchanged."


@pytest.mark.asyncio
async def test_search_replace_rejects_ambiguous_match(tmp_path):
    """Test that multiple matches leave the file untouched."""
    path = tmp_path / "a.txt"
    path.write_text("x x")
    tool = tools_by_name(create_file_tools())["search_replace"]

    result = await tool.execute({"file": str(path), "search": "x", "replacement": "y"})

    assert not result.success
    assert "multiple matches" in result.error
    assert path.read_text() == "x x"


def test_sed_literal_and_regex(tmp_path):
    """Test literal and regex replacement."""
    path = tmp_path / "a.txt"
    path.write_text("a1 a2 a.")
    manager = FileManager()

    assert manager.sed(str(path), "a.", "b") == f"Made 1 replacements in {path}"
    assert path.read_text() == "a1 a2 b"

    assert manager.sed(str(path), r"a\d", "c", use_regex=True) == f"Made 2 replacements in {path}"
    assert path.read_text() == "c c b"


# Search


@pytest.fixture
def project(tmp_path):
    (tmp_path / "src").mkdir()
    (tmp_path / "src" / "app.py").write_text("import os\n\ndef main():\n    pass\n")
    (tmp_path / "src" / "util.py").write_text("def helper():\n    return 1\n")
    (tmp_path / "README.md").write_text("# Project\n")
    return tmp_path


@pytest.mark.asyncio
async def test_ls(project):
    """Test flat and recursive listings."""
    ls = tools_by_name(create_search_tools())["ls"]

    flat = await ls.execute({"path": str(project)})
    assert flat.output.startswith(f"Found 2 files in {project}:\n\n")

    recursive = await ls.execute({"path": str(project), "recursive": True})
    assert len(recursive.data) == 5
    assert str(project / "src" / "util.py") in recursive.data

    missing = await ls.execute({"path": str(project / "nope")})
    assert not missing.success


@pytest.mark.asyncio
async def test_glob(project):
    """Test glob matching with and without matches."""
    glob = tools_by_name(create_search_tools())["glob"]

    found = await glob.execute({"pattern": "**/*.py", "root": str(project)})
    assert found.output.startswith("Found 2 files matching pattern '**/*.py':")

    none = await glob.execute({"pattern": "*.rs", "root": str(project)})
    assert none.output == "No files found matching pattern '*.rs'"

    bad_root = await glob.execute({"pattern": "*", "root": str(project / "nope")})
    assert not bad_root.success


def test_grep_files(project):
    """Test regex search over files and directories."""
    src = str(project / "src")

    assert grep_files(r"def \w+", [src]) == []

    matches = grep_files(r"def \w+", [src], recursive=True)
    assert [(m[1], m[2]) for m in matches] == [(3, "def main():"), (1, "def helper():")]

    single = grep_files("import", [str(project / "src" / "app.py"), str(project / "missing")])
    assert len(single) == 1


@pytest.mark.asyncio
async def test_grep_tool(project):
    """Test the grep tool output and bad patterns."""
    grep = tools_by_name(create_search_tools())["grep"]
    app = str(project / "src" / "app.py")

    result = await grep.execute({"pattern": "main", "paths": [app]})
    assert result.output == f"Found 1 matches for pattern 'main':\n\n{app}:3: def main():\n"

    bad = await grep.execute({"pattern": "(", "paths": [app]})
    assert not bad.success


def test_build_tree(project):
    """Test the box-drawing tree."""
    tree = build_tree(str(project))
    assert tree == (
        "├── README.md\n"
        "└── src\n"
        "    ├── app.py\n"
        "    └── util.py\n"
    )
    assert build_tree(str(project), max_depth=1) == "├── README.md\n└── src\n"


@pytest.mark.asyncio
async def test_tree_tool(project):
    """Test that the tree tool prefixes the directory name."""
    tree = tools_by_name(create_search_tools())["tree"]

    result = await tree.execute({"path": str(project), "depth": 1})

    assert result.output == f"{project.name}\n├── README.md\n└── src\n"
