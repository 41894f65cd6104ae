"""
Defaults, sentinel values and message templates shared across boundshell.
"""

from __future__ import annotations

# Commands permitted out of the box, grouped by purpose
DEFAULT_ALLOWED_COMMANDS: frozenset[str] = frozenset(
    {
        # Package managers
        "npm",
        "yarn",
        "pnpm",
        "bun",
        # Version control
        "git",
        # Filesystem
        "ls",
        "dir",
        "find",
        "mkdir",
        "rmdir",
        "cp",
        "mv",
        "rm",
        "cat",
        # Development tools
        "node",
        "python",
        "python3",
        "tsc",
        "eslint",
        "prettier",
        # Build tools
        "make",
        "cargo",
        "go",
        # Containers
        "docker",
        "docker-compose",
        # Utilities
        "echo",
        "touch",
        "grep",
    }
)

DEFAULT_MAX_TIMEOUT = 60.0
"""Hard upper bound on wall-clock time per command, in seconds."""

DEFAULT_GRACE_PERIOD = 1.0
"""Delay between SIGTERM and SIGKILL, in seconds."""

DEFAULT_MAX_OUTPUT_SIZE_MB = 1.0
MIN_OUTPUT_SIZE_MB = 0.001
MAX_OUTPUT_SIZE_MB = 100.0

DEFAULT_TAIL_BUFFER_SIZE = 10_240
"""Ceiling for the preserved tail of a truncated stream, in bytes."""

TIMEOUT_EXIT_CODE = 124  # GNU timeout compatible
STREAMING_EXIT_CODE = -1
ERROR_EXIT_CODE = 1

DEFAULT_STREAMING_TIMEOUT = 10.0
DEFAULT_STREAMING_BUFFER_SIZE_KB = 100

CD_COMMAND = "cd"


class ShellTools:
    """Tool names exposed to protocol layers."""

    EXECUTE = "shell_execute"
    GET_ALLOWED_COMMANDS = "shell_get_allowed_commands"


SERVER_NAME = "mcp-shell"

OUTPUT_TRUNCATED = "\n[Output truncated - showing first/last portions]\n[...middle omitted...]\n"
ERROR_OUTPUT_TRUNCATED = "\n[Error truncated - showing first/last portions]\n[...middle omitted...]\n"
