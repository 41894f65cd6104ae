"""
Exception hierarchy and diagnostic message builders.

Exceptions are raised inside the engine and converted into failed
CommandResult values at the sandbox boundary; the formatters turn results
and unexpected errors into the text handed back to a tool caller.
"""

from __future__ import annotations

import errno
import os
import traceback
from collections.abc import Mapping, Sequence
from typing import Any

from boundshell._types import CommandResult


class ShellError(Exception):
    """Base class for all boundshell errors."""


class ConfigurationError(ShellError):
    """Raised when the execution policy cannot be built."""


class SecurityViolation(ShellError):
    """
    Raised when a command violates the execution policy.

    Attributes:
        command: The command that was blocked.
        reason: Why the command was blocked.
    """

    def __init__(self, reason: str, command: str = "") -> None:
        self.command = command
        self.reason = reason
        super().__init__(reason)


class CommandNotSpecified(SecurityViolation):
    def __init__(self) -> None:
        super().__init__("Command not specified")


class CommandNotAllowed(SecurityViolation):
    """The program's base name is not on the allow-list."""

    def __init__(self, command: str, allowed: Sequence[str]) -> None:
        self.allowed = list(allowed)
        super().__init__(
            f"Command not allowed: {command}\n"
            f"Allowed commands: {', '.join(self.allowed)}\n"
            "Check command spelling or request additional commands if needed",
            command,
        )


class CdNotSupported(SecurityViolation):
    """Directory changes have no effect between isolated invocations."""

    def __init__(self, command: str, base_dir: str) -> None:
        super().__init__(
            "'cd' command not supported. Each command runs in isolation.\n"
            "Use 'cwd' parameter instead:\n"
            'Example: {"command": "ls", "cwd": "./src"}\n'
            f"Base directory: {base_dir}",
            command,
        )


class DirectoryError(ShellError):
    """
    Raised when a requested working directory cannot be used.

    Attributes:
        requested: The directory as given by the caller.
        base_dir: The policy's base directory.
        resolved: The absolute path the request resolved to.
    """

    def __init__(self, message: str, requested: str, base_dir: str, resolved: str) -> None:
        self.requested = requested
        self.base_dir = base_dir
        self.resolved = resolved
        super().__init__(message)


class DirectoryOutsideBase(DirectoryError):
    def __init__(self, requested: str, base_dir: str, resolved: str) -> None:
        super().__init__(
            f"Directory {requested} outside allowed base\nBase: {base_dir}\nResolved: {resolved}",
            requested,
            base_dir,
            resolved,
        )


class DirectoryNotFound(DirectoryError):
    def __init__(self, requested: str, base_dir: str, resolved: str) -> None:
        super().__init__(
            f"Directory not found: {resolved}\nSpecified: {requested}\nBase: {base_dir}",
            requested,
            base_dir,
            resolved,
        )


def format_process_error(error: OSError, command: str, env: Mapping[str, str] | None = None) -> str:
    """Describe a spawn-level OS error, classified by errno."""
    info = f"Process error: {error.strerror or error}"
    if error.errno == errno.ENOENT:
        path = (env or {}).get("PATH") or os.environ.get("PATH", "")
        info += f"\nCommand not found: {command}\nPATH: {path}"
    elif error.errno in (errno.EACCES, errno.EPERM):
        info += f"\nPermission denied: {command}"
    elif error.errno is not None:
        info += f"\nError code: {errno.errorcode.get(error.errno, error.errno)}"
    return info


def format_timeout_info(timeout: float, stdout_size: int, stderr_size: int) -> str:
    return f"\nTimeout: {timeout:g}s, stdout: {stdout_size}B, stderr: {stderr_size}B"


def format_command_error(
    result: CommandResult,
    command: str,
    args: Sequence[str],
    cwd: str | None,
    base_dir: str,
    elapsed: float,
    max_output_mb: float | None,
) -> str:
    """
    Build the failure text returned to a tool caller.

    Args:
        result: The failed result.
        command: Command as requested.
        args: Arguments as requested.
        cwd: Working directory as requested, used when the result carries no
             resolved directory (None means the base directory).
        base_dir: The policy's base directory.
        elapsed: Wall-clock seconds spent on the request.
        max_output_mb: Output limit the request ran with.

    Returns:
        Human-readable message with remediation hints.
    """
    limit = max_output_mb or 1
    message = f"Command failed: {' '.join([command, *args])}\n"
    message += f"Exit code: {result.exit_code}\n"
    message += f"Directory: {result.cwd or cwd or base_dir}\n"

    if result.stderr:
        message += f"\nSTDERR:\n{result.stderr}\n"
    if result.stdout:
        message += f"\nSTDOUT:\n{result.stdout}\n"
    if result.error:
        message += f"\nERROR: {result.error}\n"

    message += f"\nExecution time: {elapsed * 1000:.0f}ms\n"
    message += f"Output limit: {limit:g}MB\n\nSolutions:\n"

    if result.timed_out:
        message += (
            "- Increase timeout parameter\n"
            "- Break into smaller operations\n"
            "- Use streaming to get early output\n"
        )
    elif result.truncated:
        message += (
            f"- Increase maxOutputSizeMB (current: {limit:g}MB)\n"
            "- Redirect output to file\n"
            "- Filter output\n"
        )
    else:
        message += (
            "- Check command syntax\n"
            "- Verify command exists in PATH\n"
            "- Check permissions\n"
        )

    return message


def format_truncation_hint(max_output_mb: float | None) -> str:
    limit = max_output_mb or 1
    return (
        f"\n[Output exceeded {limit:g}MB and was truncated. "
        "Increase maxOutputSizeMB, redirect output to a file or filter it]"
    )


def format_streaming_notice(result: CommandResult) -> str:
    """Describe a streaming early-return; this is a status report, not a failure."""
    notice = "\n\n=== STREAMING RESULT (partial output) ===\n"
    if result.error:
        notice += f"{result.error}\n"
    if result.stderr:
        notice += f"\nSTDERR:\n{result.stderr}\n"
    if result.still_running:
        notice += (
            f"\nProcess {result.pid} is still running in the background.\n"
            "- Re-run with a longer streamingTimeout to see more output\n"
        )
    else:
        notice += (
            f"\nProcess {result.pid} was terminated.\n"
            "- Set killOnStreamingTimeout=false to keep it running\n"
            "- Disable streaming to wait for completion\n"
        )
    return notice


def format_unexpected_error(
    error: BaseException,
    command: str,
    args: Sequence[str],
    cwd: str | None,
    base_dir: str,
    timeout: float | None,
    max_output_mb: float | None,
) -> dict[str, Any]:
    """Collect diagnostic details for an error nothing else handled."""
    return {
        "command": command,
        "args": list(args),
        "cwd": cwd or base_dir,
        "error": {
            "message": str(error),
            "name": type(error).__name__,
            "stack": "".join(traceback.format_exception(type(error), error, error.__traceback__)),
        },
        "executionInfo": {
            "timeout": timeout,
            "maxOutputSizeMB": max_output_mb or 1,
            "baseDirectory": base_dir,
        },
    }
