"""
Core type definitions for boundshell.

Uses frozen dataclasses for requests and results so they can be shared
freely between the tasks that race to finish an execution.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from boundshell.constants import (
    DEFAULT_STREAMING_BUFFER_SIZE_KB,
    DEFAULT_STREAMING_TIMEOUT,
    ERROR_EXIT_CODE,
)


@dataclass(frozen=True, slots=True)
class StreamingOptions:
    """
    Early-return settings for long-running commands.

    Attributes:
        timeout: Seconds to wait before returning a partial result.
        buffer_size_kb: Combined stdout/stderr size that triggers an early return.
        kill_on_timeout: Terminate the process on early return instead of leaving it
            running. A process left running is still stopped when the hard timeout
            expires or the sandbox is closed, whichever comes first.
    """

    timeout: float = DEFAULT_STREAMING_TIMEOUT
    buffer_size_kb: int = DEFAULT_STREAMING_BUFFER_SIZE_KB
    kill_on_timeout: bool = True

    @property
    def buffer_size_bytes(self) -> int:
        return self.buffer_size_kb * 1024


@dataclass(frozen=True, slots=True)
class CommandRequest:
    """
    A single command to execute.

    ``command`` is either a program name, or a full command line when ``args``
    is empty (it is then split by the tokenizer). Timeouts are in seconds.
    """

    command: str
    args: tuple[str, ...] = ()
    cwd: str | None = None
    env: Mapping[str, str] | None = None
    timeout: float | None = None
    max_output_mb: float | None = None
    streaming: StreamingOptions | None = None

    def __post_init__(self) -> None:
        # Accept any sequence for args but store an immutable tuple
        object.__setattr__(self, "args", tuple(self.args))


@dataclass(frozen=True, slots=True)
class CommandResult:
    """Immutable result from command execution."""

    stdout: str
    stderr: str
    exit_code: int
    error: str | None = None
    timed_out: bool = False
    partial: bool = False
    still_running: bool | None = None
    truncated: bool = False
    pid: int | None = field(default=None, compare=False)
    cwd: str | None = field(default=None, compare=False)

    @property
    def success(self) -> bool:
        """Return True if command exited with code 0."""
        return self.exit_code == 0

    @classmethod
    def failure(cls, message: str) -> CommandResult:
        """Build the standard result for a request that never reached a process."""
        return cls(stdout="", stderr=message, exit_code=ERROR_EXIT_CODE, error=message)

    def raise_for_status(self) -> None:
        """Raise CommandError if the command did not succeed."""
        if not self.success:
            raise CommandError(
                f"Command failed with exit code {self.exit_code}: "
                f"{self.error or self.stderr or self.stdout}",
                self,
            )


class CommandError(Exception):
    """Raised by CommandResult.raise_for_status for unsuccessful results."""

    def __init__(self, message: str, result: CommandResult) -> None:
        self.result = result
        super().__init__(message)


@dataclass(frozen=True, slots=True)
class ToolResponse:
    """Text payload handed back to a protocol layer."""

    text: str
    is_error: bool = False
