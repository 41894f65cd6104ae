"""
Tool-call input schema.

Field aliases follow the wire names protocol clients send (``maxOutputSizeMB``,
``streamingTimeout`` ...); snake_case names are accepted as well.
"""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field

from boundshell._types import CommandRequest, StreamingOptions
from boundshell.constants import (
    DEFAULT_MAX_OUTPUT_SIZE_MB,
    DEFAULT_STREAMING_BUFFER_SIZE_KB,
    DEFAULT_STREAMING_TIMEOUT,
)


class ShellExecuteParams(BaseModel):
    """Arguments of the shell_execute tool."""

    model_config = ConfigDict(populate_by_name=True, extra="forbid", frozen=True)

    command: str = Field(
        description=(
            "Shell command to execute. Can include full command string with args "
            "(e.g. 'git add .'). Note: 'cd' command NOT supported - use 'cwd' "
            "parameter for directory navigation"
        ),
    )
    args: list[str] = Field(
        default_factory=list,
        description="Command arguments array. Optional if command contains full command string",
    )
    cwd: str | None = Field(
        default=None,
        description="Working directory. IMPORTANT: Use this for directory navigation, NOT 'cd' command",
    )
    env: dict[str, str] | None = Field(default=None, description="Environment variables")
    timeout: int | None = Field(default=None, gt=0, description="Timeout in milliseconds")
    max_output_size_mb: float = Field(
        default=DEFAULT_MAX_OUTPUT_SIZE_MB,
        gt=0,
        alias="maxOutputSizeMB",
        description="Max output size in MB (default: 1MB)",
    )
    streaming: bool = Field(
        default=False,
        description="Return a partial result early for long-running commands",
    )
    streaming_timeout: int = Field(
        default=int(DEFAULT_STREAMING_TIMEOUT * 1000),
        gt=0,
        alias="streamingTimeout",
        description="Milliseconds before a streaming result is returned (default: 10000)",
    )
    streaming_buffer_size_kb: int = Field(
        default=DEFAULT_STREAMING_BUFFER_SIZE_KB,
        gt=0,
        alias="streamingBufferSizeKB",
        description="Combined output size in KB that triggers a streaming result (default: 100)",
    )
    kill_on_streaming_timeout: bool = Field(
        default=True,
        alias="killOnStreamingTimeout",
        description="Terminate the process when a streaming result is returned (default: true)",
    )

    def to_request(self) -> CommandRequest:
        """Convert to an engine request; milliseconds become seconds."""
        streaming = None
        if self.streaming:
            streaming = StreamingOptions(
                timeout=self.streaming_timeout / 1000,
                buffer_size_kb=self.streaming_buffer_size_kb,
                kill_on_timeout=self.kill_on_streaming_timeout,
            )
        return CommandRequest(
            command=self.command,
            args=tuple(self.args),
            cwd=self.cwd,
            env=self.env,
            timeout=self.timeout / 1000 if self.timeout else None,
            max_output_mb=self.max_output_size_mb,
            streaming=streaming,
        )
