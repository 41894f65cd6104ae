"""
Main entry point: create_shell_tool factory and the tool handlers.

This is the API protocol layers (MCP, LangChain, PydanticAI) build on.
"""

from __future__ import annotations

import json
import logging
import time
from collections.abc import Iterable, Mapping
from dataclasses import dataclass
from pathlib import Path
from typing import TYPE_CHECKING, Any

from pydantic import ValidationError

from boundshell._types import CommandRequest, CommandResult, ToolResponse
from boundshell.discovery import describe_allowed_commands
from boundshell.errors import (
    format_command_error,
    format_streaming_notice,
    format_truncation_hint,
    format_unexpected_error,
)
from boundshell.sandbox.local import LocalSandbox
from boundshell.schema import ShellExecuteParams
from boundshell.security.policy import ExecutionPolicy

if TYPE_CHECKING:
    from boundshell.environment import BaselineEnvironmentProvider
    from boundshell.sandbox._base import Sandbox

logger = logging.getLogger(__name__)

EXECUTE_DESCRIPTION = (
    "Execute shell commands for development tasks. You can use either: "
    "1) command='git add .' (complete command string - recommended), or "
    "2) command='git' args=['add', '.']. **IMPORTANT: Directory navigation must be done "
    "using the 'cwd' parameter, NOT with 'cd' commands. The 'cd' command will have no "
    "effect as each command runs in isolation.** Supports package managers (npm, pnpm, "
    "yarn, bun), git, file operations, and dev tools (node, python, tsc). Runs in "
    "controlled environment with security restrictions. Set streaming=true to get "
    "partial output from long-running commands such as dev servers."
)

GET_ALLOWED_COMMANDS_DESCRIPTION = (
    "Get list of allowed shell commands. Shows available commands without executing "
    "them. Useful to check what commands can be run before using shell_execute. "
    "Note: 'cd' command is NOT supported - use 'cwd' parameter instead for directory "
    "navigation."
)


@dataclass
class ShellToolkit:
    """
    Toolkit returned by create_shell_tool(), containing the tool handlers.

    Attributes:
        sandbox: The underlying executor.
    """

    sandbox: Sandbox

    @property
    def policy(self) -> ExecutionPolicy:
        return self.sandbox.policy

    @property
    def base_dir(self) -> Path:
        return self.sandbox.policy.base_dir

    async def run(self, command: str, *args: str, **options: Any) -> CommandResult:
        """
        Execute a command directly, bypassing tool-response formatting.

        Example:
            >>> result = await toolkit.run("git", "status", cwd="./repo")
        """
        return await self.sandbox.execute(CommandRequest(command, args, **options))

    async def shell_execute(self, params: ShellExecuteParams | Mapping[str, Any]) -> ToolResponse:
        """
        Handle a shell_execute tool call.

        Args:
            params: Validated parameters, or the raw argument mapping.

        Returns:
            stdout on success; on failure a message with the command, directory,
            exit code, captured output and remediation hints.
        """
        if not isinstance(params, ShellExecuteParams):
            try:
                params = ShellExecuteParams.model_validate(params)
            except ValidationError as e:
                return ToolResponse(f"Invalid arguments for shell_execute:\n{e}", is_error=True)

        started = time.monotonic()
        try:
            result = await self.sandbox.execute(params.to_request())
        except Exception as e:
            logger.exception("Unexpected error during command execution")
            details = format_unexpected_error(
                e,
                params.command,
                params.args,
                params.cwd,
                str(self.base_dir),
                params.timeout,
                params.max_output_size_mb,
            )
            return ToolResponse(f"Unexpected error:\n{json.dumps(details, indent=2)}", is_error=True)

        if result.partial:
            return ToolResponse(result.stdout + format_streaming_notice(result))

        if not result.success:
            message = format_command_error(
                result,
                params.command,
                params.args,
                params.cwd,
                str(self.base_dir),
                time.monotonic() - started,
                params.max_output_size_mb,
            )
            return ToolResponse(message, is_error=True)

        if result.truncated:
            return ToolResponse(result.stdout + format_truncation_hint(params.max_output_size_mb))
        return ToolResponse(result.stdout)

    async def shell_get_allowed_commands(self) -> ToolResponse:
        """Handle a shell_get_allowed_commands tool call."""
        try:
            text = describe_allowed_commands(self.sandbox.list_allowed_commands(), self.policy.environment)
        except Exception as e:
            logger.exception("Failed to list allowed commands")
            return ToolResponse(f"Error: {e}", is_error=True)
        return ToolResponse(text)

    async def close(self) -> None:
        """Clean up sandbox resources."""
        await self.sandbox.close()

    async def __aenter__(self) -> ShellToolkit:
        return self

    async def __aexit__(self, *args: object) -> None:
        await self.close()


def create_shell_tool(
    base_dir: Path | str | None = None,
    *,
    policy: ExecutionPolicy | None = None,
    environment: BaselineEnvironmentProvider | None = None,
    allowed_commands: Iterable[str] | None = None,
    **policy_options: Any,
) -> ShellToolkit:
    """
    Create the shell tools for an agent or protocol server.

    Args:
        base_dir: Directory all commands are confined to.
                  Defaults to current working directory.
        policy: A ready-made policy; when given, the other arguments are ignored.
        environment: Baseline environment provider. Defaults to the current
                     process environment.
        allowed_commands: Replaces the default allow-list.
        **policy_options: Other ExecutionPolicy fields (max_timeout, grace_period, ...).

    Returns:
        ShellToolkit with shell_execute and shell_get_allowed_commands handlers.

    Raises:
        ConfigurationError: If the base directory does not exist.

    Example:
        >>> toolkit = create_shell_tool("./my_project")
        >>> response = await toolkit.shell_execute({"command": "ls -la"})
        >>> print(response.text)

    Example with a restricted allow-list:
        >>> toolkit = create_shell_tool(".", allowed_commands={"ls", "cat", "grep"})
    """
    if policy is None:
        from boundshell.environment import StaticEnvironment

        if allowed_commands is not None:
            policy_options["allowed_commands"] = set(allowed_commands)
        policy = ExecutionPolicy.with_environment(
            Path(base_dir) if base_dir else Path.cwd(),
            environment or StaticEnvironment(),
            **policy_options,
        )

    return ShellToolkit(sandbox=LocalSandbox(policy))
