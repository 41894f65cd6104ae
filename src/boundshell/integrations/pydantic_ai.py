"""
PydanticAI integration for boundshell.

Provides helpers to create PydanticAI-compatible tools.
"""

from __future__ import annotations

try:
    from pydantic_ai import Tool
except ImportError:
    raise ImportError(
        "PydanticAI integration requires 'pydantic-ai'. "
        "Install with `pip install boundshell[pydantic-ai]`"
    )

from boundshell.api import (
    EXECUTE_DESCRIPTION,
    GET_ALLOWED_COMMANDS_DESCRIPTION,
    ShellToolkit,
)
from boundshell.constants import ShellTools
from boundshell.schema import ShellExecuteParams


def create_pydantic_ai_tools(toolkit: ShellToolkit) -> list[Tool]:
    """
    Create PydanticAI tools for safe shell execution.

    Failed commands come back as text starting with "Error" so the model can
    read the remediation hints and retry.

    Example:
        >>> from pydantic_ai import Agent
        >>> toolkit = create_shell_tool("./project")
        >>> agent = Agent("openai:gpt-4o", tools=create_pydantic_ai_tools(toolkit))
    """

    async def shell_execute(
        command: str,
        args: list[str] | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        max_output_size_mb: float = 1.0,
        streaming: bool = False,
        streaming_timeout: int = 10_000,
        streaming_buffer_size_kb: int = 100,
        kill_on_streaming_timeout: bool = True,
    ) -> str:
        params = ShellExecuteParams(
            command=command,
            args=args or [],
            cwd=cwd,
            env=env,
            timeout=timeout,
            max_output_size_mb=max_output_size_mb,
            streaming=streaming,
            streaming_timeout=streaming_timeout,
            streaming_buffer_size_kb=streaming_buffer_size_kb,
            kill_on_streaming_timeout=kill_on_streaming_timeout,
        )
        response = await toolkit.shell_execute(params)
        if response.is_error:
            return f"Error:\n{response.text}"
        return response.text

    async def shell_get_allowed_commands() -> str:
        return (await toolkit.shell_get_allowed_commands()).text

    return [
        Tool(
            shell_execute,
            takes_ctx=False,
            name=ShellTools.EXECUTE,
            description=EXECUTE_DESCRIPTION,
        ),
        Tool(
            shell_get_allowed_commands,
            takes_ctx=False,
            name=ShellTools.GET_ALLOWED_COMMANDS,
            description=GET_ALLOWED_COMMANDS_DESCRIPTION,
        ),
    ]
