"""
MCP stdio server exposing the shell tools.

Usage:
    boundshell-mcp --base-dir ~/projects/app --verbose

Logs go to stderr; stdout carries the protocol.
"""

from __future__ import annotations

import argparse
import logging
import sys
from collections.abc import AsyncIterator, Callable, Sequence
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from pathlib import Path

from mcp.server.fastmcp import FastMCP
from mcp.server.fastmcp.exceptions import ToolError

from boundshell.api import (
    EXECUTE_DESCRIPTION,
    GET_ALLOWED_COMMANDS_DESCRIPTION,
    ShellToolkit,
    create_shell_tool,
)
from boundshell.constants import DEFAULT_MAX_TIMEOUT, SERVER_NAME, ShellTools
from boundshell.environment import LoginShellEnvironment
from boundshell.errors import ConfigurationError

logger = logging.getLogger(__name__)


def close_on_shutdown(toolkit: ShellToolkit) -> Callable[[FastMCP], AbstractAsyncContextManager[None]]:
    """Server lifespan that closes the toolkit, stopping processes left running by streaming."""

    @asynccontextmanager
    async def lifespan(server: FastMCP) -> AsyncIterator[None]:
        try:
            yield
        finally:
            logger.info("Shutting down, closing sandbox")
            await toolkit.close()

    return lifespan


def build_server(toolkit: ShellToolkit) -> FastMCP:
    """
    Register the shell tools on a new FastMCP server.

    Failed commands are raised as ToolError so the protocol response is
    flagged ``isError``; the message carries the full diagnostic text. The
    toolkit is closed when the server shuts down.
    """
    mcp = FastMCP(SERVER_NAME, lifespan=close_on_shutdown(toolkit))

    @mcp.tool(name=ShellTools.EXECUTE, description=EXECUTE_DESCRIPTION)
    async def shell_execute(
        command: str,
        args: list[str] | None = None,
        cwd: str | None = None,
        env: dict[str, str] | None = None,
        timeout: int | None = None,
        maxOutputSizeMB: float = 1.0,  # noqa: N803 - wire names
        streaming: bool = False,
        streamingTimeout: int = 10_000,  # noqa: N803
        streamingBufferSizeKB: int = 100,  # noqa: N803
        killOnStreamingTimeout: bool = True,  # noqa: N803
    ) -> str:
        response = await toolkit.shell_execute(
            {
                "command": command,
                "args": args or [],
                "cwd": cwd,
                "env": env,
                "timeout": timeout,
                "maxOutputSizeMB": maxOutputSizeMB,
                "streaming": streaming,
                "streamingTimeout": streamingTimeout,
                "streamingBufferSizeKB": streamingBufferSizeKB,
                "killOnStreamingTimeout": killOnStreamingTimeout,
            }
        )
        if response.is_error:
            raise ToolError(response.text)
        return response.text

    @mcp.tool(name=ShellTools.GET_ALLOWED_COMMANDS, description=GET_ALLOWED_COMMANDS_DESCRIPTION)
    async def shell_get_allowed_commands() -> str:
        response = await toolkit.shell_get_allowed_commands()
        if response.is_error:
            raise ToolError(response.text)
        return response.text

    return mcp


def _parse_args(argv: Sequence[str] | None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="boundshell-mcp",
        description="Shell MCP server: run allow-listed commands inside a base directory.",
    )
    parser.add_argument(
        "-d",
        "--base-dir",
        type=Path,
        default=Path.cwd(),
        help="Base directory for command execution (default: current directory)",
    )
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable verbose logging")
    parser.add_argument(
        "--allow",
        action="append",
        default=[],
        metavar="COMMAND",
        help="Add a command to the allow-list (repeatable)",
    )
    parser.add_argument(
        "--disallow",
        action="append",
        default=[],
        metavar="COMMAND",
        help="Remove a command from the allow-list (repeatable)",
    )
    parser.add_argument(
        "--max-timeout",
        type=float,
        default=DEFAULT_MAX_TIMEOUT,
        metavar="SECONDS",
        help=f"Upper bound for command timeouts (default: {DEFAULT_MAX_TIMEOUT:g})",
    )
    return parser.parse_args(argv)


def main(argv: Sequence[str] | None = None) -> int:
    options = _parse_args(argv)
    logging.basicConfig(
        stream=sys.stderr,
        level=logging.DEBUG if options.verbose else logging.INFO,
        format="[%(levelname)s] %(name)s: %(message)s",
    )

    try:
        toolkit = create_shell_tool(
            options.base_dir,
            environment=LoginShellEnvironment(),
            max_timeout=options.max_timeout,
            default_timeout=options.max_timeout,
        )
    except ConfigurationError as e:
        logger.error("%s", e)
        return 1

    for command in options.allow:
        toolkit.policy.allow(command)
    for command in options.disallow:
        toolkit.policy.disallow(command)

    server = build_server(toolkit)
    logger.info("Shell MCP Server started (Base directory: %s)", toolkit.base_dir)
    logger.info("Using user's shell environment with PATH and other variables")
    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
