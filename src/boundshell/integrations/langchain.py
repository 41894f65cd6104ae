"""LangChain integration for boundshell."""

from __future__ import annotations

import asyncio
from typing import TYPE_CHECKING, Any

from boundshell.api import EXECUTE_DESCRIPTION, GET_ALLOWED_COMMANDS_DESCRIPTION
from boundshell.constants import ShellTools
from boundshell.schema import ShellExecuteParams

if TYPE_CHECKING:
    from boundshell.api import ShellToolkit

HAS_LANGCHAIN = False
_StructuredTool: Any = None

try:
    import langchain_core.tools

    _StructuredTool = langchain_core.tools.StructuredTool
    HAS_LANGCHAIN = True
except ImportError:
    pass


def create_langchain_tools(toolkit: ShellToolkit) -> dict[str, Any]:
    """
    Create LangChain tools from a ShellToolkit.

    Args:
        toolkit: The toolkit to wrap.

    Returns:
        Dictionary of LangChain StructuredTool instances keyed by tool name.

    Raises:
        ImportError: If langchain-core is not installed.

    Example:
        >>> toolkit = create_shell_tool(".")
        >>> tools = create_langchain_tools(toolkit)
        >>> agent = create_react_agent(llm, list(tools.values()))
    """
    if not HAS_LANGCHAIN:
        raise ImportError(
            "LangChain integration requires langchain-core. "
            "Install with: pip install boundshell[langchain]"
        )

    async def arun_shell(**kwargs: Any) -> str:
        response = await toolkit.shell_execute(ShellExecuteParams.model_validate(kwargs))
        return f"Error: {response.text}" if response.is_error else response.text

    def run_shell(**kwargs: Any) -> str:
        return asyncio.run(arun_shell(**kwargs))

    async def alist_commands() -> str:
        return (await toolkit.shell_get_allowed_commands()).text

    def list_commands() -> str:
        return asyncio.run(alist_commands())

    execute_tool = _StructuredTool.from_function(
        func=run_shell,
        coroutine=arun_shell,
        name=ShellTools.EXECUTE,
        description=EXECUTE_DESCRIPTION,
        args_schema=ShellExecuteParams,
    )

    allowed_tool = _StructuredTool.from_function(
        func=list_commands,
        coroutine=alist_commands,
        name=ShellTools.GET_ALLOWED_COMMANDS,
        description=GET_ALLOWED_COMMANDS_DESCRIPTION,
    )

    return {
        ShellTools.EXECUTE: execute_tool,
        ShellTools.GET_ALLOWED_COMMANDS: allowed_tool,
    }
