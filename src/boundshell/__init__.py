"""
Top-level facade for boundshell.

Bounded shell-command execution: allow-listed programs, confined working
directories, size-limited output, hard timeouts and streaming early-return.
"""

from boundshell._types import (
    CommandError,
    CommandRequest,
    CommandResult,
    StreamingOptions,
    ToolResponse,
)
from boundshell.api import ShellToolkit, create_shell_tool
from boundshell.constants import STREAMING_EXIT_CODE, TIMEOUT_EXIT_CODE
from boundshell.environment import (
    BaselineEnvironmentProvider,
    LoginShellEnvironment,
    StaticEnvironment,
    merge_environment,
)
from boundshell.errors import (
    CdNotSupported,
    CommandNotAllowed,
    CommandNotSpecified,
    ConfigurationError,
    DirectoryNotFound,
    DirectoryOutsideBase,
    SecurityViolation,
    ShellError,
)
from boundshell.output import OutputBuffer
from boundshell.parser import ParsedCommand, parse_command_string
from boundshell.sandbox import LocalSandbox, Sandbox
from boundshell.schema import ShellExecuteParams
from boundshell.security import ExecutionPolicy

__version__ = "0.1.0"

# Exports
__all__ = [
    "create_shell_tool",
    "ShellToolkit",
    "Sandbox",
    "LocalSandbox",
    "ExecutionPolicy",
    "CommandRequest",
    "CommandResult",
    "CommandError",
    "StreamingOptions",
    "ShellExecuteParams",
    "ToolResponse",
    "OutputBuffer",
    "ParsedCommand",
    "parse_command_string",
    "BaselineEnvironmentProvider",
    "LoginShellEnvironment",
    "StaticEnvironment",
    "merge_environment",
    "ShellError",
    "ConfigurationError",
    "SecurityViolation",
    "CommandNotSpecified",
    "CommandNotAllowed",
    "CdNotSupported",
    "DirectoryOutsideBase",
    "DirectoryNotFound",
    "TIMEOUT_EXIT_CODE",
    "STREAMING_EXIT_CODE",
]
