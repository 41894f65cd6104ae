"""Security module for boundshell."""

from boundshell.security.policy import ExecutionPolicy, command_base_name

__all__ = ["ExecutionPolicy", "command_base_name"]
