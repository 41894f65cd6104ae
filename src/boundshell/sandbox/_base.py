"""
Abstract base class for command executors.

Executors take a CommandRequest through the execution policy and return
exactly one CommandResult; policy violations and process failures are
reported in the result, never raised.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from boundshell._types import CommandRequest, CommandResult
    from boundshell.security.policy import ExecutionPolicy


class Sandbox(ABC):
    """
    Abstract base for all executor implementations.

    Provides a consistent interface for running commands under an
    ExecutionPolicy.
    """

    @property
    @abstractmethod
    def policy(self) -> ExecutionPolicy:
        """The policy every request is checked against."""
        ...

    @abstractmethod
    async def execute(self, request: CommandRequest) -> CommandResult:
        """
        Execute a command and return the result.

        Args:
            request: The command, its arguments and execution limits.

        Returns:
            CommandResult with stdout, stderr and exit_code. Validation
            failures, spawn errors, timeouts and streaming early-returns are
            all reported here rather than raised.
        """
        ...

    @abstractmethod
    async def close(self) -> None:
        """
        Clean up executor resources.

        Terminates processes left running by streaming early-returns.
        Idempotent - safe to call multiple times.
        """
        ...

    def list_allowed_commands(self) -> list[str]:
        """Return the allowed program names, sorted."""
        return self.policy.list_allowed()

    async def __aenter__(self) -> Sandbox:
        """Enter async context manager."""
        return self

    async def __aexit__(self, *args: object) -> None:
        """Exit async context manager, cleaning up resources."""
        await self.close()
