"""
Execution policy: allow-list enforcement and working-directory confinement.

This is the security layer every request passes through before a process
is spawned.
"""

from __future__ import annotations

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import TYPE_CHECKING, Any

from boundshell.constants import (
    CD_COMMAND,
    DEFAULT_ALLOWED_COMMANDS,
    DEFAULT_GRACE_PERIOD,
    DEFAULT_MAX_OUTPUT_SIZE_MB,
    DEFAULT_MAX_TIMEOUT,
    MAX_OUTPUT_SIZE_MB,
    MIN_OUTPUT_SIZE_MB,
)
from boundshell.errors import (
    CdNotSupported,
    CommandNotAllowed,
    CommandNotSpecified,
    ConfigurationError,
    DirectoryNotFound,
    DirectoryOutsideBase,
)

if TYPE_CHECKING:
    from boundshell.environment import BaselineEnvironmentProvider

logger = logging.getLogger(__name__)


def command_base_name(command: str) -> str:
    """Strip any directory prefix from a program name."""
    return os.path.basename(command)


@dataclass
class ExecutionPolicy:
    """
    Process-wide execution policy.

    Holds the base directory all commands are confined to, the allow-list of
    program names and the baseline environment. It is built once at startup
    and read by every execution; ``allow`` and ``disallow`` are the only
    mutators and must not be called while commands are running.

    Attributes:
        base_dir: Root directory; canonicalised and required to exist.
        allowed_commands: Program base names permitted to run.
        environment: Baseline environment merged under per-call overrides.
        default_timeout: Seconds allowed when a request gives no timeout.
        max_timeout: Upper bound applied to every requested timeout.
        max_output_mb: Default per-stream output limit in megabytes.
        grace_period: Seconds between SIGTERM and SIGKILL.
    """

    base_dir: Path
    allowed_commands: set[str] = field(default_factory=lambda: set(DEFAULT_ALLOWED_COMMANDS))
    environment: dict[str, str] = field(default_factory=dict)
    default_timeout: float = DEFAULT_MAX_TIMEOUT
    max_timeout: float = DEFAULT_MAX_TIMEOUT
    max_output_mb: float = DEFAULT_MAX_OUTPUT_SIZE_MB
    grace_period: float = DEFAULT_GRACE_PERIOD

    def __post_init__(self) -> None:
        """Canonicalise and check the base directory."""
        base = Path(self.base_dir).expanduser()
        if not base.is_dir():
            raise ConfigurationError(f"Base directory {base} does not exist.")
        self.base_dir = base.resolve()
        self.allowed_commands = set(self.allowed_commands)
        if self.max_timeout <= 0:
            raise ConfigurationError("max_timeout must be positive")

    @classmethod
    def with_environment(
        cls,
        base_dir: Path | str,
        provider: BaselineEnvironmentProvider,
        **kwargs: Any,
    ) -> ExecutionPolicy:
        """
        Create a policy whose baseline environment comes from a provider.

        Args:
            base_dir: Root directory for command execution.
            provider: Source of the baseline environment (e.g. the user's login shell).
            **kwargs: Any other ExecutionPolicy field.
        """
        return cls(base_dir=Path(base_dir), environment=provider.load(), **kwargs)

    def check_command(self, command: str) -> str:
        """
        Validate a program name against the policy.

        Args:
            command: Program name, optionally with a path prefix.

        Returns:
            The program's base name.

        Raises:
            CommandNotSpecified: If the name is empty.
            CdNotSupported: If the program is ``cd``, whatever the allow-list says.
            CommandNotAllowed: If the base name is not on the allow-list.
        """
        if not command:
            raise CommandNotSpecified()

        base_name = command_base_name(command)
        if base_name.lower() == CD_COMMAND:
            raise CdNotSupported(command, str(self.base_dir))

        if base_name not in self.allowed_commands:
            raise CommandNotAllowed(command, self.list_allowed())

        return base_name

    def resolve_directory(self, cwd: str | None) -> Path:
        """
        Resolve a requested working directory inside the base directory.

        Relative paths are taken from the base directory; absolute paths are
        honoured but must still land inside it. Symlinks are followed before
        the containment check, and containment is decided per path component,
        so a sibling such as ``/work-other`` is not inside ``/work``.

        Raises:
            DirectoryOutsideBase: If the path resolves outside the base directory.
            DirectoryNotFound: If the resolved path does not exist.
        """
        if not cwd:
            return self.base_dir

        resolved = (self.base_dir / cwd).resolve()

        if resolved != self.base_dir and self.base_dir not in resolved.parents:
            raise DirectoryOutsideBase(cwd, str(self.base_dir), str(resolved))

        if not resolved.exists():
            raise DirectoryNotFound(cwd, str(self.base_dir), str(resolved))

        return resolved

    def effective_timeout(self, timeout: float | None) -> float:
        """Clamp a requested timeout (seconds) to the policy maximum."""
        if not timeout or timeout <= 0:
            timeout = self.default_timeout
        return min(timeout, self.max_timeout)

    def effective_output_size(self, size_mb: float | None) -> int:
        """Clamp a requested per-stream output limit and convert it to bytes."""
        size = size_mb or self.max_output_mb
        size = max(MIN_OUTPUT_SIZE_MB, min(MAX_OUTPUT_SIZE_MB, size))
        return int(size * 1024 * 1024)

    def list_allowed(self) -> list[str]:
        """Return the allow-list sorted for stable output."""
        return sorted(self.allowed_commands)

    def allow(self, command: str) -> None:
        """
        Add a program name to the allow-list.

        Args:
            command: Program base name (e.g. "ls").
        """
        self.allowed_commands.add(command)
        logger.debug("Allowed command %s", command)

    def disallow(self, command: str) -> None:
        """Remove a program name from the allow-list; unknown names are ignored."""
        self.allowed_commands.discard(command)
        logger.debug("Disallowed command %s", command)
