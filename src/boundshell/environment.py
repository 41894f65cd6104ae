"""
Baseline environment capture and per-call environment composition.
"""

from __future__ import annotations

import logging
import os
import re
import subprocess
from collections.abc import Mapping
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)

_ENV_LINE = re.compile(r"^([^=]+)=(.*)$")

# Profile files sourced per shell before dumping the environment
_PROFILE_SCRIPTS: dict[str, str] = {
    "zsh": "source ~/.zshrc 2>/dev/null || true; source ~/.zshenv 2>/dev/null || true; env",
    "bash": "source ~/.bashrc 2>/dev/null || true; source ~/.bash_profile 2>/dev/null || true; env",
}


class BaselineEnvironmentProvider(Protocol):
    """Source of the environment every command starts from."""

    def load(self) -> dict[str, str]: ...


class StaticEnvironment:
    """Provider returning a fixed mapping."""

    def __init__(self, env: Mapping[str, str] | None = None) -> None:
        self._env = dict(os.environ if env is None else env)

    def load(self) -> dict[str, str]:
        return dict(self._env)


class LoginShellEnvironment:
    """
    Capture the environment produced by the user's shell profile.

    Runs the user's shell once, sources its profile files and parses the
    output of ``env``. This picks up PATH entries added by version managers
    and similar tooling that a bare daemon environment would miss.

    Example:
        >>> env = LoginShellEnvironment().load()
        >>> "PATH" in env
        True
    """

    def __init__(self, shell: str | None = None, *, timeout: float = 10.0) -> None:
        """
        Args:
            shell: Shell executable; defaults to ``$SHELL`` or ``/bin/bash``.
            timeout: Seconds to wait for the shell to finish sourcing profiles.
        """
        self.shell = shell or os.environ.get("SHELL") or "/bin/bash"
        self.timeout = timeout

    def load(self) -> dict[str, str]:
        """Return the captured environment, or ``os.environ`` if capture fails."""
        shell_name = Path(self.shell).name
        logger.info("Detected shell: %s", shell_name)

        script = _PROFILE_SCRIPTS.get(shell_name, "env")
        try:
            completed = subprocess.run(
                [self.shell, "-c", script],
                capture_output=True,
                text=True,
                timeout=self.timeout,
                check=True,
            )
        except (OSError, subprocess.SubprocessError) as e:
            logger.error("Failed to load shell environment: %s", e)
            return dict(os.environ)

        env = parse_env_output(completed.stdout)
        logger.info("Loaded %d environment variables from shell profile", len(env))
        if "PATH" in env:
            logger.debug("PATH=%s", env["PATH"])
        return env


def parse_env_output(output: str) -> dict[str, str]:
    """Parse ``NAME=value`` lines as printed by ``env``."""
    env: dict[str, str] = {}
    for line in output.splitlines():
        match = _ENV_LINE.match(line)
        if match:
            name, value = match.groups()
            env[name] = value
    return env


def merge_environment(
    base: Mapping[str, str],
    overrides: Mapping[str, str] | None = None,
) -> dict[str, str]:
    """Overlay per-call variables on the baseline; overrides win."""
    return {**base, **(overrides or {})}
