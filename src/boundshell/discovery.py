"""
Allowed-command discovery for tool descriptions.

Groups the policy's allow-list by purpose and checks which commands can
actually be found on the baseline PATH, so a caller learns what is usable
before trying it.
"""

from __future__ import annotations

import shutil
from collections.abc import Iterable, Mapping

# Known commands grouped by purpose
COMMAND_CATEGORIES: dict[str, tuple[str, ...]] = {
    "Package managers": ("npm", "yarn", "pnpm", "bun", "pip", "uv"),
    "Version control": ("git",),
    "File operations": ("ls", "dir", "find", "mkdir", "rmdir", "cp", "mv", "rm", "cat", "touch"),
    "Development tools": ("node", "python", "python3", "tsc", "eslint", "prettier"),
    "Build tools": ("make", "cargo", "go"),
    "Containers": ("docker", "docker-compose"),
    "Utilities": ("echo", "grep"),
}

OTHER_CATEGORY = "Other"


def categorize_commands(commands: Iterable[str]) -> dict[str, list[str]]:
    """
    Group command names by purpose.

    Args:
        commands: Allowed command names.

    Returns:
        Mapping of category to sorted names, in COMMAND_CATEGORIES order with
        uncategorised names under "Other". Empty categories are omitted.
    """
    remaining = set(commands)
    groups: dict[str, list[str]] = {}
    for category, known in COMMAND_CATEGORIES.items():
        members = sorted(remaining.intersection(known))
        if members:
            groups[category] = members
            remaining.difference_update(members)
    if remaining:
        groups[OTHER_CATEGORY] = sorted(remaining)
    return groups


def find_missing(commands: Iterable[str], env: Mapping[str, str] | None = None) -> set[str]:
    """Return the commands that cannot be found on the environment's PATH."""
    path = (env or {}).get("PATH")
    return {name for name in commands if shutil.which(name, path=path) is None}


def describe_allowed_commands(commands: Iterable[str], env: Mapping[str, str] | None = None) -> str:
    """
    Render the allowed commands for a tool caller.

    Commands missing from PATH are still allowed but marked, since running
    them will fail with "not found".
    """
    commands = sorted(commands)
    missing = find_missing(commands, env)

    lines = [f"Available commands: {', '.join(commands)}", ""]
    for category, members in categorize_commands(commands).items():
        rendered = [f"{name} (not found on PATH)" if name in missing else name for name in members]
        lines.append(f"{category}: {', '.join(rendered)}")

    lines.append("")
    lines.append("Note: 'cd' command not supported - use 'cwd' parameter for directory navigation")
    lines.append("Each command runs independently without state persistence")
    return "\n".join(lines)
