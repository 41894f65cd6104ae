"""Pytest configuration and fixtures for boundshell tests."""

from __future__ import annotations

import tempfile
from pathlib import Path
from typing import AsyncGenerator, Generator

import pytest
import pytest_asyncio

from boundshell import (
    ExecutionPolicy,
    LocalSandbox,
    ShellToolkit,
    StaticEnvironment,
    create_shell_tool,
)
from boundshell.constants import DEFAULT_ALLOWED_COMMANDS

# Extra programs the process-lifecycle tests rely on
TEST_COMMANDS = {"sh", "sleep", "yes", "pwd"}


@pytest.fixture
def temp_dir() -> Generator[Path, None, None]:
    """Create a temporary directory for tests."""
    with tempfile.TemporaryDirectory(prefix="boundshell_test_") as tmp:
        yield Path(tmp).resolve()


@pytest.fixture
def policy(temp_dir: Path) -> ExecutionPolicy:
    """Create a policy rooted at the temp directory, with a short grace period."""
    (temp_dir / "test.txt").write_text("hello world")
    (temp_dir / "sub").mkdir()
    (temp_dir / "sub" / "nested.txt").write_text("nested")

    return ExecutionPolicy.with_environment(
        temp_dir,
        StaticEnvironment(),
        allowed_commands=DEFAULT_ALLOWED_COMMANDS | TEST_COMMANDS,
        grace_period=0.5,
    )


@pytest_asyncio.fixture
async def sandbox(policy: ExecutionPolicy) -> AsyncGenerator[LocalSandbox, None]:
    """Create a LocalSandbox for testing."""
    sandbox = LocalSandbox(policy)
    try:
        yield sandbox
    finally:
        await sandbox.close()


@pytest_asyncio.fixture
async def toolkit(policy: ExecutionPolicy) -> AsyncGenerator[ShellToolkit, None]:
    """Create a ShellToolkit for testing."""
    toolkit = create_shell_tool(policy=policy)
    try:
        yield toolkit
    finally:
        await toolkit.close()
