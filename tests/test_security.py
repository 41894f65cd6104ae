"""Tests for ExecutionPolicy: command validation and directory confinement."""

from __future__ import annotations

from pathlib import Path

import pytest

from boundshell import ExecutionPolicy, StaticEnvironment
from boundshell.constants import DEFAULT_ALLOWED_COMMANDS
from boundshell.errors import (
    CdNotSupported,
    CommandNotAllowed,
    CommandNotSpecified,
    ConfigurationError,
    DirectoryNotFound,
    DirectoryOutsideBase,
    SecurityViolation,
)


class TestCommandValidation:
    """Tests for ExecutionPolicy.check_command."""

    def test_allows_every_listed_command(self, policy: ExecutionPolicy) -> None:
        """Every allow-listed program should validate and return its base name."""
        for command in policy.allowed_commands:
            assert policy.check_command(command) == command

    def test_blocks_unlisted_command(self, policy: ExecutionPolicy) -> None:
        """Unlisted programs should be rejected with the full sorted allow-list."""
        with pytest.raises(CommandNotAllowed) as exc_info:
            policy.check_command("curl")

        message = str(exc_info.value)
        assert "Command not allowed: curl" in message
        assert f"Allowed commands: {', '.join(sorted(policy.allowed_commands))}" in message
        assert exc_info.value.allowed == sorted(policy.allowed_commands)

    def test_strips_path_prefix(self, policy: ExecutionPolicy) -> None:
        """Absolute program paths should match on their base name."""
        assert policy.check_command("/bin/ls") == "ls"
        with pytest.raises(CommandNotAllowed):
            policy.check_command("/usr/bin/curl")

    def test_allow_list_is_case_sensitive(self, policy: ExecutionPolicy) -> None:
        """Only the cd check ignores case."""
        with pytest.raises(CommandNotAllowed):
            policy.check_command("LS")

    @pytest.mark.parametrize("command", ["cd", "CD", "Cd", "/usr/bin/cd", "./cd"])
    def test_rejects_cd(self, policy: ExecutionPolicy, command: str) -> None:
        """Directory changes should get their own error pointing at the cwd field."""
        with pytest.raises(CdNotSupported) as exc_info:
            policy.check_command(command)
        assert "cwd" in str(exc_info.value)
        assert str(policy.base_dir) in str(exc_info.value)

    def test_rejects_cd_even_when_allowed(self, policy: ExecutionPolicy) -> None:
        """cd is rejected regardless of allow-list membership."""
        policy.allow("cd")
        with pytest.raises(CdNotSupported):
            policy.check_command("cd")

    def test_rejects_empty_command(self, policy: ExecutionPolicy) -> None:
        """An empty program name should be reported as not specified."""
        with pytest.raises(CommandNotSpecified):
            policy.check_command("")

    def test_errors_are_security_violations(self, policy: ExecutionPolicy) -> None:
        """All command rejections should share a base class."""
        with pytest.raises(SecurityViolation) as exc_info:
            policy.check_command("nc")
        assert exc_info.value.command == "nc"


class TestAllowListAdministration:
    """Tests for allow/disallow/list_allowed."""

    def test_allow_and_disallow(self, policy: ExecutionPolicy) -> None:
        """Commands can be added and removed explicitly."""
        policy.allow("jq")
        assert policy.check_command("jq") == "jq"

        policy.disallow("jq")
        with pytest.raises(CommandNotAllowed):
            policy.check_command("jq")

    def test_disallow_unknown_is_noop(self, policy: ExecutionPolicy) -> None:
        """Removing a command that is not listed should not raise."""
        policy.disallow("not-a-command")

    def test_list_allowed_is_sorted(self, policy: ExecutionPolicy) -> None:
        """The listing should be deterministic."""
        assert policy.list_allowed() == sorted(policy.allowed_commands)

    def test_policies_do_not_share_state(self, temp_dir: Path) -> None:
        """Mutating one policy must not leak into another or the defaults."""
        first = ExecutionPolicy(base_dir=temp_dir)
        second = ExecutionPolicy(base_dir=temp_dir)
        first.allow("jq")
        assert "jq" not in second.allowed_commands
        assert "jq" not in DEFAULT_ALLOWED_COMMANDS


class TestDirectoryResolution:
    """Tests for ExecutionPolicy.resolve_directory."""

    def test_defaults_to_base(self, policy: ExecutionPolicy) -> None:
        """No requested directory means the base directory."""
        assert policy.resolve_directory(None) == policy.base_dir
        assert policy.resolve_directory("") == policy.base_dir

    def test_relative_subdirectory(self, policy: ExecutionPolicy) -> None:
        """Relative paths resolve against the base directory."""
        assert policy.resolve_directory("./sub") == policy.base_dir / "sub"

    def test_absolute_path_inside_base(self, policy: ExecutionPolicy) -> None:
        """Absolute paths are honoured when they stay inside the base."""
        target = policy.base_dir / "sub"
        assert policy.resolve_directory(str(target)) == target

    def test_dot_dot_back_into_base(self, policy: ExecutionPolicy) -> None:
        """Paths that leave and re-enter the base are fine once normalised."""
        assert policy.resolve_directory("sub/../sub") == policy.base_dir / "sub"

    def test_rejects_parent_escape(self, policy: ExecutionPolicy) -> None:
        """Escaping with .. should be rejected with base and resolved path."""
        with pytest.raises(DirectoryOutsideBase) as exc_info:
            policy.resolve_directory("../outside")

        message = str(exc_info.value)
        assert f"Base: {policy.base_dir}" in message
        assert f"Resolved: {policy.base_dir.parent / 'outside'}" in message

    def test_rejects_absolute_outside(self, policy: ExecutionPolicy) -> None:
        """Absolute paths outside the base should be rejected."""
        with pytest.raises(DirectoryOutsideBase):
            policy.resolve_directory("/")

    def test_sibling_with_shared_prefix_is_rejected(self, temp_dir: Path) -> None:
        """
        Containment is checked per path component, not by string prefix.

        A plain prefix comparison would admit ``work-evil`` under a base of
        ``work``; this policy deliberately rejects it.
        """
        base = temp_dir / "work"
        base.mkdir()
        (temp_dir / "work-evil").mkdir()
        policy = ExecutionPolicy(base_dir=base)

        with pytest.raises(DirectoryOutsideBase):
            policy.resolve_directory("../work-evil")
        with pytest.raises(DirectoryOutsideBase):
            policy.resolve_directory(str(temp_dir / "work-evil"))

    def test_rejects_symlink_escape(self, policy: ExecutionPolicy, temp_dir: Path) -> None:
        """A symlink inside the base pointing outside it should be rejected."""
        outside = temp_dir.parent
        (policy.base_dir / "link").symlink_to(outside, target_is_directory=True)
        with pytest.raises(DirectoryOutsideBase):
            policy.resolve_directory("link")

    def test_rejects_missing_directory(self, policy: ExecutionPolicy) -> None:
        """A path inside the base that does not exist should be reported."""
        with pytest.raises(DirectoryNotFound) as exc_info:
            policy.resolve_directory("missing")
        assert exc_info.value.resolved == str(policy.base_dir / "missing")
        assert "Specified: missing" in str(exc_info.value)

    def test_outside_check_runs_before_existence(self, policy: ExecutionPolicy) -> None:
        """A missing path outside the base is reported as outside."""
        with pytest.raises(DirectoryOutsideBase):
            policy.resolve_directory("../definitely/not/here")


class TestPolicyConfiguration:
    """Tests for policy construction and limits."""

    def test_base_dir_must_exist(self, temp_dir: Path) -> None:
        """A missing base directory is a configuration error."""
        with pytest.raises(ConfigurationError):
            ExecutionPolicy(base_dir=temp_dir / "missing")

    def test_base_dir_is_canonicalised(self, temp_dir: Path) -> None:
        """Relative segments in the base are resolved at construction."""
        (temp_dir / "a").mkdir()
        policy = ExecutionPolicy(base_dir=temp_dir / "a" / "..")
        assert policy.base_dir == temp_dir

    def test_with_environment_loads_provider(self, temp_dir: Path) -> None:
        """The provider's mapping becomes the baseline environment."""
        policy = ExecutionPolicy.with_environment(temp_dir, StaticEnvironment({"A": "1"}))
        assert policy.environment == {"A": "1"}

    def test_timeout_is_clamped(self, temp_dir: Path) -> None:
        """Requested timeouts never exceed the maximum; missing ones use the default."""
        policy = ExecutionPolicy(base_dir=temp_dir, default_timeout=5.0, max_timeout=10.0)
        assert policy.effective_timeout(None) == 5.0
        assert policy.effective_timeout(2.0) == 2.0
        assert policy.effective_timeout(60.0) == 10.0

    def test_output_size_is_clamped(self, temp_dir: Path) -> None:
        """Output limits are clamped to 0.001-100 MB and converted to bytes."""
        policy = ExecutionPolicy(base_dir=temp_dir)
        assert policy.effective_output_size(None) == 1024 * 1024
        assert policy.effective_output_size(2) == 2 * 1024 * 1024
        assert policy.effective_output_size(1000) == 100 * 1024 * 1024
        assert policy.effective_output_size(0.0000001) == int(0.001 * 1024 * 1024)
