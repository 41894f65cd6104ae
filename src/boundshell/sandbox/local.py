"""
Local subprocess-based executor.

Runs allow-listed commands through the host shell inside the policy's base
directory, capturing output into bounded buffers while a hard timeout and
an optional streaming threshold race the process to produce the result.
"""

from __future__ import annotations

import asyncio
import codecs
import logging
import time
import traceback
from collections.abc import Coroutine
from pathlib import Path
from typing import Any

from boundshell._types import CommandRequest, CommandResult, StreamingOptions
from boundshell.constants import (
    ERROR_EXIT_CODE,
    ERROR_OUTPUT_TRUNCATED,
    OUTPUT_TRUNCATED,
    STREAMING_EXIT_CODE,
    TIMEOUT_EXIT_CODE,
)
from boundshell.environment import merge_environment
from boundshell.errors import ShellError, format_process_error, format_timeout_info
from boundshell.output import OutputBuffer
from boundshell.parser import (
    build_command_line,
    format_args_for_log,
    needs_tokenizing,
    parse_command_string,
)
from boundshell.sandbox._base import Sandbox
from boundshell.sandbox._process import CompletionLatch, terminate_process
from boundshell.security.policy import ExecutionPolicy

logger = logging.getLogger(__name__)

_READ_SIZE = 65_536


def exit_status(returncode: int) -> int:
    """Map a process return code to a shell exit status; death by signal N becomes 128 + N."""
    return 128 - returncode if returncode < 0 else returncode


class _Execution:
    """State of one running command, from spawn to its single result."""

    def __init__(
        self,
        sandbox: LocalSandbox,
        proc: asyncio.subprocess.Process,
        command_line: str,
        stdout: OutputBuffer,
        stderr: OutputBuffer,
        timeout: float,
        streaming: StreamingOptions | None,
        cwd: Path,
    ) -> None:
        self.sandbox = sandbox
        self.proc = proc
        self.command_line = command_line
        self.cwd = cwd
        self.stdout = stdout
        self.stderr = stderr
        self.timeout = timeout
        self.streaming = streaming
        self.started = time.monotonic()
        self.latch: CompletionLatch[CommandResult] = CompletionLatch()
        self._timers: list[asyncio.TimerHandle] = []

    def arm(self) -> None:
        loop = asyncio.get_running_loop()
        self._timers.append(loop.call_later(self.timeout, self.on_timeout))
        if self.streaming:
            delay = min(self.streaming.timeout, self.timeout)
            self._timers.append(loop.call_later(delay, self.on_streaming, "timeout"))

    def disarm(self) -> None:
        for timer in self._timers:
            timer.cancel()
        self._timers.clear()

    @property
    def elapsed(self) -> float:
        return time.monotonic() - self.started

    async def drive(self) -> None:
        """Drain both pipes, reap the process and settle with its exit code."""
        assert self.proc.stdout is not None and self.proc.stderr is not None
        await asyncio.gather(
            self._pump(self.proc.stdout, self.stdout),
            self._pump(self.proc.stderr, self.stderr),
        )
        returncode = await self.proc.wait()
        self.disarm()
        self.latch.settle("exit", lambda: self._exit_result(returncode))

    async def _pump(self, stream: asyncio.StreamReader, buffer: OutputBuffer) -> None:
        decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        while True:
            data = await stream.read(_READ_SIZE)
            if not data:
                break
            buffer.append(decoder.decode(data))
            self._check_streaming_size()
        buffer.append(decoder.decode(b"", final=True))

    def _check_streaming_size(self) -> None:
        if not self.streaming or self.latch.settled:
            return
        if self.stdout.size + self.stderr.size >= self.streaming.buffer_size_bytes:
            self.on_streaming("buffer")

    def on_timeout(self) -> None:
        if self.latch.settle("timeout", self._timeout_result):
            logger.warning("Command timed out after %ss: %s", self.timeout, self.command_line)
            self.sandbox._track(terminate_process(self.proc, self.sandbox.policy.grace_period))
        elif self.proc in self.sandbox.detached_processes:
            logger.warning(
                "Detached pid %s still running after %ss, terminating", self.proc.pid, self.timeout
            )
            self.sandbox._track(terminate_process(self.proc, self.sandbox.policy.grace_period))

    def on_streaming(self, trigger: str) -> None:
        assert self.streaming is not None
        kill = self.streaming.kill_on_timeout
        still_running = not kill and self.proc.returncode is None
        settled = self.latch.settle(
            f"streaming {trigger}",
            lambda: self._streaming_result(trigger, still_running),
        )
        if not settled:
            return

        logger.warning(
            "Returning streaming result (%s threshold) for pid %s, %s",
            trigger,
            self.proc.pid,
            "left running" if still_running else "terminating",
        )
        if kill:
            self.sandbox._track(terminate_process(self.proc, self.sandbox.policy.grace_period))
        elif still_running:
            self.sandbox._detach(self.proc)

    def _output(self) -> tuple[str, str]:
        return self.stdout.finalize(), self.stderr.finalize()

    @property
    def _truncated(self) -> bool:
        return self.stdout.truncated or self.stderr.truncated

    def _exit_result(self, returncode: int) -> CommandResult:
        stdout, stderr = self._output()
        return CommandResult(
            stdout=stdout,
            stderr=stderr,
            exit_code=exit_status(returncode),
            truncated=self._truncated,
            pid=self.proc.pid,
            cwd=str(self.cwd),
        )

    def _timeout_result(self) -> CommandResult:
        stdout, stderr = self._output()
        info = format_timeout_info(self.timeout, self.stdout.size, self.stderr.size)
        return CommandResult(
            stdout=stdout,
            stderr=stderr + info,
            exit_code=TIMEOUT_EXIT_CODE,
            error=f"Command timed out after {self.timeout:g}s",
            timed_out=True,
            truncated=self._truncated,
            pid=self.proc.pid,
            cwd=str(self.cwd),
        )

    def _streaming_result(self, trigger: str, still_running: bool) -> CommandResult:
        stdout, stderr = self._output()
        state = "still running" if still_running else "terminated"
        reason = (
            f"output reached {self.streaming.buffer_size_kb}KB"
            if self.streaming and trigger == "buffer"
            else f"no exit after {self.elapsed:.1f}s"
        )
        return CommandResult(
            stdout=stdout,
            stderr=stderr,
            exit_code=STREAMING_EXIT_CODE,
            error=f"Streaming result: {reason}; process {self.proc.pid} {state}",
            partial=True,
            still_running=still_running,
            truncated=self._truncated,
            pid=self.proc.pid,
            cwd=str(self.cwd),
        )


class LocalSandbox(Sandbox):
    """
    Subprocess-based executor for local development.

    Security features:
    - Allow-list of program names, ``cd`` rejected outright
    - Working directories confined to the policy's base directory
    - Hard timeout with SIGTERM then SIGKILL escalation
    - Per-stream output limits that keep the head and tail of long output

    Example:
        >>> policy = ExecutionPolicy(base_dir="./my_project")
        >>> sandbox = LocalSandbox(policy)
        >>> result = await sandbox.execute(CommandRequest("ls -la"))
        >>> print(result.stdout)
    """

    def __init__(self, policy: ExecutionPolicy) -> None:
        """
        Initialize a local sandbox.

        Args:
            policy: Execution policy to enforce.
        """
        self._policy = policy
        self._closed = False
        self._tasks: set[asyncio.Task[Any]] = set()
        self._detached: set[asyncio.subprocess.Process] = set()

    @property
    def policy(self) -> ExecutionPolicy:
        return self._policy

    @property
    def detached_processes(self) -> frozenset[asyncio.subprocess.Process]:
        """Processes left running by streaming early-returns that have not exited yet."""
        return frozenset(p for p in self._detached if p.returncode is None)

    async def execute(self, request: CommandRequest) -> CommandResult:
        """
        Execute a command in the sandbox.

        Args:
            request: The command to run.

        Returns:
            CommandResult; failures of any kind are reported, not raised.

        Raises:
            RuntimeError: If the sandbox has been closed.
        """
        if self._closed:
            raise RuntimeError("Sandbox has been closed")

        command, args = request.command, list(request.args)
        try:
            if needs_tokenizing(command, args):
                parsed = parse_command_string(command)
                command, args = parsed.command, parsed.args
                logger.debug(
                    'Auto-split: "%s" -> cmd: "%s", args: [%s]',
                    request.command,
                    command,
                    format_args_for_log(args),
                )

            self._policy.check_command(command)
            workdir = self._policy.resolve_directory(request.cwd)
            env = merge_environment(self._policy.environment, request.env)
            timeout = self._policy.effective_timeout(request.timeout)
            max_size = self._policy.effective_output_size(request.max_output_mb)

            return await self._spawn(command, args, workdir, env, timeout, max_size, request.streaming)

        except ShellError as e:
            logger.debug("Rejected %s: %s", request.command, e)
            return CommandResult.failure(str(e))

        except Exception as e:
            logger.exception("Unexpected error executing %s", request.command)
            stack = "".join(traceback.format_exception(type(e), e, e.__traceback__))
            return CommandResult.failure(
                f"Failed to execute: {e}\n"
                f"Command: {build_command_line(request.command, request.args)}\n"
                f"Directory: {request.cwd or self._policy.base_dir}\n"
                f"{stack}"
            )

    async def _spawn(
        self,
        command: str,
        args: list[str],
        cwd: Path,
        env: dict[str, str],
        timeout: float,
        max_size: int,
        streaming: StreamingOptions | None,
    ) -> CommandResult:
        command_line = build_command_line(command, args)
        stdout = OutputBuffer(max_size, OUTPUT_TRUNCATED)
        stderr = OutputBuffer(max_size, ERROR_OUTPUT_TRUNCATED)

        logger.debug("Spawning %r in %s (timeout %ss)", command_line, cwd, timeout)
        try:
            # Shell interpretation of args is bounded by the allow-list check
            proc = await asyncio.create_subprocess_shell(
                command_line,
                cwd=cwd,
                env=env,
                stdin=asyncio.subprocess.DEVNULL,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
                start_new_session=True,
            )
        except OSError as e:
            info = format_process_error(e, command, env)
            return CommandResult(
                stdout="",
                stderr=info,
                exit_code=ERROR_EXIT_CODE,
                error=info.removeprefix("Process error: "),
                cwd=str(cwd),
            )

        run = _Execution(self, proc, command_line, stdout, stderr, timeout, streaming, cwd)
        run.arm()
        self._track(run.drive())

        try:
            return await run.latch.wait()
        except asyncio.CancelledError:
            run.disarm()
            self._track(terminate_process(proc, self._policy.grace_period))
            raise

    def _track(self, coro: Coroutine[Any, Any, None]) -> None:
        """Run a lifecycle coroutine in the background, keeping a reference until done."""
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _detach(self, proc: asyncio.subprocess.Process) -> None:
        self._detached.add(proc)

        async def forget() -> None:
            await proc.wait()
            self._detached.discard(proc)

        self._track(forget())

    async def close(self) -> None:
        """
        Terminate detached processes and wait for background work.

        Safe to call multiple times.
        """
        if self._closed:
            return

        self._closed = True

        for proc in list(self._detached):
            self._track(terminate_process(proc, self._policy.grace_period))
        if self._tasks:
            await asyncio.gather(*self._tasks, return_exceptions=True)
        self._detached.clear()
