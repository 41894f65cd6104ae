"""
Process lifecycle helpers: exactly-once completion and termination escalation.
"""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from collections.abc import Callable
from typing import Generic, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")


class CompletionLatch(Generic[T]):
    """
    Single terminal transition shared by competing completion paths.

    Process exit, spawn failure, the hard timeout and the streaming threshold
    all call ``settle``; only the first one produces the value, every later
    call is a silent no-op. The factory is evaluated only by the winner, so
    the result reflects buffer contents at the moment of settling.
    """

    def __init__(self) -> None:
        self._future: asyncio.Future[T] = asyncio.get_running_loop().create_future()
        self.reason: str | None = None

    @property
    def settled(self) -> bool:
        return self._future.done()

    def settle(self, reason: str, factory: Callable[[], T]) -> bool:
        """Produce the result via ``factory`` unless already settled. Returns True if this call won."""
        if self._future.done():
            logger.debug("Ignoring %s, already settled by %s", reason, self.reason)
            return False
        self.reason = reason
        self._future.set_result(factory())
        return True

    async def wait(self) -> T:
        # Shield so a cancelled caller never leaves the latch cancelled
        return await asyncio.shield(self._future)


def _send(proc: asyncio.subprocess.Process, sig: signal.Signals) -> None:
    """Signal the whole process group, or just the process where groups are unavailable."""
    try:
        if hasattr(os, "killpg"):
            # The group outlives the shell when it forked children
            os.killpg(proc.pid, sig)
        elif proc.returncode is None:
            proc.send_signal(sig)
    except (ProcessLookupError, PermissionError):
        pass


async def terminate_process(proc: asyncio.subprocess.Process, grace_period: float) -> None:
    """
    Stop a process in two stages.

    Sends SIGTERM, waits up to ``grace_period`` seconds for the process to
    exit and sends SIGKILL if it has not. Returns once the process is reaped.
    """
    logger.debug("Sending SIGTERM to pid %s", proc.pid)
    _send(proc, signal.SIGTERM)
    try:
        await asyncio.wait_for(proc.wait(), timeout=grace_period)
        return
    except asyncio.TimeoutError:
        pass

    logger.debug("pid %s still alive after %ss, sending SIGKILL", proc.pid, grace_period)
    _send(proc, getattr(signal, "SIGKILL", signal.SIGTERM))
    await proc.wait()
