"""
Size-bounded output accumulation.

Long output keeps its beginning and its most recent activity, with a single
marker where the middle was dropped.
"""

from __future__ import annotations

from collections import deque

from boundshell.constants import DEFAULT_TAIL_BUFFER_SIZE, OUTPUT_TRUNCATED


def _byte_size(text: str) -> int:
    return len(text.encode("utf-8", errors="replace"))


class OutputBuffer:
    """
    Accumulator for one output stream of one execution.

    Chunks are appended to the head until it reaches ``max_size`` minus the
    tail allowance. The first chunk that does not fit contributes at most
    half of the remaining head capacity, followed by the truncation marker.
    From then on every chunk goes to a queue that keeps only the most
    recent ``tail_size`` bytes; a chunk larger than that keeps only its
    last ``tail_size`` bytes.

    Example:
        >>> buf = OutputBuffer(max_size=100)
        >>> buf.append("hello ")
        >>> buf.append("world")
        >>> buf.finalize()
        'hello world'
    """

    def __init__(self, max_size: int, marker: str = OUTPUT_TRUNCATED) -> None:
        self.max_size = max_size
        self.marker = marker
        self.tail_size = min(DEFAULT_TAIL_BUFFER_SIZE, max_size // 10)
        self.size = 0
        self.truncated = False
        self._head: list[str] = []
        self._tail: deque[tuple[str, int]] = deque()
        self._tail_bytes = 0

    @property
    def head_limit(self) -> int:
        return self.max_size - self.tail_size

    def append(self, chunk: str) -> None:
        if not chunk:
            return
        chunk_size = _byte_size(chunk)

        if not self.truncated and self.size + chunk_size <= self.head_limit:
            self._head.append(chunk)
            self.size += chunk_size
            return

        if not self.truncated:
            remaining = self.head_limit - self.size
            if remaining > 0:
                # Cut on a byte boundary; a split character is dropped
                partial = chunk.encode("utf-8", errors="replace")[: remaining // 2].decode(
                    "utf-8", errors="ignore"
                )
                self._head.append(partial)
                self.size += _byte_size(partial)
            self._head.append(self.marker)
            self.truncated = True

        if chunk_size > self.tail_size:
            # Keep the newest bytes; a character split at the cut is dropped
            tail_bytes = chunk.encode("utf-8", errors="replace")[-self.tail_size :] if self.tail_size else b""
            chunk = tail_bytes.decode("utf-8", errors="ignore")
            chunk_size = _byte_size(chunk)
            if not chunk:
                return

        self._tail.append((chunk, chunk_size))
        self._tail_bytes += chunk_size
        while self._tail and self._tail_bytes > self.tail_size:
            _, dropped = self._tail.popleft()
            self._tail_bytes -= dropped

    def finalize(self) -> str:
        """Return the head, plus the preserved tail if the stream was truncated."""
        head = "".join(self._head)
        if self.truncated and self._tail:
            return head + "".join(chunk for chunk, _ in self._tail)
        return head
