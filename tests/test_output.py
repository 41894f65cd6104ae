"""Tests for OutputBuffer head/tail truncation."""

from __future__ import annotations

from boundshell.constants import DEFAULT_TAIL_BUFFER_SIZE, ERROR_OUTPUT_TRUNCATED, OUTPUT_TRUNCATED
from boundshell.output import OutputBuffer


class TestOutputBufferWithinLimit:
    """Output that fits is returned untouched."""

    def test_concatenates_chunks(self) -> None:
        """finalize() should equal the concatenation of all chunks."""
        buf = OutputBuffer(max_size=1000)
        chunks = ["first line\n", "second line\n", "third\n"]
        for chunk in chunks:
            buf.append(chunk)

        assert buf.finalize() == "".join(chunks)
        assert not buf.truncated
        assert buf.size == len("".join(chunks))

    def test_counts_utf8_bytes(self) -> None:
        """Size is measured in UTF-8 bytes, not characters."""
        buf = OutputBuffer(max_size=1000)
        buf.append("héllo ✓")
        assert buf.size == len("héllo ✓".encode())

    def test_empty_chunks_are_ignored(self) -> None:
        """Empty chunks change nothing."""
        buf = OutputBuffer(max_size=1000)
        buf.append("")
        assert buf.finalize() == ""
        assert buf.size == 0

    def test_fills_exactly_to_head_limit(self) -> None:
        """A chunk that lands exactly on the head limit is not truncated."""
        buf = OutputBuffer(max_size=1000)
        buf.append("x" * buf.head_limit)
        assert not buf.truncated
        assert buf.finalize() == "x" * 900


class TestOutputBufferTruncation:
    """Output that overflows keeps head, one marker and the tail."""

    def test_tail_allowance(self) -> None:
        """Tail allowance is the smaller of the fixed ceiling and a tenth of the maximum."""
        assert OutputBuffer(max_size=1000).tail_size == 100
        assert OutputBuffer(max_size=10 * 1024 * 1024).tail_size == DEFAULT_TAIL_BUFFER_SIZE

    def test_keeps_head_marker_and_tail(self) -> None:
        """The result should be head, half of the remaining room, marker, recent chunks."""
        buf = OutputBuffer(max_size=1000)
        chunks = [f"{i:09d}\n" for i in range(20)]

        buf.append("a" * 895)
        for chunk in chunks:
            buf.append(chunk)

        # 5 bytes of room remained, so 2 bytes of the first overflowing chunk fit
        expected = "a" * 895 + chunks[0][:2] + OUTPUT_TRUNCATED + "".join(chunks[10:])
        assert buf.finalize() == expected
        assert buf.truncated

    def test_marker_appears_once(self) -> None:
        """Repeated overflow must not repeat the marker."""
        buf = OutputBuffer(max_size=500)
        for _ in range(200):
            buf.append("line of output\n")

        assert buf.finalize().count(OUTPUT_TRUNCATED) == 1

    def test_tail_holds_most_recent_output(self) -> None:
        """The final chunk appended should end the finalized output."""
        buf = OutputBuffer(max_size=500)
        for i in range(200):
            buf.append(f"line {i}\n")

        assert buf.finalize().endswith("line 199\n")
        assert "line 0\n" in buf.finalize()

    def test_size_and_total_bounded(self) -> None:
        """Reported size stays under the maximum; output under maximum plus tail."""
        buf = OutputBuffer(max_size=2000)
        for i in range(1000):
            buf.append(f"chunk number {i} ✓\n")

        assert buf.size <= buf.max_size
        assert len(buf.finalize().encode()) <= buf.max_size + buf.tail_size

    def test_truncated_never_clears(self) -> None:
        """Small chunks after truncation go to the tail, not back to the head."""
        buf = OutputBuffer(max_size=1000)
        buf.append("x" * 2000)
        assert buf.truncated
        buf.append("y")
        assert buf.truncated
        assert buf.finalize().endswith(OUTPUT_TRUNCATED + "y")

    def test_oversized_chunk_keeps_its_end_in_tail(self) -> None:
        """A single chunk larger than the tail allowance contributes its last bytes."""
        buf = OutputBuffer(max_size=1000)
        buf.append("z" * 4997 + "END")

        result = buf.finalize()
        assert result == "z" * 450 + OUTPUT_TRUNCATED + "z" * 97 + "END"
        assert buf.size == 450

    def test_large_reads_keep_latest_output(self) -> None:
        """Pipe-sized chunks past the limit still leave the final bytes in the tail."""
        buf = OutputBuffer(max_size=1024 * 1024)
        for _ in range(40):
            buf.append("a" * 65_536)
        buf.append("a" * 65_536 + "END")

        result = buf.finalize()
        assert result.endswith("END")
        tail = result.split(OUTPUT_TRUNCATED)[1]
        assert len(tail.encode()) == buf.tail_size

    def test_oversized_chunk_replaces_older_tail(self) -> None:
        """An oversized chunk evicts everything queued before it."""
        buf = OutputBuffer(max_size=1000)
        buf.append("x" * 2000)
        buf.append("old")
        buf.append("n" * 500)
        assert buf.finalize().endswith(OUTPUT_TRUNCATED + "n" * 100)

    def test_tail_cut_drops_partial_character(self) -> None:
        """Cutting an oversized chunk inside a multi-byte character drops that character."""
        buf = OutputBuffer(max_size=100)
        buf.append("x" * 200)
        # 201 bytes: the last 10 start on the second byte of an "é"
        buf.append("é" * 100 + "b")

        assert buf.finalize().endswith(OUTPUT_TRUNCATED + "éééé" + "b")
        assert "�" not in buf.finalize()

    def test_multibyte_cut_drops_partial_character(self) -> None:
        """Cutting inside a multi-byte character must not emit a broken one."""
        buf = OutputBuffer(max_size=100)
        buf.append("a" * 87)
        buf.append("é" * 50)

        head = buf.finalize().split(OUTPUT_TRUNCATED)[0]
        # 3 bytes of room, half is 1 byte: not enough for "é"
        assert head == "a" * 87
        assert "�" not in buf.finalize()

    def test_custom_marker(self) -> None:
        """stderr uses its own marker text."""
        buf = OutputBuffer(max_size=100, marker=ERROR_OUTPUT_TRUNCATED)
        buf.append("e" * 500)
        assert ERROR_OUTPUT_TRUNCATED in buf.finalize()
