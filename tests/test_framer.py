import unittest
from typing import List


class _ChunkReader:
    def __init__(self, chunks: List[bytes], error: Exception = None) -> None:
        self._chunks = list(chunks)
        self._error = error
        self.requested: List[int] = []

    async def read(self, n: int = -1) -> bytes:
        self.requested.append(n)
        if self._chunks:
            chunk = self._chunks.pop(0)
            assert len(chunk) <= n
            return chunk
        if self._error is not None:
            raise self._error
        return b""


class TestLineFramer(unittest.TestCase):
    def _feed_all(self, chunks: List[bytes], capacity: int = 1000) -> List[str]:
        from mcrelay.kernel.framer import LineFramer

        f = LineFramer(capacity)
        out: List[str] = []
        for chunk in chunks:
            out.extend(f.feed(chunk))
        return out

    def test_chunking_does_not_change_lines(self) -> None:
        whole = self._feed_all([b"AB\nCD\n"])
        split = self._feed_all([b"A", b"B\n", b"C", b"D\n"])
        self.assertEqual(whole, ["AB", "CD"])
        self.assertEqual(split, whole)

    def test_every_split_point_gives_same_lines(self) -> None:
        data = "one\r\ntwo\n\nthré✓\nfour\n".encode("utf-8")
        expected = ["one", "two", "", "thré✓", "four"]
        for i in range(len(data) + 1):
            for j in range(i, len(data) + 1):
                with self.subTest(i=i, j=j):
                    self.assertEqual(self._feed_all([data[:i], data[i:j], data[j:]]), expected)

    def test_strips_single_trailing_cr(self) -> None:
        self.assertEqual(self._feed_all([b"a\r\n\r\nb\r\r\n"]), ["a", "", "b\r"])

    def test_partial_line_is_held_until_terminated(self) -> None:
        from mcrelay.kernel.framer import LineFramer

        f = LineFramer(100)
        self.assertEqual(f.feed(b"hello wo"), [])
        self.assertEqual(f.pending, 8)
        self.assertEqual(f.feed(b"rld\nnext"), ["hello world"])
        self.assertEqual(f.pending, 4)

    def test_overflow_drops_buffered_bytes_and_resyncs(self) -> None:
        from mcrelay.kernel.framer import LineFramer

        f = LineFramer(8)
        with self.assertLogs("mcrelay.framer", level="WARNING"):
            self.assertEqual(f.feed(b"abcdefgh"), [])
        self.assertEqual(f.pending, 0)
        self.assertEqual(f.dropped_bytes, 8)
        # The tail of the oversized line surfaces as its own line, then framing is back in sync.
        self.assertEqual(f.feed(b"ij\nok\n"), ["ij", "ok"])

    def test_large_chunk_is_consumed_in_pieces(self) -> None:
        from mcrelay.kernel.framer import LineFramer

        f = LineFramer(8)
        self.assertEqual(f.feed(b"ab\ncd\nef\ngh\nij\n"), ["ab", "cd", "ef", "gh", "ij"])
        self.assertEqual(f.dropped_bytes, 0)

    def test_line_exactly_filling_buffer_with_newline_is_kept(self) -> None:
        self.assertEqual(self._feed_all([b"abcdefg\n"], capacity=8), ["abcdefg"])

    def test_invalid_utf8_line_is_dropped_alone(self) -> None:
        from mcrelay.kernel.framer import LineFramer

        f = LineFramer(100)
        with self.assertLogs("mcrelay.framer", level="WARNING"):
            lines = f.feed(b"good\n\xff\xfe bad\nalso good\n")
        self.assertEqual(lines, ["good", "also good"])
        self.assertEqual(f.dropped_lines, 1)

    def test_rejects_non_positive_capacity(self) -> None:
        from mcrelay.kernel.framer import LineFramer

        with self.assertRaises(ValueError):
            LineFramer(0)


class TestIterLines(unittest.IsolatedAsyncioTestCase):
    async def test_yields_lines_until_eof_and_drops_unterminated_tail(self) -> None:
        from mcrelay.kernel.framer import LineFramer, iter_lines

        reader = _ChunkReader([b"[12:00", b":00] a\nsecond", b" line\ntail"])
        lines = [line async for line in iter_lines(reader, LineFramer(64))]
        self.assertEqual(lines, ["[12:00:00] a", "second line"])

    async def test_reads_never_exceed_free_space(self) -> None:
        from mcrelay.kernel.framer import LineFramer, iter_lines

        reader = _ChunkReader([b"abc", b"de\n"])
        lines = [line async for line in iter_lines(reader, LineFramer(10))]
        self.assertEqual(lines, ["abcde"])
        self.assertEqual(reader.requested, [10, 7, 10])

    async def test_read_error_ends_the_stream(self) -> None:
        from mcrelay.kernel.framer import iter_lines

        reader = _ChunkReader([b"x\n"], error=ConnectionResetError("gone"))
        with self.assertLogs("mcrelay.framer", level="WARNING"):
            lines = [line async for line in iter_lines(reader)]
        self.assertEqual(lines, ["x"])


if __name__ == "__main__":
    unittest.main()
