"""
Unit tests for the bounded stream reader.
"""

import io

import pytest

from originserver.http.stream_reader import EndOfFile, StreamReader, UnexpectedEndOfFile


class CountingRaw(io.RawIOBase):
    """Raw stream that records how many read calls reach it."""

    def __init__(self, data: bytes):
        self._data = io.BytesIO(data)
        self.calls = 0

    def readable(self):
        return True

    def readinto(self, b):
        self.calls += 1
        chunk = self._data.read(len(b))
        b[:len(chunk)] = chunk
        return len(chunk)


def make_reader(data: bytes) -> StreamReader:
    return StreamReader(io.BytesIO(data))


class TestReadLine:
    """Tests for read_line()."""

    def test_reads_through_lf(self):
        """Test that lines include their terminator."""
        reader = make_reader(b"one\r\ntwo\r\n")

        assert reader.read_line() == b"one\r\n"
        assert reader.read_line() == b"two\r\n"

    def test_eof_at_line_start(self):
        """Test that an empty read is EndOfFile."""
        reader = make_reader(b"")

        with pytest.raises(EndOfFile):
            reader.read_line()

    def test_last_line_without_lf(self):
        """Test that a trailing fragment is returned as-is."""
        reader = make_reader(b"partial")

        assert reader.read_line() == b"partial"
        with pytest.raises(EndOfFile):
            reader.read_line()

    def test_budget_caps_line(self):
        """Test that a line longer than the budget is cut at the budget."""
        reader = make_reader(b"0123456789\r\n")
        reader.set_limit(4)

        assert reader.read_line() == b"0123"
        assert reader.remaining == 0
        with pytest.raises(EndOfFile):
            reader.read_line()

    def test_budget_is_cumulative(self):
        """Test that the budget spans several lines until reset."""
        reader = make_reader(b"ab\r\ncd\r\nef\r\n")
        reader.set_limit(8)

        assert reader.read_line() == b"ab\r\n"
        assert reader.read_line() == b"cd\r\n"
        with pytest.raises(EndOfFile):
            reader.read_line()

    def test_reset_budget(self):
        """Test that set_limit() starts a fresh segment."""
        reader = make_reader(b"ab\r\ncd\r\n")
        reader.set_limit(4)
        reader.read_line()
        reader.set_limit(4)

        assert reader.read_line() == b"cd\r\n"

    def test_unlimited_by_default(self):
        reader = make_reader(b"x" * 100_000 + b"\n")

        assert reader.remaining is None
        assert len(reader.read_line()) == 100_001

    def test_negative_limit_rejected(self):
        with pytest.raises(ValueError):
            make_reader(b"").set_limit(-1)

    def test_buffered(self):
        """Test that raw streams are buffered, not read byte by byte."""
        raw = CountingRaw(b"GET / HTTP/1.1\r\nHost: x\r\n\r\n")
        reader = StreamReader(raw)

        reader.read_line()
        reader.read_line()
        reader.read_line()
        assert raw.calls <= 2


class TestReadExact:
    """Tests for read_exact()."""

    def test_exact(self):
        reader = make_reader(b"hello world")

        assert reader.read_exact(5) == b"hello"
        assert reader.read_exact(6) == b" world"

    def test_zero(self):
        assert make_reader(b"").read_exact(0) == b""

    def test_short_stream(self):
        """Test that running out of bytes is UnexpectedEndOfFile."""
        reader = make_reader(b"abc")

        with pytest.raises(UnexpectedEndOfFile) as exc_info:
            reader.read_exact(5)
        assert exc_info.value.expected == 5
        assert exc_info.value.received == 3

    def test_over_budget(self):
        """Test that a read past the budget fails without consuming."""
        reader = make_reader(b"abcdef")
        reader.set_limit(3)

        with pytest.raises(UnexpectedEndOfFile):
            reader.read_exact(4)
        assert reader.read_exact(3) == b"abc"
        assert reader.remaining == 0

    def test_eof_kinds_are_distinct(self):
        """Test that callers can tell the two EOF kinds apart."""
        assert not issubclass(EndOfFile, UnexpectedEndOfFile)
        assert not issubclass(UnexpectedEndOfFile, EndOfFile)
        assert issubclass(EndOfFile, EOFError)
        assert issubclass(UnexpectedEndOfFile, EOFError)
