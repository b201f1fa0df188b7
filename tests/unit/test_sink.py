"""Tests for FileSink and TerminalMirror destinations."""

import io

import pytest

from outputbuddy.errors import DestinationError
from outputbuddy.sink import FileSink, TerminalMirror


class FailingHandle:
    """Binary handle whose every operation fails like a full or gone disk."""

    def __init__(self):
        self.write_calls = 0

    def write(self, data):
        self.write_calls += 1
        raise OSError(28, "No space left on device")

    def flush(self):
        raise OSError(28, "No space left on device")

    def fileno(self):
        raise OSError(9, "Bad file descriptor")

    def close(self):
        pass


@pytest.fixture
def log_path(tmp_path):
    return tmp_path / "out.log"


def read(path):
    return path.read_bytes()


class TestSanitizedSink:

    def test_color_codes_stripped(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest(b"\x1b[31mHELLO\x1b[0m\n")
        sink.close()
        assert read(log_path) == b"HELLO\n"

    def test_bare_cr_discards_line(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest(b"A\nB\rC\n")
        sink.close()
        assert read(log_path).splitlines() == [b"A", b"C"]

    def test_whitespace_only_line_suppressed(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest(b"     \n  padded content  \n\n")
        sink.close()
        assert read(log_path) == b"  padded content  \n"

    def test_unicode_whitespace_only_line_suppressed(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest("\u00a0\u3000\u00a0\nreal\n".encode())
        sink.close()
        assert read(log_path) == b"real\n"

    def test_progress_lines_not_written(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest(b"2.5s Run tests\n1. 45%\nreal line\n")
        sink.close()
        assert read(log_path) == b"real line\n"
        assert sink.lines_written == 1

    def test_progress_line_remembered(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest(b"1. 45%\n")
        assert sink.last_line == b"1. 45%"
        assert sink.lines_written == 0
        sink.ingest(b"after\n")
        assert sink.last_line == b"after"
        sink.close()

    def test_spinner_glyphs_removed(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest("⠋ Installing\r⠙ Installing\rInstalled\n".encode("utf-8"))
        sink.close()
        assert read(log_path) == b"Installed\n"

    def test_ingest_reports_full_length(self, log_path):
        sink = FileSink.open(str(log_path))
        assert sink.ingest(b"partial") == 7
        assert sink.ingest(b"") == 0
        sink.close()


class TestRawSink:
    """sanitize=False still resolves CR redraws but keeps bytes as-is."""

    def test_escape_codes_kept(self, log_path):
        sink = FileSink.open(str(log_path), sanitize=False)
        sink.ingest(b"\x1b[31mred\x1b[0m\n")
        sink.close()
        assert read(log_path) == b"\x1b[31mred\x1b[0m\n"

    def test_redraws_collapsed(self, log_path):
        sink = FileSink.open(str(log_path), sanitize=False)
        sink.ingest(b"10%\r50%\r100%\n")
        sink.close()
        assert read(log_path) == b"100%\n"

    def test_progress_and_blank_lines_written(self, log_path):
        sink = FileSink.open(str(log_path), sanitize=False)
        sink.ingest(b"1. 45%\n   \n")
        sink.close()
        assert read(log_path) == b"1. 45%\n   \n"


class TestFlushAndClose:

    def test_tail_flushed_on_close(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest(b"first\nno newline")
        sink.close()
        assert read(log_path) == b"first\nno newline\n"

    def test_close_twice_does_not_duplicate_tail(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest(b"tail")
        sink.close()
        sink.close()
        assert read(log_path) == b"tail\n"
        assert sink.closed

    def test_flush_twice_writes_tail_once(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest(b"tail")
        sink.flush()
        sink.flush()
        sink.close()
        assert read(log_path) == b"tail\n"

    def test_progress_tail_not_written(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest(b"3. 99%")
        sink.close()
        assert read(log_path) == b""

    def test_sequence_only_tail_not_written(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest(b"\x1b[0m  ")
        sink.close()
        assert read(log_path) == b""

    def test_pending_redraw_dropped_at_end(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.ingest(b"done\nspinner frame\r")
        sink.close()
        assert read(log_path) == b"done\n"

    def test_ingest_after_close_ignored(self, log_path):
        sink = FileSink.open(str(log_path))
        sink.close()
        assert sink.ingest(b"late\n") == 5
        assert read(log_path) == b""

    def test_file_is_truncated_on_open(self, log_path):
        log_path.write_bytes(b"stale content\n")
        sink = FileSink.open(str(log_path))
        sink.close()
        assert read(log_path) == b""


class TestErrors:

    def test_open_missing_directory(self, tmp_path):
        with pytest.raises(DestinationError) as excinfo:
            FileSink.open(str(tmp_path / "missing" / "out.log"))
        assert "missing" in excinfo.value.path

    def test_write_failure_not_raised(self):
        handle = FailingHandle()
        sink = FileSink(handle, "broken.log")
        assert sink.ingest(b"one\ntwo\n") == 8
        assert handle.write_calls == 2
        assert sink.lines_written == 0

    def test_close_with_failing_handle(self):
        sink = FileSink(FailingHandle(), "broken.log")
        sink.ingest(b"tail")
        sink.close()
        assert sink.closed

    def test_handle_closed_underneath_not_raised(self):
        handle = io.BytesIO()
        sink = FileSink(handle, "closed.log")
        handle.close()
        assert sink.ingest(b"one\ntail") == 8
        assert sink.lines_written == 0
        sink.close()
        assert sink.closed


class TestTerminalMirror:

    def test_bytes_passed_through_unchanged(self):
        handle = io.BytesIO()
        mirror = TerminalMirror(handle)
        data = b"\x1b[31m10%\r\x1b[2K50%\r\n\xe2\xa0\x8b"
        assert mirror.ingest(data) == len(data)
        assert handle.getvalue() == data

    def test_write_failure_not_raised(self):
        mirror = TerminalMirror(FailingHandle())
        assert mirror.ingest(b"lost") == 4
        assert mirror.ingest(b"lost again") == 10

    def test_closed_handle_not_raised(self):
        handle = io.BytesIO()
        handle.close()
        mirror = TerminalMirror(handle)
        assert mirror.ingest(b"after close") == 11
        assert mirror.ingest(b"again") == 5


if __name__ == "__main__":
    pytest.main([__file__, "-v"])
