"""
Tests for runner/relay.py.

Covers:
  - strip_escapes: colours, erase codes, OSC titles, carriage returns
  - OutputRelay: produced order, partial last line, failing sink still
    drains the pipe, stop() bounds lifetime while the pipe stays open
"""

import os
import time

import pytest

from easy.runner.relay import OutputRelay, strip_escapes


# ── Helpers ───────────────────────────────────────────────────────────────────

def _pipe():
    """Return (reader file object, writer fd)."""
    r, w = os.pipe()
    return os.fdopen(r, "rb", buffering=0), w


# ── strip_escapes ─────────────────────────────────────────────────────────────

class TestStripEscapes:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("plain text", "plain text"),
            ("\x1b[31mred\x1b[0m", "red"),
            ("\x1b[1;32mbold green\x1b[m", "bold green"),
            ("progress\x1b[K", "progress"),
            ("\x1b[2J\x1b[Hhome", "home"),
            ("\x1b]0;window title\x07visible", "visible"),
            ("\x1b(Bcharset", "charset"),
            ("bell\x07", "bell"),
            ("tabs\tstay", "tabs\tstay"),
        ],
    )
    def test_examples(self, raw, expected):
        assert strip_escapes(raw) == expected

    def test_carriage_return_keeps_last_segment(self):
        assert strip_escapes("10%\r50%\r100%") == "100%"

    def test_trailing_carriage_return_is_dropped(self):
        assert strip_escapes("windows line\r") == "windows line"


# ── OutputRelay ───────────────────────────────────────────────────────────────

class TestOutputRelay:
    def test_lines_arrive_in_produced_order(self):
        reader, w = _pipe()
        lines = []
        relay = OutputRelay(reader, lines.append)
        relay.start()
        for i in range(200):
            os.write(w, f"line {i}\n".encode())
        os.close(w)
        assert relay.join(5)
        assert lines == [f"line {i}" for i in range(200)]
        assert relay.lines_relayed == 200
        reader.close()

    def test_escape_sequences_are_removed(self):
        reader, w = _pipe()
        lines = []
        relay = OutputRelay(reader, lines.append)
        relay.start()
        os.write(w, b"\x1b[32mok\x1b[0m\n")
        os.close(w)
        relay.join(5)
        assert lines == ["ok"]
        reader.close()

    def test_partial_last_line_is_flushed(self):
        reader, w = _pipe()
        lines = []
        relay = OutputRelay(reader, lines.append)
        relay.start()
        os.write(w, b"first\nno newline")
        os.close(w)
        relay.join(5)
        assert lines == ["first", "no newline"]
        reader.close()

    def test_line_split_across_writes(self):
        reader, w = _pipe()
        lines = []
        relay = OutputRelay(reader, lines.append)
        relay.start()
        os.write(w, b"hel")
        time.sleep(0.05)
        os.write(w, b"lo\n")
        os.close(w)
        relay.join(5)
        assert lines == ["hello"]
        reader.close()

    def test_invalid_utf8_is_replaced(self):
        reader, w = _pipe()
        lines = []
        relay = OutputRelay(reader, lines.append)
        relay.start()
        os.write(w, b"caf\xe9\n")
        os.close(w)
        relay.join(5)
        assert lines == ["caf�"]
        reader.close()

    def test_failing_sink_still_drains(self):
        reader, w = _pipe()

        def sink(line):
            raise RuntimeError("display gone")

        relay = OutputRelay(reader, sink)
        relay.start()
        # more than a pipe buffer: would block the writer if nobody read
        payload = b"x" * 1023 + b"\n"
        for _ in range(256):
            os.write(w, payload)
        os.close(w)
        assert relay.join(5)
        assert isinstance(relay.error, RuntimeError)
        assert relay.lines_relayed == 256
        reader.close()

    def test_stop_ends_relay_while_pipe_is_open(self):
        reader, w = _pipe()
        relay = OutputRelay(reader, lambda line: None)
        relay.start()
        assert not relay.join(0.2)
        relay.stop()
        assert relay.join(2)
        assert not relay.alive
        os.close(w)
        reader.close()
