"""
Output relay — move a child's output to the screen as it is produced.

The relay owns the read end of the child's stdout pipe. It waits on the pipe
with a short select() timeout so a stop request is noticed even while the
pipe is quiet, which bounds how long it can outlive the child.
"""

from __future__ import annotations

import logging
import os
import re
import selectors
import threading
from typing import IO, Callable, Optional

logger = logging.getLogger(__name__)


POLL_INTERVAL = 0.1
_READ_SIZE = 65536

_ESCAPES = re.compile(
    r"""
      \x1b\[[0-?]*[ -/]*[@-~]                 # CSI: colours, cursor moves, erase
    | \x1b\][^\x07\x1b]*(?:\x07|\x1b\\)?      # OSC: window titles, hyperlinks
    | \x1b[PX^_][^\x1b]*(?:\x1b\\)?           # DCS / SOS / PM / APC strings
    | \x1b[ -/]*[0-~]                         # two-byte and charset selects
    | [\x00-\x08\x0b-\x1f\x7f]                # remaining C0 controls, DEL
    """,
    re.VERBOSE,
)


def strip_escapes(line: str) -> str:
    """
    Remove terminal control sequences from one line of output.

    A carriage return rewinds to column 0, so only the text after the last
    non-trailing CR is what a terminal would end up showing.
    """
    line = line.rstrip("\r")
    if "\r" in line:
        line = line.rsplit("\r", 1)[1]
    return _ESCAPES.sub("", line)


class OutputRelay:
    """
    Background task reading a binary stream and handing clean lines to sink.

    Lines reach sink in exactly the order the child wrote them. If sink
    raises, the error is kept in `error` and the pipe is still drained so
    the child never blocks on a full pipe.
    """

    def __init__(
        self,
        stream: IO[bytes],
        sink: Callable[[str], None],
        name: str = "output-relay",
        poll_interval: float = POLL_INTERVAL,
    ) -> None:
        self._fd = stream.fileno()
        self._sink: Optional[Callable[[str], None]] = sink
        self._poll_interval = poll_interval
        self._stop = threading.Event()
        self._thread = threading.Thread(target=self._run, name=name, daemon=True)
        self.lines_relayed = 0
        self.error: Optional[BaseException] = None

    # ── Lifecycle ─────────────────────────────────────────────────────────────

    def start(self) -> None:
        self._thread.start()

    def stop(self) -> None:
        """Ask the relay to finish at its next poll, dropping unread output."""
        self._stop.set()

    def join(self, timeout: Optional[float] = None) -> bool:
        """Wait for the relay to finish. Returns True once it has."""
        self._thread.join(timeout)
        return not self._thread.is_alive()

    @property
    def alive(self) -> bool:
        return self._thread.is_alive()

    # ── Thread body ───────────────────────────────────────────────────────────

    def _run(self) -> None:
        pending = b""
        try:
            with selectors.DefaultSelector() as selector:
                selector.register(self._fd, selectors.EVENT_READ)
                while not self._stop.is_set():
                    if not selector.select(self._poll_interval):
                        continue
                    chunk = os.read(self._fd, _READ_SIZE)
                    if not chunk:
                        break
                    *complete, pending = (pending + chunk).split(b"\n")
                    for raw in complete:
                        self._emit(raw)
            if pending and not self._stop.is_set():
                self._emit(pending)
        except (OSError, ValueError) as e:
            # pipe closed underneath us
            if not self._stop.is_set():
                self.error = e
                logger.warning("output relay stopped early: %s", e)

    def _emit(self, raw: bytes) -> None:
        line = strip_escapes(raw.decode("utf-8", errors="replace"))
        self.lines_relayed += 1
        if self._sink is None:
            return
        try:
            self._sink(line)
        except Exception as e:
            self.error = e
            self._sink = None
            logger.warning("output display failed, output is no longer shown: %s", e)
