"""
LiveOutput — auto-scrolling panel for a running module.

Wraps rich.live.Live to show:

  ╭─ Live Output: Immich ─────────────────────────────╮
  │ Pulling images…                                   │
  │ Starting containers…                              │
  │                                                   │
  │  [████████░░░░░░░░░░░░░░] 33%  ·  1 of 3 modules  │
  ╰──────────────────────── full log: /tmp/easy-….log ╯

Lines are appended from the relay thread; rendering happens on Live's own
refresh thread, so the buffer is guarded by a lock. The panel is transient:
once stopped it leaves nothing behind on screen.
"""

from __future__ import annotations

import threading
from collections import deque

from rich.console import Console, Group
from rich.live import Live
from rich.panel import Panel
from rich.text import Text

from easy.ui.progress import render_progress
from easy.ui.theme import COLOR_BRAND, COLOR_DIM

# Panel border, title, footer and breathing room
_CHROME_LINES = 6


class LiveOutput:
    """Context manager showing the tail of a module's output while it runs."""

    def __init__(
        self,
        console: Console,
        title: str,
        position: int,
        total: int,
        log_path: str = "",
    ) -> None:
        self.console = console
        self.title = title
        self.position = position
        self.total = total
        self.log_path = log_path

        self._lines: deque[str] = deque(maxlen=max(console.height, 10))
        self._lock = threading.Lock()
        self._live = Live(
            console=console,
            get_renderable=self._render,
            refresh_per_second=8,
            transient=True,
            redirect_stdout=False,
            redirect_stderr=False,
        )

    # ── Context manager ───────────────────────────────────────────────────────

    def __enter__(self) -> "LiveOutput":
        self.start()
        return self

    def __exit__(self, *args) -> None:
        self.stop()

    def start(self) -> None:
        self._live.start(refresh=True)

    def stop(self) -> None:
        self._live.stop()

    # ── Public API ────────────────────────────────────────────────────────────

    def append(self, line: str) -> None:
        with self._lock:
            self._lines.append(line)

    # ── Internal rendering ────────────────────────────────────────────────────

    def _render(self) -> Panel:
        height = max(self.console.height - _CHROME_LINES, 3)
        with self._lock:
            visible = list(self._lines)[-height:]

        body = Text(no_wrap=True, overflow="ellipsis")
        if visible:
            body.append("\n".join(visible))
        else:
            body.append("Waiting for output…", style=COLOR_DIM)

        # completed count excludes the module that is still running
        progress = render_progress(self.position - 1, self.total)

        return Panel(
            Group(body, Text(""), progress),
            title=f"[bold]Live Output: {self.title}[/bold]",
            title_align="left",
            subtitle=f"[dim]full log: {self.log_path}[/dim]" if self.log_path else None,
            subtitle_align="right",
            border_style=COLOR_BRAND,
            height=height + _CHROME_LINES - 1,
        )
