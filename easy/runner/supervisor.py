"""
Execution supervisor — run selected modules one after another.

For each module:
  1. clear the screen
  2. start the module as a child process in the working copy
  3. stream mode: relay its output into an auto-scrolling panel and a
     transient log file; hidden mode: discard output, show a placeholder
  4. wait for it to exit and record the status — a failure is recorded,
     never fatal, and the next module still runs
  5. release everything created for the module (child, relay, panel,
     log file), also when interrupted; a release problem is logged as
     ResourceCleanupWarning and never replaces the module's own status
  6. print a completion marker

Modules never overlap, so at most one child and one relay exist at a time.
"""

from __future__ import annotations

import logging
import os
import shutil
import subprocess
import tempfile
from collections import deque
from contextlib import ExitStack
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Callable, Optional, Sequence

from rich.console import Console, Group
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from easy.catalog import ModuleDescriptor
from easy.config import Settings
from easy.errors import ModuleExecutionFailure, ResourceCleanupWarning
from easy.runner.relay import OutputRelay
from easy.ui.live import LiveOutput
from easy.ui.progress import render_progress
from easy.ui.theme import COLOR_BRAND, COLOR_DIM, COLOR_TEXT, ICON_ERROR, ICON_PASS, ICON_WARNING

logger = logging.getLogger(__name__)


_REAP_TIMEOUT = 5
_FAILURE_TAIL = 10


# ── Data model ────────────────────────────────────────────────────────────────

@dataclass
class ExecutionRecord:
    module: ModuleDescriptor
    started: datetime
    finished: Optional[datetime] = None
    exit_status: Optional[int] = None
    failure: Optional[ModuleExecutionFailure] = None
    tail: list[str] = field(default_factory=list)
    warnings: list[ResourceCleanupWarning] = field(default_factory=list)

    @property
    def succeeded(self) -> bool:
        return self.failure is None and self.exit_status == 0

    @property
    def duration(self) -> float:
        if self.finished is None:
            return 0.0
        return (self.finished - self.started).total_seconds()


@dataclass
class RunReport:
    records: list[ExecutionRecord] = field(default_factory=list)

    @property
    def order(self) -> list[str]:
        return [r.module.display_name for r in self.records]

    @property
    def failed(self) -> list[ExecutionRecord]:
        return [r for r in self.records if not r.succeeded]

    @property
    def succeeded(self) -> list[ExecutionRecord]:
        return [r for r in self.records if r.succeeded]


# ── Supervisor ────────────────────────────────────────────────────────────────

class ExecutionSupervisor:
    """
    Run modules sequentially in the order given.

    Args:
        console: Rich Console (shared with the rest of the tool).
        settings: grace period and tail length come from here.
        stream:  relay live output (True) or hide it (False).
        pause:   wait for ENTER between modules.
    """

    def __init__(
        self,
        console: Console,
        settings: Settings | None = None,
        stream: bool = False,
        pause: bool = False,
    ) -> None:
        self.console = console
        self.settings = settings or Settings()
        self.stream = stream
        self.pause = pause

    # ── Public API ────────────────────────────────────────────────────────────

    def run(self, working_copy: Path, modules: Sequence[ModuleDescriptor]) -> RunReport:
        report = RunReport()
        total = len(modules)

        for position, module in enumerate(modules, 1):
            record = self.run_module(working_copy, module, position, total)
            report.records.append(record)
            self._print_completion(record, position, total)

            if self.pause and position < total:
                self._wait_for_ack()

        self._print_summary(report)
        return report

    def run_module(
        self,
        working_copy: Path,
        module: ModuleDescriptor,
        position: int = 1,
        total: int = 1,
    ) -> ExecutionRecord:
        """Run one module to completion and release its resources."""
        record = ExecutionRecord(module=module, started=datetime.now(timezone.utc))
        tail: deque[str] = deque(maxlen=self.settings.tail_lines)

        self.console.clear()
        logger.info("starting %s (%s)", module.display_name, module.file_path)

        try:
            with ExitStack() as stack:
                try:
                    proc = self._launch(module, working_copy)
                except OSError as e:
                    record.failure = ModuleExecutionFailure(module.display_name, None, str(e))
                    logger.warning("%s", record.failure)
                    return record

                stack.callback(self._release, record, "child process", _reap, proc)

                if self.stream:
                    self._attach_relay(stack, record, proc, tail, position, total)
                else:
                    self.console.print(_hidden_placeholder(module, position, total))

                record.exit_status = proc.wait()
        finally:
            record.finished = datetime.now(timezone.utc)
            record.tail = list(tail)

        if record.exit_status != 0:
            record.failure = ModuleExecutionFailure(module.display_name, record.exit_status)
            logger.warning("%s", record.failure)
        else:
            logger.info("%s finished successfully", module.display_name)
        return record

    # ── Launch & relay ────────────────────────────────────────────────────────

    def _launch(self, module: ModuleDescriptor, working_copy: Path) -> subprocess.Popen:
        cmd = [str(module.file_path)]
        if self.stream:
            # line-buffer the child's stdio so output arrives as it is written
            if shutil.which("stdbuf"):
                cmd = ["stdbuf", "-oL", "-eL", *cmd]
            return subprocess.Popen(
                cmd,
                cwd=working_copy,
                stdout=subprocess.PIPE,
                stderr=subprocess.STDOUT,
                bufsize=0,
                env={**os.environ, "PYTHONUNBUFFERED": "1"},
            )
        return subprocess.Popen(
            cmd,
            cwd=working_copy,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.DEVNULL,
        )

    def _attach_relay(
        self,
        stack: ExitStack,
        record: ExecutionRecord,
        proc: subprocess.Popen,
        tail: deque,
        position: int,
        total: int,
    ) -> None:
        """
        Create log file, panel and relay.

        Release runs in reverse: child reaped and relay joined first, then
        the pipe, panel and log file. If the log file or panel cannot be
        created the relay still runs, so the child never blocks on a full pipe.
        """
        outputs: list[Callable[[str], None]] = []

        try:
            transcript = tempfile.NamedTemporaryFile(
                "w", prefix="easy-", suffix=".log", encoding="utf-8", delete=False
            )
            stack.callback(self._release, record, "log file", _discard, transcript)

            def write(line: str) -> None:
                transcript.write(line + "\n")
                transcript.flush()

            outputs.append(write)

            display = LiveOutput(
                self.console,
                title=record.module.display_name,
                position=position,
                total=total,
                log_path=transcript.name,
            )
            display.start()
            stack.callback(self._release, record, "live display", display.stop)
            outputs.append(display.append)
        except Exception as e:
            self._warn(record, "live display", e)

        stack.callback(self._release, record, "output pipe", proc.stdout.close)

        def sink(line: str) -> None:
            tail.append(line)
            for out in outputs:
                out(line)

        relay = OutputRelay(proc.stdout, sink, name=f"relay-{record.module.display_name}")
        relay.start()
        stack.callback(self._release, record, "output relay", self._finish_relay, relay, proc)

    def _finish_relay(self, relay: OutputRelay, proc: subprocess.Popen) -> None:
        """Reap the child, then give the relay a bounded time to drain."""
        _reap(proc)
        grace = self.settings.relay_grace_period
        if not relay.join(grace):
            # something the module started still holds the pipe open
            relay.stop()
            if not relay.join(grace):
                raise ResourceCleanupWarning(f"relay still running after {grace * 2:.0f}s")
        if relay.error is not None:
            raise ResourceCleanupWarning(f"output relay failed: {relay.error}")

    def _release(self, record: ExecutionRecord, what: str, fn: Callable, *args) -> None:
        """Run one release step; turn any failure into a logged warning."""
        try:
            fn(*args)
        except Exception as e:
            self._warn(record, what, e)

    def _warn(self, record: ExecutionRecord, what: str, error: Exception) -> None:
        warning = error if isinstance(error, ResourceCleanupWarning) else ResourceCleanupWarning(str(error))
        record.warnings.append(warning)
        logger.warning("%s: %s: %s", record.module.display_name, what, warning)

    # ── Operator feedback ─────────────────────────────────────────────────────

    def _wait_for_ack(self) -> None:
        self.console.print()
        try:
            self.console.input(
                "  [dim]Press [bold]↵ ENTER[/bold] to continue with the next module[/dim] "
            )
        except EOFError:
            pass

    def _print_completion(self, record: ExecutionRecord, position: int, total: int) -> None:
        name = record.module.display_name
        line = Text()

        if record.succeeded:
            line.append(f"  {ICON_PASS}  ", style="pass")
            line.append(f"[{position}/{total}]  {name}", style=f"bold {COLOR_TEXT}")
            line.append(f"  completed successfully  ·  {_fmt_duration(record.duration)}", style=COLOR_DIM)
        elif record.exit_status is None:
            line.append(f"  {ICON_ERROR}  ", style="critical")
            line.append(f"[{position}/{total}]  {name}", style=f"bold {COLOR_TEXT}")
            line.append(f"  {record.failure}", style="critical")
        else:
            line.append(f"  {ICON_WARNING}  ", style="warning")
            line.append(f"[{position}/{total}]  {name}", style=f"bold {COLOR_TEXT}")
            line.append(
                f"  finished with exit code {record.exit_status}  ·  {_fmt_duration(record.duration)}",
                style="warning",
            )

        self.console.print()
        self.console.print(line)

        if not record.succeeded and record.tail:
            last = Text("\n".join(record.tail[-_FAILURE_TAIL:]), style=COLOR_DIM, no_wrap=True, overflow="ellipsis")
            self.console.print(
                Panel(last, title=f"[dim]Last output from {name}[/dim]", title_align="left",
                      border_style="warning", padding=(0, 1))
            )

        for warning in record.warnings:
            self.console.print(f"  [dim]cleanup: {escape(str(warning))}[/dim]")

    def _print_summary(self, report: RunReport) -> None:
        """
        Final panel, one line per module. The per-module markers are cleared
        away by the next module's screen, so this is the record that stays.
        """
        body = Text()
        ok = len(report.succeeded)
        failed = report.failed

        body.append("\n  All selected modules have been executed.\n\n", style=f"bold {COLOR_TEXT}")
        for record in report.records:
            body.append_text(_summary_line(record))
            body.append("\n")

        body.append(f"\n  {ICON_PASS}  {ok} succeeded", style="pass")
        if failed:
            body.append(f"   ·   {ICON_WARNING} {len(failed)} failed", style="warning")
            body.append("\n\n  Run ", style=COLOR_DIM)
            body.append("easy", style=f"bold {COLOR_TEXT}")
            body.append(" again to retry; modules start from the top.", style=COLOR_DIM)
        body.append("\n")

        border = "warning" if failed else "pass"
        self.console.print()
        self.console.print(
            Panel(body, title="[bold]Done[/bold]", title_align="left", border_style=border)
        )
        self.console.print()


# ── Module-level helpers ──────────────────────────────────────────────────────

def _reap(proc: subprocess.Popen) -> None:
    """Make sure the child is gone: terminate, then kill, if still running."""
    if proc.poll() is not None:
        return
    proc.terminate()
    try:
        proc.wait(timeout=_REAP_TIMEOUT)
    except subprocess.TimeoutExpired:
        proc.kill()
        proc.wait()


def _discard(handle) -> None:
    """Close and delete a temporary log file."""
    try:
        handle.close()
    finally:
        os.unlink(handle.name)


def _hidden_placeholder(module: ModuleDescriptor, position: int, total: int) -> Panel:
    body = Group(
        Text("(output hidden)", style=COLOR_DIM, justify="center"),
        Text(""),
        render_progress(position - 1, total),
    )
    return Panel(
        body,
        title=f"[bold]Running: {module.display_name}[/bold]",
        title_align="left",
        border_style=COLOR_BRAND,
    )


def _summary_line(record: ExecutionRecord) -> Text:
    """One summary row: icon, name, outcome and duration."""
    name = record.module.display_name.ljust(24)
    line = Text()
    if record.succeeded:
        line.append(f"  {ICON_PASS}  ", style="pass")
        line.append(name, style=COLOR_TEXT)
        line.append(f"  completed  ·  {_fmt_duration(record.duration)}", style=COLOR_DIM)
    elif record.exit_status is None:
        line.append(f"  {ICON_ERROR}  ", style="critical")
        line.append(name, style=COLOR_TEXT)
        line.append(f"  {record.failure}", style="critical")
    else:
        line.append(f"  {ICON_WARNING}  ", style="warning")
        line.append(name, style=COLOR_TEXT)
        line.append(f"  {record.failure}  ·  {_fmt_duration(record.duration)}", style="warning")
    return line


def _fmt_duration(seconds: float) -> str:
    if seconds < 60:
        return f"{seconds:.0f}s"
    minutes, secs = divmod(int(seconds), 60)
    return f"{minutes}m {secs:02d}s"
