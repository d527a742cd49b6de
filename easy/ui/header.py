"""
EASY header banner.

Two-column panel:
  Left  — greeting and host identity
  Right — where modules come from and how the working copy is reconciled
"""

import getpass
import platform

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from easy.config import Settings
from easy.ui.theme import APP_TITLE, APP_VERSION, COLOR_BRAND, COLOR_DIM, COLOR_TEXT


_POLICY_LABELS = {
    "reclone": "fresh clone every run (local edits discarded)",
    "merge":   "update in place (local edits kept)",
}


def build_header(settings: Settings) -> Panel:
    """Return the banner panel shown before preflight."""
    table = Table(box=None, show_header=False, padding=(0, 2), expand=True)
    table.add_column(width=30, justify="center")
    table.add_column(justify="left")

    table.add_row(_build_left(), _build_right(settings))

    return Panel(
        table,
        title=f"[bold]{APP_TITLE}[/bold]",
        subtitle=f"[dim]v{APP_VERSION}[/dim]",
        border_style=COLOR_BRAND,
    )


def print_header(console: Console, settings: Settings) -> None:
    console.print(build_header(settings))


def _build_left() -> Text:
    """Left column: greeting + host identity."""
    try:
        username_raw = getpass.getuser()
    except Exception:
        username_raw = "there"
    display_name = (username_raw.replace("_", " ").replace(".", " ").split() or ["there"])[0].capitalize()

    t = Text(justify="center")
    t.append("\n")
    t.append(f"Hello, {display_name}!", style=f"bold {COLOR_TEXT}")
    t.append("\n\n")
    t.append(platform.node() or "localhost", style=COLOR_DIM)
    t.append("\n")
    t.append(f"{platform.system()} {platform.release()}", style=COLOR_DIM)
    t.append("\n")
    return t


def _build_right(settings: Settings) -> Text:
    """Right column: module source, working copy, reconciliation policy."""
    t = Text()
    t.append("\n")
    t.append("Modules from  ", style=COLOR_DIM)
    t.append(settings.repo_url, style=COLOR_TEXT)
    t.append("\n")
    t.append("Working copy  ", style=COLOR_DIM)
    t.append(str(settings.target_dir), style=COLOR_TEXT)
    t.append("\n")
    t.append("Sync          ", style=COLOR_DIM)
    t.append(_POLICY_LABELS.get(settings.sync_policy, settings.sync_policy), style=COLOR_TEXT)
    t.append("\n\n")
    t.append("Pick what to install, EASY runs each installer top to bottom.", style=COLOR_DIM)
    t.append("\n")
    return t
