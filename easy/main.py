"""
EASY — entry point and orchestrator.

header → preflight → sync → catalog → checklist → run modules → summary.
"""

import logging

import click
from rich.console import Console
from rich.markup import escape

from easy import __version__
from easy.catalog import build_catalog
from easy.config import Settings, load_config
from easy.errors import EasyError, EmptyCatalog, MergeConflict
from easy.log import setup_logging
from easy.ui.theme import EASY_THEME

logger = logging.getLogger("easy")


# ── Console (shared across the tool) ─────────────────────────────────────────

console = Console(theme=EASY_THEME)


# ── CLI ───────────────────────────────────────────────────────────────────────

@click.command(name="easy", context_settings={"help_option_names": ["-h", "--help"]})
@click.version_option(__version__, "-V", "--version", prog_name="easy")
def cli() -> None:
    """Effortless Automated Self-hosting for You.

    Prepares this machine, fetches the latest EASY setup modules, lets you
    tick the ones you want and runs them top to bottom.

    \b
    Environment variables:
      EASY_CONFIG=PATH   Use another config file (default ~/.config/easy/config.toml).
      EASY_DEBUG=1       Show informational log messages on screen.
      NO_COLOR=1         Disable all colour output.
    """
    setup_logging(console)
    settings = load_config()

    try:
        code = run(settings, console)
    except KeyboardInterrupt:
        console.print("\n  [dim]Cancelled.[/dim]\n")
        logger.info("run cancelled by operator")
        raise SystemExit(130)

    if code:
        raise SystemExit(code)


# ── Orchestration ─────────────────────────────────────────────────────────────

def run(settings: Settings, console: Console) -> int:
    """
    Run the whole pipeline once and return the process exit code.

    0 — normal completion, including "nothing selected" and failed modules
    1 — a fatal error (platform, sync, empty or broken catalog)
    """
    from easy.preflight.runner import run_preflight
    from easy.runner.supervisor import ExecutionSupervisor
    from easy.sync import policy_for
    from easy.ui.header import print_header
    from easy.ui.selection import Toggle, prompt_selection

    print_header(console, settings)
    console.print()

    try:
        run_preflight(settings, console)

        with console.status(f"  [dim]Synchronizing {escape(settings.repo_url)}…[/dim]"):
            working_copy = policy_for(settings.sync_policy).synchronize(
                settings.repo_url, settings.target_dir
            )
        _report_sync(working_copy.conflict, console)

        catalog = build_catalog(
            working_copy.path,
            suffix=settings.module_suffix,
            discovery=settings.discovery,
            manifest=settings.manifest,
        )
    except EmptyCatalog as e:
        _print_fatal(console, e, "No setup modules found. Exiting.")
        return 1
    except EasyError as e:
        _print_fatal(console, e)
        return 1

    selection = prompt_selection(catalog, console)
    if selection.empty:
        console.print("  [dim]No options selected. Exiting.[/dim]\n")
        logger.info("nothing selected")
        return 0

    logger.info(
        "selected: %s (toggles: %s)",
        ", ".join(m.display_name for m in selection.modules),
        ", ".join(sorted(t.name for t in selection.toggles)) or "none",
    )

    supervisor = ExecutionSupervisor(
        console,
        settings,
        stream=selection.enabled(Toggle.STREAM_OUTPUT),
        pause=selection.enabled(Toggle.PAUSE_BETWEEN),
    )
    report = supervisor.run(working_copy.path, selection.modules)
    logger.info(
        "run finished: %d succeeded, %d failed", len(report.succeeded), len(report.failed)
    )
    return 0


# ── Helpers ───────────────────────────────────────────────────────────────────

def _report_sync(conflict: MergeConflict | None, console: Console) -> None:
    if conflict is None:
        console.print(f"  [pass]✅[/pass]  [text]{'Modules'.ljust(24)}[/text]  [dim]up to date[/dim]")
        console.print()
        return
    console.print("  [warning]⚠️   Your local changes to the modules could not be reapplied.[/warning]")
    console.print("  [dim]Continuing with the working copy as it is.[/dim]")
    console.print()


def _print_fatal(console: Console, error: EasyError, headline: str | None = None) -> None:
    """Operator-facing message for an error that ends the run."""
    logger.info("%s failed: %s", error.phase, error)
    console.print()
    if headline:
        console.print(f"  [critical]{headline}[/critical]")
        console.print(f"  [dim]{escape(str(error))}[/dim]")
    else:
        console.print(f"  [critical]{error.phase.capitalize()} failed:[/critical] {escape(str(error))}")
    console.print()


# ── Entry ─────────────────────────────────────────────────────────────────────

if __name__ == "__main__":
    cli()
