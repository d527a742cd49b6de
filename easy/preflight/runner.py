"""
Preflight orchestration — run every check in order, narrate, stop on fatal.

Platform first: there is no point installing tools on a host EASY cannot
serve.
"""

from __future__ import annotations

import logging

from rich.console import Console
from rich.text import Text

from easy.config import Settings
from easy.errors import PlatformError, PreflightError
from easy.preflight.base import BaseCheck, CheckResult
from easy.preflight.platform import ALL_CHECKS as PLATFORM
from easy.preflight.tools import tool_checks
from easy.ui.theme import COLOR_DIM, COLOR_TEXT, STATUS_ICONS, STATUS_STYLES

logger = logging.getLogger(__name__)


def collect_checks(settings: Settings) -> list[BaseCheck]:
    """Return instantiated checks in run order: platform, then tools."""
    checks: list[BaseCheck] = [cls(settings) for cls in PLATFORM]
    checks.extend(tool_checks(settings))
    return checks


def run_preflight(
    settings: Settings,
    console: Console,
    checks: list[BaseCheck] | None = None,
) -> list[CheckResult]:
    """
    Execute preflight checks, printing one line per result.

    Raises:
        PlatformError:  the platform check failed.
        PreflightError: any other check failed.
    """
    results: list[CheckResult] = []

    for check in checks if checks is not None else collect_checks(settings):
        with console.status(Text(f"  {check.scan_description}…", style=COLOR_DIM)):
            result = check.execute()
        results.append(result)
        console.print(format_result(result))
        logger.info("preflight %s: %s (%s)", result.id, result.status, result.message)

        if result.fatal:
            message = result.message
            if result.remedy:
                message = f"{message}. {result.remedy}"
            if result.id == "platform":
                raise PlatformError(message)
            raise PreflightError(message)

    console.print()
    return results


def format_result(result: CheckResult) -> Text:
    """
    One-line result:
      ✅  Host Platform          Fedora Linux 40
      🔴  Git Installed          git is not installed
    """
    icon = STATUS_ICONS.get(result.status, "?")
    style = STATUS_STYLES.get(result.status)

    line = Text()
    line.append(f"  {icon}  ", style=str(style))
    line.append(result.name.ljust(24), style=f"bold {COLOR_TEXT}")
    line.append(f"  {result.message}", style=COLOR_DIM)
    return line
