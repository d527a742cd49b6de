"""
Error taxonomy for EASY.

Fatal errors abort the run with a non-zero exit code:
  PlatformError, PreflightError, SyncError, DuplicateModuleName, EmptyCatalog

Recoverable errors are attached to results and the run goes on:
  MergeConflict           — on the WorkingCopy returned by a sync
  ModuleExecutionFailure  — on the ExecutionRecord of a failed module
  ResourceCleanupWarning  — logged, never masks a module's exit status
"""

from __future__ import annotations

from pathlib import Path


class EasyError(Exception):
    """Base class for every error EASY reports to the operator."""

    phase = "run"

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def __str__(self) -> str:
        return self.message


# ── Fatal ─────────────────────────────────────────────────────────────────────

class PreflightError(EasyError):
    phase = "preflight"


class PlatformError(PreflightError):
    """Host platform is unsupported or could not be detected."""


class SyncError(EasyError):
    """The working copy could not be brought in line with the remote."""

    phase = "sync"


class CatalogError(EasyError):
    phase = "catalog"


class DuplicateModuleName(CatalogError):
    """Two module files derive the same display name."""

    def __init__(self, name: str, first: Path, second: Path) -> None:
        super().__init__(
            f"Modules {first.name} and {second.name} both resolve to {name!r}"
        )
        self.name = name
        self.paths = (first, second)


class EmptyCatalog(CatalogError):
    """No eligible module files were found."""


# ── Recoverable ───────────────────────────────────────────────────────────────

class MergeConflict(EasyError):
    """Local modifications could not be cleanly reapplied after an update."""

    phase = "sync"


class ModuleExecutionFailure(EasyError):
    """A selected module exited non-zero or could not be started."""

    phase = "execution"

    def __init__(self, module_name: str, exit_status: int | None, detail: str = "") -> None:
        if exit_status is None:
            message = f"{module_name} could not be started: {detail}"
        else:
            message = f"{module_name} exited with status {exit_status}"
        super().__init__(message)
        self.module_name = module_name
        self.exit_status = exit_status


class ResourceCleanupWarning(UserWarning):
    """A transient display or relay resource could not be released."""
