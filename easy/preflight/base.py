"""
Core data model for EASY preflight checks.

CheckResult — the contract every check must return.
BaseCheck   — abstract base class all checks inherit from.
"""

import os
import shutil
import subprocess
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Literal

from easy.config import Settings


Status = Literal["pass", "critical", "error"]


# ── Data model ────────────────────────────────────────────────────────────────

@dataclass
class CheckResult:
    # Identity
    id: str                     # "platform"
    name: str                   # "Host Platform"

    # Result
    status: Status
    message: str                # Short: "Fedora Linux 40 is supported"

    # What the operator can do about a failure
    remedy: str = ""

    # Metadata
    data: dict[str, Any] = field(default_factory=dict)

    @property
    def fatal(self) -> bool:
        """Critical and error results stop the run before any sync work."""
        return self.status in ("critical", "error")


# ── Base class ────────────────────────────────────────────────────────────────

class BaseCheck(ABC):
    """
    Abstract base class for all preflight checks.

    Subclasses must:
      1. Set class attributes (id, name, …)
      2. Override run() to return a CheckResult

    run() must handle expected failures itself and return a CheckResult;
    anything unexpected is turned into status='error' by execute().
    """

    id: str = "base_check"
    name: str = "Base Check"
    scan_description: str = "Running check..."
    remedy: str = ""

    def __init__(self, settings: Settings | None = None) -> None:
        self.settings = settings or Settings()

    # ── Public API ────────────────────────────────────────────────────────────

    def execute(self) -> CheckResult:
        """Run the check, converting stray exceptions into an error result."""
        try:
            return self.run()
        except Exception as e:
            return self._error(f"Unexpected error in {self.id}: {e}")

    @abstractmethod
    def run(self) -> CheckResult:
        """Implement the actual check here."""

    # ── Helper methods ────────────────────────────────────────────────────────

    def has_tool(self, tool: str) -> bool:
        """Return True if tool is available in PATH."""
        return shutil.which(tool) is not None

    def shell(
        self,
        cmd: list[str],
        timeout: int = 10,
    ) -> tuple[int, str, str]:
        """
        Run a subprocess safely and return its output.

        Returns:
            (returncode, stdout, stderr) — all strings, never None.
            On timeout or missing binary, returncode is -1 and stderr
            contains a human-readable error description.
        """
        # C locale keeps package-manager output matchable in any language.
        _env = {**os.environ, "LANG": "C", "LC_ALL": "C"}
        try:
            result = subprocess.run(
                cmd,
                capture_output=True,
                text=True,
                timeout=timeout,
                check=False,
                env=_env,
            )
            return result.returncode, result.stdout, result.stderr
        except subprocess.TimeoutExpired:
            return -1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}"
        except FileNotFoundError:
            return -1, "", f"Command not found: {cmd[0]}"
        except Exception as e:
            return -1, "", str(e)

    def _result(
        self,
        status: Status,
        message: str,
        data: dict[str, Any] | None = None,
    ) -> CheckResult:
        return CheckResult(
            id=self.id,
            name=self.name,
            status=status,
            message=message,
            remedy=self.remedy if status != "pass" else "",
            data=data or {},
        )

    def _error(self, message: str) -> CheckResult:
        return self._result("error", message)

    def _pass(self, message: str, data: dict[str, Any] | None = None) -> CheckResult:
        return self._result("pass", message, data=data)

    def _critical(self, message: str, data: dict[str, Any] | None = None) -> CheckResult:
        return self._result("critical", message, data=data)
