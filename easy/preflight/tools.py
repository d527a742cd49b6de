"""
Required tools — present on PATH, or installed through the package manager.

Credentials for the install command are assumed to be available already
(EASY is started from a session that can sudo).
"""

from easy.config import Settings
from easy.preflight.base import BaseCheck, CheckResult


class ToolCheck(BaseCheck):
    """Ensure one command-line tool exists, installing it when missing."""

    install_timeout = 600

    def __init__(self, tool: str, settings: Settings | None = None) -> None:
        super().__init__(settings)
        self.tool = tool
        self.id = f"tool_{tool}"
        self.name = f"{tool.capitalize()} Installed"
        self.scan_description = f"Checking for {tool}"

    @property
    def remedy(self) -> str:
        cmd = " ".join(self.settings.install_command)
        return f"Install it manually with: {cmd} {self.tool}"

    def run(self) -> CheckResult:
        if self.has_tool(self.tool):
            return self._pass(f"{self.tool} is available")

        if not self.settings.install_command:
            return self._critical(f"{self.tool} is not installed")

        cmd = [*self.settings.install_command, self.tool]
        rc, _out, err = self.shell(cmd, timeout=self.install_timeout)

        if self.has_tool(self.tool):
            return self._pass(f"{self.tool} was installed", data={"installed": True})

        detail = err.strip().splitlines()[-1] if err.strip() else f"exit {rc}"
        return self._critical(
            f"{self.tool} is not installed and could not be installed ({detail})"
        )


def tool_checks(settings: Settings) -> list[ToolCheck]:
    return [ToolCheck(tool, settings) for tool in settings.required_tools]
