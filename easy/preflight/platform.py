"""
Host platform detection.

EASY's installers target one distribution family; running them anywhere else
would half-install services with the wrong package manager.
"""

import shlex
from pathlib import Path

from easy.preflight.base import BaseCheck, CheckResult


OS_RELEASE = Path("/etc/os-release")


def parse_os_release(text: str) -> dict[str, str]:
    """
    Parse os-release KEY=VALUE lines into a dict.

    Values may be quoted with single or double quotes; comments and blank
    lines are ignored, as are malformed lines.
    """
    info: dict[str, str] = {}
    for line in text.splitlines():
        line = line.strip()
        if not line or line.startswith("#") or "=" not in line:
            continue
        key, _, raw = line.partition("=")
        try:
            parts = shlex.split(raw)
        except ValueError:
            continue
        info[key.strip()] = parts[0] if parts else ""
    return info


class PlatformCheck(BaseCheck):
    id = "platform"
    name = "Host Platform"
    scan_description = "Checking that this machine runs a supported Linux distribution"

    os_release_path: Path = OS_RELEASE

    @property
    def remedy(self) -> str:
        supported = ", ".join(p.capitalize() for p in self.settings.supported_platforms)
        return f"EASY is designed for {supported} only."

    def run(self) -> CheckResult:
        try:
            text = self.os_release_path.read_text(encoding="utf-8", errors="replace")
        except OSError:
            return self._critical("OS detection failed (no readable os-release file)")

        info = parse_os_release(text)
        distro_id = info.get("ID", "").lower()
        pretty = info.get("PRETTY_NAME") or info.get("NAME") or distro_id or "Unknown"

        if not distro_id:
            return self._critical("OS detection failed (os-release has no ID)")

        if distro_id not in self.settings.supported_platforms:
            return self._critical(f"{pretty} is not supported", data={"id": distro_id})

        return self._pass(f"{pretty}", data={"id": distro_id})


ALL_CHECKS = [PlatformCheck]
