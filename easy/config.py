"""
Config file loading for EASY.

Reads $EASY_CONFIG or ~/.config/easy/config.toml and returns a Settings value.
Never raises — a missing file, parse errors, or bad shapes fall back to the
built-in defaults (per key, so one bad value does not discard the rest).
"""

from __future__ import annotations

import os
from dataclasses import dataclass, field, replace
from pathlib import Path
from typing import Any

_CONFIG_PATH = Path.home() / ".config" / "easy" / "config.toml"

SYNC_POLICIES = ("reclone", "merge")
DISCOVERY_MODES = ("scan", "manifest")


@dataclass(frozen=True)
class ManifestEntry:
    file: str
    description: str = ""


DEFAULT_MANIFEST: tuple[ManifestEntry, ...] = (
    ManifestEntry(
        "immich_setup.sh",
        "Immich: Self-hosted photo & video backup & management.",
    ),
    ManifestEntry(
        "nextcloud_setup.sh",
        "Nextcloud: Self-hosted file sync & share for secure storage.",
    ),
    ManifestEntry(
        "auto_updates_setup.sh",
        "Auto Updates: Automatically updates your container apps and applies security patches.",
    ),
)


@dataclass(frozen=True)
class Settings:
    repo_url: str = "https://github.com/doughty247/EASY.git"
    target_dir: Path = field(default_factory=lambda: Path.home() / "EASY")
    sync_policy: str = "reclone"
    discovery: str = "scan"
    module_suffix: str = "_setup.sh"
    manifest: tuple[ManifestEntry, ...] = DEFAULT_MANIFEST
    supported_platforms: tuple[str, ...] = ("fedora",)
    required_tools: tuple[str, ...] = ("git",)
    install_command: tuple[str, ...] = ("sudo", "dnf", "install", "-y")
    relay_grace_period: float = 5.0
    tail_lines: int = 200


def config_path() -> Path:
    """Return the active config file path ($EASY_CONFIG wins)."""
    override = os.environ.get("EASY_CONFIG")
    return Path(override).expanduser() if override else _CONFIG_PATH


def load_config(path: Path | None = None) -> Settings:
    """
    Load and return EASY settings from a TOML file.

    Always returns a valid Settings, never raises.
    """
    defaults = Settings()
    cfg_path = path or config_path()

    if not cfg_path.is_file():
        return defaults

    try:
        raw = cfg_path.read_bytes()
    except OSError:
        return defaults

    try:
        import tomllib
    except ModuleNotFoundError:
        try:
            import tomli as tomllib  # type: ignore[no-redef]
        except ModuleNotFoundError:
            return defaults

    try:
        data = tomllib.loads(raw.decode("utf-8"))
    except Exception:
        return defaults

    return replace(defaults, **_coerce(data))


# ── Internal ─────────────────────────────────────────────────────────────────

def _coerce(data: dict[str, Any]) -> dict[str, Any]:
    """Pick the recognised keys out of parsed TOML, dropping bad shapes."""
    out: dict[str, Any] = {}

    for key in ("repo_url", "module_suffix"):
        value = data.get(key)
        if isinstance(value, str) and value:
            out[key] = value

    target = data.get("target_dir")
    if isinstance(target, str) and target:
        out["target_dir"] = Path(target).expanduser()

    policy = data.get("sync_policy")
    if policy in SYNC_POLICIES:
        out["sync_policy"] = policy

    discovery = data.get("discovery")
    if discovery in DISCOVERY_MODES:
        out["discovery"] = discovery

    for key in ("supported_platforms", "required_tools", "install_command"):
        value = data.get(key)
        if isinstance(value, list) and all(isinstance(v, str) for v in value):
            out[key] = tuple(value)

    grace = data.get("relay_grace_period")
    if isinstance(grace, (int, float)) and not isinstance(grace, bool) and grace >= 0:
        out["relay_grace_period"] = float(grace)

    tail = data.get("tail_lines")
    if isinstance(tail, int) and not isinstance(tail, bool) and tail > 0:
        out["tail_lines"] = tail

    manifest = data.get("manifest")
    if isinstance(manifest, list):
        entries = []
        for item in manifest:
            if isinstance(item, str):
                entries.append(ManifestEntry(item))
            elif isinstance(item, dict) and isinstance(item.get("file"), str):
                entries.append(
                    ManifestEntry(item["file"], str(item.get("description", "")))
                )
            else:
                entries = None
                break
        if entries:
            out["manifest"] = tuple(entries)

    return out
