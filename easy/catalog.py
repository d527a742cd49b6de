"""
Module catalog — discover installer scripts in the working copy.

A module is any file whose name ends with the configured suffix
(default "_setup.sh"). Its display name is derived from the file name:

    immich_setup.sh        → "Immich"
    auto_updates_setup.sh  → "Auto Updates"

The catalog is built once per run and never mutated afterwards.
"""

from __future__ import annotations

import logging
import os
import re
import stat
from dataclasses import dataclass
from pathlib import Path
from typing import Iterable, Iterator

from easy.config import ManifestEntry
from easy.errors import DuplicateModuleName, EmptyCatalog

logger = logging.getLogger(__name__)


_SEPARATORS = re.compile(r"[_\-.\s]+")
_DESCRIPTION = re.compile(r"^#\s*Description:\s*(.+?)\s*$", re.IGNORECASE)
_HEADER_LINES = 20

_EXEC_BITS = stat.S_IXUSR | stat.S_IXGRP | stat.S_IXOTH


# ── Data model ────────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ModuleDescriptor:
    file_path: Path
    display_name: str
    description: str = ""
    order_key: tuple = ()

    @property
    def label(self) -> str:
        """Checklist label: description when there is one, else the name."""
        if not self.description:
            return self.display_name
        if self.description.lower().startswith(self.display_name.lower()):
            return self.description
        return f"{self.display_name}: {self.description}"


@dataclass(frozen=True)
class Catalog:
    root: Path
    modules: tuple[ModuleDescriptor, ...]

    def __len__(self) -> int:
        return len(self.modules)

    def __iter__(self) -> Iterator[ModuleDescriptor]:
        return iter(self.modules)

    def __getitem__(self, index: int) -> ModuleDescriptor:
        return self.modules[index]

    def names(self) -> list[str]:
        return [m.display_name for m in self.modules]

    def by_name(self, name: str) -> ModuleDescriptor:
        for module in self.modules:
            if module.display_name == name:
                return module
        raise KeyError(name)


# ── Name derivation ───────────────────────────────────────────────────────────

def derive_display_name(filename: str, suffix: str) -> str:
    """
    Strip suffix, turn separators into spaces, capitalise each word.

    Manifest entries need not carry the suffix; for those only the file
    extension is dropped (backup.sh → "Backup").
    """
    if suffix and filename.endswith(suffix):
        stem = filename[: -len(suffix)]
    else:
        stem = os.path.splitext(filename)[0]
    words = [w for w in _SEPARATORS.split(stem) if w]
    return " ".join(w.capitalize() for w in words)


def read_description(path: Path) -> str:
    """Return the `# Description:` header of a script, or '' if it has none."""
    try:
        with path.open(encoding="utf-8", errors="replace") as fh:
            for i, line in enumerate(fh):
                if i >= _HEADER_LINES:
                    break
                match = _DESCRIPTION.match(line.strip())
                if match:
                    return match.group(1)
    except OSError:
        return ""
    return ""


def make_executable(path: Path) -> None:
    """chmod +x, leaving the file alone when it already is."""
    mode = path.stat().st_mode
    if mode & _EXEC_BITS != _EXEC_BITS:
        os.chmod(path, mode | _EXEC_BITS)


# ── Builder ───────────────────────────────────────────────────────────────────

def build_catalog(
    root: Path,
    suffix: str = "_setup.sh",
    discovery: str = "scan",
    manifest: Iterable[ManifestEntry] = (),
) -> Catalog:
    """
    Discover modules under root and return them in catalog order.

    scan      — every file directly under root ending in suffix, sorted by
                display name.
    manifest  — the manifest's files in registration order, skipping any
                that are missing from the working copy.

    Raises:
        DuplicateModuleName: two files derive the same display name.
        EmptyCatalog:        nothing eligible was found.
    """
    if discovery == "manifest":
        candidates = _from_manifest(root, manifest)
    else:
        candidates = _from_scan(root, suffix)

    seen: dict[str, Path] = {}
    modules: list[ModuleDescriptor] = []

    for position, (path, description) in enumerate(candidates):
        name = derive_display_name(path.name, suffix)
        if not name:
            logger.warning("skipping %s: nothing left of its name after removing %r", path.name, suffix)
            continue
        if name in seen:
            raise DuplicateModuleName(name, seen[name], path)
        seen[name] = path

        try:
            make_executable(path)
        except OSError as e:
            logger.warning("cannot make %s executable: %s", path.name, e)
        modules.append(
            ModuleDescriptor(
                file_path=path,
                display_name=name,
                description=description or read_description(path),
                order_key=(position,) if discovery == "manifest" else (name.lower(), name),
            )
        )

    if not modules:
        raise EmptyCatalog(f"No setup modules found in {root}")

    modules.sort(key=lambda m: m.order_key)
    logger.info("catalog: %s", ", ".join(m.display_name for m in modules))
    return Catalog(root=root, modules=tuple(modules))


def _from_scan(root: Path, suffix: str) -> list[tuple[Path, str]]:
    try:
        entries = sorted(root.iterdir())
    except OSError:
        return []
    return [(p, "") for p in entries if p.name.endswith(suffix) and p.is_file()]


def _from_manifest(root: Path, manifest: Iterable[ManifestEntry]) -> list[tuple[Path, str]]:
    found = []
    for entry in manifest:
        path = root / entry.file
        if path.is_file():
            found.append((path, entry.description))
        else:
            logger.info("manifest module %s is not in the working copy", entry.file)
    return found
