"""
Source synchronizer — keep the local working copy in line with the remote.

One reconciliation policy is active per deployment (Settings.sync_policy):

  reclone — discard-and-reclone. The working copy is replaced by a fresh
            clone on every run. Local edits are always lost.
  merge   — preserve-and-merge. Local edits are stashed, the remote history
            is replayed with `git pull --rebase`, then the stash is popped.
            A conflicting pop is reported as MergeConflict and the run goes on.
            A failed update puts the copy back as it was and raises SyncError;
            a valid working copy is never deleted under this policy.

Whatever the policy, a path that exists but is not a git working copy is
replaced by a fresh clone. Fresh clones are staged beside the target and
swapped in only once complete, so an unreachable remote never leaves the
target missing. The resulting path is returned to the caller; the process
working directory is never changed.
"""

from __future__ import annotations

import enum
import logging
import os
import shutil
import subprocess
import tempfile
from abc import ABC, abstractmethod
from dataclasses import dataclass
from pathlib import Path

from easy.errors import MergeConflict, SyncError

logger = logging.getLogger(__name__)


GIT_TIMEOUT = 300

_STASH_MESSAGE = "easy: local changes before sync"


# ── Data model ────────────────────────────────────────────────────────────────

class SyncState(enum.Enum):
    ABSENT = "absent"
    CLEAN = "clean"
    DIRTY = "dirty"
    INVALID = "invalid"


@dataclass(frozen=True)
class WorkingCopy:
    path: Path
    state_before: SyncState
    revision: str = ""
    conflict: MergeConflict | None = None


# ── git plumbing ──────────────────────────────────────────────────────────────

def git(args: list[str], cwd: Path | None = None, timeout: int = GIT_TIMEOUT) -> tuple[int, str, str]:
    """
    Run git with the given arguments and return (returncode, stdout, stderr).

    Never raises: a missing binary or timeout is reported as returncode -1.
    Prompts are disabled so an unreachable or private remote fails fast
    instead of hanging on a credential request.
    """
    env = {**os.environ, "LANG": "C", "LC_ALL": "C", "GIT_TERMINAL_PROMPT": "0"}
    # stash and rebase record commits; they need an identity even on a fresh host
    env.setdefault("GIT_AUTHOR_NAME", "EASY")
    env.setdefault("GIT_AUTHOR_EMAIL", "easy@localhost")
    env.setdefault("GIT_COMMITTER_NAME", env["GIT_AUTHOR_NAME"])
    env.setdefault("GIT_COMMITTER_EMAIL", env["GIT_AUTHOR_EMAIL"])

    cmd = ["git", *args]
    try:
        result = subprocess.run(
            cmd,
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            check=False,
            env=env,
        )
        return result.returncode, result.stdout, result.stderr
    except subprocess.TimeoutExpired:
        return -1, "", f"Command timed out after {timeout}s: {' '.join(cmd)}"
    except FileNotFoundError:
        return -1, "", "Command not found: git"
    except OSError as e:
        return -1, "", str(e)


def detect_state(path: Path) -> SyncState:
    """Classify the target path as ABSENT, INVALID, CLEAN or DIRTY."""
    if not path.exists() and not path.is_symlink():
        return SyncState.ABSENT
    if not path.is_dir() or not (path / ".git").exists():
        return SyncState.INVALID

    rc, out, _ = git(["rev-parse", "--show-toplevel"], cwd=path)
    if rc != 0 or Path(out.strip()).resolve() != path.resolve():
        return SyncState.INVALID

    rc, out, _ = git(["status", "--porcelain"], cwd=path)
    if rc != 0:
        return SyncState.INVALID
    return SyncState.DIRTY if out.strip() else SyncState.CLEAN


def head_revision(path: Path) -> str:
    rc, out, _ = git(["rev-parse", "HEAD"], cwd=path)
    return out.strip() if rc == 0 else ""


def clone(url: str, path: Path) -> None:
    """Fetch a full copy of url into path. Raises SyncError on failure."""
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise SyncError(f"Cannot create {path.parent}: {e}") from e

    logger.info("cloning %s into %s", url, path)
    rc, _out, err = git(["clone", url, str(path)])
    if rc != 0:
        raise SyncError(f"Could not clone {url} into {path}: {_last_line(err) or f'git exit {rc}'}")


def remove_tree(path: Path) -> None:
    """
    Delete path and everything below it.

    Installers run privileged commands inside the working copy, so root-owned
    files are expected; those are removed with sudo. Raises SyncError if the
    path survives both attempts.
    """
    if not path.exists() and not path.is_symlink():
        return

    try:
        if path.is_dir() and not path.is_symlink():
            shutil.rmtree(path)
        else:
            path.unlink()
        return
    except PermissionError:
        logger.info("permission denied removing %s, retrying with sudo", path)
    except OSError as e:
        raise SyncError(f"Cannot remove {path}: {e}") from e

    try:
        result = subprocess.run(
            ["sudo", "rm", "-rf", "--", str(path)],
            capture_output=True, text=True, timeout=120, check=False,
        )
    except (OSError, subprocess.TimeoutExpired) as e:
        raise SyncError(f"Cannot remove {path}: {e}") from e

    if result.returncode != 0 or path.exists():
        raise SyncError(f"Cannot remove {path}: {_last_line(result.stderr) or 'permission denied'}")


# ── Policies ──────────────────────────────────────────────────────────────────

class SyncPolicy(ABC):
    """How an existing, valid working copy is brought up to date."""

    name: str = "base"

    def synchronize(self, url: str, path: Path) -> WorkingCopy:
        """
        Guarantee path holds a working copy matching the remote tip.

        Raises SyncError when that cannot be achieved. A remote that cannot
        be reached leaves whatever was at path untouched.
        """
        state = detect_state(path)
        logger.info("working copy %s is %s (policy: %s)", path, state.value, self.name)

        if state is SyncState.ABSENT:
            clone(url, path)
            return WorkingCopy(path, state, head_revision(path))

        if state is SyncState.INVALID:
            logger.warning("%s is not a git working copy, replacing it with a fresh clone", path)
            return self._reclone(url, path, state)

        return self.reconcile(url, path, state)

    @abstractmethod
    def reconcile(self, url: str, path: Path, state: SyncState) -> WorkingCopy:
        """Update a CLEAN or DIRTY working copy."""

    def _reclone(self, url: str, path: Path, state: SyncState) -> WorkingCopy:
        """
        Clone into a staging directory beside path, then swap it in.

        The old tree is only removed once the new clone exists, so an
        unreachable remote leaves the previous copy where it was.
        """
        try:
            staging = Path(tempfile.mkdtemp(prefix=f".{path.name}-", dir=path.parent))
        except OSError as e:
            raise SyncError(f"Cannot create a staging directory beside {path}: {e}") from e

        try:
            fresh = staging / path.name
            clone(url, fresh)
            remove_tree(path)
            try:
                fresh.rename(path)
            except OSError as e:
                raise SyncError(f"Cannot move the new clone into {path}: {e}") from e
        finally:
            shutil.rmtree(staging, ignore_errors=True)

        return WorkingCopy(path, state, head_revision(path))


class RecloneSync(SyncPolicy):
    """Discard-and-reclone: the catalog is owned entirely by the remote."""

    name = "reclone"

    def reconcile(self, url: str, path: Path, state: SyncState) -> WorkingCopy:
        if state is SyncState.DIRTY:
            logger.info("discarding local modifications in %s", path)
        return self._reclone(url, path, state)


class MergeSync(SyncPolicy):
    """
    Preserve-and-merge: stash, rebase onto the remote, pop.

    A valid working copy is never deleted. If the update cannot be applied
    the copy is put back as it was, local changes included, and SyncError
    is raised.
    """

    name = "merge"

    def reconcile(self, url: str, path: Path, state: SyncState) -> WorkingCopy:
        stashed = False
        if state is SyncState.DIRTY:
            rc, _out, err = git(
                ["stash", "push", "--include-untracked", "-m", _STASH_MESSAGE], cwd=path
            )
            if rc != 0:
                raise SyncError(
                    f"Could not set aside local changes in {path}: "
                    f"{_last_line(err) or f'git exit {rc}'}. The working copy was not touched."
                )
            stashed = True

        rc, _out, err = git(["pull", "--rebase"], cwd=path)
        if rc != 0:
            git(["rebase", "--abort"], cwd=path)
            detail = _last_line(err) or f"git exit {rc}"
            kept = "Local changes were kept."
            if stashed and self._restore(path) is not None:
                kept = "Local changes are kept in `git stash list`."
            raise SyncError(f"Could not update {path} from {url}: {detail}. {kept}")

        conflict = None
        if stashed:
            conflict = self._restore(path)

        return WorkingCopy(path, state, head_revision(path), conflict)

    def _restore(self, path: Path) -> MergeConflict | None:
        """Reapply stashed changes; a conflict is reported, not raised."""
        rc, _out, err = git(["stash", "pop"], cwd=path)
        if rc == 0:
            return None

        conflict = MergeConflict(
            f"Local changes in {path} conflict with the update. "
            "They are kept in `git stash list`; resolve them manually."
        )
        logger.warning("%s (%s)", conflict, _last_line(err))
        return conflict


_POLICIES: dict[str, type[SyncPolicy]] = {
    RecloneSync.name: RecloneSync,
    MergeSync.name: MergeSync,
}


def policy_for(name: str) -> SyncPolicy:
    try:
        return _POLICIES[name]()
    except KeyError:
        raise SyncError(f"Unknown sync policy {name!r}") from None


def synchronize(url: str, path: Path, policy: SyncPolicy | str = "reclone") -> WorkingCopy:
    """Convenience wrapper: resolve the policy by name and synchronize."""
    if isinstance(policy, str):
        policy = policy_for(policy)
    return policy.synchronize(url, path.expanduser())


def _last_line(text: str) -> str:
    lines = [line for line in text.strip().splitlines() if line.strip()]
    return lines[-1].strip() if lines else ""
