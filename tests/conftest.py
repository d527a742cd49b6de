"""
Shared pytest fixtures.
"""
import os
import shutil
import stat
import subprocess
from io import StringIO
from pathlib import Path

import pytest
from rich.console import Console

from easy.ui.theme import EASY_THEME


requires_git = pytest.mark.skipif(shutil.which("git") is None, reason="git not installed")

GIT_ENV = {
    **os.environ,
    "GIT_AUTHOR_NAME": "Test",
    "GIT_AUTHOR_EMAIL": "test@example.com",
    "GIT_COMMITTER_NAME": "Test",
    "GIT_COMMITTER_EMAIL": "test@example.com",
    "GIT_CONFIG_NOSYSTEM": "1",
}


def make_console() -> tuple[Console, StringIO]:
    """Return a themed Console that captures output in a StringIO buffer."""
    buf = StringIO()
    con = Console(file=buf, highlight=False, no_color=True, width=100, theme=EASY_THEME)
    return con, buf


def write_module(directory: Path, filename: str, body: str = "exit 0", executable: bool = True) -> Path:
    """Write a /bin/sh module script and return its path."""
    path = directory / filename
    path.write_text(f"#!/bin/sh\n{body}\n")
    if executable:
        path.chmod(path.stat().st_mode | stat.S_IXUSR)
    else:
        path.chmod(0o644)
    return path


def run_git(cwd: Path, *args: str) -> str:
    result = subprocess.run(
        ["git", *args], cwd=cwd, env=GIT_ENV, check=True, capture_output=True, text=True,
    )
    return result.stdout


@pytest.fixture
def console():
    return make_console()


@pytest.fixture
def remote_repo(tmp_path):
    """A git repository with one module and a notes file, playing the remote."""
    remote = tmp_path / "remote"
    remote.mkdir()
    run_git(remote, "init", "-q")
    write_module(remote, "alpha_setup.sh", "echo alpha")
    (remote / "notes.txt").write_text("line one\nline two\n")
    run_git(remote, "add", ".")
    run_git(remote, "commit", "-q", "-m", "initial")
    return remote
