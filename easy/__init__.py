"""EASY — Effortless Automated Self-hosting for You"""

from importlib.metadata import version, PackageNotFoundError

try:
    __version__ = version("easy-selfhost")
except PackageNotFoundError:
    __version__ = "dev"

__author__ = "EASY"
