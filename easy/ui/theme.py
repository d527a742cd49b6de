"""
EASY visual design system.

All colors, styles, and icons as named constants.
Import from here — never hardcode markup strings in other modules.

Palette is selected at import time from the terminal background reported in
COLORFGBG (set by rxvt, Konsole, iTerm2 and others). Unknown → dark palette.
"""

import os

from rich.style import Style
from rich.theme import Theme


# ── Brand ─────────────────────────────────────────────────────────────────────

from easy import __version__

APP_TITLE = "E.A.S.Y. - Effortless Automated Self-hosting for You"
APP_VERSION = __version__


# ── Dark/light detection ──────────────────────────────────────────────────────

def _is_dark_background() -> bool:
    """
    Guess the terminal background from COLORFGBG ("fg;bg" or "fg;default;bg").

    ANSI background 7 (white) and 15 (bright white) are light; anything
    else, or a missing/garbled value, is treated as dark.
    """
    raw = os.environ.get("COLORFGBG", "")
    bg = raw.split(";")[-1].strip()
    if not bg.isdigit():
        return True
    return int(bg) not in (7, 15)


DARK_MODE: bool = _is_dark_background()


# ── Color palette ─────────────────────────────────────────────────────────────

if DARK_MODE:
    COLOR_CRITICAL = "#E05252"      # Warm severity red
    COLOR_WARNING  = "#D4870A"      # Amber
    COLOR_PASS     = "#4DBD74"      # Calm sage-green
    COLOR_BRAND    = "#7B9FD4"      # Periwinkle blue
    COLOR_DIM      = "#787878"      # Medium gray
    COLOR_TEXT     = "#F0F0F0"      # Primary text — near-white

    PROGRESS_BAR_COLOR      = "#7B9FD4"
    PROGRESS_COMPLETE_COLOR = "#4DBD74"

else:
    # WCAG AA contrast (>= 4.5:1) on white backgrounds.
    COLOR_CRITICAL = "#B91C1C"
    COLOR_WARNING  = "#92400E"
    COLOR_PASS     = "#166534"
    COLOR_BRAND    = "#1D4ED8"
    COLOR_DIM      = "#4B5563"
    COLOR_TEXT     = "#0F172A"

    PROGRESS_BAR_COLOR      = "#1D4ED8"
    PROGRESS_COMPLETE_COLOR = "#166534"


# ── Rich styles ───────────────────────────────────────────────────────────────

STYLE_CRITICAL = Style(color=COLOR_CRITICAL, bold=True)
STYLE_PASS     = Style(color=COLOR_PASS,     bold=True)


# ── Status icons ──────────────────────────────────────────────────────────────

ICON_PASS = "✅"
ICON_WARNING = "⚠️ "
ICON_CRITICAL = "🔴"
ICON_ERROR = "❌"

STATUS_ICONS: dict[str, str] = {
    "pass": ICON_PASS,
    "critical": ICON_CRITICAL,
    "error": ICON_ERROR,
}

STATUS_STYLES: dict[str, Style] = {
    "pass": STYLE_PASS,
    "critical": STYLE_CRITICAL,
    "error": STYLE_CRITICAL,
}


# ── Rich Theme ────────────────────────────────────────────────────────────────

EASY_THEME = Theme(
    {
        "critical": f"{COLOR_CRITICAL} bold",
        "warning":  f"{COLOR_WARNING} bold",
        "pass":     f"{COLOR_PASS} bold",
        "dim":      COLOR_DIM,
        "text":     COLOR_TEXT,
    }
)
