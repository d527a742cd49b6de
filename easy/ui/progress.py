"""
Progress bar renderer.

Stateless — takes (completed, total), returns a rich Text.
The caller (LiveOutput) owns state and calls this each frame.

Output:  [████████░░░░░░░░░░░░░░] 33%  ·  1 of 3 modules
"""

from rich.text import Text

from easy.ui.theme import COLOR_DIM, PROGRESS_BAR_COLOR, PROGRESS_COMPLETE_COLOR


BAR_WIDTH = 22


def render_progress(completed: int, total: int, unit: str = "modules") -> Text:
    """
    Return a styled progress bar as a rich Text object.

    Args:
        completed: number of modules finished
        total:     total modules selected
        unit:      plural noun shown after the count
    """
    if total == 0:
        return Text(f"  No {unit} to run", style=COLOR_DIM)

    pct = min(completed / total, 1.0)
    filled = round(BAR_WIDTH * pct)
    empty = BAR_WIDTH - filled

    done = completed >= total
    bar_color = PROGRESS_COMPLETE_COLOR if done else PROGRESS_BAR_COLOR
    pct_color = f"{PROGRESS_COMPLETE_COLOR} bold" if done else f"bold {PROGRESS_BAR_COLOR}"

    t = Text()
    t.append("  [", style=COLOR_DIM)
    t.append("█" * filled, style=bar_color)
    t.append("░" * empty, style=COLOR_DIM)
    t.append("]  ", style=COLOR_DIM)
    t.append(f"{int(pct * 100)}%", style=pct_color)
    t.append(f"  ·  {completed} of {total} {unit}", style=COLOR_DIM)

    return t
