"""
Selection checklist — pick modules and run-mode toggles in one menu.

Every checklist item is either a ModulePick or a TogglePick. The menu hands
back item positions; resolve_selection() turns them into a Selection by item
type, so a toggle can never be mistaken for a module.

Modules always run in catalog order, whatever order they were ticked in.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Iterable, Optional, Sequence, Union

from rich.console import Console
from simple_term_menu import TerminalMenu

from easy.catalog import Catalog, ModuleDescriptor


class Toggle(enum.Enum):
    STREAM_OUTPUT = "Stream live output during execution"
    PAUSE_BETWEEN = "Pause after each module"


DEFAULT_TOGGLES: tuple[Toggle, ...] = (Toggle.STREAM_OUTPUT, Toggle.PAUSE_BETWEEN)


# ── Checklist items ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class ModulePick:
    module: ModuleDescriptor

    @property
    def label(self) -> str:
        return self.module.label


@dataclass(frozen=True)
class TogglePick:
    toggle: Toggle

    @property
    def label(self) -> str:
        return f"[mode] {self.toggle.value}"


Item = Union[ModulePick, TogglePick]


@dataclass(frozen=True)
class Selection:
    modules: tuple[ModuleDescriptor, ...] = ()
    toggles: frozenset = frozenset()

    @property
    def empty(self) -> bool:
        return not self.modules

    def enabled(self, toggle: Toggle) -> bool:
        return toggle in self.toggles


# ── Pure helpers ──────────────────────────────────────────────────────────────

def build_entries(catalog: Catalog, toggles: Iterable[Toggle] = DEFAULT_TOGGLES) -> list[Item]:
    """Modules first (catalog order), then mode toggles."""
    items: list[Item] = [ModulePick(m) for m in catalog]
    items.extend(TogglePick(t) for t in toggles)
    return items


def resolve_selection(items: Sequence[Item], chosen: Optional[Iterable[int]]) -> Selection:
    """
    Turn chosen item positions into a Selection.

    Modules are deduplicated and sorted by catalog order; toggles become a
    set. None (cancelled menu) resolves to an empty Selection.
    """
    if not chosen:
        return Selection()

    modules: dict[ModuleDescriptor, None] = {}
    toggles: set[Toggle] = set()

    for index in chosen:
        item = items[index]
        if isinstance(item, ModulePick):
            modules[item.module] = None
        elif isinstance(item, TogglePick):
            toggles.add(item.toggle)

    ordered = tuple(sorted(modules, key=lambda m: m.order_key))
    return Selection(modules=ordered, toggles=frozenset(toggles))


# ── Interactive menu ──────────────────────────────────────────────────────────

def prompt_selection(
    catalog: Catalog,
    console: Console,
    toggles: Iterable[Toggle] = DEFAULT_TOGGLES,
) -> Selection:
    """
    Show the blocking checklist and return the operator's Selection.

    Esc / q cancels; submitting with nothing ticked is the same as cancelling.
    """
    items = build_entries(catalog, toggles)

    console.print(
        "  [bold]Select the setup options you want to run[/bold] "
        "[dim](they will execute from top to bottom)[/dim]"
    )
    console.print(
        "  [dim]Space to tick  ·  ↵ Enter to start  ·  Esc to cancel[/dim]"
    )
    console.print()

    menu = TerminalMenu(
        [_menu_entry(item) for item in items],
        multi_select=True,
        multi_select_select_on_accept=False,
        multi_select_empty_ok=True,
        show_multi_select_hint=False,
        multi_select_cursor="[x] ",
        multi_select_cursor_brackets_style=("fg_gray",),
        multi_select_cursor_style=("fg_cyan", "bold"),
        menu_cursor="› ",
        menu_cursor_style=("fg_cyan", "bold"),
        menu_highlight_style=("fg_cyan", "bold"),
        cursor_index=0,
        clear_menu_on_exit=True,
    )
    chosen = menu.show()

    if chosen is None:
        return Selection()
    if isinstance(chosen, int):
        chosen = (chosen,)
    return resolve_selection(items, chosen)


def _menu_entry(item: Item) -> str:
    # "|" separates the label from simple_term_menu's preview data
    return item.label.replace("|", "/")
