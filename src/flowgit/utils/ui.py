"""User interface utilities for flowgit."""

import os
import sys
from typing import List, Optional, Sequence

import asciitree  # type: ignore
from simple_term_menu import TerminalMenu  # type: ignore

from flowgit.utils.config import get_config
from flowgit.utils.logging import IS_TERMINAL, cout, die


def prompt(message: str, default_value: Optional[str] = None) -> str:
    """Prompt the user for input."""
    cout(message)
    if default_value is not None:
        cout("({})", default_value, fg="gray")
        cout(" ")
    while True:
        sys.stderr.flush()
        r = input().strip()

        if len(r) > 0:
            return r
        if default_value:
            return default_value


def confirm(msg: str = "Proceed?", default: bool = True) -> bool:
    """Ask a yes/no question. With skip_confirm set the default is taken."""
    if get_config().skip_confirm:
        return default
    if not os.isatty(0):
        die("Standard input is not a terminal, set skip_confirm to accept defaults")
    hint = "[Y/n]" if default else "[y/N]"
    print()
    while True:
        cout("{} {} ", msg, hint, fg="yellow")
        sys.stderr.flush()
        r = input().strip().lower()
        if not r:
            return default
        if r in ("yes", "y"):
            return True
        if r in ("no", "n"):
            return False
        cout("Please answer yes or no\n", fg="red")


def menu_choose(entries: Sequence[str], title: Optional[str] = None, cursor_index: int = 0) -> int:
    """Display a single-choice menu and return the chosen index."""
    if not IS_TERMINAL:
        die("May only choose from menu when using a terminal")
    menu = TerminalMenu(list(entries), title=title, cursor_index=cursor_index)
    idx = menu.show()
    if idx is None:
        die("Aborted")
    return idx


def menu_choose_many(entries: Sequence[str], title: Optional[str] = None) -> List[int]:
    """Display a multi-select menu and return the chosen indices."""
    if not IS_TERMINAL:
        die("May only choose from menu when using a terminal")
    menu = TerminalMenu(
        list(entries),
        title=title,
        multi_select=True,
        show_multi_select_hint=True,
        multi_select_select_on_accept=False,
        multi_select_empty_ok=True,
    )
    chosen = menu.show()
    if chosen is None:
        return []
    return list(chosen)


# Print upside down, so trunk sits at the bottom like in "flowgit down"
_ASCII_TREE_BOX = {
    "UP_AND_RIGHT": "┌",
    "HORIZONTAL": "─",
    "VERTICAL": "│",
    "VERTICAL_AND_RIGHT": "├",
}
_ASCII_TREE_STYLE = asciitree.drawing.BoxStyle(gfx=_ASCII_TREE_BOX)
ASCII_TREE = asciitree.LeftAligned(draw=_ASCII_TREE_STYLE)
