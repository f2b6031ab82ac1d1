"""Global keyboard shortcuts → controller operations.

One dispatcher owns every shortcut. Each entry calls a named operation on
the session, the inline editor, the palette or the generate prompt; there
is no other path from a key press to those controllers.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Callable

logger = logging.getLogger(__name__)

MODIFIER_ORDER = ("ctrl", "alt", "shift")
# Cmd on macOS arrives as meta or super depending on the terminal
MODIFIER_ALIASES = {"cmd": "ctrl", "meta": "ctrl", "super": "ctrl", "control": "ctrl", "option": "alt"}


def normalize_chord(key: str) -> str:
    """Canonical "ctrl+shift+p" form for a key name."""
    parts = key.split("+")
    base = parts[-1]
    mods = {MODIFIER_ALIASES.get(m.lower(), m.lower()) for m in parts[:-1] if m}
    if len(base) == 1 and base.isalpha() and base.isupper() and mods:
        mods.add("shift")
    ordered = [m for m in MODIFIER_ORDER if m in mods]
    return "+".join(ordered + [base.lower()])


@dataclass(frozen=True)
class Shortcut:
    chord: str
    action: str
    handler: Callable
    while_typing: bool = False


class KeyDispatcher:
    def __init__(self, session, inline, palette, prompt):
        self.session = session
        self.inline = inline
        self.palette = palette
        self.prompt = prompt
        self.shortcuts = {s.chord: s for s in (
            Shortcut("ctrl+shift+p", "Command palette", palette.open, while_typing=True),
            Shortcut("ctrl+s", "Save", session.save, while_typing=True),
            Shortcut("ctrl+r", "Run", session.run, while_typing=True),
            Shortcut("g", "Generate", prompt.open),
            Shortcut("delete", "Delete", session.delete),
            Shortcut("f2", "Rename", inline.begin_rename_selected),
            Shortcut("a", "New vault", inline.begin_create_vault_here),
            Shortcut("n", "New log", inline.begin_create_log_here),
        )}

    async def dispatch(self, key: str, typing: bool = False) -> bool:
        """Run the shortcut bound to key. Returns False if nothing handled it."""
        shortcut = self.shortcuts.get(normalize_chord(key))
        if shortcut is None:
            return False
        if typing and not shortcut.while_typing:
            return False
        logger.debug("Key %s -> %s", key, shortcut.action)
        result = shortcut.handler()
        if inspect.isawaitable(result):
            await result
        return True
