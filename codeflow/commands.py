"""Command registry, palette state and the generate prompt.

The palette is only a dispatch surface: running a command always closes
it, whatever the command did.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional, Union

from .errors import WorkspaceError
from .languages import LANGUAGE_LABELS
from .notifications import NotificationQueue

logger = logging.getLogger(__name__)

Handler = Callable[[], Union[Any, Awaitable[Any]]]


@dataclass(frozen=True)
class Command:
    id: str
    label: str
    hint: str
    run: Handler


class CommandRegistry:
    """Fixed, ordered list of commands with case-insensitive label search."""

    def __init__(self, commands):
        self._commands = list(commands)
        ids = [c.id for c in self._commands]
        if len(ids) != len(set(ids)):
            raise ValueError("duplicate command id")

    def __iter__(self):
        return iter(self._commands)

    def __len__(self):
        return len(self._commands)

    def get(self, command_id: str) -> Optional[Command]:
        return next((c for c in self._commands if c.id == command_id), None)

    def filter(self, text: str) -> list[Command]:
        needle = text.lower()
        return [c for c in self._commands if needle in c.label.lower()]


async def _call(handler: Handler) -> Any:
    result = handler()
    if inspect.isawaitable(result):
        result = await result
    return result


class CommandPalette:
    """Open/filter/select state of the command palette."""

    def __init__(self, registry: CommandRegistry, notifications: NotificationQueue):
        self.registry = registry
        self._notifications = notifications
        self.is_open = False
        self.filter_text = ""
        self.selected = 0

    @property
    def matches(self) -> list[Command]:
        return self.registry.filter(self.filter_text)

    @property
    def current(self) -> Optional[Command]:
        matches = self.matches
        if not matches:
            return None
        return matches[self.selected % len(matches)]

    def open(self) -> None:
        self.is_open = True
        self.filter_text = ""
        self.selected = 0

    def close(self) -> None:
        self.is_open = False
        self.filter_text = ""
        self.selected = 0

    def set_filter(self, text: str) -> None:
        if text != self.filter_text:
            self.selected = 0
        self.filter_text = text

    def move_down(self) -> None:
        n = len(self.matches)
        if n:
            self.selected = (self.selected + 1) % n

    def move_up(self) -> None:
        n = len(self.matches)
        if n:
            self.selected = (self.selected - 1 + n) % n

    def hover(self, index: int) -> None:
        n = len(self.matches)
        if 0 <= index < n:
            self.selected = index

    async def execute(self, index: Optional[int] = None) -> Optional[Command]:
        """Run the selected (or given) match, then close. No match is a no-op."""
        matches = self.matches
        if index is not None:
            self.hover(index)
        command = matches[self.selected] if 0 <= self.selected < len(matches) else None
        try:
            if command is not None:
                logger.debug("Palette: running %s", command.id)
                await _call(command.run)
        except WorkspaceError as e:
            self._notifications.error(e.message)
        finally:
            self.close()
        return command


class GeneratePrompt:
    """Draft state of the "Generate Code" overlay."""

    def __init__(self, session):
        self._session = session
        self.is_open = False
        self.text = ""
        self.language: Optional[str] = None

    def open(self) -> None:
        self.is_open = True

    def cancel(self) -> None:
        self.is_open = False
        self.text = ""

    def set_text(self, text: str) -> None:
        self.text = text

    def set_language(self, language: Optional[str]) -> None:
        """Explicit target language; None follows the open Log."""
        if language is not None and language not in LANGUAGE_LABELS:
            raise ValueError(f"unknown language: {language!r}")
        self.language = language

    async def submit(self, language: Optional[str] = None) -> bool:
        language = language or self.language
        if not self.text.strip():
            return await self._session.generate(self.text, language)
        self.is_open = False
        ok = await self._session.generate(self.text, language)
        if ok:
            self.text = ""
        return ok


def build_commands(session, store, inline, prompt, notifications) -> CommandRegistry:
    """The palette's command list, wired straight to controller operations."""

    async def delete_highlighted():
        node = store.highlighted
        if node is None:
            notifications.info("Select a vault or log in the explorer first")
            return
        await session.delete_node(node)

    return CommandRegistry([
        Command("create-space", "Create Space", "Create a new workspace", inline.begin_create_space),
        Command("create-vault", "Create Vault in current Space", "Create a new folder (A)",
                inline.begin_create_vault_here),
        Command("create-log", "Create Log in selected Vault", "Create a new code file (N)",
                inline.begin_create_log_here),
        Command("rename", "Rename Selected", "Rename the highlighted item (F2)", inline.begin_rename_selected),
        Command("rename-space", "Rename Space", "Rename the current space", inline.begin_rename_space),
        Command("save", "Save", "Save current file (Ctrl/Cmd+S)", session.save),
        Command("run", "Run Code", "Execute current file (Ctrl/Cmd+R)", session.run),
        Command("generate", "Generate Code", "AI code generation (G)", prompt.open),
        Command("delete", "Delete Selected", "Delete current file (Del)", session.delete),
        Command("delete-node", "Delete Highlighted Item", "Delete the vault or log under the cursor",
                delete_highlighted),
        Command("clear-output", "Clear Output", "Empty the output panel", session.clear_output),
        Command("refresh", "Refresh Explorer", "Reload the tree from the backend", store.refresh),
    ])
