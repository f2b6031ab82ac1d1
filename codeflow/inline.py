"""Inline edit controller — create/rename directly in the explorer.

At most one inline editor is open across the whole tree: the controller
holds a single mode value, and entering a mode replaces whatever was open.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional, Union

from .errors import ValidationError, WorkspaceError
from .models import Log, TreeNode
from .notifications import NotificationQueue
from .tree import WorkspaceTreeStore
from .validation import validate_container_name, validate_log_name, validator_for

if TYPE_CHECKING:
    from .session import SessionController

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CreateSpace:
    placeholder: str = "Space name"


@dataclass(frozen=True)
class CreateVault:
    parent_id: Optional[str] = None
    placeholder: str = "Vault name"


@dataclass(frozen=True)
class CreateLog:
    vault_id: str
    placeholder: str = "Filename, e.g. main.py"


@dataclass(frozen=True)
class Rename:
    node: TreeNode

    @property
    def placeholder(self) -> str:
        return f"Rename {self.node.name}"


EditMode = Union[CreateSpace, CreateVault, CreateLog, Rename]


class InlineEditController:
    """Single shared draft for the explorer's inline name input."""

    def __init__(self, store: WorkspaceTreeStore, notifications: NotificationQueue,
                 session: Optional["SessionController"] = None):
        self._store = store
        self._notifications = notifications
        self._session = session
        self.mode: Optional[EditMode] = None
        self.draft = ""
        self.error: Optional[str] = None
        self.submitting = False

    @property
    def is_open(self) -> bool:
        return self.mode is not None

    def _enter(self, mode: EditMode, initial: str = "") -> EditMode:
        if self.mode is not None:
            logger.debug("Replacing open inline editor %r", self.mode)
        self.mode = mode
        self.draft = initial
        self.error = None
        self.submitting = False
        return mode

    def begin_create_space(self) -> EditMode:
        return self._enter(CreateSpace())

    def begin_create_vault(self, parent_id: Optional[str] = None) -> EditMode:
        return self._enter(CreateVault(parent_id))

    def begin_create_log(self, vault_id: str) -> EditMode:
        return self._enter(CreateLog(vault_id))

    def begin_rename(self, node: TreeNode) -> EditMode:
        return self._enter(Rename(node), initial=node.name)

    def set_draft(self, text: str) -> None:
        self.draft = text
        self.error = None

    def cancel(self) -> None:
        """Escape or focus loss: the draft is discarded."""
        self.mode = None
        self.draft = ""
        self.error = None
        self.submitting = False

    def _validate(self, mode: EditMode, name: str) -> Optional[str]:
        if not name:
            return "Name cannot be empty"
        if isinstance(mode, CreateLog):
            return validate_log_name(name)
        if isinstance(mode, Rename):
            return validator_for(mode.node.type)(name)
        return validate_container_name(name)

    async def commit(self) -> bool:
        """Enter: validate, then call the backend. Returns True once closed."""
        mode = self.mode
        if mode is None or self.submitting:
            return False
        name = self.draft.strip()

        problem = self._validate(mode, name)
        if problem:
            self.error = problem
            return False

        if isinstance(mode, Rename) and name == mode.node.name:
            self.cancel()
            return True

        self.submitting = True
        self.error = None
        try:
            created = await self._apply(mode, name)
        except ValidationError as e:
            self.error = e.message
            return False
        except WorkspaceError as e:
            # Keep the editor open so the typed name is not lost
            self.error = e.message
            self._notifications.error(e.message or "Failed to save")
            return False
        finally:
            self.submitting = False

        if self.mode is mode:
            self.cancel()
        if isinstance(created, Log) and self._session is not None and not isinstance(mode, Rename):
            await self._session.select_log(created.id)
        return True

    async def _apply(self, mode: EditMode, name: str):
        if isinstance(mode, CreateSpace):
            space = await self._store.create_space(name)
            self._notifications.success(f"Created space {space.name}")
            return space
        if isinstance(mode, CreateVault):
            vault = await self._store.create_vault(name, mode.parent_id)
            self._notifications.success(f"Created vault {vault.name}")
            return vault
        if isinstance(mode, CreateLog):
            log = await self._store.create_log(mode.vault_id, name)
            self._notifications.success(f"Created {log.name}")
            return log
        record = await self._store.rename_node(mode.node, name)
        if isinstance(record, Log) and self._session is not None:
            self._session.apply_rename(record)
        self._notifications.success(f"Renamed to {name}")
        return record

    # ── Targets taken from the explorer cursor ──────────────────────────

    def _target_vault_id(self) -> Optional[str]:
        """Vault a new Log goes into: the highlighted one, else the open Log's."""
        node = self._store.highlighted
        if node is not None:
            if node.is_vault:
                return node.id
            parent = self._store.parent_of(node.id)
            if parent is not None and parent.is_vault:
                return parent.id
        if self._session is not None and self._session.document is not None:
            return self._session.document.vault_id
        return None

    def begin_create_vault_here(self) -> Optional[EditMode]:
        if self._store.selected_space is None:
            self._notifications.info("Create a space first")
            return None
        node = self._store.highlighted
        return self.begin_create_vault(node.id if node is not None and node.is_vault else None)

    def begin_create_log_here(self) -> Optional[EditMode]:
        vault_id = self._target_vault_id()
        if vault_id is None:
            self._notifications.info("Select a vault first")
            return None
        return self.begin_create_log(vault_id)

    def begin_rename_space(self) -> Optional[EditMode]:
        space = self._store.selected_space
        if space is None:
            self._notifications.info("Create a space first")
            return None
        return self.begin_rename(TreeNode(id=space.id, name=space.name, type="space"))

    def begin_rename_selected(self) -> Optional[EditMode]:
        node = self._store.highlighted
        if node is None and self._session is not None and self._session.document is not None:
            node = self._store.find_node(self._session.document.id)
        if node is None:
            self._notifications.info("Select something to rename")
            return None
        return self.begin_rename(node)
