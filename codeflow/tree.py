"""Workspace tree store — Spaces and the Vault/Log forest of the selected one.

The forest is never patched locally. Every successful create, rename or
delete is followed by a full refetch, and each fetch replaces the snapshot
wholesale. Expansion state lives beside the snapshot, keyed by node id, so
it survives refetches.
"""

from __future__ import annotations

import logging
from typing import Iterator, Optional

from .api import WorkspaceClient
from .errors import ValidationError, WorkspaceError
from .models import Log, Space, TreeNode, Vault
from .notifications import NotificationQueue

logger = logging.getLogger(__name__)


class WorkspaceTreeStore:
    """In-memory cache of the Space list and the selected Space's tree."""

    def __init__(self, client: WorkspaceClient, notifications: NotificationQueue):
        self._client = client
        self._notifications = notifications
        self.spaces: list[Space] = []
        self.selected_space: Optional[Space] = None
        self.tree: list[TreeNode] = []
        self.expanded: set[str] = set()
        self.highlighted: Optional[TreeNode] = None
        self._fetch_seq = 0

    # ── Loading ─────────────────────────────────────────────────────────

    async def load_spaces(self) -> list[Space]:
        """Fetch the Space list; select the first one if nothing is selected.

        On failure the user is told, and both the list and the selection
        stay as they were.
        """
        try:
            spaces = await self._client.list_spaces()
        except WorkspaceError as e:
            self._notifications.error(e.message or "Failed to load spaces. Is the backend running?")
            return self.spaces

        self.spaces = spaces
        current = self.selected_space
        if current is not None:
            fresh = next((s for s in spaces if s.id == current.id), None)
            if fresh is not None:
                self.selected_space = fresh
                return spaces
        if spaces:
            await self.select_space(spaces[0])
        else:
            self.selected_space = None
            self.tree = []
        return spaces

    async def select_space(self, space: Space) -> list[TreeNode]:
        self.selected_space = space
        self.highlighted = None
        return await self.load_tree(space.id)

    async def load_tree(self, space_id: str) -> list[TreeNode]:
        """Fetch one Space's forest. Never raises: failures give an empty forest."""
        self._fetch_seq += 1
        seq = self._fetch_seq
        try:
            forest = await self._client.get_tree(space_id)
        except WorkspaceError as e:
            logger.warning("Tree load for space %s failed: %s", space_id, e.message)
            forest = []

        # A newer fetch, or a different selection, owns the snapshot now
        if seq != self._fetch_seq:
            logger.debug("Discarding superseded tree fetch for space %s", space_id)
            return self.tree
        if self.selected_space is not None and self.selected_space.id != space_id:
            logger.debug("Discarding tree for space %s (no longer selected)", space_id)
            return self.tree

        self.tree = forest
        if self.highlighted is not None:
            self.highlighted = self.find_node(self.highlighted.id)
        return forest

    async def refresh(self) -> list[TreeNode]:
        if self.selected_space is None:
            self.tree = []
            return self.tree
        return await self.load_tree(self.selected_space.id)

    # ── Mutations (each followed by a full refetch) ─────────────────────

    async def create_space(self, name: str) -> Space:
        space = await self._client.create_space(name)
        await self.load_spaces()
        fresh = next((s for s in self.spaces if s.id == space.id), space)
        await self.select_space(fresh)
        return fresh

    async def create_vault(self, name: str, parent_id: Optional[str] = None) -> Vault:
        if self.selected_space is None:
            raise ValidationError("Select a space first")
        vault = await self._client.create_vault(self.selected_space.id, name, parent_id)
        if parent_id:
            self.expanded.add(parent_id)
        await self.refresh()
        return vault

    async def create_log(self, vault_id: str, name: str) -> Log:
        if self.selected_space is None:
            raise ValidationError("Select a space first")
        log = await self._client.create_log(self.selected_space.id, vault_id, name)
        self.expanded.add(vault_id)
        await self.refresh()
        return log

    async def rename_node(self, node: TreeNode, name: str):
        if node.type == "vault":
            record = await self._client.update_vault(node.id, name)
        elif node.type == "log":
            record = await self._client.update_log(node.id, name=name)
        else:
            record = await self._client.update_space(node.id, name)
            await self.load_spaces()
            return record
        await self.refresh()
        return record

    async def delete_node(self, node: TreeNode) -> None:
        if node.type == "vault":
            await self._client.delete_vault(node.id)
        elif node.type == "log":
            await self._client.delete_log(node.id)
        else:
            raise ValidationError("Spaces cannot be deleted from the explorer")
        await self.refresh()

    # ── Expansion / navigation ──────────────────────────────────────────

    def toggle(self, node_id: str) -> bool:
        """Flip a node's expansion; returns the new state."""
        if node_id in self.expanded:
            self.expanded.discard(node_id)
            return False
        self.expanded.add(node_id)
        return True

    def is_expanded(self, node_id: str) -> bool:
        return node_id in self.expanded

    def highlight(self, node_id: Optional[str]) -> Optional[TreeNode]:
        self.highlighted = self.find_node(node_id) if node_id else None
        return self.highlighted

    def walk(self) -> Iterator[tuple[int, TreeNode, Optional[TreeNode]]]:
        """Depth-first (depth, node, parent) over the whole forest."""
        stack = [(0, node, None) for node in reversed(self.tree)]
        while stack:
            depth, node, parent = stack.pop()
            yield depth, node, parent
            for child in reversed(node.children):
                stack.append((depth + 1, child, node))

    def visible_rows(self) -> list[tuple[int, TreeNode]]:
        """Rows a renderer should draw: children only under expanded vaults."""
        rows = []

        def visit(nodes, depth):
            for node in nodes:
                rows.append((depth, node))
                if node.is_vault and node.id in self.expanded:
                    visit(node.children, depth + 1)

        visit(self.tree, 0)
        return rows

    def find_node(self, node_id: str) -> Optional[TreeNode]:
        for _, node, _ in self.walk():
            if node.id == node_id:
                return node
        return None

    def parent_of(self, node_id: str) -> Optional[TreeNode]:
        for _, node, parent in self.walk():
            if node.id == node_id:
                return parent
        return None

    def contains(self, node_id: str) -> bool:
        return self.find_node(node_id) is not None
