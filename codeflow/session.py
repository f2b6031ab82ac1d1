"""Session controller — the single active document and what happens to it.

    Empty ──select──▶ Loading ──▶ Ready ──delete──▶ Empty
                                   │ ▲
                 save / run / generate (each its own busy flag)

Only this class writes document state. Save, Run and Generate may be in
flight at the same time; a second call of a kind that is already busy is
ignored. Results are stamped with the selection generation current when
the call started, and dropped if the user has moved to another document
by the time they arrive.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import Optional

from .api import WorkspaceClient
from .errors import ProviderUnavailable, ValidationError, WorkspaceError
from .languages import DEFAULT_LANGUAGE, get_language
from .models import Log, RunResult, TreeNode
from .notifications import NotificationQueue
from .tree import WorkspaceTreeStore

logger = logging.getLogger(__name__)

PROVIDER_GUIDANCE = (
    "AI provider not configured. Add OpenAI or Gemini API keys "
    "(OPENAI_API_KEY / GEMINI_API_KEY) in the backend .env to enable generation."
)


class DocumentState(str, enum.Enum):
    EMPTY = "empty"
    LOADING = "loading"
    READY = "ready"


class Operation(str, enum.Enum):
    SAVE = "save"
    RUN = "run"
    GENERATE = "generate"
    DELETE = "delete"


class SessionController:
    """Owns the active Log, its editable buffer and the last RunResult."""

    def __init__(self, client: WorkspaceClient, store: WorkspaceTreeStore,
                 notifications: NotificationQueue, save_indicator_seconds: float = 0.5):
        self._client = client
        self._store = store
        self._notifications = notifications
        self.save_indicator_seconds = save_indicator_seconds

        self.document: Optional[Log] = None
        self.buffer: str = ""
        self.run_result: Optional[RunResult] = None
        self.generation = 0

        self._busy: set[Operation] = set()
        self._select_seq = 0
        self._pending_select: Optional[int] = None

    # ── State ───────────────────────────────────────────────────────────

    @property
    def state(self) -> DocumentState:
        if self._pending_select is not None:
            return DocumentState.LOADING
        if self.document is None:
            return DocumentState.EMPTY
        return DocumentState.READY

    def is_busy(self, op: Operation) -> bool:
        return op in self._busy

    @property
    def is_saving(self) -> bool:
        return Operation.SAVE in self._busy

    @property
    def is_running(self) -> bool:
        return Operation.RUN in self._busy

    @property
    def is_generating(self) -> bool:
        return Operation.GENERATE in self._busy

    @property
    def is_deleting(self) -> bool:
        return Operation.DELETE in self._busy

    @property
    def is_dirty(self) -> bool:
        return self.document is not None and self.buffer != self.document.code

    @property
    def language(self) -> str:
        """Execution language, always taken from the current filename."""
        if self.document is None:
            return DEFAULT_LANGUAGE
        return get_language(self.document.name)

    @property
    def breadcrumb(self) -> str:
        space = self._store.selected_space
        space_name = space.name if space else ""
        if self.document is not None:
            return f"{space_name} / {self.document.path or self.document.name}"
        return space_name or "Select a log"

    def edit(self, text: str) -> None:
        """Record what the user typed; the buffer is what Run executes."""
        self.buffer = text

    def clear_output(self) -> None:
        self.run_result = None

    # ── Load ────────────────────────────────────────────────────────────

    async def select_log(self, log_id: str) -> bool:
        """Open a Log, replacing document, buffer and output entirely.

        If the id no longer resolves the previous document stays open and
        the failure is reported.
        """
        self._select_seq += 1
        seq = self._select_seq
        self._pending_select = seq
        try:
            log = await self._client.get_log(log_id)
        except WorkspaceError as e:
            if seq == self._select_seq:
                self._notifications.error(e.message or "Failed to load log")
            return False
        finally:
            if self._pending_select == seq:
                self._pending_select = None

        if seq != self._select_seq:
            logger.debug("Dropping load of %s, a later selection won", log_id)
            return False

        self.generation += 1
        self.document = log
        self.buffer = log.code
        self.run_result = None
        return True

    def close(self) -> None:
        self.generation += 1
        self.document = None
        self.buffer = ""
        self.run_result = None

    def apply_rename(self, log: Log) -> None:
        """Follow a rename of the open Log without touching the buffer."""
        if self.document is None or self.document.id != log.id:
            return
        self.document = self.document.model_copy(
            update={"name": log.name, "path": log.path, "language": log.language}
        )

    def reconcile(self) -> None:
        """Close the document if the refreshed tree no longer lists it."""
        if self.document is None or self._store.contains(self.document.id):
            return
        name = self.document.name
        self.close()
        self._notifications.info(f"{name} is no longer in this space")

    # ── Save ────────────────────────────────────────────────────────────

    async def save(self) -> bool:
        if self.document is None:
            return False
        if self.is_saving:
            logger.debug("Save already in progress, ignoring")
            return False

        doc, code, gen = self.document, self.buffer, self.generation
        self._busy.add(Operation.SAVE)
        saved = False
        try:
            await self._client.update_log(doc.id, code=code)
            saved = True
        except WorkspaceError as e:
            self._notifications.error(e.message or "Failed to save")
            return False
        finally:
            # success keeps the flag for the indicator delay below
            if not saved:
                self._busy.discard(Operation.SAVE)

        if gen == self.generation and self.document is not None:
            self.document = self.document.model_copy(update={"code": code})
        self._notifications.success("Saved successfully")
        self._release_later(Operation.SAVE, self.save_indicator_seconds)
        return True

    def _release_later(self, op: Operation, delay: float) -> None:
        if delay <= 0:
            self._busy.discard(op)
            return
        asyncio.get_running_loop().call_later(delay, self._busy.discard, op)

    # ── Run ─────────────────────────────────────────────────────────────

    async def run(self) -> Optional[RunResult]:
        """Execute the buffer. Infrastructure failures come back as a RunResult."""
        if self.document is None:
            return None
        if self.is_running:
            logger.debug("Run already in progress, ignoring")
            return None

        language, source, gen = get_language(self.document.name), self.buffer, self.generation
        self._busy.add(Operation.RUN)
        error = None
        try:
            result = await self._client.run(language, source)
        except WorkspaceError as e:
            error = e.message or "Failed to execute code"
            result = RunResult(stdout="", stderr=error, code=1, output="")
        finally:
            self._busy.discard(Operation.RUN)

        if gen != self.generation:
            logger.debug("Dropping run result for a document that is no longer open")
            return None

        self.run_result = result
        if error is None:
            self._notifications.success("Code executed successfully")
        else:
            self._notifications.error(error)
        return result

    # ── Generate ────────────────────────────────────────────────────────

    def _generation_request(self, prompt, language):
        text = (prompt or "").strip()
        if not text:
            raise ValidationError("Please enter a prompt")
        if language:
            return text, language
        if self.document is None:
            raise ValidationError("Open a log or pick a language before generating")
        return text, get_language(self.document.name)

    async def generate(self, prompt: str, language: Optional[str] = None) -> bool:
        """Replace the whole buffer with generated code."""
        try:
            text, language = self._generation_request(prompt, language)
        except ValidationError as e:
            self._notifications.info(e.message)
            return False
        if self.is_generating:
            logger.debug("Generation already in progress, ignoring")
            return False

        gen = self.generation
        self._busy.add(Operation.GENERATE)
        try:
            response = await self._client.generate(text, language)
        except ProviderUnavailable as e:
            logger.warning("Generation provider unavailable: %s", e.message)
            self._notifications.error(PROVIDER_GUIDANCE)
            return False
        except WorkspaceError as e:
            self._notifications.error(e.message or "Failed to generate code")
            return False
        finally:
            self._busy.discard(Operation.GENERATE)

        if gen != self.generation:
            logger.debug("Dropping generated code for a document that is no longer open")
            return False

        self.buffer = response.code
        self._notifications.success("Code generated successfully")
        return True

    # ── Delete ──────────────────────────────────────────────────────────

    async def delete(self) -> bool:
        """Delete the open Log; the editor ends up empty either way."""
        if self.document is None:
            return False
        if self.is_deleting:
            logger.debug("Delete already in progress, ignoring")
            return False

        doc = self.document
        deleted = True
        self._busy.add(Operation.DELETE)
        try:
            await self._client.delete_log(doc.id)
        except WorkspaceError as e:
            deleted = False
            self._notifications.error(e.message or "Failed to delete")
        finally:
            self._busy.discard(Operation.DELETE)

        if self.document is not None and self.document.id == doc.id:
            self.close()
        if deleted:
            self._notifications.success("Log deleted successfully")
        await self._store.refresh()
        return deleted

    async def delete_node(self, node: TreeNode) -> bool:
        """Delete a Vault or Log picked in the explorer."""
        if node.is_log and self.document is not None and node.id == self.document.id:
            return await self.delete()
        try:
            await self._store.delete_node(node)
        except WorkspaceError as e:
            self._notifications.error(e.message or "Failed to delete")
            return False
        self._notifications.success(f"Deleted {node.name}")
        self.reconcile()
        return True
