"""Notification queue — transient user-facing messages.

One queue is created by the application and handed to every controller
that reports to the user. Messages carry their own expiry; expire() drops
the ones whose lifetime has passed.
"""

from __future__ import annotations

import itertools
import logging
import time
from dataclasses import dataclass
from typing import Callable, Literal

logger = logging.getLogger(__name__)

Kind = Literal["success", "error", "info"]
KINDS = ("success", "error", "info")


@dataclass(frozen=True)
class Notification:
    id: int
    kind: Kind
    message: str
    expires_at: float


class NotificationQueue:
    """Time-bounded queue of success/error/info messages."""

    def __init__(self, lifetime: float = 5.0, max_items: int = 20, clock: Callable[[], float] = time.monotonic):
        self.lifetime = lifetime
        self.max_items = max_items
        self._clock = clock
        self._items: list[Notification] = []
        self._ids = itertools.count(1)
        self._subscribers: list[Callable[[Notification], None]] = []

    def push(self, message: str, kind: Kind = "info") -> Notification:
        if kind not in KINDS:
            raise ValueError(f"unknown notification kind: {kind!r}")
        note = Notification(
            id=next(self._ids),
            kind=kind,
            message=message,
            expires_at=self._clock() + self.lifetime,
        )
        self._items.append(note)
        # Oldest goes first when the backlog is full
        while len(self._items) > self.max_items:
            self._items.pop(0)
        log = logger.warning if kind == "error" else logger.info
        log("[%s] %s", kind, message)
        for callback in list(self._subscribers):
            callback(note)
        return note

    def success(self, message: str) -> Notification:
        return self.push(message, "success")

    def error(self, message: str) -> Notification:
        return self.push(message, "error")

    def info(self, message: str) -> Notification:
        return self.push(message, "info")

    def expire(self) -> list[Notification]:
        """Drop expired messages and return them."""
        now = self._clock()
        gone = [n for n in self._items if n.expires_at <= now]
        if gone:
            self._items = [n for n in self._items if n.expires_at > now]
        return gone

    def dismiss(self, note_id: int) -> bool:
        before = len(self._items)
        self._items = [n for n in self._items if n.id != note_id]
        return len(self._items) != before

    def subscribe(self, callback: Callable[[Notification], None]) -> None:
        self._subscribers.append(callback)

    @property
    def items(self) -> list[Notification]:
        return list(self._items)

    def __len__(self) -> int:
        return len(self._items)
