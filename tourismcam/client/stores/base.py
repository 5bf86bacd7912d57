from __future__ import annotations

import json
import logging
from typing import Any, Callable, Generic, Optional, TypeVar

from pydantic import BaseModel

from ..storage import KeyValueStorage


logger = logging.getLogger(__name__)

S = TypeVar("S", bound=BaseModel)

PERSIST_VERSION = 0


class Store(Generic[S]):
    """
    Observable state container.

    State is an immutable pydantic model replaced on every ``set_state``.
    When a storage backend is given, ``partialize()`` is written under
    ``storage_name`` as ``{"state": ..., "version": 0}`` after each change and
    read back by ``rehydrate()``.
    """

    storage_name = ""

    def __init__(self, initial: S, storage: Optional[KeyValueStorage] = None) -> None:
        self._state = initial
        self._storage = storage
        self._listeners: list[Callable[[S, S], None]] = []

    @property
    def state(self) -> S:
        return self._state

    def set_state(self, **changes: Any) -> None:
        previous = self._state
        self._state = previous.model_copy(update=changes)
        self.persist()
        for listener in list(self._listeners):
            listener(self._state, previous)

    def subscribe(self, listener: Callable[[S, S], None]) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def partialize(self) -> dict[str, Any]:
        return {}

    def merge_persisted(self, persisted: dict[str, Any]) -> dict[str, Any]:
        """Map a persisted payload back to state field updates."""
        return {}

    def persist(self) -> None:
        if self._storage is None or not self.storage_name:
            return
        payload = {"state": self.partialize(), "version": PERSIST_VERSION}
        self._storage.set_item(self.storage_name, json.dumps(payload))

    def rehydrate(self) -> None:
        if self._storage is None or not self.storage_name:
            return
        raw = self._storage.get_item(self.storage_name)
        if not raw:
            return
        try:
            payload = json.loads(raw)
        except ValueError:
            logger.warning("Discarding unreadable %s snapshot", self.storage_name)
            return
        if not isinstance(payload, dict) or payload.get("version") != PERSIST_VERSION:
            return
        persisted = payload.get("state")
        if isinstance(persisted, dict):
            self._state = self._state.model_copy(update=self.merge_persisted(persisted))
