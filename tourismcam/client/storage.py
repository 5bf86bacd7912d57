from __future__ import annotations

import json
import logging
import time
from pathlib import Path
from typing import Optional, Protocol

logger = logging.getLogger(__name__)

TOKEN_TTL_SECONDS = 24 * 60 * 60


class KeyValueStorage(Protocol):
    def get_item(self, key: str) -> Optional[str]: ...

    def set_item(self, key: str, value: str) -> None: ...

    def remove_item(self, key: str) -> None: ...


class MemoryStorage:
    def __init__(self) -> None:
        self._items: dict[str, str] = {}

    def get_item(self, key: str) -> Optional[str]:
        return self._items.get(key)

    def set_item(self, key: str, value: str) -> None:
        self._items[key] = value

    def remove_item(self, key: str) -> None:
        self._items.pop(key, None)


class JsonFileStorage:
    """All keys live in one JSON object on disk."""

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def _load(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
        except ValueError:
            return {}
        return data if isinstance(data, dict) else {}

    def _dump(self, items: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self.path.write_text(json.dumps(items, ensure_ascii=False), encoding="utf-8")

    def get_item(self, key: str) -> Optional[str]:
        return self._load().get(key)

    def set_item(self, key: str, value: str) -> None:
        items = self._load()
        items[key] = value
        self._dump(items)

    def remove_item(self, key: str) -> None:
        items = self._load()
        if items.pop(key, None) is not None:
            self._dump(items)


class CredentialStore:
    """
    Bearer token and session id with a shared expiry, read at request time.

    The triple is written to ``storage`` under ``key`` so a new process built
    on the same storage picks up the signed-in session.
    """

    def __init__(
        self,
        storage: Optional[KeyValueStorage] = None,
        clock=time.time,
        key: str = "auth-credentials",
    ) -> None:
        self._storage = storage if storage is not None else MemoryStorage()
        self._clock = clock
        self._key = key
        self._token: Optional[str] = None
        self._session_id: Optional[str] = None
        self._expires_at: float = 0.0
        self._load()

    def _load(self) -> None:
        raw = self._storage.get_item(self._key)
        if not raw:
            return
        try:
            saved = json.loads(raw)
            self._token = saved["token"]
            self._session_id = saved["sessionId"]
            self._expires_at = float(saved["expiresAt"])
        except (ValueError, TypeError, KeyError):
            logger.warning("Discarding unreadable %s entry", self._key)
            self.clear()

    def save(self, token: str, session_id: str, ttl_seconds: int = TOKEN_TTL_SECONDS) -> None:
        self._token = token
        self._session_id = session_id
        self._expires_at = self._clock() + ttl_seconds
        self._storage.set_item(
            self._key,
            json.dumps({"token": token, "sessionId": session_id, "expiresAt": self._expires_at}),
        )

    def _expired(self) -> bool:
        return self._clock() >= self._expires_at

    @property
    def token(self) -> Optional[str]:
        if self._token and self._expired():
            self.clear()
        return self._token

    @property
    def session_id(self) -> Optional[str]:
        if self._session_id and self._expired():
            self.clear()
        return self._session_id

    def clear(self) -> None:
        self._token = None
        self._session_id = None
        self._expires_at = 0.0
        self._storage.remove_item(self._key)
