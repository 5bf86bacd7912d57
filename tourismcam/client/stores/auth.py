from __future__ import annotations

import logging
from typing import Any, Literal, Optional

from pydantic import BaseModel

from ..services.auth import AuthService
from ..storage import KeyValueStorage
from .base import Store


logger = logging.getLogger(__name__)

AuthStatus = Literal["anonymous", "loading", "authenticated", "error"]

SIGNED_OUT: dict[str, Any] = {
    "user": None,
    "token": None,
    "session_id": None,
    "is_authenticated": False,
    "is_loading": False,
    "error": None,
}


class AuthState(BaseModel):
    user: Optional[dict[str, Any]] = None
    token: Optional[str] = None
    session_id: Optional[str] = None
    is_authenticated: bool = False
    is_loading: bool = False
    error: Optional[str] = None

    @property
    def status(self) -> AuthStatus:
        if self.is_loading:
            return "loading"
        if self.is_authenticated:
            return "authenticated"
        if self.error:
            return "error"
        return "anonymous"


class AuthStore(Store[AuthState]):
    storage_name = "auth-storage"

    def __init__(self, service: AuthService, storage: Optional[KeyValueStorage] = None) -> None:
        super().__init__(AuthState(), storage)
        self.service = service
        self._unsubscribe = service.session.on_invalidate(self._on_invalidated)

    def _on_invalidated(self) -> None:
        self.set_state(**SIGNED_OUT)

    # the raw token stays out of storage
    def partialize(self) -> dict[str, Any]:
        return {"user": self.state.user, "isAuthenticated": self.state.is_authenticated}

    def merge_persisted(self, persisted: dict[str, Any]) -> dict[str, Any]:
        return {"user": persisted.get("user"), "is_authenticated": bool(persisted.get("isAuthenticated"))}

    async def login(self, email: str, password: str) -> bool:
        self.set_state(is_loading=True, error=None)
        result = await self.service.login(email, password)
        if not result.ok:
            self.set_state(error=result.error, is_loading=False)
            return False
        if not result.data:
            self.set_state(error="Login failed", is_loading=False)
            return False
        self.set_state(
            user=result.data["user"],
            token=result.data["token"],
            session_id=result.data["sessionId"],
            is_authenticated=True,
            is_loading=False,
            error=None,
        )
        return True

    async def register(self, email: str, password: str, name: str, phone: Optional[str] = None) -> bool:
        self.set_state(is_loading=True, error=None)
        result = await self.service.register(email, password, name, phone)
        if not result.ok:
            self.set_state(error=result.error, is_loading=False)
            return False
        if not result.data:
            self.set_state(error="Registration failed", is_loading=False)
            return False
        self.set_state(is_loading=False, error=None)
        return True

    async def logout(self) -> None:
        self.set_state(is_loading=True)
        result = await self.service.logout()
        if not result.ok:
            logger.warning("Logout error: %s", result.error)
        self.set_state(**SIGNED_OUT)

    async def get_current_user(self) -> None:
        self.set_state(is_loading=True, error=None)
        result = await self.service.get_current_user()
        if not result.ok:
            if result.status == 401:
                self.set_state(**SIGNED_OUT)
            else:
                self.set_state(error=result.error, is_loading=False)
            return
        if result.data:
            self.set_state(user=result.data["user"], is_authenticated=True, is_loading=False, error=None)

    async def update_profile(self, **fields: Any) -> bool:
        self.set_state(is_loading=True, error=None)
        result = await self.service.update_profile(**fields)
        if not result.ok:
            self.set_state(error=result.error, is_loading=False)
            return False
        await self.get_current_user()
        return True

    async def _simple(self, call: Any) -> bool:
        self.set_state(is_loading=True, error=None)
        result = await call
        if not result.ok:
            self.set_state(error=result.error, is_loading=False)
            return False
        self.set_state(is_loading=False, error=None)
        return True

    async def request_password_reset(self, email: str) -> bool:
        return await self._simple(self.service.request_password_reset(email))

    async def complete_password_reset(self, user_id: str, secret: str, password: str, password_again: str) -> bool:
        return await self._simple(self.service.complete_password_reset(user_id, secret, password, password_again))

    async def verify_email(self, user_id: str, secret: str) -> bool:
        return await self._simple(self.service.verify_email(user_id, secret))

    def clear_error(self) -> None:
        self.set_state(error=None)

    def set_loading(self, loading: bool) -> None:
        self.set_state(is_loading=loading)

    async def check_auth_status(self) -> None:
        if self.state.is_loading:
            return
        self.set_state(is_loading=True, error=None)
        if self.service.is_authenticated():
            await self.get_current_user()
        else:
            self.set_state(**SIGNED_OUT)

    def close(self) -> None:
        self._unsubscribe()
