from __future__ import annotations

from typing import Callable, Literal, Optional

from ..core.routes import LOGIN_PATH
from .stores.auth import AuthStore

GuardDecision = Literal["wait", "redirect", "allow"]


class ProtectedRoute:
    """
    Client-side counterpart of the route guard middleware. Holds rendering
    while the auth store is loading and sends anonymous users to the login
    page through ``navigate``.
    """

    def __init__(
        self,
        store: AuthStore,
        navigate: Callable[[str], None],
        redirect_to: str = LOGIN_PATH,
    ) -> None:
        self.store = store
        self.navigate = navigate
        self.redirect_to = redirect_to
        self._unsubscribe: Optional[Callable[[], None]] = None

    def evaluate(self) -> GuardDecision:
        state = self.store.state
        if state.is_loading:
            return "wait"
        if not state.is_authenticated:
            self.navigate(self.redirect_to)
            return "redirect"
        return "allow"

    def watch(self) -> None:
        """Re-evaluate on every auth state change until ``stop()``."""
        if self._unsubscribe is None:
            self._unsubscribe = self.store.subscribe(self._on_change)

    def _on_change(self, state, previous) -> None:
        if (state.is_loading, state.is_authenticated) != (previous.is_loading, previous.is_authenticated):
            self.evaluate()

    def stop(self) -> None:
        if self._unsubscribe is not None:
            self._unsubscribe()
            self._unsubscribe = None
