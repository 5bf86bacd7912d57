from __future__ import annotations

from typing import Awaitable, Callable
from urllib.parse import urlencode

from fastapi import Request
from fastapi.responses import RedirectResponse
from starlette.middleware.base import BaseHTTPMiddleware

from ..core.routes import HOME_PATH, LOGIN_PATH, TOKEN_COOKIE, is_auth_page, is_public_route, is_static_path


EXEMPT_PREFIXES = ("/api/", "/healthz", "/docs", "/redoc", "/openapi.json")


def login_redirect_url(path: str) -> str:
    return f"{LOGIN_PATH}?{urlencode({'redirect': path})}"


class RouteGuardMiddleware(BaseHTTPMiddleware):
    """
    Cookie presence gate for page routes.
    The token is not validated here; the API rejects stale tokens on use.
    """

    @staticmethod
    def _exempt(path: str) -> bool:
        return path.startswith(EXEMPT_PREFIXES) or is_static_path(path)

    async def dispatch(self, request: Request, call_next: Callable[[Request], Awaitable]):
        path = request.url.path
        if self._exempt(path):
            return await call_next(request)

        has_token = bool(request.cookies.get(TOKEN_COOKIE))
        if is_public_route(path):
            if has_token and is_auth_page(path):
                return RedirectResponse(HOME_PATH, status_code=307)
            return await call_next(request)

        if not has_token:
            return RedirectResponse(login_redirect_url(path), status_code=307)
        return await call_next(request)
