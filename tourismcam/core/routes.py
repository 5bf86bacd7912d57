from __future__ import annotations

LOGIN_PATH = "/auth/login"
HOME_PATH = "/"
TOKEN_COOKIE = "auth_token"
SESSION_COOKIE = "session_id"

PUBLIC_ROUTES = (
    "/auth/login",
    "/auth/signup",
    "/auth/forgot-password",
    "/auth/reset-password",
    "/auth/verify-email",
)

PUBLIC_API_ROUTES = (
    "/api/auth/login",
    "/api/auth/register",
    "/api/auth/password/reset-request",
    "/api/auth/password/reset-complete",
    "/api/auth/email/verify",
    "/api/auth/health",
)


def is_public_route(path: str) -> bool:
    return path.startswith(PUBLIC_ROUTES) or path.startswith(PUBLIC_API_ROUTES)


def is_auth_page(path: str) -> bool:
    return path.startswith("/auth/")


def is_static_path(path: str) -> bool:
    last = path.rsplit("/", 1)[-1]
    return path.startswith(("/_next/", "/static/", "/favicon.ico")) or "." in last
