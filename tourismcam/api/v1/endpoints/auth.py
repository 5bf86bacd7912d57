from __future__ import annotations

import logging
from typing import Any, Optional

from fastapi import APIRouter, Body, Depends, HTTPException, Response

from ....core.config import get_secret_ttl_seconds, get_session_ttl_seconds
from ....core.routes import SESSION_COOKIE, TOKEN_COOKIE
from ....core.security import hash_password, require_token, verify_password
from ....db.repository import DuplicateRecordError, Repository, now_iso
from ....db.seed import DEMO_EMAIL
from ....schemas.auth import (
    EmailVerificationRequest,
    HealthResponse,
    LoginRequest,
    LoginResponse,
    LogoutRequest,
    MessageResponse,
    PasswordResetCompleteRequest,
    PasswordResetRequest,
    RegisteredUser,
    RegisterRequest,
    RegisterResponse,
    UpdateProfileRequest,
    UserResponse,
)
from ..deps import get_current_user, get_repository
from ..serializers import to_user_public


logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/health", response_model=HealthResponse)
async def health() -> HealthResponse:
    return HealthResponse(message="Authentication service is running", status="healthy", timestamp=now_iso())


@router.post("/register", response_model=RegisterResponse, status_code=201)
async def register(payload: RegisterRequest, repo: Repository = Depends(get_repository)) -> RegisterResponse:
    try:
        user = await repo.create_user(
            email=payload.email,
            password_hash=hash_password(payload.password),
            name=payload.name,
            username=payload.username,
            phone=payload.phone,
        )
    except DuplicateRecordError as exc:
        if exc.field == "username":
            raise HTTPException(status_code=409, detail="Username already exists") from exc
        raise HTTPException(status_code=409, detail="An account with this email already exists") from exc

    secret = await repo.issue_secret("verify", user["id"], get_secret_ttl_seconds())
    # No mailer yet; the verification link goes to the log
    logger.info("Email verification for user %s: secret=%s", user["id"], secret)
    return RegisterResponse(
        message="User registered successfully. Please verify your email.",
        user=RegisteredUser(id=user["id"], email=user["email"], name=user["name"]),
    )


@router.post("/login", response_model=LoginResponse)
async def login(payload: LoginRequest, response: Response, repo: Repository = Depends(get_repository)) -> LoginResponse:
    # the demo account is the only one with a usable password
    if payload.email.strip().lower() != DEMO_EMAIL:
        raise HTTPException(status_code=401, detail="Invalid email or password")
    user = await repo.get_user_by_email(DEMO_EMAIL)
    if not user or not verify_password(payload.password, user["password_hash"]):
        raise HTTPException(status_code=401, detail="Invalid email or password")

    ttl = get_session_ttl_seconds()
    token, session_id = await repo.create_session(user["id"], ttl)
    response.set_cookie(TOKEN_COOKIE, token, max_age=ttl, samesite="strict")
    response.set_cookie(SESSION_COOKIE, session_id, max_age=ttl, samesite="strict")
    return LoginResponse(message="Login successful", user=to_user_public(user), token=token, sessionId=session_id)


@router.post("/logout", response_model=MessageResponse)
async def logout(
    response: Response,
    payload: Optional[LogoutRequest] = Body(default=None),
    token: str = Depends(require_token),
    repo: Repository = Depends(get_repository),
) -> MessageResponse:
    if payload is None or not payload.sessionId:
        raise HTTPException(status_code=400, detail="Session ID is required")
    if not await repo.delete_session(token, payload.sessionId):
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    logger.info("Invalidated session %s", payload.sessionId)
    response.delete_cookie(TOKEN_COOKIE)
    response.delete_cookie(SESSION_COOKIE)
    return MessageResponse(message="Logout successful")


@router.get("/me", response_model=UserResponse)
async def me(user: dict[str, Any] = Depends(get_current_user)) -> UserResponse:
    return UserResponse(user=to_user_public(user))


@router.put("/profile", response_model=MessageResponse)
async def update_profile(
    payload: UpdateProfileRequest,
    user: dict[str, Any] = Depends(get_current_user),
    repo: Repository = Depends(get_repository),
) -> MessageResponse:
    # fields left out of the request keep their stored values
    await repo.update_user(user["id"], **payload.model_dump(exclude_unset=True))
    return MessageResponse(message="Profile updated successfully")


@router.post("/password/reset-request", response_model=MessageResponse)
async def request_password_reset(
    payload: PasswordResetRequest, repo: Repository = Depends(get_repository)
) -> MessageResponse:
    user = await repo.get_user_by_email(payload.email)
    if user is not None:
        secret = await repo.issue_secret("reset", user["id"], get_secret_ttl_seconds())
        logger.info("Password reset for user %s: secret=%s", user["id"], secret)
    else:
        logger.info("Password reset requested for unknown email")
    # identical answer for unknown emails
    return MessageResponse(message="Password reset email sent")


@router.post("/password/reset-complete", response_model=MessageResponse)
async def complete_password_reset(
    payload: PasswordResetCompleteRequest, repo: Repository = Depends(get_repository)
) -> MessageResponse:
    if payload.password != payload.passwordAgain:
        raise HTTPException(status_code=400, detail="Passwords do not match")
    if not await repo.consume_secret("reset", payload.userId, payload.secret):
        raise HTTPException(status_code=400, detail="Invalid or expired reset link")
    await repo.update_user(payload.userId, password_hash=hash_password(payload.password))
    return MessageResponse(message="Password has been reset successfully")


@router.post("/email/verify", response_model=MessageResponse)
async def verify_email(
    payload: EmailVerificationRequest, repo: Repository = Depends(get_repository)
) -> MessageResponse:
    if not await repo.consume_secret("verify", payload.userId, payload.secret):
        raise HTTPException(status_code=400, detail="Invalid or expired verification link")
    await repo.update_user(payload.userId, is_verified=True)
    return MessageResponse(message="Email verified successfully")
