from __future__ import annotations

from typing import Any, Optional

from fastapi import Depends, HTTPException

import tourismcam.core.runtime as runtime
from ...core.security import optional_token, require_token
from ...db.repository import Repository


def get_repository() -> Repository:
    if runtime.repository is None:
        raise HTTPException(status_code=503, detail="Data store not initialized")
    return runtime.repository


async def get_current_user(
    token: str = Depends(require_token),
    repo: Repository = Depends(get_repository),
) -> dict[str, Any]:
    user = await repo.resolve_session(token)
    if user is None:
        raise HTTPException(status_code=401, detail="Invalid or expired token")
    return user


async def get_optional_user(
    token: Optional[str] = Depends(optional_token),
    repo: Repository = Depends(get_repository),
) -> Optional[dict[str, Any]]:
    if not token:
        return None
    return await repo.resolve_session(token)


def viewer_id(user: Optional[dict[str, Any]]) -> Optional[str]:
    return user["id"] if user else None
