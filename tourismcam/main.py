from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import Any

import redis.asyncio as redis
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from redis.exceptions import RedisError

from .core import runtime
from .core.config import get_cors_origins, get_redis_url, seed_demo_data, use_fake_redis
from .core.errors import install_error_handlers
from .core.logging import configure_logging
from .core.memory_redis import AsyncMemoryRedis
from .db.repository import Repository
from .db.seed import seed_demo_data as seed_repository
from .middleware.route_guard import RouteGuardMiddleware


logger = logging.getLogger(__name__)


def _connect() -> Any:
    if use_fake_redis():
        logger.info("Using in-memory data store")
        return AsyncMemoryRedis()
    return redis.from_url(get_redis_url(), decode_responses=True)


@asynccontextmanager
async def lifespan(app: FastAPI):  # type: ignore[override]
    client = _connect()
    try:
        await client.ping()
    except (RedisError, OSError) as exc:
        logger.warning("Redis ping failed: %s", exc)
    runtime.redis_client = client
    runtime.repository = Repository(client)
    if seed_demo_data():
        await seed_repository(runtime.repository)
    yield
    await client.aclose()
    runtime.redis_client = None
    runtime.repository = None


configure_logging()

app = FastAPI(title="TourismCam API", version="0.1.0", lifespan=lifespan)

app.add_middleware(RouteGuardMiddleware)
app.add_middleware(
    CORSMiddleware,
    allow_origins=get_cors_origins(),
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)
install_error_handlers(app)


@app.get("/healthz")
async def healthz() -> dict[str, Any]:
    status: dict[str, Any] = {"ok": True}
    if runtime.redis_client is None:
        status["redis"] = {"connected": False, "message": "redis not initialized"}
        return status
    try:
        pong = await runtime.redis_client.ping()
        status["redis"] = {"connected": bool(pong)}
    except (RedisError, OSError) as e:  # pragma: no cover - diagnostic only
        status["redis"] = {"connected": False, "error": str(e)}
    return status


from .api.v1.endpoints import auth, posts, users  # noqa: E402

app.include_router(auth.router, prefix="/api/auth", tags=["auth"])  # e.g., /api/auth/login
app.include_router(posts.router, prefix="/api/posts", tags=["posts"])  # e.g., /api/posts/{post_id}/likes
app.include_router(users.router, prefix="/api/users", tags=["users"])  # e.g., /api/users/search
